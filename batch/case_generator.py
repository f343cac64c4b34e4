#!/usr/bin/env python3
"""
Expand a pipe-loop sweep description into a permeation case library.

A sweep JSON names the materials ("all" for the whole catalog), optional
fixed ``defaults`` and the swept ``parameters``. Each parameter accepts a
number, a list, or a range:

    {"start": 30, "stop": 60, "step": 10}    inclusive, decimal steps
    {"start": 30, "stop": 60, "count": 7}    evenly spaced

Every value is checked against the engine's input limits while the sweep is
parsed, so a bad range fails here instead of in the middle of a batch run.
"""

import argparse
import json
import sys
from collections import Counter
from decimal import Decimal
from itertools import product
from pathlib import Path
from typing import Any, Dict, List, Tuple

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from batch.utils import DEFAULT_PARAMS, PARAMETER_NAMES, numeric_param  # noqa: E402
from oxyperm.materials import DEFAULT_CATALOG  # noqa: E402


# Short tags used in case ids, e.g. pex-a_55C_x4_od16_s2
ID_TAGS = {
    "temperature_c": "{}C",
    "length_m": "{}m",
    "loops": "x{}",
    "od_mm": "od{}",
    "wall_mm": "s{}",
    "days": "{}d",
    "manual_volume_m3": "V{}",
}


def parameter_values(name: str, cfg: Any) -> List[float]:
    """Values of one swept parameter, validated against the engine limits."""
    if name not in PARAMETER_NAMES:
        raise ValueError(f"Unknown parameter '{name}'. Known: {list(PARAMETER_NAMES)}")

    if isinstance(cfg, dict):
        if "values" in cfg:
            raw = cfg["values"]
        elif "value" in cfg:
            raw = [cfg["value"]]
        elif {"start", "stop"} <= set(cfg):
            raw = _range_values(name, cfg)
        else:
            raise ValueError(f"Parameter '{name}' needs 'values', 'value' or 'start'/'stop'")
    elif isinstance(cfg, list):
        raw = cfg
    else:
        raw = [cfg]

    if not raw:
        raise ValueError(f"Parameter '{name}' produced no values")
    return [numeric_param(name, v) for v in raw]


def _range_values(name: str, cfg: Dict[str, Any]) -> List[float]:
    start = numeric_param(name, cfg["start"])
    stop = numeric_param(name, cfg["stop"])
    if stop < start:
        raise ValueError(f"Parameter '{name}': 'stop' must be >= 'start'")

    if "count" in cfg:
        count = int(cfg["count"])
        if count < 1:
            raise ValueError(f"Parameter '{name}': 'count' must be >= 1")
        return [float(v) for v in np.linspace(start, stop, count)]

    if "step" not in cfg:
        raise ValueError(f"Parameter '{name}' range needs 'step' or 'count'")
    step = Decimal(str(cfg["step"]))
    if step <= 0:
        raise ValueError(f"Parameter '{name}': 'step' must be positive")
    # Decimal keeps 0.1 steps from drifting past 'stop'
    n_steps = int((Decimal(str(cfg["stop"])) - Decimal(str(cfg["start"]))) / step)
    return [float(Decimal(str(cfg["start"])) + i * step) for i in range(n_steps + 1)]


def case_tag(name: str, value: float) -> str:
    return ID_TAGS[name].format(f"{value:g}").replace(".", "p")


def resolve_defaults(spec: Dict[str, Any]) -> Dict[str, Any]:
    """Engine defaults overlaid with the sweep's fixed values."""
    overrides = spec.get("defaults", {})
    if not isinstance(overrides, dict):
        raise ValueError("'defaults' must be a dict in the sweep")
    defaults = dict(DEFAULT_PARAMS)
    for name, value in overrides.items():
        if name == "use_manual_volume":
            defaults[name] = bool(value)
        elif name in PARAMETER_NAMES:
            defaults[name] = numeric_param(name, value) if value is not None else None
        else:
            raise ValueError(f"Unknown default '{name}'. Known: {list(PARAMETER_NAMES)}")
    return defaults


def build_cases(spec: Dict[str, Any]) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    materials = spec.get("materials")
    if materials == "all":
        materials = list(DEFAULT_CATALOG.ids())
    if not isinstance(materials, list) or not materials:
        raise ValueError("'materials' must be a non-empty list or 'all'")
    records = [DEFAULT_CATALOG.resolve(m) for m in materials]

    parameters = spec.get("parameters", {})
    if not isinstance(parameters, dict):
        raise ValueError("'parameters' must be a dict")
    swept = {name: parameter_values(name, cfg) for name, cfg in parameters.items()}
    tagged = [name for name, values in swept.items() if len(values) > 1]

    prefix = spec.get("id_prefix")
    cases: List[Dict[str, Any]] = []
    for record in records:
        for combo in product(*swept.values()):
            params = dict(zip(swept, combo))
            parts = [prefix] if prefix else []
            parts.append(record.id)
            parts.extend(case_tag(name, params[name]) for name in tagged)
            cases.append({"id": "_".join(parts), "material": record.id, "params": params})

    metadata = {
        "materials": [{"id": r.id, "name": r.name, "regime": r.regime.value} for r in records],
        "swept": swept,
        "defaults": resolve_defaults(spec),
        "regimes": dict(Counter(r.regime.value for r in records)),
        "total_cases": len(cases),
    }
    return cases, metadata


def main() -> None:
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    ap.add_argument("--sweep", type=Path, required=True, help="Sweep description JSON")
    ap.add_argument("--out", type=Path, default=Path("out/cases.json"), help="Case library JSON to write")
    ap.add_argument("--max-cases", type=int, default=50000, help="Refuse sweeps larger than this")
    ap.add_argument("--dry-run", action="store_true", help="Report the expansion without writing")
    args = ap.parse_args()

    spec = json.loads(args.sweep.read_text())
    cases, metadata = build_cases(spec)

    for m in metadata["materials"]:
        print(f"  {m['id']:<16} {m['regime']}")
    for name, values in metadata["swept"].items():
        print(f"  {name}: {len(values)} value(s) {values[0]:g} .. {values[-1]:g}")
    print(f"Cases: {metadata['total_cases']}")

    if metadata["total_cases"] > args.max_cases:
        raise SystemExit(f"{metadata['total_cases']} cases exceed --max-cases {args.max_cases}")
    if args.dry_run:
        return

    payload = {
        "description": spec.get("description", args.sweep.stem),
        "metadata": metadata,
        "cases": cases,
    }
    args.out.parent.mkdir(parents=True, exist_ok=True)
    args.out.write_text(json.dumps(payload, indent=2, ensure_ascii=False))
    print(f"Wrote {args.out}")


if __name__ == "__main__":
    main()
