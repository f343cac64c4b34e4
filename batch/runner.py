#!/usr/bin/env python3
"""Evaluate a permeation case library and write one summary row per case."""

import argparse
import csv
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from batch.utils import input_from_params  # noqa: E402
from oxyperm.advisory import leak_timeline  # noqa: E402
from oxyperm.errors import PermeationError  # noqa: E402
from oxyperm.materials import DEFAULT_CATALOG  # noqa: E402
from oxyperm.permeation import compute  # noqa: E402


log = logging.getLogger(__name__)

CANONICAL_HEADER: Sequence[str] = (
    "case_id",
    "material",
    "regime",
    "temperature_c",
    "length_m",
    "loops",
    "od_mm",
    "wall_mm",
    "days",
    "area_m2",
    "volume_effective_m3",
    "mass_per_day_g",
    "mass_total_g",
    "mass_per_year_g",
    "volume_stp_l_year",
    "iron_oxidized_g",
    "normalized_rate_g_m3_day",
    "risk",
    "leak_timeline",
    "warnings",
    "result_status",
    "error",
)


def load_cases(path: Path) -> Dict[str, Any]:
    data = json.loads(path.read_text())
    if "cases" not in data or not isinstance(data["cases"], list):
        raise ValueError("Cases file must contain a 'cases' list")
    return data


def _default_params(data: Dict[str, Any]) -> Dict[str, Any]:
    defaults: Dict[str, Any] = {}
    metadata = data.get("metadata", {})
    if isinstance(metadata, dict):
        cfg = metadata.get("defaults")
        if isinstance(cfg, dict):
            defaults.update(cfg)
    return defaults


def evaluate_case(case: Dict[str, Any], defaults: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Compute one case; failures become an ``error`` row instead of raising."""
    case_id = case.get("id", "")
    material_id = case.get("material", "")
    params = {**(defaults or {}), **case.get("params", {})}
    row: Dict[str, Any] = {key: "" for key in CANONICAL_HEADER}
    row.update({"case_id": case_id, "material": material_id})

    try:
        inputs = input_from_params(material_id, params)
        out = compute(inputs)
    except (PermeationError, ValueError) as exc:
        log.warning("Case %s failed: %s", case_id, exc)
        row.update({"result_status": "error", "error": str(exc)})
        return row

    rv = out.normalized_rate_g_m3_day
    row.update({
        "regime": DEFAULT_CATALOG.resolve(material_id).regime.value,
        "temperature_c": inputs.temperature_c,
        "length_m": inputs.length_m,
        "loops": inputs.loops,
        "od_mm": inputs.od_mm,
        "wall_mm": inputs.wall_mm,
        "days": inputs.days,
        "area_m2": out.area_m2,
        "volume_effective_m3": out.volume_effective_m3,
        "mass_per_day_g": out.mass_per_day_g,
        "mass_total_g": out.mass_total_g,
        "mass_per_year_g": out.mass_per_year_g,
        "volume_stp_l_year": out.volume_stp_l_year,
        "iron_oxidized_g": out.iron_oxidized_g,
        "normalized_rate_g_m3_day": "" if rv is None else rv,
        "risk": out.risk.value,
        "leak_timeline": leak_timeline(rv),
        "warnings": " | ".join(out.warnings),
        "result_status": "computed",
    })
    return row


def run_cases(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    defaults = _default_params(data)
    return [evaluate_case(case, defaults) for case in data["cases"]]


def write_summary(rows: Sequence[Dict[str, Any]], path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(CANONICAL_HEADER))
        writer.writeheader()
        writer.writerows(rows)
    return path


def main() -> None:
    ap = argparse.ArgumentParser(description=__doc__)
    ap.add_argument("--cases", type=Path, required=True, help="Path to JSON cases file")
    ap.add_argument("--out", type=Path, default=Path("out/permeation_summary.csv"), help="Summary CSV path")
    ap.add_argument("--verbose", action="store_true", help="Log per-case model details")
    args = ap.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    data = load_cases(args.cases)
    description = data.get("description")
    if description:
        print(f"Case library: {description}")
    print(f"Total cases: {len(data['cases'])}")

    rows = run_cases(data)
    write_summary(rows, args.out)

    failed = [r["case_id"] for r in rows if r["result_status"] == "error"]
    by_risk: Dict[str, int] = {}
    for r in rows:
        if r["result_status"] == "computed":
            by_risk[r["risk"]] = by_risk.get(r["risk"], 0) + 1
    print(f"Risk tiers: {by_risk}")
    if failed:
        print(f"{len(failed)} case(s) failed: {failed}")
    print(f"Summary written to {args.out}")


if __name__ == "__main__":
    main()
