#!/usr/bin/env python3
"""
Sweep operating temperature for one or more pipe materials.

Defaults:
- 16x2 mm pipe, one 80 m loop
- Temperature 20–90 °C (the range of the input form)
- Plotted quantity: normalized rate g/(m^3·day) against the DIN 4726 limit

Always writes a CSV; draws a matplotlib chart (shown, or saved with --save).
"""
import argparse
import csv
import sys
from pathlib import Path
from typing import Dict, List, Sequence

import matplotlib.pyplot as plt
import numpy as np

# Allow running this script from any working directory by adding the repo root to sys.path
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from oxyperm.materials import DEFAULT_CATALOG, Regime
from oxyperm.permeation import CONSTANTS, TEMPERATURE_WARNING, CalculationInput, compute


METRICS = {
    "normalized_rate": ("normalized_rate_g_m3_day", "O$_2$ ingress [g/(m$^3$·day)]"),
    "mass_per_year": ("mass_per_year_g", "O$_2$ per year [g]"),
    "iron": ("iron_oxidized_g", "Fe oxidized per year [g]"),
}


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawTextHelpFormatter)
    p.add_argument("--materials", nargs="+", default=None, help="Material ids (default: every permeable material)")
    p.add_argument("--T_C", type=float, nargs=3, metavar=("start", "stop", "count"), default=[20.0, 90.0, 71], help="Temperature sweep [°C]: start stop count")
    p.add_argument("--length_m", type=float, default=80.0, help="Loop length [m] (default: 80)")
    p.add_argument("--loops", type=int, default=1, help="Number of loops (default: 1)")
    p.add_argument("--od_mm", type=float, default=16.0, help="Outer diameter [mm] (default: 16)")
    p.add_argument("--wall_mm", type=float, default=2.0, help="Wall thickness [mm] (default: 2)")
    p.add_argument("--volume_m3", type=float, default=None, help="Manual system volume [m^3]")
    p.add_argument("--metric", choices=sorted(METRICS), default="normalized_rate", help="Quantity to plot")
    p.add_argument("--out", type=Path, default=Path("out/temperature_sweep.csv"), help="Output CSV path (written always)")
    p.add_argument("--save", type=Path, default=None, help="Save the chart to this file instead of showing it")
    p.add_argument("--no_plot", action="store_true", help="Only write the CSV")
    return p.parse_args(argv)


def sweep(material_ids: Sequence[str], temperatures: np.ndarray, base: Dict[str, float]) -> List[Dict[str, object]]:
    rows = []
    for material_id in material_ids:
        for T in temperatures:
            inputs = CalculationInput(material_id=material_id, temperature_c=float(T), **base)
            out = compute(inputs)
            rows.append({
                "material": material_id,
                "temperature_c": float(T),
                "mass_per_day_g": out.mass_per_day_g,
                "mass_per_year_g": out.mass_per_year_g,
                "iron_oxidized_g": out.iron_oxidized_g,
                "normalized_rate_g_m3_day": out.normalized_rate_g_m3_day,
                "risk": out.risk.value,
                "extrapolated": TEMPERATURE_WARNING in out.warnings,
            })
    return rows


def plot_sweep(rows: List[Dict[str, object]], metric: str, save_path: Path = None) -> None:
    key, ylabel = METRICS[metric]
    fig, ax = plt.subplots(figsize=(9, 6))

    for material_id in dict.fromkeys(r["material"] for r in rows):
        sel = [r for r in rows if r["material"] == material_id]
        T = np.array([r["temperature_c"] for r in sel])
        y = np.array([np.nan if r[key] is None else r[key] for r in sel], dtype=float)
        ax.plot(T, y, linewidth=1.5, label=DEFAULT_CATALOG.resolve(material_id).name)

    ax.axvspan(CONSTANTS.t_ref_low, CONSTANTS.t_ref_high, color="#dddddd", alpha=0.4, label="reference data 40–80 °C")
    if metric == "normalized_rate":
        ax.axhline(CONSTANTS.din_threshold, color="#dc2626", linestyle="--", label="DIN 4726 limit")
        ax.axhline(CONSTANTS.medium_threshold, color="#f59e0b", linestyle=":", label="medium risk")
        ax.set_yscale("log")

    ax.set_xlabel("Mean water temperature [°C]")
    ax.set_ylabel(ylabel)
    ax.set_title("Oxygen permeation vs. temperature")
    ax.grid(True, which="both", alpha=0.3)
    ax.legend(loc="upper left", fontsize="small")

    if save_path:
        save_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(save_path, dpi=200, bbox_inches="tight")
        plt.close(fig)
    else:
        plt.show()


def main(argv=None):
    args = parse_args(argv)

    material_ids = args.materials or [m.id for m in DEFAULT_CATALOG.list() if m.regime is not Regime.AIRTIGHT]
    material_ids = [DEFAULT_CATALOG.resolve(m).id for m in material_ids]
    temperatures = np.linspace(args.T_C[0], args.T_C[1], max(1, int(args.T_C[2])))
    base = {
        "length_m": args.length_m,
        "loops": args.loops,
        "od_mm": args.od_mm,
        "wall_mm": args.wall_mm,
        "days": 365,
        "use_manual_volume": args.volume_m3 is not None,
        "manual_volume_m3": args.volume_m3,
    }

    rows = sweep(material_ids, temperatures, base)

    args.out.parent.mkdir(parents=True, exist_ok=True)
    with args.out.open("w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(rows[0].keys()))
        writer.writeheader()
        writer.writerows(rows)
    print(f"Wrote CSV: {args.out}")

    if not args.no_plot:
        plot_sweep(rows, args.metric, args.save)
        if args.save:
            print(f"Wrote chart: {args.save}")


if __name__ == "__main__":
    main()
