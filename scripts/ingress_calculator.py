#!/usr/bin/env python3
"""
Oxygen ingress calculator for a single hydronic pipe loop.

Reports daily/annual O2 mass, gas volume at STP, the equivalent mass of
oxidized iron and the DIN 4726 risk tier (threshold 0.1 g/(m^3·day)).

Optionally writes the result as a JSON record with --json.
"""
import argparse
import json
import logging
from pathlib import Path
import sys

# Allow running this script from any working directory by adding the repo root to sys.path
_ROOT = Path(__file__).resolve().parents[1]
if str(_ROOT) not in sys.path:
    sys.path.insert(0, str(_ROOT))

from oxyperm.advisory import build_advisory
from oxyperm.materials import DEFAULT_CATALOG
from oxyperm.permeation import CalculationInput, compute


def fmt(x, digits: int = 3) -> str:
    if x is None:
        return "-"
    return f"{x:,.{digits}f}"


def parse_args(argv=None) -> argparse.Namespace:
    ap = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    ap.add_argument('--material', type=str, default=DEFAULT_CATALOG.ids()[0], choices=list(DEFAULT_CATALOG.ids()))
    ap.add_argument('--T_C', type=float, default=40.0, help='Mean operating temperature [°C]')
    ap.add_argument('--length_m', type=float, default=80.0, help='Length of one loop [m]')
    ap.add_argument('--loops', type=int, default=1, help='Number of loops')
    ap.add_argument('--od_mm', type=float, default=16.0, help='Outer diameter [mm]')
    ap.add_argument('--wall_mm', type=float, default=2.0, help='Wall thickness [mm]')
    ap.add_argument('--days', type=int, default=365, help='Reporting horizon [days]')
    ap.add_argument('--volume_m3', type=float, default=None, help='Manual system water volume [m^3]')
    ap.add_argument('--list', action='store_true', help='List catalog materials and exit')
    ap.add_argument('--json', type=Path, default=None, help='Write the result record to this JSON file')
    ap.add_argument('--verbose', action='store_true')
    return ap.parse_args(argv)


def list_materials() -> None:
    for m in DEFAULT_CATALOG.list():
        note = f"  [{m.note}]" if m.note else ""
        print(f"  {m.id:<16} {m.regime.value:<15} {m.name}{note}")


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.list:
        list_materials()
        return 0

    inputs = CalculationInput(
        material_id=args.material,
        temperature_c=args.T_C,
        length_m=max(args.length_m, 0.0),
        loops=max(args.loops, 0),
        od_mm=max(args.od_mm, 0.0),
        wall_mm=max(args.wall_mm, 0.0),
        days=max(1, args.days),
        use_manual_volume=args.volume_m3 is not None,
        manual_volume_m3=args.volume_m3,
    )
    out = compute(inputs)
    advice = build_advisory(out)
    material = DEFAULT_CATALOG.resolve(args.material)

    print(f'Material: {material.name} ({material.regime.value})')
    print(f'  pipe area:          {fmt(out.area_m2)} m^2')
    print(f'  water volume:       {fmt(out.volume_effective_m3 * 1000.0, 2)} L')
    print(f'  O2 over {inputs.days:g} days:   {fmt(out.mass_total_g)} g')
    print(f'  O2 per year:        {fmt(out.mass_per_year_g)} g')
    print(f'  O2 at STP:          {fmt(out.volume_stp_l_day, 4)} L/day, {fmt(out.volume_stp_l_year)} L/year')
    print(f'  Fe oxidized:        {fmt(out.iron_oxidized_g)} g/year')
    print(f'  normalized rate:    {fmt(out.normalized_rate_g_m3_day)} g/(m^3·day)')
    print(f'Risk: {out.risk.value} - {advice.summary}')
    print(f'  leak estimate: {advice.leak_timeline}')
    for action in advice.actions:
        print(f'  - {action}')
    for w in out.warnings:
        print(f'WARNING: {w}')

    if args.json:
        record = {"inputs": vars(inputs), "result": out.as_dict(), "leak_timeline": advice.leak_timeline}
        args.json.parent.mkdir(parents=True, exist_ok=True)
        args.json.write_text(json.dumps(record, indent=2, ensure_ascii=False))
        print(f'Result written to {args.json}')
    return 0


if __name__ == '__main__':
    sys.exit(main())
