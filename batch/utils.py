import math
from typing import Any, Dict

from oxyperm.materials import DEFAULT_CATALOG, MaterialCatalog
from oxyperm.permeation import CalculationInput


# Same starting point as the single-calculation form
DEFAULT_PARAMS: Dict[str, Any] = {
    "temperature_c": 40.0,
    "length_m": 80.0,
    "loops": 1,
    "od_mm": 16.0,
    "wall_mm": 2.0,
    "days": 365,
    "use_manual_volume": False,
    "manual_volume_m3": None,
}

PARAMETER_NAMES = tuple(key for key in DEFAULT_PARAMS if key != "use_manual_volume")

# Lower bounds the engine expects its inputs to respect
PARAMETER_MINIMUMS: Dict[str, float] = {
    "length_m": 0.0,
    "loops": 0.0,
    "od_mm": 0.0,
    "wall_mm": 0.0,
    "days": 1.0,
    "manual_volume_m3": 0.0,
}


def canonical_material_id(name: str, catalog: MaterialCatalog = DEFAULT_CATALOG) -> str:
    return catalog.resolve(name).id


def numeric_param(name: str, value: Any) -> float:
    """Return ``value`` as a finite float at or above the parameter's minimum.

    Booleans, None, strings that are not numbers and containers raise ValueError.
    """
    if isinstance(value, bool):
        raise ValueError(f"Parameter '{name}' is not numeric: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Parameter '{name}' is not numeric: {value!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"Parameter '{name}' must be finite, got {value!r}")
    minimum = PARAMETER_MINIMUMS.get(name)
    if minimum is not None and number < minimum:
        raise ValueError(f"Parameter '{name}' must be >= {minimum:g}, got {number:g}")
    return number


def input_from_params(material: str, params: Dict[str, Any]) -> CalculationInput:
    """Return a CalculationInput from case parameters layered over the defaults.

    Unknown, non-numeric or out-of-range parameters raise ValueError. A manual
    volume given without the flag switches the override on.
    """
    unknown = set(params) - set(DEFAULT_PARAMS)
    if unknown:
        raise ValueError(f"Unknown case parameters: {sorted(unknown)}")

    merged = {**DEFAULT_PARAMS, **params}
    manual = merged.get("manual_volume_m3")
    use_manual = bool(merged.get("use_manual_volume")) or (
        "manual_volume_m3" in params and manual is not None
    )
    values = {name: numeric_param(name, merged[name]) for name in PARAMETER_NAMES if name != "manual_volume_m3"}

    return CalculationInput(
        material_id=material,
        use_manual_volume=use_manual,
        manual_volume_m3=numeric_param("manual_volume_m3", manual) if manual is not None else None,
        **values,
    )
