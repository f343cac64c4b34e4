"""
Oxygen ingress through polymer pipe walls and DIN 4726 risk classification.

Rate laws are anchored at 40 °C and 80 °C and interpolated log-linearly:

    rate(T) = r40 * exp(k * (T - 40)),  k = ln(r80 / r40) / 40

Outside 40–80 °C the same law is extrapolated without clamping; the result
carries a warning instead.
"""

import enum
import logging
import math
from dataclasses import asdict, dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from .geometry import (
    BORE_FLOOR,
    bore_volume,
    effective_volume,
    inner_diameter,
    mm,
    outer_surface_area,
    total_length,
)
from .materials import (
    DEFAULT_CATALOG,
    AirtightMaterial,
    AreaBarrierMaterial,
    MaterialCatalog,
    MaterialRecord,
    Regime,
    VolumeNonBarrierMaterial,
)


log = logging.getLogger(__name__)


class Risk(enum.Enum):
    NONE = "None"
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


@dataclass(frozen=True)
class ModelConstants:
    days_per_year: float = 365.0
    o2_molar_mass: float = 32.0        # g/mol
    stp_molar_volume: float = 22.414   # L/mol
    iron_per_oxygen: float = 223.38 / 96.0  # g Fe per g O2 (4 Fe + 3 O2 -> 2 Fe2O3)
    t_ref_low: float = 40.0            # °C
    t_ref_high: float = 80.0           # °C
    din_threshold: float = 0.10        # g/(m^3·day), DIN 4726
    medium_threshold: float = 0.05     # g/(m^3·day)
    bore_floor: float = BORE_FLOOR     # m


CONSTANTS = ModelConstants()

# Temperature response shared by every non-barrier material: the 40/80 °C
# ratio of thin EVOH, applied to the material's own 40 °C rate.
NON_BARRIER_CURVE: Tuple[float, float] = (0.32, 3.60)

TEMPERATURE_WARNING = (
    "Temperature outside the reference data range (40–80 °C): rate is extrapolated."
)
MANUAL_VOLUME_WARNING = (
    "Manual system volume is not positive: geometric pipe volume is used instead."
)


@dataclass(frozen=True)
class CalculationInput:
    material_id: str
    temperature_c: float
    length_m: float
    loops: float
    od_mm: float
    wall_mm: float
    days: float
    use_manual_volume: bool = False
    manual_volume_m3: Optional[float] = None

    @classmethod
    def from_form(cls, form: Mapping[str, Any]) -> "CalculationInput":
        """Coerce raw form entries the way the input widgets do.

        Empty or malformed numbers become 0, days is clamped to at least 1.
        """
        use_manual = _as_bool(form.get("use_manual_volume", False))
        return cls(
            material_id=str(form.get("material_id", "")),
            temperature_c=_as_number(form.get("temperature_c")),
            length_m=_as_number(form.get("length_m")),
            loops=_as_number(form.get("loops")),
            od_mm=_as_number(form.get("od_mm")),
            wall_mm=_as_number(form.get("wall_mm")),
            days=max(1.0, _as_number(form.get("days"), default=1.0)),
            use_manual_volume=use_manual,
            manual_volume_m3=_as_number(form.get("manual_volume_m3")) if use_manual else None,
        )


@dataclass(frozen=True)
class CalculationOutput:
    mass_total_g: float
    mass_per_year_g: float
    volume_stp_l_year: float
    volume_stp_l_day: float
    iron_oxidized_g: float
    normalized_rate_g_m3_day: Optional[float]
    risk: Risk
    warnings: Tuple[str, ...]
    mass_per_day_g: float = 0.0
    area_m2: float = 0.0
    volume_geometric_m3: float = 0.0
    volume_effective_m3: float = 0.0

    def as_dict(self) -> Dict[str, Any]:
        row = asdict(self)
        row["risk"] = self.risk.value
        row["warnings"] = list(self.warnings)
        return row


def _as_number(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "on"}
    return bool(value)


def temperature_factor(T: float, r40: float, r80: float, constants: ModelConstants = CONSTANTS) -> float:
    """Multiplier on the 40 °C rate for the exponential law through (r40, r80)."""
    span = constants.t_ref_high - constants.t_ref_low
    k = math.log(r80 / r40) / span
    return math.exp(k * (T - constants.t_ref_low))


def scaled_rate(T: float, r40: float, r80: float, constants: ModelConstants = CONSTANTS) -> float:
    return r40 * temperature_factor(T, r40, r80, constants)


def mass_per_day_g(
    material: MaterialRecord,
    temperature_c: float,
    area_m2: float,
    volume_m3: float,
    constants: ModelConstants = CONSTANTS,
) -> float:
    """Daily oxygen ingress [g/day] for the material's permeation regime."""
    if isinstance(material, AirtightMaterial):
        return 0.0
    if isinstance(material, AreaBarrierMaterial):
        rate_mg_m2_day = scaled_rate(temperature_c, material.rate_area_40, material.rate_area_80, constants)
        return rate_mg_m2_day * area_m2 / 1000.0  # mg -> g
    if isinstance(material, VolumeNonBarrierMaterial):
        fT = temperature_factor(temperature_c, *NON_BARRIER_CURVE, constants=constants)
        return material.rate_vol_40 * fT * volume_m3
    raise TypeError(f"Unsupported material record: {material!r}")


def classify_risk(
    regime: Regime,
    normalized_rate: Optional[float],
    constants: ModelConstants = CONSTANTS,
) -> Risk:
    if regime is Regime.AIRTIGHT:
        return Risk.NONE
    if normalized_rate is not None and normalized_rate > constants.din_threshold:
        return Risk.HIGH
    if normalized_rate is not None and normalized_rate > constants.medium_threshold:
        return Risk.MEDIUM
    return Risk.LOW


def compute(
    inputs: CalculationInput,
    catalog: MaterialCatalog = DEFAULT_CATALOG,
    constants: ModelConstants = CONSTANTS,
) -> CalculationOutput:
    """Oxygen ingress, iron equivalent and risk tier for one pipe loop.

    Raises UnknownMaterial for an unresolved id and InvalidGeometry for
    non-finite or negative pipe dimensions. Nothing is produced on failure.
    """
    material = catalog.resolve(inputs.material_id)

    L_tot = total_length(inputs.length_m, inputs.loops)
    D_o = mm(inputs.od_mm)
    D_i = inner_diameter(D_o, mm(inputs.wall_mm), constants.bore_floor)
    area = outer_surface_area(D_o, L_tot)
    vol_geom = bore_volume(D_i, L_tot)
    V_sys = effective_volume(vol_geom, inputs.use_manual_volume, inputs.manual_volume_m3)

    warnings = []
    T = inputs.temperature_c
    if T < constants.t_ref_low or T > constants.t_ref_high:
        log.debug("Extrapolating %s outside reference band at %.3f °C", material.id, T)
        warnings.append(TEMPERATURE_WARNING)
    if inputs.use_manual_volume and not (inputs.manual_volume_m3 or 0.0) > 0:
        warnings.append(MANUAL_VOLUME_WARNING)

    m_day = mass_per_day_g(material, T, area, V_sys if V_sys > 0 else vol_geom, constants)
    log.debug("%s (%s): %.6g g/day over A=%.4g m^2, V=%.4g m^3",
              material.id, material.regime.value, m_day, area, V_sys)

    m_year = m_day * constants.days_per_year
    rv = (m_year / constants.days_per_year) / V_sys if V_sys > 0 else None

    return CalculationOutput(
        mass_total_g=m_day * inputs.days,
        mass_per_year_g=m_year,
        volume_stp_l_year=(m_year / constants.o2_molar_mass) * constants.stp_molar_volume,
        volume_stp_l_day=(m_day / constants.o2_molar_mass) * constants.stp_molar_volume,
        iron_oxidized_g=m_year * constants.iron_per_oxygen,
        normalized_rate_g_m3_day=rv,
        risk=classify_risk(material.regime, rv, constants),
        warnings=tuple(warnings),
        mass_per_day_g=m_day,
        area_m2=area,
        volume_geometric_m3=vol_geom,
        volume_effective_m3=V_sys,
    )
