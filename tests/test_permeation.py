import math
from dataclasses import replace

import pytest

from oxyperm.errors import InvalidGeometry, UnknownMaterial
from oxyperm.materials import (
    DEFAULT_CATALOG,
    AirtightMaterial,
    MaterialCatalog,
    Regime,
    VolumeNonBarrierMaterial,
)
from oxyperm.permeation import (
    CONSTANTS,
    MANUAL_VOLUME_WARNING,
    NON_BARRIER_CURVE,
    TEMPERATURE_WARNING,
    CalculationInput,
    Risk,
    classify_risk,
    compute,
    mass_per_day_g,
    scaled_rate,
    temperature_factor,
)


BASE = CalculationInput(
    material_id="pex-a",
    temperature_c=40.0,
    length_m=80.0,
    loops=1,
    od_mm=16.0,
    wall_mm=2.0,
    days=365,
)

BARRIER_IDS = [m.id for m in DEFAULT_CATALOG if m.regime is Regime.AREA_BARRIER]
NON_BARRIER_IDS = [m.id for m in DEFAULT_CATALOG if m.regime is Regime.VOLUME_NON_BARRIER]
AIRTIGHT_IDS = [m.id for m in DEFAULT_CATALOG if m.regime is Regime.AIRTIGHT]


def test_pex_a_reference_loop():
    out = compute(BASE)
    vol = math.pi * 0.012 ** 2 / 4 * 80.0
    assert out.volume_geometric_m3 == pytest.approx(vol)
    assert vol == pytest.approx(0.00905, rel=1e-3)
    assert out.mass_per_day_g == pytest.approx(5 * vol)
    assert out.mass_per_year_g == pytest.approx(5 * vol * 365)
    assert out.mass_per_year_g == pytest.approx(16.5, rel=1e-2)
    assert out.mass_total_g == pytest.approx(out.mass_per_year_g)
    assert out.normalized_rate_g_m3_day == pytest.approx(5.0)
    assert out.risk is Risk.HIGH
    assert out.warnings == ()


def test_derived_quantities():
    out = compute(replace(BASE, days=30))
    m_day = out.mass_per_day_g
    assert out.mass_total_g == pytest.approx(m_day * 30)
    assert out.volume_stp_l_day == pytest.approx(m_day / 32 * 22.414)
    assert out.volume_stp_l_year == pytest.approx(m_day * 365 / 32 * 22.414)
    assert out.iron_oxidized_g == pytest.approx(out.mass_per_year_g * 223.38 / 96)
    assert CONSTANTS.iron_per_oxygen == pytest.approx(2.3269, abs=1e-4)


@pytest.mark.parametrize("material_id", AIRTIGHT_IDS)
@pytest.mark.parametrize("temperature_c", [20.0, 40.0, 90.0])
@pytest.mark.parametrize("loops, days", [(1, 1), (5, 3650)])
def test_airtight_is_zero(material_id, temperature_c, loops, days):
    out = compute(replace(BASE, material_id=material_id, temperature_c=temperature_c, loops=loops, days=days))
    assert out.mass_total_g == 0
    assert out.mass_per_year_g == 0
    assert out.volume_stp_l_year == 0
    assert out.volume_stp_l_day == 0
    assert out.iron_oxidized_g == 0
    assert out.risk is Risk.NONE


@pytest.mark.parametrize("material_id", BARRIER_IDS)
def test_barrier_rate_matches_anchors(material_id):
    m = DEFAULT_CATALOG.resolve(material_id)
    assert scaled_rate(40.0, m.rate_area_40, m.rate_area_80) == m.rate_area_40
    assert scaled_rate(80.0, m.rate_area_40, m.rate_area_80) == pytest.approx(m.rate_area_80, rel=1e-12)

    out40 = compute(replace(BASE, material_id=material_id, temperature_c=40.0))
    out80 = compute(replace(BASE, material_id=material_id, temperature_c=80.0))
    assert out40.mass_per_day_g * 1000.0 / out40.area_m2 == pytest.approx(m.rate_area_40)
    assert out80.mass_per_day_g * 1000.0 / out80.area_m2 == pytest.approx(m.rate_area_80)


def test_non_barrier_curve_constants():
    assert NON_BARRIER_CURVE == (0.32, 3.60)
    assert temperature_factor(40.0, *NON_BARRIER_CURVE) == 1.0
    assert temperature_factor(80.0, *NON_BARRIER_CURVE) == pytest.approx(3.60 / 0.32)

    out = compute(replace(BASE, temperature_c=80.0))
    assert out.normalized_rate_g_m3_day == pytest.approx(5.0 * 3.60 / 0.32)


def test_extrapolation_is_not_clamped():
    m = DEFAULT_CATALOG.resolve("pex-pert-evoh-3")
    k = math.log(2.0 / 0.20) / 40.0
    assert scaled_rate(120.0, 0.20, 2.0) == pytest.approx(0.20 * math.exp(k * 80.0))
    assert scaled_rate(0.0, m.rate_area_40, m.rate_area_80) == pytest.approx(0.02)


@pytest.mark.parametrize("material_id", BARRIER_IDS + NON_BARRIER_IDS)
def test_mass_strictly_increases_with_temperature(material_id):
    temps = [20.0, 35.0, 40.0, 55.0, 80.0, 90.0]
    masses = [compute(replace(BASE, material_id=material_id, temperature_c=t)).mass_per_day_g for t in temps]
    assert all(a < b for a, b in zip(masses, masses[1:]))


@pytest.mark.parametrize("material_id", BARRIER_IDS + NON_BARRIER_IDS)
def test_doubling_loops_doubles_everything(material_id):
    one = compute(replace(BASE, material_id=material_id, loops=2))
    two = compute(replace(BASE, material_id=material_id, loops=4))
    assert two.area_m2 == pytest.approx(2 * one.area_m2)
    assert two.volume_geometric_m3 == pytest.approx(2 * one.volume_geometric_m3)
    assert two.mass_per_day_g == pytest.approx(2 * one.mass_per_day_g)


def test_zero_loops_counts_as_one():
    assert compute(replace(BASE, loops=0)).mass_per_day_g == compute(BASE).mass_per_day_g


@pytest.mark.parametrize("temperature_c, warned", [(39.999, True), (80.001, True), (40.0, False), (80.0, False), (60.0, False)])
def test_temperature_warning(temperature_c, warned):
    out = compute(replace(BASE, temperature_c=temperature_c))
    assert (TEMPERATURE_WARNING in out.warnings) is warned
    assert len(out.warnings) == int(warned)


def _boundary_catalog():
    return MaterialCatalog([
        VolumeNonBarrierMaterial(id="at-din", name="at DIN limit", rate_vol_40=0.10),
        VolumeNonBarrierMaterial(id="at-medium", name="at medium limit", rate_vol_40=0.05),
        AirtightMaterial(id="sealed", name="sealed"),
    ])


def test_risk_boundaries_are_exclusive():
    catalog = _boundary_catalog()
    base = replace(BASE, use_manual_volume=True, manual_volume_m3=1.0)

    at_din = compute(replace(base, material_id="at-din"), catalog)
    assert at_din.normalized_rate_g_m3_day == 0.10
    assert at_din.risk is Risk.MEDIUM

    at_medium = compute(replace(base, material_id="at-medium"), catalog)
    assert at_medium.normalized_rate_g_m3_day == 0.05
    assert at_medium.risk is Risk.LOW

    assert compute(replace(base, material_id="sealed"), catalog).risk is Risk.NONE


def test_classify_risk():
    assert classify_risk(Regime.AREA_BARRIER, 0.1000001) is Risk.HIGH
    assert classify_risk(Regime.AREA_BARRIER, 0.10) is Risk.MEDIUM
    assert classify_risk(Regime.VOLUME_NON_BARRIER, 0.0500001) is Risk.MEDIUM
    assert classify_risk(Regime.VOLUME_NON_BARRIER, 0.05) is Risk.LOW
    assert classify_risk(Regime.VOLUME_NON_BARRIER, None) is Risk.LOW
    assert classify_risk(Regime.AIRTIGHT, 10.0) is Risk.NONE


def test_barrier_pipe_risk_tiers():
    # 16x2 barrier pipe has far more wall area per litre than the DIN limit allows at 80 °C
    assert compute(replace(BASE, material_id="pex-pert-evoh-5", temperature_c=40.0)).risk is Risk.LOW
    assert compute(replace(BASE, material_id="pex-pert-evoh-3", temperature_c=80.0)).risk is Risk.HIGH


def test_manual_volume_changes_mass_for_volume_regime():
    manual = compute(replace(BASE, use_manual_volume=True, manual_volume_m3=0.25))
    geometric = compute(BASE)
    assert manual.volume_effective_m3 == 0.25
    assert manual.mass_per_day_g == pytest.approx(5.0 * 0.25)
    assert manual.mass_per_day_g != pytest.approx(geometric.mass_per_day_g)
    assert manual.normalized_rate_g_m3_day == pytest.approx(manual.mass_per_year_g / 365 / 0.25)


def test_manual_volume_changes_normalized_rate_for_area_regime():
    base = replace(BASE, material_id="pex-pert-evoh-3")
    geometric = compute(base)
    manual = compute(replace(base, use_manual_volume=True, manual_volume_m3=0.25))
    assert manual.mass_per_day_g == pytest.approx(geometric.mass_per_day_g)
    assert manual.normalized_rate_g_m3_day == pytest.approx(geometric.mass_per_day_g / 0.25)
    assert manual.normalized_rate_g_m3_day < geometric.normalized_rate_g_m3_day


def test_manual_volume_ignored_without_flag_or_positive_value():
    geometric = compute(BASE)
    assert compute(replace(BASE, manual_volume_m3=0.25)).mass_per_day_g == geometric.mass_per_day_g

    fallback = compute(replace(BASE, use_manual_volume=True, manual_volume_m3=0.0))
    assert fallback.mass_per_day_g == geometric.mass_per_day_g
    assert fallback.warnings == (MANUAL_VOLUME_WARNING,)


def test_warnings_keep_emission_order():
    out = compute(replace(BASE, temperature_c=20.0, use_manual_volume=True, manual_volume_m3=None))
    assert out.warnings == (TEMPERATURE_WARNING, MANUAL_VOLUME_WARNING)


def test_degenerate_bore_uses_floor():
    out = compute(replace(BASE, od_mm=4.0, wall_mm=2.0))
    assert out.volume_geometric_m3 == pytest.approx(math.pi * 1e-4 ** 2 / 4 * 80.0)
    assert out.normalized_rate_g_m3_day is not None


def test_unknown_material_fails():
    with pytest.raises(UnknownMaterial):
        compute(replace(BASE, material_id="pb1"))


@pytest.mark.parametrize("od_mm, wall_mm", [(float("nan"), 2.0), (16.0, float("inf")), (-16.0, 2.0)])
def test_invalid_geometry_fails(od_mm, wall_mm):
    with pytest.raises(InvalidGeometry):
        compute(replace(BASE, od_mm=od_mm, wall_mm=wall_mm))


def test_mass_per_day_dispatch():
    sealed = AirtightMaterial(id="sealed", name="sealed")
    assert mass_per_day_g(sealed, 60.0, 10.0, 1.0) == 0.0
    with pytest.raises(TypeError):
        mass_per_day_g(object(), 40.0, 1.0, 1.0)


def test_compute_is_repeatable():
    assert compute(BASE) == compute(BASE)


def test_as_dict():
    row = compute(replace(BASE, temperature_c=30.0)).as_dict()
    assert row["risk"] == "High"
    assert row["warnings"] == [TEMPERATURE_WARNING]
    assert row["normalized_rate_g_m3_day"] > 0


def test_from_form_coerces_entries():
    inputs = CalculationInput.from_form({
        "material_id": "pex-a",
        "temperature_c": "55",
        "length_m": "",
        "loops": "abc",
        "od_mm": "16",
        "wall_mm": None,
        "days": "0",
        "use_manual_volume": "true",
        "manual_volume_m3": "0.3",
    })
    assert inputs.temperature_c == 55.0
    assert inputs.length_m == 0.0
    assert inputs.loops == 0.0
    assert inputs.wall_mm == 0.0
    assert inputs.days == 1.0
    assert inputs.use_manual_volume is True
    assert inputs.manual_volume_m3 == 0.3


def test_from_form_drops_manual_volume_when_switched_off():
    inputs = CalculationInput.from_form({"material_id": "ppr", "manual_volume_m3": "0.3", "days": "10"})
    assert inputs.use_manual_volume is False
    assert inputs.manual_volume_m3 is None
    assert inputs.days == 10.0
