"""Reader-facing interpretation of a calculation result."""

from dataclasses import dataclass
from typing import Optional, Tuple

from .permeation import CalculationOutput, Risk


RISK_COLORS = {
    Risk.HIGH: "#dc2626",    # red
    Risk.MEDIUM: "#f59e0b",  # amber
    Risk.LOW: "#059669",     # green
    Risk.NONE: "#64748b",    # slate
}

RISK_SUMMARIES = {
    Risk.HIGH: "High probability of intensive corrosion",
    Risk.MEDIUM: "Medium probability of corrosion",
    Risk.LOW: "Low probability of corrosion",
    Risk.NONE: "No corrosion risk from permeation",
}

# (lower bound exclusive [g/(m^3·day)], estimate until first leak)
LEAK_TIMELINE_BUCKETS: Tuple[Tuple[float, str], ...] = (
    (0.2, "≤1–2 years"),
    (0.1, "1–3 years"),
    (0.05, "3–7 years"),
)
LEAK_TIMELINE_UNLIKELY = ">10 years (unlikely)"

REMEDIATION_ACTIONS = {
    Risk.HIGH: (
        "Replace non-barrier sections with barrier pipe (5-layer EVOH) or MLC",
        "Install or check the automatic air separator and high-point air vents",
        "Eliminate air intake (joints, pump upstream of the expansion vessel)",
        "Consider separating circuits with a heat exchanger where materials are mixed",
    ),
    Risk.MEDIUM: (
        "Improve degassing (automatic air separator, correct expansion vessel piping)",
        "Reduce the share of non-barrier circuits or replace them with barrier pipe",
        "Keep circulation velocity high enough to flush out microbubbles",
    ),
    Risk.LOW: (
        "Maintain regular degassing and service the air vents",
        "Monitor water quality and flush the system periodically",
    ),
    Risk.NONE: (),
}

AIR_ACCUMULATION_POINTS: Tuple[str, ...] = (
    "High points: radiator tops, manifolds, heat exchangers, air collectors.",
    "Horizontal runs with a rise, pockets at bends.",
    "Zones with pressure drop or temperature rise (they promote degassing).",
)

CORROSION_HOTSPOTS: Tuple[str, ...] = (
    "Bottom of radiators and mains: differential aeration (bottom anodic, top cathodic).",
    "Dead legs and stagnant pockets: back branches at tees, lower manifolds.",
    "Under sludge deposits (under-deposit corrosion).",
)

AIR_LOCK_NOTE = (
    "A long-standing air lock can cause local corrosion along the top edge of a panel radiator."
)


def risk_color(risk: Risk) -> str:
    return RISK_COLORS[risk]


def risk_summary(risk: Risk) -> str:
    return RISK_SUMMARIES[risk]


def leak_timeline(normalized_rate: Optional[float]) -> str:
    """Coarse time-to-leak estimate bucketed on the normalized ingress rate."""
    rv = normalized_rate if normalized_rate is not None else 0.0
    for bound, label in LEAK_TIMELINE_BUCKETS:
        if rv > bound:
            return label
    return LEAK_TIMELINE_UNLIKELY


def remediation_actions(risk: Risk) -> Tuple[str, ...]:
    return REMEDIATION_ACTIONS[risk]


@dataclass(frozen=True)
class Advisory:
    risk: Risk
    color: str
    summary: str
    leak_timeline: str
    actions: Tuple[str, ...]
    air_accumulation_points: Tuple[str, ...] = AIR_ACCUMULATION_POINTS
    corrosion_hotspots: Tuple[str, ...] = CORROSION_HOTSPOTS
    air_lock_note: str = AIR_LOCK_NOTE


def build_advisory(output: CalculationOutput) -> Advisory:
    return Advisory(
        risk=output.risk,
        color=risk_color(output.risk),
        summary=risk_summary(output.risk),
        leak_timeline=leak_timeline(output.normalized_rate_g_m3_day),
        actions=remediation_actions(output.risk),
    )
