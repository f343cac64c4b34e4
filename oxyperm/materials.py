"""Reference permeation data for hydronic pipe materials.

Each record is tagged with the regime that decides which rate law applies:

- ``barrier-area``: EVOH barrier pipe, rate per outer wall area at 40/80 °C
  [mg/(m^2·day)].
- ``nonbarrier-vol``: plain polymer pipe, rate per contained water volume at
  40 °C [g/(m^3·day)].
- ``airtight``: aluminium multilayer or metal, diffusion neglected.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

from .errors import MalformedMaterial, UnknownMaterial


log = logging.getLogger(__name__)


class Regime(enum.Enum):
    AREA_BARRIER = "barrier-area"
    VOLUME_NON_BARRIER = "nonbarrier-vol"
    AIRTIGHT = "airtight"


@dataclass(frozen=True)
class AreaBarrierMaterial:
    id: str
    name: str
    rate_area_40: float   # mg/(m^2·day) @ 40 °C
    rate_area_80: float   # mg/(m^2·day) @ 80 °C
    note: str = ""

    @property
    def regime(self) -> Regime:
        return Regime.AREA_BARRIER


@dataclass(frozen=True)
class VolumeNonBarrierMaterial:
    id: str
    name: str
    rate_vol_40: float    # g/(m^3·day) @ 40 °C
    note: str = ""

    @property
    def regime(self) -> Regime:
        return Regime.VOLUME_NON_BARRIER


@dataclass(frozen=True)
class AirtightMaterial:
    id: str
    name: str
    note: str = ""

    @property
    def regime(self) -> Regime:
        return Regime.AIRTIGHT


MaterialRecord = Union[AreaBarrierMaterial, VolumeNonBarrierMaterial, AirtightMaterial]


def _positive(value, key: str, material_id: str) -> float:
    if value is None:
        raise MalformedMaterial(f"Material '{material_id}' is missing '{key}'")
    try:
        value = float(value)
    except (TypeError, ValueError) as exc:
        raise MalformedMaterial(f"Material '{material_id}': '{key}' is not numeric ({value!r})") from exc
    if not value > 0.0:
        raise MalformedMaterial(f"Material '{material_id}': '{key}' must be positive, got {value}")
    return value


def validate_record(record: MaterialRecord) -> MaterialRecord:
    """Check that a record carries the coefficients its regime requires."""
    if not record.id:
        raise MalformedMaterial(f"Material record without id: {record!r}")
    if isinstance(record, AreaBarrierMaterial):
        _positive(record.rate_area_40, "rate_area_40", record.id)
        _positive(record.rate_area_80, "rate_area_80", record.id)
    elif isinstance(record, VolumeNonBarrierMaterial):
        _positive(record.rate_vol_40, "rate_vol_40", record.id)
    elif not isinstance(record, AirtightMaterial):
        raise MalformedMaterial(f"Not a material record: {record!r}")
    return record


def record_from_dict(raw: dict) -> MaterialRecord:
    """Build the regime variant described by a plain reference-table entry."""
    material_id = raw.get("id")
    if not material_id:
        raise MalformedMaterial(f"Material entry without id: {raw!r}")
    name = raw.get("name") or material_id
    note = raw.get("note", "")

    try:
        regime = Regime(raw.get("regime"))
    except ValueError as exc:
        raise MalformedMaterial(
            f"Material '{material_id}' has unknown regime {raw.get('regime')!r}"
        ) from exc

    if regime is Regime.AREA_BARRIER:
        return AreaBarrierMaterial(
            id=material_id,
            name=name,
            rate_area_40=_positive(raw.get("rate_area_40"), "rate_area_40", material_id),
            rate_area_80=_positive(raw.get("rate_area_80"), "rate_area_80", material_id),
            note=note,
        )
    if regime is Regime.VOLUME_NON_BARRIER:
        return VolumeNonBarrierMaterial(
            id=material_id,
            name=name,
            rate_vol_40=_positive(raw.get("rate_vol_40"), "rate_vol_40", material_id),
            note=note,
        )
    return AirtightMaterial(id=material_id, name=name, note=note)


# Coefficients are the midpoints of the quoted literature ranges.
REFERENCE_MATERIALS: Tuple[dict, ...] = (
    {
        "id": "pex-pert-evoh-3",
        "name": "PEX/PE-RT, 3-layer (thin EVOH)",
        "regime": "barrier-area",
        "rate_area_40": 0.20,
        "rate_area_80": 2.0,
        "note": "0.10–0.30 @40 °C, 1.0–3.0 @80 °C",
    },
    {
        "id": "pex-pert-evoh-5",
        "name": "PEX/PE-RT, 5-layer (reinforced EVOH)",
        "regime": "barrier-area",
        "rate_area_40": 0.06,
        "rate_area_80": 0.7,
        "note": "0.02–0.10 @40 °C, 0.2–1.2 @80 °C",
    },
    {"id": "pex-a", "name": "PEX-a (no barrier)", "regime": "nonbarrier-vol", "rate_vol_40": 5, "note": "3–7"},
    {"id": "pex-b", "name": "PEX-b (no barrier)", "regime": "nonbarrier-vol", "rate_vol_40": 5, "note": "3–7"},
    {"id": "pex-c", "name": "PEX-c (no barrier)", "regime": "nonbarrier-vol", "rate_vol_40": 5, "note": "3–7"},
    {"id": "pert-i", "name": "PE-RT I (no barrier)", "regime": "nonbarrier-vol", "rate_vol_40": 6, "note": "4–8"},
    {"id": "pert-ii", "name": "PE-RT II (no barrier)", "regime": "nonbarrier-vol", "rate_vol_40": 6, "note": "4–8"},
    {"id": "ppr", "name": "PP-R (no barrier)", "regime": "nonbarrier-vol", "rate_vol_40": 0.8, "note": "0.3–1.2"},
    {"id": "hdpe", "name": "HDPE (no barrier)", "regime": "nonbarrier-vol", "rate_vol_40": 7, "note": "4–10"},
    {"id": "mlc", "name": "PEX-AL-PEX / MLC (aluminium layer)", "regime": "airtight"},
    {"id": "metal", "name": "Metal (steel/copper)", "regime": "airtight"},
)


def normalize_id(material_id: str) -> str:
    return material_id.strip().replace(" ", "-").replace("_", "-").lower()


class MaterialCatalog:
    """Immutable, ordered lookup over validated material records."""

    def __init__(self, records: Iterable[MaterialRecord]):
        ordered = tuple(validate_record(r) for r in records)
        if not ordered:
            raise MalformedMaterial("Material catalog must not be empty")

        by_id: Dict[str, MaterialRecord] = {}
        for record in ordered:
            if record.id in by_id:
                raise MalformedMaterial(f"Duplicate material id '{record.id}'")
            by_id[record.id] = record

        by_normalized: Dict[str, MaterialRecord] = {}
        for record in ordered:
            key = normalize_id(record.id)
            if key in by_normalized:
                raise MalformedMaterial(
                    f"Material ids '{by_normalized[key].id}' and '{record.id}' both normalize to '{key}'"
                )
            by_normalized[key] = record

        self._records = ordered
        self._by_id = by_id
        self._by_normalized = by_normalized

    @classmethod
    def from_dicts(cls, entries: Iterable[dict]) -> "MaterialCatalog":
        return cls(record_from_dict(entry) for entry in entries)

    def resolve(self, material_id: str) -> MaterialRecord:
        if isinstance(material_id, str):
            if material_id in self._by_id:
                return self._by_id[material_id]
            normalized = normalize_id(material_id)
            if normalized in self._by_normalized:
                log.debug("Resolved material %r via normalized id %r", material_id, normalized)
                return self._by_normalized[normalized]

        raise UnknownMaterial(material_id, self._by_id)

    def get(self, material_id: str) -> Optional[MaterialRecord]:
        try:
            return self.resolve(material_id)
        except UnknownMaterial:
            return None

    def list(self) -> Tuple[MaterialRecord, ...]:
        return self._records

    def ids(self) -> Tuple[str, ...]:
        return tuple(r.id for r in self._records)

    def __contains__(self, material_id) -> bool:
        return self.get(material_id) is not None

    def __iter__(self) -> Iterator[MaterialRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


DEFAULT_CATALOG = MaterialCatalog.from_dicts(REFERENCE_MATERIALS)
