"""Response-shape normalizer for server-side breakdown procedures.

The breakdown procedures changed shape over time.  Each historical shape
has an adapter below; adapters are tried in a fixed order and the first
one that accepts the whole payload wins:

1. ``canonical``: wide rows with the current bucket names.
2. ``legacy_prefer_not``: wide rows naming the no-answer bucket ``prefer_not``.
3. ``loose``: wide rows with alternate key casing and null counts.
4. ``long``: one row per (option, label) with a count column.

Field names are snake_case to match the database columns.
"""

from collections.abc import Callable
from typing import Annotated, Any

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, ValidationInfo, model_validator

from poll_results.lib.breakdown.buckets import (
    LEGACY_NO_ANSWER,
    NO_ANSWER,
    Dimension,
    bucket_for_label,
    compact_key,
    region_for_prefecture,
)
from poll_results.lib.breakdown.types import Breakdown, BreakdownRow
from poll_results.lib.rest import DecodeError

Count = Annotated[int, Field(ge=0)]

# ---------------------------------------------------------------------------
# Schema 1 and 2: strict wide rows
# ---------------------------------------------------------------------------


class _WideRow(BaseModel):
    """Strict wide row: exact field names, non-null integer counts."""

    model_config = ConfigDict(extra="forbid", strict=True)

    option_id: str
    # Some procedures also return a precomputed total; it is recomputed
    total: int | None = None

    def bucket_counts(self) -> dict[str, int]:
        counts = self.model_dump(exclude={"option_id", "total"})
        if LEGACY_NO_ANSWER in counts:
            counts[NO_ANSWER] = counts.pop(LEGACY_NO_ANSWER)
        return counts


class GenderRow(_WideRow):
    male: Count = 0
    female: Count = 0
    other: Count = 0
    no_answer: Count = 0


class LegacyGenderRow(_WideRow):
    male: Count = 0
    female: Count = 0
    other: Count = 0
    prefer_not: Count = 0


class AgeGroupRow(_WideRow):
    teens: Count = 0
    twenties: Count = 0
    thirties: Count = 0
    forties: Count = 0
    fifties_plus: Count = 0
    no_answer: Count = 0


class LegacyAgeGroupRow(_WideRow):
    teens: Count = 0
    twenties: Count = 0
    thirties: Count = 0
    forties: Count = 0
    fifties_plus: Count = 0
    prefer_not: Count = 0


class RegionRow(_WideRow):
    hokkaido: Count = 0
    tohoku: Count = 0
    kanto: Count = 0
    chubu: Count = 0
    kinki: Count = 0
    chugoku: Count = 0
    shikoku: Count = 0
    kyushu_okinawa: Count = 0
    overseas: Count = 0
    no_answer: Count = 0


class LegacyRegionRow(_WideRow):
    hokkaido: Count = 0
    tohoku: Count = 0
    kanto: Count = 0
    chubu: Count = 0
    kinki: Count = 0
    chugoku: Count = 0
    shikoku: Count = 0
    kyushu_okinawa: Count = 0
    overseas: Count = 0
    prefer_not: Count = 0


_CANONICAL_ROWS: dict[Dimension, TypeAdapter] = {
    Dimension.GENDER: TypeAdapter(list[GenderRow]),
    Dimension.AGE_GROUP: TypeAdapter(list[AgeGroupRow]),
    Dimension.REGION: TypeAdapter(list[RegionRow]),
}

_LEGACY_ROWS: dict[Dimension, TypeAdapter] = {
    Dimension.GENDER: TypeAdapter(list[LegacyGenderRow]),
    Dimension.AGE_GROUP: TypeAdapter(list[LegacyAgeGroupRow]),
    Dimension.REGION: TypeAdapter(list[LegacyRegionRow]),
}

# ---------------------------------------------------------------------------
# Schema 3 and 4: tolerant rows
# ---------------------------------------------------------------------------

# Compacted id keys, most specific first
_ID_KEYS = ("optionid", "option", "id")
_COUNT_KEYS = ("votes", "count", "cnt", "n")
_LABEL_KEYS: dict[Dimension, tuple[str, ...]] = {
    Dimension.GENDER: ("gender", "sex"),
    Dimension.AGE_GROUP: ("agegroup", "ageband", "age"),
    Dimension.REGION: ("region", "area", "prefecture"),
}
_GENERIC_LABEL_KEYS = ("label", "category", "bucket")


def _coerce_count(value: Any) -> int:
    """Coerce a loosely-typed count; null becomes 0."""
    if value is None:
        return 0
    if isinstance(value, bool):
        msg = "boolean is not a count"
        raise ValueError(msg)
    if isinstance(value, float):
        if not value.is_integer():
            msg = f"non-integral count {value!r}"
            raise ValueError(msg)
        value = int(value)
    elif isinstance(value, str):
        value = int(value.strip())
    if not isinstance(value, int) or value < 0:
        msg = f"invalid count {value!r}"
        raise ValueError(msg)
    return value


def _compact_fields(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        msg = f"expected an object, got {type(data).__name__}"
        raise ValueError(msg)
    return {compact_key(str(k)): v for k, v in data.items()}


def _pick(fields: dict[str, Any], keys: tuple[str, ...]) -> tuple[bool, Any]:
    for key in keys:
        if key in fields:
            return True, fields[key]
    return False, None


def _option_id(fields: dict[str, Any]) -> str:
    found, value = _pick(fields, _ID_KEYS)
    if not found or value is None or str(value) == "":
        msg = "missing option identifier"
        raise ValueError(msg)
    return str(value)


def _dimension(info: ValidationInfo) -> Dimension:
    if not info.context or "dimension" not in info.context:
        msg = "validation context must provide a dimension"
        raise ValueError(msg)
    return info.context["dimension"]


class LooseWideRow(BaseModel):
    """Wide row tolerant of key casing, null counts and numeric strings.

    At least one recognized bucket field must be present.
    """

    option_id: str
    counts: dict[str, int]

    @model_validator(mode="before")
    @classmethod
    def _collect(cls, data: Any, info: ValidationInfo) -> Any:
        dimension = _dimension(info)
        fields = _compact_fields(data)
        lookup = {compact_key(b): b for b in dimension.buckets}
        lookup[compact_key(LEGACY_NO_ANSWER)] = NO_ANSWER

        counts: dict[str, int] = {}
        for key, value in fields.items():
            bucket = lookup.get(key)
            if bucket is not None:
                counts[bucket] = counts.get(bucket, 0) + _coerce_count(value)
        if not counts:
            msg = f"no {dimension.value} bucket fields"
            raise ValueError(msg)
        return {"option_id": _option_id(fields), "counts": counts}


class LongRow(BaseModel):
    """Long-format row: one (option, label, count) triple."""

    option_id: str
    label: str | None
    votes: int

    @model_validator(mode="before")
    @classmethod
    def _collect(cls, data: Any, info: ValidationInfo) -> Any:
        dimension = _dimension(info)
        fields = _compact_fields(data)
        has_label, label = _pick(fields, _LABEL_KEYS[dimension] + _GENERIC_LABEL_KEYS)
        if not has_label:
            msg = f"missing {dimension.value} label field"
            raise ValueError(msg)
        has_count, count = _pick(fields, _COUNT_KEYS)
        if not has_count:
            msg = "missing count field"
            raise ValueError(msg)
        return {
            "option_id": _option_id(fields),
            "label": None if label is None else str(label),
            "votes": _coerce_count(count),
        }


_LOOSE_ROWS = TypeAdapter(list[LooseWideRow])
_LONG_ROWS = TypeAdapter(list[LongRow])

# ---------------------------------------------------------------------------
# Adapters
# ---------------------------------------------------------------------------

Adapter = Callable[[Any, Dimension], Breakdown]


def _merge(dimension: Dimension, entries: list[tuple[str, dict[str, int]]]) -> Breakdown:
    """Sum per-option counts into a Breakdown, keeping first-seen order."""
    breakdown = Breakdown(dimension=dimension)
    for option_id, counts in entries:
        row = breakdown.rows.get(option_id)
        if row is None:
            row = BreakdownRow(option_id=option_id, dimension=dimension)
            breakdown.rows[option_id] = row
        for bucket, amount in counts.items():
            row.add(bucket, amount)
    return breakdown


def decode_canonical(payload: Any, dimension: Dimension) -> Breakdown:
    """Schema 1: current wide rows."""
    rows = _CANONICAL_ROWS[dimension].validate_python(payload)
    return _merge(dimension, [(r.option_id, r.bucket_counts()) for r in rows])


def decode_legacy_prefer_not(payload: Any, dimension: Dimension) -> Breakdown:
    """Schema 2: wide rows with ``prefer_not`` as the no-answer bucket."""
    rows = _LEGACY_ROWS[dimension].validate_python(payload)
    return _merge(dimension, [(r.option_id, r.bucket_counts()) for r in rows])


def decode_loose(payload: Any, dimension: Dimension) -> Breakdown:
    """Schema 3: wide rows with alternate casing and nullable counts."""
    rows = _LOOSE_ROWS.validate_python(payload, context={"dimension": dimension})
    return _merge(dimension, [(r.option_id, r.counts) for r in rows])


def decode_long(payload: Any, dimension: Dimension) -> Breakdown:
    """Schema 4: long rows aggregated through the label lookup table.

    Region labels that are prefecture codes (``13``, ``"JP-13"``) or names
    resolve to their region.  Unrecognized labels are dropped and logged.
    """
    rows = _LONG_ROWS.validate_python(payload, context={"dimension": dimension})
    entries: list[tuple[str, dict[str, int]]] = []
    for row in rows:
        bucket = bucket_for_label(dimension, row.label)
        if bucket is None and dimension is Dimension.REGION:
            bucket = region_for_prefecture(row.label)
            if bucket == NO_ANSWER:
                bucket = None
        if bucket is None:
            logger.warning(
                "Dropping {} vote(s) for option {}: unrecognized {} label {!r}",
                row.votes,
                row.option_id,
                dimension.value,
                row.label,
            )
            # Keep the option visible even if all its labels were dropped
            entries.append((row.option_id, {}))
            continue
        entries.append((row.option_id, {bucket: row.votes}))
    return _merge(dimension, entries)


SCHEMA_ADAPTERS: tuple[tuple[str, Adapter], ...] = (
    ("canonical", decode_canonical),
    ("legacy_prefer_not", decode_legacy_prefer_not),
    ("loose", decode_loose),
    ("long", decode_long),
)


def normalize_breakdown(payload: Any, dimension: Dimension | str) -> Breakdown:
    """Normalize a server breakdown response into a canonical Breakdown.

    Args:
        payload: Decoded JSON body of a breakdown procedure.
        dimension: Dimension the procedure aggregates over.

    Returns:
        Breakdown with every bucket present on every row.

    Raises:
        DecodeError: If no known schema accepts the payload.
    """
    dim = Dimension.parse(dimension)
    if not isinstance(payload, list):
        msg = f"Expected a list of {dim.value} breakdown rows, got {type(payload).__name__}"
        logger.error(msg)
        raise DecodeError(msg)

    for name, adapter in SCHEMA_ADAPTERS:
        try:
            breakdown = adapter(payload, dim)
        except (ValidationError, ValueError, TypeError) as exc:
            logger.debug("{} breakdown did not match schema {}: {}", dim.value, name, exc)
            continue
        logger.debug("{} breakdown decoded with schema {} ({} rows)", dim.value, name, len(breakdown))
        return breakdown

    msg = f"Unrecognized {dim.value} breakdown response shape"
    logger.error(msg)
    raise DecodeError(msg)
