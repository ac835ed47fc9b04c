"""Records shared by the breakdown fetcher, resolver, aggregator and normalizer."""

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict

from poll_results.lib.breakdown.buckets import (
    NO_ANSWER,
    Dimension,
    age_group_for_age,
    bucket_for_label,
    region_for_prefecture,
)


class VoteRow(BaseModel):
    """One vote as returned by the votes table."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True)

    option_id: str
    user_id: str | None = None


class ProfileRow(BaseModel):
    """One profile row; every demographic column is optional."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    user_id: str
    gender: str | None = None
    age_group: str | None = None
    region: str | None = None
    age: int | None = None
    prefecture_code: str | None = None


@dataclass(frozen=True)
class ProfileAttributes:
    """Demographic attributes of one voter, already mapped onto buckets."""

    gender: str = NO_ANSWER
    age_group: str = NO_ANSWER
    region: str = NO_ANSWER
    age: int | None = None

    @classmethod
    def from_row(cls, row: ProfileRow) -> "ProfileAttributes":
        """Map a raw profile row onto canonical buckets.

        Unrecognized values fall into ``no_answer``.  A missing age group is
        derived from the numeric age, a missing region from the prefecture.
        """
        age_group = bucket_for_label(Dimension.AGE_GROUP, row.age_group)
        if age_group in (None, NO_ANSWER) and row.age is not None:
            age_group = age_group_for_age(row.age)

        region = bucket_for_label(Dimension.REGION, row.region)
        if region in (None, NO_ANSWER) and row.prefecture_code is not None:
            region = region_for_prefecture(row.prefecture_code)

        return cls(
            gender=bucket_for_label(Dimension.GENDER, row.gender) or NO_ANSWER,
            age_group=age_group or NO_ANSWER,
            region=region or NO_ANSWER,
            age=row.age,
        )

    def bucket(self, dimension: Dimension) -> str:
        """Return the bucket this voter falls into for a dimension."""
        return getattr(self, dimension.value)


@dataclass(frozen=True)
class BreakdownFilter:
    """Predicates restricting which voters are counted.

    Attribute filters take bucket names or any recognized label
    (``"女性"`` is accepted for ``female``).  ``age_min``/``age_max`` are
    inclusive and only match voters whose numeric age is known.
    """

    gender: str | None = None
    age_group: str | None = None
    region: str | None = None
    age_min: int | None = None
    age_max: int | None = None

    def __post_init__(self) -> None:
        for dimension in Dimension:
            raw = getattr(self, dimension.value)
            if raw is None:
                continue
            bucket = bucket_for_label(dimension, raw)
            if bucket is None:
                msg = f"Unknown {dimension.value} filter value: {raw!r}"
                raise ValueError(msg)
            object.__setattr__(self, dimension.value, bucket)
        if self.age_min is not None and self.age_max is not None and self.age_min > self.age_max:
            msg = f"age_min ({self.age_min}) must not exceed age_max ({self.age_max})"
            raise ValueError(msg)

    @property
    def is_empty(self) -> bool:
        """Whether no predicate is set."""
        return all(
            v is None for v in (self.gender, self.age_group, self.region, self.age_min, self.age_max)
        )

    def matches(self, attributes: ProfileAttributes | None) -> bool:
        """Check a voter's attributes; a voter without a profile is all ``no_answer``."""
        attrs = attributes or ProfileAttributes()
        for dimension in Dimension:
            wanted = getattr(self, dimension.value)
            if wanted is not None and attrs.bucket(dimension) != wanted:
                return False
        if self.age_min is not None or self.age_max is not None:
            if attrs.age is None:
                return False
            if self.age_min is not None and attrs.age < self.age_min:
                return False
            if self.age_max is not None and attrs.age > self.age_max:
                return False
        return True


@dataclass
class BreakdownRow:
    """Per-bucket vote counts for one option.

    ``total`` is always derived from the bucket counts.
    """

    option_id: str
    dimension: Dimension
    counts: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        unknown = set(self.counts) - set(self.dimension.buckets)
        if unknown:
            msg = f"Unknown {self.dimension.value} buckets: {sorted(unknown)}"
            raise ValueError(msg)
        self.counts = {b: int(self.counts.get(b, 0)) for b in self.dimension.buckets}

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def add(self, bucket: str, amount: int = 1) -> None:
        """Increment one bucket."""
        if bucket not in self.counts:
            msg = f"Unknown {self.dimension.value} bucket: {bucket!r}"
            raise ValueError(msg)
        self.counts[bucket] += amount

    def as_dict(self) -> dict[str, str | int]:
        """Flat wide-format representation including ``total``."""
        return {"option_id": self.option_id, **self.counts, "total": self.total}


@dataclass
class Breakdown:
    """Breakdown rows for one poll along one dimension, keyed by option id.

    Options with no counted votes may be absent; ``row()`` returns a zero
    row for them.
    """

    dimension: Dimension
    rows: dict[str, BreakdownRow] = field(default_factory=dict)

    def row(self, option_id: str) -> BreakdownRow:
        """Return the row for an option, or a zero row if it has none."""
        existing = self.rows.get(option_id)
        if existing is not None:
            return existing
        return BreakdownRow(option_id=option_id, dimension=self.dimension)

    @property
    def total_votes(self) -> int:
        return sum(r.total for r in self.rows.values())

    def to_dicts(self) -> list[dict[str, str | int]]:
        """Rows as flat dicts, in insertion order."""
        return [r.as_dict() for r in self.rows.values()]

    def __len__(self) -> int:
        return len(self.rows)
