"""Demographic dimensions, their closed bucket sets, and label lookup tables.

Labels seen in profiles and in legacy server responses come in several
spellings (canonical codes, English synonyms, Japanese labels, prefecture
names).  Everything is funnelled through ``normalize_label`` and the
per-dimension tables below so the aggregator and the normalizer agree on
where a value lands.
"""

import re
import unicodedata
from enum import StrEnum

NO_ANSWER = "no_answer"


class Dimension(StrEnum):
    """A demographic axis along which votes are bucketed."""

    GENDER = "gender"
    AGE_GROUP = "age_group"
    REGION = "region"

    @classmethod
    def parse(cls, value: "str | Dimension") -> "Dimension":
        """Parse a dimension name, accepting ``age`` as an alias of ``age_group``.

        Raises:
            ValueError: If the name is not a known dimension.
        """
        if isinstance(value, Dimension):
            return value
        key = normalize_label(value)
        key = _DIMENSION_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            msg = f"Unknown dimension: {value!r}. Expected one of {[d.value for d in cls]}"
            raise ValueError(msg) from None

    @property
    def buckets(self) -> tuple[str, ...]:
        """Canonical buckets for this dimension, in display order."""
        return BUCKETS[self]

    @property
    def rpc_name(self) -> str:
        """Name of the server-side aggregation procedure for this dimension."""
        return f"fetch_{self.value}_breakdown"


_DIMENSION_ALIASES = {
    "age": "age_group",
    "agegroup": "age_group",
    "sex": "gender",
    "prefecture": "region",
}

GENDER_BUCKETS = ("male", "female", "other", NO_ANSWER)
AGE_GROUP_BUCKETS = ("teens", "twenties", "thirties", "forties", "fifties_plus", NO_ANSWER)
REGION_BUCKETS = (
    "hokkaido",
    "tohoku",
    "kanto",
    "chubu",
    "kinki",
    "chugoku",
    "shikoku",
    "kyushu_okinawa",
    "overseas",
    NO_ANSWER,
)

BUCKETS: dict[Dimension, tuple[str, ...]] = {
    Dimension.GENDER: GENDER_BUCKETS,
    Dimension.AGE_GROUP: AGE_GROUP_BUCKETS,
    Dimension.REGION: REGION_BUCKETS,
}

# Legacy field name for the no-answer bucket in older procedures
LEGACY_NO_ANSWER = "prefer_not"

_SEPARATORS = re.compile(r"[\s\-/・･]+")


def normalize_label(label: str) -> str:
    """Fold a free-form label into a lookup key.

    Applies NFKC (full-width → half-width), trims, lowercases and turns
    runs of spaces, hyphens, slashes and middle dots into ``_``.
    """
    folded = unicodedata.normalize("NFKC", label).strip().lower()
    return _SEPARATORS.sub("_", folded)


def compact_key(key: str) -> str:
    """Reduce a field name to lowercase alphanumerics (``noAnswer`` → ``noanswer``)."""
    return re.sub(r"[^0-9a-z]", "", key.lower())


# Labels meaning "did not answer" in every dimension
_NO_ANSWER_LABELS = {
    NO_ANSWER,
    "noanswer",
    LEGACY_NO_ANSWER,
    "prefer_not_to_say",
    "prefer_not_to_answer",
    "unset",
    "unknown",
    "none",
    "null",
    "n_a",
    "na",
    "未回答",
    "無回答",
    "回答しない",
    "不明",
    "未選択",
    "未設定",
}

_GENDER_LABELS = {
    "male": "male",
    "m": "male",
    "man": "male",
    "men": "male",
    "男性": "male",
    "男": "male",
    "female": "female",
    "f": "female",
    "woman": "female",
    "women": "female",
    "女性": "female",
    "女": "female",
    "other": "other",
    "non_binary": "other",
    "nonbinary": "other",
    "x": "other",
    "その他": "other",
}

_AGE_GROUP_LABELS = {
    "teens": "teens",
    "teen": "teens",
    "10s": "teens",
    "10代": "teens",
    "twenties": "twenties",
    "20s": "twenties",
    "20代": "twenties",
    "thirties": "thirties",
    "30s": "thirties",
    "30代": "thirties",
    "forties": "forties",
    "40s": "forties",
    "40代": "forties",
    "fifties_plus": "fifties_plus",
    "fiftiesplus": "fifties_plus",
    "fifties": "fifties_plus",
    "50s": "fifties_plus",
    "50+": "fifties_plus",
    "50s_plus": "fifties_plus",
    "over_50": "fifties_plus",
    "50代": "fifties_plus",
    "50代以上": "fifties_plus",
    "60代": "fifties_plus",
    "60代以上": "fifties_plus",
    "70代": "fifties_plus",
    "70代以上": "fifties_plus",
}

# Prefecture code → (name, region)
PREFECTURES: dict[int, tuple[str, str]] = {
    1: ("北海道", "hokkaido"),
    2: ("青森県", "tohoku"),
    3: ("岩手県", "tohoku"),
    4: ("宮城県", "tohoku"),
    5: ("秋田県", "tohoku"),
    6: ("山形県", "tohoku"),
    7: ("福島県", "tohoku"),
    8: ("茨城県", "kanto"),
    9: ("栃木県", "kanto"),
    10: ("群馬県", "kanto"),
    11: ("埼玉県", "kanto"),
    12: ("千葉県", "kanto"),
    13: ("東京都", "kanto"),
    14: ("神奈川県", "kanto"),
    15: ("新潟県", "chubu"),
    16: ("富山県", "chubu"),
    17: ("石川県", "chubu"),
    18: ("福井県", "chubu"),
    19: ("山梨県", "chubu"),
    20: ("長野県", "chubu"),
    21: ("岐阜県", "chubu"),
    22: ("静岡県", "chubu"),
    23: ("愛知県", "chubu"),
    24: ("三重県", "kinki"),
    25: ("滋賀県", "kinki"),
    26: ("京都府", "kinki"),
    27: ("大阪府", "kinki"),
    28: ("兵庫県", "kinki"),
    29: ("奈良県", "kinki"),
    30: ("和歌山県", "kinki"),
    31: ("鳥取県", "chugoku"),
    32: ("島根県", "chugoku"),
    33: ("岡山県", "chugoku"),
    34: ("広島県", "chugoku"),
    35: ("山口県", "chugoku"),
    36: ("徳島県", "shikoku"),
    37: ("香川県", "shikoku"),
    38: ("愛媛県", "shikoku"),
    39: ("高知県", "shikoku"),
    40: ("福岡県", "kyushu_okinawa"),
    41: ("佐賀県", "kyushu_okinawa"),
    42: ("長崎県", "kyushu_okinawa"),
    43: ("熊本県", "kyushu_okinawa"),
    44: ("大分県", "kyushu_okinawa"),
    45: ("宮崎県", "kyushu_okinawa"),
    46: ("鹿児島県", "kyushu_okinawa"),
    47: ("沖縄県", "kyushu_okinawa"),
}

_REGION_LABELS = {
    "hokkaido": "hokkaido",
    "tohoku": "tohoku",
    "東北": "tohoku",
    "kanto": "kanto",
    "関東": "kanto",
    "首都圏": "kanto",
    "chubu": "chubu",
    "中部": "chubu",
    "北陸": "chubu",
    "甲信越": "chubu",
    "東海": "chubu",
    "kinki": "kinki",
    "kansai": "kinki",
    "近畿": "kinki",
    "関西": "kinki",
    "chugoku": "chugoku",
    "中国": "chugoku",
    "山陰": "chugoku",
    "山陽": "chugoku",
    "shikoku": "shikoku",
    "四国": "shikoku",
    "kyushu_okinawa": "kyushu_okinawa",
    "kyushuokinawa": "kyushu_okinawa",
    "kyushu": "kyushu_okinawa",
    "okinawa": "kyushu_okinawa",
    "九州": "kyushu_okinawa",
    "沖縄": "kyushu_okinawa",
    "九州_沖縄": "kyushu_okinawa",
    "九州沖縄": "kyushu_okinawa",
    "overseas": "overseas",
    "abroad": "overseas",
    "foreign": "overseas",
    "海外": "overseas",
    "国外": "overseas",
}

for _name, _region in PREFECTURES.values():
    _REGION_LABELS[_name] = _region
    # Accept names without the 都/府/県 suffix (東京, 大阪, 神奈川)
    if _name[-1] in "都府県":
        _REGION_LABELS[_name[:-1]] = _region

_LABELS: dict[Dimension, dict[str, str]] = {
    Dimension.GENDER: _GENDER_LABELS,
    Dimension.AGE_GROUP: _AGE_GROUP_LABELS,
    Dimension.REGION: _REGION_LABELS,
}


def bucket_for_label(dimension: Dimension, label: str | None) -> str | None:
    """Map a free-form label onto a canonical bucket.

    Blank or null labels land in ``no_answer``.

    Returns:
        The bucket name, or None when the label is not recognized.
    """
    if label is None:
        return NO_ANSWER
    key = normalize_label(str(label))
    if not key or key in _NO_ANSWER_LABELS:
        return NO_ANSWER
    if key in BUCKETS[dimension]:
        return key
    return _LABELS[dimension].get(key)


def age_group_for_age(age: int | None) -> str:
    """Bucket a numeric age (10–19 teens … 50+ fifties_plus)."""
    if age is None or age < 10:
        return NO_ANSWER
    if age >= 50:
        return "fifties_plus"
    return AGE_GROUP_BUCKETS[age // 10 - 1]


def region_for_prefecture(value: str | int | None) -> str:
    """Resolve a prefecture code (1–47, ``"13"``, ``"JP-13"``) or name to a region."""
    if value is None:
        return NO_ANSWER
    raw = str(value).strip()
    if raw.upper().startswith("JP-"):
        raw = raw[3:]
    if raw.isdigit():
        entry = PREFECTURES.get(int(raw))
        return entry[1] if entry else NO_ANSWER
    return bucket_for_label(Dimension.REGION, raw) or NO_ANSWER
