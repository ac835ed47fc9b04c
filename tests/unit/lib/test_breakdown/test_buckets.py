"""Unit tests for dimensions, bucket sets and label lookup."""

import pytest

from poll_results.lib.breakdown.buckets import (
    NO_ANSWER,
    PREFECTURES,
    Dimension,
    age_group_for_age,
    bucket_for_label,
    compact_key,
    normalize_label,
    region_for_prefecture,
)


class TestDimension:
    """Tests for Dimension parsing and metadata."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("gender", Dimension.GENDER),
            ("age_group", Dimension.AGE_GROUP),
            ("age", Dimension.AGE_GROUP),
            ("Age-Group", Dimension.AGE_GROUP),
            ("REGION", Dimension.REGION),
            ("prefecture", Dimension.REGION),
        ],
    )
    def test_parse(self, raw, expected):
        assert Dimension.parse(raw) is expected

    def test_parse_passthrough(self):
        assert Dimension.parse(Dimension.REGION) is Dimension.REGION

    def test_parse_unknown(self):
        with pytest.raises(ValueError, match="Unknown dimension"):
            Dimension.parse("income")

    def test_buckets_end_with_no_answer(self):
        for dimension in Dimension:
            assert dimension.buckets[-1] == NO_ANSWER

    def test_gender_buckets(self):
        assert Dimension.GENDER.buckets == ("male", "female", "other", NO_ANSWER)

    def test_age_group_buckets(self):
        assert Dimension.AGE_GROUP.buckets == (
            "teens",
            "twenties",
            "thirties",
            "forties",
            "fifties_plus",
            NO_ANSWER,
        )

    def test_region_bucket_count(self):
        assert len(Dimension.REGION.buckets) == 10
        assert "overseas" in Dimension.REGION.buckets

    def test_rpc_name(self):
        assert Dimension.GENDER.rpc_name == "fetch_gender_breakdown"
        assert Dimension.AGE_GROUP.rpc_name == "fetch_age_group_breakdown"
        assert Dimension.REGION.rpc_name == "fetch_region_breakdown"


class TestNormalizeLabel:
    """Tests for label folding helpers."""

    def test_fullwidth_and_case(self):
        assert normalize_label("  ＭＡＬＥ ") == "male"

    def test_separators(self):
        assert normalize_label("Prefer not to say") == "prefer_not_to_say"
        assert normalize_label("kyushu-okinawa") == "kyushu_okinawa"
        assert normalize_label("九州・沖縄") == "九州_沖縄"

    def test_compact_key(self):
        assert compact_key("noAnswer") == "noanswer"
        assert compact_key("Option_ID") == "optionid"


class TestBucketForLabel:
    """Tests for bucket_for_label()."""

    @pytest.mark.parametrize("label", [None, "", "   ", "unknown", "prefer_not", "未回答", "N/A"])
    def test_no_answer_synonyms(self, label):
        assert bucket_for_label(Dimension.GENDER, label) == NO_ANSWER

    @pytest.mark.parametrize(
        ("label", "expected"),
        [("male", "male"), ("Female", "female"), ("男性", "male"), ("女性", "female"), ("その他", "other")],
    )
    def test_gender(self, label, expected):
        assert bucket_for_label(Dimension.GENDER, label) == expected

    @pytest.mark.parametrize(
        ("label", "expected"),
        [("10代", "teens"), ("20s", "twenties"), ("50代以上", "fifties_plus"), ("fifties_plus", "fifties_plus")],
    )
    def test_age_group(self, label, expected):
        assert bucket_for_label(Dimension.AGE_GROUP, label) == expected

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("関東", "kanto"),
            ("東京都", "kanto"),
            ("東京", "kanto"),
            ("大阪府", "kinki"),
            ("kansai", "kinki"),
            ("北海道", "hokkaido"),
            ("沖縄県", "kyushu_okinawa"),
            ("海外", "overseas"),
        ],
    )
    def test_region(self, label, expected):
        assert bucket_for_label(Dimension.REGION, label) == expected

    def test_unrecognized_returns_none(self):
        assert bucket_for_label(Dimension.GENDER, "martian") is None
        assert bucket_for_label(Dimension.REGION, "atlantis") is None

    def test_bucket_of_other_dimension_not_accepted(self):
        assert bucket_for_label(Dimension.GENDER, "kanto") is None


class TestDerivedBuckets:
    """Tests for age and prefecture derivation."""

    @pytest.mark.parametrize(
        ("age", "expected"),
        [(None, NO_ANSWER), (9, NO_ANSWER), (10, "teens"), (19, "teens"), (20, "twenties"), (49, "forties"),
         (50, "fifties_plus"), (88, "fifties_plus")],
    )
    def test_age_group_for_age(self, age, expected):
        assert age_group_for_age(age) == expected

    def test_prefecture_table_complete(self):
        assert sorted(PREFECTURES) == list(range(1, 48))

    @pytest.mark.parametrize(
        ("value", "expected"),
        [(13, "kanto"), ("13", "kanto"), ("JP-27", "kinki"), ("1", "hokkaido"), ("愛知県", "chubu"),
         (99, NO_ANSWER), (None, NO_ANSWER), ("nowhere", NO_ANSWER)],
    )
    def test_region_for_prefecture(self, value, expected):
        assert region_for_prefecture(value) == expected
