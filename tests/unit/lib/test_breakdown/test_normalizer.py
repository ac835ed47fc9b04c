"""Unit tests for the breakdown response-shape normalizer."""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from poll_results.lib.breakdown import SCHEMA_ADAPTERS, Dimension, normalize_breakdown
from poll_results.lib.breakdown.normalizer import (
    decode_canonical,
    decode_legacy_prefer_not,
    decode_long,
    decode_loose,
)
from poll_results.lib.rest import DecodeError


def _zero(dimension: Dimension) -> dict[str, int]:
    return dict.fromkeys(dimension.buckets, 0)


class TestSchemaOrder:
    def test_adapter_order(self):
        assert [name for name, _ in SCHEMA_ADAPTERS] == ["canonical", "legacy_prefer_not", "loose", "long"]


class TestCanonical:
    """Schema 1: current wide rows."""

    def test_zero_fills_absent_buckets(self):
        result = normalize_breakdown([{"option_id": "A", "male": 2, "female": 1}], Dimension.GENDER)
        assert result.rows["A"].as_dict() == {
            "option_id": "A",
            "male": 2,
            "female": 1,
            "other": 0,
            "no_answer": 0,
            "total": 3,
        }

    def test_idempotent_on_canonical_payload(self):
        payload = [
            {"option_id": "A", "male": 1, "female": 1, "other": 0, "no_answer": 1},
            {"option_id": "B", "male": 1, "female": 0, "other": 0, "no_answer": 0},
        ]
        once = normalize_breakdown(payload, Dimension.GENDER)
        twice = normalize_breakdown(
            [{k: v for k, v in row.items() if k != "total"} for row in once.to_dicts()],
            Dimension.GENDER,
        )
        assert once.to_dicts() == twice.to_dicts()
        assert [{k: v for k, v in row.items() if k != "total"} for row in once.to_dicts()] == payload

    def test_server_total_is_recomputed(self):
        result = normalize_breakdown([{"option_id": "A", "male": 2, "total": 99}], Dimension.GENDER)
        assert result.rows["A"].total == 2

    def test_precedence_over_loose(self):
        payload = [{"option_id": "A", "teens": 3, "no_answer": 1}]
        # The payload is also acceptable to the loose adapter
        assert decode_loose(payload, Dimension.AGE_GROUP).rows["A"].total == 4

        with patch("poll_results.lib.breakdown.normalizer.logger") as mock_logger:
            normalize_breakdown(payload, Dimension.AGE_GROUP)
        decoded_with = [c.args[2] for c in mock_logger.debug.call_args_list if "decoded with" in c.args[0]]
        assert decoded_with == ["canonical"]

    def test_empty_payload(self):
        result = normalize_breakdown([], Dimension.REGION)
        assert len(result) == 0

    def test_rejects_legacy_field(self):
        with pytest.raises(ValidationError):
            decode_canonical([{"option_id": "A", "prefer_not": 1}], Dimension.GENDER)


class TestLegacyPreferNot:
    """Schema 2: prefer_not instead of no_answer."""

    def test_maps_prefer_not(self):
        result = normalize_breakdown(
            [{"option_id": "A", "male": 1, "female": 2, "other": 0, "prefer_not": 4}],
            Dimension.GENDER,
        )
        assert result.rows["A"].counts == {"male": 1, "female": 2, "other": 0, "no_answer": 4}

    def test_direct_adapter(self):
        result = decode_legacy_prefer_not([{"option_id": "A", "teens": 1, "prefer_not": 1}], Dimension.AGE_GROUP)
        assert result.rows["A"].counts[Dimension.AGE_GROUP.buckets[-1]] == 1


class TestLoose:
    """Schema 3: alternate casing and null counts."""

    def test_camel_case_and_nulls(self):
        payload = [{"optionId": "A", "Male": 3, "female": None, "noAnswer": "2"}]
        result = normalize_breakdown(payload, Dimension.GENDER)
        assert result.rows["A"].counts == {"male": 3, "female": 0, "other": 0, "no_answer": 2}
        assert result.rows["A"].total == 5

    def test_numeric_option_id(self):
        result = normalize_breakdown([{"option_id": 12, "kanto": 1}], Dimension.REGION)
        assert result.rows["12"].counts["kanto"] == 1

    def test_fifties_plus_camel_case(self):
        result = normalize_breakdown([{"OptionID": "A", "fiftiesPlus": 2.0}], Dimension.AGE_GROUP)
        assert result.rows["A"].counts["fifties_plus"] == 2

    def test_negative_count_rejected(self):
        with pytest.raises(ValidationError):
            decode_loose([{"optionId": "A", "male": -1}], Dimension.GENDER)

    def test_requires_a_bucket_field(self):
        with pytest.raises(ValidationError):
            decode_loose([{"optionId": "A", "gender": "male", "votes": 1}], Dimension.GENDER)


class TestLong:
    """Schema 4: one row per option and label."""

    def test_region_long_format(self):
        payload = [
            {"option_id": "X", "region": "関東", "votes": 5},
            {"option_id": "X", "region": "unknown", "votes": 2},
        ]
        result = normalize_breakdown(payload, Dimension.REGION)

        expected = _zero(Dimension.REGION) | {"kanto": 5, "no_answer": 2}
        assert result.rows["X"].counts == expected
        assert result.rows["X"].total == 7

    def test_region_long_format_prefecture_codes(self):
        payload = [
            {"option_id": "X", "prefecture": 13, "votes": 3},
            {"option_id": "X", "prefecture": "JP-27", "votes": 2},
            {"option_id": "X", "prefecture": "東京都", "votes": 1},
        ]
        result = normalize_breakdown(payload, "region")

        expected = _zero(Dimension.REGION) | {"kanto": 4, "kinki": 2}
        assert result.rows["X"].counts == expected

    def test_region_long_format_unknown_code_dropped(self):
        result = normalize_breakdown([{"option_id": "X", "prefecture": 99, "votes": 3}], "region")
        assert result.rows["X"].total == 0

    def test_labels_summed_per_option(self):
        payload = [
            {"option_id": "A", "gender": "男性", "count": 2},
            {"option_id": "A", "gender": "male", "count": 1},
            {"option_id": "B", "gender": "女性", "count": 4},
        ]
        result = normalize_breakdown(payload, Dimension.GENDER)
        assert result.rows["A"].counts["male"] == 3
        assert result.rows["B"].counts["female"] == 4

    def test_generic_label_key(self):
        payload = [{"option_id": "A", "label": "20代", "votes": 3}]
        result = normalize_breakdown(payload, Dimension.AGE_GROUP)
        assert result.rows["A"].counts["twenties"] == 3

    def test_unknown_label_dropped_and_logged(self):
        payload = [
            {"option_id": "X", "region": "関東", "votes": 5},
            {"option_id": "X", "region": "Atlantis", "votes": 9},
        ]
        with patch("poll_results.lib.breakdown.normalizer.logger") as mock_logger:
            result = decode_long(payload, Dimension.REGION)

        assert result.rows["X"].total == 5
        mock_logger.warning.assert_called_once()
        assert "Atlantis" in mock_logger.warning.call_args.args

    def test_option_with_only_unknown_labels_kept_as_zero_row(self):
        result = decode_long([{"option_id": "Y", "gender": "martian", "votes": 1}], Dimension.GENDER)
        assert result.rows["Y"].total == 0

    def test_null_label_is_no_answer(self):
        result = decode_long([{"option_id": "Y", "gender": None, "votes": 2}], Dimension.GENDER)
        assert result.rows["Y"].counts["no_answer"] == 2


class TestFailures:
    """Payloads no schema accepts."""

    def test_not_a_list(self):
        with pytest.raises(DecodeError, match="Expected a list"):
            normalize_breakdown({"option_id": "A"}, Dimension.GENDER)

    def test_no_schema_matches(self):
        with pytest.raises(DecodeError, match="Unrecognized gender breakdown"):
            normalize_breakdown([{"foo": "bar"}], Dimension.GENDER)

    def test_string_counts_without_id(self):
        with pytest.raises(DecodeError):
            normalize_breakdown([{"male": "lots"}], Dimension.GENDER)

    def test_unknown_dimension(self):
        with pytest.raises(ValueError, match="Unknown dimension"):
            normalize_breakdown([], "income")
