"""Unit tests for the breakdown and results CLI commands."""

from __future__ import annotations

import json
from collections.abc import Iterator
from unittest.mock import AsyncMock, patch

import pytest
from typer.testing import CliRunner

from poll_results.cli.app import app
from poll_results.lib.breakdown import Breakdown, BreakdownRow, Dimension
from poll_results.lib.rest import TransportError
from poll_results.schemas.poll import VoteResult

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.setenv("SUPABASE_URL", "https://test-project.supabase.co")
    monkeypatch.setenv("SUPABASE_ANON_KEY", "test-anon-key")
    monkeypatch.setenv("SERVER_BREAKDOWN_DIMENSIONS", "gender,age_group")
    with patch("poll_results.cli.app.setup_logging"):
        yield


def _gender_breakdown() -> Breakdown:
    return Breakdown(
        dimension=Dimension.GENDER,
        rows={
            "A": BreakdownRow(
                option_id="A",
                dimension=Dimension.GENDER,
                counts={"male": 1, "female": 1, "no_answer": 1},
            ),
            "B": BreakdownRow(option_id="B", dimension=Dimension.GENDER, counts={"male": 1}),
        },
    )


class TestBreakdownCommand:
    """Tests for `poll-results breakdown`."""

    def test_table_output(self):
        mock = AsyncMock(return_value=_gender_breakdown())
        with patch("poll_results.services.results_service.fetch_breakdown", mock):
            result = runner.invoke(app, ["breakdown", "--poll-id", "p1"])

        assert result.exit_code == 0, result.output
        assert "option_id\tmale\tfemale\tother\tno_answer\ttotal" in result.output
        assert "A\t1\t1\t0\t1\t3" in result.output
        assert "Total votes: 4" in result.output
        assert mock.await_args.kwargs["use_server"] is True

    def test_json_output(self):
        mock = AsyncMock(return_value=_gender_breakdown())
        with patch("poll_results.services.results_service.fetch_breakdown", mock):
            result = runner.invoke(app, ["breakdown", "--poll-id", "p1", "--json"])

        assert result.exit_code == 0, result.output
        start = result.output.index("[")
        data = json.loads(result.output[start:])
        assert data[1] == {"option_id": "B", "male": 1, "female": 0, "other": 0, "no_answer": 0, "total": 1}

    def test_dimension_without_server_procedure(self):
        mock = AsyncMock(return_value=Breakdown(dimension=Dimension.REGION))
        with patch("poll_results.services.results_service.fetch_breakdown", mock):
            result = runner.invoke(app, ["breakdown", "--poll-id", "p1", "--dimension", "region"])

        assert result.exit_code == 0, result.output
        assert "No votes." in result.output
        assert mock.await_args.kwargs["use_server"] is False

    def test_client_side_flag_and_filters(self):
        mock = AsyncMock(return_value=Breakdown(dimension=Dimension.AGE_GROUP))
        with patch("poll_results.services.results_service.fetch_breakdown", mock):
            result = runner.invoke(
                app,
                ["breakdown", "--poll-id", "p1", "--dimension", "age", "--gender", "女性", "--client-side"],
            )

        assert result.exit_code == 0, result.output
        args = mock.await_args
        assert args.args[2] is Dimension.AGE_GROUP
        assert args.args[3].gender == "female"
        assert args.kwargs["use_server"] is False

    def test_unknown_dimension(self):
        result = runner.invoke(app, ["breakdown", "--poll-id", "p1", "--dimension", "income"])
        assert result.exit_code != 0

    def test_unknown_filter_value(self):
        result = runner.invoke(app, ["breakdown", "--poll-id", "p1", "--gender", "martian"])
        assert result.exit_code != 0

    def test_backend_error(self):
        mock = AsyncMock(side_effect=TransportError("HTTP 500 from POST /rest/v1/rpc/fetch_gender_breakdown"))
        with patch("poll_results.services.results_service.fetch_breakdown", mock):
            result = runner.invoke(app, ["breakdown", "--poll-id", "p1"])

        assert result.exit_code == 1
        assert "Error: Failed to fetch breakdown" in result.output


class TestResultsCommand:
    """Tests for `poll-results results`."""

    def test_counts(self):
        mock = AsyncMock(return_value=[VoteResult(option_id="A", count=3), VoteResult(option_id="B", count=1)])
        with patch("poll_results.services.results_service.fetch_results", mock):
            result = runner.invoke(app, ["results", "--poll-id", "p1", "--age-min", "20", "--age-max", "29"])

        assert result.exit_code == 0, result.output
        assert "A\t3" in result.output
        assert "Total votes: 4" in result.output
        filters = mock.await_args.args[2]
        assert (filters.age_min, filters.age_max) == (20, 29)

    def test_inverted_age_range(self):
        result = runner.invoke(app, ["results", "--poll-id", "p1", "--age-min", "40", "--age-max", "20"])
        assert result.exit_code != 0
