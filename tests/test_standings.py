"""
Tests for leaderboard ranking, standings assembly and export.
"""

import logging
from datetime import date

import pandas as pd
import pytest

from mealscore.config import ALL_TIME
from mealscore.ledger.store import LedgerStore
from mealscore.points import standings
from mealscore.points.standings import (
    build_standings,
    export_standings,
    rank_leaderboard,
    top_n,
)


@pytest.fixture
def roster():
    return [
        {"id": "a", "name": "A", "active": True},
        {"id": "b", "name": "B", "active": True},
        {"id": "c", "name": "C", "active": True},
    ]


@pytest.fixture
def events():
    return [
        {"id": "e1", "date": "2024-05-01", "points": 3, "attendees": ["a", "b"]},
        {"id": "e2", "date": "2024-06-01", "points": 5, "attendees": ["b", "c"]},
    ]


def summary_frame(rows):
    return pd.DataFrame(rows, columns=["member_id", "name", "total_points", "event_count"])


class TestRankLeaderboard:
    """Tests for rank_leaderboard function."""

    def test_sorted_by_points_descending(self):
        summary = summary_frame([
            ("a", "A", 3, 1),
            ("b", "B", 8, 2),
            ("c", "C", 5, 1),
        ])
        ranked = rank_leaderboard(summary)
        assert ranked["name"].tolist() == ["B", "C", "A"]
        assert ranked["rank"].tolist() == [1, 2, 3]

    def test_ties_get_distinct_positional_ranks(self):
        summary = summary_frame([
            ("x", "Xia", 4, 2),
            ("y", "Yan", 4, 1),
        ])
        ranked = rank_leaderboard(summary)
        assert ranked["rank"].tolist() == [1, 2]

    def test_tie_break_by_name(self):
        summary = summary_frame([
            ("2", "Zoe", 4, 1),
            ("1", "Amy", 4, 1),
        ])
        assert rank_leaderboard(summary)["name"].tolist() == ["Amy", "Zoe"]

    def test_tie_break_ignores_input_order(self):
        rows = [("1", "Amy", 2, 1), ("2", "Ben", 2, 1), ("3", "Cai", 2, 1)]
        forward = rank_leaderboard(summary_frame(rows))
        backward = rank_leaderboard(summary_frame(list(reversed(rows))))
        pd.testing.assert_frame_equal(forward, backward)

    def test_zero_point_members_kept(self):
        summary = summary_frame([
            ("a", "A", 0, 0),
            ("b", "B", 1, 1),
        ])
        ranked = rank_leaderboard(summary)
        assert len(ranked) == 2
        assert ranked.iloc[-1]["member_id"] == "a"

    def test_columns(self):
        ranked = rank_leaderboard(summary_frame([("a", "A", 1, 1)]))
        assert list(ranked.columns) == ["rank", "member_id", "name", "total_points", "event_count"]

    def test_empty(self):
        assert rank_leaderboard(summary_frame([])).empty


class TestTopN:
    """Tests for top_n function."""

    def test_prefix(self, roster, events):
        result = build_standings(roster, events, 2024)
        assert top_n(result["standings"], 2)["name"].tolist() == ["B", "C"]

    def test_n_larger_than_roster(self, roster, events):
        result = build_standings(roster, events, 2024)
        assert len(top_n(result["standings"], 10)) == 3

    def test_negative_rejected(self, roster, events):
        result = build_standings(roster, events, 2024)
        with pytest.raises(ValueError):
            top_n(result["standings"], -1)


class TestBuildStandings:
    """End-to-end aggregation and ranking over one snapshot."""

    def test_example(self, roster, events):
        result = build_standings(roster, events, 2024)
        standings = result["standings"]
        assert standings["name"].tolist() == ["B", "C", "A"]
        assert standings["total_points"].tolist() == [8, 5, 3]
        assert standings["event_count"].tolist() == [2, 1, 1]
        assert standings["rank"].tolist() == [1, 2, 3]

    def test_top_uses_requested_size(self, roster, events):
        result = build_standings(roster, events, 2024, top=2)
        assert result["top"]["name"].tolist() == ["B", "C"]

    def test_years_and_default_selection(self, roster, events):
        events.append({"id": "e3", "date": "2021-01-01", "points": 1, "attendees": ["a"]})
        result = build_standings(roster, events)
        assert result["years"] == [2024, 2021]
        assert result["selected_year"] == 2024

    def test_unknown_year_falls_back(self, roster, events):
        result = build_standings(roster, events, year=1990)
        assert result["selected_year"] == 2024
        assert result["standings"]["total_points"].tolist() == [8, 5, 3]

    def test_empty_history(self, roster):
        result = build_standings(roster, [], today=date(2026, 1, 1))
        assert result["years"] == [2026]
        assert result["selected_year"] == 2026
        assert len(result["standings"]) == 3
        assert (result["standings"]["total_points"] == 0).all()

    def test_all_time(self, roster, events):
        events.append({"id": "e3", "date": "2021-01-01", "points": 10, "attendees": ["a"]})
        result = build_standings(roster, events, year=ALL_TIME)
        assert result["selected_year"] == ALL_TIME
        assert result["standings"]["name"].tolist() == ["A", "B", "C"]


class TestExportStandings:
    """Tests for export_standings function."""

    def test_writes_csv(self, roster, events, tmp_path):
        result = build_standings(roster, events, 2024)
        path = export_standings(result, folder=tmp_path)
        assert path.exists()
        assert path.name.startswith("standings_2024_")
        exported = pd.read_csv(path, dtype={"member_id": str})
        assert exported["name"].tolist() == ["B", "C", "A"]

    def test_replaces_older_export(self, roster, events, tmp_path):
        stale = tmp_path / "standings_2024_20000101.csv"
        stale.write_text("rank,member_id,name,total_points,event_count\n")
        other_window = tmp_path / "standings_2023_20000101.csv"
        other_window.write_text("rank,member_id,name,total_points,event_count\n")

        path = export_standings(build_standings(roster, events, 2024), folder=tmp_path)

        assert path.exists()
        assert not stale.exists()
        assert other_window.exists()


class TestMain:
    """Tests for the standings command-line entry point."""

    @pytest.fixture
    def ledger(self, tmp_path, monkeypatch):
        monkeypatch.setattr(standings, "DATA_FOLDER", tmp_path)
        monkeypatch.setattr(standings, "OUTPUT_FOLDER", tmp_path / "exports")
        store = LedgerStore(tmp_path)
        alice, bob = (store.create_member(name)["id"] for name in ("Alice", "Bob"))
        store.create_event("2023-03-01", "Cafe", [alice], 5)
        store.create_event("2024-05-01", "Diner", [alice, bob], 3)
        store.create_event("2024-06-01", "Bistro", [bob], 1)
        return tmp_path

    def test_requested_year(self, ledger):
        result = standings.main(["2023"])
        assert result["selected_year"] == 2023
        assert result["standings"]["name"].tolist() == ["Alice", "Bob"]
        assert result["standings"]["total_points"].tolist() == [5, 0]

    def test_defaults_to_latest_year(self, ledger):
        result = standings.main([])
        assert result["selected_year"] == 2024
        assert result["standings"]["name"].tolist() == ["Bob", "Alice"]

    def test_unknown_year_falls_back_with_warning(self, ledger, caplog):
        with caplog.at_level(logging.WARNING, logger="mealscore.points.standings"):
            result = standings.main(["1990"])
        assert result["selected_year"] == 2024
        assert "Year 1990 has no dinners" in caplog.text

    def test_all_time(self, ledger):
        result = standings.main([ALL_TIME])
        assert result["standings"]["total_points"].tolist() == [8, 4]

    def test_exports_to_output_folder(self, ledger):
        standings.main(["2024"])
        exports = list((ledger / "exports").glob("standings_2024_*.csv"))
        assert len(exports) == 1
        assert pd.read_csv(exports[0])["name"].tolist() == ["Bob", "Alice"]
