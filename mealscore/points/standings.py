"""
Leaderboard Standings for the Meal Score ledger

This module turns per-member totals into ranked standings:
- Sort by total points, highest first
- Deterministic tie-break by member name, then member id
- 1-based positional rank (tied members still get distinct ranks)
- Top-N prefix for the leaderboard chart, full list for the standings table

Usage:
    python -m mealscore.points.standings [YEAR]
    OR
    from mealscore.points import build_standings
"""

import sys
from pathlib import Path

# Enable both `python mealscore/points/standings.py` and `python -m mealscore.points.standings`.
# Required for mealscore.config/mealscore.utils imports to resolve correctly.
_project_root = str(Path(__file__).parent.parent.parent)
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from datetime import date

import pandas as pd

from mealscore.config import (
    ALL_TIME,
    DATA_FOLDER,
    LEADERBOARD_TOP_N,
    OUTPUT_FOLDER,
    STANDINGS_EXPORT_PATTERN,
)
from mealscore.points.aggregation import (
    aggregate_member_points,
    available_years,
    resolve_selected_year,
)
from mealscore.utils import atomic_write_csv, cleanup_old_files, setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

STANDINGS_COLUMNS = ['rank', 'member_id', 'name', 'total_points', 'event_count']


def rank_leaderboard(summary: pd.DataFrame) -> pd.DataFrame:
    """
    Rank aggregated member totals.

    Args:
        summary: DataFrame with columns [member_id, name, total_points, event_count]

    Returns:
        DataFrame with columns [rank, member_id, name, total_points, event_count],
        sorted by total_points descending. Ties are broken by name then
        member_id, so the result does not depend on input order. No member is
        dropped, zero-point members included.
    """
    ranked = summary.sort_values(
        ['total_points', 'name', 'member_id'],
        ascending=[False, True, True],
        kind='mergesort',
    ).reset_index(drop=True)
    ranked['rank'] = ranked.index + 1
    return ranked[STANDINGS_COLUMNS]


def top_n(ranked: pd.DataFrame, n: int = LEADERBOARD_TOP_N) -> pd.DataFrame:
    """Leading prefix of the ranked standings (the leaderboard chart view)."""
    if n < 0:
        raise ValueError(f"Top-N size must be non-negative, got {n}")
    return ranked.head(n).reset_index(drop=True)


def build_standings(members, events, year=None, top=LEADERBOARD_TOP_N, today=None) -> dict:
    """
    Run the full aggregation and ranking pass over one snapshot.

    Args:
        members: Member roster (DataFrame or list of dicts)
        events: Event history (DataFrame or list of dicts)
        year: Requested window; a year not present in the data falls back
              to the most recent available year, ALL_TIME covers every year
        top: Size of the leaderboard prefix
        today: Reference date for the empty-history year fallback

    Returns:
        Dictionary with:
            - years: available years, newest first
            - selected_year: the window actually used
            - standings: full ranked DataFrame
            - top: first `top` rows of standings
    """
    years = available_years(events, today=today)
    selected_year = resolve_selected_year(years, year)

    summary = aggregate_member_points(members, events, selected_year)
    ranked = rank_leaderboard(summary)

    return {
        'years': years,
        'selected_year': selected_year,
        'standings': ranked,
        'top': top_n(ranked, top),
    }


def export_standings(result: dict, folder: Path | None = None) -> Path:
    """
    Write ranked standings to CSV and remove older exports of the same window.

    Returns:
        Path to the written CSV file
    """
    target_folder = folder or OUTPUT_FOLDER
    window = result['selected_year']
    pattern = STANDINGS_EXPORT_PATTERN.format(window=window)
    path = target_folder / pattern.replace('*', date.today().strftime('%Y%m%d'))

    atomic_write_csv(result['standings'], path, index=False)
    cleanup_old_files(pattern, keep_file=path, folder=target_folder)
    return path


def main(argv=None):
    from mealscore.ledger.store import LedgerStore

    argv = sys.argv[1:] if argv is None else argv
    requested = argv[0] if argv else None

    store = LedgerStore(DATA_FOLDER)
    members, events = store.snapshot()
    logger.info(f"Loaded {len(members)} members and {len(events)} events from {DATA_FOLDER}")

    result = build_standings(members, events, year=requested)
    window = result['selected_year']
    label = "All time" if window == ALL_TIME else str(window)
    if requested is not None and str(requested) != str(window):
        logger.warning(f"Year {requested} has no dinners, showing {label} instead")

    logger.info("=" * 60)
    logger.info(f"{label} Top {LEADERBOARD_TOP_N}:")
    logger.info("=" * 60)
    logger.info("\n" + result['top'].to_string(index=False))
    logger.info(f"Full standings ({len(result['standings'])} members):")
    logger.info("\n" + result['standings'].to_string(index=False))

    path = export_standings(result)
    logger.info(f"Exported standings: {path}")
    return result


if __name__ == "__main__":
    # Fix Windows console encoding for member names outside ASCII
    if sys.stdout.encoding != 'utf-8':
        try:
            sys.stdout.reconfigure(encoding='utf-8')  # type: ignore[union-attr]
        except AttributeError:
            pass

    main()
