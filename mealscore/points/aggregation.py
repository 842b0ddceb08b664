"""
Event Aggregation

Rolls the event history up into one row per roster member for an
aggregation window (a calendar year, or all time):

- total_points: sum of the point value of every event the member attended
- event_count: number of such events

Events are windowed by the year of their own date field, never by their
creation timestamp, so a backfilled 2023 dinner entered in 2024 still
counts toward 2023.

Usage:
    from mealscore.points.aggregation import aggregate_member_points
    summary = aggregate_member_points(members, events, year=2024)
"""

from datetime import date

import pandas as pd

from mealscore.config import ALL_TIME, EVENT_COLUMNS, MEMBER_COLUMNS
from mealscore.utils import setup_logging

# --- Module Logger ---
logger = setup_logging(__name__)

SUMMARY_COLUMNS = ['member_id', 'name', 'total_points', 'event_count']


def _as_frame(records, columns):
    """Accept a DataFrame or a list of dicts and guarantee the expected columns."""
    df = records.copy() if isinstance(records, pd.DataFrame) else pd.DataFrame(list(records))
    for column in columns:
        if column not in df.columns:
            df[column] = pd.Series(dtype=object)
    return df


def _normalize_year(year):
    """Parse a year selector into an int, or None when it is not a valid year."""
    if year is None or year == ALL_TIME:
        return None
    try:
        return int(str(year).strip())
    except ValueError:
        return None


def event_years(events) -> pd.Series:
    """Calendar year of each event, taken from the first four characters of its ISO date."""
    df = _as_frame(events, EVENT_COLUMNS)
    if df.empty:
        return pd.Series(dtype=int)
    return df['date'].astype(str).str[:4].astype(int)


def filter_events_by_year(events, year=ALL_TIME) -> pd.DataFrame:
    """
    Keep only events whose date falls in the given calendar year.

    The comparison is integer equality on the year component of the date
    string rather than a date-range check, which avoids timezone-driven
    off-by-one errors around New Year.
    """
    df = _as_frame(events, EVENT_COLUMNS)
    if year is None or year == ALL_TIME or df.empty:
        return df

    target = _normalize_year(year)
    if target is None:
        raise ValueError(f"Invalid aggregation year: {year!r}")

    return df[event_years(df) == target]


def explode_attendance(events) -> pd.DataFrame:
    """
    Flatten events into one row per (event, member) attendance pair.

    Returns:
        DataFrame with columns [event_id, member_id, points]. A member listed
        twice on the same event is counted once.
    """
    df = _as_frame(events, EVENT_COLUMNS)
    if df.empty:
        return pd.DataFrame(columns=['event_id', 'member_id', 'points'])

    attendance = df[['id', 'attendees', 'points']].explode('attendees')
    attendance = attendance.dropna(subset=['attendees'])
    attendance = attendance.rename(columns={'id': 'event_id', 'attendees': 'member_id'})
    attendance['member_id'] = attendance['member_id'].astype(str)
    attendance = attendance.drop_duplicates(subset=['event_id', 'member_id'])
    attendance['points'] = pd.to_numeric(attendance['points']).astype(int)
    return attendance.reset_index(drop=True)


def aggregate_member_points(members, events, year=ALL_TIME) -> pd.DataFrame:
    """
    Compute each roster member's points and attendance for a window.

    Every roster member gets exactly one row, in roster order, including
    inactive members and members with no events in the window (zeros).
    The attendance index is built once per call, so the cost is linear in
    members plus attendance pairs. Inputs are never modified.

    Args:
        members: DataFrame or list of dicts with at least [id, name]
        events: DataFrame or list of dicts with at least [id, date, points, attendees]
        year: Calendar year (int or str) or ALL_TIME

    Returns:
        DataFrame with columns [member_id, name, total_points, event_count]
    """
    roster = _as_frame(members, MEMBER_COLUMNS)
    windowed = filter_events_by_year(events, year)
    attendance = explode_attendance(windowed)

    logger.debug(
        f"Aggregating {len(windowed)} events ({len(attendance)} attendances) "
        f"for {len(roster)} members, window={year}"
    )

    points_by_member = attendance.groupby('member_id')['points'].sum()
    events_by_member = attendance.groupby('member_id')['event_id'].nunique()

    # Attendee ids are matched as strings; the output keeps the roster's own ids
    key = roster['id'].astype(str).reset_index(drop=True)
    summary = pd.DataFrame({
        'member_id': roster['id'].tolist(),
        'name': roster['name'].tolist(),
    })
    summary['total_points'] = key.map(points_by_member).fillna(0).astype(int)
    summary['event_count'] = key.map(events_by_member).fillna(0).astype(int)

    return summary[SUMMARY_COLUMNS]


def available_years(events, today=None) -> list[int]:
    """
    Distinct calendar years present in the event history, newest first.

    Falls back to the current year when there are no events, so a year
    selector always has at least one choice.
    """
    years = sorted(set(event_years(events).tolist()), reverse=True)
    if not years:
        years = [(today or date.today()).year]
    return years


def resolve_selected_year(years, requested=None):
    """
    Pick the year to display.

    Returns the requested year when it is present in `years`, ALL_TIME when
    that is what was asked for, and otherwise falls back to the most recent
    available year. Never returns an empty selection.
    """
    if requested == ALL_TIME:
        return ALL_TIME

    target = _normalize_year(requested)
    if target is not None and target in years:
        return target
    return years[0] if years else date.today().year
