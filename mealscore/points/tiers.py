"""
Point Tier Functions

Suggest a per-attendee point value from the number of people at a dinner,
and resolve the final value when a manual override is given.

    from mealscore.points.tiers import resolve_points
    points = resolve_points(len(attendees), manual_points=None)
"""

from mealscore.config import MAX_POINTS, MIN_POINTS, POINT_TIERS, TOP_TIER_POINTS
from mealscore.utils import clamp


def suggest_points(attendee_count):
    """
    Suggested points per attendee (not a total) for a dinner of this size.

    Tiers use inclusive upper bounds: 0-1 -> 0, 2-5 -> 1, 6-8 -> 3,
    9-15 -> 5, 16+ -> 10.
    """
    if attendee_count < 0:
        raise ValueError(f"Attendee count must be non-negative, got {attendee_count}")

    for max_attendees, points in POINT_TIERS:
        if attendee_count <= max_attendees:
            return points
    return TOP_TIER_POINTS


def clamp_points(points):
    """Clamp a manual point value into the allowed range instead of rejecting it."""
    return clamp(int(points), MIN_POINTS, MAX_POINTS)


def resolve_points(attendee_count, manual_points=None):
    """
    Final points per attendee: the manual value when given (clamped),
    otherwise the tier suggestion.
    """
    if manual_points is not None:
        return clamp_points(manual_points)
    return suggest_points(attendee_count)
