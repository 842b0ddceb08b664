"""
Point Ledger Computation

Modules:
- tiers: Attendee-count point suggestion and manual override clamping
- aggregation: Per-member, per-year totals over the event history
- standings: Leaderboard ranking, top-N selection and CSV export
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "resolve_points":
        from mealscore.points.tiers import resolve_points
        return resolve_points
    if name == "suggest_points":
        from mealscore.points.tiers import suggest_points
        return suggest_points
    if name == "aggregate_member_points":
        from mealscore.points.aggregation import aggregate_member_points
        return aggregate_member_points
    if name == "build_standings":
        from mealscore.points.standings import build_standings
        return build_standings
    if name == "run_standings":
        from mealscore.points.standings import main
        return main
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
