"""
Ledger Storage

Modules:
- store: CSV-backed members and events with validation at the boundary
- origin: Client IP capture and cached IP geolocation
"""


def __getattr__(name):
    """Lazy imports to avoid RuntimeWarning when running modules directly."""
    if name == "LedgerStore":
        from mealscore.ledger.store import LedgerStore
        return LedgerStore
    if name == "lookup_ip_location":
        from mealscore.ledger.origin import lookup_ip_location
        return lookup_ip_location
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
