"""
Meal Score - Core Package

This package contains the core modules for:
- Point tiers, aggregation and leaderboard standings (mealscore.points)
- Ledger storage and submission origin lookup (mealscore.ledger)
- Shared configuration and utilities
"""

from mealscore.config import *
