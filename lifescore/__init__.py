"""
LifeScore gamification engine

Mission lifecycle, LifeScore/XP/coin ledgers, achievements and deterministic
scenario projections for the insurance engagement app.
"""

__version__ = "1.0.0"
