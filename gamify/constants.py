"""
gamify.constants — Shared Constants
====================================

Single source of truth for defaults shared by the seeder, the scoring
engine and the API schemas.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------
SCORING_WEIGHTS_KEY = "scoring.weights"

DEFAULT_SCORING_WEIGHTS: dict[str, float] = {
    "high_weight": 2,
    "low_weight": 1,
    "hint_penalty": -0.5,
    "streak_bonus": 3,
    "time_weight": 0.2,
    "attempt_penalty": -0.5,
}

# Confidence ratings run 1..5; 3 and above count as "high confidence".
HIGH_CONFIDENCE_THRESHOLD = 3

# ---------------------------------------------------------------------------
# Achievement reporting
# ---------------------------------------------------------------------------
REPORT_QUALIFYING = "qualifying"
REPORT_NEW = "new"
UNLOCK_REPORT_MODES: frozenset[str] = frozenset({REPORT_QUALIFYING, REPORT_NEW})
