"""
Models module - internal data structures.

Difference from schemas:
- Models: Internal data structures (frozen dataclasses)
- Schemas: API contract (what client sends/receives)
"""

from app.models.profile import (
    MatchResult,
    MatchStatus,
    PartnerSummary,
    Profile,
    ProfileCandidate,
    Submission,
    utcnow,
)

__all__ = [
    "MatchResult",
    "MatchStatus",
    "PartnerSummary",
    "Profile",
    "ProfileCandidate",
    "Submission",
    "utcnow",
]
