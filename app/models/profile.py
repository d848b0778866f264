"""
Internal data structures passed between the store, the matching engine
and the service layer. API request/response shapes live in app.schemas.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC timestamp, the form pymongo hands back by default."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class ProfileCandidate:
    """A validated, normalized profile that has not been stored yet."""
    name: str
    email: str
    institutional_id: str
    major: str
    graduation_year: int


@dataclass(frozen=True)
class Profile:
    id: str
    name: str
    email: str
    institutional_id: str
    major: str
    graduation_year: int
    is_matched: bool = False
    matched_with: Optional[str] = None
    matched_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_candidate(cls, profile_id: str, candidate: ProfileCandidate) -> "Profile":
        return cls(
            id=profile_id,
            name=candidate.name,
            email=candidate.email,
            institutional_id=candidate.institutional_id,
            major=candidate.major,
            graduation_year=candidate.graduation_year,
        )

    def matched_to(self, partner_id: str, at: datetime) -> "Profile":
        return replace(self, is_matched=True, matched_with=partner_id, matched_at=at)

    def unmatched(self) -> "Profile":
        return replace(self, is_matched=False, matched_with=None, matched_at=None)


@dataclass(frozen=True)
class PartnerSummary:
    """What a student gets to see about their partner."""
    name: str
    major: str
    graduation_year: int
    email: str

    @classmethod
    def of(cls, profile: Profile) -> "PartnerSummary":
        return cls(
            name=profile.name,
            major=profile.major,
            graduation_year=profile.graduation_year,
            email=profile.email,
        )


class MatchStatus(str, Enum):
    matched = "matched"
    pending = "pending"


@dataclass(frozen=True)
class MatchResult:
    status: MatchStatus
    partner: Optional[Profile] = None

    @classmethod
    def pending(cls) -> "MatchResult":
        return cls(MatchStatus.pending)

    @classmethod
    def matched_with(cls, partner: Profile) -> "MatchResult":
        return cls(MatchStatus.matched, partner)

    @property
    def is_matched(self) -> bool:
        return self.status is MatchStatus.matched

    @property
    def summary(self) -> Optional[PartnerSummary]:
        return PartnerSummary.of(self.partner) if self.partner else None


@dataclass(frozen=True)
class Submission:
    profile: Profile
    result: MatchResult
