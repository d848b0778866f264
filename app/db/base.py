"""
ProfileStore contract.

Every backend keeps the same guarantees:
- create() rejects duplicate email / institutional id before writing
- commit_match() is a test-and-set over both participants' is_matched flags:
  of two concurrent commits that share a participant, at most one succeeds
- repair_orphan() is the only path that puts a matched profile back to unmatched

Candidate order is oldest-pending-first (created_at, then id), so the
choice is deterministic for a given store state.
"""

import logging
from abc import ABC, abstractmethod
from datetime import timedelta
from typing import Optional

from app.core.errors import ProfileNotFoundError
from app.models import Profile, ProfileCandidate, utcnow

logger = logging.getLogger(__name__)


class ProfileStore(ABC):

    def __init__(self, orphan_grace_seconds: int = 30):
        self.orphan_grace = timedelta(seconds=orphan_grace_seconds)

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------

    @abstractmethod
    def open(self) -> None:
        """Connect and make sure indexes / tables exist."""

    @abstractmethod
    def close(self) -> None:
        ...

    @abstractmethod
    def health_check(self) -> bool:
        """True if the backing database answers right now."""

    @abstractmethod
    def reconnect(self) -> None:
        ...

    # ------------------------------------------------------------
    # Backend primitives
    # ------------------------------------------------------------

    @abstractmethod
    def create(self, candidate: ProfileCandidate) -> Profile:
        """Insert a new unmatched profile. Raises DuplicateProfileError."""

    @abstractmethod
    def find(self, profile_id: str) -> Optional[Profile]:
        """Fetch a profile, None if unknown or the id is malformed."""

    @abstractmethod
    def find_unmatched(self, exclude_id: str, major: Optional[str] = None) -> Optional[Profile]:
        """Oldest unmatched profile other than exclude_id, optionally of one major."""

    @abstractmethod
    def commit_match(self, id_a: str, id_b: str) -> None:
        """
        Pair two unmatched profiles atomically.

        Raises MatchConflictError if either profile is gone or already matched
        by the time of the commit. Nothing is left half-written on failure.
        """

    @abstractmethod
    def reset_match(self, profile_id: str, stale_partner_id: str) -> Optional[Profile]:
        """
        Clear the match fields of profile_id, but only while it still points
        at stale_partner_id. Returns the updated profile, None if it changed
        underneath us.
        """

    # ------------------------------------------------------------
    # Operations shared by every backend
    # ------------------------------------------------------------

    def get_by_id(self, profile_id: str) -> Profile:
        profile = self.find(profile_id)
        if profile is None:
            raise ProfileNotFoundError(profile_id)
        return profile

    def find_eligible_partner(self, exclude_id: str, major: str) -> Optional[Profile]:
        """Same-major first, then anyone still waiting."""
        candidate = self.find_unmatched(exclude_id, major=major)
        if candidate is None:
            candidate = self.find_unmatched(exclude_id)
        return candidate

    def repair_orphan(self, profile_id: str) -> Profile:
        """
        Reset a profile whose partner no longer exists or no longer points back.

        A partner that exists but is still unmatched may be the second half of
        a commit in flight, so that case is only reset after the grace period.
        """
        profile = self.get_by_id(profile_id)
        if profile.matched_with is None:
            return profile

        partner = None
        if profile.matched_with != profile.id:
            partner = self.find(profile.matched_with)
            if partner is not None:
                if partner.matched_with == profile.id:
                    return profile
                if partner.matched_with is None and not self._grace_expired(profile):
                    return profile

        logger.warning(
            "Repairing orphaned match: profile %s -> %s (%s)",
            profile.id, profile.matched_with,
            "partner missing" if partner is None else "partner does not reciprocate",
        )
        repaired = self.reset_match(profile.id, profile.matched_with)
        return repaired if repaired is not None else self.get_by_id(profile_id)

    def _grace_expired(self, profile: Profile) -> bool:
        if profile.matched_at is None:
            return True
        return utcnow() - profile.matched_at >= self.orphan_grace
