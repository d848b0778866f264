"""
Matching Engine

PURPOSE:
Pair a newly submitted profile with another student who is still waiting.

HOW IT WORKS (once per new profile P):
1. Re-read P - a concurrent arrival may already have claimed it
2. Ask the store for the oldest waiting profile with P's major,
   falling back to the oldest waiting profile of any major
3. No candidate -> P stays pending until a later arrival finds it
4. commit_match(P, C) - atomic test-and-set on both profiles
5. Lost the race for C (MatchConflictError) -> start over from 1,
   at most `max_attempts` times, then leave P pending

There is no background re-scan: a pending profile is only matched when a
future submission picks it up as its candidate.
"""

import logging

from tenacity import Retrying, retry_if_exception_type, stop_after_attempt

from app.core.errors import MatchConflictError, ProfileNotFoundError, StoreUnavailableError
from app.db.base import ProfileStore
from app.models import MatchResult, Profile

logger = logging.getLogger(__name__)


class MatchingEngine:
    """Finds and commits a partner for one profile at a time."""

    def __init__(self, store: ProfileStore, max_attempts: int = 3):
        self.store = store
        self.max_attempts = max_attempts

    def match(self, profile: Profile) -> MatchResult:
        """
        Try to pair `profile`. Never raises for race or infrastructure
        trouble: both degrade to a pending result.
        """
        retrying = Retrying(
            stop=stop_after_attempt(self.max_attempts),
            retry=retry_if_exception_type(MatchConflictError),
            before_sleep=self._log_lost_race,
            reraise=True,
        )
        try:
            return retrying(self._attempt, profile.id)
        except MatchConflictError:
            logger.info(
                "Profile %s left pending after losing %d match races",
                profile.id, self.max_attempts
            )
        except StoreUnavailableError as e:
            logger.warning("Matching abandoned for %s, store unavailable: %s", profile.id, e)
        except ProfileNotFoundError:
            logger.warning("Profile %s disappeared before it could be matched", profile.id)
        return MatchResult.pending()

    def current_match(self, profile: Profile) -> MatchResult:
        """Report the stored match, but only once the partner points back."""
        if profile.matched_with is None or profile.matched_with == profile.id:
            return MatchResult.pending()
        partner = self.store.find(profile.matched_with)
        if partner is not None and partner.matched_with == profile.id:
            return MatchResult.matched_with(partner)
        return MatchResult.pending()

    def _attempt(self, profile_id: str) -> MatchResult:
        me = self.store.get_by_id(profile_id)
        if me.is_matched:
            # someone who arrived after us already took us
            return self.current_match(me)

        candidate = self.store.find_eligible_partner(me.id, me.major)
        if candidate is None:
            logger.info("No unmatched partner for %s yet", me.id)
            return MatchResult.pending()

        self.store.commit_match(me.id, candidate.id)
        logger.info(
            "Matched %s with %s (%s)", me.id, candidate.id,
            "same major" if candidate.major == me.major else "any major"
        )
        partner = self.store.find(candidate.id) or candidate
        return MatchResult.matched_with(partner)

    @staticmethod
    def _log_lost_race(retry_state) -> None:
        logger.info(
            "Lost match race (attempt %d): %s",
            retry_state.attempt_number, retry_state.outcome.exception()
        )
