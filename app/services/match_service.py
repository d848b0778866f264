"""
Match Service - the two operations the HTTP layer calls.

submit_profile: validate -> create (unmatched) -> run the matching engine
check_match:    read-only status poll; heals dangling match references
"""

import logging
from typing import Any, Mapping, Union

from pydantic import ValidationError

from app.core.errors import ProfileValidationError
from app.db.base import ProfileStore
from app.models import MatchResult, Submission, utcnow
from app.schemas.schemas import ProfileCreate, field_errors
from app.services.matching_service import MatchingEngine

logger = logging.getLogger(__name__)


class MatchService:

    def __init__(self, store: ProfileStore, engine: MatchingEngine):
        self.store = store
        self.engine = engine

    def submit_profile(self, fields: Union[ProfileCreate, Mapping[str, Any]]) -> Submission:
        """
        Store a new profile and try to pair it right away.

        Raises:
            ProfileValidationError: malformed fields (raw mappings only)
            DuplicateProfileError: email or institutional id taken
            StoreUnavailableError: the profile could not be stored
        """
        if not isinstance(fields, ProfileCreate):
            try:
                fields = ProfileCreate.model_validate(fields)
            except ValidationError as e:
                raise ProfileValidationError(field_errors(e)) from e

        profile = self.store.create(fields.to_candidate())
        logger.info("Profile %s created (major=%s)", profile.id, profile.major)

        result = self.engine.match(profile)
        if result.is_matched:
            profile = profile.matched_to(result.partner.id, result.partner.matched_at or utcnow())
        return Submission(profile=profile, result=result)

    def check_match(self, profile_id: str) -> MatchResult:
        """
        Current match state of a profile. Never re-runs the search.

        A reference to a partner that is gone (or matched elsewhere) is
        reset and reported as pending. Raises ProfileNotFoundError.
        """
        profile = self.store.get_by_id(profile_id)
        if not profile.is_matched:
            return MatchResult.pending()

        result = self.engine.current_match(profile)
        if not result.is_matched:
            self.store.repair_orphan(profile.id)
        return result
