"""
In-process ProfileStore.

Used for local development (STORE_BACKEND=memory) and tests. A single
lock serializes every read-modify-write, which is what makes
commit_match() atomic here.
"""

import itertools
import threading
import uuid
from typing import Dict, Optional

from app.core.errors import DuplicateProfileError, MatchConflictError
from app.db.base import ProfileStore
from app.models import Profile, ProfileCandidate, utcnow


class InMemoryProfileStore(ProfileStore):

    def __init__(self, orphan_grace_seconds: int = 30):
        super().__init__(orphan_grace_seconds)
        self._lock = threading.RLock()
        self._profiles: Dict[str, Profile] = {}
        # insertion order; the tie-break for same created_at
        self._seq: Dict[str, int] = {}
        self._counter = itertools.count()

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def health_check(self) -> bool:
        return True

    def reconnect(self) -> None:
        pass

    def create(self, candidate: ProfileCandidate) -> Profile:
        with self._lock:
            for existing in self._profiles.values():
                if existing.email == candidate.email:
                    raise DuplicateProfileError("email")
                if existing.institutional_id == candidate.institutional_id:
                    raise DuplicateProfileError("institutional_id")
            profile = Profile.from_candidate(uuid.uuid4().hex, candidate)
            self._profiles[profile.id] = profile
            self._seq[profile.id] = next(self._counter)
            return profile

    def find(self, profile_id: str) -> Optional[Profile]:
        with self._lock:
            return self._profiles.get(profile_id)

    def find_unmatched(self, exclude_id: str, major: Optional[str] = None) -> Optional[Profile]:
        with self._lock:
            eligible = [
                p for p in self._profiles.values()
                if not p.is_matched and p.id != exclude_id and (major is None or p.major == major)
            ]
            if not eligible:
                return None
            return min(eligible, key=lambda p: (p.created_at, self._seq[p.id]))

    def commit_match(self, id_a: str, id_b: str) -> None:
        if id_a == id_b:
            raise ValueError("A profile cannot be matched with itself")
        with self._lock:
            a = self._profiles.get(id_a)
            b = self._profiles.get(id_b)
            if a is None or b is None or a.is_matched or b.is_matched:
                raise MatchConflictError(f"{id_a} <-> {id_b}: participant no longer eligible")
            now = utcnow()
            self._profiles[id_a] = a.matched_to(id_b, now)
            self._profiles[id_b] = b.matched_to(id_a, now)

    def reset_match(self, profile_id: str, stale_partner_id: str) -> Optional[Profile]:
        with self._lock:
            profile = self._profiles.get(profile_id)
            if profile is None or profile.matched_with != stale_partner_id:
                return None
            profile = profile.unmatched()
            self._profiles[profile_id] = profile
            return profile

    def remove(self, profile_id: str) -> None:
        """Drop a record outright, the way an operator would from the database shell."""
        with self._lock:
            self._profiles.pop(profile_id, None)
            self._seq.pop(profile_id, None)
