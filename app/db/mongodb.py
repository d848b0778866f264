"""
MongoDB ProfileStore

Collection:
- profiles: one document per submitted student profile

A standalone mongod has no multi-document transactions, so commit_match()
is built from two conditional single-document updates:
1. claim A only if A.is_matched is still false
2. claim B only if B.is_matched is still false
3. if (2) loses, release A, keyed on A.matched_with == B
Each step is atomic on its own document, so two commits that share a
participant can never both get past their claim on it.

Two ways A can be left pointing at a B that does not point back:
- the process dies between (1) and (2)
- the connection drops after the server applied (2) but before we saw the
  reply; (3) then releases A while B still points at A
repair_orphan() heals either side once orphan_grace_seconds have passed,
but only when that profile is read (check_match polls it).
"""
import logging
from contextlib import contextmanager
from typing import Callable, Optional

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError

from app.core.errors import DuplicateProfileError, MatchConflictError, StoreUnavailableError
from app.db.base import ProfileStore
from app.models import Profile, ProfileCandidate, utcnow

logger = logging.getLogger(__name__)

# Collection name constants (avoid typos)
COLLECTIONS = {
    "profiles": "profiles",
}

UNIQUE_FIELDS = ("email", "institutional_id")

CANDIDATE_ORDER = [("created_at", ASCENDING), ("_id", ASCENDING)]


def to_profile(doc: dict) -> Optional[Profile]:
    """Convert a MongoDB document to a Profile."""
    if doc is None:
        return None
    return Profile(
        id=str(doc["_id"]),
        name=doc["name"],
        email=doc["email"],
        institutional_id=doc["institutional_id"],
        major=doc["major"],
        graduation_year=doc["graduation_year"],
        is_matched=doc.get("is_matched", False),
        matched_with=doc.get("matched_with"),
        matched_at=doc.get("matched_at"),
        created_at=doc["created_at"],
    )


def _object_id(profile_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(profile_id)
    except (InvalidId, TypeError):
        return None


def _duplicate_field(error: DuplicateKeyError) -> Optional[str]:
    details = error.details or {}
    for field in details.get("keyPattern", {}):
        if field in UNIQUE_FIELDS:
            return field
    return None


class MongoProfileStore(ProfileStore):
    """
    Process-wide handle on the profiles collection.

    The client is created lazily and recreated on the next call after a
    connection failure (pymongo pools connections internally).
    """

    def __init__(
        self,
        uri: str,
        db_name: str,
        orphan_grace_seconds: int = 30,
        server_selection_timeout_ms: int = 15000,
        socket_timeout_ms: int = 45000,
        client_factory: Callable[..., MongoClient] = MongoClient,
    ):
        super().__init__(orphan_grace_seconds)
        self.uri = uri
        self.db_name = db_name
        self.server_selection_timeout_ms = server_selection_timeout_ms
        self.socket_timeout_ms = socket_timeout_ms
        self._client_factory = client_factory
        self._client: Optional[MongoClient] = None
        self._stale = False

    # ------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------

    @property
    def client(self) -> MongoClient:
        if self._client is None or self._stale:
            self.reconnect()
        return self._client

    @property
    def collection(self) -> Collection:
        return self.client[self.db_name][COLLECTIONS["profiles"]]

    def open(self) -> None:
        """Connect and create indexes. Call this once during app startup."""
        with self._guard():
            self.collection.create_index("email", unique=True)
            self.collection.create_index("institutional_id", unique=True)
            # Compound index for the candidate search
            self.collection.create_index([
                ("is_matched", ASCENDING),
                ("major", ASCENDING),
                ("created_at", ASCENDING),
            ])
        logger.info("MongoDB connected: %s/%s", self.uri, self.db_name)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def reconnect(self) -> None:
        if self._client is not None:
            logger.info("Reconnecting to MongoDB")
        self.close()
        self._client = self._client_factory(
            self.uri,
            serverSelectionTimeoutMS=self.server_selection_timeout_ms,
            socketTimeoutMS=self.socket_timeout_ms,
        )
        self._stale = False

    def health_check(self) -> bool:
        """
        Test if MongoDB is reachable.
        Returns True if connection successful, False otherwise.
        """
        try:
            # ping command checks connection
            self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.warning("MongoDB health check failed: %s", e)
            self._stale = True
            return False

    @contextmanager
    def _guard(self):
        try:
            yield
        except ConnectionFailure as e:
            self._stale = True
            logger.error("MongoDB unavailable: %s", e)
            raise StoreUnavailableError(str(e)) from e

    # ------------------------------------------------------------
    # Store primitives
    # ------------------------------------------------------------

    def create(self, candidate: ProfileCandidate) -> Profile:
        with self._guard():
            for field in UNIQUE_FIELDS:
                if self.collection.find_one({field: getattr(candidate, field)}, projection={"_id": 1}):
                    raise DuplicateProfileError(field)

            doc = {
                "name": candidate.name,
                "email": candidate.email,
                "institutional_id": candidate.institutional_id,
                "major": candidate.major,
                "graduation_year": candidate.graduation_year,
                "is_matched": False,
                "matched_with": None,
                "matched_at": None,
                "created_at": utcnow(),
            }
            try:
                result = self.collection.insert_one(doc)
            except DuplicateKeyError as e:
                # lost the race against a concurrent insert of the same student
                raise DuplicateProfileError(_duplicate_field(e)) from e
        doc["_id"] = result.inserted_id
        return to_profile(doc)

    def find(self, profile_id: str) -> Optional[Profile]:
        oid = _object_id(profile_id)
        if oid is None:
            return None
        with self._guard():
            return to_profile(self.collection.find_one({"_id": oid}))

    def find_unmatched(self, exclude_id: str, major: Optional[str] = None) -> Optional[Profile]:
        query = {"is_matched": False}
        oid = _object_id(exclude_id)
        if oid is not None:
            query["_id"] = {"$ne": oid}
        if major is not None:
            query["major"] = major
        with self._guard():
            return to_profile(self.collection.find_one(query, sort=CANDIDATE_ORDER))

    def commit_match(self, id_a: str, id_b: str) -> None:
        if id_a == id_b:
            raise ValueError("A profile cannot be matched with itself")
        oid_a, oid_b = _object_id(id_a), _object_id(id_b)
        if oid_a is None or oid_b is None:
            raise MatchConflictError(f"{id_a} <-> {id_b}: unknown participant")

        now = utcnow()
        with self._guard():
            if not self._claim(oid_a, id_b, now):
                raise MatchConflictError(f"{id_a} was claimed by a concurrent match")
            try:
                won = self._claim(oid_b, id_a, now)
            except ConnectionFailure:
                self._release(oid_a, id_b)
                raise
            if not won:
                self._release(oid_a, id_b)
                raise MatchConflictError(f"{id_b} was claimed by a concurrent match")

    def reset_match(self, profile_id: str, stale_partner_id: str) -> Optional[Profile]:
        oid = _object_id(profile_id)
        if oid is None:
            return None
        with self._guard():
            doc = self.collection.find_one_and_update(
                {"_id": oid, "matched_with": stale_partner_id},
                {"$set": {"is_matched": False, "matched_with": None, "matched_at": None}},
                return_document=ReturnDocument.AFTER,
            )
        return to_profile(doc)

    def remove(self, profile_id: str) -> None:
        """Drop a record outright, the way an operator would from the mongo shell."""
        oid = _object_id(profile_id)
        if oid is not None:
            with self._guard():
                self.collection.delete_one({"_id": oid})

    def _claim(self, oid: ObjectId, partner_id: str, now) -> bool:
        result = self.collection.update_one(
            {"_id": oid, "is_matched": False},
            {"$set": {"is_matched": True, "matched_with": partner_id, "matched_at": now}},
        )
        return result.modified_count == 1

    def _release(self, oid: ObjectId, partner_id: str) -> None:
        self.collection.update_one(
            {"_id": oid, "matched_with": partner_id},
            {"$set": {"is_matched": False, "matched_with": None, "matched_at": None}},
        )
