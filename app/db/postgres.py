"""
PostgreSQL ProfileStore (works on any SQLAlchemy URL; tests run it on SQLite).

commit_match() runs both conditional UPDATEs in one transaction:

    UPDATE profiles SET is_matched = true, matched_with = :other
    WHERE id = :id AND is_matched = false

If either statement touches zero rows the transaction rolls back. Rows are
updated in id order so two commits sharing a participant lock it in the same
order and cannot deadlock; under READ COMMITTED the loser re-evaluates the
WHERE after the winner commits and sees is_matched = true.
"""
import logging
import uuid
from contextlib import contextmanager
from typing import Optional

from sqlalchemy import (
    Boolean, Column, DateTime, Integer, MetaData, String, Table,
    create_engine, or_, select, text, update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from app.core.errors import DuplicateProfileError, MatchConflictError, StoreUnavailableError
from app.db.base import ProfileStore
from app.models import Profile, ProfileCandidate, utcnow

logger = logging.getLogger(__name__)

metadata = MetaData()

profiles = Table(
    "profiles",
    metadata,
    Column("id", String(32), primary_key=True),
    Column("name", String(200), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("institutional_id", String(64), nullable=False, unique=True),
    Column("major", String(100), nullable=False, index=True),
    Column("graduation_year", Integer, nullable=False),
    Column("is_matched", Boolean, nullable=False, default=False, index=True),
    Column("matched_with", String(32), nullable=True),
    Column("matched_at", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False),
)

UNMATCH = {"is_matched": False, "matched_with": None, "matched_at": None}


def to_profile(row) -> Optional[Profile]:
    if row is None:
        return None
    return Profile(
        id=row.id,
        name=row.name,
        email=row.email,
        institutional_id=row.institutional_id,
        major=row.major,
        graduation_year=row.graduation_year,
        is_matched=bool(row.is_matched),
        matched_with=row.matched_with,
        matched_at=row.matched_at,
        created_at=row.created_at,
    )


class SqlProfileStore(ProfileStore):

    def __init__(
        self,
        url: Optional[str] = None,
        engine: Optional[Engine] = None,
        orphan_grace_seconds: int = 30,
        echo: bool = False,
    ):
        super().__init__(orphan_grace_seconds)
        if engine is None:
            # Create engine with connection pool
            # pool_size=5: maintain 5 connections ready
            # max_overflow=10: allow 10 extra connections under load
            engine = create_engine(
                url,
                pool_size=5,
                max_overflow=10,
                pool_pre_ping=True,
                echo=echo  # Log SQL queries in debug mode
            )
        self.engine = engine
        # Session factory
        self.SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    @contextmanager
    def session(self):
        """
        Context manager for database sessions.
        Usage:
            with store.session() as db:
                db.execute(select(profiles))
        """
        db: Session = self.SessionLocal()
        try:
            yield db
            db.commit()
        except (OperationalError, InterfaceError) as e:
            db.rollback()
            logger.error("Database unavailable: %s", e)
            raise StoreUnavailableError(str(e.orig or e)) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------

    def open(self) -> None:
        try:
            metadata.create_all(self.engine)
        except (OperationalError, InterfaceError) as e:
            raise StoreUnavailableError(str(e.orig or e)) from e
        logger.info("Database ready: %s", self.engine.url.render_as_string(hide_password=True))

    def close(self) -> None:
        self.engine.dispose()

    def reconnect(self) -> None:
        # drop pooled connections; the pool opens fresh ones on demand
        self.engine.dispose()

    def health_check(self) -> bool:
        """
        Test if the database is reachable.
        Returns True if connection successful, False otherwise.
        """
        try:
            with self.session() as db:
                return db.execute(text("SELECT 1")).scalar() == 1
        except StoreUnavailableError:
            return False

    # ------------------------------------------------------------
    # Store primitives
    # ------------------------------------------------------------

    def create(self, candidate: ProfileCandidate) -> Profile:
        profile = Profile.from_candidate(uuid.uuid4().hex, candidate)
        try:
            with self.session() as db:
                taken = db.execute(
                    select(profiles.c.email, profiles.c.institutional_id).where(or_(
                        profiles.c.email == candidate.email,
                        profiles.c.institutional_id == candidate.institutional_id,
                    ))
                ).first()
                if taken is not None:
                    raise DuplicateProfileError("email" if taken.email == candidate.email else "institutional_id")

                db.execute(profiles.insert().values(
                    id=profile.id,
                    name=profile.name,
                    email=profile.email,
                    institutional_id=profile.institutional_id,
                    major=profile.major,
                    graduation_year=profile.graduation_year,
                    is_matched=False,
                    matched_with=None,
                    matched_at=None,
                    created_at=profile.created_at,
                ))
        except IntegrityError as e:
            # lost the race against a concurrent insert of the same student
            raise DuplicateProfileError() from e
        return profile

    def find(self, profile_id: str) -> Optional[Profile]:
        with self.session() as db:
            row = db.execute(select(profiles).where(profiles.c.id == profile_id)).first()
            return to_profile(row)

    def find_unmatched(self, exclude_id: str, major: Optional[str] = None) -> Optional[Profile]:
        query = select(profiles).where(
            profiles.c.is_matched.is_(False),
            profiles.c.id != exclude_id,
        )
        if major is not None:
            query = query.where(profiles.c.major == major)
        query = query.order_by(profiles.c.created_at, profiles.c.id).limit(1)
        with self.session() as db:
            return to_profile(db.execute(query).first())

    def commit_match(self, id_a: str, id_b: str) -> None:
        if id_a == id_b:
            raise ValueError("A profile cannot be matched with itself")
        now = utcnow()
        with self.session() as db:
            for own, other in sorted([(id_a, id_b), (id_b, id_a)]):
                result = db.execute(
                    update(profiles)
                    .where(profiles.c.id == own, profiles.c.is_matched.is_(False))
                    .values(is_matched=True, matched_with=other, matched_at=now)
                )
                if result.rowcount != 1:
                    # raising inside the session rolls back the first update
                    raise MatchConflictError(f"{own} is no longer available")

    def reset_match(self, profile_id: str, stale_partner_id: str) -> Optional[Profile]:
        with self.session() as db:
            result = db.execute(
                update(profiles)
                .where(profiles.c.id == profile_id, profiles.c.matched_with == stale_partner_id)
                .values(**UNMATCH)
            )
            if result.rowcount != 1:
                return None
            row = db.execute(select(profiles).where(profiles.c.id == profile_id)).first()
            return to_profile(row)

    def remove(self, profile_id: str) -> None:
        """Drop a record outright, the way an operator would from psql."""
        with self.session() as db:
            db.execute(profiles.delete().where(profiles.c.id == profile_id))
