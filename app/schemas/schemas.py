"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
"""

from pydantic import AliasChoices, BaseModel, EmailStr, Field, ValidationError, field_validator
from typing import Optional, List, Dict
from datetime import datetime

from app.core.config import get_settings
from app.models import MatchResult, PartnerSummary, Profile, ProfileCandidate, Submission


def field_errors(exc: ValidationError) -> Dict[str, str]:
    """Flatten pydantic errors into {field: message}, first message per field."""
    errors: Dict[str, str] = {}
    for err in exc.errors():
        loc = [str(part) for part in err["loc"] if part != "body"]
        field = ".".join(loc) or "__root__"
        message = err["msg"]
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.setdefault(field, message)
    return errors


# ============================================================
# PROFILE SCHEMAS
# ============================================================

class ProfileCreate(BaseModel):
    """
    Submitted profile. Also accepts the camelCase names the web form posts
    (institutionalId / netId, graduationYear).
    """
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    institutional_id: str = Field(
        ..., min_length=1, max_length=64,
        validation_alias=AliasChoices("institutional_id", "institutionalId", "netId"),
    )
    major: str = Field(..., min_length=1)
    graduation_year: int = Field(
        ..., validation_alias=AliasChoices("graduation_year", "graduationYear"),
    )

    @field_validator("name", "email", "institutional_id", "major", mode="before")
    @classmethod
    def strip_strings(cls, v):
        return v.strip() if isinstance(v, str) else v

    @field_validator("email", "institutional_id")
    @classmethod
    def lowercase(cls, v: str) -> str:
        return v.lower()

    @field_validator("major")
    @classmethod
    def known_major(cls, v: str) -> str:
        majors = get_settings().majors
        if v not in majors:
            raise ValueError(f"Major must be one of: {', '.join(majors)}")
        return v

    @field_validator("graduation_year")
    @classmethod
    def year_in_range(cls, v: int) -> int:
        settings = get_settings()
        if not settings.min_graduation_year <= v <= settings.max_graduation_year:
            raise ValueError(
                f"Graduation year must be between {settings.min_graduation_year} "
                f"and {settings.max_graduation_year}"
            )
        return v

    def to_candidate(self) -> ProfileCandidate:
        return ProfileCandidate(
            name=self.name,
            email=self.email,
            institutional_id=self.institutional_id,
            major=self.major,
            graduation_year=self.graduation_year,
        )


class ProfileResponse(BaseModel):
    """The submitter's own record. The partner's id is never exposed."""
    id: str
    name: str
    email: str
    institutional_id: str
    major: str
    graduation_year: int
    is_matched: bool
    created_at: datetime

    @classmethod
    def from_profile(cls, profile: Profile) -> "ProfileResponse":
        return cls(
            id=profile.id, name=profile.name, email=profile.email,
            institutional_id=profile.institutional_id, major=profile.major,
            graduation_year=profile.graduation_year, is_matched=profile.is_matched,
            created_at=profile.created_at
        )


class PartnerSummaryResponse(BaseModel):
    name: str
    major: str
    graduation_year: int
    email: str

    @classmethod
    def from_summary(cls, summary: Optional[PartnerSummary]) -> Optional["PartnerSummaryResponse"]:
        if summary is None:
            return None
        return cls(
            name=summary.name, major=summary.major,
            graduation_year=summary.graduation_year, email=summary.email
        )


# ============================================================
# MATCH SCHEMAS
# ============================================================

class SubmissionResponse(BaseModel):
    matched: bool
    profile: ProfileResponse
    match: Optional[PartnerSummaryResponse] = None

    @classmethod
    def from_submission(cls, submission: Submission) -> "SubmissionResponse":
        return cls(
            matched=submission.result.is_matched,
            profile=ProfileResponse.from_profile(submission.profile),
            match=PartnerSummaryResponse.from_summary(submission.result.summary)
        )


class MatchStatusResponse(BaseModel):
    matched: bool
    match: Optional[PartnerSummaryResponse] = None

    @classmethod
    def from_result(cls, result: MatchResult) -> "MatchStatusResponse":
        return cls(
            matched=result.is_matched,
            match=PartnerSummaryResponse.from_summary(result.summary)
        )


class ProfileOptionsResponse(BaseModel):
    majors: List[str]
    graduation_years: List[int]


# ============================================================
# COMMON SCHEMAS
# ============================================================

class ErrorResponse(BaseModel):
    error: str
    detail: Optional[str] = None
    field: Optional[str] = None
    fields: Optional[Dict[str, str]] = None
