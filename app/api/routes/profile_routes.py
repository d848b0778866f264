"""
Profile Routes

POST /profiles              - Submit a profile and try to match it immediately
GET  /profiles/options      - Majors and graduation years the form offers
GET  /profiles/{id}/match   - Poll the match status of a submitted profile
"""

from fastapi import APIRouter, Depends, Request

from app.core.config import Settings, get_settings
from app.schemas.schemas import (
    ErrorResponse, MatchStatusResponse, ProfileCreate, ProfileOptionsResponse, SubmissionResponse
)
from app.services.match_service import MatchService

router = APIRouter(prefix="/profiles", tags=["Profiles"])


def get_match_service(request: Request) -> MatchService:
    """Dependency - the service wired to the app's store in the lifespan."""
    return request.app.state.match_service


@router.post(
    "",
    response_model=SubmissionResponse,
    status_code=201,
    responses={400: {"model": ErrorResponse}, 409: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}
)
def submit_profile(data: ProfileCreate, service: MatchService = Depends(get_match_service)):
    """
    Submit a student profile.

    The profile is stored first, then paired with the oldest waiting student
    of the same major (or of any major). If nobody is waiting, `matched` is
    false and the client polls `/profiles/{id}/match`.
    """
    submission = service.submit_profile(data)
    return SubmissionResponse.from_submission(submission)


@router.get("/options", response_model=ProfileOptionsResponse)
def profile_options(settings: Settings = Depends(get_settings)):
    """Values the submission form may offer."""
    return ProfileOptionsResponse(majors=settings.majors, graduation_years=settings.graduation_years)


@router.get(
    "/{profile_id}/match",
    response_model=MatchStatusResponse,
    responses={404: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}
)
def check_match(profile_id: str, service: MatchService = Depends(get_match_service)):
    """Current match status. Cheap and idempotent, safe to poll."""
    return MatchStatusResponse.from_result(service.check_match(profile_id))
