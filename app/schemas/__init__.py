"""
Schemas module - Request/Response schemas for API endpoints.

Difference from models:
- Models: Internal data structures
- Schemas: API contract (what client sends/receives)
"""

from app.schemas.schemas import (
    ErrorResponse,
    MatchStatusResponse,
    PartnerSummaryResponse,
    ProfileCreate,
    ProfileOptionsResponse,
    ProfileResponse,
    SubmissionResponse,
    field_errors,
)

__all__ = [
    "ErrorResponse",
    "MatchStatusResponse",
    "PartnerSummaryResponse",
    "ProfileCreate",
    "ProfileOptionsResponse",
    "ProfileResponse",
    "SubmissionResponse",
    "field_errors",
]
