"""
Error taxonomy shared by the store, the matching engine and the API layer.

- ProfileValidationError: malformed input, carries per-field messages
- DuplicateProfileError:  email / institutional id already taken
- MatchConflictError:     lost race on commit (recovered internally)
- ProfileNotFoundError:   unknown profile id
- StoreUnavailableError:  database unreachable, retryable
"""

from typing import Dict, Optional


class MatchAppError(Exception):
    """Base class for all domain errors."""
    pass


class ProfileValidationError(MatchAppError):
    """Raised when submitted profile fields are malformed."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{field}: {msg}" for field, msg in errors.items()))


class DuplicateProfileError(MatchAppError):
    """Raised when email or institutional id collides with an existing profile."""

    def __init__(self, field: Optional[str] = None):
        self.field = field
        if field:
            message = f"A profile with this {field.replace('_', ' ')} already exists"
        else:
            message = "A profile with this email or institutional id already exists"
        super().__init__(message)


class MatchConflictError(MatchAppError):
    """Raised when a commit loses the race for one of its participants."""
    pass


class ProfileNotFoundError(MatchAppError):
    def __init__(self, profile_id: str):
        self.profile_id = profile_id
        super().__init__(f"Profile {profile_id} not found")


class StoreUnavailableError(MatchAppError):
    """Raised when the backing database cannot be reached."""
    pass
