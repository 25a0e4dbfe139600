"""Domain error taxonomy.

Services raise these; the global handler in ``middleware.error_handler``
turns them into ``{"detail": ..., "code": ...}`` JSON responses.
"""

from __future__ import annotations


class PredictEarnError(Exception):
    """Base class for all domain errors."""

    status_code: int = 400
    code: str = "error"
    default_message: str = "Request failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(PredictEarnError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class NotFoundError(PredictEarnError):
    status_code = 404
    code = "not_found"
    default_message = "Not found"


class UserNotFound(NotFoundError):
    code = "user_not_found"
    default_message = "User not found"


class PredictionNotFound(NotFoundError):
    code = "prediction_not_found"
    default_message = "Prediction not found"


class QuestionNotFound(NotFoundError):
    code = "question_not_found"
    default_message = "Question not found"


class ForbiddenError(PredictEarnError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied"


class ConflictError(PredictEarnError):
    status_code = 409
    code = "conflict"
    default_message = "Conflict"


class AlreadyCheckedIn(ConflictError):
    code = "already_checked_in"
    default_message = "Already checked in today"


class SkipLimitReached(ConflictError):
    code = "skip_limit_reached"
    default_message = "No skips remaining today"


class PredictionNotActive(ConflictError):
    code = "prediction_not_active"
    default_message = "Prediction is not active"


class AlreadyWon(ConflictError):
    code = "already_won"
    default_message = "You already won this prediction"


class ReferralCodeTaken(ConflictError):
    code = "referral_code_taken"
    default_message = "Referral code already exists. Please choose another."


class ReferralCodeAlreadySet(ConflictError):
    code = "referral_code_already_set"
    default_message = "Referral code already set and cannot be changed."


class InsufficientBalanceError(PredictEarnError):
    status_code = 400
    code = "insufficient_points"
    default_message = "Insufficient points"


class DecryptionError(PredictEarnError):
    """Corrupt or foreign ciphertext. The message never carries key or ciphertext material."""

    status_code = 500
    code = "server_error"
    default_message = "Server error"


class ExternalEventError(PredictEarnError):
    """Malformed webhook payload. Absorbed by the webhook handlers, never sent to the caller."""

    code = "external_event_error"
    default_message = "Malformed external event"
