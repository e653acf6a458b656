"""Failures raised while handling a prediction submission.

Every error is terminal for the request. Each one carries the HTTP status it
maps to and a stable machine-readable ``reason`` that clients can branch on.
"""

from __future__ import annotations


class SubmissionError(Exception):
    status_code: int = 500
    reason: str = "unexpected_error"

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if reason is not None:
            self.reason = reason

    def to_payload(self) -> dict[str, object]:
        return {"ok": False, "error": self.message, "reason": self.reason}


class AuthRequired(SubmissionError):
    status_code = 401
    reason = "auth_required"


class InvalidPayload(SubmissionError):
    status_code = 400
    reason = "invalid_payload"


class PoolNotFound(SubmissionError):
    status_code = 404
    reason = "pool_not_found"


class MatchNotFound(SubmissionError):
    status_code = 404
    reason = "match_not_found"


class InvalidFixture(SubmissionError):
    status_code = 400
    reason = "invalid_fixture"


class WindowClosed(SubmissionError):
    status_code = 400
    reason = "window_closed"


class IdempotencyConflict(SubmissionError):
    status_code = 409
    reason = "idempotency_conflict"


class PersistenceError(SubmissionError):
    status_code = 500
    reason = "persistence_error"


class InvalidBooster(SubmissionError):
    status_code = 400
    reason = "invalid_booster"


class PredictionNotFound(SubmissionError):
    status_code = 404
    reason = "prediction_not_found"
