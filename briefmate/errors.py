"""
Error taxonomy shared by every service.
Each error knows its HTTP status and a message that is safe to show callers.
"""


class BriefMateError(Exception):
    """Base class for all domain errors."""
    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def detail(self) -> str:
        return self.message

    def to_dict(self) -> dict:
        return {"code": self.code, "detail": self.detail}


class NotFoundError(BriefMateError):
    """Entity absent or not visible to the caller."""
    status_code = 404
    code = "NOT_FOUND"


class ForbiddenError(BriefMateError):
    """
    Caller does not own the resource.
    Rendered exactly like a not-found so existence cannot be probed.
    """
    status_code = 404
    code = "NOT_FOUND"

    @property
    def detail(self) -> str:
        return "Not found"


class BadRequestError(BriefMateError):
    """Malformed input or an invalid state transition."""
    status_code = 400
    code = "BAD_REQUEST"


class CapacityExceededError(BriefMateError):
    """Free-tier entitlement denial."""
    status_code = 402
    code = "CAPACITY_EXCEEDED"


class InvalidCredentialError(BriefMateError):
    """Public validation code mismatch."""
    status_code = 400
    code = "INVALID_CREDENTIAL"


class UpstreamFailureError(BriefMateError):
    """Billing provider fetch failed or timed out."""
    status_code = 503
    code = "UPSTREAM_FAILURE"


class SignatureInvalidError(BriefMateError):
    """Webhook payload failed authenticity verification."""
    status_code = 400
    code = "SIGNATURE_INVALID"


class NotificationError(BriefMateError):
    """The mail collaborator could not deliver a message."""
    status_code = 502
    code = "NOTIFICATION_FAILED"
