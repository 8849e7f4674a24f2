"""Creatorgate exception hierarchy.

Every error carries a machine-readable ``code`` and the HTTP status the API
renders it with. Errors a user can recover from also name a ``redirect``
target (``sign-in`` or ``upgrade``).
"""


class CreatorgateError(Exception):
    """Base exception for all Creatorgate errors."""

    status_code = 500
    redirect: str | None = None

    def __init__(self, message: str = "", code: str = "CREATORGATE_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotAuthenticatedError(CreatorgateError):
    """Raised when a request carries no current user."""

    status_code = 401
    redirect = "sign-in"

    def __init__(self, message: str = "Sign in to continue"):
        super().__init__(message, code="NOT_AUTHENTICATED")


class NotEntitledError(CreatorgateError):
    """Raised when the user's tier grants no access to a feature."""

    status_code = 403
    redirect = "upgrade"

    def __init__(self, message: str = "Feature not included in your plan"):
        super().__init__(message, code="NOT_ENTITLED")


class QuotaExhaustedError(CreatorgateError):
    """Raised when this month's allowance for a feature is used up."""

    status_code = 402
    redirect = "upgrade"

    def __init__(self, message: str = "Monthly limit reached"):
        super().__init__(message, code="QUOTA_EXHAUSTED")


class LedgerReadError(CreatorgateError):
    """Raised when the usage store cannot be read."""

    status_code = 503

    def __init__(self, message: str = "Usage ledger unavailable"):
        super().__init__(message, code="LEDGER_READ_FAILED")


class LedgerWriteError(CreatorgateError):
    """Raised when a usage write did not persist."""

    status_code = 503

    def __init__(self, message: str = "Usage ledger write failed"):
        super().__init__(message, code="LEDGER_WRITE_FAILED")


class GenerationError(CreatorgateError):
    """Raised when the generative-language API returns no content."""

    status_code = 502

    def __init__(self, message: str = "Content generation failed"):
        super().__init__(message, code="GENERATION_FAILED")


class UnknownFeatureError(CreatorgateError):
    """Raised when a feature name is not part of the catalog."""

    status_code = 404

    def __init__(self, message: str = "Unknown feature"):
        super().__init__(message, code="UNKNOWN_FEATURE")


class WebhookError(CreatorgateError):
    """Raised when a billing webhook cannot be verified or parsed."""

    status_code = 400

    def __init__(self, message: str = "Invalid webhook"):
        super().__init__(message, code="WEBHOOK_INVALID")
