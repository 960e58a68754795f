"""Custom exceptions for the Qbot application."""


class QbotException(Exception):
    """Base class for Qbot exceptions with HTTP status code.

    All custom exceptions inherit from this class and define their specific
    status_code and a machine-stable error_code so one exception handler can
    render every failure consistently.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str = "Internal error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict:
        """Convert to the JSON error body returned to clients."""
        return {"error": self.error_code, "message": self.message}


class AuthenticationError(QbotException):
    """Raised when the bearer credential is missing or unknown.

    Maps to HTTP 401 Unauthorized.
    """
    status_code = 401
    error_code = "unauthenticated"

    def __init__(self, detail: str = "Invalid or missing bearer token"):
        self.detail = detail
        super().__init__(detail)


class ForbiddenError(QbotException):
    """Raised when an authenticated identity lacks the required role."""
    status_code = 403
    error_code = "forbidden"

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message)


class ProfileNotFoundError(QbotException):
    """Raised when the authenticated identity has no student profile.

    Distinct from AuthenticationError: the credential is valid.
    """
    status_code = 403
    error_code = "profile_not_found"

    def __init__(self, identity_id: str | None = None):
        self.identity_id = identity_id
        super().__init__("Student profile not found for the authenticated user")


class ChatbotNotFoundError(QbotException):
    status_code = 404
    error_code = "chatbot_not_found"

    def __init__(self, chatbot_id: str | None = None):
        self.chatbot_id = chatbot_id
        super().__init__("Chatbot not found")


class ClassInfoMissingError(QbotException):
    """Raised when a class-restricted chatbot is used by a student with no class."""
    status_code = 403
    error_code = "class_info_missing"

    def __init__(self):
        super().__init__("Access denied. Your class information is missing.")


class ClassNotAllowedError(QbotException):
    status_code = 403
    error_code = "class_not_allowed"

    def __init__(self, class_id: str | None = None):
        self.class_id = class_id
        super().__init__("Access denied. This chatbot is not available for your class.")


class QuotaExceededError(QbotException):
    """Raised when a student has used every attempt a chatbot allows.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429
    error_code = "quota_exceeded"

    def __init__(self, current_attempts: int = 0, max_attempts: int | None = 0):
        self.current_attempts = current_attempts
        self.max_attempts = max_attempts
        super().__init__(
            f"Usage limit exceeded for this chatbot. "
            f"Used: {current_attempts}, Allowed: {max_attempts}."
        )

    def to_response(self) -> dict:
        response = super().to_response()
        response["current_attempts"] = self.current_attempts
        response["max_attempts"] = self.max_attempts
        return response


class AttemptConflictError(QbotException):
    """Raised when a concurrent start claimed the same attempt number.

    The usage gate retries this internally a bounded number of times and only
    surfaces it when every retry lost the race.
    """
    status_code = 409
    error_code = "attempt_conflict"

    def __init__(self, message: str = "Another session start is in progress. Please retry."):
        super().__init__(message)


class NotChatbotOwnerError(QbotException):
    status_code = 403
    error_code = "not_chatbot_owner"

    def __init__(self, chatbot_id: str | None = None):
        self.chatbot_id = chatbot_id
        super().__init__("Forbidden: you do not own this chatbot")


class ResourceNotFoundError(QbotException):
    status_code = 404
    error_code = "not_found"

    def __init__(self, resource: str = "Resource"):
        super().__init__(f"{resource} not found")


class ConflictError(QbotException):
    status_code = 409
    error_code = "conflict"


class InvalidRequestError(QbotException):
    status_code = 400
    error_code = "invalid_input"


class EmptyTranscriptError(QbotException):
    status_code = 400
    error_code = "empty_transcript"

    def __init__(self):
        super().__init__("No conversation history found to evaluate.")


class UpstreamFailureError(QbotException):
    """Raised when the data store or LLM call fails for infrastructure reasons.

    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502
    error_code = "upstream_failure"

    def __init__(self, message: str = "Upstream service failed"):
        super().__init__(message)


class UpstreamTimeoutError(UpstreamFailureError):
    """Raised when an upstream call exceeded its time budget.

    Maps to HTTP 504 Gateway Timeout.
    """
    status_code = 504
    error_code = "upstream_timeout"

    def __init__(self, message: str = "Upstream service timed out"):
        super().__init__(message)


class DatabaseError(QbotException):
    """Raised by routes when the data store fails; the cause is logged, not returned."""
    status_code = 500
    error_code = "database_error"

    def __init__(self, message: str = "Database error occurred"):
        super().__init__(message)
