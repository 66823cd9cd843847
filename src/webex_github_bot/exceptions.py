"""Error types for webhook processing and message relay."""

from typing import Any


class WebhookError(Exception):
    """Base class for errors that end a webhook request with an HTTP status."""

    status_code: int = 400
    detail: str = "Bad request"
    reason: str = "error"
    # Plain-text body unless the error renders as JSON
    json_body: bool = False

    def __init__(self, detail: str | None = None) -> None:
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)

    def body(self) -> dict[str, Any] | str:
        if self.json_body:
            return {"error": self.detail}
        return self.detail


class AuthRejectedError(WebhookError):
    """The request could not be authenticated."""

    status_code = 401
    detail = "Invalid signature"
    reason = "invalid_signature"


class SignatureMissingError(AuthRejectedError):
    detail = "Signature missing"
    reason = "missing_signature"


class SignatureInvalidError(AuthRejectedError):
    detail = "Invalid signature"
    reason = "invalid_signature"


class PayloadTooLargeError(WebhookError):
    status_code = 413
    detail = "Payload too large"
    reason = "too_large"


class MalformedPayloadError(WebhookError):
    status_code = 400
    detail = "Invalid JSON payload"
    reason = "malformed"
    json_body = True


class IncompleteEventError(WebhookError):
    """A supported event type arrived without the fields needed to format it."""

    status_code = 400
    detail = "Incomplete event payload"
    reason = "incomplete"
    json_body = True

    def __init__(self, event_type: str, missing: list[str]) -> None:
        self.event_type = event_type
        self.missing = missing
        super().__init__()

    def __str__(self) -> str:
        return f"{self.event_type} event missing fields: {', '.join(self.missing)}"

    def body(self) -> dict[str, Any]:
        return {"error": self.detail, "missing": self.missing}


class RelayError(Exception):
    """Sending a message to the chat space failed."""


class WebexAPIError(RelayError):
    """A Webex REST API call failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
