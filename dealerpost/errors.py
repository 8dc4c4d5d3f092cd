from typing import Optional

GENERIC_FAILURE_MESSAGE = "Failed to generate post. Please try again."


class PostGenerationError(Exception):
    """Base class for every failure the relay reports back to the browser.

    `status_code` and `public_message` are what the caller sees; the
    exception's own message is the server-side detail and is only logged.
    """

    status_code: int = 500
    public_message: str = GENERIC_FAILURE_MESSAGE


class InvalidRequest(PostGenerationError):
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.public_message = message


class MissingCredential(PostGenerationError):
    public_message = "Image generation is not configured on the server."


class RateLimited(PostGenerationError):
    status_code = 429
    public_message = "Rate limit exceeded. Please try again in a moment."


class QuotaExhausted(PostGenerationError):
    status_code = 402
    public_message = "AI credits exhausted. Please add credits to your workspace."


class NoImageProduced(PostGenerationError):
    pass


class UpstreamError(PostGenerationError):
    def __init__(self, upstream_status: int, body: str = ""):
        super().__init__(f"AI gateway error: {upstream_status}")
        self.upstream_status = upstream_status
        self.body = body


class TransportError(PostGenerationError):
    def __init__(self, reason: str, cause: Optional[Exception] = None):
        super().__init__(f"Could not reach AI gateway: {reason}")
        self.cause = cause
