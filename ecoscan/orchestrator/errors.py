"""Error codes and exception taxonomy for the scan flow.

Classification failures are surfaced to the caller with an HTTP-style status.
Model output that cannot be parsed is recovered inside normalization and
persistence failures are logged by the pipeline; neither reaches the user.
"""

ERR_INPUT = "INPUT_ERROR"
ERR_RATE_LIMITED = "UPSTREAM_RATE_LIMITED"
ERR_QUOTA = "UPSTREAM_QUOTA_EXHAUSTED"
ERR_UPSTREAM = "UPSTREAM_UNAVAILABLE"
ERR_MALFORMED = "MALFORMED_MODEL_OUTPUT"
ERR_PERSISTENCE = "PERSISTENCE_ERROR"
ERR_BUSY = "BUSY"
ERR_CANCELLED = "CANCELLED"
ERR_UNKNOWN = "UNKNOWN"


class EcoScanError(Exception):
    status_code = 500
    error_code = ERR_UNKNOWN
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.default_message())

    @classmethod
    def default_message(cls) -> str:
        return "Failed to analyze image"


class InputError(EcoScanError):
    status_code = 400
    error_code = ERR_INPUT

    @classmethod
    def default_message(cls) -> str:
        return "No image provided"


class UpstreamError(EcoScanError):
    status_code = 500
    error_code = ERR_UPSTREAM


class UpstreamRateLimited(UpstreamError):
    status_code = 429
    error_code = ERR_RATE_LIMITED
    retryable = True

    @classmethod
    def default_message(cls) -> str:
        return "Rate limit exceeded. Please try again in a moment."


class UpstreamQuotaExhausted(UpstreamError):
    status_code = 402
    error_code = ERR_QUOTA

    @classmethod
    def default_message(cls) -> str:
        return "AI credits exhausted. Please add credits to continue."


class UpstreamUnavailable(UpstreamError):
    retryable = True


class MalformedModelOutput(EcoScanError):
    error_code = ERR_MALFORMED


class PersistenceError(EcoScanError):
    error_code = ERR_PERSISTENCE

    @classmethod
    def default_message(cls) -> str:
        return "Could not save scan progress"


class SessionBusy(EcoScanError):
    status_code = 409
    error_code = ERR_BUSY

    @classmethod
    def default_message(cls) -> str:
        return "busy"
