"""DispatchResult - what a trigger gets back from a send."""

from pydantic import BaseModel, ConfigDict, Field

from urlhook.exceptions import URLHookError


class DispatchResult(BaseModel):
    """Outcome of one dispatch.

    Attributes:
        ok: True only for a 2xx response.
        status: HTTP status when a response was received.
        error: Classified, human-readable error message.
        can_retry: The send was suppressed as a duplicate; force-send is available.
        error_code: Machine-readable failure class (see urlhook.exceptions codes
            plus "client_error" and "transient_error").
    """

    model_config = ConfigDict(extra="forbid")

    ok: bool
    status: int | None = None
    error: str | None = None
    can_retry: bool = Field(default=False)
    error_code: str | None = None

    @classmethod
    def from_error(cls, exc: URLHookError, status: int | None = None) -> "DispatchResult":
        """Failure result carrying the exception's message and code."""
        return cls(
            ok=False,
            status=status,
            error=exc.message,
            error_code=exc.code,
        )
