"""Analytics errors and their FastAPI handlers.

Query validation runs before any data is fetched, and no error is recovered
locally: the request fails as a whole and is rendered as a problem document.
"""

from typing import Any, ClassVar

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from commerce_insights.core.logging import get_logger
from commerce_insights.core.problem_details import ProblemJSONResponse, render_problem

logger = get_logger(__name__)


class CommerceInsightsError(Exception):
    """Base for errors that map onto a problem document.

    Subclasses only declare ``code``, ``status_code`` and a default message.
    """

    code: ClassVar[str] = "INTERNAL_ERROR"
    status_code: ClassVar[int] = 500
    default_message: ClassVar[str] = "Internal error"

    def __init__(self, message: str | None = None, details: dict[str, Any] | None = None) -> None:
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    @property
    def title(self) -> str:
        return self.code.replace("_", " ").title()


class InvalidPresetError(CommerceInsightsError):
    """Unknown or absent preset.

    Valid presets are ``this-month``, ``last-month``, ``last-3-months`` and
    ``custom``.
    """

    code = "INVALID_PRESET"
    status_code = 400
    default_message = "Invalid preset value"


class MissingBoundError(CommerceInsightsError):
    """``date_from`` or ``date_to`` absent where a custom range is required."""

    code = "MISSING_BOUND"
    status_code = 400
    default_message = "Both date_from and date_to are required"


class InvalidDateError(CommerceInsightsError):
    """Unparseable date bound or record timestamp, or an inverted range.

    Reported as a server error: bounds are not checked at the HTTP boundary,
    only once the range is resolved.
    """

    code = "INVALID_DATE"
    status_code = 500
    default_message = "Invalid date"


class UpstreamUnavailableError(CommerceInsightsError):
    """The exchange-rate provider or the commerce database failed. Not retried."""

    code = "UPSTREAM_UNAVAILABLE"
    status_code = 503
    default_message = "Upstream service unavailable"


async def handle_commerce_insights_error(
    request: Request, exc: CommerceInsightsError
) -> ProblemJSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        "app.request_failed",
        error_code=exc.code,
        status_code=exc.status_code,
        error=exc.message,
        details=exc.details,
        path=request.url.path,
    )
    return render_problem(
        exc.status_code, exc.code, exc.title, exc.message, context=exc.details
    )


async def handle_request_validation_error(
    request: Request, exc: RequestValidationError
) -> ProblemJSONResponse:
    """Flatten FastAPI validation errors into ``{field, message, type}`` entries."""
    errors = [
        {
            "field": ".".join(str(part) for part in err.get("loc", ()) if part not in ("query", "body")),
            "message": str(err.get("msg", "")),
            "type": str(err.get("type", "")),
        }
        for err in exc.errors()
    ]
    logger.warning(
        "app.request_invalid",
        path=request.url.path,
        fields=[e["field"] for e in errors],
    )
    return render_problem(
        422,
        "VALIDATION_ERROR",
        "Validation Error",
        f"{len(errors)} invalid request parameter(s)",
        errors=errors,
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> ProblemJSONResponse:
    """Generic 500; the message of the original exception is only logged."""
    logger.error(
        "app.unhandled_error",
        error=str(exc),
        error_type=type(exc).__name__,
        path=request.url.path,
        exc_info=exc,
    )
    return render_problem(
        500,
        "INTERNAL_ERROR",
        "Internal Server Error",
        "An unexpected error occurred. Contact support with the request_id.",
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(CommerceInsightsError, handle_commerce_insights_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
