"""RFC 7807 problem documents.

Every error leaving the service is ``application/problem+json``. Dashboard
clients branch on ``code``; ``context`` carries the structured details of the
failure (the rejected preset, the missing bounds) for display.

Reference: https://datatracker.ietf.org/doc/html/rfc7807
"""

from typing import Any

from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from commerce_insights.core.logging import request_id_ctx

PROBLEM_TYPE_PREFIX = "/errors"


def problem_type(code: str) -> str:
    """Type URI for an error code: ``INVALID_PRESET`` -> ``/errors/invalid-preset``."""
    return f"{PROBLEM_TYPE_PREFIX}/{code.lower().replace('_', '-')}"


class ProblemDocument(BaseModel):
    """Problem document with the ``code``, ``request_id``, ``context`` and
    ``errors`` extension members."""

    model_config = ConfigDict(extra="forbid")

    type: str
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: str | None = None
    instance: str | None = None
    code: str
    request_id: str | None = None
    context: dict[str, Any] | None = None
    errors: list[dict[str, str]] | None = None


class ProblemJSONResponse(JSONResponse):
    media_type = "application/problem+json"


def render_problem(
    status: int,
    code: str,
    title: str,
    detail: str | None = None,
    *,
    context: dict[str, Any] | None = None,
    errors: list[dict[str, str]] | None = None,
) -> ProblemJSONResponse:
    """Render a problem response for the current request.

    The request id bound by the middleware becomes both ``request_id`` and the
    ``instance`` reference. Empty ``context`` and ``errors`` are omitted.
    """
    request_id = request_id_ctx.get()
    document = ProblemDocument(
        type=problem_type(code),
        title=title,
        status=status,
        detail=detail,
        instance=f"/requests/{request_id}" if request_id else None,
        code=code,
        request_id=request_id,
        context=context or None,
        errors=errors or None,
    )
    return ProblemJSONResponse(
        status_code=status,
        content=document.model_dump(mode="json", exclude_none=True),
    )
