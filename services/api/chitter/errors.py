"""
Error taxonomy shared by every component.

Each failure carries a stable machine-readable `kind` (and, for the
narrower cases, a `reason`) plus a human-readable message. The FastAPI
handlers registered by `register_error_handlers` render them as

  { "error": <message>, "kind": <kind>, "reason": <reason | null> }
"""
import logging
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class ChitterError(Exception):
    kind = "Internal"
    reason: Optional[str] = None
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind, "reason": self.reason}


class InvalidInput(ChitterError):
    kind = "InvalidInput"
    status_code = status.HTTP_400_BAD_REQUEST


class SelfFollow(InvalidInput):
    reason = "SelfFollow"


class NotFound(ChitterError):
    kind = "NotFound"
    status_code = status.HTTP_404_NOT_FOUND


class NotFollowing(NotFound):
    reason = "NotFollowing"


class Unauthorized(ChitterError):
    kind = "Unauthorized"
    status_code = status.HTTP_401_UNAUTHORIZED


class InvalidCredentials(Unauthorized):
    reason = "InvalidCredentials"


class NotOwner(Unauthorized):
    """Authenticated, but not the owner of the resource being mutated."""
    reason = "NotOwner"
    status_code = status.HTTP_403_FORBIDDEN


class Conflict(ChitterError):
    kind = "Conflict"
    status_code = status.HTTP_409_CONFLICT


class DuplicateEmail(Conflict):
    reason = "DuplicateEmail"


class AlreadyFollowing(Conflict):
    reason = "AlreadyFollowing"


class StoreUnavailable(ChitterError):
    kind = "StoreUnavailable"
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


async def _chitter_error_handler(request: Request, exc: ChitterError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    problems = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "body")
        problems.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", ""))
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=InvalidInput("; ".join(problems) or "Invalid request").to_dict(),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ChitterError, _chitter_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_error_handler)
