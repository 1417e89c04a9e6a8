import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from owned_topics.core.exceptions import OwnedTopicsError, ProblemDetail
from owned_topics.core.security import TokenValidationError

logger = logging.getLogger(__name__)

PROBLEM_JSON = "application/problem+json"


def _problem(status: int, title: str, detail: str | None) -> JSONResponse:
    body = ProblemDetail(type="about:blank", status=status, title=title, detail=detail)
    return JSONResponse(status_code=status, content=body.model_dump(mode="json"), media_type=PROBLEM_JSON)


def install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(OwnedTopicsError)
    async def topic_error_handler(_: Request, exc: OwnedTopicsError):
        problem = exc.to_problem()
        return JSONResponse(
            status_code=problem.status,
            content=problem.model_dump(mode="json"),
            media_type=PROBLEM_JSON,
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(_: Request, exc: ValueError):
        return _problem(400, "Bad Request", str(exc))

    @app.exception_handler(TokenValidationError)
    async def token_error_handler(_: Request, exc: TokenValidationError):
        response = _problem(401, "Unauthorized", str(exc))
        response.headers["WWW-Authenticate"] = "Bearer"
        return response

    # Catch-all
    @app.exception_handler(Exception)
    async def unhandled(_: Request, exc: Exception):
        logger.exception("Unhandled error")
        return _problem(500, "Internal Server Error", str(exc))
