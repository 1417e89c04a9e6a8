"""Global reusable FastAPI dependencies (JWT identity, services)."""
from fastapi import Header, Request

from owned_topics.core.security import TokenValidationError, owner_from_token
from owned_topics.domain.services.topic_service import TopicService


async def require_owner(
    authorization: str | None = Header(default=None, alias="Authorization")
) -> str:
    """Validate a Bearer JWT and return the caller's owner id."""
    if not authorization or not authorization.startswith("Bearer "):
        raise TokenValidationError("Missing token")
    token = authorization.removeprefix("Bearer ").strip()
    return owner_from_token(token)


def get_topic_service(request: Request) -> TopicService:
    """Return the service wired up in the application lifespan."""
    return request.app.state.topic_service
