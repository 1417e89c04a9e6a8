"""Error taxonomy plus RFC 7807 *Problem Details* support for FastAPI."""
from __future__ import annotations

from typing import Optional
from uuid import uuid4

from fastapi import status
from pydantic import BaseModel, ConfigDict, Field


class ProblemDetail(BaseModel):
    """Data model that serialises to RFC 7807 JSON.

    Attributes
    ----------
    type : str
        A URI reference that identifies the problem type.
    title : str
        A short human-readable summary of the problem type.
    status : int
        The HTTP status code.
    detail : str | None
        A human-readable explanation specific to this occurrence.
    instance : str
        A URI reference that identifies the specific occurrence.
    """

    model_config = ConfigDict(json_schema_extra={"required": ["type", "title", "status"]})

    type: str = Field(..., examples=["/errors/topic-conflict"])
    title: str
    status: int = Field(..., ge=400, le=599)
    detail: Optional[str] = None
    instance: str = Field(default_factory=lambda: f"urn:uuid:{uuid4()}")


class OwnedTopicsError(Exception):
    """Base class for errors raised by the topic core.

    Subclasses pin the HTTP status and problem type so the transport layer
    can render them without knowing each case.
    """

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    title: str = "Internal Server Error"
    type_: str = "about:blank"

    def __init__(self, detail: str | None = None) -> None:
        super().__init__(detail or self.title)
        self.detail = detail

    def to_problem(self) -> ProblemDetail:
        return ProblemDetail(
            type=self.type_,
            title=self.title,
            status=self.status_code,
            detail=self.detail,
        )


class TopicConflictError(OwnedTopicsError):
    """The qualified topic name already exists at the broker."""

    status_code = status.HTTP_409_CONFLICT
    title = "Topic already exists"
    type_ = "/errors/topic-conflict"


class TopicNotFoundError(OwnedTopicsError):
    """No topic record matches the id for this owner.

    Also covers records owned by someone else; callers cannot tell the two
    apart.
    """

    status_code = status.HTTP_404_NOT_FOUND
    title = "Topic not found"
    type_ = "/errors/topic-not-found"


class BrokerUnavailableError(OwnedTopicsError):
    """The broker could not be reached or failed the request."""

    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    title = "Broker unavailable"
    type_ = "/errors/broker-unavailable"
