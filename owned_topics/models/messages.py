from pydantic import BaseModel, Field


class PublishMessageRequest(BaseModel):
    key: str | None = None
    value: str = Field(..., max_length=1_000_000)


class PublishMessageResponse(BaseModel):
    topic: str
    partition: int
    offset: int
