from pydantic import BaseModel, Field

from owned_topics.domain.models.topic import TopicRecord


class CreateTopicRequest(BaseModel):
    name: str = Field(
        ...,
        min_length=1,
        max_length=120,
        pattern=r"^[A-Za-z0-9_]+$",
        examples=["orders"],
        description="Short topic name; letters, digits and '_'",
    )


class CreateTopicResponse(BaseModel):
    message: str
    topic: TopicRecord
