# owned_topics/api/topics.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Path, status

from owned_topics.api.dependencies import get_topic_service, require_owner
from owned_topics.domain.models.topic import TopicMessages, TopicRecord
from owned_topics.domain.services.topic_service import TopicService
from owned_topics.models.messages import PublishMessageRequest, PublishMessageResponse
from owned_topics.models.topics import CreateTopicRequest, CreateTopicResponse

router = APIRouter(prefix="/topics", tags=["topics"])

# Routes are plain `def`: broker calls block, so FastAPI runs each request in
# its threadpool.


@router.post("", status_code=status.HTTP_201_CREATED, response_model=CreateTopicResponse)
def create_topic(
    req: CreateTopicRequest,
    owner_id: str = Depends(require_owner),
    svc: TopicService = Depends(get_topic_service),
):
    """Create a topic owned by the caller. 409 if it already exists."""
    record = svc.create(owner_id, req.name)
    return CreateTopicResponse(message="Topic created", topic=record)


@router.get("", response_model=list[TopicRecord])
def list_topics(
    owner_id: str = Depends(require_owner),
    svc: TopicService = Depends(get_topic_service),
):
    """Return the caller's topics only."""
    return svc.list(owner_id)


@router.get("/{topic_id}", response_model=TopicMessages)
def get_topic(
    topic_id: str = Path(..., min_length=1),
    owner_id: str = Depends(require_owner),
    svc: TopicService = Depends(get_topic_service),
):
    """
    Returns the topic's qualified name and the messages drained from it:
      { topic, messages: [{ key, value }, ...] }
    Blocks for the configured drain window. 404 when the topic does not exist
    or belongs to someone else.
    """
    return svc.get_with_messages(owner_id, topic_id)


@router.post(
    "/{topic_id}/messages",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=PublishMessageResponse,
)
def publish_message(
    req: PublishMessageRequest,
    topic_id: str = Path(..., min_length=1),
    owner_id: str = Depends(require_owner),
    svc: TopicService = Depends(get_topic_service),
):
    result = svc.publish(owner_id, topic_id, req.key, req.value)
    return PublishMessageResponse(**result.model_dump())
