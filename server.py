# server.py
import logging
from contextlib import asynccontextmanager
from functools import partial

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from owned_topics.api import topics as topics_router
from owned_topics.core.config import Settings, get_settings
from owned_topics.core.errors import install_exception_handlers
from owned_topics.domain.services.topic_service import TopicService
from owned_topics.infra.kafka.admin import KafkaAdminFacade
from owned_topics.infra.kafka.drain import DrainController
from owned_topics.infra.kafka.producer import KafkaPublisher
from owned_topics.services.store import InMemoryTopicStore

logger = logging.getLogger("owned_topics")


def setup_logging(level: str) -> None:
    lvl = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=lvl, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    logging.getLogger("kafka").setLevel(logging.WARNING)


def build_topic_service(settings: Settings) -> TopicService:
    """Wire the topic core from *settings*. No broker connection is opened here."""
    broker = settings.broker_config()
    return TopicService(
        admin=KafkaAdminFacade(broker),
        store=InMemoryTopicStore(),
        drain_factory=partial(DrainController, broker),
        publisher=KafkaPublisher(broker),
    )


def create_app(settings: Settings | None = None, service: TopicService | None = None) -> FastAPI:
    settings = settings or get_settings()

    # Lifespan handler replaces @app.on_event("startup"/"shutdown")
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.topic_service = service or build_topic_service(settings)
        logger.info("Serving owned topics against %s", settings.kafka_bootstrap)
        yield

    app = FastAPI(
        title="Owned Topics API",
        version="1.0.0",
        lifespan=lifespan,
        openapi_url="/api/v1/openapi.json",
        docs_url="/api/v1/docs",
        redoc_url="/api/v1/redoc",
    )

    # --- CORS: allow web-ui during development (configurable via settings.cors_allow_origins) ---
    allow_origins = settings.cors_allow_origins or [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    install_exception_handlers(app)

    app.include_router(topics_router.router, prefix="/api/v1")

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok"}

    return app


setup_logging(get_settings().log_level)
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("server:app", host="0.0.0.0", port=8000, reload=True)
