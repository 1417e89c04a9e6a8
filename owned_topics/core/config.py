# owned_topics/core/config.py
import json
from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


@dataclass(frozen=True)
class BrokerConfig:
    """
    Connection settings handed to every short-lived Kafka client.

    Built once from `Settings` and passed into the admin manager, the drain
    controller and the publisher at construction.
    """

    bootstrap_servers: str = "localhost:9092"
    client_id: str = "owned-topics-api"
    api_version: str | None = None
    request_timeout_ms: int = 20_000
    api_version_auto_timeout_ms: int = 10_000
    security_protocol: str = "PLAINTEXT"
    sasl_mechanism: str | None = None
    sasl_plain_username: str | None = None
    sasl_plain_password: str | None = None
    ssl_cafile: str | None = None

    # topic creation (fixed, never caller-supplied)
    topic_partitions: int = 1
    topic_replication_factor: int = 1

    # drain sessions; consumer_group_id is a prefix, each session adds a random suffix
    consumer_group_id: str = "owned-topics-drain"
    drain_window_sec: float = 5.0
    drain_poll_timeout_ms: int = 250
    drain_buffer_size: int = 1_000

    def common_kwargs(self) -> dict:
        kw = dict(
            bootstrap_servers=self.bootstrap_servers.split(","),
            client_id=self.client_id,
            request_timeout_ms=self.request_timeout_ms,
            api_version_auto_timeout_ms=self.api_version_auto_timeout_ms,
            security_protocol=self.security_protocol,
        )
        if self.api_version:
            kw["api_version"] = tuple(int(p) for p in self.api_version.split("."))
        if self.security_protocol.startswith("SASL"):
            kw.update(
                sasl_mechanism=self.sasl_mechanism,
                sasl_plain_username=self.sasl_plain_username,
                sasl_plain_password=self.sasl_plain_password,
            )
        if self.security_protocol.endswith("SSL"):
            kw.update(ssl_cafile=self.ssl_cafile)
        return kw


class Settings(BaseSettings):
    """
    Central application settings loaded from environment variables (and .env).

    Notes
    -----
    - Every variable is prefixed with ``OWNED_TOPICS_``, e.g.
      ``OWNED_TOPICS_KAFKA_BOOTSTRAP=broker-1:9092,broker-2:9092``.
    - `cors_allow_origins` accepts JSON array or comma-separated string.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="OWNED_TOPICS_",
        extra="ignore",
    )

    # ---------- Kafka client/admin ----------
    kafka_bootstrap: str = Field("localhost:9092")
    kafka_api_version: str | None = None
    client_id: str = "owned-topics-api"

    # Client timeouts (ms)
    request_timeout_ms: int = 20_000
    api_version_auto_timeout_ms: int = 10_000

    # ---------- Security (set when using SASL/SSL) ----------
    security_protocol: str = "PLAINTEXT"   # e.g. "SASL_SSL", "SSL"
    sasl_mechanism: str | None = None
    sasl_plain_username: str | None = None
    sasl_plain_password: str | None = None
    ssl_cafile: str | None = None

    # ---------- Topics ----------
    topic_partitions: int = Field(default=1, ge=1)
    topic_replication_factor: int = Field(default=1, ge=1)

    # ---------- Drain ----------
    consumer_group_id: str = "owned-topics-drain"
    drain_window_sec: float = Field(
        default=5.0, gt=0,
        description="Fixed time a retrieval waits for messages before returning."
    )
    drain_poll_timeout_ms: int = Field(default=250, ge=1)
    drain_buffer_size: int = Field(default=1_000, ge=1)

    # ---------- Auth ----------
    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # ---------- HTTP ----------
    cors_allow_origins: Annotated[list[str] | None, NoDecode] = None
    log_level: str = "INFO"

    @field_validator("cors_allow_origins", mode="before")
    def _parse_cors_origins(cls, v):
        """Accept JSON array or comma-separated string."""
        if v is None:
            return None
        if isinstance(v, str):
            try:
                parsed = json.loads(v)  # JSON array
                if isinstance(parsed, list):
                    return [str(s).strip() for s in parsed if str(s).strip()]
            except ValueError:
                pass
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    def broker_config(self) -> BrokerConfig:
        return BrokerConfig(
            bootstrap_servers=self.kafka_bootstrap,
            client_id=self.client_id,
            api_version=self.kafka_api_version,
            request_timeout_ms=self.request_timeout_ms,
            api_version_auto_timeout_ms=self.api_version_auto_timeout_ms,
            security_protocol=self.security_protocol,
            sasl_mechanism=self.sasl_mechanism,
            sasl_plain_username=self.sasl_plain_username,
            sasl_plain_password=self.sasl_plain_password,
            ssl_cafile=self.ssl_cafile,
            topic_partitions=self.topic_partitions,
            topic_replication_factor=self.topic_replication_factor,
            consumer_group_id=self.consumer_group_id,
            drain_window_sec=self.drain_window_sec,
            drain_poll_timeout_ms=self.drain_poll_timeout_ms,
            drain_buffer_size=self.drain_buffer_size,
        )


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""
    return Settings()
