"""
Configuration Module
====================

Application settings and configuration management using Pydantic.

Infrastructure settings (database, provider credentials, schedulers) come
from the environment. Runtime AI behaviour (thresholds, model, timeouts)
lives in ``ai_settings.yaml`` and is handled by
``helpdesk_ai.config.ai_settings``.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from functools import lru_cache
from pathlib import Path
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Uses Pydantic for validation and type safety.
    """

    # ========== Application ==========
    app_name: str = Field(default="helpdesk-ai", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    environment: str = Field(default="development", description="Environment name")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Root log level")

    # ========== Server ==========
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=8000, description="Server port", ge=1, le=65535)

    # ========== Database ==========
    database_url: str = Field(
        default="postgresql+asyncpg://localhost:5432/helpdesk",
        description="PostgreSQL connection URL (async)"
    )
    db_pool_size: int = Field(default=5, description="Database connection pool size", ge=1)
    db_max_overflow: int = Field(default=10, description="Max overflow connections", ge=0)

    # ========== AI Settings ==========
    ai_settings_path: Path = Field(
        default=Path("ai_settings.yaml"),
        description="Path to runtime AI settings YAML file"
    )

    # ========== Model Providers ==========
    bedrock_api_key: Optional[str] = Field(
        default=None,
        description="Bedrock API key (bearer token) for the runtime invoke endpoint"
    )
    bedrock_region: str = Field(
        default="us-east-1",
        description="Bedrock region used to build the default endpoint URL"
    )
    bedrock_endpoint_url: Optional[str] = Field(
        default=None,
        description="Override for the Bedrock runtime endpoint (e.g. a VPC endpoint)"
    )
    openai_api_key: Optional[str] = Field(
        default=None,
        description="OpenAI API key for gpt-* models"
    )
    openai_base_url: Optional[str] = Field(
        default=None,
        description="Optional OpenAI-compatible base URL"
    )
    mock_llm: bool = Field(
        default=False,
        description="Use mock model responses (no provider calls)"
    )
    provider_failure_threshold: int = Field(
        default=5,
        description="Consecutive provider failures before the circuit opens",
        ge=1
    )
    provider_recovery_timeout: float = Field(
        default=60.0,
        description="Seconds the provider circuit stays open",
        ge=1.0
    )

    # ========== Background Jobs ==========
    scheduler_enabled: bool = Field(
        default=True,
        description="Run background mining and counter pruning jobs"
    )
    learning_interval_hours: int = Field(
        default=24,
        description="Hours between scheduled knowledge mining runs",
        ge=1
    )
    counter_prune_interval_seconds: int = Field(
        default=300,
        description="Seconds between throttle counter pruning",
        ge=10
    )

    # ========== CORS ==========
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:8080"],
        description="Allowed CORS origins"
    )

    # ========== Grafana OTLP Metrics ==========
    grafana_host: Optional[str] = Field(
        default=None,
        description="Grafana OTLP gateway URL (e.g., https://otlp-gateway-prod-ap-south-1.grafana.net)"
    )
    grafana_api_key: Optional[str] = Field(
        default=None,
        description="Grafana API key for OTLP authentication"
    )
    grafana_instance_id: Optional[str] = Field(
        default=None,
        description="Grafana instance ID for OTLP authentication"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Ensure environment is one of allowed values."""
        allowed = {"development", "staging", "production"}
        if v not in allowed:
            raise ValueError(f"environment must be one of {allowed}")
        return v


@lru_cache()
def get_settings() -> Settings:
    """Returns cached Settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


# ========== Constants ==========

class Complexity(str):
    """Complexity levels reported by ticket analysis."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Priority(str):
    """Ticket priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TicketCategory(str):
    """Ticket categories."""
    BUG = "bug"
    FEATURE = "feature"
    SUPPORT = "support"
    ENHANCEMENT = "enhancement"
    INCIDENT = "incident"
    REQUEST = "request"


class TicketStatus(str):
    """Ticket lifecycle statuses."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class QueueStatus(str):
    """Learning queue item states."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class ArticleStatus(str):
    """Knowledge article publication states."""
    DRAFT = "draft"
    PUBLISHED = "published"


# Author id used for comments and assignments made by the engine
AI_ASSISTANT_ID = "ai-assistant"
# Author id for articles synthesized by the miner
AI_LEARNING_ID = "ai-learning"


# ========== Lists for validation ==========

VALID_COMPLEXITIES = [
    Complexity.LOW, Complexity.MEDIUM,
    Complexity.HIGH, Complexity.CRITICAL
]
VALID_PRIORITIES = [
    Priority.LOW, Priority.MEDIUM,
    Priority.HIGH, Priority.URGENT
]
VALID_CATEGORIES = [
    TicketCategory.BUG, TicketCategory.FEATURE, TicketCategory.SUPPORT,
    TicketCategory.ENHANCEMENT, TicketCategory.INCIDENT, TicketCategory.REQUEST
]
VALID_QUEUE_STATUSES = [
    QueueStatus.PENDING, QueueStatus.PROCESSING,
    QueueStatus.COMPLETED, QueueStatus.FAILED
]
