"""Application configuration."""

from pydantic import BaseModel, Field


class AppConfig(BaseModel):
    """
    Runtime configuration for the core services.

    Secrets (database URL) come from Vault; these are the tunables.
    """

    # Connection pool
    pool_min_connections: int = Field(
        default=2,
        description="Connections opened eagerly per database URL",
        ge=1,
        le=10,
    )
    pool_max_connections: int = Field(
        default=20,
        description="Upper bound on pooled connections per database URL",
        ge=2,
        le=200,
    )
    connect_timeout_seconds: int = Field(
        default=30,
        description="TCP connect timeout for new connections",
        ge=1,
        le=120,
    )

    # Numbering
    numbering_timezone: str = Field(
        default="UTC",
        description="IANA timezone whose calendar date fills {YYYY}/{MM}/{DD}",
    )
