from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Project Info
    PROJECT_NAME: str = "trafficnav"
    VERSION: str = "1.0.0"

    # Observability
    LOG_LEVEL: str = "INFO"

    # Search
    DEFAULT_ALGORITHM: str = "astar"
    MAX_HOPS: int = 3
    MAX_HOPS_CEILING: int = 4
    MULTI_HOP_MAX_NODES: int = 60
    MULTI_HOP_TIME_BUDGET_S: Optional[float] = None

    # Routing preferences (edge-weight transforms)
    HEAVY_TRAFFIC_PENALTY: float = 2.0
    BLOCKED_TRAFFIC_PENALTY: float = 10.0
    MODERATE_TRAFFIC_PENALTY: float = 1.3
    HIGHWAY_PREFERRED_FACTOR: float = 0.7
    HIGHWAY_AVOIDED_FACTOR: float = 1.2
    FASTEST_REFERENCE_SPEED: float = 35.0

    # Route metrics
    SPEED_DERATING: float = 0.6
    BASELINE_SPEED_KMH: float = 50.0
    CONGESTION_PENALTY: float = 10.0

    model_config = SettingsConfigDict(
        env_prefix="TRAFFICNAV_",
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @field_validator("LOG_LEVEL")
    @classmethod
    def _validate_log_level(cls, v: str) -> str:
        vv = v.strip().upper()
        if vv not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid LOG_LEVEL: {v}")
        return vv

    @field_validator("MAX_HOPS", "MAX_HOPS_CEILING", "MULTI_HOP_MAX_NODES")
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

settings = Settings()
