"""Data and configuration models for latmon.

Provides the monitoring value types and the validated pydantic
configuration tree.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, Field, field_validator, model_validator


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class Mode(str, Enum):
    """Block finality being monitored."""

    FINAL = "final"
    OPTIMISTIC = "optimistic"

    @property
    def block_segment(self) -> str:
        """Path segment of the per-height block endpoint for this mode."""
        return "block" if self is Mode.FINAL else "block_opt"

    @property
    def label(self) -> str:
        """Human readable label."""
        return "Finalized" if self is Mode.FINAL else "Optimistic"


class ChainId(str, Enum):
    """Chains served by the data API."""

    MAINNET = "mainnet"
    TESTNET = "testnet"

    @property
    def default_root_url(self) -> str:
        """Public API root for this chain."""
        return f"https://{self.value}.neardata.xyz"


class WidgetState(str, Enum):
    """Lifecycle of the monitor for the current epoch."""

    IDLE = "idle"
    RESOLVING = "resolving"
    STREAMING = "streaming"
    STALE = "stale"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Sample:
    """One latency observation for a block height."""

    block_height: int
    latency_seconds: float


@dataclass(frozen=True)
class SeriesStats:
    """Summary of the latencies currently in the series."""

    count: int = 0
    minimum: float | None = None
    maximum: float | None = None
    mean: float | None = None
    last: float | None = None

    @classmethod
    def from_samples(cls, samples: tuple[Sample, ...] | list[Sample]) -> SeriesStats:
        """Compute stats over ``samples`` (empty input gives an empty summary)."""
        if not samples:
            return cls()
        latencies = [s.latency_seconds for s in samples]
        return cls(
            count=len(latencies),
            minimum=min(latencies),
            maximum=max(latencies),
            mean=sum(latencies) / len(latencies),
            last=latencies[-1],
        )


class ApiConfig(BaseModel):
    """Data API configuration."""

    chain_id: ChainId = Field(default=ChainId.MAINNET, description="Chain to monitor")
    root_url: str | None = Field(
        default=None,
        description="API root URL (defaults to the public endpoint of chain_id)",
    )
    request_timeout: float = Field(
        default=10.0,
        gt=0.0,
        le=300.0,
        description="Total timeout of a single HTTP request in seconds",
    )

    @field_validator("root_url")
    @classmethod
    def validate_root_url(cls, v: str | None) -> str | None:
        """Require an http(s) URL and drop the trailing slash."""
        if v is None:
            return v
        if not v.startswith(("http://", "https://")):
            msg = f"root_url must start with http:// or https://, got {v!r}"
            raise ValueError(msg)
        return v.rstrip("/")

    @property
    def effective_root_url(self) -> str:
        """Configured root URL or the chain default."""
        return self.root_url or self.chain_id.default_root_url


class RetryConfig(BaseModel):
    """Retry policy for failed requests."""

    base_delay: float = Field(
        default=0.5, ge=0.0, le=60.0, description="Delay before the first retry (s)"
    )
    multiplier: float = Field(
        default=1.0, ge=1.0, le=10.0, description="Delay multiplier per retry"
    )
    max_delay: float = Field(
        default=30.0, ge=0.0, le=3600.0, description="Upper bound on a single delay (s)"
    )
    jitter: float = Field(
        default=0.0, ge=0.0, le=1.0, description="Relative jitter applied to delays"
    )
    max_attempts: int | None = Field(
        default=None,
        ge=1,
        description="Retries before giving up (None retries forever)",
    )


class PollerConfig(BaseModel):
    """Poller configuration."""

    max_iterations: int = Field(
        default=300,
        ge=1,
        le=1_000_000,
        description="Heights walked per run before the poller stops",
    )
    retry: RetryConfig = Field(default_factory=RetryConfig, description="Retry policy")


class SeriesConfig(BaseModel):
    """Sliding window configuration."""

    max_length: int = Field(
        default=30, ge=1, le=10_000, description="Samples kept in the window"
    )


class DashboardConfig(BaseModel):
    """Terminal dashboard configuration."""

    default_mode: Mode = Field(default=Mode.FINAL, description="Mode selected at startup")
    unhealthy_latency: float = Field(
        default=5.0,
        gt=0.0,
        description="Latency in seconds above which samples are highlighted",
    )
    bar_width: int = Field(
        default=40, ge=5, le=200, description="Width of the latency bars in cells"
    )


class ObservabilityConfig(BaseModel):
    """Observability configuration."""

    log_level: LogLevel = Field(default=LogLevel.INFO, description="Log level")
    log_file: str | None = Field(None, description="Log file path")
    structured_logging: bool = Field(
        default=False, description="Write JSON records to the log file"
    )
    log_correlation_id: bool = Field(
        default=True,
        description="Include correlation IDs",
    )


class Config(BaseModel):
    """Main configuration model."""

    api: ApiConfig = Field(default_factory=ApiConfig, description="Data API configuration")
    poller: PollerConfig = Field(
        default_factory=PollerConfig, description="Poller configuration"
    )
    series: SeriesConfig = Field(
        default_factory=SeriesConfig, description="Sliding window configuration"
    )
    dashboard: DashboardConfig = Field(
        default_factory=DashboardConfig, description="Dashboard configuration"
    )
    observability: ObservabilityConfig = Field(
        default_factory=ObservabilityConfig,
        description="Observability configuration",
    )

    @model_validator(mode="after")
    def validate_retry_bounds(self) -> Config:
        """Reject a base delay larger than the delay cap."""
        retry = self.poller.retry
        if retry.base_delay > retry.max_delay:
            msg = "poller.retry.base_delay must not exceed poller.retry.max_delay"
            raise ValueError(msg)
        return self
