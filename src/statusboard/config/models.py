"""Pydantic models for statusboard configuration."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


class SiteConfig(BaseModel):
    """Public identity of the status page."""

    title: str = "Status Page"
    version: str = "0.1.0"


class MonitorConfig(BaseModel):
    """Probe cycle tuning."""

    interval_seconds: int = Field(default=60, ge=1)
    probe_timeout: float = Field(default=8.0, gt=0)
    window_days: int = Field(default=90, ge=1)
    concurrency: int = Field(default=1, ge=1)  # 1 = sequential


class ServiceEntry(BaseModel):
    """A service declared in the config file, synced into the store by key."""

    name: str
    url: str
    description: str = ""
    pinned: bool = False


class AuthConfig(BaseModel):
    """Authentication configuration."""

    api_key: str = ""  # admin endpoints; empty = auth disabled
    cron_secret: str = ""  # bearer token for /monitor-cycle; empty = auth disabled


class StoreConfig(BaseModel):
    backend: Literal["sqlite", "memory"] = "sqlite"
    db_path: str = "statusboard.db"


class WebhookConfig(BaseModel):
    """Configuration for a single webhook endpoint."""

    url: str
    events: list[str] = Field(default_factory=lambda: ["incident.opened", "incident.resolved"])
    secret: str = ""  # HMAC signing key, supports ${ENV_VAR}


class StatusboardConfig(BaseModel):
    """Root configuration model for .statusboard.yaml."""

    site: SiteConfig = Field(default_factory=SiteConfig)
    monitor: MonitorConfig = Field(default_factory=MonitorConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    services: dict[str, ServiceEntry] = Field(default_factory=dict)
    webhooks: list[WebhookConfig] = Field(default_factory=list)
    event_log_size: int = 100
