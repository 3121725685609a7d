"""Configuration loader for devmetrics services.

Provides shared configuration dataclasses and environment variable helpers
used by the provider clients, the metrics aggregator and the API.

All service configurations are centralized here to avoid duplication.

Exports:
    - ConfigError: Exception for configuration errors
    - _get_env, _int_env, _float_env, _optional_env, _url_env: Environment helpers
    - GitLabConfig, FlowluConfig, ClockifyConfig: Provider credentials
    - MetricsConfig: Named task-tracker constants used by the aggregator
    - FirestoreConfig, MonitoringConfig: Document store and monitoring API
    - DashboardSettings: Combined settings for the dashboard API
    - load_dashboard_settings: Load dashboard settings from environment
    - load_firestore_config, load_monitoring_config: Standalone loaders
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional


class ConfigError(Exception):
    """Raised when required configuration is missing or invalid."""


def _get_env(key: str, default: Optional[str] = None, required: bool = False) -> str:
    value = os.getenv(key, default)
    if required and (value is None or value == ""):
        raise ConfigError(f"Missing required environment variable: {key}")
    if value is None:
        raise ConfigError(f"Environment variable {key} is not set and no default provided")
    if value == "" and default is None:
        raise ConfigError(f"Environment variable {key} is empty and no default provided")
    return value


def _int_env(key: str, default: int) -> int:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid int for {key}: {raw}") from exc


def _float_env(key: str, default: float) -> float:
    raw = os.getenv(key)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid float for {key}: {raw}") from exc


def _optional_env(key: str) -> Optional[str]:
    value = os.getenv(key)
    if value is None or value == "":
        return None
    return value


def _url_env(key: str) -> str:
    value = _get_env(key, required=True).rstrip("/")
    if not value.startswith(("http://", "https://")):
        raise ConfigError(f"Invalid URL for {key}: {value}")
    return value


# Default values for provider clients
DEFAULT_REQUEST_TIMEOUT_SEC = 30.0
DEFAULT_FLOWLU_MIN_REQUEST_INTERVAL_SEC = 1.0
DEFAULT_FLOWLU_RETRY_DELAY_SEC = 2.0
DEFAULT_FLOWLU_MAX_ATTEMPTS = 3
DEFAULT_FLOWLU_TASK_REF_FIELD = "cf_8"
DEFAULT_FLOWLU_PROJECT_REF_FIELD = "cf_9"


@dataclass
class GitLabConfig:
    """Source-control host credentials."""

    gitlab_url: str
    project_id: str
    private_token: str
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SEC

    @property
    def api_base_url(self) -> str:
        """REST v4 base URL, tolerating a GITLAB_URL that already points at /api."""
        return self.gitlab_url.split("/api")[0].rstrip("/") + "/api/v4"


@dataclass
class FlowluConfig:
    """Task-tracker credentials and client-side rate limiting.

    Attributes:
        api_key: Flowlu API key, sent as the ``api_key`` query parameter.
        api_url: Base URL of the Flowlu REST API (e.g. https://acme.flowlu.com/api/v1/module).
        min_request_interval: Minimum spacing between two requests, in seconds.
        retry_delay: Fixed backoff after an HTTP 429, in seconds.
        max_attempts: Total attempts for a rate-limited request.
        task_ref_field: Custom field holding the time-tracker task id.
        project_ref_field: Custom field holding the time-tracker project id.
    """

    api_key: str
    api_url: str
    min_request_interval: float = DEFAULT_FLOWLU_MIN_REQUEST_INTERVAL_SEC
    retry_delay: float = DEFAULT_FLOWLU_RETRY_DELAY_SEC
    max_attempts: int = DEFAULT_FLOWLU_MAX_ATTEMPTS
    task_ref_field: str = DEFAULT_FLOWLU_TASK_REF_FIELD
    project_ref_field: str = DEFAULT_FLOWLU_PROJECT_REF_FIELD
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SEC


@dataclass
class ClockifyConfig:
    """Time-tracker credentials."""

    api_key: str
    workspace_id: str
    api_url: str
    min_request_interval: float = 0.0
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT_SEC


# Values below come from the task tracker's workflow configuration.
DEFAULT_IN_PROGRESS_STAGE_ID = 9
DEFAULT_COMPLETED_STAGE_ID = 10
DEFAULT_BUG_TYPE_ID = 2
DEFAULT_CRITICAL_BUG_ESTIMATE_HOURS = 8.0
DEFAULT_DASHBOARD_PROJECT_ID = 1


@dataclass
class MetricsConfig:
    """Named task-tracker constants used when aggregating metrics."""

    in_progress_stage_id: int = DEFAULT_IN_PROGRESS_STAGE_ID
    completed_stage_id: int = DEFAULT_COMPLETED_STAGE_ID
    bug_type_id: int = DEFAULT_BUG_TYPE_ID
    critical_bug_estimate_hours: float = DEFAULT_CRITICAL_BUG_ESTIMATE_HOURS
    dashboard_project_id: int = DEFAULT_DASHBOARD_PROJECT_ID


@dataclass
class FirestoreConfig:
    """Firestore connection configuration used by the monitoring log."""

    collection_prefix: str
    project_id: Optional[str] = None
    database_id: str = "(default)"


@dataclass
class MonitoringConfig:
    """Configuration for the monitoring API.

    api_key is optional so the write endpoints keep working in development;
    the read endpoints reject every request until it is set.
    """

    api_key: Optional[str]
    firestore: FirestoreConfig


@dataclass
class DashboardSettings:
    """Combined settings for the dashboard API."""

    gitlab: GitLabConfig
    flowlu: FlowluConfig
    clockify: ClockifyConfig
    metrics: MetricsConfig = field(default_factory=MetricsConfig)


def load_gitlab_config() -> GitLabConfig:
    return GitLabConfig(
        gitlab_url=_url_env("GITLAB_URL"),
        project_id=_get_env("GITLAB_PROJECT_ID", required=True),
        private_token=_get_env("GITLAB_PRIVATE_TOKEN", required=True),
        request_timeout=_float_env("GITLAB_REQUEST_TIMEOUT", default=DEFAULT_REQUEST_TIMEOUT_SEC),
    )


def load_flowlu_config() -> FlowluConfig:
    max_attempts = _int_env("FLOWLU_MAX_ATTEMPTS", default=DEFAULT_FLOWLU_MAX_ATTEMPTS)
    if max_attempts < 1:
        raise ConfigError(f"FLOWLU_MAX_ATTEMPTS must be at least 1: {max_attempts}")
    return FlowluConfig(
        api_key=_get_env("FLOWLU_API_KEY", required=True),
        api_url=_url_env("FLOWLU_API_URL"),
        min_request_interval=_float_env(
            "FLOWLU_MIN_REQUEST_INTERVAL", default=DEFAULT_FLOWLU_MIN_REQUEST_INTERVAL_SEC
        ),
        retry_delay=_float_env("FLOWLU_RETRY_DELAY", default=DEFAULT_FLOWLU_RETRY_DELAY_SEC),
        max_attempts=max_attempts,
        task_ref_field=_get_env("FLOWLU_TASK_REF_FIELD", default=DEFAULT_FLOWLU_TASK_REF_FIELD),
        project_ref_field=_get_env("FLOWLU_PROJECT_REF_FIELD", default=DEFAULT_FLOWLU_PROJECT_REF_FIELD),
        request_timeout=_float_env("FLOWLU_REQUEST_TIMEOUT", default=DEFAULT_REQUEST_TIMEOUT_SEC),
    )


def load_clockify_config() -> ClockifyConfig:
    return ClockifyConfig(
        api_key=_get_env("CLOCKIFY_API_KEY", required=True),
        workspace_id=_get_env("CLOCKIFY_WORKSPACE_ID", required=True),
        api_url=_url_env("CLOCKIFY_API_URL"),
        min_request_interval=_float_env("CLOCKIFY_MIN_REQUEST_INTERVAL", default=0.0),
        request_timeout=_float_env("CLOCKIFY_REQUEST_TIMEOUT", default=DEFAULT_REQUEST_TIMEOUT_SEC),
    )


def load_metrics_config() -> MetricsConfig:
    """Load the named workflow constants, falling back to the tracker defaults."""
    return MetricsConfig(
        in_progress_stage_id=_int_env("IN_PROGRESS_STAGE_ID", default=DEFAULT_IN_PROGRESS_STAGE_ID),
        completed_stage_id=_int_env("COMPLETED_STAGE_ID", default=DEFAULT_COMPLETED_STAGE_ID),
        bug_type_id=_int_env("BUG_TYPE_ID", default=DEFAULT_BUG_TYPE_ID),
        critical_bug_estimate_hours=_float_env(
            "CRITICAL_BUG_ESTIMATE_HOURS", default=DEFAULT_CRITICAL_BUG_ESTIMATE_HOURS
        ),
        dashboard_project_id=_int_env("DASHBOARD_PROJECT_ID", default=DEFAULT_DASHBOARD_PROJECT_ID),
    )


def load_dashboard_settings() -> DashboardSettings:
    """Load dashboard settings from environment variables.

    Raises:
        ConfigError: If required environment variables are missing or invalid.
    """
    return DashboardSettings(
        gitlab=load_gitlab_config(),
        flowlu=load_flowlu_config(),
        clockify=load_clockify_config(),
        metrics=load_metrics_config(),
    )


def load_firestore_config() -> FirestoreConfig:
    """Load Firestore configuration from environment variables."""
    return FirestoreConfig(
        collection_prefix=_get_env("FIRESTORE_COLLECTION_PREFIX", default="devmetrics_"),
        project_id=_optional_env("GOOGLE_CLOUD_PROJECT"),
        database_id=_get_env("FIRESTORE_DATABASE_ID", default="(default)"),
    )


def load_monitoring_config() -> MonitoringConfig:
    """Load monitoring API configuration from environment variables."""
    return MonitoringConfig(
        api_key=_optional_env("MONITORING_API_KEY"),
        firestore=load_firestore_config(),
    )
