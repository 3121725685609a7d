"""Clients for the external project-management services.

Exports:
    - GitLabClient: tags, commit comparisons and branches (source control)
    - FlowluClient: projects, users and tasks (task tracker)
    - ClockifyClient: tracked durations (time tracker)
    - parse_duration, classify_duration: Clockify duration helpers
    - RateLimiter: client-side request spacing
"""

from devmetrics.providers.clockify_client import ClockifyClient, classify_duration, parse_duration
from devmetrics.providers.flowlu_client import FlowluClient
from devmetrics.providers.gitlab_client import UNKNOWN_BRANCH, GitLabClient
from devmetrics.providers.rate_limit import RateLimiter

__all__ = [
    "ClockifyClient",
    "FlowluClient",
    "GitLabClient",
    "RateLimiter",
    "UNKNOWN_BRANCH",
    "classify_duration",
    "parse_duration",
]
