"""Release, task and time-tracking dashboards over GitLab, Flowlu and Clockify."""

__version__ = "0.1.0"
