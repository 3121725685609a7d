"""HTTP API for the dashboard and the monitoring log."""
