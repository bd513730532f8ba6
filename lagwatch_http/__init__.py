"""HTTP API and Prometheus-format metrics endpoint for monitoring consumer group lag."""

__version__ = "0.1.0"