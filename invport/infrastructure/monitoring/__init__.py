"""Monitoring: Prometheus metrics and dependency health checks."""
