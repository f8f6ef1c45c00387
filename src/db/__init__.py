"""Persistence layer for gate telemetry."""
