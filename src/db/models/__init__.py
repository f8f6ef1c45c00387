# SQLAlchemy models
from .base import Base
from .telemetry import TelemetryEventRecord

__all__ = [
    "Base",
    "TelemetryEventRecord",
]
