"""
Derived value objects.

Immutable snapshots handed from one component to the next: indicator values
for the decision layer and the telemetry view for observers.
"""

from .indicators import IndicatorSnapshot
from .telemetry import TelemetrySnapshot

__all__ = ["IndicatorSnapshot", "TelemetrySnapshot"]
