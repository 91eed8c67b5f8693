"""Monitoring and metrics instrumentation for the Position Predictor.

Exports custom Prometheus metrics for operational monitoring and alerting.
"""

from position_predictor.monitoring.metrics import (
    model_loads_total,
    non_finite_outputs_total,
    predicted_position_total,
    prediction_latency_seconds,
    predictions_total,
)

__all__ = [
    "predictions_total",
    "predicted_position_total",
    "prediction_latency_seconds",
    "non_finite_outputs_total",
    "model_loads_total",
]
