"""Custom Prometheus metrics for the Position Predictor.

These metrics are exposed at /metrics endpoint and should be scraped by Prometheus.
Alert rules should be configured for:
- model_loads_total (failed loads leave the predictor without a model)
- non_finite_outputs_total (model emitting NaN/inf indicates a broken artifact)
"""

from prometheus_client import Counter, Histogram

# === Prediction Metrics ===

predictions_total = Counter(
    "predictions_total",
    "Total prediction requests by outcome",
    ["status"],
)
"""
Prediction counter.

Labels:
- status: success, invalid_input, not_loaded, error
"""

predicted_position_total = Counter(
    "predicted_position_total",
    "Best predicted position by label",
    ["position"],
)
"""
Distribution of best positions.

Labels:
- position: GK, RB, ..., SW or Class{i} for unlabeled outputs

A distribution collapsing onto one label usually means the inputs are not
scaled the way the model was trained.
"""

prediction_latency_seconds = Histogram(
    "prediction_latency_seconds",
    "Forward pass plus post-processing latency in seconds",
    buckets=[0.0005, 0.001, 0.0025, 0.005, 0.01, 0.025, 0.05, 0.1],
)

non_finite_outputs_total = Counter(
    "non_finite_outputs_total",
    "Model output entries replaced because they were NaN or infinite",
)

# === Model Lifecycle Metrics ===

model_loads_total = Counter(
    "model_loads_total",
    "Model load attempts by source and outcome",
    ["source", "success"],
)
"""
Model load attempts.

Labels:
- source: local, url, upload
- success: true, false
"""
