"""
Probability utilities for classifier output.

Turns a raw model output vector into a stable probability distribution and
selects the top-K positions:
- Non-finite entries are zeroed before anything else
- Vectors that already look like a distribution are kept as-is
- Everything else goes through a max-shifted softmax
"""

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from position_predictor.models.enums import NormalizationMethod
from position_predictor.models.output_models import PositionProbability
from position_predictor.models.pitch import label_for_index


DEFAULT_SUM_TOLERANCE = 0.05


@dataclass(frozen=True)
class NormalizedOutput:
    """Probabilities plus a record of how they were produced."""

    probabilities: np.ndarray
    method: NormalizationMethod
    non_finite_count: int = 0


def sanitize(values: Sequence[float] | np.ndarray) -> tuple[np.ndarray, int]:
    """
    Flatten to float64 and replace NaN / ±inf with 0.

    Returns:
        (sanitized vector, number of replaced entries)
    """
    arr = np.asarray(values, dtype=np.float64).ravel()
    finite = np.isfinite(arr)
    non_finite_count = int(arr.size - np.count_nonzero(finite))
    if non_finite_count:
        arr = np.where(finite, arr, 0.0)
    return arr, non_finite_count


def is_probability_distribution(
    values: Sequence[float] | np.ndarray,
    tolerance: float = DEFAULT_SUM_TOLERANCE,
) -> bool:
    """
    True when every value lies in [0, 1] and the sum is within
    `tolerance` of 1.

    Examples:
        >>> is_probability_distribution([0.2, 0.8])
        True
        >>> is_probability_distribution([0.5, 0.4])
        False
    """
    arr = np.asarray(values, dtype=np.float64).ravel()
    if arr.size == 0 or not np.all(np.isfinite(arr)):
        return False
    if np.any(arr < 0.0) or np.any(arr > 1.0):
        return False
    return abs(float(arr.sum()) - 1.0) <= tolerance


def softmax(values: Sequence[float] | np.ndarray) -> np.ndarray:
    """
    Numerically stable softmax.

    The max is subtracted before exponentiating, so large logits never
    overflow. Input must be finite (see `sanitize`).
    """
    arr = np.asarray(values, dtype=np.float64).ravel()
    if arr.size == 0:
        return arr
    exps = np.exp(arr - arr.max())
    return exps / exps.sum()


def normalize(
    values: Sequence[float] | np.ndarray,
    tolerance: float = DEFAULT_SUM_TOLERANCE,
) -> NormalizedOutput:
    """
    Turn raw model output into a probability distribution.

    Idempotent: feeding the returned probabilities back in yields the same
    vector, since both branches produce a valid distribution.

    Args:
        values: Raw model output (logits or probabilities)
        tolerance: Allowed deviation of the sum from 1 for the identity path

    Returns:
        NormalizedOutput with probabilities, method and non-finite count
    """
    arr, non_finite_count = sanitize(values)

    if arr.size == 0 or is_probability_distribution(arr, tolerance):
        return NormalizedOutput(arr, NormalizationMethod.IDENTITY, non_finite_count)

    return NormalizedOutput(softmax(arr), NormalizationMethod.SOFTMAX, non_finite_count)


def top_k(
    probabilities: Sequence[float] | np.ndarray,
    labels: Sequence[str],
    k: int = 3,
) -> list[PositionProbability]:
    """
    Pair probabilities with labels by position and keep the K largest.

    Sorting is descending and stable, so ties keep their original index
    order. Fewer than K entries are returned when there are fewer classes.

    Args:
        probabilities: Normalized probabilities, one per model output
        labels: Position labels in model output order
        k: Number of entries to return

    Returns:
        Ranked list of PositionProbability (length min(k, len(probabilities)))
    """
    probs = np.asarray(probabilities, dtype=np.float64).ravel()
    if k <= 0 or probs.size == 0:
        return []

    ranked = sorted(range(probs.size), key=lambda i: -probs[i])
    return [
        PositionProbability(
            label=label_for_index(i, labels),
            index=i,
            probability=min(max(float(probs[i]), 0.0), 1.0),
        )
        for i in ranked[:k]
    ]
