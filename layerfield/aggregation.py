"""
Layerfield Aggregation — Neighborhood → Scalar

Every node folds its neighborhood back into one number. The fold is
picked by the node's mode:

    weighted        center + Σ(wᵢ·xᵢ) / Σwᵢ
    multiplicative  center · Π(1 + xᵢ)
    harmonic        center + n / Σ(1/|xᵢ|)              |x|=0 → 1
    exponential     center · mean(eˣⁱ)
    geometric       center · (Π|xᵢ|)^(1/n)              |x|=0 → 1
    median          center + median(x)
    minkowski       center + (Σ|xᵢ|ᵖ / n)^(1/p)          p=2 default
    entropy         center · (1 + H(|x| / Σ|x|))        H in bits

Rules:
    - No neighbors → center, for every mode
    - Unknown mode → center
    - Nothing here raises. Zero sums use divisor 1, overflow becomes inf/nan.

Pure functions only. Nodes are read, never written.
"""

import logging
from enum import Enum
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import numpy as np

from .field_constants import (
    MODE_WEIGHTED, MODE_MULTIPLICATIVE, MODE_HARMONIC, MODE_EXPONENTIAL,
    MODE_GEOMETRIC, MODE_MEDIAN, MODE_MINKOWSKI, MODE_ENTROPY,
    MINKOWSKI_P,
)

logger = logging.getLogger(__name__)


class AggregationMode(Enum):
    """How a node folds its neighborhood into a scalar."""
    WEIGHTED = MODE_WEIGHTED
    MULTIPLICATIVE = MODE_MULTIPLICATIVE
    HARMONIC = MODE_HARMONIC
    EXPONENTIAL = MODE_EXPONENTIAL
    GEOMETRIC = MODE_GEOMETRIC
    MEDIAN = MODE_MEDIAN
    MINKOWSKI = MODE_MINKOWSKI
    ENTROPY = MODE_ENTROPY


ModeLike = Union[AggregationMode, str]


def resolve_mode(mode: ModeLike) -> ModeLike:
    """
    Turn a mode name into its AggregationMode.

    Unknown names are returned unchanged so the node keeps them;
    compute() then falls back to the center value.
    """
    if isinstance(mode, AggregationMode):
        return mode
    try:
        return AggregationMode(mode)
    except ValueError:
        logger.debug(f"Unknown aggregation mode {mode!r}, node will report its center")
        return mode


def _aligned_weights(weights: Optional[Sequence[float]], n: int) -> np.ndarray:
    # Missing weights count as 1, extra weights are ignored
    aligned = np.ones(n, dtype=float)
    if weights is not None and len(weights):
        m = min(len(weights), n)
        aligned[:m] = np.asarray(weights[:m], dtype=float)
    return aligned


def _nonzero_magnitudes(values: np.ndarray) -> np.ndarray:
    mags = np.abs(values)
    mags[mags == 0] = 1.0
    return mags


# ═══════════════════════════════════════════════════════════════════════════════
# THE FOLDS
# ═══════════════════════════════════════════════════════════════════════════════

def _fold_weighted(center: float, values: np.ndarray, weights, p: float) -> float:
    w = _aligned_weights(weights, len(values))
    total = float(np.sum(w)) or 1.0
    return center + float(np.dot(w, values)) / total


def _fold_multiplicative(center: float, values: np.ndarray, weights, p: float) -> float:
    return center * float(np.prod(1.0 + values))


def _fold_harmonic(center: float, values: np.ndarray, weights, p: float) -> float:
    return center + len(values) / float(np.sum(1.0 / _nonzero_magnitudes(values)))


def _fold_exponential(center: float, values: np.ndarray, weights, p: float) -> float:
    return center * float(np.mean(np.exp(values)))


def _fold_geometric(center: float, values: np.ndarray, weights, p: float) -> float:
    # exp(mean(log)) is the n-th root of the product without overflowing it
    return center * float(np.exp(np.mean(np.log(_nonzero_magnitudes(values)))))


def _fold_median(center: float, values: np.ndarray, weights, p: float) -> float:
    return center + float(np.median(values))


def _fold_minkowski(center: float, values: np.ndarray, weights, p: float) -> float:
    return center + float(np.mean(np.abs(values) ** p)) ** (1.0 / p)


def _fold_entropy(center: float, values: np.ndarray, weights, p: float) -> float:
    mags = np.abs(values)
    total = float(np.sum(mags)) or 1.0
    probs = mags / total
    probs = probs[probs > 0]
    h = -float(np.sum(probs * np.log2(probs)))
    return center * (1.0 + h)


_FOLDS: Dict[AggregationMode, Callable[..., float]] = {
    AggregationMode.WEIGHTED: _fold_weighted,
    AggregationMode.MULTIPLICATIVE: _fold_multiplicative,
    AggregationMode.HARMONIC: _fold_harmonic,
    AggregationMode.EXPONENTIAL: _fold_exponential,
    AggregationMode.GEOMETRIC: _fold_geometric,
    AggregationMode.MEDIAN: _fold_median,
    AggregationMode.MINKOWSKI: _fold_minkowski,
    AggregationMode.ENTROPY: _fold_entropy,
}


def compute_values(center: float, neighbors: Sequence[float],
                   mode: ModeLike = AggregationMode.WEIGHTED,
                   weights: Optional[Sequence[float]] = None,
                   p: float = MINKOWSKI_P) -> float:
    """
    Fold (center, neighbors) into a scalar under the given mode.

    Args:
        center: The node's own value
        neighbors: Neighborhood values (may be empty)
        mode: AggregationMode or its name
        weights: Per-neighbor weights for the weighted mode (default all 1)
        p: Minkowski order

    Returns:
        The aggregated value as a plain float
    """
    if len(neighbors) == 0:
        return float(center)

    fold = _FOLDS.get(resolve_mode(mode))
    if fold is None:
        return float(center)

    values = np.asarray(neighbors, dtype=float)
    with np.errstate(over="ignore", invalid="ignore", divide="ignore", under="ignore"):
        return float(fold(float(center), values, weights, p))


def compute(node) -> float:
    """Current value of a node: its neighborhood folded under its own mode."""
    return compute_values(node.center, node.neighbors, node.mode, node.weights, node.minkowski_p)


def compute_blend(node, components: Iterable[Tuple[ModeLike, float]]) -> float:
    """
    Weighted blend of several modes over the same node.

    compute_blend(node, [("weighted", 0.7), ("geometric", 0.3)])

    Total weight 0 uses divisor 1.
    """
    blended = 0.0
    total = 0.0
    for mode, weight in components:
        blended += weight * compute_values(node.center, node.neighbors, mode,
                                           node.weights, node.minkowski_p)
        total += weight
    return blended / (total or 1.0)


# ═══════════════════════════════════════════════════════════════════════════════
# CIRCULAR DOUBLING — the default diffusion of a neighborhood
# ═══════════════════════════════════════════════════════════════════════════════

def double_neighbors(neighbors: Sequence[float]) -> List[float]:
    """
    Insert the midpoint of every circular pair after its first element.

        [a, b, c] → [a, (a+b)/2, b, (b+c)/2, c, (c+a)/2]

    Originals stay at even positions, midpoints land at odd positions.
    An empty neighborhood stays empty.
    """
    if len(neighbors) == 0:
        return []
    values = np.asarray(neighbors, dtype=float)
    doubled = np.empty(2 * len(values), dtype=float)
    doubled[0::2] = values
    with np.errstate(over="ignore", invalid="ignore"):
        doubled[1::2] = (values + np.roll(values, -1)) / 2.0
    return doubled.tolist()
