"""
Layerfield Resonance — Cross-Layer Structural Similarity

Two nodes resonate when both their centers and their neighborhood
patterns line up:

    center_proximity   = 1 - |a.center - b.center| / max(|a.center|, |b.center|, 1)
    pattern_similarity = cosine of the first min(|a.neighbors|, |b.neighbors|) entries
                         (0 when either neighborhood is empty)

    similarity = (Wc · center_proximity + Wp · pattern_similarity) / (Wc + Wp)
                 clamped to [0, 1]

Every unordered pair of distinct nodes in the Space is scanned once,
same-layer pairs included. (a, b) is reported, never (b, a).
"""

import logging
from dataclasses import dataclass
from typing import List, Tuple

import numpy as np

from .field_constants import (
    RESONANCE_CENTER_WEIGHT, RESONANCE_PATTERN_WEIGHT, DEFAULT_RESONANCE_THRESHOLD,
)
from .nodes import Node
from .space import Space

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResonancePair:
    """Two resonating nodes, by (layer_index, node_index)."""
    node_a: Tuple[int, int]
    node_b: Tuple[int, int]
    similarity: float

    def to_dict(self) -> dict:
        return {
            "node_a": {"layer": self.node_a[0], "index": self.node_a[1]},
            "node_b": {"layer": self.node_b[0], "index": self.node_b[1]},
            "similarity": self.similarity,
        }


def center_proximity(a: Node, b: Node) -> float:
    """1 for equal centers, falling with their relative distance (may go negative)."""
    scale = max(abs(a.center), abs(b.center), 1.0)
    return 1.0 - abs(a.center - b.center) / scale


def pattern_similarity(a: Node, b: Node) -> float:
    """Cosine similarity of the shared-length prefix of both neighborhoods."""
    n = min(len(a.neighbors), len(b.neighbors))
    if n == 0:
        return 0.0
    va = np.asarray(a.neighbors[:n], dtype=float)
    vb = np.asarray(b.neighbors[:n], dtype=float)
    norm = float(np.linalg.norm(va)) * float(np.linalg.norm(vb))
    if norm == 0 or not np.isfinite(norm):
        return 0.0
    return float(np.dot(va, vb)) / norm


def node_similarity(a: Node, b: Node,
                    center_weight: float = RESONANCE_CENTER_WEIGHT,
                    pattern_weight: float = RESONANCE_PATTERN_WEIGHT) -> float:
    """Blended similarity in [0, 1]."""
    total = (center_weight + pattern_weight) or 1.0
    blended = (center_weight * center_proximity(a, b) +
               pattern_weight * pattern_similarity(a, b)) / total
    if np.isnan(blended):
        return 0.0
    return max(0.0, min(1.0, blended))


def find_resonances(space: Space, threshold: float = DEFAULT_RESONANCE_THRESHOLD,
                    center_weight: float = RESONANCE_CENTER_WEIGHT,
                    pattern_weight: float = RESONANCE_PATTERN_WEIGHT) -> List[ResonancePair]:
    """
    All node pairs whose similarity reaches the threshold.

    Pairs come out in scan order: node_a precedes node_b by
    (layer_index, node_index). Raising the threshold never adds pairs.
    """
    nodes = list(space.iter_nodes())
    pairs: List[ResonancePair] = []

    for i, a in enumerate(nodes):
        for b in nodes[i + 1:]:
            similarity = node_similarity(a, b, center_weight, pattern_weight)
            if similarity >= threshold:
                pairs.append(ResonancePair(a.coordinates, b.coordinates, similarity))

    logger.info(f"Resonance scan: {len(pairs)} pairs >= {threshold} among {len(nodes)} nodes")
    return pairs
