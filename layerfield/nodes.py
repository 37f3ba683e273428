"""
Layerfield Nodes — Scalar Field Points

A Node is one evolving point of the field:

    center      its own value (never changes)
    neighbors   ordered, circular neighborhood (doubles every step)
    mode        AggregationMode folding the neighborhood into a value
    history     append-only {stage, result, directions} log

Invariants:
    len(history) == stage + 1        history[0] is the value at creation
    len(neighbors) == k · 2^stage    under the default diffusion

A node is addressed by (layer_index, node_index) inside its Space.
Nodes are never shared between Spaces and never deleted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from .aggregation import AggregationMode, ModeLike, compute, resolve_mode
from .field_constants import (
    DEFAULT_MODE, MINKOWSKI_P,
    MOMENTUM_REST, MOMENTUM_EXPANDING, MOMENTUM_CONVERGED,
)


class Momentum(Enum):
    """Coarse trend state of a node."""
    REST = MOMENTUM_REST              # Created, never stepped
    EXPANDING = MOMENTUM_EXPANDING    # Stepped at least once
    CONVERGED = MOMENTUM_CONVERGED    # Settled under an epsilon policy


@dataclass(frozen=True)
class HistoryEntry:
    """One line of a node's memory."""
    stage: int
    result: float
    directions: int = 0   # Neighbor count at this stage

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "result": self.result,
            "directions": self.directions,
        }


@dataclass
class Node:
    """
    A scalar field point with a neighborhood and an evolution history.

    Mutated only by diffusion (space.step_node) and by the convergence
    driver setting momentum to CONVERGED.
    """
    center: float
    neighbors: List[float] = field(default_factory=list)
    mode: ModeLike = AggregationMode.WEIGHTED
    weights: Optional[List[float]] = None
    minkowski_p: float = MINKOWSKI_P

    # Coordinates inside the owning Space
    layer_index: int = 0
    node_index: int = 0

    # Diffusion state
    stage: int = 0
    momentum: Momentum = Momentum.REST
    history: List[HistoryEntry] = field(default_factory=list)

    @property
    def coordinates(self) -> Tuple[int, int]:
        return (self.layer_index, self.node_index)

    @property
    def directions(self) -> int:
        """Current neighbor count."""
        return len(self.neighbors)

    @property
    def value(self) -> float:
        """Current aggregated value."""
        return compute(self)

    def __repr__(self) -> str:
        mode = self.mode.value if isinstance(self.mode, AggregationMode) else self.mode
        return (f"Node(({self.layer_index}, {self.node_index}) center={self.center} "
                f"directions={len(self.neighbors)} mode={mode} stage={self.stage} "
                f"momentum={self.momentum.value})")


def create_node(center: float, neighbors: Sequence[float] = (),
                mode: Optional[ModeLike] = None,
                weights: Optional[Sequence[float]] = None,
                layer_index: int = 0, node_index: int = 0,
                minkowski_p: float = MINKOWSKI_P) -> Node:
    """
    Build a resting node whose memory holds its value at creation.

    Args:
        center: The node's own value
        neighbors: Initial neighborhood (copied)
        mode: AggregationMode or name (default weighted). Unknown names are kept.
        weights: Optional per-neighbor weights (copied)
        layer_index: Layer the node lives in
        node_index: Position inside that layer
        minkowski_p: Order for the minkowski mode

    Returns:
        Node at stage 0 with history [{0, compute(node)}]
    """
    node = Node(
        center=float(center),
        neighbors=[float(v) for v in neighbors],
        mode=resolve_mode(mode if mode is not None else DEFAULT_MODE),
        weights=[float(w) for w in weights] if weights is not None else None,
        minkowski_p=minkowski_p,
        layer_index=layer_index,
        node_index=node_index,
    )
    node.history.append(HistoryEntry(stage=0, result=compute(node), directions=len(node.neighbors)))
    return node
