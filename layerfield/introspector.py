"""
Layerfield Introspector — Read-Only Sigma Views

Every node can describe itself; so can the Space:

    sigma_flow(node)          where is it going?   stage, directions, momentum, velocity
    sigma_memory(node)        where has it been?   its history, verbatim
    sigma_field(node, space)  where is it?         center and coordinates
    sigma_will(node)          what does it lean toward?   tendency + strength
    sigma_space(space)        the whole field at a glance

Nothing here mutates a node or a space. Views are dataclasses with
to_dict() for plain-value consumers.

TENDENCY:
    Each step is labelled from its result delta:
        |Δ| < REST_DELTA → rest,  Δ > 0 → expand,  Δ < 0 → contract
    Over the last WILL_WINDOW labels:
        all signed and alternating (>= WILL_SPIRAL_MIN_DELTAS) → spiral
        expand is a majority   → expand
        contract is a majority → contract
        otherwise              → rest
"""

import math
from dataclasses import dataclass, field
from typing import List, Tuple

from .field_constants import (
    TREND_EXPAND, TREND_CONTRACT, TREND_REST, TREND_SPIRAL,
    REST_DELTA, WILL_WINDOW, WILL_SPIRAL_MIN_DELTAS, WILL_STRENGTH_STAGES,
)
from .nodes import HistoryEntry, Momentum, Node
from .space import Space


# ═══════════════════════════════════════════════════════════════════════════════
# VIEWS
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SigmaFlow:
    stage: int
    directions: int
    momentum: Momentum
    velocity: float

    def to_dict(self) -> dict:
        return {
            "stage": self.stage,
            "directions": self.directions,
            "momentum": self.momentum.value,
            "velocity": self.velocity,
        }


@dataclass(frozen=True)
class SigmaField:
    center: float
    layer_index: int
    node_index: int
    neighbors: Tuple[float, ...] = ()
    co_nodes: int = 0     # Other nodes in the same layer

    def to_dict(self) -> dict:
        return {
            "center": self.center,
            "layer": self.layer_index,
            "index": self.node_index,
            "neighbors": list(self.neighbors),
            "co_nodes": self.co_nodes,
        }


@dataclass(frozen=True)
class SigmaWill:
    tendency: str
    strength: float
    history: Tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "tendency": self.tendency,
            "strength": self.strength,
            "history": list(self.history),
        }


@dataclass(frozen=True)
class SpaceSigma:
    """Whole-space summary."""
    layer_count: int
    total_nodes: int
    active_nodes: int       # Nodes in unfrozen layers
    converged_nodes: int
    expanding_nodes: int
    global_stage: int
    topology: str = ""
    layers: Tuple[int, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict:
        return {
            "layer_count": self.layer_count,
            "total_nodes": self.total_nodes,
            "active_nodes": self.active_nodes,
            "converged_nodes": self.converged_nodes,
            "expanding_nodes": self.expanding_nodes,
            "global_stage": self.global_stage,
            "topology": self.topology,
            "layers": list(self.layers),
        }


# ═══════════════════════════════════════════════════════════════════════════════
# NODE SIGMA
# ═══════════════════════════════════════════════════════════════════════════════

def velocity(node: Node) -> float:
    """|Δresult| of the latest step, 0 before the first."""
    if len(node.history) < 2:
        return 0.0
    return abs(node.history[-1].result - node.history[-2].result)


def sigma_flow(node: Node) -> SigmaFlow:
    return SigmaFlow(
        stage=node.stage,
        directions=len(node.neighbors),
        momentum=node.momentum,
        velocity=velocity(node),
    )


def sigma_memory(node: Node) -> Tuple[HistoryEntry, ...]:
    """The node's history as an immutable snapshot."""
    return tuple(node.history)


def sigma_field(node: Node, space: Space) -> SigmaField:
    layer = space.get_layer(node.layer_index)
    return SigmaField(
        center=node.center,
        layer_index=node.layer_index,
        node_index=node.node_index,
        neighbors=tuple(node.neighbors),
        co_nodes=len(layer.nodes) - 1,
    )


def trend_label(previous: float, current: float) -> str:
    delta = current - previous
    if math.isnan(delta) or abs(delta) < REST_DELTA:
        return TREND_REST
    return TREND_EXPAND if delta > 0 else TREND_CONTRACT


def trend_labels(node: Node) -> List[str]:
    """One label per diffusion step, oldest first."""
    results = [entry.result for entry in node.history]
    return [trend_label(prev, cur) for prev, cur in zip(results, results[1:])]


def _is_alternating(window: List[str]) -> bool:
    if len(window) < WILL_SPIRAL_MIN_DELTAS or TREND_REST in window:
        return False
    return all(a != b for a, b in zip(window, window[1:]))


def read_tendency(labels: List[str], window: int = WILL_WINDOW) -> str:
    """Tendency over the most recent `window` step labels."""
    recent = labels[-window:]
    if not recent:
        return TREND_REST
    if _is_alternating(recent):
        return TREND_SPIRAL

    half = len(recent) / 2
    if recent.count(TREND_EXPAND) > half:
        return TREND_EXPAND
    if recent.count(TREND_CONTRACT) > half:
        return TREND_CONTRACT
    return TREND_REST


def sigma_will(node: Node, window: int = WILL_WINDOW) -> SigmaWill:
    labels = trend_labels(node)
    return SigmaWill(
        tendency=read_tendency(labels, window),
        strength=min(node.stage / WILL_STRENGTH_STAGES, 1.0),
        history=tuple(labels),
    )


# ═══════════════════════════════════════════════════════════════════════════════
# SPACE SIGMA
# ═══════════════════════════════════════════════════════════════════════════════

def sigma_space(space: Space) -> SpaceSigma:
    total = active = converged = expanding = 0
    for layer in space.iter_layers():
        total += len(layer.nodes)
        if not layer.frozen:
            active += len(layer.nodes)
        for node in layer.nodes:
            if node.momentum is Momentum.CONVERGED:
                converged += 1
            elif node.momentum is Momentum.EXPANDING:
                expanding += 1

    return SpaceSigma(
        layer_count=len(space.layers),
        total_nodes=total,
        active_nodes=active,
        converged_nodes=converged,
        expanding_nodes=expanding,
        global_stage=space.global_stage,
        topology=space.topology,
        layers=tuple(space.layer_indices()),
    )
