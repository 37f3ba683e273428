"""
Layerfield Convergence — Repeated Diffusion Under a Stopping Policy

Policies:

    steps N      step until every targeted node has stage >= N
    epsilon E    step each node until |Δresult| < E, then mark it converged
    converged    epsilon with CONVERGED_EPSILON
    fixed        no stepping, report the current value

Nodes settle independently. A settled node drops out of the run while
the others keep stepping. Each sweep over the still-moving nodes counts
as one global stage.

Epsilon runs are bounded by max_iterations per node. Hitting the bound
is not an error: the node keeps momentum=expanding and the run ends.

The value reported for a node is picked by the contraction method:

    weighted    compute(node)              (default)
    mean        mean of history results
    median      median of history results
    consensus   mean of the last CONSENSUS_WINDOW history results
"""

import logging
import numbers
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional, Union

import numpy as np

from .aggregation import compute
from .field_constants import (
    CONVERGED_EPSILON, MAX_DIFFUSION_ITERATIONS,
    CONTRACT_WEIGHTED, CONTRACT_MEAN, CONTRACT_MEDIAN, CONTRACT_CONSENSUS,
    DEFAULT_CONTRACTION, CONSENSUS_WINDOW,
)
from .nodes import Momentum, Node
from .space import DiffuseFn, Layer, Space, step_node

logger = logging.getLogger(__name__)


class CriteriaKind(Enum):
    STEPS = "steps"
    EPSILON = "epsilon"
    CONVERGED = "converged"
    FIXED = "fixed"


class ContractionMethod(Enum):
    """How diffuse() reports a node's final value."""
    WEIGHTED = CONTRACT_WEIGHTED
    MEAN = CONTRACT_MEAN
    MEDIAN = CONTRACT_MEDIAN
    CONSENSUS = CONTRACT_CONSENSUS


@dataclass(frozen=True)
class ConvergenceCriteria:
    """Stopping policy for diffuse()."""
    kind: CriteriaKind
    value: Optional[float] = None   # N for steps, E for epsilon

    @classmethod
    def steps(cls, count: int) -> 'ConvergenceCriteria':
        if count < 0:
            raise ValueError(f"Step count must be >= 0, got {count}")
        return cls(CriteriaKind.STEPS, int(count))

    @classmethod
    def epsilon(cls, threshold: float) -> 'ConvergenceCriteria':
        if not threshold > 0:
            raise ValueError(f"Epsilon must be > 0, got {threshold}")
        return cls(CriteriaKind.EPSILON, float(threshold))

    @classmethod
    def converged(cls) -> 'ConvergenceCriteria':
        return cls(CriteriaKind.CONVERGED)

    @classmethod
    def fixed(cls) -> 'ConvergenceCriteria':
        return cls(CriteriaKind.FIXED)

    @classmethod
    def parse(cls, criteria: Any) -> 'ConvergenceCriteria':
        """
        Read a policy from plain values.

            None / "converged"      → converged
            "fixed"                 → fixed
            3                       → steps 3
            "0.01" / 0.01           → epsilon 0.01
            {"steps": 3}            → steps 3
            {"epsilon": 0.01}       → epsilon 0.01
            {"converged": True}     → converged
            {"fixed": True}         → fixed

        Any integral number (numpy integers included) is a step count,
        any other real number an epsilon. Numeric strings are always
        read as epsilon, so "3" means epsilon 3.0, not three steps.
        """
        if criteria is None:
            return cls.converged()
        if isinstance(criteria, ConvergenceCriteria):
            return criteria
        if isinstance(criteria, bool):
            raise ValueError(f"Unrecognised convergence criteria: {criteria!r}")
        if isinstance(criteria, numbers.Integral):
            return cls.steps(int(criteria))
        if isinstance(criteria, numbers.Real):
            return cls.epsilon(float(criteria))
        if isinstance(criteria, str):
            if criteria == CriteriaKind.CONVERGED.value:
                return cls.converged()
            if criteria == CriteriaKind.FIXED.value:
                return cls.fixed()
            try:
                return cls.epsilon(float(criteria))
            except ValueError:
                raise ValueError(f"Unrecognised convergence criteria: {criteria!r}") from None
        if isinstance(criteria, dict):
            if CriteriaKind.STEPS.value in criteria:
                return cls.steps(int(criteria[CriteriaKind.STEPS.value]))
            if CriteriaKind.EPSILON.value in criteria:
                return cls.epsilon(float(criteria[CriteriaKind.EPSILON.value]))
            if CriteriaKind.CONVERGED.value in criteria:
                return cls.converged()
            if CriteriaKind.FIXED.value in criteria:
                return cls.fixed()
        raise ValueError(f"Unrecognised convergence criteria: {criteria!r}")

    @property
    def threshold(self) -> float:
        """Delta threshold for the epsilon-style policies."""
        if self.kind is CriteriaKind.EPSILON:
            return self.value
        return CONVERGED_EPSILON


# ═══════════════════════════════════════════════════════════════════════════════
# SETTLING
# ═══════════════════════════════════════════════════════════════════════════════

def last_delta(node: Node) -> Optional[float]:
    """|history[-1] - history[-2]|, or None before the first step."""
    if len(node.history) < 2:
        return None
    return abs(node.history[-1].result - node.history[-2].result)


def _settle(node: Node, epsilon: float) -> bool:
    # NaN deltas never settle
    delta = last_delta(node)
    if delta is None or not delta < epsilon:
        return False
    if node.momentum is not Momentum.CONVERGED:
        node.momentum = Momentum.CONVERGED
        logger.debug(f"Node ({node.layer_index}, {node.node_index}) converged "
                     f"at stage {node.stage} (delta={delta})")
    return True


def _run_steps(space: Space, nodes: List[Node], count: int,
               diffuse_fn: Optional[DiffuseFn]) -> int:
    sweeps = 0
    pending = [node for node in nodes if node.stage < count]
    while pending:
        for node in pending:
            step_node(node, diffuse_fn)
        space.global_stage += 1
        sweeps += 1
        pending = [node for node in pending if node.stage < count]
    return sweeps


def _run_until_settled(space: Space, nodes: List[Node], epsilon: float,
                       diffuse_fn: Optional[DiffuseFn], max_iterations: int) -> int:
    sweeps = 0
    pending = list(nodes)
    while True:
        pending = [node for node in pending if not _settle(node, epsilon)]
        if not pending or sweeps >= max_iterations:
            break
        for node in pending:
            step_node(node, diffuse_fn)
        space.global_stage += 1
        sweeps += 1

    for node in pending:
        # Left over from an earlier, looser run
        if node.momentum is Momentum.CONVERGED:
            node.momentum = Momentum.EXPANDING
        logger.warning(f"Node ({node.layer_index}, {node.node_index}) did not settle below "
                       f"{epsilon} within {max_iterations} steps (delta={last_delta(node)})")
    return sweeps


# ═══════════════════════════════════════════════════════════════════════════════
# CONTRACTION
# ═══════════════════════════════════════════════════════════════════════════════

def contract(node: Node, method: Union[ContractionMethod, str] = DEFAULT_CONTRACTION) -> float:
    """Final value reported for a node."""
    method = ContractionMethod(method)
    if method is ContractionMethod.WEIGHTED:
        return compute(node)

    results = np.asarray([entry.result for entry in node.history], dtype=float)
    if method is ContractionMethod.MEAN:
        return float(np.mean(results))
    if method is ContractionMethod.MEDIAN:
        return float(np.median(results))
    return float(np.mean(results[-CONSENSUS_WINDOW:]))


# ═══════════════════════════════════════════════════════════════════════════════
# DRIVER
# ═══════════════════════════════════════════════════════════════════════════════

def diffuse(space: Space, criteria: Any = None, target_layer: Optional[int] = None,
            contraction_method: Union[ContractionMethod, str] = DEFAULT_CONTRACTION,
            diffuse_fn: Optional[DiffuseFn] = None,
            max_iterations: int = MAX_DIFFUSION_ITERATIONS) -> List[float]:
    """
    Diffuse the targeted nodes under a stopping policy.

    Args:
        space: The space to run
        criteria: ConvergenceCriteria or a plain form accepted by
                  ConvergenceCriteria.parse (default: converged)
        target_layer: Only run this layer (missing index → no nodes)
        contraction_method: How each node's final value is reported
        diffuse_fn: Replacement for the circular midpoint doubling
        max_iterations: Per-node safety bound for epsilon-style policies

    Returns:
        Final value of every targeted node, ordered by layer then node index.
        Frozen layers are reported but never stepped.
    """
    criteria = ConvergenceCriteria.parse(criteria)
    method = ContractionMethod(contraction_method)

    layers: List[Layer] = list(space.iter_layers(target_layer))
    active = [node for layer in layers if not layer.frozen for node in layer.nodes]

    if criteria.kind is CriteriaKind.STEPS:
        sweeps = _run_steps(space, active, int(criteria.value), diffuse_fn)
    elif criteria.kind is CriteriaKind.FIXED:
        sweeps = 0
    else:
        sweeps = _run_until_settled(space, active, criteria.threshold, diffuse_fn, max_iterations)

    results = [contract(node, method) for layer in layers for node in layer.nodes]
    logger.info(f"Diffused {len(active)} nodes under {criteria.kind.value} "
                f"in {sweeps} sweeps (global_stage={space.global_stage})")
    return results
