"""
Layerfield - Layered Diffusion Field Engine

A Space of numbered Layers of scalar field Nodes. Each diffusion step
doubles a node's neighborhood and recomputes its value; the convergence
driver repeats steps under a stopping policy; the resonance scan finds
structurally similar nodes across the whole Space.

Usage:
    from layerfield import create_space, add_node_to_layer, diffuse, sigma_flow

    space = create_space("flat")
    node = add_node_to_layer(space, 0, 5, [1, 2, 3, 4])
    results = diffuse(space, {"epsilon": 0.01})
    flow = sigma_flow(node)
"""

from .aggregation import (
    AggregationMode, compute, compute_values, compute_blend, double_neighbors,
)
from .nodes import Node, HistoryEntry, Momentum, create_node
from .space import (
    # Structure
    Space, Layer,
    # Errors
    FieldNotFoundError, LayerNotFoundError, NodeNotFoundError,
    # Construction / lookup
    create_space, add_node_to_layer, get_node, freeze_layer, thaw_layer,
    # Diffusion
    step_node, step_space, node_results,
)
from .convergence import (
    ConvergenceCriteria, CriteriaKind, ContractionMethod, contract, diffuse,
)
from .resonance import ResonancePair, node_similarity, find_resonances
from .introspector import (
    SigmaFlow, SigmaField, SigmaWill, SpaceSigma,
    sigma_flow, sigma_memory, sigma_field, sigma_will, sigma_space,
)

__all__ = [
    # Aggregation
    'AggregationMode', 'compute', 'compute_values', 'compute_blend', 'double_neighbors',

    # Nodes
    'Node', 'HistoryEntry', 'Momentum', 'create_node',

    # Space
    'Space', 'Layer',
    'FieldNotFoundError', 'LayerNotFoundError', 'NodeNotFoundError',
    'create_space', 'add_node_to_layer', 'get_node', 'freeze_layer', 'thaw_layer',
    'step_node', 'step_space', 'node_results',

    # Convergence
    'ConvergenceCriteria', 'CriteriaKind', 'ContractionMethod', 'contract', 'diffuse',

    # Resonance
    'ResonancePair', 'node_similarity', 'find_resonances',

    # Introspection
    'SigmaFlow', 'SigmaField', 'SigmaWill', 'SpaceSigma',
    'sigma_flow', 'sigma_memory', 'sigma_field', 'sigma_will', 'sigma_space',
]
