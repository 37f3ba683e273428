"""
Layerfield Space — Layers, Nodes and the Diffusion Step

════════════════════════════════════════════════════════════════════════════════
STRUCTURE
════════════════════════════════════════════════════════════════════════════════

    Space
      topology      opaque tag (flat / torus / sphere / ...)
      global_stage  +1 per space-wide step
      layers        {layer_index: Layer}
        Layer
          frozen    freeze gate
          nodes     [Node, ...]  insertion order = node_index

The Space owns every Layer and every Node. Nodes are addressed by
(layer_index, node_index), never shared.

════════════════════════════════════════════════════════════════════════════════
ONE DIFFUSION STEP
════════════════════════════════════════════════════════════════════════════════

    1. neighbors → circular midpoint doubling (n → 2n)
    2. result    → compute(node)
    3. history   ← {stage + 1, result}
    4. momentum  rest → expanding on the first step
    5. stage     += 1

Layers are visited in ascending index order, nodes in insertion order,
so identical starting states give identical runs. Frozen layers are
skipped entirely.

════════════════════════════════════════════════════════════════════════════════
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Optional, Sequence, Union

from .aggregation import ModeLike, compute, double_neighbors
from .field_constants import DEFAULT_TOPOLOGY, TOPOLOGIES, MINKOWSKI_P
from .nodes import HistoryEntry, Momentum, Node, create_node

logger = logging.getLogger(__name__)

DiffuseFn = Callable[[Sequence[float]], Sequence[float]]


# ═══════════════════════════════════════════════════════════════════════════════
# ERRORS
# ═══════════════════════════════════════════════════════════════════════════════

class FieldNotFoundError(LookupError):
    """A layer or node coordinate does not exist in the Space."""


class LayerNotFoundError(FieldNotFoundError, KeyError):
    def __init__(self, layer_index: int):
        self.layer_index = layer_index
        super().__init__(f"Layer {layer_index} not found")

    def __str__(self) -> str:
        return f"Layer {self.layer_index} not found"


class NodeNotFoundError(FieldNotFoundError, IndexError):
    def __init__(self, layer_index: int, node_index: int):
        self.layer_index = layer_index
        self.node_index = node_index
        super().__init__(f"Node {node_index} not found in layer {layer_index}")


# ═══════════════════════════════════════════════════════════════════════════════
# LAYER / SPACE
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class Layer:
    """An ordered collection of nodes sharing one freeze gate."""
    index: int
    nodes: List[Node] = field(default_factory=list)
    frozen: bool = False

    def __len__(self) -> int:
        return len(self.nodes)


@dataclass
class Space:
    """The layered field plus its global step counter."""
    topology: str = DEFAULT_TOPOLOGY
    layers: Dict[int, Layer] = field(default_factory=dict)
    global_stage: int = 0

    def layer_indices(self) -> List[int]:
        return sorted(self.layers)

    def iter_layers(self, target_layer: Optional[int] = None) -> Iterator[Layer]:
        """Layers in ascending index order, or only target_layer if present."""
        if target_layer is not None:
            layer = self.layers.get(target_layer)
            if layer is not None:
                yield layer
            return
        for index in self.layer_indices():
            yield self.layers[index]

    def iter_nodes(self, target_layer: Optional[int] = None) -> Iterator[Node]:
        """Nodes ordered by layer index, then node index."""
        for layer in self.iter_layers(target_layer):
            yield from layer.nodes

    def ensure_layer(self, layer_index: int) -> Layer:
        layer = self.layers.get(layer_index)
        if layer is None:
            layer = Layer(index=layer_index)
            self.layers[layer_index] = layer
            logger.debug(f"Created layer {layer_index}")
        return layer

    def get_layer(self, layer_index: int) -> Layer:
        layer = self.layers.get(layer_index)
        if layer is None:
            raise LayerNotFoundError(layer_index)
        return layer

    def get_node(self, layer_index: int, node_index: int) -> Node:
        layer = self.get_layer(layer_index)
        if not 0 <= node_index < len(layer.nodes):
            raise NodeNotFoundError(layer_index, node_index)
        return layer.nodes[node_index]

    @property
    def total_nodes(self) -> int:
        return sum(len(layer.nodes) for layer in self.layers.values())


# ═══════════════════════════════════════════════════════════════════════════════
# CONSTRUCTION
# ═══════════════════════════════════════════════════════════════════════════════

def create_space(topology: str = DEFAULT_TOPOLOGY) -> Space:
    """Create an empty Space with the given topology tag."""
    if topology not in TOPOLOGIES:
        logger.debug(f"Topology {topology!r} is not a built-in tag, keeping it as given")
    return Space(topology=topology)


def add_node_to_layer(space: Space, layer_index: int, center: float,
                      neighbors: Sequence[float] = (),
                      mode: Optional[ModeLike] = None,
                      weights: Optional[Sequence[float]] = None,
                      minkowski_p: float = MINKOWSKI_P) -> Node:
    """
    Append a new resting node to a layer, creating the layer if absent.

    The node's index is its position in the layer and never changes.

    Returns:
        The new node
    """
    layer = space.ensure_layer(layer_index)
    node = create_node(center, neighbors, mode, weights,
                       layer_index=layer_index, node_index=len(layer.nodes),
                       minkowski_p=minkowski_p)
    layer.nodes.append(node)
    logger.debug(f"Added node: {node}")
    return node


def get_node(space: Space, layer_index: int, node_index: int) -> Node:
    """Node at (layer_index, node_index). Raises LayerNotFoundError / NodeNotFoundError."""
    return space.get_node(layer_index, node_index)


def freeze_layer(space: Space, layer_index: int) -> Layer:
    """Close a layer's gate: stepping skips it until thawed."""
    layer = space.get_layer(layer_index)
    layer.frozen = True
    logger.debug(f"Froze layer {layer_index}")
    return layer


def thaw_layer(space: Space, layer_index: int) -> Layer:
    """Reopen a frozen layer."""
    layer = space.get_layer(layer_index)
    layer.frozen = False
    logger.debug(f"Thawed layer {layer_index}")
    return layer


# ═══════════════════════════════════════════════════════════════════════════════
# DIFFUSION STEP
# ═══════════════════════════════════════════════════════════════════════════════

def step_node(node: Node, diffuse_fn: Optional[DiffuseFn] = None) -> None:
    """
    Advance one node by one diffusion stage.

    Not idempotent: every call doubles the neighborhood again.
    Deterministic for a given starting state.

    Args:
        node: The node to advance
        diffuse_fn: Replacement for the circular midpoint doubling
    """
    fn = diffuse_fn or double_neighbors
    first_step = node.stage == 0
    new_stage = node.stage + 1

    # Weights follow their neighbors while they stay aligned
    if node.weights is not None and len(node.weights) == len(node.neighbors):
        node.weights = [float(w) for w in fn(node.weights)]
    node.neighbors = [float(v) for v in fn(node.neighbors)]

    result = compute(node)
    node.history.append(HistoryEntry(stage=new_stage, result=result, directions=len(node.neighbors)))

    if first_step:
        node.momentum = Momentum.EXPANDING
    node.stage = new_stage

    logger.debug(f"Stepped node ({node.layer_index}, {node.node_index}) "
                 f"to stage {new_stage}: {len(node.neighbors)} directions, result={result}")


def step_space(space: Space, target_layer: Optional[int] = None,
               diffuse_fn: Optional[DiffuseFn] = None) -> None:
    """
    Step every node of every unfrozen layer once, then advance global_stage.

    Args:
        space: The space to advance
        target_layer: Only step this layer. A missing index is a no-op.
        diffuse_fn: Replacement for the circular midpoint doubling
    """
    if target_layer is not None and target_layer not in space.layers:
        logger.debug(f"step_space: layer {target_layer} absent, nothing to do")
        return

    for layer in space.iter_layers(target_layer):
        if layer.frozen:
            continue
        for node in layer.nodes:
            step_node(node, diffuse_fn)

    space.global_stage += 1


def node_results(space: Space, layer_index: Optional[int] = None) -> Union[float, List[float]]:
    """
    Current value of every node, ordered by layer then node index.

    A single float when exactly one node matches, else a list.
    """
    results = [compute(node) for node in space.iter_nodes(layer_index)]
    if len(results) == 1:
        return results[0]
    return results
