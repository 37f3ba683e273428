"""
Layerfield - Constants

════════════════════════════════════════════════════════════════════════════════
THE FIELD
════════════════════════════════════════════════════════════════════════════════

A Space holds numbered Layers. A Layer holds Nodes in insertion order.
Every Node is a scalar field point:

    center      the node's own value
    neighbors   its neighborhood (ordered, circular)
    mode        how the neighborhood folds back into one number

One diffusion step doubles the neighborhood by circular midpoint
interpolation and recomputes the node value:

    [a, b, c]  →  [a, (a+b)/2, b, (b+c)/2, c, (c+a)/2]

    k neighbors after n steps = k · 2ⁿ

════════════════════════════════════════════════════════════════════════════════
MOMENTUM
════════════════════════════════════════════════════════════════════════════════

    rest        created, never stepped
    expanding   stepped at least once
    converged   settled under an epsilon policy (set by the driver only)

════════════════════════════════════════════════════════════════════════════════
"""

# ═══════════════════════════════════════════════════════════════════════════════
# AGGREGATION MODES
# ═══════════════════════════════════════════════════════════════════════════════

MODE_WEIGHTED = "weighted"
MODE_MULTIPLICATIVE = "multiplicative"
MODE_HARMONIC = "harmonic"
MODE_EXPONENTIAL = "exponential"
MODE_GEOMETRIC = "geometric"
MODE_MEDIAN = "median"
MODE_MINKOWSKI = "minkowski"
MODE_ENTROPY = "entropy"

ALL_MODES = (
    MODE_WEIGHTED, MODE_MULTIPLICATIVE, MODE_HARMONIC, MODE_EXPONENTIAL,
    MODE_GEOMETRIC, MODE_MEDIAN, MODE_MINKOWSKI, MODE_ENTROPY,
)

DEFAULT_MODE = MODE_WEIGHTED

# Minkowski order (p=2 is the root-mean-square of |neighbors|)
MINKOWSKI_P = 2.0


# ═══════════════════════════════════════════════════════════════════════════════
# MOMENTUM
# ═══════════════════════════════════════════════════════════════════════════════

MOMENTUM_REST = "rest"
MOMENTUM_EXPANDING = "expanding"
MOMENTUM_CONVERGED = "converged"


# ═══════════════════════════════════════════════════════════════════════════════
# TOPOLOGY (opaque tag, read only by outside consumers)
# ═══════════════════════════════════════════════════════════════════════════════

TOPOLOGY_FLAT = "flat"
TOPOLOGY_TORUS = "torus"
TOPOLOGY_SPHERE = "sphere"

TOPOLOGIES = (TOPOLOGY_FLAT, TOPOLOGY_TORUS, TOPOLOGY_SPHERE)
DEFAULT_TOPOLOGY = TOPOLOGY_FLAT


# ═══════════════════════════════════════════════════════════════════════════════
# CONVERGENCE
# ═══════════════════════════════════════════════════════════════════════════════

# Threshold used by the {converged} policy
CONVERGED_EPSILON = 1e-4

# Per-node safety bound for one diffuse() run.
# Neighbors double every step, so this also caps memory: k · 2^16 values.
MAX_DIFFUSION_ITERATIONS = 16

# Contraction methods (how diffuse() reports a node's final value)
CONTRACT_WEIGHTED = "weighted"
CONTRACT_MEAN = "mean"
CONTRACT_MEDIAN = "median"
CONTRACT_CONSENSUS = "consensus"

DEFAULT_CONTRACTION = CONTRACT_WEIGHTED

# History results averaged by the consensus contraction
CONSENSUS_WINDOW = 3


# ═══════════════════════════════════════════════════════════════════════════════
# TENDENCY (sigma will)
# ═══════════════════════════════════════════════════════════════════════════════

TREND_EXPAND = "expand"
TREND_CONTRACT = "contract"
TREND_REST = "rest"
TREND_SPIRAL = "spiral"

# |delta| below this is labelled rest
REST_DELTA = 1e-3

# Most recent deltas considered when reading tendency
WILL_WINDOW = 5

# Signed deltas needed before alternation counts as a spiral
WILL_SPIRAL_MIN_DELTAS = 3

# Stages until will strength saturates at 1.0
WILL_STRENGTH_STAGES = 5


# ═══════════════════════════════════════════════════════════════════════════════
# RESONANCE
# ═══════════════════════════════════════════════════════════════════════════════

# similarity = CENTER_WEIGHT · center_proximity + PATTERN_WEIGHT · cosine
RESONANCE_CENTER_WEIGHT = 0.5
RESONANCE_PATTERN_WEIGHT = 0.5

DEFAULT_RESONANCE_THRESHOLD = 0.5
