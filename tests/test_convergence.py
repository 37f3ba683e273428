"""
Tests for Convergence — Repeated Diffusion Under a Stopping Policy

Validates:
    1. steps / epsilon / converged / fixed policies
    2. Independent per-node settling and the safety bound
    3. Frozen and target layers
    4. Contraction methods
    5. Criteria parsing from plain values

Run: python3 -m unittest tests.test_convergence -v
"""

import sys
import os
import unittest

import numpy as np

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from layerfield.convergence import (
    ConvergenceCriteria, CriteriaKind, ContractionMethod, contract, diffuse,
)
from layerfield.field_constants import CONVERGED_EPSILON
from layerfield.introspector import sigma_flow
from layerfield.nodes import Momentum, create_node
from layerfield.space import create_space, add_node_to_layer, freeze_layer, step_node


class TestStepsPolicy(unittest.TestCase):

    def test_three_steps(self):
        space = create_space()
        node = add_node_to_layer(space, 0, 5, [1, 2, 3, 4])
        results = diffuse(space, ConvergenceCriteria.steps(3))

        self.assertEqual(node.stage, 3)
        self.assertEqual(len(node.neighbors), 32)
        self.assertEqual(space.global_stage, 3)
        self.assertIs(node.momentum, Momentum.EXPANDING)
        self.assertEqual(len(results), 1)
        self.assertAlmostEqual(results[0], 7.5)

    def test_zero_steps_is_initial_value(self):
        space = create_space()
        node = add_node_to_layer(space, 0, 5, [1, 2, 3, 4])
        results = diffuse(space, {"steps": 0})
        self.assertEqual(node.stage, 0)
        self.assertAlmostEqual(results[0], 7.5)

    def test_several_nodes(self):
        space = create_space()
        add_node_to_layer(space, 0, 5, [1, 2, 3, 4])
        add_node_to_layer(space, 0, 10, [3, 7, 2])
        add_node_to_layer(space, 0, -3, [8, 1, 5, 9, 2, 7])

        results = diffuse(space, 5)
        self.assertEqual(len(results), 3)
        for node in space.layers[0].nodes:
            self.assertEqual(node.stage, 5)

    def test_nodes_already_past_target_stay(self):
        space = create_space()
        ahead = add_node_to_layer(space, 0, 1, [1, 2])
        behind = add_node_to_layer(space, 0, 1, [1, 2])
        for _ in range(4):
            step_node(ahead)

        diffuse(space, {"steps": 2})
        self.assertEqual(ahead.stage, 4)
        self.assertEqual(behind.stage, 2)
        self.assertEqual(space.global_stage, 2)


class TestEpsilonPolicy(unittest.TestCase):

    def test_uniform_neighbors_converge_fast(self):
        space = create_space()
        node = add_node_to_layer(space, 0, 5, [5, 5, 5, 5])
        diffuse(space, {"epsilon": 0.01})

        self.assertIs(node.momentum, Momentum.CONVERGED)
        self.assertGreaterEqual(node.stage, 1)
        self.assertLessEqual(node.stage, 3)

    def test_converged_policy(self):
        space = create_space()
        node = add_node_to_layer(space, 0, 5, [2, 2, 2, 2])
        results = diffuse(space, ConvergenceCriteria.converged())

        self.assertEqual(len(results), 1)
        self.assertIs(node.momentum, Momentum.CONVERGED)
        self.assertGreater(node.stage, 0)

    def test_default_policy_is_converged(self):
        space = create_space()
        node = add_node_to_layer(space, 0, 100, [1, 1, 1, 1])
        diffuse(space)
        self.assertIs(node.momentum, Momentum.CONVERGED)

    def test_nodes_settle_independently(self):
        space = create_space()
        calm = add_node_to_layer(space, 0, 5, [5, 5])
        wild = add_node_to_layer(space, 0, 1, [1, 2], "multiplicative")

        with self.assertLogs("layerfield.convergence", level="WARNING"):
            diffuse(space, {"epsilon": 0.01}, max_iterations=4)

        self.assertIs(calm.momentum, Momentum.CONVERGED)
        self.assertEqual(calm.stage, 1)
        self.assertIs(wild.momentum, Momentum.EXPANDING)
        self.assertEqual(wild.stage, 4)
        self.assertEqual(space.global_stage, 4)

    def test_safety_bound_is_not_an_error(self):
        space = create_space()
        node = add_node_to_layer(space, 0, 1, [1, 2, 3], "exponential")
        with self.assertLogs("layerfield.convergence", level="WARNING"):
            results = diffuse(space, ConvergenceCriteria.epsilon(1e-12), max_iterations=3)
        self.assertEqual(node.stage, 3)
        self.assertIs(node.momentum, Momentum.EXPANDING)
        self.assertEqual(len(results), 1)

    def test_tighter_run_past_bound_drops_converged(self):
        space = create_space()
        node = add_node_to_layer(space, 0, 1, [0, 1], "exponential")
        diffuse(space, {"epsilon": 0.5})
        self.assertIs(node.momentum, Momentum.CONVERGED)

        with self.assertLogs("layerfield.convergence", level="WARNING"):
            diffuse(space, {"epsilon": 1e-15}, max_iterations=3)
        self.assertIs(node.momentum, Momentum.EXPANDING)
        self.assertIs(sigma_flow(node).momentum, Momentum.EXPANDING)

    def test_converged_node_not_stepped_again(self):
        space = create_space()
        node = add_node_to_layer(space, 0, 5, [5, 5])
        diffuse(space, {"epsilon": 0.01})
        stage = node.stage
        diffuse(space, {"epsilon": 0.01})
        self.assertEqual(node.stage, stage)


class TestFixedPolicy(unittest.TestCase):

    def test_no_stepping(self):
        space = create_space()
        node = add_node_to_layer(space, 0, 5, [1, 2, 3, 4])
        results = diffuse(space, "fixed")

        self.assertEqual(node.stage, 0)
        self.assertIs(node.momentum, Momentum.REST)
        self.assertEqual(space.global_stage, 0)
        self.assertAlmostEqual(results[0], 7.5)


class TestLayers(unittest.TestCase):

    def setUp(self):
        self.space = create_space()
        self.a = add_node_to_layer(self.space, 0, 5, [1, 2, 3, 4])
        self.b = add_node_to_layer(self.space, 1, 1, [2, 2], "multiplicative")

    def test_frozen_layer_reported_not_stepped(self):
        freeze_layer(self.space, 1)
        results = diffuse(self.space, {"steps": 2})
        self.assertEqual(self.a.stage, 2)
        self.assertEqual(self.b.stage, 0)
        self.assertEqual(len(results), 2)
        self.assertAlmostEqual(results[1], 9.0)

    def test_target_layer(self):
        results = diffuse(self.space, {"steps": 2}, target_layer=1)
        self.assertEqual(self.a.stage, 0)
        self.assertEqual(self.b.stage, 2)
        self.assertEqual(len(results), 1)

    def test_missing_target_layer(self):
        self.assertEqual(diffuse(self.space, {"steps": 2}, target_layer=9), [])
        self.assertEqual(self.a.stage, 0)

    def test_results_ordered_by_layer(self):
        results = diffuse(self.space, "fixed")
        self.assertAlmostEqual(results[0], 7.5)
        self.assertAlmostEqual(results[1], 9.0)


class TestContraction(unittest.TestCase):
    """History results for center 1, [1, 1] multiplicative: 4, 16, 256."""

    def setUp(self):
        self.node = create_node(1, [1, 1], "multiplicative")
        step_node(self.node)
        step_node(self.node)

    def test_history(self):
        self.assertEqual([e.result for e in self.node.history], [4.0, 16.0, 256.0])

    def test_weighted_is_compute(self):
        self.assertAlmostEqual(contract(self.node, ContractionMethod.WEIGHTED), 256.0)

    def test_mean(self):
        self.assertAlmostEqual(contract(self.node, "mean"), 92.0)

    def test_median(self):
        self.assertAlmostEqual(contract(self.node, "median"), 16.0)

    def test_consensus(self):
        step_node(self.node)
        # Last three results: 16, 256, 65536
        self.assertAlmostEqual(contract(self.node, "consensus"), (16 + 256 + 65536) / 3)

    def test_diffuse_uses_method(self):
        space = create_space()
        add_node_to_layer(space, 0, 1, [1, 1], "multiplicative")
        self.assertEqual(diffuse(space, {"steps": 2}, contraction_method="median"), [16.0])

    def test_unknown_method(self):
        space = create_space()
        add_node_to_layer(space, 0, 1, [1])
        with self.assertRaises(ValueError):
            diffuse(space, "fixed", contraction_method="vote")


class TestCriteriaParsing(unittest.TestCase):

    def test_plain_forms(self):
        self.assertEqual(ConvergenceCriteria.parse(None).kind, CriteriaKind.CONVERGED)
        self.assertEqual(ConvergenceCriteria.parse("converged").kind, CriteriaKind.CONVERGED)
        self.assertEqual(ConvergenceCriteria.parse("fixed").kind, CriteriaKind.FIXED)
        self.assertEqual(ConvergenceCriteria.parse(3), ConvergenceCriteria.steps(3))
        self.assertEqual(ConvergenceCriteria.parse(0.01), ConvergenceCriteria.epsilon(0.01))
        self.assertEqual(ConvergenceCriteria.parse("0.01"), ConvergenceCriteria.epsilon(0.01))

    def test_dict_forms(self):
        self.assertEqual(ConvergenceCriteria.parse({"steps": 4}), ConvergenceCriteria.steps(4))
        self.assertEqual(ConvergenceCriteria.parse({"epsilon": 0.5}), ConvergenceCriteria.epsilon(0.5))
        self.assertEqual(ConvergenceCriteria.parse({"converged": True}).kind, CriteriaKind.CONVERGED)
        self.assertEqual(ConvergenceCriteria.parse({"fixed": True}).kind, CriteriaKind.FIXED)

    def test_numpy_numbers(self):
        self.assertEqual(ConvergenceCriteria.parse(np.int64(3)), ConvergenceCriteria.steps(3))
        self.assertEqual(ConvergenceCriteria.parse(np.float32(0.5)), ConvergenceCriteria.epsilon(0.5))

    def test_numeric_string_is_epsilon(self):
        self.assertEqual(ConvergenceCriteria.parse("3"), ConvergenceCriteria.epsilon(3.0))

    def test_thresholds(self):
        self.assertEqual(ConvergenceCriteria.converged().threshold, CONVERGED_EPSILON)
        self.assertEqual(ConvergenceCriteria.epsilon(0.25).threshold, 0.25)

    def test_rejects_garbage(self):
        for bad in ("sometimes", {"until": 3}, True, [1]):
            with self.subTest(bad=bad):
                with self.assertRaises(ValueError):
                    ConvergenceCriteria.parse(bad)

    def test_rejects_bad_values(self):
        with self.assertRaises(ValueError):
            ConvergenceCriteria.steps(-1)
        with self.assertRaises(ValueError):
            ConvergenceCriteria.epsilon(0)


if __name__ == "__main__":
    unittest.main()
