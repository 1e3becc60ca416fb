import unittest

import numpy as np

from pycalib.attitude.quaternion import axis_angle2quat, quat2axis_angle, quat2rot
from pycalib.backend.design_variable import EuclideanPoint, RotationQuaternion, Scalar
from pycalib.backend.error_term import (MarginalizationPriorErrorTerm, MeasurementErrorTerm,
                                        add_condition)
from pycalib.backend.expression import Expression
from pycalib.backend.m_estimator import CauchyMEstimator, NoMEstimator, get_m_estimator
from pycalib.backend.optimizer import Optimizer, OptimizerOptions
from pycalib.backend.problem import OptimizationProblem
from pycalib.core.exceptions import ConfigurationError
from pycalib.core.value_store import ValueStore


class TestDesignVariables(unittest.TestCase):

    def test_euclidean_point(self):
        p = EuclideanPoint([1.0, 2.0, 3.0])
        self.assertEqual(p.minimal_dimensions(), 3)
        self.assertEqual(p.get_parameters().shape, (3, 1))
        x_hat = p.get_parameters()
        p.update([0.5, 0.0, -1.0])
        np.testing.assert_allclose(p.value(), [1.5, 2.0, 2.0])
        np.testing.assert_allclose(p.minimal_difference(x_hat), [0.5, 0.0, -1.0])

    def test_scalar(self):
        s = Scalar(0.25)
        s.update([0.25])
        self.assertEqual(s.to_scalar(), 0.5)

    def test_rotation_update_and_difference(self):
        r = RotationQuaternion(axis_angle2quat(np.array([0.1, 0.2, -0.1])))
        x_hat = r.get_parameters()
        dx = np.array([0.01, -0.02, 0.03])
        r.update(dx)
        np.testing.assert_allclose(r.minimal_difference(x_hat), dx, atol=1e-12)
        self.assertAlmostEqual(np.linalg.norm(r.value()), 1.0)

    def test_inactive_by_default(self):
        self.assertFalse(EuclideanPoint([0.0]).is_active())


class TestExpression(unittest.TestCase):

    def test_combine_collects_unique_design_variables(self):
        a, b = EuclideanPoint([1.0, 2.0]), EuclideanPoint([3.0, 4.0])
        e = a.to_expression() + b.to_expression() - a.to_expression()
        np.testing.assert_allclose(e.evaluate(), [3.0, 4.0])
        self.assertEqual(len(e.get_design_variables()), 2)

    def test_constant(self):
        e = Expression.constant([1.0, 2.0])
        self.assertTrue(e.is_constant())
        self.assertEqual(e.get_design_variables(), [])


class TestMEstimators(unittest.TestCase):

    def test_cauchy(self):
        m = CauchyMEstimator(10.0)
        self.assertAlmostEqual(m.rho(10.0), 10.0 * np.log(2.0))
        self.assertAlmostEqual(m.get_weight(10.0), 0.5)
        self.assertAlmostEqual(m.residual_scale(10.0) ** 2 * 10.0, m.rho(10.0))

    def test_factory(self):
        self.assertIsInstance(get_m_estimator("s", ValueStore()), NoMEstimator)
        self.assertIsInstance(get_m_estimator("s", ValueStore.from_string("name=None")), NoMEstimator)
        m = get_m_estimator("s", ValueStore.from_string("name=cauchy,cauchySigma2=4"))
        self.assertEqual(m.sigma2, 4.0)
        with self.assertRaises(ConfigurationError):
            get_m_estimator("s", ValueStore.from_string("name=huber"))
        with self.assertRaises(ConfigurationError):
            CauchyMEstimator(0.0)

    def test_weighted_error(self):
        p = EuclideanPoint([3.0])
        et = MeasurementErrorTerm(p.to_expression(), [0.0], m_estimator=CauchyMEstimator(1.0))
        self.assertAlmostEqual(et.evaluate_error(), 9.0)
        self.assertAlmostEqual(float(et.weighted_error() @ et.weighted_error()), np.log(10.0))


class TestErrorTerms(unittest.TestCase):

    def test_covariance_weighting(self):
        p = EuclideanPoint([2.0, 0.0])
        et = MeasurementErrorTerm(p.to_expression(), [0.0, 0.0], covariance_sqrt=np.diag([2.0, 1.0]))
        np.testing.assert_allclose(et.whitened_error(), [1.0, 0.0])
        np.testing.assert_allclose(et.get_inv_r(), np.diag([0.25, 1.0]))

    def test_set_inv_r(self):
        et = MeasurementErrorTerm(EuclideanPoint([1.0, 1.0]).to_expression(), [0.0, 0.0])
        inv_r = np.array([[2.0, 0.5], [0.5, 1.0]])
        et.set_inv_r(inv_r)
        np.testing.assert_allclose(et.get_inv_r(), inv_r)

    def test_marginalization_prior(self):
        r = RotationQuaternion(axis_angle2quat(np.array([0.0, 0.0, 0.2])))
        prior = MarginalizationPriorErrorTerm([r], np.zeros(3), np.eye(3))
        np.testing.assert_allclose(prior.error(), np.zeros(3), atol=1e-15)
        r.update([0.0, 0.0, 0.1])
        np.testing.assert_allclose(prior.error(), [0.0, 0.0, -0.1], atol=1e-12)

    def test_condition(self):
        flag = [True]
        et = MeasurementErrorTerm(EuclideanPoint([1.0]).to_expression(), [0.0])
        conditional = add_condition(et, lambda: flag[0])
        self.assertTrue(conditional.is_active())
        flag[0] = False
        self.assertFalse(conditional.is_active())
        self.assertIs(conditional.inner, et)
        self.assertEqual(conditional.dimension, 1)


class TestOptimizationProblem(unittest.TestCase):

    def test_constant_error_terms(self):
        p = EuclideanPoint([1.0])
        et = MeasurementErrorTerm(p.to_expression(), [0.0])
        problem = OptimizationProblem()
        self.assertFalse(problem.add_error_term(et))
        self.assertEqual(problem.num_error_terms(), 0)
        self.assertEqual(problem.num_rejected_constant, 1)

        accepting = OptimizationProblem(accept_constant_error_terms=True)
        self.assertTrue(accepting.add_error_term(et))
        self.assertEqual(accepting.num_design_variables(), 1)

    def test_design_variables_deduplicated(self):
        p = EuclideanPoint([1.0])
        problem = OptimizationProblem()
        problem.add_design_variables([p, p], active=True)
        self.assertEqual(problem.num_design_variables(), 1)
        self.assertEqual(problem.get_active_design_variables(), [p])


class TestOptimizer(unittest.TestCase):

    def test_linear_problem(self):
        a, b = EuclideanPoint([0.0, 0.0]), EuclideanPoint([0.0, 0.0])
        a.set_active(True)
        b.set_active(True)
        problem = OptimizationProblem()
        problem.add_error_term(MeasurementErrorTerm(a.to_expression(), [1.0, 2.0]))
        problem.add_error_term(MeasurementErrorTerm(b.to_expression() - a.to_expression(), [3.0, -1.0]))
        result = Optimizer().optimize(problem)
        self.assertTrue(result.success)
        np.testing.assert_allclose(a.value(), [1.0, 2.0], atol=1e-6)
        np.testing.assert_allclose(b.value(), [4.0, 1.0], atol=1e-6)
        self.assertLess(result.final_cost, 1e-10)
        self.assertEqual(result.num_parameters, 4)
        self.assertEqual(result.num_residuals, 4)

    def test_rotation_problem(self):
        true_rotation = axis_angle2quat(np.array([0.3, -0.2, 0.5]))
        r = RotationQuaternion()
        r.set_active(True)
        problem = OptimizationProblem()
        for v in np.eye(3):
            measured = quat2rot(true_rotation) @ v
            problem.add_error_term(MeasurementErrorTerm(
                r.to_rotation_matrix_expression().map(lambda R, v=v: R @ v), measured))
        Optimizer(OptimizerOptions(method="lm")).optimize(problem)
        np.testing.assert_allclose(quat2axis_angle(r.value()), [0.3, -0.2, 0.5], atol=1e-6)

    def test_inactive_conditional_term_is_ignored(self):
        p = EuclideanPoint([0.0])
        p.set_active(True)
        problem = OptimizationProblem()
        problem.add_error_term(MeasurementErrorTerm(p.to_expression(), [1.0]))
        outlier = MeasurementErrorTerm(p.to_expression(), [100.0])
        problem.add_error_term(add_condition(outlier, lambda: False))
        result = Optimizer().optimize(problem)
        np.testing.assert_allclose(p.value(), [1.0], atol=1e-6)
        self.assertEqual(result.num_inactive_error_terms, 1)

    def test_inactive_variables_are_not_changed(self):
        fixed, free = EuclideanPoint([2.0]), EuclideanPoint([0.0])
        free.set_active(True)
        problem = OptimizationProblem()
        problem.add_error_term(MeasurementErrorTerm(free.to_expression() + fixed.to_expression(), [5.0]))
        Optimizer().optimize(problem)
        np.testing.assert_allclose(fixed.value(), [2.0])
        np.testing.assert_allclose(free.value(), [3.0], atol=1e-6)

    def test_nothing_to_optimize(self):
        result = Optimizer().optimize(OptimizationProblem())
        self.assertTrue(result.success)
        self.assertEqual(result.num_parameters, 0)


if __name__ == '__main__':
    unittest.main()
