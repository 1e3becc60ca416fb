import unittest

import numpy as np

from pycalib.attitude.quaternion import axis_angle2quat
from pycalib.attitude.so3 import so3_exp
from pycalib.attitude.transformation import Transformation
from pycalib.backend.design_variable import EuclideanPoint, RotationQuaternion
from pycalib.backend.expression import Expression
from pycalib.factors.accelerometer_factor import AccelerometerFactor
from pycalib.factors.gyroscope_factor import GyroscopeFactor
from pycalib.factors.integral_factor import add_quadratic_integral_error_terms, quadrature_points
from pycalib.factors.pose_factor import PoseFactor, PoseMeasurement, pose_difference
from pycalib.backend.problem import OptimizationProblem


class TestPoseFactor(unittest.TestCase):

    def test_pose_difference(self):
        R = so3_exp(np.array([0.0, 0.0, 0.1]))
        predicted = np.concatenate([[1.0, 2.0, 3.0], R.ravel()])
        measured = np.concatenate([[1.0, 1.0, 3.0], np.eye(3).ravel()])
        np.testing.assert_allclose(pose_difference(predicted, measured), [0.0, 1.0, 0.0, 0.0, 0.0, 0.1],
                                   atol=1e-12)

    def test_weighted_residual(self):
        translation = EuclideanPoint([0.0, 0.0, 0.0])
        rotation = RotationQuaternion(axis_angle2quat(np.array([0.2, 0.0, 0.0])))
        transformation = Expression.combine(
            lambda q, p: Transformation.from_quaternion(q, p),
            rotation.to_expression(), translation.to_expression())
        measurement = PoseMeasurement(0.0, [0.5, 0.0, 0.0], [0.0, 0.0, 0.0, 1.0])
        factor = PoseFactor(transformation, measurement, np.eye(3) * 0.5, np.eye(3) * 0.1, "pose")
        self.assertEqual(factor.dimension, 6)
        self.assertEqual(factor.group, "pose")
        np.testing.assert_allclose(factor.error(), [-0.5, 0.0, 0.0, 0.2, 0.0, 0.0], atol=1e-12)
        self.assertAlmostEqual(factor.evaluate_error(), 1.0 + 4.0)
        self.assertEqual(len(factor.get_design_variables()), 2)


class TestImuFactors(unittest.TestCase):

    def test_accelerometer(self):
        bias = EuclideanPoint([0.1, 0.0, 0.0])
        factor = AccelerometerFactor(
            Expression.constant([1.0, 0.0, 0.0]), Expression.constant(np.eye(3)),
            Expression.constant([0.0, 0.0, 9.81]), bias.to_expression(),
            [1.1, 0.0, 9.81], np.eye(3) * 0.01)
        np.testing.assert_allclose(factor.error(), np.zeros(3), atol=1e-12)
        np.testing.assert_allclose(factor.get_inv_r(), np.eye(3) * 100.0)

    def test_gyroscope(self):
        bias = EuclideanPoint([0.0, 0.0, 0.0])
        factor = GyroscopeFactor(Expression.constant([0.0, 0.0, 1.0]), bias.to_expression(),
                                 [0.0, 0.0, 1.5], np.eye(3) * 0.25)
        np.testing.assert_allclose(factor.error(), [0.0, 0.0, -0.5])
        self.assertAlmostEqual(factor.evaluate_error(), 1.0)


class TestIntegralFactor(unittest.TestCase):

    def test_quadrature_integrates_polynomials(self):
        times, weights = quadrature_points(1.0, 3.0, 4)
        self.assertAlmostEqual(float(np.sum(weights)), 2.0)
        self.assertAlmostEqual(float(np.sum(weights * times ** 3)), (3.0 ** 4 - 1.0) / 4.0)

    def test_integral_value(self):
        slope = EuclideanPoint([2.0])
        slope.set_active(True)
        problem = OptimizationProblem()
        total = add_quadratic_integral_error_terms(
            problem, 0.0, 1.0, 3, lambda t: slope.to_expression().map(lambda v: v * t),
            np.eye(1), "integral")
        # int_0^1 (2 t)^2 dt
        self.assertAlmostEqual(total, 4.0 / 3.0)
        self.assertEqual(problem.num_error_terms(), 3)


if __name__ == '__main__':
    unittest.main()
