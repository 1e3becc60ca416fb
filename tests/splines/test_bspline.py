import unittest

import numpy as np

from pycalib.backend.expression import Expression
from pycalib.splines.bspline import EuclideanBSpline


class TestEuclideanBSpline(unittest.TestCase):

    def test_constant_spline(self):
        spline = EuclideanBSpline(4, 3)
        spline.init_constant_uniform_spline(0.0, 2.0, 4, [1.0, -2.0, 3.0])
        self.assertEqual(spline.num_control_points(), 7)
        self.assertEqual(len(spline.get_design_variables()), 7)
        for t in (0.0, 0.3, 1.0, 2.0):
            np.testing.assert_allclose(spline.evaluate(t), [1.0, -2.0, 3.0], atol=1e-12)
            np.testing.assert_allclose(spline.evaluate(t, 1), np.zeros(3), atol=1e-10)

    def test_fit_linear_function(self):
        times = np.linspace(0.0, 1.0, 101)
        values = np.column_stack([2.0 * times, -times + 1.0])
        spline = EuclideanBSpline(4, 2)
        spline.init_uniform_spline(0.0, 1.0, times, values, 5)
        np.testing.assert_allclose(spline.evaluate(0.37), [0.74, 0.63], atol=1e-8)
        np.testing.assert_allclose(spline.evaluate(0.5, 1), [2.0, -1.0], atol=1e-6)
        np.testing.assert_allclose(spline.evaluate(0.5, 2), [0.0, 0.0], atol=1e-5)

    def test_regularized_fit_keeps_linear_functions(self):
        times = np.linspace(0.0, 1.0, 21)
        spline = EuclideanBSpline(4, 1)
        spline.init_uniform_spline(0.0, 1.0, times, 3.0 * times, 10, lambda_=10.0)
        np.testing.assert_allclose(spline.evaluate(0.25), [0.75], atol=1e-8)

    def test_time_range(self):
        spline = EuclideanBSpline(4, 1)
        spline.init_constant_uniform_spline(1.0, 2.0, 2, [0.0])
        self.assertEqual(spline.t_min, 1.0)
        self.assertEqual(spline.t_max, 2.0)
        with self.assertRaises(ValueError):
            spline.evaluate(2.5)
        with self.assertRaises(ValueError):
            spline.evaluate(0.5)
        with self.assertRaises(ValueError):
            EuclideanBSpline(4, 1).evaluate(0.0)

    def test_design_variables_at(self):
        spline = EuclideanBSpline(4, 1)
        spline.init_constant_uniform_spline(0.0, 4.0, 4, [0.0])
        control_points = spline.get_design_variables()
        self.assertEqual(spline.get_design_variables_at(0.5), control_points[0:4])
        self.assertEqual(spline.get_design_variables_at(2.5), control_points[2:6])
        self.assertEqual(spline.get_design_variables_at(4.0), control_points[3:7])
        self.assertEqual(spline.get_design_variables_between(0.5, 2.5), control_points[0:6])
        self.assertEqual(spline.get_design_variables_between(-1.0, 10.0), control_points)

    def test_moving_control_points(self):
        spline = EuclideanBSpline(2, 1)
        spline.init_constant_uniform_spline(0.0, 1.0, 1, [0.0])
        expression = spline.get_expression_at(0.5)
        self.assertEqual(len(expression.get_design_variables()), 2)
        for cp in spline.get_design_variables():
            cp.update([2.0])
        np.testing.assert_allclose(expression.evaluate(), [2.0])

    def test_expression_at_time_expression(self):
        spline = EuclideanBSpline(4, 1)
        times = np.linspace(0.0, 1.0, 11)
        spline.init_uniform_spline(0.0, 1.0, times, times, 2)
        time = Expression.constant(0.25)
        expression = spline.get_expression_at(time, time_bounds=(0.2, 0.3))
        np.testing.assert_allclose(expression.evaluate(), [0.25], atol=1e-8)
        self.assertEqual(len(expression.get_design_variables()), 4)
        clamped = spline.get_expression_at(Expression.constant(1.5))
        np.testing.assert_allclose(clamped.evaluate(), [1.0], atol=1e-8)


if __name__ == '__main__':
    unittest.main()
