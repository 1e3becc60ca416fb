import io
import unittest

import numpy as np

from pycalib.attitude.quaternion import QuaternionConvention
from pycalib.backend.problem import OptimizationProblem
from pycalib.core.exceptions import ConfigurationError, ResolutionError
from pycalib.core.value_store import ValueStore
from pycalib.model.activation import EstConf
from pycalib.model.error_term_statistics import ErrorTermStatistics
from pycalib.model.frame import Frame
from pycalib.model.model import Model
from pycalib.model.module import Capability, Module, ModulePhase
from pycalib.model.parameterization import ParamKind


class PointModule(Module):
    capabilities = Capability.CALIBRATABLE

    def __init__(self, model, name, config, shared=None):
        super().__init__(model, name, config)
        self.point = shared if shared is not None else self.create_cv_if_used("point", ParamKind.POINT)
        self.scale = self.create_cv_if_used("scale", ParamKind.SCALAR, used_by_default=False)

    def get_calibration_variables(self):
        return [self.point, self.scale]

    def set_active(self, spatial, temporal):
        self.point.set_active(spatial)
        if self.scale is not None:
            self.scale.set_active(spatial)


CONFIG = ("a{point{x=1,y=2,z=3}},"
          "b{point{x=4,y=5,z=6,sigma=0.1},scale{used=true,value=2}},"
          "c{point{x=7,y=8,z=9}}")


class TestFrames(unittest.TestCase):

    def test_frames(self):
        model = Model(ValueStore(), frames=["world", Frame("body")])
        self.assertEqual(model.get_frame("world"), Frame("world"))
        self.assertTrue(model.has_frame("body"))
        self.assertFalse(model.has_frame("map"))
        created = model.get_or_create_frame("map")
        self.assertIs(model.get_or_create_frame("map"), created)
        self.assertEqual([str(f) for f in model.get_frames()], ["world", "body", "map"])

    def test_duplicate_frame(self):
        model = Model(ValueStore(), frames=["world"])
        with self.assertRaises(ConfigurationError):
            model.create_frame("world")

    def test_missing_frame(self):
        with self.assertRaises(ResolutionError):
            Model(ValueStore()).get_frame("world")


class TestModuleRegistry(unittest.TestCase):

    def setUp(self):
        self.config = ValueStore.from_string(CONFIG)
        self.model = Model(self.config)

    def test_lookup(self):
        a = PointModule(self.model, "a", self.config)
        self.model.add_modules_and_init(a)
        self.assertIs(self.model.get_module("a"), a)
        self.assertIsNone(self.model.find_module("z"))
        with self.assertRaises(ResolutionError):
            self.model.get_module("z")
        self.assertEqual(self.model.get_used_modules(), [a])

    def test_duplicate_module(self):
        self.model.add_module(PointModule(self.model, "a", self.config))
        with self.assertRaises(ConfigurationError):
            self.model.add_module(PointModule(self.model, "a", self.config))

    def test_no_trajectory(self):
        with self.assertRaises(ResolutionError):
            self.model.get_trajectory("body", "world")

    def test_sensor_ids(self):
        self.assertEqual(self.model.create_new_sensor_id(), 0)
        self.assertEqual(self.model.create_new_sensor_id(), 1)
        with self.assertRaises(ResolutionError):
            self.model.get_sensor(7)

    def test_convention(self):
        self.assertIs(self.model.quaternion_convention, QuaternionConvention.HAMILTON)
        jpl = Model(ValueStore.from_string("quaternionConvention=JPL"))
        self.assertIs(jpl.quaternion_convention, QuaternionConvention.JPL)
        with self.assertRaises(ConfigurationError):
            Model(ValueStore.from_string("quaternionConvention=euler"))


class TestCalibrationVariableIndex(unittest.TestCase):

    def setUp(self):
        self.config = ValueStore.from_string(CONFIG)
        self.model = Model(self.config)
        self.a = PointModule(self.model, "a", self.config)
        self.b = PointModule(self.model, "b", self.config)
        self.model.add_modules_and_init(self.a, self.b)

    def test_aggregation_order(self):
        cvs = self.model.get_calibration_variables()
        self.assertEqual([cv.name for cv in cvs], ["a.point", "b.point", "b.scale"])
        np.testing.assert_array_equal(self.model.get_parameters(), [1, 2, 3, 4, 5, 6, 2])

    def test_shared_variable_counted_once(self):
        c = PointModule(self.model, "c", self.config, shared=self.a.point)
        self.model.add_modules_and_init(c)
        self.assertEqual(len(self.model.get_calibration_variables()), 3)
        self.assertEqual(c.phase, ModulePhase.LINKS_RESOLVED)

    def test_adding_same_variable_twice(self):
        cv = self.a.point
        self.model.add_calibration_variables([cv])
        self.model.add_calibration_variables([cv, None])
        self.assertEqual([v.name for v in self.model.get_calibration_variables()],
                         ["a.point", "b.point", "b.scale"])

    def test_indices_of_active_variables(self):
        for module in (self.a, self.b):
            module.set_calibration_active(EstConf())
        self.assertEqual([cv.index for cv in self.model.get_calibration_variables()], [0, 3, 6])
        self.assertEqual(self.model.get_num_active_parameters(), 7)

        self.a.set_active(False, False)
        self.model.update_cv_indices()
        self.assertEqual([cv.index for cv in self.model.get_calibration_variables()], [-1, 0, 3])
        self.assertEqual(self.model.get_num_active_parameters(), 4)

    def test_priors(self):
        self.b.set_calibration_active(EstConf())
        problem = OptimizationProblem()
        with self.assertLogs('pycalib.model.model', level='INFO'):
            self.model.add_calib_priors(problem)
        self.assertEqual(problem.num_error_terms(), 2)
        self.assertEqual({t.group for t in problem.error_terms}, {"CvPrior"})

    def test_update_and_reset_store(self):
        self.a.point.set_minimal_components([0.0, 0.0, 0.0])
        self.model.update_store()
        self.assertEqual(self.config.get_double("a/point/x"), 0.0)
        self.a.point.set_minimal_components([9.0, 9.0, 9.0])
        self.model.reset_to_store()
        np.testing.assert_array_equal(self.a.point.get_minimal_components(), [0.0, 0.0, 0.0])

    def test_report(self):
        self.a.set_calibration_active(EstConf())
        report = str(self.model)
        self.assertTrue(report.startswith("Model:\n"))
        self.assertIn("Calibration:\n", report)
        self.assertIn("* ", report)
        out = io.StringIO()
        self.model.print_calibration_variables(out)
        self.assertEqual(len(out.getvalue().splitlines()), 7)


class TestGravity(unittest.TestCase):

    def test_unused_by_default(self):
        model = Model(ValueStore())
        gravity = model.get_gravity()
        self.assertFalse(gravity.is_used())
        np.testing.assert_allclose(gravity.get_vector(), [0.0, 0.0, 9.81])
        self.assertEqual(model.get_calibration_variables(), [])

    def test_estimated_magnitude(self):
        model = Model(ValueStore.from_string("Gravity{used=true,magnitude{value=9.8}}"))
        gravity = model.get_gravity()
        self.assertIs(model.get_module("Gravity"), gravity)
        self.assertEqual([cv.name for cv in model.get_calibration_variables()], ["Gravity.magnitude"])
        gravity.set_calibration_active(EstConf())
        self.assertTrue(gravity.magnitude_variable.is_activated())
        gravity.magnitude_variable.set_minimal_components([9.7])
        np.testing.assert_allclose(gravity.get_vector_expression().evaluate(), [0.0, 0.0, 9.7])


class TestErrorTermStatistics(unittest.TestCase):

    def test_counts_and_forwards(self):
        config = ValueStore.from_string(CONFIG)
        model = Model(config)
        a = PointModule(model, "a", config)
        model.add_modules_and_init(a)
        a.set_calibration_active(EstConf())
        problem = OptimizationProblem()
        statistics = ErrorTermStatistics("aPoint", problem)
        prior = a.point.create_prior_error_term()
        self.assertTrue(statistics.add(1.0, prior))
        self.assertTrue(statistics.add(3.0, prior))
        self.assertEqual(statistics.counter, 2)
        self.assertEqual(problem.num_error_terms(), 2)
        self.assertIn("between 1s and 3s", str(statistics))

    def test_observe_only(self):
        problem = OptimizationProblem()
        statistics = ErrorTermStatistics("observed", problem, observe_only=True)
        config = ValueStore.from_string(CONFIG)
        model = Model(config)
        a = PointModule(model, "a", config)
        a.point.set_minimal_components([1.5, 2.0, 3.0])
        self.assertFalse(statistics.add(0.0, a.point.create_prior_error_term()))
        self.assertEqual(statistics.counter, 1)
        self.assertEqual(statistics.num_added, 0)
        self.assertEqual(problem.num_error_terms(), 0)
        self.assertAlmostEqual(statistics.total_cost, 0.25)


if __name__ == '__main__':
    unittest.main()
