import unittest

import numpy as np

from pycalib.backend.error_term import ConditionalErrorTerm
from pycalib.backend.problem import OptimizationProblem
from pycalib.calibrator.batch_calibrator import BatchCalibrator
from pycalib.core.exceptions import ConfigurationError, ConsistencyError
from pycalib.core.value_store import ValueStore
from pycalib.model.activation import EstConf
from pycalib.model.model import Model
from pycalib.model.module import Capability
from pycalib.model.pose_trajectory import PoseTrajectory
from pycalib.sensors.motion_capture import MotionCaptureSensor, MotionCaptureSystem
from pycalib.sensors.motion_capture_source import FunctionMotionCaptureSource
from pycalib.sensors.pose_sensor import PoseSensor

TIMES = np.linspace(0.0, 1.0, 11)

TRAJECTORY_CONFIG = "traj{frame=body,referenceFrame=world,McSensor=pose}"


def _pose_model(sensor_config):
    config = ValueStore.from_string(TRAJECTORY_CONFIG + "," + sensor_config)
    model = Model(config)
    trajectory = PoseTrajectory(model, "traj", config)
    sensor = PoseSensor(model, "pose", config)
    model.add_modules_and_init(trajectory, sensor)
    calib = BatchCalibrator(ValueStore(), model)
    for t in TIMES:
        sensor.add_measurement([0.0, 0.0, 0.0, 1.0], [0.0, 0.0, 0.0], t)
        calib.add_measurement_timestamp(t, sensor)
    return model, trajectory, sensor, calib


def _assemble(model, calib, ec=None):
    ec = ec if ec is not None else EstConf()
    for module in model.get_used_modules():
        module.init_state(calib)
    for module in model.get_used_modules():
        module.set_calibration_active(ec)
    problem = OptimizationProblem()
    for module in model.get_used_modules():
        module.add_to_batch(ec.state_activator, problem)
    for module in model.get_used_modules():
        module.add_error_terms(calib, ec, problem)
    return problem


class TestPoseSensor(unittest.TestCase):

    def test_registration(self):
        model, _, sensor, _ = _pose_model(
            "pose{frame=body,targetFrame=world,rotation/used=false,translation{x=0,y=5,z=0},delay/used=false}")
        self.assertEqual(sensor.id, 0)
        self.assertEqual(model.get_sensor_name(0), "pose")
        self.assertEqual(model.get_sensors(Capability.POSE_SENSOR), [sensor])
        self.assertTrue(model.has_frame("body"))
        self.assertTrue(sensor.has_translation())
        self.assertFalse(sensor.has_rotation())
        self.assertFalse(sensor.has_delay())
        self.assertEqual([cv.name for cv in model.get_calibration_variables()], ["pose.translation"])

    def test_trajectory_initialized_from_measurements(self):
        model, trajectory, _, calib = _pose_model(
            "pose{frame=body,targetFrame=world,rotation/used=false,translation{x=0,y=5,z=0},delay/used=false}")
        self.assertTrue(trajectory.init_state(calib))
        T_world_body = trajectory.get_current_trajectory().get_transformation(0.5)
        np.testing.assert_allclose(T_world_body.translation, [0.0, -5.0, 0.0], atol=1e-8)
        np.testing.assert_allclose(T_world_body.rotation, np.eye(3), atol=1e-8)

    def test_error_terms_without_delay(self):
        model, _, sensor, calib = _pose_model(
            "pose{frame=body,targetFrame=world,rotation/used=false,translation{x=0,y=5,z=0},delay/used=false}")
        sensor.add_measurement([0.0, 0.0, 0.0, 1.0], [0.0, 0.0, 0.0], 1.5)
        problem = _assemble(model, calib)
        pose_terms = [t for t in problem.error_terms if t.group == "posePose"]
        self.assertEqual(len(pose_terms), 11)
        self.assertFalse(any(isinstance(t, ConditionalErrorTerm) for t in pose_terms))

    def test_conditional_error_terms_with_delay(self):
        model, _, sensor, calib = _pose_model(
            "pose{frame=body,targetFrame=world,rotation/used=false,translation/used=false,"
            "delay{value=0,lowerBound=-0.1,upperBound=0.1}}")
        sensor.add_measurement([0.0, 0.0, 0.0, 1.0], [0.0, 0.0, 0.0], 1.5)
        problem = _assemble(model, calib)
        pose_terms = [t for t in problem.error_terms if t.group == "posePose"]
        self.assertEqual(len(pose_terms), 12)
        conditional = [t for t in pose_terms if isinstance(t, ConditionalErrorTerm)]
        self.assertIs(pose_terms[0], conditional[0])
        self.assertIs(pose_terms[-1], conditional[-1])
        self.assertEqual(sum(t.is_active() for t in pose_terms), 11)

        sensor.delay.delay_variable.set_minimal_components([0.6])
        self.assertTrue(pose_terms[-1].is_active())

    def test_delay_out_of_bounds(self):
        model, _, sensor, calib = _pose_model(
            "pose{frame=body,targetFrame=world,rotation/used=false,translation/used=false,"
            "delay{value=0.5,lowerBound=-0.1,upperBound=0.1}}")
        with self.assertRaises(ConsistencyError):
            sensor.add_error_terms(calib, EstConf(), OptimizationProblem())

    def test_inverted_delay_bounds(self):
        with self.assertRaises(ConfigurationError):
            _pose_model("pose{frame=body,targetFrame=world,rotation/used=false,translation/used=false,"
                        "delay{value=0,lowerBound=0.1,upperBound=-0.1}}")

    def test_observe_only(self):
        model, _, sensor, calib = _pose_model(
            "pose{frame=body,targetFrame=world,observeOnly=true,rotation/used=false,"
            "translation{x=0,y=5,z=0},delay/used=false}")
        problem = _assemble(model, calib)
        self.assertFalse(sensor.pose.translation_variable.is_activated())
        self.assertEqual([t for t in problem.error_terms if t.group == "posePose"], [])

    def test_error_term_activator(self):
        model, _, sensor, calib = _pose_model(
            "pose{frame=body,targetFrame=world,rotation/used=false,translation{x=0,y=5,z=0},delay/used=false}")
        ec = EstConf.from_value_store(ValueStore.from_string('errorTermsActive="!pose"'))
        problem = _assemble(model, calib, ec)
        self.assertEqual([t for t in problem.error_terms if t.group == "posePose"], [])

    def test_frame_mismatch(self):
        model, trajectory, _, calib = _pose_model(
            "pose{frame=body,targetFrame=map,rotation/used=false,translation/used=false,delay/used=false}")
        with self.assertRaises(ConfigurationError):
            trajectory.init_state(calib)

    def test_clear_measurements(self):
        _, _, sensor, calib = _pose_model(
            "pose{frame=body,targetFrame=world,rotation/used=false,translation/used=false,delay/used=false}")
        self.assertTrue(sensor.has_measurements())
        calib.clear_measurements()
        self.assertFalse(sensor.has_measurements())
        self.assertFalse(calib.has_measurement_timestamps())


class TestMotionCaptureSensor(unittest.TestCase):

    def setUp(self):
        config = ValueStore.from_string(
            "traj{frame=body,referenceFrame=world,McSensor=mc},"
            "mcs{frame=world,rotation/used=false,translation/used=false,"
            "delay{value=0,lowerBound=-0.05,upperBound=0.05}},"
            "mc{frame=body,rotation/used=false,translation/used=false,delay/used=false}")
        self.model = Model(config)
        self.system = MotionCaptureSystem(self.model, "mcs", config)
        self.sensor = MotionCaptureSensor(self.system, "mc", config)
        self.trajectory = PoseTrajectory(self.model, "traj", config)
        self.model.add_modules_and_init(self.system, self.sensor, self.trajectory)

        def circle(start, now, pose):
            pose.p = np.array([np.cos(now), np.sin(now), 0.0])

        self.sensor.set_motion_capture_source(FunctionMotionCaptureSource(circle, 0.1))
        self.calib = BatchCalibrator(ValueStore(), self.model)
        self.calib.add_measurement_timestamp(0.0, self.sensor)
        self.calib.add_measurement_timestamp(1.0, self.sensor)

    def test_shares_system_delay(self):
        self.assertTrue(self.sensor.has_delay())
        self.assertIs(self.sensor.delay.delay_variable, self.system.delay.delay_variable)
        self.assertEqual(self.sensor.get_target_frame(), self.model.get_frame("world"))
        self.assertEqual(len(self.model.get_calibration_variables()), 1)

    def test_fetches_delay_extended_window(self):
        self.sensor.pre_process_new_window(self.calib)
        measurements = self.sensor.get_measurements()
        self.assertEqual(len(measurements), 12)
        self.assertAlmostEqual(measurements[0].time, -0.05)
        self.assertAlmostEqual(measurements[-1].time, 1.05)

    def test_conditional_terms_at_window_borders(self):
        self.sensor.pre_process_new_window(self.calib)
        problem = _assemble(self.model, self.calib)
        pose_terms = [t for t in problem.error_terms if t.group == "mcPose"]
        self.assertEqual(len(pose_terms), 12)
        self.assertIsInstance(pose_terms[0], ConditionalErrorTerm)
        self.assertIsInstance(pose_terms[-1], ConditionalErrorTerm)
        self.assertEqual(sum(t.is_active() for t in pose_terms), 10)

    def test_trajectory_follows_source(self):
        self.sensor.pre_process_new_window(self.calib)
        self.trajectory.init_state(self.calib)
        position = self.trajectory.get_current_trajectory().get_translation(0.5)
        np.testing.assert_allclose(position, [np.cos(0.5), np.sin(0.5), 0.0], atol=1e-3)


if __name__ == '__main__':
    unittest.main()
