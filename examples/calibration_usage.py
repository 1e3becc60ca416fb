# Copyright 2024 inuex35
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Example usage of the batch calibrator with pose and motion capture sensors"""

import numpy as np

from pycalib.calibrator import BatchCalibrator
from pycalib.core import ValueStore
from pycalib.logger import setup_logger
from pycalib.model import Model, PoseTrajectory
from pycalib.sensors import (FunctionMotionCaptureSource, MotionCaptureSensor,
                             MotionCaptureSystem, PoseSensor)


# Example 1: Sensor translation from pose measurements
def example_pose_sensor():
    """Calibrate the translation of a second pose sensor against a fixed one"""
    print("=== Example 1: Pose Sensor Translation ===\n")

    vs = ValueStore.from_string(
        "a{frame=body,targetFrame=world,rotation/used=false,"
        "translation{x=0,y=0,z=0,estimate=false},delay/used=false}"
        "b{frame=body,targetFrame=world,rotation/used=false,"
        "translation{x=0,y=0,z=0,sigma=10},delay/used=false}"
        "traj{frame=body,referenceFrame=world,McSensor=a,"
        "splines{knotsPerSecond=5,rotFittingLambda=0.001,transFittingLambda=0.001}}"
    )
    model = Model(vs, frames=["world", "body"])
    a = PoseSensor(model, "a", vs)
    b = PoseSensor(model, "b", vs)
    trajectory = PoseTrajectory(model, "traj", vs)
    model.add_modules_and_init(a, b, trajectory)

    calibrator = BatchCalibrator(
        ValueStore.from_string("timeBaseSensor=a,verbose=true,usePriors=true"), model)

    # Body moving along x, sensor b mounted 0.3 m to the left of the body origin
    lever_arm = np.array([0.0, 0.3, 0.0])
    identity = np.array([0.0, 0.0, 0.0, 1.0])
    for t in np.linspace(0.0, 2.0, 41):
        body_position = np.array([t, 0.0, 0.0])
        a.add_measurement(identity, body_position, t)
        b.add_measurement(identity, body_position + lever_arm, t)
        calibrator.add_measurement_timestamp(t, a)

    result = calibrator.calibrate()
    print(f"Optimization success: {result.success}")
    print(f"Estimated lever arm of b: {b.get_translation_to_parent()}")
    print(f"True lever arm of b:      {lever_arm}\n")

    # Persist the estimate
    calibrator.update_store()
    print(f"Stored b/translation/y = {vs.get_double('b/translation/y'):.4f}\n")


# Example 2: Motion capture delay
def example_motion_capture_delay():
    """Estimate the delay of a motion capture system against an undelayed pose sensor"""
    print("=== Example 2: Motion Capture Delay ===\n")

    true_delay = 0.02
    vs = ValueStore.from_string(
        "odom{frame=body,targetFrame=world,rotation/used=false,translation/used=false,delay/used=false}"
        "vicon{frame=world,rotation/used=false,translation/used=false,"
        "delay{value=0,lowerBound=-0.05,upperBound=0.05,sigma=1}}"
        "body{frame=body,rotation/used=false,translation/used=false,delay/used=false}"
        "traj{frame=body,referenceFrame=world,McSensor=odom}"
    )
    model = Model(vs)
    odom = PoseSensor(model, "odom", vs)
    vicon = MotionCaptureSystem(model, "vicon", vs)
    body = MotionCaptureSensor(vicon, "body", vs)
    trajectory = PoseTrajectory(model, "traj", vs)
    model.add_modules_and_init(odom, vicon, body, trajectory)

    def circle_position(t):
        return np.array([np.cos(t), np.sin(t), 0.0])

    # Motion capture poses are stamped late by true_delay
    def delayed_circle(start, now, pose):
        pose.p = circle_position(now - true_delay)

    body.set_motion_capture_source(FunctionMotionCaptureSource(delayed_circle, 0.01))

    calibrator = BatchCalibrator(ValueStore.from_string("timeBaseSensor=odom,usePriors=true"), model)
    identity = np.array([0.0, 0.0, 0.0, 1.0])
    for t in np.linspace(0.0, 2.0, 101):
        odom.add_measurement(identity, circle_position(t), t)
        calibrator.add_measurement_timestamp(t, odom)

    calibrator.calibrate()
    print(f"Estimated delay: {vicon.delay.get_delay():.4f}s (true {true_delay}s)\n")
    print(calibrator.get_report())


if __name__ == "__main__":
    setup_logger(level="WARNING")
    example_pose_sensor()
    example_motion_capture_delay()
