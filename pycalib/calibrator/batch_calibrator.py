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

"""
Batch calibrator.

One call of ``calibrate`` runs the batch pipeline over all used modules::

    pre_process_new_window -> init_state -> set_calibration_active
    -> add_to_batch -> (priors) -> add_error_terms -> optimize
    -> estimates_updated

The batch interval spans the measurement timestamps reported through
``add_measurement_timestamp``, restricted to the ``timeBaseSensor`` if one
is configured.
"""

import io
import logging
import math
from dataclasses import dataclass, field
from typing import Optional, TextIO

from ..backend.optimizer import OptimizationResult, Optimizer, OptimizerOptions
from ..backend.problem import OptimizationProblem
from ..core.exceptions import ConsistencyError, ResolutionError
from ..core.interval import Interval
from ..model.activation import EstConf

logger = logging.getLogger(__name__)


@dataclass
class BatchCalibratorOptions:
    """
    Options of the batch calibrator.

    Attributes
    ----------
    verbose : bool
        Log the calibration variables before and after the optimization
    accept_constant_error_terms : bool
        Keep error terms without active design variables
    time_base_sensor : str
        Only timestamps of this sensor define the batch interval, all if empty
    use_priors : bool
        Add prior error terms for the active calibration variables
    est_conf : EstConf
        Activation of calibration variables, error terms and states
    optimizer : OptimizerOptions
        Optimizer options
    """
    verbose: bool = False
    accept_constant_error_terms: bool = False
    time_base_sensor: str = ""
    use_priors: bool = False
    est_conf: EstConf = field(default_factory=EstConf)
    optimizer: OptimizerOptions = field(default_factory=OptimizerOptions)

    @classmethod
    def from_value_store(cls, config) -> 'BatchCalibratorOptions':
        estimator = config.get_child("estimator")
        return cls(
            verbose=config.get_bool("verbose", False),
            accept_constant_error_terms=config.get_bool("acceptConstantErrorTerms", False),
            time_base_sensor=config.get_string("timeBaseSensor", ""),
            use_priors=config.get_bool("usePriors", False),
            est_conf=EstConf.from_value_store(estimator),
            optimizer=OptimizerOptions.from_value_store(estimator.get_child("optimizer")),
        )


class BatchCalibrator:
    """
    Calibrates a model from the measurements of one batch.

    Parameters
    ----------
    config : ValueStore
        Calibrator configuration, see ``BatchCalibratorOptions``
    model : Model
        Initialized model (modules added and links resolved)
    """

    def __init__(self, config, model):
        self.options = BatchCalibratorOptions.from_value_store(config)
        self.model = model
        self.time_origin: Optional[float] = None
        self._start = math.inf
        self._end = -math.inf
        self._num_measurements = 0
        self.last_result: Optional[OptimizationResult] = None
        logger.info(f"Created batch calibrator: {self.options}")

    def get_model(self):
        return self.model

    def add_measurement_timestamp(self, t: float, sensor):
        """Extend the batch interval by a measurement of ``sensor`` at ``t``"""
        if self.options.time_base_sensor and sensor.name != self.options.time_base_sensor:
            return
        t = float(t)
        if self.time_origin is None:
            self.time_origin = t
        self._start = min(self._start, t)
        self._end = max(self._end, t)
        self._num_measurements += 1

    def has_measurement_timestamps(self) -> bool:
        return self._num_measurements > 0

    def get_current_effective_batch_interval(self) -> Interval:
        if not self.has_measurement_timestamps():
            raise ConsistencyError("No measurement timestamps added to the current batch")
        return Interval(self._start, self._end)

    def get_num_measurements_in_batch(self) -> int:
        return self._num_measurements

    def get_time_origin(self) -> float:
        return self.time_origin if self.time_origin is not None else 0.0

    def secs_since_start(self, t: float) -> float:
        return t - self.get_time_origin()

    def _check_time_base_sensor(self):
        name = self.options.time_base_sensor
        if name and self.model.find_module(name) is None:
            raise ResolutionError(f"timeBaseSensor {name} is not a module of the model")

    def calibrate(self) -> OptimizationResult:
        """Run the batch pipeline and optimize"""
        self._check_time_base_sensor()
        interval = self.get_current_effective_batch_interval()
        modules = self.model.get_used_modules()
        ec = self.options.est_conf
        logger.info(f"Calibrating batch {interval} with {self._num_measurements} measurements")

        for module in modules:
            module.pre_process_new_window(self)
        for module in modules:
            if not module.init_state(self):
                raise ConsistencyError(f"Could not initialize the batch state of {module.name}")
        for module in modules:
            if module.has_too_few_measurements():
                logger.warning(f"{module.name} has too few measurements in this batch")
            module.set_calibration_active(ec)

        problem = OptimizationProblem(self.options.accept_constant_error_terms)
        for module in modules:
            module.add_to_batch(ec.state_activator, problem)
        for cv in self.model.get_calibration_variables():
            if cv.is_activated():
                problem.add_design_variable(cv.design_variable)
        if self.options.use_priors:
            self.model.add_calib_priors(problem)
        for module in modules:
            module.add_error_terms(self, ec, problem)

        if problem.num_rejected_constant:
            logger.info(f"Skipped {problem.num_rejected_constant} constant error terms")
        if self.options.verbose:
            logger.info(f"Calibration variables before optimization:\n"
                        f"{self.model.format_calibration_variables()}")

        self.last_result = Optimizer(self.options.optimizer).optimize(problem)
        if not self.last_result.success:
            logger.warning(f"Optimization did not converge: {self.last_result.message}")

        for module in modules:
            module.estimates_updated(self)

        if self.options.verbose:
            logger.info(f"Calibration variables after optimization:\n"
                        f"{self.model.format_calibration_variables()}")
        return self.last_result

    def update_store(self):
        """Write the estimates to the value store"""
        self.model.update_store()

    def reset_to_store(self):
        """Discard the estimates and reload the stored values"""
        self.model.reset_to_store()

    def clear_measurements(self):
        """Start a new batch"""
        for module in self.model.get_modules():
            module.clear_measurements()
        self._start = math.inf
        self._end = -math.inf
        self._num_measurements = 0

    def print_report(self, out: TextIO):
        self.model.print(out)
        if self.last_result is not None:
            r = self.last_result
            out.write(f"\nLast optimization: success={r.success}, cost {r.initial_cost:g} -> "
                      f"{r.final_cost:g} after {r.iterations} evaluations ({r.num_parameters} parameters, "
                      f"{r.num_residuals} residuals)\n")

    def get_report(self) -> str:
        out = io.StringIO()
        self.print_report(out)
        return out.getvalue()


def create_batch_calibrator(config, model) -> BatchCalibrator:
    return BatchCalibrator(config, model)
