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

"""Prior and noise covariances parsed from a ``sigma`` configuration string"""

import numpy as np

from ..core.exceptions import ConfigurationError

# off-diagonal norm, relative to the full norm, below which a factor prints as diagonal
DIAGONAL_THRESHOLD = 1e-10


class Covariance:
    """
    Covariance ``S S^T`` stored as its square root factor ``S``.

    The ``sigma`` key of ``value_store`` is interpreted as

    - empty or missing: identity
    - a single number: identity times that number
    - ``dim`` comma separated numbers: diagonal factor
    - ``dim * dim`` comma separated numbers: full factor, row major

    Parameters
    ----------
    value_store : ValueStore
        Configuration holding the optional ``sigma`` key
    dim : int
        Dimension of the covariance

    Raises
    ------
    ConfigurationError
        If ``sigma`` has any other number of entries, a malformed number or
        a singular factor
    """

    def __init__(self, value_store, dim: int):
        self.dim = int(dim)
        self._sqrt = self._parse(value_store.get_string("sigma", ""), self.dim)

    @staticmethod
    def _parse(sigma: str, dim: int) -> np.ndarray:
        sigma = sigma.strip()
        if not sigma:
            return np.eye(dim)
        parts = [p.strip() for p in sigma.split(",")]
        try:
            values = [float(p) for p in parts]
        except ValueError:
            raise ConfigurationError(f"Could not parse sigma value '{sigma}'") from None
        if len(values) == 1:
            sqrt = np.eye(dim) * values[0]
        elif len(values) == dim:
            sqrt = np.diag(values)
        elif len(values) == dim * dim:
            sqrt = np.array(values).reshape(dim, dim)
        else:
            raise ConfigurationError(
                f"Could not parse sigma value '{sigma}': expected 1, {dim} or {dim * dim} entries")
        if np.linalg.matrix_rank(sqrt) < dim:
            raise ConfigurationError(f"Singular sigma value '{sigma}'")
        return sqrt

    @classmethod
    def from_sqrt(cls, sqrt: np.ndarray) -> 'Covariance':
        sqrt = np.atleast_2d(np.asarray(sqrt, dtype=np.double))
        cov = cls.__new__(cls)
        cov.dim = sqrt.shape[0]
        cov._sqrt = sqrt.copy()
        return cov

    def get_value_sqrt(self) -> np.ndarray:
        return self._sqrt.copy()

    def get_value(self) -> np.ndarray:
        return self._sqrt @ self._sqrt.T

    def is_diagonal(self) -> bool:
        off = self._sqrt - np.diag(np.diag(self._sqrt))
        return np.linalg.norm(off) <= DIAGONAL_THRESHOLD * np.linalg.norm(self._sqrt)

    def __str__(self):
        if self.is_diagonal():
            body = "diag(" + ", ".join(f"{v:g}" for v in np.diag(self._sqrt)) + ")"
        else:
            body = "[" + "; ".join(" ".join(f"{v:g}" for v in row) for row in self._sqrt) + "]"
        return body + "^2"

    def __repr__(self):
        return f"Covariance({self})"
