import unittest

import numpy as np

from pycalib.core.exceptions import ConfigurationError
from pycalib.core.value_store import ValueStore
from pycalib.model.covariance import Covariance


def _covariance(sigma: str, dim: int = 3) -> Covariance:
    return Covariance(ValueStore.from_dict({'sigma': sigma}), dim)


class TestCovariance(unittest.TestCase):

    def test_missing_sigma_is_identity(self):
        np.testing.assert_array_equal(Covariance(ValueStore(), 3).get_value(), np.eye(3))
        np.testing.assert_array_equal(_covariance("").get_value(), np.eye(3))

    def test_scalar_sigma(self):
        cov = _covariance("0.5")
        np.testing.assert_allclose(cov.get_value(), np.eye(3) * 0.25)
        self.assertEqual(str(cov), "diag(0.5, 0.5, 0.5)^2")

    def test_diagonal_sigma(self):
        cov = _covariance("1, 2, 3")
        np.testing.assert_allclose(cov.get_value(), np.diag([1.0, 4.0, 9.0]))
        self.assertTrue(cov.is_diagonal())
        self.assertEqual(str(cov), "diag(1, 2, 3)^2")

    def test_full_sigma(self):
        cov = _covariance("1,0,0,1,1,0,0,0,2")
        S = np.array([[1.0, 0.0, 0.0], [1.0, 1.0, 0.0], [0.0, 0.0, 2.0]])
        np.testing.assert_allclose(cov.get_value(), S @ S.T)
        self.assertFalse(cov.is_diagonal())
        self.assertEqual(str(cov), "[1 0 0; 1 1 0; 0 0 2]^2")

    def test_parsed_from_config_string(self):
        vs = ValueStore.from_string('a{sigma="0.1,0.2,0.3"}')
        cov = Covariance(vs.get_child("a"), 3)
        np.testing.assert_allclose(cov.get_value_sqrt(), np.diag([0.1, 0.2, 0.3]))

    def test_malformed_sigma(self):
        with self.assertRaises(ConfigurationError):
            _covariance("1,2")
        with self.assertRaises(ConfigurationError):
            _covariance("1,x,3")
        with self.assertRaises(ConfigurationError):
            _covariance("1,2,3,4,5,6,7,8,9,10")

    def test_singular_sigma(self):
        for sigma in ("0", "1,0,2", "1,2,3,2,4,6,0,0,1"):
            with self.assertRaisesRegex(ConfigurationError, "Singular sigma"):
                _covariance(sigma)

    def test_one_dimensional(self):
        cov = _covariance("2", 1)
        np.testing.assert_allclose(cov.get_value(), [[4.0]])

    def test_from_sqrt(self):
        cov = Covariance.from_sqrt(np.diag([1.0, 2.0]))
        self.assertEqual(cov.dim, 2)
        np.testing.assert_allclose(cov.get_value(), np.diag([1.0, 4.0]))


if __name__ == '__main__':
    unittest.main()
