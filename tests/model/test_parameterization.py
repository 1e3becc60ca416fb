import unittest

import numpy as np

from pycalib.attitude.quaternion import QuaternionConvention, axis_angle2quat, quat_inv
from pycalib.backend.design_variable import EuclideanPoint, RotationQuaternion, Scalar
from pycalib.core.exceptions import ConsistencyError
from pycalib.core.value_store import ValueStore
from pycalib.model.parameterization import ComponentLoader, ParamKind, get_parameterization


class TestParameterization(unittest.TestCase):

    def test_component_tables(self):
        self.assertEqual(get_parameterization(ParamKind.POINT).component_names, ("x", "y", "z"))
        self.assertEqual(get_parameterization(ParamKind.ROTATION).component_names,
                         ("roll", "pitch", "yaw"))
        self.assertEqual(get_parameterization(ParamKind.SCALAR).component_names, ("",))
        self.assertEqual(get_parameterization(ParamKind.SCALAR).store_keys, ("value",))
        self.assertEqual(get_parameterization(ParamKind.ROTATION).dimension, 3)

    def test_design_variable_types(self):
        self.assertIsInstance(get_parameterization(ParamKind.POINT).create_design_variable([1, 2, 3]),
                              EuclideanPoint)
        self.assertIsInstance(get_parameterization(ParamKind.SCALAR).create_design_variable([1.5]),
                              Scalar)
        rotation = get_parameterization(ParamKind.ROTATION).create_design_variable([0, 0, 0, 1])
        self.assertIsInstance(rotation, RotationQuaternion)

    def test_rotation_pack_unpack(self):
        p = get_parameterization(ParamKind.ROTATION)
        v = np.array([0.1, -0.4, 0.25])
        q = p.unpack(v)
        self.assertEqual(q.shape, (4,))
        np.testing.assert_allclose(p.pack(q), v, atol=1e-12)

    def test_point_pack_is_identity(self):
        p = get_parameterization(ParamKind.POINT)
        np.testing.assert_array_equal(p.pack(np.array([1.0, 2.0, 3.0])), [1.0, 2.0, 3.0])

    def test_random_round_trips(self):
        rng = np.random.RandomState(42)
        for kind in ParamKind:
            p = get_parameterization(kind)
            for _ in range(20):
                v = rng.uniform(-1.0, 1.0, p.dimension)
                if kind is ParamKind.ROTATION:
                    v *= rng.uniform(0.0, 0.99 * np.pi) / np.linalg.norm(v)
                np.testing.assert_allclose(p.pack(p.unpack(v)), v, atol=1e-9, err_msg=str(kind))


class TestComponentLoader(unittest.TestCase):

    def test_rotation_from_roll_pitch_yaw(self):
        vs = ValueStore.from_string("roll=0.1,pitch=0.2,yaw=0.3")
        loader = get_parameterization(ParamKind.ROTATION).create_loader(vs)
        self.assertEqual(loader.keys, ("roll", "pitch", "yaw"))
        np.testing.assert_allclose(loader.load(vs), axis_angle2quat(np.array([0.1, 0.2, 0.3])))

    def test_rotation_from_quaternion_components(self):
        vs = ValueStore.from_string("i=0,j=0,k=0.6,w=0.8")
        hamilton = get_parameterization(ParamKind.ROTATION).create_loader(vs)
        self.assertEqual(hamilton.keys, ("i", "j", "k", "w"))
        np.testing.assert_allclose(hamilton.load(vs), quat_inv(np.array([0.0, 0.0, 0.6, 0.8])))
        jpl = get_parameterization(ParamKind.ROTATION).create_loader(vs, QuaternionConvention.JPL)
        np.testing.assert_allclose(jpl.load(vs), [0.0, 0.0, 0.6, 0.8])

    def test_store_writes_through(self):
        vs = ValueStore.from_string("x=1,y=2,z=3")
        loader = get_parameterization(ParamKind.POINT).create_loader(vs)
        loader.load(vs)
        self.assertTrue(loader.is_updateable())
        loader.store(np.array([4.0, 5.0, 6.0]))
        self.assertEqual(vs.get_double("y"), 5.0)

    def test_store_skips_read_only(self):
        vs = ValueStore.from_string("value=1", read_only=True)
        loader = get_parameterization(ParamKind.SCALAR).create_loader(vs)
        loader.load(vs)
        self.assertFalse(loader.is_updateable())
        with self.assertLogs('pycalib.model.parameterization', level='WARNING'):
            loader.store(np.array([2.0]))
        self.assertEqual(vs.get_double("value"), 1.0)

    def test_store_before_load(self):
        loader = ComponentLoader(("value",), lambda v: v, lambda v: v)
        with self.assertRaises(ConsistencyError):
            loader.store(np.array([1.0]))
        with self.assertRaises(ConsistencyError):
            loader.is_updateable()


if __name__ == '__main__':
    unittest.main()
