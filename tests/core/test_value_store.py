import unittest

from pycalib.core.exceptions import ConfigurationError, ConsistencyError
from pycalib.core.interval import Interval
from pycalib.core.value_store import ValueStore


class TestValueStoreParsing(unittest.TestCase):

    def test_nested_children_and_paths(self):
        vs = ValueStore.from_string("a{frame=body,translation{x=0,y=5,z=0},delay/used=false}")
        a = vs.get_child("a")
        self.assertEqual(a.get_string("frame"), "body")
        self.assertEqual(a.get_double("translation/y"), 5.0)
        self.assertFalse(a.get_bool("delay/used"))
        self.assertTrue(vs.has_key("a/translation/x"))
        self.assertFalse(vs.has_key("a/rotation"))

    def test_juxtaposed_and_newline_separated_items(self):
        vs = ValueStore.from_string("Gravity{used=false}b{x=1}\nverbose=true\nn=3")
        self.assertFalse(vs.get_bool("Gravity/used"))
        self.assertEqual(vs.get_double("b/x"), 1.0)
        self.assertTrue(vs.get_bool("verbose"))
        self.assertEqual(vs.get_int("n"), 3)

    def test_quoted_value_keeps_commas(self):
        vs = ValueStore.from_string('c{sigma="1,2,3"}')
        self.assertEqual(vs.get_string("c/sigma"), "1,2,3")

    def test_repeated_child_is_merged(self):
        vs = ValueStore.from_string("a{x=1}a{y=2}")
        self.assertEqual(vs.get_double("a/x"), 1.0)
        self.assertEqual(vs.get_double("a/y"), 2.0)

    def test_unbalanced_braces(self):
        with self.assertRaises(ConfigurationError):
            ValueStore.from_string("a{x=1")
        with self.assertRaises(ConfigurationError):
            ValueStore.from_string("a=1}")


class TestValueStoreAccess(unittest.TestCase):

    def setUp(self):
        self.vs = ValueStore.from_dict({"a": {"x": "1.5", "flag": "yes", "name": "imu"}})

    def test_defaults(self):
        a = self.vs.get_child("a")
        self.assertEqual(a.get_double("missing", 2.0), 2.0)
        self.assertTrue(a.get_bool("missing", True))
        self.assertEqual(a.get_string("missing", ""), "")

    def test_missing_key_without_default(self):
        with self.assertRaises(ConfigurationError):
            self.vs.get_child("a").get_double("missing")

    def test_bad_conversion(self):
        with self.assertRaises(ConfigurationError):
            self.vs.get_child("a").get_double("name")
        with self.assertRaises(ConfigurationError):
            self.vs.get_child("a").get_bool("x")

    def test_child_of_missing_node_is_empty(self):
        child = self.vs.get_child("nothing/here")
        self.assertFalse(child.has_key("x"))
        self.assertEqual(child.keys(), [])


class TestValueHandle(unittest.TestCase):

    def test_handle_writes_through(self):
        vs = ValueStore.from_string("a{x=1}")
        handle = vs.get_child("a").get_handle("x", float)
        self.assertTrue(handle.is_updateable())
        handle.update(4.0)
        self.assertEqual(vs.get_double("a/x"), 4.0)
        self.assertEqual(handle.get(), 4.0)

    def test_default_handle_is_constant(self):
        vs = ValueStore.from_string("a{x=1}")
        handle = vs.get_handle("a/y", float, 3.0)
        self.assertFalse(handle.is_updateable())
        self.assertEqual(handle.get(), 3.0)
        with self.assertRaises(ConsistencyError):
            handle.update(1.0)

    def test_read_only_store(self):
        vs = ValueStore.from_string("a{x=1}", read_only=True)
        self.assertFalse(vs.get_handle("a/x").is_updateable())

    def test_missing_handle_without_default(self):
        with self.assertRaises(ConfigurationError):
            ValueStore().get_handle("x")


class TestInterval(unittest.TestCase):

    def test_membership(self):
        interval = Interval(0.0, 1.0)
        self.assertTrue(interval.contains(0.0))
        self.assertFalse(interval.contains(1.0))
        self.assertTrue(interval.covers(1.0))
        self.assertAlmostEqual(interval.elapsed_time, 1.0)

    def test_extended(self):
        interval = Interval(0.0, 1.0).extended(-0.1, 0.2)
        self.assertAlmostEqual(interval.start, -0.1)
        self.assertAlmostEqual(interval.end, 1.2)


if __name__ == '__main__':
    unittest.main()
