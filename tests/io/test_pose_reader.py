import os
import shutil
import tempfile
import unittest

import numpy as np
import pandas as pd

from pycalib.io.pose_reader import POSE_COLUMNS, CsvMotionCaptureSource, PoseReader, dataframe_to_poses


class TestPoseReader(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.csv_file = os.path.join(self.test_dir, "poses.csv")
        self.test_data = pd.DataFrame({
            'time': [0.2, 0.0, 0.1, 0.3],
            'x': [2.0, 0.0, 1.0, 3.0],
            'y': [0.0, 0.0, 0.0, 0.0],
            'z': [1.0, 1.0, 1.0, 1.0],
            'qx': [0.0, 0.0, 0.0, 0.0],
            'qy': [0.0, 0.0, 0.0, 0.0],
            'qz': [0.0, 0.0, 0.0, 0.0],
            'qw': [1.0, 1.0, 1.0, 1.0],
        })
        self.test_data.to_csv(self.csv_file, index=False)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_read_sorted(self):
        data = PoseReader(self.csv_file).read()
        self.assertEqual(list(data.columns), POSE_COLUMNS)
        np.testing.assert_array_equal(data['time'], [0.0, 0.1, 0.2, 0.3])
        np.testing.assert_array_equal(data['x'], [0.0, 1.0, 2.0, 3.0])

    def test_alternative_column_names(self):
        alt_file = os.path.join(self.test_dir, "alt.csv")
        renamed = self.test_data.rename(columns={'time': 'Timestamp', 'x': ' px', 'qx': 'qi', 'qw': 'QW'})
        renamed.to_csv(alt_file, index=False)
        data = PoseReader(alt_file).read()
        self.assertEqual(list(data.columns), POSE_COLUMNS)
        self.assertEqual(len(data), 4)

    def test_missing_columns(self):
        bad_file = os.path.join(self.test_dir, "bad.csv")
        self.test_data.drop(columns=['qw']).to_csv(bad_file, index=False)
        with self.assertRaises(ValueError):
            PoseReader(bad_file).read()

    def test_missing_file(self):
        with self.assertRaises(FileNotFoundError):
            PoseReader(os.path.join(self.test_dir, "missing.csv"))

    def test_dataframe_to_poses(self):
        poses = dataframe_to_poses(PoseReader(self.csv_file).read())
        self.assertEqual(len(poses), 4)
        self.assertEqual(poses[1].time, 0.1)
        np.testing.assert_array_equal(poses[1].p, [1.0, 0.0, 1.0])
        np.testing.assert_array_equal(poses[1].q, [0.0, 0.0, 0.0, 1.0])


class TestCsvMotionCaptureSource(unittest.TestCase):

    def test_closed_time_range(self):
        data = pd.DataFrame({c: np.zeros(5) for c in POSE_COLUMNS})
        data['time'] = [0.4, 0.0, 0.1, 0.2, 0.3]
        data['qw'] = 1.0
        source = CsvMotionCaptureSource(data)
        self.assertEqual(len(source), 5)
        poses = source.get_poses(0.1, 0.3)
        self.assertEqual([p.time for p in poses], [0.1, 0.2, 0.3])
        self.assertEqual(source.get_poses(1.0, 2.0), [])

    def test_from_file(self):
        test_dir = tempfile.mkdtemp()
        try:
            path = os.path.join(test_dir, "poses.csv")
            pd.DataFrame({'time': [0.0, 1.0], 'x': [0.0, 1.0], 'y': [0.0, 0.0], 'z': [0.0, 0.0],
                          'qx': [0.0, 0.0], 'qy': [0.0, 0.0], 'qz': [0.0, 0.0],
                          'qw': [1.0, 1.0]}).to_csv(path, index=False)
            source = CsvMotionCaptureSource(path)
            self.assertEqual(len(source.get_poses(0.0, 1.0)), 2)
        finally:
            shutil.rmtree(test_dir)


if __name__ == '__main__':
    unittest.main()
