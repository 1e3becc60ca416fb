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

"""Pose data reading utilities"""

import logging
from pathlib import Path
from typing import List, Union

import numpy as np
import pandas as pd

from ..sensors.motion_capture_source import MotionCaptureSource, PoseStamped

logger = logging.getLogger(__name__)

POSE_COLUMNS = ['time', 'x', 'y', 'z', 'qx', 'qy', 'qz', 'qw']

_ALT_MAPPING = {
    'timestamp': 'time', 't': 'time',
    'px': 'x', 'py': 'y', 'pz': 'z',
    'tx': 'x', 'ty': 'y', 'tz': 'z',
    'qi': 'qx', 'qj': 'qy', 'qk': 'qz',
    'rx': 'qx', 'ry': 'qy', 'rz': 'qz', 'rw': 'qw',
}


class PoseReader:
    """
    Reader of pose CSV files.

    Parameters
    ----------
    file_path : str
        CSV file with a header row. Recognized columns are ``time``, the
        position ``x, y, z`` and the quaternion ``qx, qy, qz, qw``; common
        alternative names (``timestamp``, ``px``, ``qi`` ...) are mapped.
    """

    def __init__(self, file_path: str):
        self.file_path = Path(file_path)
        if not self.file_path.exists():
            raise FileNotFoundError(f"Pose file not found: {file_path}")

    def read(self) -> pd.DataFrame:
        """
        Read all poses sorted by time.

        Returns
        -------
        pd.DataFrame
            Columns ``time, x, y, z, qx, qy, qz, qw``
        """
        logger.info(f"Reading poses from CSV: {self.file_path}")
        data = pd.read_csv(self.file_path, skipinitialspace=True)
        data.columns = [c.strip().lower() for c in data.columns]
        data = data.rename(columns={k: v for k, v in _ALT_MAPPING.items()
                                    if k in data.columns and v not in data.columns})

        missing = [c for c in POSE_COLUMNS if c not in data.columns]
        if missing:
            raise ValueError(f"Missing pose columns {missing} in {self.file_path}")

        data = data[POSE_COLUMNS].astype(np.double).sort_values('time').reset_index(drop=True)
        logger.info(f"Loaded {len(data)} poses between {data['time'].min():g}s and {data['time'].max():g}s")
        return data


def dataframe_to_poses(data: pd.DataFrame) -> List[PoseStamped]:
    """Convert rows with ``POSE_COLUMNS`` into ``PoseStamped``"""
    positions = data[['x', 'y', 'z']].to_numpy(dtype=np.double)
    quaternions = data[['qx', 'qy', 'qz', 'qw']].to_numpy(dtype=np.double)
    return [PoseStamped(time=float(t), p=p.copy(), q=q.copy())
            for t, p, q in zip(data['time'].to_numpy(), positions, quaternions)]


class CsvMotionCaptureSource(MotionCaptureSource):
    """
    Motion capture source backed by a pose table.

    Parameters
    ----------
    poses : str or pd.DataFrame
        CSV file path or a table with ``POSE_COLUMNS``
    """

    def __init__(self, poses: Union[str, Path, pd.DataFrame]):
        if isinstance(poses, pd.DataFrame):
            self.data = poses.sort_values('time').reset_index(drop=True)
        else:
            self.data = PoseReader(poses).read()

    def get_poses(self, start: float, end: float) -> List[PoseStamped]:
        selected = self.data[(self.data['time'] >= start) & (self.data['time'] <= end)]
        return dataframe_to_poses(selected)

    def __len__(self):
        return len(self.data)
