"""
Data Alignment
Pairs the two capture buffers by frame index to build training samples.
No interpolation or resampling: frames past the shorter buffer are dropped.
"""

import logging
from dataclasses import dataclass
from typing import List, Sequence

import numpy as np

from posemirror.errors import InsufficientDataError
from posemirror.pose_types import FLAT_POSE_DIM


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingSample:
    """(source, target) flat poses captured at the same buffer index"""
    source: np.ndarray
    target: np.ndarray

    def swapped(self) -> "TrainingSample":
        return TrainingSample(source=self.target, target=self.source)


class DataAligner:
    """Align person 1 and person 2 recordings for training"""

    def __init__(self, min_samples=10):
        self.min_samples = min_samples

    def check_sufficient(self, person1_poses: Sequence, person2_poses: Sequence):
        """Both buffers must hold more than min_samples poses"""
        if len(person1_poses) <= self.min_samples or len(person2_poses) <= self.min_samples:
            raise InsufficientDataError(len(person1_poses), len(person2_poses), self.min_samples)

    def align(self, person1_poses: Sequence, person2_poses: Sequence) -> List[TrainingSample]:
        """Create (person1 -> person2) pairs truncated to the common length"""
        min_len = min(len(person1_poses), len(person2_poses))
        pairs = []

        for i in range(min_len):
            source = np.asarray(person1_poses[i], dtype=np.float64)
            target = np.asarray(person2_poses[i], dtype=np.float64)
            if source.shape != (FLAT_POSE_DIM,) or target.shape != (FLAT_POSE_DIM,):
                raise ValueError(f"Pose {i} is not {FLAT_POSE_DIM}D")
            pairs.append(TrainingSample(source=source, target=target))

        logger.info(
            "Aligned %d pairs (person 1: %d poses, person 2: %d poses)",
            len(pairs), len(person1_poses), len(person2_poses),
        )
        return pairs

    @staticmethod
    def mirror(dataset: Sequence[TrainingSample]) -> List[TrainingSample]:
        """Same pairs with source and target swapped (person2 -> person1)"""
        return [sample.swapped() for sample in dataset]


def to_arrays(dataset: Sequence[TrainingSample]):
    """Stack a dataset into (inputs, labels) arrays of shape (N, 66)"""
    if not dataset:
        empty = np.zeros((0, FLAT_POSE_DIM), dtype=np.float64)
        return empty, empty.copy()
    inputs = np.stack([s.source for s in dataset])
    labels = np.stack([s.target for s in dataset])
    return inputs, labels
