"""
Pose buffers
Per-frame detection snapshots and the two capture buffers used for training
"""

from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np

from posemirror.pose_types import JointSet


@dataclass(frozen=True)
class PoseBatch:
    """All bodies detected in one video frame. Never mutated once published."""
    joint_sets: Tuple[JointSet, ...] = ()
    timestamp_ms: int = 0

    def __len__(self):
        return len(self.joint_sets)

    def body(self, index: int) -> Optional[JointSet]:
        """Joint set of a body, or None when it was not detected this frame"""
        if 0 <= index < len(self.joint_sets):
            return self.joint_sets[index]
        return None


class LatestPoses:
    """Single-producer / single-consumer slot holding the newest PoseBatch.

    The detection callback publishes a whole new batch; the render loop
    only ever reads a complete one.
    """

    def __init__(self):
        self._batch = PoseBatch()

    def publish(self, batch: PoseBatch):
        self._batch = batch

    def latest(self) -> PoseBatch:
        return self._batch


@dataclass
class CaptureBuffers:
    """Flat poses recorded for person 1 and person 2"""
    person1: List[np.ndarray] = field(default_factory=list)
    person2: List[np.ndarray] = field(default_factory=list)

    def append(self, person: int, pose: np.ndarray):
        # list.append publishes the whole pose in one step
        if person == 1:
            self.person1.append(pose)
        elif person == 2:
            self.person2.append(pose)
        else:
            raise ValueError(f"Unknown person {person}")

    def clear(self, person: Optional[int] = None):
        if person in (None, 1):
            self.person1 = []
        if person in (None, 2):
            self.person2 = []

    @property
    def both_populated(self) -> bool:
        return len(self.person1) > 0 and len(self.person2) > 0

    def snapshot(self) -> Tuple[Tuple[np.ndarray, ...], Tuple[np.ndarray, ...]]:
        return tuple(self.person1), tuple(self.person2)
