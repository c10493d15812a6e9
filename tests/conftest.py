import asyncio

import numpy as np
import pytest

from posemirror.pose_types import JOINTS, NUM_JOINTS, make_joint_set


def standing_points(dx=0.0, dy=0.0, hand_up=False):
    """33 (x, y) points of a rough standing figure"""
    points = [(0.5, 0.5)] * NUM_JOINTS
    layout = {
        JOINTS.NOSE: (0.50, 0.15),
        JOINTS.LEFT_EYE: (0.52, 0.13),
        JOINTS.RIGHT_EYE: (0.48, 0.13),
        JOINTS.LEFT_SHOULDER: (0.60, 0.30),
        JOINTS.RIGHT_SHOULDER: (0.40, 0.30),
        JOINTS.LEFT_ELBOW: (0.65, 0.42),
        JOINTS.RIGHT_ELBOW: (0.35, 0.42),
        JOINTS.LEFT_WRIST: (0.67, 0.52),
        JOINTS.RIGHT_WRIST: (0.33, 0.52),
        JOINTS.LEFT_PINKY: (0.681, 0.551),
        JOINTS.RIGHT_PINKY: (0.321, 0.551),
        JOINTS.LEFT_INDEX: (0.68, 0.55),
        JOINTS.RIGHT_INDEX: (0.32, 0.55),
        JOINTS.LEFT_THUMB: (0.662, 0.543),
        JOINTS.RIGHT_THUMB: (0.338, 0.543),
        JOINTS.LEFT_HIP: (0.56, 0.60),
        JOINTS.RIGHT_HIP: (0.44, 0.60),
        JOINTS.LEFT_KNEE: (0.57, 0.75),
        JOINTS.RIGHT_KNEE: (0.43, 0.75),
        JOINTS.LEFT_ANKLE: (0.57, 0.90),
        JOINTS.RIGHT_ANKLE: (0.43, 0.90),
        JOINTS.LEFT_HEEL: (0.58, 0.92),
        JOINTS.RIGHT_HEEL: (0.42, 0.92),
        JOINTS.LEFT_FOOT_INDEX: (0.56, 0.94),
        JOINTS.RIGHT_FOOT_INDEX: (0.44, 0.94),
    }
    for index, point in layout.items():
        points[index] = point
    if hand_up:
        points[JOINTS.RIGHT_WRIST] = (0.33, 0.05)
    return [(x + dx, y + dy) for x, y in points]


def standing_pose(dx=0.0, dy=0.0, hand_up=False):
    return make_joint_set(standing_points(dx, dy, hand_up))


def random_flat_poses(count, seed=0):
    rng = np.random.default_rng(seed)
    return [rng.uniform(0.0, 1.0, size=66) for _ in range(count)]


class FakeHandle:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class FakeScheduler:
    """Manual clock: timers fire only when the test advances time"""

    def __init__(self):
        self.now = 0.0
        self.handles = []
        self.spawned = []

    def clock(self):
        return self.now

    def call_later(self, delay, callback, *args):
        handle = FakeHandle(self.now + delay, callback, args)
        self.handles.append(handle)
        return handle

    def spawn(self, coro):
        self.spawned.append(coro)
        return coro

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = [h for h in self.handles if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.handles.remove(handle)
            self.now = handle.when
            handle.callback(*handle.args)
        self.now = target

    def run_spawned(self):
        results = []
        while self.spawned:
            results.append(asyncio.run(self.spawned.pop(0)))
        return results


class FakeModel:
    """Shifts every coordinate by a constant"""

    def __init__(self, offset):
        self.offset = offset
        self.inputs = []

    def predict(self, pose):
        pose = np.asarray(pose, dtype=np.float64)
        self.inputs.append(pose)
        return pose + self.offset


def fake_fit(dataset, config=None, history_path=None):
    return FakeModel(offset=0.01)


@pytest.fixture
def scheduler():
    return FakeScheduler()
