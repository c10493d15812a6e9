"""
Gestural control
Holding a hand up for long enough fires the record trigger.
"""

from posemirror.pose_buffer import PoseBatch
from posemirror.pose_types import JOINTS, JointSet


def hand_raised(joint_set: JointSet) -> bool:
    """Right wrist above the right eye. Y grows downwards."""
    return joint_set[JOINTS.RIGHT_WRIST].y < joint_set[JOINTS.RIGHT_EYE].y


def hands_raised(batch: PoseBatch, number_of_players: int) -> bool:
    """Body 0 must raise a hand; body 1 too when two players are configured"""
    body0 = batch.body(0)
    if body0 is None or not hand_raised(body0):
        return False
    if number_of_players == 2:
        body1 = batch.body(1)
        if body1 is None or not hand_raised(body1):
            return False
    return True


class GestureCounter:
    """Counts consecutive frames a condition holds.

    update() returns True on the frame the count first exceeds the
    threshold, then restarts from zero so the condition has to be held for
    the full threshold again before it can fire twice.
    """

    def __init__(self, threshold=100):
        self.threshold = threshold
        self.count = 0

    def update(self, condition: bool) -> bool:
        if not condition:
            self.count = 0
            return False

        self.count += 1
        if self.count > self.threshold:
            self.count = 0
            return True
        return False

    def reset(self):
        self.count = 0

    @property
    def progress(self) -> float:
        """Percent of the threshold reached (0-100)"""
        return min(100.0, self.count / self.threshold * 100.0)
