"""
Skeleton Reconstructor
Turns a sparse joint set into weighted metaball primitives: a head blob,
tubes of balls along the limbs and torso, and a ball on each body joint.
"""

import math
from dataclasses import dataclass
from typing import List, Tuple

from posemirror.config import RenderConfig
from posemirror.pose_types import JOINTS, BODY_JOINTS, JointSet


# X offsets per lane: person 1, person 2, AI 1, AI 2
TWO_PLAYER_X_POSITIONS = (0.0, 3.0, 1.0, 2.0)
# One person stays centred; the 4th lane is a spare
ONE_PLAYER_X_POSITIONS = (1.5, 0.5, 2.5, 3.0)
BODY_SCALE = 0.25

BODY_COLORS = (
    (1.0, 0.561, 0.957),  # 0xff8ff4
    (0.988, 0.357, 0.937),  # 0xfc5bef
    (0.0, 0.0, 1.0),
    (1.0, 0.0, 0.0),
)

# Fingers get no ball of their own
FINGER_JOINTS = frozenset((
    JOINTS.LEFT_PINKY, JOINTS.RIGHT_PINKY,
    JOINTS.LEFT_THUMB, JOINTS.RIGHT_THUMB,
))

ARM_BONES = (
    (JOINTS.RIGHT_SHOULDER, JOINTS.RIGHT_ELBOW),
    (JOINTS.LEFT_SHOULDER, JOINTS.LEFT_ELBOW),
    (JOINTS.RIGHT_ELBOW, JOINTS.RIGHT_WRIST),
    (JOINTS.LEFT_ELBOW, JOINTS.LEFT_WRIST),
)

LEG_BONES = (
    (JOINTS.RIGHT_HIP, JOINTS.RIGHT_KNEE),
    (JOINTS.RIGHT_KNEE, JOINTS.RIGHT_ANKLE),
    (JOINTS.LEFT_HIP, JOINTS.LEFT_KNEE),
    (JOINTS.LEFT_KNEE, JOINTS.LEFT_ANKLE),
)


@dataclass(frozen=True)
class RenderPrimitive:
    """One ball for the scalar-field renderer"""
    x: float
    y: float
    z: float
    strength: float
    subtract: float
    color: Tuple[float, float, float]
    lane: int


def lane_offsets(number_of_players: int) -> Tuple[float, ...]:
    # Only a single player gets the centred layout, no one detected counts as two
    if number_of_players == 1:
        return ONE_PLAYER_X_POSITIONS
    return TWO_PLAYER_X_POSITIONS


def place_ball(x, y, strength, body_index, number_of_players, subtract) -> RenderPrimitive:
    """Move a normalized point into its lane, flip Y and scale to the field.

    subtract is the field falloff handed to the renderer with the ball.
    """
    offsets = lane_offsets(number_of_players)
    new_x = 1 - x + offsets[body_index % len(offsets)]
    return RenderPrimitive(
        x=new_x * BODY_SCALE,
        y=(1 - y) * BODY_SCALE,
        z=0.0,
        strength=strength,
        subtract=subtract,
        color=BODY_COLORS[body_index % len(BODY_COLORS)],
        lane=body_index,
    )


def balls_between(start, end, num_balls):
    """num_balls evenly spaced points strictly between two joints"""
    points = []
    for i in range(1, num_balls + 1):
        t = i / (num_balls + 1)
        points.append((end[0] + (start[0] - end[0]) * t, end[1] + (start[1] - end[1]) * t))
    return points


def average_joints(joint1, joint2):
    return ((joint1.x + joint2.x) / 2, (joint1.y + joint2.y) / 2)


def leg_ball_count(subdivisions, leg_multiplier=1.5):
    return int(math.floor(subdivisions * leg_multiplier))


def reconstruct(pose: JointSet, body_index: int, number_of_players: int,
                strength: float, subdivisions: int,
                config: RenderConfig = None) -> List[RenderPrimitive]:
    """Build the primitive set for one body. Pure: same inputs, same output."""
    config = config or RenderConfig()
    subdivisions = max(0, int(subdivisions))
    primitives = []

    def add(x, y, s):
        primitives.append(place_ball(x, y, s, body_index, number_of_players, config.subtract))

    # Head
    nose = pose[JOINTS.NOSE]
    add(nose.x, nose.y, config.head_multiplier * strength)

    # Torso: shoulder midpoint to hip midpoint
    shoulders = average_joints(pose[JOINTS.LEFT_SHOULDER], pose[JOINTS.RIGHT_SHOULDER])
    hips = average_joints(pose[JOINTS.LEFT_HIP], pose[JOINTS.RIGHT_HIP])
    for x, y in balls_between(shoulders, hips, subdivisions):
        add(x, y, config.torso_multiplier * strength)

    for a, b in ARM_BONES:
        for x, y in balls_between((pose[a].x, pose[a].y), (pose[b].x, pose[b].y), subdivisions):
            add(x, y, strength)

    leg_balls = leg_ball_count(subdivisions, config.leg_multiplier)
    for a, b in LEG_BONES:
        for x, y in balls_between((pose[a].x, pose[a].y), (pose[b].x, pose[b].y), leg_balls):
            add(x, y, strength)

    # Joints
    for i in BODY_JOINTS:
        if i in FINGER_JOINTS:
            continue
        add(pose[i].x, pose[i].y, strength)

    return primitives
