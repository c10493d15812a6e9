"""
Pose Mirror - Core Pose Types
Joint sets as detected by MediaPipe Pose and their flat 66D encoding
"""

from dataclasses import dataclass
from typing import Sequence, Tuple

import numpy as np


NUM_JOINTS = 33
FLAT_POSE_DIM = NUM_JOINTS * 2


class JOINTS:
    """MediaPipe Pose landmark indices"""
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


# Nose plus everything below the face (23 joints)
BODY_JOINTS = (JOINTS.NOSE,) + tuple(range(JOINTS.LEFT_SHOULDER, NUM_JOINTS))


@dataclass(frozen=True)
class Landmark:
    """One normalized joint coordinate (x, y in [0, 1])"""
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


# A JointSet is a tuple of 33 Landmarks indexed by JOINTS
JointSet = Tuple[Landmark, ...]


def make_joint_set(points: Sequence[Sequence[float]]) -> JointSet:
    """Build a JointSet from (x, y) pairs, padding missing joints with zeros"""
    joints = []
    for i in range(NUM_JOINTS):
        if i < len(points):
            joints.append(Landmark(float(points[i][0]), float(points[i][1])))
        else:
            joints.append(Landmark(0.0, 0.0))
    return tuple(joints)


def joint_set_from_landmarks(landmarks) -> JointSet:
    """Convert MediaPipe NormalizedLandmark objects into a JointSet"""
    joints = []
    for i in range(NUM_JOINTS):
        if i < len(landmarks):
            lm = landmarks[i]
            joints.append(Landmark(
                x=float(lm.x),
                y=float(lm.y),
                z=float(getattr(lm, 'z', 0.0) or 0.0),
                visibility=float(getattr(lm, 'visibility', 1.0) or 0.0),
            ))
        else:
            joints.append(Landmark(0.0, 0.0))
    return tuple(joints)


def flatten_pose(joint_set: JointSet) -> np.ndarray:
    """Flatten 33 landmarks into a read-only 66D array [x0, y0, x1, y1, ...]"""
    pose = np.zeros(FLAT_POSE_DIM, dtype=np.float64)
    for i in range(min(NUM_JOINTS, len(joint_set))):
        pose[i * 2] = joint_set[i].x
        pose[i * 2 + 1] = joint_set[i].y
    pose.flags.writeable = False
    return pose


def unflatten_pose(pose: Sequence[float]) -> JointSet:
    """Unflatten a 66D array into 33 landmarks (z=0, visibility=1)"""
    pose = np.asarray(pose, dtype=np.float64)
    if pose.shape != (FLAT_POSE_DIM,):
        raise ValueError(f"Expected a {FLAT_POSE_DIM}D pose, got shape {pose.shape}")
    return tuple(
        Landmark(x=float(pose[i * 2]), y=float(pose[i * 2 + 1]))
        for i in range(NUM_JOINTS)
    )
