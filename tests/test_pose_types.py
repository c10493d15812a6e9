from types import SimpleNamespace

import numpy as np
import pytest

from posemirror.pose_types import (
    BODY_JOINTS, FLAT_POSE_DIM, JOINTS, Landmark, NUM_JOINTS,
    flatten_pose, joint_set_from_landmarks, make_joint_set,
    unflatten_pose,
)

from conftest import standing_pose


def test_flatten_interleaves_x_and_y():
    pose = standing_pose()
    flat = flatten_pose(pose)

    assert flat.shape == (FLAT_POSE_DIM,)
    assert flat[JOINTS.NOSE * 2] == pose[JOINTS.NOSE].x
    assert flat[JOINTS.NOSE * 2 + 1] == pose[JOINTS.NOSE].y
    assert flat[JOINTS.RIGHT_ANKLE * 2 + 1] == pose[JOINTS.RIGHT_ANKLE].y


def test_flat_pose_is_read_only():
    flat = flatten_pose(standing_pose())
    with pytest.raises(ValueError):
        flat[0] = 1.0


def test_round_trip_reproduces_x_and_y_exactly():
    rng = np.random.default_rng(7)
    points = rng.uniform(0.0, 1.0, size=(NUM_JOINTS, 2))
    pose = tuple(Landmark(x, y, z=0.3, visibility=0.4) for x, y in points)

    restored = unflatten_pose(flatten_pose(pose))

    assert len(restored) == NUM_JOINTS
    for source, restored_joint in zip(pose, restored):
        assert restored_joint.x == source.x
        assert restored_joint.y == source.y
        # z and visibility are not carried
        assert restored_joint.z == 0.0
        assert restored_joint.visibility == 1.0


def test_unflatten_rejects_wrong_size():
    with pytest.raises(ValueError):
        unflatten_pose([0.0] * 10)


def test_make_joint_set_pads_missing_joints():
    pose = make_joint_set([(0.1, 0.2), (0.3, 0.4)])
    assert len(pose) == NUM_JOINTS
    assert pose[1] == Landmark(0.3, 0.4)
    assert pose[32] == Landmark(0.0, 0.0)


def test_joint_set_from_mediapipe_landmarks():
    landmarks = [
        SimpleNamespace(x=i / 100, y=i / 50, z=-0.1, visibility=0.9)
        for i in range(NUM_JOINTS)
    ]
    pose = joint_set_from_landmarks(landmarks)

    assert len(pose) == NUM_JOINTS
    assert pose[10].x == pytest.approx(0.10)
    assert pose[10].y == pytest.approx(0.20)
    assert pose[10].visibility == pytest.approx(0.9)


def test_body_joints_are_nose_and_everything_below_the_face():
    assert len(BODY_JOINTS) == 23
    assert BODY_JOINTS[0] == JOINTS.NOSE
    assert BODY_JOINTS[1] == JOINTS.LEFT_SHOULDER
    assert BODY_JOINTS[-1] == JOINTS.RIGHT_FOOT_INDEX
