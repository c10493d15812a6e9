import numpy as np
import pytest

from posemirror.pose_buffer import CaptureBuffers, LatestPoses, PoseBatch

from conftest import standing_pose


def test_batch_body_lookup():
    batch = PoseBatch((standing_pose(),), timestamp_ms=5)
    assert len(batch) == 1
    assert batch.body(0) is batch.joint_sets[0]
    assert batch.body(1) is None
    assert batch.body(-1) is None


def test_latest_poses_returns_whole_batches():
    latest = LatestPoses()
    assert len(latest.latest()) == 0

    first = PoseBatch((standing_pose(),))
    latest.publish(first)
    assert latest.latest() is first


def test_capture_buffers():
    buffers = CaptureBuffers()
    buffers.append(1, np.zeros(66))
    assert not buffers.both_populated

    buffers.append(2, np.ones(66))
    assert buffers.both_populated

    person1, person2 = buffers.snapshot()
    buffers.append(1, np.zeros(66))
    assert len(person1) == 1
    assert len(buffers.person1) == 2

    buffers.clear(1)
    assert buffers.person1 == []
    assert len(buffers.person2) == 1

    buffers.clear()
    assert buffers.person2 == []


def test_unknown_person_rejected():
    with pytest.raises(ValueError):
        CaptureBuffers().append(3, np.zeros(66))
