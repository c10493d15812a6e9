import numpy as np
import pytest

from posemirror.errors import NoModelError
from posemirror.mirrored_trainer import ModelPair
from posemirror.pose_buffer import PoseBatch
from posemirror.pose_types import flatten_pose
from posemirror.realtime_inference import Predictor

from conftest import FakeModel, standing_pose


@pytest.fixture
def models():
    return ModelPair(forward=FakeModel(0.1), reverse=FakeModel(-0.1))


def test_no_model_raises():
    with pytest.raises(NoModelError, match="train the model first"):
        Predictor().update(PoseBatch((standing_pose(),)), None, 1)


def test_single_player_feeds_body0_to_both_models(models):
    predictor = Predictor()
    body0 = standing_pose()

    predictor.update(PoseBatch((body0,)), models, 1)

    expected = flatten_pose(body0)
    np.testing.assert_allclose(models.forward.inputs[-1], expected)
    np.testing.assert_allclose(models.reverse.inputs[-1], expected)
    np.testing.assert_allclose(predictor.predicted_pose, expected + 0.1)
    np.testing.assert_allclose(predictor.predicted_pose2, expected - 0.1)
    assert len(predictor.predictions()) == 2


def test_two_players_feed_body1_to_model_b(models):
    predictor = Predictor()
    body0, body1 = standing_pose(), standing_pose(dx=0.2)

    predictor.update(PoseBatch((body0, body1)), models, 2)

    np.testing.assert_allclose(models.forward.inputs[-1], flatten_pose(body0))
    np.testing.assert_allclose(models.reverse.inputs[-1], flatten_pose(body1))


def test_missing_second_body_skips_model_b(models):
    predictor = Predictor()
    predictor.update(PoseBatch((standing_pose(), standing_pose(dx=0.2))), models, 2)
    previous = predictor.predicted_pose2

    predictor.update(PoseBatch((standing_pose(dy=0.05),)), models, 2)

    assert len(models.reverse.inputs) == 1
    assert predictor.predicted_pose2 is previous


def test_no_body_keeps_previous_predictions(models):
    predictor = Predictor()
    predictor.update(PoseBatch((standing_pose(),)), models, 1)
    before = predictor.predicted_pose

    predictor.update(PoseBatch(), models, 1)

    assert predictor.predicted_pose is before


def test_model_b_is_optional():
    predictor = Predictor()
    predictor.update(PoseBatch((standing_pose(),)), ModelPair(forward=FakeModel(0.0)), 1)

    assert predictor.predicted_pose2 is None
    assert len(predictor.predictions()) == 1


def test_predictions_are_read_only(models):
    predictor = Predictor()
    predictor.update(PoseBatch((standing_pose(),)), models, 1)
    with pytest.raises(ValueError):
        predictor.predicted_pose[0] = 0.0


def test_reset_clears_predictions(models):
    predictor = Predictor()
    predictor.update(PoseBatch((standing_pose(),)), models, 1)
    predictor.reset()
    assert predictor.predictions() == []
