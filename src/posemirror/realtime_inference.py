"""
Real-Time Inference
Feeds live poses through the mirrored models every frame
"""

import logging
from typing import Optional

import numpy as np

from posemirror.errors import NoModelError
from posemirror.pose_buffer import PoseBatch
from posemirror.pose_types import FLAT_POSE_DIM, flatten_pose


logger = logging.getLogger(__name__)


class Predictor:
    """Holds the latest predicted pose of each model.

    Model A is driven by body 0. Model B is driven by body 1 when two
    players are configured and present, otherwise by body 0. A model whose
    input body is missing keeps its previous prediction.
    """

    def __init__(self):
        self.predicted_pose: Optional[np.ndarray] = None   # model A
        self.predicted_pose2: Optional[np.ndarray] = None  # model B

    def reset(self):
        self.predicted_pose = None
        self.predicted_pose2 = None

    def update(self, batch: PoseBatch, models, number_of_players: int):
        if models is None:
            raise NoModelError()

        body0 = batch.body(0)
        if body0 is None:
            logger.debug("No body detected, keeping previous predictions")
            return

        input_pose = flatten_pose(body0)
        self.predicted_pose = self._readonly(models.forward.predict(input_pose))

        if models.reverse is not None:
            input_pose2 = input_pose
            if number_of_players == 2:
                body1 = batch.body(1)
                if body1 is None:
                    logger.debug("Second body missing, skipping model B this frame")
                    input_pose2 = None
                else:
                    input_pose2 = flatten_pose(body1)
            if input_pose2 is not None:
                self.predicted_pose2 = self._readonly(models.reverse.predict(input_pose2))

    def predictions(self):
        """Full 66D predictions available for rendering, model A first"""
        return [
            pose for pose in (self.predicted_pose, self.predicted_pose2)
            if pose is not None and len(pose) == FLAT_POSE_DIM
        ]

    @staticmethod
    def _readonly(pose):
        pose = np.asarray(pose, dtype=np.float64)
        pose.flags.writeable = False
        return pose
