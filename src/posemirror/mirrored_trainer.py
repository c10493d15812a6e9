"""
Mirrored Trainer
Trains two independent models on the same capture with swapped roles:
forward maps person 1 onto person 2, reverse maps person 2 onto person 1.
"""

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Sequence

from posemirror.config import TrainingConfig
from posemirror.data_aligner import DataAligner
from posemirror.errors import TrainingFailure
from posemirror.train_model import TrainedModel, fit_pose_model


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModelPair:
    """Model A (person1 -> person2) and model B (person2 -> person1)"""
    forward: TrainedModel
    reverse: Optional[TrainedModel] = None


class MirroredTrainer:
    """Runs both training runs concurrently and joins them"""

    def __init__(self, config: TrainingConfig = None, fit: Callable = fit_pose_model):
        self.config = config or TrainingConfig()
        self.fit = fit
        self.aligner = DataAligner(min_samples=self.config.min_samples)

    def _history_path(self, name):
        if not self.config.history_dir:
            return None
        return Path(self.config.history_dir) / f"{name}_history.png"

    async def train(self, person1_poses: Sequence, person2_poses: Sequence) -> ModelPair:
        """Train model A and model B.

        Raises InsufficientDataError before any training when either buffer
        holds min_samples poses or fewer. Returns only once both runs have
        finished; if either fails the whole call raises TrainingFailure.
        """
        self.aligner.check_sufficient(person1_poses, person2_poses)

        dataset = self.aligner.align(person1_poses, person2_poses)
        mirrored = self.aligner.mirror(dataset)

        logger.info("Training mirrored models on %d pairs", len(dataset))

        results = await asyncio.gather(
            asyncio.to_thread(self.fit, dataset, self.config, self._history_path('forward')),
            asyncio.to_thread(self.fit, mirrored, self.config, self._history_path('reverse')),
            return_exceptions=True,
        )

        failures = [r for r in results if isinstance(r, BaseException)]
        if failures:
            for failure in failures:
                logger.error("Training run failed: %r", failure)
            raise TrainingFailure(f"Mirrored training failed: {failures[0]}") from failures[0]

        forward, reverse = results
        logger.info("Mirrored training complete")
        return ModelPair(forward=forward, reverse=reverse)
