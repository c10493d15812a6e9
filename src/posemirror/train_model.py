"""
ML Model Trainer
Trains a neural network to map one person's pose onto another's
Input: 66D flat pose (33 landmarks x 2)
Output: 66D flat pose
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Sequence

import numpy as np
import torch
import torch.nn as nn
import torch.optim as optim
from sklearn.utils import shuffle
from torch.utils.data import DataLoader, Dataset

from posemirror.config import TrainingConfig
from posemirror.data_aligner import TrainingSample, to_arrays
from posemirror.pose_types import FLAT_POSE_DIM


logger = logging.getLogger(__name__)


class PoseToPoseDataset(Dataset):
    """PyTorch dataset of normalized (source, target) pose pairs"""

    def __init__(self, inputs, outputs):
        self.inputs = torch.FloatTensor(inputs)
        self.outputs = torch.FloatTensor(outputs)

    def __len__(self):
        return len(self.inputs)

    def __getitem__(self, idx):
        return self.inputs[idx], self.outputs[idx]


class PoseToPoseModel(nn.Module):
    """Feed-forward regressor

    Architecture:
    - Input: 66D pose
    - Hidden layers with ReLU activation
    - Output: 66D pose, linear activation
    """

    def __init__(self, input_dim=FLAT_POSE_DIM, output_dim=FLAT_POSE_DIM, hidden_dims=None):
        super(PoseToPoseModel, self).__init__()
        if hidden_dims is None:
            hidden_dims = [128, 64, 32]

        layers = []
        prev_dim = input_dim

        for hidden_dim in hidden_dims:
            layers.append(nn.Linear(prev_dim, hidden_dim))
            layers.append(nn.ReLU())
            prev_dim = hidden_dim

        layers.append(nn.Linear(prev_dim, output_dim))

        self.network = nn.Sequential(*layers)
        self.hidden_dims = list(hidden_dims)

    def forward(self, x):
        return self.network(x)


@dataclass(frozen=True)
class NormalizationBounds:
    """Tensor-wide min/max of the inputs and of the labels.

    A single scalar per tensor, not per dimension. The bounds a model was
    trained with must be used for every later prediction with that model.
    """
    input_min: float
    input_max: float
    label_min: float
    label_max: float

    @classmethod
    def from_arrays(cls, inputs: np.ndarray, labels: np.ndarray) -> "NormalizationBounds":
        return cls(
            input_min=float(inputs.min()),
            input_max=float(inputs.max()),
            label_min=float(labels.min()),
            label_max=float(labels.max()),
        )

    @staticmethod
    def _span(lo, hi):
        span = hi - lo
        return span if span != 0 else 1.0

    def normalize_inputs(self, inputs):
        return (inputs - self.input_min) / self._span(self.input_min, self.input_max)

    def normalize_labels(self, labels):
        return (labels - self.label_min) / self._span(self.label_min, self.label_max)

    def denormalize_labels(self, scaled):
        return scaled * self._span(self.label_min, self.label_max) + self.label_min


@dataclass
class TrainedModel:
    """A fitted regressor paired with the bounds it was trained with"""
    network: PoseToPoseModel
    bounds: NormalizationBounds
    history: Dict[str, List[float]] = field(default_factory=lambda: {'train_loss': []})
    num_samples: int = 0

    def predict(self, pose) -> np.ndarray:
        """Normalize one pose, run the network and un-normalize the output"""
        pose = np.asarray(pose, dtype=np.float64).reshape(1, FLAT_POSE_DIM)
        scaled = self.bounds.normalize_inputs(pose)
        self.network.eval()
        with torch.no_grad():
            output_scaled = self.network(torch.FloatTensor(scaled)).numpy()
        return self.bounds.denormalize_labels(output_scaled.astype(np.float64))[0]


class ModelTrainer:
    """Trainer for the pose-to-pose model"""

    def __init__(self, model, device='cpu'):
        self.model = model.to(device)
        self.device = device
        self.history = {
            'train_loss': [],
        }
        self.bounds = None

    def prepare_data(self, dataset: Sequence[TrainingSample], batch_size=32):
        """Shuffle once, compute bounds and build the data loader"""
        inputs, outputs = to_arrays(dataset)
        if len(inputs) == 0:
            raise ValueError("Cannot train on an empty dataset")

        inputs, outputs = shuffle(inputs, outputs)

        self.bounds = NormalizationBounds.from_arrays(inputs, outputs)
        logger.debug(
            "Input range [%.3f, %.3f], output range [%.3f, %.3f]",
            self.bounds.input_min, self.bounds.input_max,
            self.bounds.label_min, self.bounds.label_max,
        )

        train_dataset = PoseToPoseDataset(
            self.bounds.normalize_inputs(inputs),
            self.bounds.normalize_labels(outputs),
        )
        return DataLoader(train_dataset, batch_size=batch_size, shuffle=True)

    def train_epoch(self, train_loader, optimizer, criterion):
        """Train for one epoch"""
        self.model.train()
        total_loss = 0

        for inputs, targets in train_loader:
            inputs = inputs.to(self.device)
            targets = targets.to(self.device)

            optimizer.zero_grad()
            outputs = self.model(inputs)
            loss = criterion(outputs, targets)

            loss.backward()
            optimizer.step()

            total_loss += loss.item()

        return total_loss / len(train_loader)

    def train(self, train_loader, epochs=50, lr=0.001):
        """Train the model"""
        criterion = nn.MSELoss()
        optimizer = optim.Adam(self.model.parameters(), lr=lr)

        for epoch in range(epochs):
            train_loss = self.train_epoch(train_loader, optimizer, criterion)
            self.history['train_loss'].append(train_loss)

            if (epoch + 1) % 10 == 0:
                logger.info("Epoch %d/%d - Train Loss: %.6f", epoch + 1, epochs, train_loss)

        return self.history

    def plot_history(self, save_path, title='Training History'):
        """Plot training history to a PNG"""
        import matplotlib
        matplotlib.use('Agg')
        import matplotlib.pyplot as plt

        fig = plt.figure(figsize=(10, 6))
        plt.plot(self.history['train_loss'], label='Train Loss')
        plt.xlabel('Epoch')
        plt.ylabel('Loss (MSE)')
        plt.title(title)
        plt.legend()
        plt.grid(True)

        save_path = Path(save_path)
        save_path.parent.mkdir(parents=True, exist_ok=True)
        plt.savefig(save_path)
        plt.close(fig)
        logger.info("Training plot saved: %s", save_path)


def fit_pose_model(dataset: Sequence[TrainingSample], config: TrainingConfig = None,
                   history_path=None) -> TrainedModel:
    """Regression backend: fit a fresh model on the whole dataset"""
    config = config or TrainingConfig()

    model = PoseToPoseModel(hidden_dims=config.hidden_dims)
    trainer = ModelTrainer(model, device=config.device)

    train_loader = trainer.prepare_data(dataset, batch_size=config.batch_size)
    trainer.train(train_loader, epochs=config.epochs, lr=config.learning_rate)

    if history_path is not None:
        trainer.plot_history(history_path)

    trainer.model.to('cpu')
    return TrainedModel(
        network=trainer.model,
        bounds=trainer.bounds,
        history=trainer.history,
        num_samples=len(dataset),
    )
