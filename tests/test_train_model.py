import numpy as np
import pytest
import torch

from posemirror.config import TrainingConfig
from posemirror.data_aligner import DataAligner
from posemirror.train_model import (
    ModelTrainer, NormalizationBounds, PoseToPoseModel, fit_pose_model,
)

from conftest import random_flat_poses


def small_config(**kwargs):
    defaults = dict(hidden_dims=(16, 8), epochs=2, batch_size=8)
    defaults.update(kwargs)
    return TrainingConfig(**defaults)


def make_dataset(count=24):
    person1 = random_flat_poses(count, seed=11)
    person2 = [p * 0.5 + 0.2 for p in random_flat_poses(count, seed=12)]
    return DataAligner().align(person1, person2)


def test_bounds_are_tensor_wide_scalars():
    inputs = np.array([[0.0, 5.0], [2.0, 1.0]])
    labels = np.array([[-1.0, 3.0], [4.0, 0.5]])

    bounds = NormalizationBounds.from_arrays(inputs, labels)

    assert bounds == NormalizationBounds(0.0, 5.0, -1.0, 4.0)
    np.testing.assert_allclose(bounds.normalize_inputs(inputs), [[0.0, 1.0], [0.4, 0.2]])


def test_label_scaling_inverts():
    bounds = NormalizationBounds(0.0, 1.0, 0.2, 0.7)
    labels = np.array([0.2, 0.45, 0.7])
    np.testing.assert_allclose(bounds.denormalize_labels(bounds.normalize_labels(labels)), labels)


def test_flat_tensor_does_not_divide_by_zero():
    bounds = NormalizationBounds(0.5, 0.5, 0.5, 0.5)
    assert np.all(np.isfinite(bounds.normalize_inputs(np.full(3, 0.5))))


def test_model_maps_66_to_66():
    model = PoseToPoseModel()
    out = model(torch.zeros(4, 66))
    assert out.shape == (4, 66)
    assert model.hidden_dims == [128, 64, 32]
    assert isinstance(model.network[-1], torch.nn.Linear)


def test_prepare_data_computes_bounds_over_whole_dataset():
    dataset = make_dataset(20)
    trainer = ModelTrainer(PoseToPoseModel(hidden_dims=[8]))
    loader = trainer.prepare_data(dataset, batch_size=8)

    sources = np.stack([s.source for s in dataset])
    targets = np.stack([s.target for s in dataset])
    assert trainer.bounds.input_min == pytest.approx(sources.min())
    assert trainer.bounds.input_max == pytest.approx(sources.max())
    assert trainer.bounds.label_min == pytest.approx(targets.min())
    assert trainer.bounds.label_max == pytest.approx(targets.max())
    assert len(loader.dataset) == 20


def test_prepare_data_rejects_empty_dataset():
    with pytest.raises(ValueError):
        ModelTrainer(PoseToPoseModel()).prepare_data([])


def test_fit_pose_model_returns_model_with_its_bounds():
    dataset = make_dataset()
    trained = fit_pose_model(dataset, small_config())

    assert trained.num_samples == len(dataset)
    assert len(trained.history['train_loss']) == 2
    assert all(np.isfinite(trained.history['train_loss']))

    bounds_before = trained.bounds
    prediction = trained.predict(dataset[0].source)
    assert prediction.shape == (66,)
    assert np.all(np.isfinite(prediction))
    # inference never re-derives bounds
    assert trained.bounds is bounds_before


def test_fit_saves_history_plot(tmp_path):
    path = tmp_path / 'history' / 'forward_history.png'
    fit_pose_model(make_dataset(), small_config(epochs=1), history_path=path)
    assert path.exists()
