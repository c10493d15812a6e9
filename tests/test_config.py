import json

import pytest

from posemirror.config import AppConfig, load_config


def write_json(path, data):
    path.write_text(json.dumps(data))
    return path


def test_defaults():
    config = load_config()
    assert config == AppConfig()
    assert config.session.recording_seconds == 10.0
    assert config.session.pre_roll_seconds == 3.0
    assert config.session.gesture_threshold == 100
    assert config.training.min_samples == 10
    assert config.render.strength == pytest.approx(0.033)
    assert config.render.subdivisions == 8


def test_missing_file_yields_defaults(tmp_path):
    assert load_config(tmp_path / 'nope.json') == AppConfig()


def test_json_overrides_sections(tmp_path):
    path = write_json(tmp_path / 'config.json', {
        'camera_index': 2,
        'mirror': 'yes',
        'training': {'epochs': '20', 'hidden_dims': [64, 32], 'history_dir': 'plots'},
        'session': {'recording_seconds': 5},
        'render': {'subdivisions': 4},
        'unknown': 1,
    })

    config = load_config(path)

    assert config.camera_index == 2
    assert config.mirror is True
    assert config.training.epochs == 20
    assert config.training.hidden_dims == (64, 32)
    assert config.training.history_dir == 'plots'
    assert config.training.batch_size == 32
    assert config.session.recording_seconds == 5.0
    assert config.render.subdivisions == 4


def test_bad_value_raises(tmp_path):
    path = write_json(tmp_path / 'config.json', {'training': {'epochs': 'many'}})
    with pytest.raises(ValueError, match="training.epochs"):
        load_config(path)


def test_non_object_root_raises(tmp_path):
    path = write_json(tmp_path / 'config.json', [1, 2, 3])
    with pytest.raises(ValueError):
        load_config(path)
