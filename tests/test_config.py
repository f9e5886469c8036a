import pytest

from surfacemask.config import config_from_settings, load_config
from surfacemask.core.contracts import SegmentationConfig


def test_defaults():
    config = SegmentationConfig()
    assert config.model_input_size == 640
    assert config.confidence_threshold == 0.1
    assert config.iou_threshold == 0.7
    assert config.mask_threshold == 0.3
    assert config.model_path is None


@pytest.mark.parametrize(
    "kwargs",
    [
        {"model_input_size": 0},
        {"confidence_threshold": 1.5},
        {"iou_threshold": -0.1},
        {"mask_threshold": 2.0},
        {"num_threads": 0},
    ],
)
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValueError):
        SegmentationConfig(**kwargs)


def test_load_config_from_yaml(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text(
        "model:\n"
        "  path: weights/seg.onnx\n"
        "segmentation:\n"
        "  model_input_size: 320\n"
        "  iou_threshold: 0.5\n"
    )

    config = load_config(path)

    assert config.model_path == "weights/seg.onnx"
    assert config.model_input_size == 320
    assert config.iou_threshold == 0.5
    assert config.confidence_threshold == 0.1


def test_overrides_win_and_none_is_ignored(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("segmentation:\n  mask_threshold: 0.4\n")

    config = load_config(path, mask_threshold=0.6, model_path=None)

    assert config.mask_threshold == 0.6
    assert config.model_path is None


def test_unknown_keys_ignored(log_messages):
    config = config_from_settings({"segmentation": {"colour": "red"}, "model": {"backend": "x"}})

    assert config == SegmentationConfig()
    warnings = [msg for level, msg in log_messages if level == "WARNING"]
    assert len(warnings) == 2


def test_missing_explicit_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path / "nope.yaml")


def test_empty_file_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")

    assert load_config(path) == SegmentationConfig()


@pytest.mark.parametrize(
    "kwargs",
    [
        {"model_input_size": "640"},
        {"model_input_size": 640.0},
        {"num_threads": True},
        {"iou_threshold": "0.5"},
        {"model_path": 3},
    ],
)
def test_wrong_types_rejected(kwargs):
    with pytest.raises(ValueError):
        SegmentationConfig(**kwargs)


def test_string_size_in_yaml_is_value_error(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("segmentation:\n  model_input_size: '640'\n")

    with pytest.raises(ValueError):
        load_config(path)
