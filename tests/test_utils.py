import pytest
import torch

from catdog.config import TrainingConfig
from catdog.model import build_model
from catdog.utils import config_for_checkpoint, read_checkpoint_metadata, save_checkpoint


def _checkpoint(tmp_path, config, model=None, **kwargs):
    if model is None:
        model = build_model(config)
    path = tmp_path / "model.pt"
    save_checkpoint(model, torch.optim.Adam(model.parameters()), 3, 0.8, path, config, **kwargs)
    return path


def test_metadata_round_trip(tmp_path):
    config = TrainingConfig(architecture="logreg", image_size=16)
    path = _checkpoint(tmp_path, config, class_names=("cats", "dogs"))

    stored, class_names = read_checkpoint_metadata(path)

    assert stored["architecture"] == "logreg"
    assert class_names == ["cats", "dogs"]


def test_metadata_without_class_names(tmp_path):
    path = _checkpoint(tmp_path, TrainingConfig(architecture="logreg", image_size=16))
    assert read_checkpoint_metadata(path)[1] is None


def test_missing_checkpoint(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_checkpoint_metadata(tmp_path / "nope.pt")


def test_config_for_checkpoint_applies_overrides_and_skips_backbone_download(tmp_path):
    config = TrainingConfig(architecture="pretrained", backbone="resnet18", pretrained=True, image_size=32)
    path = _checkpoint(tmp_path, config, model=build_model(TrainingConfig(architecture="logreg", image_size=32)))

    resolved = config_for_checkpoint(path, None, device="cpu", threshold=None)

    assert resolved.architecture == "pretrained"
    assert resolved.pretrained is False
    assert resolved.device == "cpu"
    assert resolved.threshold == 0.5
