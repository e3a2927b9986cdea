from dataclasses import asdict

import pytest
import yaml

from catdog.config import TrainingConfig, load_config, override_config, save_config


def test_defaults_without_path():
    cfg = load_config(None)
    assert cfg == TrainingConfig()
    assert cfg.dataset_name == "cats_and_dogs_filtered"
    assert cfg.architecture == "cnn"


def test_yaml_values_override_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump({"architecture": "logreg", "image_size": 64}), encoding="utf-8")

    cfg = load_config(str(path))

    assert cfg.architecture == "logreg"
    assert cfg.image_size == 64
    assert cfg.batch_size == TrainingConfig().batch_size


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")
    assert load_config(str(path)) == TrainingConfig()


def test_unknown_yaml_key_is_rejected(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text(yaml.safe_dump({"no_such_option": 1}), encoding="utf-8")
    with pytest.raises(TypeError):
        load_config(str(path))


def test_save_then_load_preserves_values(tmp_path):
    cfg = TrainingConfig(architecture="pretrained", backbone="vgg16", augment=True)
    target = tmp_path / "nested" / "cfg.yaml"

    save_config(cfg, target)

    assert load_config(str(target)) == cfg


def test_override_skips_none_and_unknown_keys():
    cfg = TrainingConfig()
    updated = override_config(cfg, {"epochs": 3, "device": None, "bogus": 1})

    assert updated.epochs == 3
    assert updated.device == cfg.device
    assert "bogus" not in asdict(updated)
    assert cfg.epochs == TrainingConfig().epochs


def test_paths_and_dirs(tmp_path):
    cfg = TrainingConfig(
        data_dir=str(tmp_path / "d"),
        model_dir=str(tmp_path / "m"),
        log_dir=str(tmp_path / "l"),
        architecture="logreg",
    )
    cfg.ensure_dirs()

    assert (tmp_path / "d").is_dir() and (tmp_path / "m").is_dir() and (tmp_path / "l").is_dir()
    assert cfg.dataset_root == tmp_path / "d" / "cats_and_dogs_filtered"
    assert cfg.checkpoint_path.name == "cat-dog-classifier-logreg.pt"


def test_base_values_sit_between_defaults_and_yaml(tmp_path):
    path = tmp_path / "override.yaml"
    path.write_text(yaml.safe_dump({"batch_size": 7}), encoding="utf-8")
    stored = {"architecture": "logreg", "batch_size": 64, "removed_option": True}

    cfg = load_config(str(path), base=stored)

    assert cfg.architecture == "logreg"
    assert cfg.batch_size == 7
    assert load_config(None, base=stored).batch_size == 64
