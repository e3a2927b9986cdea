from __future__ import annotations

from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

DATASET_URL = "https://storage.googleapis.com/mledu-datasets/cats_and_dogs_filtered.zip"


@dataclass
class TrainingConfig:
    """Serializable settings shared by the train/evaluate/infer scripts."""

    project_name: str = "cat-dog-classifier"
    dataset_url: str = DATASET_URL
    dataset_name: str = "cats_and_dogs_filtered"
    data_dir: str = "data"
    model_dir: str = "models"
    log_dir: str = "runs"
    seed: int = 42
    architecture: str = "cnn"
    image_size: int = 150
    batch_size: int = 20
    num_workers: int = 2
    pin_memory: bool = True
    epochs: int = 30
    learning_rate: float = 1e-4
    weight_decay: float = 0.0
    augment: bool = False
    early_stopping_patience: int = 5
    early_stopping_min_delta: float = 0.0
    lr_patience: int = 2
    lr_factor: float = 0.5
    min_lr: float = 1e-6
    max_grad_norm: float = 0.0
    device: str = "cuda"
    use_amp: bool = True
    backbone: str = "resnet18"
    pretrained: bool = True
    freeze_backbone: bool = True
    threshold: float = 0.5

    @property
    def dataset_root(self) -> Path:
        return Path(self.data_dir) / self.dataset_name

    @property
    def checkpoint_path(self) -> Path:
        return Path(self.model_dir) / f"{self.project_name}-{self.architecture}.pt"

    def ensure_dirs(self) -> None:
        """Create directories referenced by the config if they do not exist."""
        for folder in (self.data_dir, self.model_dir, self.log_dir):
            Path(folder).mkdir(parents=True, exist_ok=True)


def load_config(path: Optional[str], base: Optional[Dict[str, Any]] = None) -> TrainingConfig:
    """Load configuration values from YAML if provided, otherwise defaults.

    ``base`` (typically the config stored in a checkpoint) is applied over the
    defaults before the YAML file; keys the dataclass does not know are dropped.
    """
    config_dict: Dict[str, Any] = asdict(TrainingConfig())
    if base:
        config_dict.update({key: value for key, value in base.items() if key in config_dict})
    if path:
        with open(path, "r", encoding="utf-8") as handle:
            loaded: Dict[str, Any] = yaml.safe_load(handle) or {}
            config_dict.update(loaded)
    return TrainingConfig(**config_dict)


def save_config(config: TrainingConfig, path: str | Path) -> None:
    """Persist the configuration to disk as YAML."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with target.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(asdict(config), handle, sort_keys=False)


def override_config(config: TrainingConfig, overrides: Dict[str, Any]) -> TrainingConfig:
    """Create a new config using CLI overrides."""
    base = asdict(config)
    for key, value in overrides.items():
        if value is not None and key in base:
            base[key] = value
    return TrainingConfig(**base)
