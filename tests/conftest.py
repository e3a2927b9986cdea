from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest
from PIL import Image

from catdog.config import TrainingConfig

CLASSES = ("cats", "dogs")


def write_images(folder: Path, count: int, brightness: int, rng: np.random.Generator) -> None:
    folder.mkdir(parents=True, exist_ok=True)
    for index in range(count):
        noise = rng.integers(-30, 30, size=(40, 48, 3))
        pixels = np.clip(brightness + noise, 0, 255).astype(np.uint8)
        Image.fromarray(pixels).save(folder / f"{folder.name[:-1]}.{index}.jpg")


@pytest.fixture
def dataset_dir(tmp_path) -> Path:
    """cats_and_dogs_filtered-shaped tree: dark cats, bright dogs."""
    rng = np.random.default_rng(0)
    root = tmp_path / "data" / "cats_and_dogs_filtered"
    for split, count in (("train", 8), ("validation", 4)):
        for name, brightness in zip(CLASSES, (60, 190)):
            write_images(root / split / name, count, brightness, rng)
    return root


@pytest.fixture
def config(tmp_path, dataset_dir) -> TrainingConfig:
    return TrainingConfig(
        data_dir=str(tmp_path / "data"),
        model_dir=str(tmp_path / "models"),
        log_dir=str(tmp_path / "runs"),
        architecture="cnn",
        image_size=32,
        batch_size=4,
        num_workers=0,
        pin_memory=False,
        epochs=2,
        learning_rate=1e-3,
        device="cpu",
        use_amp=False,
        pretrained=False,
    )
