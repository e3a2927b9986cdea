from __future__ import annotations

from pathlib import Path
from typing import List, Tuple

from torch.utils.data import DataLoader
from torchvision import datasets, transforms
from torchvision.datasets.utils import download_and_extract_archive

from .config import TrainingConfig

IMAGENET_MEAN = (0.485, 0.456, 0.406)
IMAGENET_STD = (0.229, 0.224, 0.225)

SPLITS = ("train", "validation")


def _has_splits(root: Path) -> bool:
    return all((root / split).is_dir() for split in SPLITS)


def download_dataset(config: TrainingConfig) -> Path:
    """Fetch and unpack the labeled image archive unless it is already on disk."""
    root = config.dataset_root
    if _has_splits(root):
        return root

    Path(config.data_dir).mkdir(parents=True, exist_ok=True)
    download_and_extract_archive(config.dataset_url, download_root=config.data_dir, remove_finished=True)
    if not _has_splits(root):
        raise FileNotFoundError(
            f"Archive from {config.dataset_url} did not produce {root}/train and {root}/validation."
        )
    return root


def build_transforms(config: TrainingConfig) -> Tuple[transforms.Compose, transforms.Compose]:
    """Return train/eval transforms.

    ``ToTensor`` maps pixels into [0, 1]; only the pretrained backbones
    additionally expect ImageNet normalization.
    """
    size = (config.image_size, config.image_size)
    tail: List = [transforms.ToTensor()]
    if config.architecture == "pretrained":
        tail.append(transforms.Normalize(IMAGENET_MEAN, IMAGENET_STD))

    train_steps: List = [transforms.Resize(size)]
    if config.augment:
        train_steps += [
            transforms.RandomRotation(40),
            transforms.RandomAffine(degrees=0, translate=(0.2, 0.2), scale=(0.8, 1.2), shear=10),
            transforms.RandomHorizontalFlip(),
        ]

    train_transform = transforms.Compose(train_steps + tail)
    eval_transform = transforms.Compose([transforms.Resize(size)] + tail)
    return train_transform, eval_transform


def create_dataloaders(config: TrainingConfig) -> Tuple[DataLoader, DataLoader, List[str]]:
    """Create train/validation dataloaders and the list of class names."""
    config.ensure_dirs()
    root = download_dataset(config)
    train_transform, eval_transform = build_transforms(config)

    train_dataset = datasets.ImageFolder(root / "train", transform=train_transform)
    val_dataset = datasets.ImageFolder(root / "validation", transform=eval_transform)

    if train_dataset.classes != val_dataset.classes:
        raise ValueError(
            f"Train classes {train_dataset.classes} do not match validation classes {val_dataset.classes}."
        )
    if len(train_dataset.classes) != 2:
        raise ValueError(f"Expected exactly two classes, found {train_dataset.classes}.")

    train_loader = DataLoader(
        train_dataset,
        batch_size=config.batch_size,
        shuffle=True,
        num_workers=config.num_workers,
        pin_memory=config.pin_memory,
    )
    val_loader = DataLoader(
        val_dataset,
        batch_size=config.batch_size,
        shuffle=False,
        num_workers=config.num_workers,
        pin_memory=config.pin_memory,
    )
    return train_loader, val_loader, train_dataset.classes
