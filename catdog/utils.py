from __future__ import annotations

import json
import random
from pathlib import Path
from typing import Any, Dict, List, Sequence, Tuple

import numpy as np
import torch

from .config import TrainingConfig, load_config, override_config


def set_seed(seed: int) -> None:
    """Ensure deterministic-ish behavior across libraries."""
    random.seed(seed)
    np.random.seed(seed)
    torch.manual_seed(seed)
    torch.cuda.manual_seed_all(seed)
    torch.backends.cudnn.deterministic = False
    torch.backends.cudnn.benchmark = True


def get_device(preferred: str | None = None) -> torch.device:
    """Return the preferred compute device, falling back gracefully."""
    if preferred:
        preferred = preferred.lower()
    if preferred == "cuda" and torch.cuda.is_available():
        return torch.device("cuda")
    if preferred == "mps" and torch.backends.mps.is_available():
        return torch.device("mps")
    return torch.device("cpu")


def save_checkpoint(
    model: torch.nn.Module,
    optimizer: torch.optim.Optimizer,
    epoch: int,
    best_metric: float,
    path: str | Path,
    config: TrainingConfig,
    scaler: torch.amp.GradScaler | None = None,
    class_names: Sequence[str] | None = None,
) -> None:
    """Persist model/optimizer/scaler states with the config and class names they were trained with."""
    checkpoint = {
        "model_state_dict": model.state_dict(),
        "optimizer_state_dict": optimizer.state_dict(),
        "epoch": epoch,
        "best_metric": best_metric,
        "config": dict(config.__dict__),
        "class_names": list(class_names) if class_names else None,
    }
    if scaler is not None:
        checkpoint["scaler_state_dict"] = scaler.state_dict()
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    torch.save(checkpoint, path)


def load_checkpoint(
    model: torch.nn.Module,
    optimizer: torch.optim.Optimizer | None,
    path: str | Path,
    device: torch.device,
    scaler: torch.amp.GradScaler | None = None,
) -> Tuple[int, float, Dict]:
    """Restore state from disk."""
    checkpoint = torch.load(path, map_location=device, weights_only=False)
    model.load_state_dict(checkpoint["model_state_dict"])
    if optimizer and "optimizer_state_dict" in checkpoint:
        optimizer.load_state_dict(checkpoint["optimizer_state_dict"])
    if scaler and "scaler_state_dict" in checkpoint:
        scaler.load_state_dict(checkpoint["scaler_state_dict"])
    start_epoch = checkpoint.get("epoch", 0) + 1
    best_metric = checkpoint.get("best_metric", 0.0)
    return start_epoch, best_metric, checkpoint.get("config", {})


def dump_metrics(
    epoch: int,
    train_loss: float,
    train_acc: float,
    val_loss: float,
    val_acc: float,
    lr: float,
    path: str | Path,
) -> None:
    """Append human-readable metrics for quick inspection."""
    payload = {
        "epoch": epoch,
        "train_loss": train_loss,
        "train_accuracy": train_acc,
        "val_loss": val_loss,
        "val_accuracy": val_acc,
        "lr": lr,
    }
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("a", encoding="utf-8") as handle:
        handle.write(json.dumps(payload) + "\n")


def save_history(history: Dict[str, List[float]], path: str | Path) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(history, handle, indent=2)


def load_history(path: str | Path) -> Dict[str, List[float]]:
    with Path(path).open("r", encoding="utf-8") as handle:
        return json.load(handle)


def read_checkpoint_metadata(path: str | Path) -> Tuple[Dict[str, Any], List[str] | None]:
    """Return the training config and class names stored in a checkpoint without building a model."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Checkpoint not found: {path}")
    checkpoint = torch.load(path, map_location="cpu", weights_only=False)
    return checkpoint.get("config", {}), checkpoint.get("class_names")


def config_for_checkpoint(checkpoint: str | Path, config_path: str | None = None, **overrides: Any) -> TrainingConfig:
    """Config a checkpoint was trained with, updated by an optional YAML file and CLI overrides.

    Backbone weights are never fetched here because the checkpoint replaces them.
    """
    stored, _ = read_checkpoint_metadata(checkpoint)
    config = load_config(config_path, base=stored)
    return override_config(config, {**overrides, "pretrained": False})
