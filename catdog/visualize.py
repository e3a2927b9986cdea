from __future__ import annotations

import math
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
from PIL import Image

# (image path, actual class index, probability of class 1)
Sample = Tuple[str, int, float]


def _save(fig: plt.Figure, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=120, bbox_inches="tight")
    plt.close(fig)
    return path


def plot_history(history: Dict[str, List[float]], path: str | Path) -> Path:
    """Training vs validation loss and accuracy per epoch."""
    epochs = range(1, len(history["loss"]) + 1)
    fig, (ax_loss, ax_acc) = plt.subplots(1, 2, figsize=(12, 4))

    ax_loss.plot(epochs, history["loss"], "o-", label="train")
    ax_loss.plot(epochs, history["val_loss"], "o-", label="validation")
    ax_loss.set_title("Loss")
    ax_loss.set_xlabel("epoch")
    ax_loss.legend()

    ax_acc.plot(epochs, history["accuracy"], "o-", label="train")
    ax_acc.plot(epochs, history["val_accuracy"], "o-", label="validation")
    ax_acc.set_title("Accuracy")
    ax_acc.set_xlabel("epoch")
    ax_acc.set_ylim(0.0, 1.0)
    ax_acc.legend()

    return _save(fig, path)


def plot_confusion_matrix(matrix: np.ndarray, class_names: Sequence[str], path: str | Path) -> Path:
    fig, ax = plt.subplots(figsize=(4.5, 4))
    ax.imshow(matrix, cmap="Blues")
    ax.set_xticks(range(len(class_names)), labels=class_names)
    ax.set_yticks(range(len(class_names)), labels=class_names)
    ax.set_xlabel("predicted")
    ax.set_ylabel("actual")

    threshold = matrix.max() / 2 if matrix.size else 0
    for i in range(matrix.shape[0]):
        for j in range(matrix.shape[1]):
            color = "white" if matrix[i, j] > threshold else "black"
            ax.text(j, i, str(matrix[i, j]), ha="center", va="center", color=color)
    ax.set_title("Confusion matrix")
    return _save(fig, path)


def plot_predictions(
    samples: Sequence[Sample],
    class_names: Sequence[str],
    path: str | Path,
    threshold: float = 0.5,
    columns: int = 4,
) -> Path:
    """Grid of images titled with the predicted label; misclassified titles are red."""
    if not samples:
        raise ValueError("No samples to plot.")
    rows = math.ceil(len(samples) / columns)
    fig, axes = plt.subplots(rows, columns, figsize=(3 * columns, 3 * rows), squeeze=False)

    for ax in axes.flat:
        ax.axis("off")
    for ax, (image_path, actual, prob) in zip(axes.flat, samples):
        predicted = int(prob >= threshold)
        confidence = prob if predicted == 1 else 1.0 - prob
        with Image.open(image_path) as image:
            ax.imshow(image.convert("RGB"))
        ax.set_title(
            f"{class_names[predicted]} ({confidence:.0%})",
            color="green" if predicted == actual else "red",
        )
    return _save(fig, path)
