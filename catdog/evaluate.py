from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Tuple

import numpy as np
import torch
from torch import nn
from tqdm import tqdm

from .data import create_dataloaders
from .metrics import confusion_matrix, format_confusion_matrix, summarize
from .model import build_model
from .utils import config_for_checkpoint, get_device, load_checkpoint
from .visualize import Sample, plot_confusion_matrix, plot_predictions


def non_negative_int(value: str) -> int:
    number = int(value)
    if number < 0:
        raise argparse.ArgumentTypeError(f"expected a value >= 0, got {value}")
    return number


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate a trained cat/dog classifier on the validation split.")
    parser.add_argument("--config", type=str, help="YAML overrides applied on top of the config stored in the checkpoint.")
    parser.add_argument("--checkpoint", type=str, required=True, help="Checkpoint file to evaluate.")
    parser.add_argument("--device", type=str, help="Override compute device.")
    parser.add_argument("--threshold", type=float, help="Decision threshold on the positive-class probability.")
    parser.add_argument("--plot-dir", type=str, help="Write the confusion matrix and a prediction grid here.")
    parser.add_argument(
        "--num-samples", type=non_negative_int, default=16, help="Images shown in the prediction grid (0 skips it)."
    )
    return parser.parse_args()


def collect_predictions(
    model: torch.nn.Module,
    loader: torch.utils.data.DataLoader,
    device: torch.device,
) -> Tuple[np.ndarray, np.ndarray, float]:
    """Actual labels and positive-class probabilities in loader order, plus the mean BCE loss."""
    model.eval()
    criterion = nn.BCEWithLogitsLoss(reduction="sum")
    labels: List[np.ndarray] = []
    probs: List[np.ndarray] = []
    total_loss = 0.0

    with torch.no_grad():
        for inputs, targets in tqdm(loader, desc=f"Evaluate-{loader.dataset.__class__.__name__}", leave=False):
            logits = model(inputs.to(device))
            total_loss += criterion(logits, targets.to(device).float()).item()
            probs.append(torch.sigmoid(logits).float().cpu().numpy())
            labels.append(targets.numpy())

    if not labels:
        return np.empty(0, dtype=int), np.empty(0, dtype=float), 0.0
    y_true = np.concatenate(labels).astype(int)
    return y_true, np.concatenate(probs).astype(float), total_loss / len(y_true)


def pick_samples(
    paths: List[str],
    y_true: np.ndarray,
    y_prob: np.ndarray,
    count: int,
    seed: int = 0,
) -> List[Sample]:
    """Random subset of (path, label, probability) rows for the prediction grid."""
    count = min(count, len(paths))
    rng = np.random.default_rng(seed)
    indices = rng.choice(len(paths), size=count, replace=False)
    return [(paths[i], int(y_true[i]), float(y_prob[i])) for i in sorted(indices)]


def main() -> None:
    args = parse_args()
    config = config_for_checkpoint(args.checkpoint, args.config, device=args.device, threshold=args.threshold)

    device = get_device(config.device)
    _, val_loader, class_names = create_dataloaders(config)

    model = build_model(config).to(device)
    load_checkpoint(model, optimizer=None, path=args.checkpoint, device=device, scaler=None)

    y_true, y_prob, loss = collect_predictions(model, val_loader, device)
    summary = summarize(y_true, y_prob, config.threshold)
    print(f"Validation loss: {loss:.4f} | Validation accuracy: {summary['accuracy']:.4%}")

    matrix = confusion_matrix(y_true, (y_prob >= config.threshold).astype(int), num_classes=len(class_names))
    print(format_confusion_matrix(matrix, class_names))
    print(
        f"Precision ({class_names[1]}): {summary['precision']:.4f} | "
        f"Recall: {summary['recall']:.4f} | "
        f"Specificity: {summary['specificity']:.4f} | "
        f"F1: {summary['f1']:.4f}"
    )

    if args.plot_dir:
        plot_dir = Path(args.plot_dir)
        cm_path = plot_confusion_matrix(matrix, class_names, plot_dir / "confusion_matrix.png")
        print(f"Saved {cm_path}")
        if args.num_samples:
            paths = [path for path, _ in val_loader.dataset.samples]
            samples = pick_samples(paths, y_true, y_prob, args.num_samples, seed=config.seed)
            grid_path = plot_predictions(samples, class_names, plot_dir / "predictions.png", config.threshold)
            print(f"Saved {grid_path}")


if __name__ == "__main__":
    main()
