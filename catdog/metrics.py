"""
Classification metrics for the binary cat/dog task.

The confusion matrix is laid out with actual classes on rows and
predicted classes on columns. For the binary helpers the class with
index 1 is the positive class.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Sequence

import numpy as np


@dataclass(frozen=True)
class BinaryCounts:
    tp: int
    fp: int
    tn: int
    fn: int

    @classmethod
    def from_matrix(cls, matrix: np.ndarray) -> "BinaryCounts":
        if matrix.shape != (2, 2):
            raise ValueError(f"Expected a 2x2 confusion matrix, got shape {matrix.shape}")
        return cls(
            tp=int(matrix[1, 1]),
            fp=int(matrix[0, 1]),
            tn=int(matrix[0, 0]),
            fn=int(matrix[1, 0]),
        )


def confusion_matrix(y_true: np.ndarray, y_pred: np.ndarray, num_classes: int = 2) -> np.ndarray:
    y_true = np.asarray(y_true, dtype=int)
    y_pred = np.asarray(y_pred, dtype=int)
    if y_true.shape != y_pred.shape:
        raise ValueError(f"Shape mismatch: y_true {y_true.shape} vs y_pred {y_pred.shape}")
    matrix = np.zeros((num_classes, num_classes), dtype=int)
    np.add.at(matrix, (y_true, y_pred), 1)
    return matrix


def accuracy(cm: BinaryCounts) -> float:
    total = cm.tp + cm.fp + cm.tn + cm.fn
    return float((cm.tp + cm.tn) / total) if total > 0 else 0.0


def precision(cm: BinaryCounts) -> float:
    denom = cm.tp + cm.fp
    return float(cm.tp / denom) if denom > 0 else 0.0


def recall(cm: BinaryCounts) -> float:
    denom = cm.tp + cm.fn
    return float(cm.tp / denom) if denom > 0 else 0.0


def specificity(cm: BinaryCounts) -> float:
    denom = cm.tn + cm.fp
    return float(cm.tn / denom) if denom > 0 else 0.0


def f1(cm: BinaryCounts) -> float:
    p = precision(cm)
    r = recall(cm)
    denom = p + r
    return float(2 * p * r / denom) if denom > 0 else 0.0


def summarize(y_true: np.ndarray, y_prob: np.ndarray, threshold: float = 0.5) -> Dict[str, float]:
    """Threshold probabilities and report the usual binary metrics."""
    y_true = np.asarray(y_true, dtype=int)
    y_pred = (np.asarray(y_prob, dtype=float) >= threshold).astype(int)
    cm = BinaryCounts.from_matrix(confusion_matrix(y_true, y_pred))
    return {
        "threshold": float(threshold),
        "tp": float(cm.tp),
        "fp": float(cm.fp),
        "tn": float(cm.tn),
        "fn": float(cm.fn),
        "accuracy": accuracy(cm),
        "precision": precision(cm),
        "recall": recall(cm),
        "specificity": specificity(cm),
        "f1": f1(cm),
    }


def format_confusion_matrix(matrix: np.ndarray, class_names: Sequence[str]) -> str:
    if matrix.shape != (len(class_names), len(class_names)):
        raise ValueError(f"Matrix shape {matrix.shape} does not match {len(class_names)} class names")
    width = max(len("actual \\ pred"), *(len(name) for name in class_names), len(str(matrix.max())))
    header = "actual \\ pred".ljust(width) + " | " + " | ".join(name.rjust(width) for name in class_names)
    lines = [header, "-" * len(header)]
    for name, row in zip(class_names, matrix):
        lines.append(name.ljust(width) + " | " + " | ".join(str(value).rjust(width) for value in row))
    return "\n".join(lines)
