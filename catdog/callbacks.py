from __future__ import annotations

import copy
from typing import Dict, Optional

import torch
from torch import nn


class EarlyStopping:
    """Stop training once a monitored value stops improving.

    ``mode="min"`` treats lower values as better (losses), ``mode="max"``
    higher ones (accuracies). An epoch counts as an improvement only when it
    beats the best value by more than ``min_delta``.
    """

    def __init__(
        self,
        patience: int = 5,
        min_delta: float = 0.0,
        mode: str = "min",
        restore_best_weights: bool = True,
    ) -> None:
        if mode not in ("min", "max"):
            raise ValueError(f"mode must be 'min' or 'max', got '{mode}'.")
        self.patience = patience
        self.min_delta = abs(min_delta)
        self.mode = mode
        self.restore_best_weights = restore_best_weights
        self.best: Optional[float] = None
        self.best_epoch = 0
        self.wait = 0
        self.stopped = False
        self._epoch = 0
        self._best_state: Optional[Dict[str, torch.Tensor]] = None

    def _improved(self, value: float) -> bool:
        if self.best is None:
            return True
        if self.mode == "min":
            return value < self.best - self.min_delta
        return value > self.best + self.min_delta

    def step(self, value: float, model: Optional[nn.Module] = None, epoch: Optional[int] = None) -> bool:
        """Record one epoch; ``epoch`` defaults to the number of calls so far."""
        self._epoch = epoch if epoch is not None else self._epoch + 1
        if self._improved(value):
            self.best = value
            self.best_epoch = self._epoch
            self.wait = 0
            if model is not None and self.restore_best_weights:
                self._best_state = copy.deepcopy(model.state_dict())
            return False

        self.wait += 1
        if self.wait >= self.patience:
            self.stopped = True
        return self.stopped

    def restore(self, model: nn.Module) -> bool:
        """Load the best weights seen so far; returns False if none were kept."""
        if self._best_state is None:
            return False
        model.load_state_dict(self._best_state)
        return True
