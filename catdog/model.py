from __future__ import annotations

from typing import Tuple

import torch
from torch import nn
from torchvision import models

from .config import TrainingConfig

ARCHITECTURES = ("logreg", "cnn", "pretrained")
BACKBONES = ("resnet18", "resnet50", "vgg16", "mobilenet_v3_small")


class LogisticRegression(nn.Module):
    """Flattened pixels into a single linear unit; the sigmoid lives in the loss."""

    def __init__(self, image_size: int, in_channels: int = 3) -> None:
        super().__init__()
        self.linear = nn.Sequential(
            nn.Flatten(),
            nn.Linear(in_channels * image_size * image_size, 1),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.linear(x).squeeze(1)


class ConvBlock(nn.Module):
    """Utility Conv2d -> ReLU -> MaxPool block."""

    def __init__(self, in_channels: int, out_channels: int) -> None:
        super().__init__()
        self.block = nn.Sequential(
            nn.Conv2d(in_channels, out_channels, kernel_size=3, padding=1),
            nn.ReLU(inplace=True),
            nn.MaxPool2d(2),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.block(x)


class SimpleCNN(nn.Module):
    """Four convolution blocks followed by a dense head with one logit."""

    channels = (32, 64, 128, 128)

    def __init__(self, image_size: int = 150, dropout: float = 0.5) -> None:
        super().__init__()
        if image_size < 2 ** len(self.channels):
            raise ValueError(f"image_size must be at least {2 ** len(self.channels)}, got {image_size}.")

        blocks = []
        in_channels = 3
        spatial = image_size
        for out_channels in self.channels:
            blocks.append(ConvBlock(in_channels, out_channels))
            in_channels = out_channels
            spatial //= 2
        self.features = nn.Sequential(*blocks)
        self.classifier = nn.Sequential(
            nn.Flatten(),
            nn.Dropout(dropout),
            nn.Linear(in_channels * spatial * spatial, 512),
            nn.ReLU(inplace=True),
            nn.Linear(512, 1),
        )

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        x = self.features(x)
        return self.classifier(x).squeeze(1)


def _replace_head(network: nn.Module) -> nn.Linear:
    """Swap the final linear layer of a torchvision classifier for a single output."""
    if isinstance(getattr(network, "fc", None), nn.Linear):
        network.fc = nn.Linear(network.fc.in_features, 1)
        return network.fc
    classifier = getattr(network, "classifier", None)
    if isinstance(classifier, nn.Sequential) and isinstance(classifier[-1], nn.Linear):
        classifier[-1] = nn.Linear(classifier[-1].in_features, 1)
        return classifier[-1]
    raise ValueError(f"Cannot locate the classification head of {network.__class__.__name__}.")


class PretrainedClassifier(nn.Module):
    """ImageNet backbone from torchvision with a fresh binary head.

    When the backbone is frozen only the head receives gradients, and the
    backbone stays in eval mode so batch-norm statistics are not updated.
    """

    def __init__(self, backbone: str = "resnet18", pretrained: bool = True, freeze_backbone: bool = True) -> None:
        super().__init__()
        if backbone not in BACKBONES:
            raise ValueError(f"Unsupported backbone '{backbone}'. Choose one of {BACKBONES}.")
        self.network = models.get_model(backbone, weights="DEFAULT" if pretrained else None)
        self.freeze_backbone = freeze_backbone
        if freeze_backbone:
            for param in self.network.parameters():
                param.requires_grad = False
        self.head = _replace_head(self.network)

    def train(self, mode: bool = True) -> "PretrainedClassifier":
        super().train(mode)
        if self.freeze_backbone:
            self.network.eval()
            self.head.train(mode)
        return self

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        return self.network(x).squeeze(1)


def build_model(config: TrainingConfig) -> nn.Module:
    """Factory that hides concrete architecture from callers."""
    architecture = config.architecture.lower()
    if architecture == "logreg":
        return LogisticRegression(image_size=config.image_size)
    if architecture == "cnn":
        return SimpleCNN(image_size=config.image_size)
    if architecture == "pretrained":
        return PretrainedClassifier(
            backbone=config.backbone,
            pretrained=config.pretrained,
            freeze_backbone=config.freeze_backbone,
        )
    raise ValueError(f"Unsupported architecture '{config.architecture}'. Choose one of {ARCHITECTURES}.")


def count_parameters(model: nn.Module) -> Tuple[int, int]:
    total = sum(p.numel() for p in model.parameters())
    trainable = sum(p.numel() for p in model.parameters() if p.requires_grad)
    return total, trainable
