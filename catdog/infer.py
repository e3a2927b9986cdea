from __future__ import annotations

import argparse
from pathlib import Path
from typing import List, Sequence, Tuple

import torch
from PIL import Image

from .data import build_transforms
from .model import build_model
from .utils import config_for_checkpoint, get_device, load_checkpoint, read_checkpoint_metadata

IMAGE_SUFFIXES = (".jpg", ".jpeg", ".png", ".bmp", ".gif", ".webp")
DEFAULT_CLASSES = ("cats", "dogs")


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Classify a single image or a directory of images.")
    parser.add_argument("--image", type=str, required=True, help="Path to an image file or a directory of images.")
    parser.add_argument("--checkpoint", type=str, required=True, help="Path to the trained model checkpoint.")
    parser.add_argument("--config", type=str, help="YAML overrides applied on top of the config stored in the checkpoint.")
    parser.add_argument("--device", type=str, help="Override device (cuda/mps/cpu).")
    parser.add_argument("--threshold", type=float, help="Decision threshold on the positive-class probability.")
    return parser.parse_args()


def load_image(path: str | Path, transform) -> torch.Tensor:
    image = Image.open(path).convert("RGB")
    return transform(image).unsqueeze(0)


def list_images(path: str | Path) -> List[Path]:
    path = Path(path)
    if path.is_file():
        return [path]
    if path.is_dir():
        return sorted(p for p in path.iterdir() if p.suffix.lower() in IMAGE_SUFFIXES)
    raise FileNotFoundError(f"No image or directory at {path}")


def predict_image(model: torch.nn.Module, path: str | Path, transform, device: torch.device) -> float:
    """Probability that the image belongs to the positive class."""
    model.eval()
    tensor = load_image(path, transform).to(device)
    with torch.no_grad():
        logit = model(tensor)
    return torch.sigmoid(logit).item()


def label_for(probability: float, class_names: Sequence[str] = DEFAULT_CLASSES, threshold: float = 0.5) -> Tuple[str, float]:
    if probability >= threshold:
        return class_names[1], probability
    return class_names[0], 1.0 - probability


def main() -> None:
    args = parse_args()
    config = config_for_checkpoint(args.checkpoint, args.config, device=args.device, threshold=args.threshold)
    _, stored_classes = read_checkpoint_metadata(args.checkpoint)
    class_names = stored_classes or DEFAULT_CLASSES

    device = get_device(config.device)
    _, eval_transform = build_transforms(config)

    model = build_model(config).to(device)
    load_checkpoint(model, optimizer=None, path=args.checkpoint, device=device, scaler=None)

    for path in list_images(args.image):
        probability = predict_image(model, path, eval_transform, device)
        label, confidence = label_for(probability, class_names, threshold=config.threshold)
        print(f"{path}: {label} with confidence {confidence:.4f}")


if __name__ == "__main__":
    main()
