from __future__ import annotations

import argparse
from pathlib import Path
from typing import Dict, List, Sequence, Tuple

import torch
from torch import nn
from torch.optim import Adam
from torch.optim.lr_scheduler import ReduceLROnPlateau
from tqdm import tqdm

from .callbacks import EarlyStopping
from .config import TrainingConfig, load_config, override_config, save_config
from .data import create_dataloaders
from .model import ARCHITECTURES, build_model, count_parameters
from .utils import dump_metrics, get_device, load_checkpoint, save_checkpoint, save_history, set_seed
from .visualize import plot_history

History = Dict[str, List[float]]


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Train a cat/dog image classifier with PyTorch.")
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config file.")
    parser.add_argument("--architecture", choices=ARCHITECTURES, help="Model to train.")
    parser.add_argument("--epochs", type=int, help="Override number of epochs.")
    parser.add_argument("--batch-size", type=int, help="Override batch size.")
    parser.add_argument("--learning-rate", type=float, help="Override learning rate.")
    parser.add_argument("--image-size", type=int, help="Override square input resolution.")
    parser.add_argument("--augment", action="store_true", help="Enable training-time data augmentation.")
    parser.add_argument("--device", type=str, help="Preferred compute device (cuda/mps/cpu).")
    parser.add_argument("--model-dir", type=str, help="Directory for storing checkpoints.")
    parser.add_argument("--resume", action="store_true", help="Resume training from a saved checkpoint.")
    parser.add_argument("--checkpoint", type=str, help="Checkpoint to resume from (defaults to the config checkpoint path).")
    parser.add_argument("--use-amp", action="store_true", help="Force enable AMP.")
    parser.add_argument("--no-amp", action="store_true", help="Disable AMP even if CUDA is available.")
    parser.add_argument("--plot", action="store_true", help="Save loss/accuracy curves after training.")
    return parser.parse_args()


def new_history() -> History:
    return {"loss": [], "accuracy": [], "val_loss": [], "val_accuracy": [], "lr": []}


def train_one_epoch(
    model: nn.Module,
    loader: torch.utils.data.DataLoader,
    optimizer: torch.optim.Optimizer,
    criterion: nn.Module,
    device: torch.device,
    scaler: torch.amp.GradScaler,
    max_grad_norm: float,
    threshold: float = 0.5,
) -> Tuple[float, float]:
    model.train()
    total_loss = 0.0
    total_correct = 0
    total_samples = 0

    for inputs, targets in tqdm(loader, desc="Train", leave=False):
        inputs, targets = inputs.to(device), targets.to(device).float()
        optimizer.zero_grad(set_to_none=True)
        with torch.autocast(device_type=device.type, enabled=scaler.is_enabled()):
            logits = model(inputs)
            loss = criterion(logits.float(), targets)
        scaler.scale(loss).backward()
        scaler.unscale_(optimizer)
        if max_grad_norm:
            torch.nn.utils.clip_grad_norm_(model.parameters(), max_grad_norm)
        scaler.step(optimizer)
        scaler.update()

        batch = targets.size(0)
        total_loss += loss.item() * batch
        total_correct += ((torch.sigmoid(logits) >= threshold).float() == targets).sum().item()
        total_samples += batch

    return total_loss / total_samples, total_correct / total_samples


def evaluate(
    model: nn.Module,
    loader: torch.utils.data.DataLoader,
    criterion: nn.Module,
    device: torch.device,
    threshold: float = 0.5,
) -> Tuple[float, float]:
    model.eval()
    total_loss = 0.0
    total_correct = 0
    total_samples = 0

    with torch.no_grad():
        for inputs, targets in tqdm(loader, desc="Eval", leave=False):
            inputs, targets = inputs.to(device), targets.to(device).float()
            logits = model(inputs)
            loss = criterion(logits, targets)
            batch = targets.size(0)
            total_loss += loss.item() * batch
            total_correct += ((torch.sigmoid(logits) >= threshold).float() == targets).sum().item()
            total_samples += batch

    return total_loss / total_samples, total_correct / total_samples


def fit(
    model: nn.Module,
    train_loader: torch.utils.data.DataLoader,
    val_loader: torch.utils.data.DataLoader,
    config: TrainingConfig,
    device: torch.device,
    checkpoint_path: Path | None = None,
    optimizer: torch.optim.Optimizer | None = None,
    scaler: torch.amp.GradScaler | None = None,
    start_epoch: int = 1,
    best_val_acc: float = 0.0,
    class_names: Sequence[str] | None = None,
    verbose: bool = False,
) -> History:
    """Run the epoch loop with LR reduction and early stopping on validation loss.

    The best model by validation accuracy is checkpointed to
    ``checkpoint_path`` when one is given. If early stopping fires, the
    weights from the lowest validation loss are restored before returning.
    """
    criterion = nn.BCEWithLogitsLoss()
    if optimizer is None:
        params = [p for p in model.parameters() if p.requires_grad]
        optimizer = Adam(params, lr=config.learning_rate, weight_decay=config.weight_decay)
    if scaler is None:
        scaler = torch.amp.GradScaler("cuda", enabled=config.use_amp and device.type == "cuda")
    scheduler = ReduceLROnPlateau(
        optimizer,
        mode="min",
        patience=config.lr_patience,
        factor=config.lr_factor,
        min_lr=config.min_lr,
    )
    stopper = EarlyStopping(
        patience=config.early_stopping_patience,
        min_delta=config.early_stopping_min_delta,
        mode="min",
    )
    metrics_path = Path(config.log_dir) / "metrics.jsonl"
    history = new_history()

    for epoch in range(start_epoch, config.epochs + 1):
        train_loss, train_acc = train_one_epoch(
            model,
            train_loader,
            optimizer,
            criterion,
            device,
            scaler,
            config.max_grad_norm,
            config.threshold,
        )
        val_loss, val_acc = evaluate(model, val_loader, criterion, device, config.threshold)
        lr = optimizer.param_groups[0]["lr"]
        scheduler.step(val_loss)

        history["loss"].append(train_loss)
        history["accuracy"].append(train_acc)
        history["val_loss"].append(val_loss)
        history["val_accuracy"].append(val_acc)
        history["lr"].append(lr)
        dump_metrics(epoch, train_loss, train_acc, val_loss, val_acc, lr, metrics_path)

        if verbose:
            print(
                f"Epoch {epoch:02d}/{config.epochs} "
                f"| train loss: {train_loss:.4f} acc: {train_acc:.4f} "
                f"| val loss: {val_loss:.4f} acc: {val_acc:.4f} | lr: {lr:.2e}"
            )

        if val_acc > best_val_acc:
            best_val_acc = val_acc
            if checkpoint_path is not None:
                save_checkpoint(
                    model,
                    optimizer,
                    epoch,
                    best_val_acc,
                    checkpoint_path,
                    config,
                    scaler=scaler if scaler.is_enabled() else None,
                    class_names=class_names,
                )
                if verbose:
                    print(f"Saved new best model to {checkpoint_path}")

        if stopper.step(val_loss, model, epoch=epoch):
            if verbose:
                print(f"Early stopping at epoch {epoch}; best val loss {stopper.best:.4f} at epoch {stopper.best_epoch}")
            stopper.restore(model)
            break

    return history


def main() -> None:
    args = parse_args()
    config = load_config(args.config)
    overrides = {
        "architecture": args.architecture,
        "epochs": args.epochs,
        "batch_size": args.batch_size,
        "learning_rate": args.learning_rate,
        "image_size": args.image_size,
        "augment": True if args.augment else None,
        "device": args.device,
        "model_dir": args.model_dir,
        "use_amp": args.use_amp if args.use_amp or args.no_amp else None,
    }
    if args.no_amp:
        overrides["use_amp"] = False
    config = override_config(config, overrides)

    set_seed(config.seed)
    device = get_device(config.device)
    train_loader, val_loader, class_names = create_dataloaders(config)
    model = build_model(config)
    model.to(device)

    total, trainable = count_parameters(model)
    print(f"Model: {config.architecture} | classes: {class_names} | parameters: {total:,} ({trainable:,} trainable)")

    params = [p for p in model.parameters() if p.requires_grad]
    optimizer = Adam(params, lr=config.learning_rate, weight_decay=config.weight_decay)
    scaler = torch.amp.GradScaler("cuda", enabled=config.use_amp and device.type == "cuda")

    start_epoch = 1
    best_val_acc = 0.0
    checkpoint_path = config.checkpoint_path
    if args.resume:
        checkpoint_path = Path(args.checkpoint) if args.checkpoint else config.checkpoint_path
        if not checkpoint_path.is_file():
            raise FileNotFoundError(f"Cannot resume: no checkpoint at {checkpoint_path}")
        start_epoch, best_val_acc, _ = load_checkpoint(model, optimizer, checkpoint_path, device, scaler)
        print(f"Resuming from {checkpoint_path} at epoch {start_epoch}")
    save_config(config, checkpoint_path.with_suffix(".yaml"))

    print(f"Training on device: {device}")
    history = fit(
        model,
        train_loader,
        val_loader,
        config,
        device,
        checkpoint_path=checkpoint_path,
        optimizer=optimizer,
        scaler=scaler,
        start_epoch=start_epoch,
        best_val_acc=best_val_acc,
        class_names=class_names,
        verbose=True,
    )

    log_dir = Path(config.log_dir)
    save_history(history, log_dir / f"{config.architecture}-history.json")
    if args.plot and history["loss"]:
        figure = plot_history(history, log_dir / f"{config.architecture}-history.png")
        print(f"Saved training curves to {figure}")

    if history["val_accuracy"]:
        print(f"Best validation accuracy: {max(history['val_accuracy']):.4f}")


if __name__ == "__main__":
    main()
