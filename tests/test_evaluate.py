import sys

import numpy as np
import pytest
import torch
from torch import nn

from catdog.config import save_config
from catdog.data import create_dataloaders
from catdog.evaluate import collect_predictions, main, parse_args, pick_samples
from catdog.metrics import summarize
from catdog.model import build_model
from catdog.train import evaluate
from catdog.utils import save_checkpoint


def write_checkpoint(model, config, path):
    save_checkpoint(model, torch.optim.Adam(model.parameters()), 1, 0.5, path, config, class_names=["cats", "dogs"])
    return path


def test_collect_predictions_follow_loader_order(config):
    _, val_loader, _ = create_dataloaders(config)
    model = build_model(config)

    y_true, y_prob, loss = collect_predictions(model, val_loader, torch.device("cpu"))

    assert y_true.tolist() == [0, 0, 0, 0, 1, 1, 1, 1]
    assert y_prob.shape == (8,)
    assert np.all((y_prob >= 0) & (y_prob <= 1))
    assert loss > 0


def test_single_pass_matches_training_evaluation(config):
    _, val_loader, _ = create_dataloaders(config)
    model = build_model(config)
    device = torch.device("cpu")

    expected_loss, expected_acc = evaluate(model, val_loader, nn.BCEWithLogitsLoss(), device)
    y_true, y_prob, loss = collect_predictions(model, val_loader, device)

    assert loss == pytest.approx(expected_loss, rel=1e-5)
    assert summarize(y_true, y_prob)["accuracy"] == pytest.approx(expected_acc)


def test_pick_samples_is_bounded_and_sorted():
    paths = [f"img{i}.jpg" for i in range(5)]
    samples = pick_samples(paths, np.array([0, 0, 1, 1, 1]), np.linspace(0, 1, 5), count=10)

    assert [s[0] for s in samples] == paths
    assert samples[2] == ("img2.jpg", 1, 0.5)


def test_main_prints_confusion_matrix_and_plots(config, tmp_path, monkeypatch, capsys):
    checkpoint = write_checkpoint(build_model(config), config, tmp_path / "models" / "model.pt")
    config_path = tmp_path / "eval.yaml"
    save_config(config, config_path)
    plot_dir = tmp_path / "plots"
    monkeypatch.setattr(
        sys,
        "argv",
        ["evaluate", "--config", str(config_path), "--checkpoint", str(checkpoint), "--plot-dir", str(plot_dir), "--num-samples", "6"],
    )

    main()

    out = capsys.readouterr().out
    assert "Validation accuracy" in out
    assert "actual \\ pred" in out
    assert "Precision (dogs)" in out
    assert (plot_dir / "confusion_matrix.png").exists()
    assert (plot_dir / "predictions.png").exists()


def test_main_rebuilds_architecture_from_checkpoint(config, tmp_path, monkeypatch, capsys):
    config.architecture = "logreg"
    checkpoint = write_checkpoint(build_model(config), config, tmp_path / "logreg.pt")
    monkeypatch.setattr(sys, "argv", ["evaluate", "--checkpoint", str(checkpoint), "--device", "cpu"])

    main()

    assert "Validation accuracy" in capsys.readouterr().out


def test_zero_samples_skips_prediction_grid(config, tmp_path, monkeypatch):
    checkpoint = write_checkpoint(build_model(config), config, tmp_path / "model.pt")
    plot_dir = tmp_path / "plots"
    monkeypatch.setattr(
        sys, "argv", ["evaluate", "--checkpoint", str(checkpoint), "--plot-dir", str(plot_dir), "--num-samples", "0"]
    )

    main()

    assert (plot_dir / "confusion_matrix.png").exists()
    assert not (plot_dir / "predictions.png").exists()


def test_negative_sample_count_is_rejected(monkeypatch):
    monkeypatch.setattr(sys, "argv", ["evaluate", "--checkpoint", "m.pt", "--num-samples", "-1"])
    with pytest.raises(SystemExit):
        parse_args()
