import numpy as np
import pytest

from catdog.visualize import plot_confusion_matrix, plot_history, plot_predictions


def test_plot_history(tmp_path):
    history = {"loss": [0.7, 0.5], "accuracy": [0.5, 0.7], "val_loss": [0.69, 0.6], "val_accuracy": [0.5, 0.6], "lr": [1e-3, 1e-3]}
    path = plot_history(history, tmp_path / "out" / "history.png")
    assert path.exists() and path.stat().st_size > 0


def test_plot_confusion_matrix(tmp_path):
    path = plot_confusion_matrix(np.array([[3, 1], [2, 4]]), ["cats", "dogs"], tmp_path / "cm.png")
    assert path.exists()


def test_plot_predictions(dataset_dir, tmp_path):
    cats = sorted((dataset_dir / "validation" / "cats").iterdir())
    dogs = sorted((dataset_dir / "validation" / "dogs").iterdir())
    samples = [(str(cats[0]), 0, 0.1), (str(cats[1]), 0, 0.9), (str(dogs[0]), 1, 0.7)]

    path = plot_predictions(samples, ["cats", "dogs"], tmp_path / "grid.png", columns=2)

    assert path.exists()


def test_plot_predictions_requires_samples(tmp_path):
    with pytest.raises(ValueError):
        plot_predictions([], ["cats", "dogs"], tmp_path / "grid.png")
