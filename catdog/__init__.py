"""
Cat vs dog image classification with logistic regression, a small CNN and pretrained backbones.
"""

__all__ = [
    "callbacks",
    "config",
    "data",
    "evaluate",
    "infer",
    "metrics",
    "model",
    "tools",
    "train",
    "utils",
    "visualize",
]
