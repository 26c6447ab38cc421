"""Tensors with automatic differentiation, layers, and small trainable feed-forward networks."""

__version__ = "1.0.0"