"""Gradient-check helpers."""

from .utils import numerical_gradient, relative_error, check_layer_gradient

__all__ = ['numerical_gradient', 'relative_error', 'check_layer_gradient']
