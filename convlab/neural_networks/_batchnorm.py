"""
Batch normalization over groups of contiguous columns.

A batch matrix of shape (N, cols) is split into `groups` blocks of
n = cols // groups columns; each block (typically one channel of a
convolutional feature map) shares one mean and one variance, reduced over
all N rows and all n columns.
"""
import numpy as np

from ..base import BaseLayer, check_batch

EPS = 1e-5


def _grouped(x, groups):
    """Reshape (N, cols) to (N, groups, n)."""
    if x.shape[1] % groups != 0:
        raise ValueError(
            f"{x.shape[1]} columns cannot be split into {groups} groups")
    return x.reshape(x.shape[0], groups, x.shape[1] // groups)


def _per_column(stat, n):
    """Broadcast a (1, groups) statistic to the (1, groups * n) column layout."""
    return np.repeat(stat, n, axis=1)


def mean(x, groups):
    """(1, groups) mean of x over rows and the columns of each group"""
    return _grouped(x, groups).mean(axis=(0, 2)).reshape(1, groups)


def variance(x, m, groups):
    """(1, groups) biased variance of x around m"""
    centered = _grouped(x, groups) - m.reshape(1, groups, 1)
    return (centered ** 2).mean(axis=(0, 2)).reshape(1, groups)


def normalize(x, m, v, groups):
    """y = (x - m) / sqrt(v + eps), one statistic per group"""
    grouped = _grouped(x, groups)
    y = (grouped - m.reshape(1, groups, 1)) / np.sqrt(v.reshape(1, groups, 1) + EPS)
    return y.reshape(x.shape)


def delta_mean(d, v):
    """dL/dm = sum of dL/dy * -1/sqrt(v + eps) over each group"""
    groups = v.shape[1]
    total = _grouped(d, groups).sum(axis=(0, 2)).reshape(1, groups)
    return total * (-1.0 / np.sqrt(v + EPS))


def delta_variance(d, x, m, v):
    """dL/dv = sum of dL/dy * (x - m) * -0.5 * (v + eps)^-1.5 over each group"""
    groups = m.shape[1]
    centered = _grouped(x, groups) - m.reshape(1, groups, 1)
    total = (_grouped(d, groups) * centered).sum(axis=(0, 2)).reshape(1, groups)
    return total * (-0.5 * np.power(v + EPS, -1.5))


def delta_batch_norm(d, dm, dv, m, v, x):
    """
    dL/dx through the mean and variance nodes.

    dx = dy / sqrt(v + eps) + dv * 2 * (x - m) / N + dm / N
    with N = rows * n, the number of elements reduced per group.
    """
    groups = m.shape[1]
    n = x.shape[1] // groups
    total = x.shape[0] * n

    m_col = _per_column(m, n)
    v_col = _per_column(v, n)
    return (d / np.sqrt(v_col + EPS)
            + _per_column(dv, n) * 2.0 * (x - m_col) / total
            + _per_column(dm, n) / total)


class BatchNormLayer(BaseLayer):
    """
    Batch normalization layer without learnable scale or shift.

    Batches with more than one row are standardized with their own statistics
    and update the running estimates; a single row is standardized with the
    running estimates only.
    """
    MOMENTUM = 0.1
    EPS = EPS

    def __init__(self, groups):
        """Constructor with zeroed running statistics"""
        super().__init__()
        self.groups = groups
        self.channels = groups

        self.running_mean_ = np.zeros((1, groups))
        self.running_var_ = np.zeros((1, groups))

    def forward(self, x):
        """Forward pass: batch normalization"""
        x = self._cache_input(check_batch(x))

        if x.shape[0] == 1:
            return normalize(x, self.running_mean_, self.running_var_, self.groups)

        m = mean(x, self.groups)
        v = variance(x, m, self.groups)
        y = normalize(x, m, v, self.groups)

        s = self.MOMENTUM
        self.running_mean_ *= 1 - s
        self.running_mean_ += s * m
        self.running_var_ *= 1 - s
        self.running_var_ += s * v

        return y

    def backward(self, dy):
        """Backward pass: batch statistics are recomputed from the cached input"""
        x = self._cached_input()
        dy = np.asarray(dy, dtype=float)
        if dy.shape != x.shape:
            raise ValueError(
                f"dy has shape {dy.shape}, cached input has shape {x.shape}")

        m = mean(x, self.groups)
        v = variance(x, m, self.groups)

        dm = delta_mean(dy, v)
        dv = delta_variance(dy, x, m, v)
        return delta_batch_norm(dy, dm, dv, m, v, x)

    def update(self, rate, momentum, decay):
        """Nothing to learn: running statistics are not gradient-updated"""

    def __repr__(self):
        return f"BatchNormLayer(groups={self.groups})"
