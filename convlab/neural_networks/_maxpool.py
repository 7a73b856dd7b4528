"""
Max pooling layer.
"""
import numpy as np

from ..base import BaseLayer, check_batch
from ._im2col import output_size, padding_size, window_stack


class MaxPoolLayer(BaseLayer):
    """
    Max pooling layer for spatial dimension reduction.

    Windows are anchored every `stride` pixels and span offsets
    -pad .. size-1-pad, scanned row-major; out-of-bounds cells count as -inf.
    The first maximum met in scan order wins ties.
    """

    def __init__(self, width, height, channels, size, stride):
        """Constructor"""
        super().__init__()
        self.width = width
        self.height = height
        self.channels = channels
        self.size = size
        self.stride = stride

    @property
    def n_inputs(self):
        return self.width * self.height * self.channels

    def output_shape(self):
        """Calculate output dimensions (out_h, out_w, channels)"""
        return (output_size(self.height, self.stride),
                output_size(self.width, self.stride),
                self.channels)

    def _windows(self, x):
        """(N, C, size*size, out_h, out_w) stack of every window cell"""
        images = x.reshape(x.shape[0], self.channels, self.height, self.width)
        windows = window_stack(images, self.size, self.stride, fill=-np.inf)
        out_h, out_w = windows.shape[-2:]
        return windows.reshape(x.shape[0], self.channels,
                               self.size * self.size, out_h, out_w)

    def _argmax_index(self, x):
        """Flat per-sample input index of each window's maximum"""
        out_h, out_w, _ = self.output_shape()
        offset = self._windows(x).argmax(axis=2)
        kernel_row, kernel_col = np.divmod(offset, self.size)

        pad = padding_size(self.size)
        rows = np.arange(out_h).reshape(out_h, 1) * self.stride + kernel_row - pad
        cols = np.arange(out_w).reshape(1, out_w) * self.stride + kernel_col - pad
        channel = np.arange(self.channels).reshape(1, self.channels, 1, 1)
        return (channel * self.height + rows) * self.width + cols

    def forward(self, x):
        """Forward pass: max over each window"""
        x = self._cache_input(check_batch(x, self.n_inputs))
        return self._windows(x).max(axis=2).reshape(x.shape[0], -1)

    def backward(self, dy):
        """Backward pass: route each gradient to its window's maximum"""
        x = self._cached_input()
        out_h, out_w, _ = self.output_shape()
        dy = check_batch(dy, self.channels * out_h * out_w, name="dy")
        if dy.shape[0] != x.shape[0]:
            raise ValueError(
                f"dy has {dy.shape[0]} rows, cached input has {x.shape[0]}")

        index = self._argmax_index(x).reshape(x.shape[0], -1)
        dx = np.zeros((x.shape[0], self.n_inputs))
        for r in range(x.shape[0]):
            np.add.at(dx[r], index[r], dy[r])
        return dx

    def update(self, rate, momentum, decay):
        """No parameters to update"""

    def __repr__(self):
        return (f"MaxPoolLayer(width={self.width}, height={self.height}, "
                f"channels={self.channels}, size={self.size}, "
                f"stride={self.stride})")
