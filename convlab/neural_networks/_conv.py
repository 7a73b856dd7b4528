"""
Convolutional layer expressed as im2col + matrix multiply.
"""
import numpy as np

from ..base import BaseLayer, check_batch
from ._im2col import col2im, float_to_image, im2col, output_size


def forward_convolutional_bias(xw, b):
    """
    Add one bias per filter to every spatial position of that filter.

    Args:
        xw: Matrix of shape (N, filters * spatial), filter-major columns
        b: Bias matrix of shape (1, filters)

    Returns:
        New matrix y = xw + b broadcast over spatial positions
    """
    if b.ndim != 2 or b.shape[0] != 1:
        raise ValueError(f"Bias must have exactly one row, got shape {b.shape}")
    if xw.shape[1] % b.shape[1] != 0:
        raise ValueError(
            f"{xw.shape[1]} columns cannot be split across {b.shape[1]} filters")

    spatial = xw.shape[1] // b.shape[1]
    return xw + np.repeat(b, spatial, axis=1)


def backward_convolutional_bias(dy, n):
    """
    Sum dL/dy over the batch and over every spatial position of each filter.

    Returns:
        Matrix of shape (1, n) with dL/db
    """
    if dy.shape[1] % n != 0:
        raise ValueError(f"{dy.shape[1]} columns cannot be split across {n} filters")

    spatial = dy.shape[1] // n
    return dy.reshape(dy.shape[0], n, spatial).sum(axis=(0, 2)).reshape(1, n)


class ConvolutionalLayer(BaseLayer):
    """
    Convolutional layer for feature extraction with learnable filters.

    Input rows are flattened (channels, height, width) images; output rows are
    flattened (filters, out_h, out_w) feature maps.
    """
    trainable_params = ('weight_', 'bias_')

    def __init__(self, width, height, channels, filters, size, stride=1,
                 rng=None):
        """Constructor with He-scaled uniform initialization"""
        super().__init__()
        if rng is None:
            rng = np.random.default_rng()

        self.width = width
        self.height = height
        self.channels = channels
        self.filters = filters
        self.size = size
        self.stride = stride

        fan_in = size * size * channels
        scale = np.sqrt(2.0 / fan_in)
        self.weight_ = rng.uniform(-scale, scale, (filters, fan_in))
        self.bias_ = np.zeros((1, filters))

        # Accumulators: backward adds, update rescales by momentum
        self._weight_grad = np.zeros_like(self.weight_)
        self._bias_grad = np.zeros_like(self.bias_)

    @property
    def weight_grad(self):
        """Get weight gradient accumulator."""
        return self._weight_grad

    @property
    def bias_grad(self):
        """Get bias gradient accumulator."""
        return self._bias_grad

    @property
    def n_inputs(self):
        return self.width * self.height * self.channels

    def output_shape(self):
        """Calculate output dimensions (out_h, out_w, filters)"""
        return (output_size(self.height, self.stride),
                output_size(self.width, self.stride),
                self.filters)

    def forward(self, x):
        """Forward pass: convolution + bias"""
        x = self._cache_input(check_batch(x, self.n_inputs))

        out_h, out_w, _ = self.output_shape()
        out = np.zeros((x.shape[0], self.filters * out_h * out_w))
        for i in range(x.shape[0]):
            example = float_to_image(x[i], self.width, self.height, self.channels)
            x_col = im2col(example, self.size, self.stride)
            out[i] = (self.weight_ @ x_col).ravel()

        return forward_convolutional_bias(out, self.bias_)

    def backward(self, dy):
        """Backward pass: accumulate dL/dw and dL/db, return dL/dx"""
        x = self._cached_input()
        out_h, out_w, _ = self.output_shape()
        spatial = out_h * out_w
        dy = check_batch(dy, self.filters * spatial, name="dy")
        if dy.shape[0] != x.shape[0]:
            raise ValueError(
                f"dy has {dy.shape[0]} rows, cached input has {x.shape[0]}")

        self._bias_grad += backward_convolutional_bias(dy, self.filters)

        dx = np.zeros((x.shape[0], self.n_inputs))
        weight_t = self.weight_.T
        for i in range(x.shape[0]):
            example = float_to_image(x[i], self.width, self.height, self.channels)
            x_col = im2col(example, self.size, self.stride)
            dy_i = dy[i].reshape(self.filters, spatial)

            self._weight_grad += dy_i @ x_col.T

            col = weight_t @ dy_i
            dx[i] = col2im(self.width, self.height, self.channels, col,
                           self.size, self.stride).ravel()
        return dx

    def update(self, rate, momentum, decay):
        """SGD step with momentum and l2 decay (no decay on bias)"""
        self._weight_grad += decay * self.weight_
        self.weight_ -= rate * self._weight_grad
        self._weight_grad *= momentum

        self.bias_ -= rate * self._bias_grad
        self._bias_grad *= momentum

    def __repr__(self):
        return (f"ConvolutionalLayer(width={self.width}, height={self.height}, "
                f"channels={self.channels}, filters={self.filters}, "
                f"size={self.size}, stride={self.stride})")
