"""
Patch transform for convolution: image <-> column matrix.

Images are channel-major arrays of shape (channels, height, width). A column
matrix has one row per (channel, kernel_row, kernel_col) triple and one column
per output position, so a convolution becomes a single matrix multiply.
"""
import numpy as np


def padding_size(size):
    """Symmetric padding for odd kernels, none for even kernels."""
    if size % 2 == 0:
        return 0
    return size // 2


def output_size(dim, stride):
    """Number of output positions along one axis: ceil(dim / stride)."""
    return (dim - 1) // stride + 1


def make_image(width, height, channels):
    """Zero image of shape (channels, height, width)."""
    return np.zeros((channels, height, width))


def float_to_image(row, width, height, channels):
    """
    View a flat sample as an image without copying.

    Args:
        row: 1D array of length width * height * channels
        width, height, channels: image geometry

    Returns:
        Array view of shape (channels, height, width)
    """
    row = np.asarray(row)
    if row.size != width * height * channels:
        raise ValueError(
            f"Cannot view {row.size} values as a {width}x{height}x{channels} image")
    return row.reshape(channels, height, width)


def pad_image(image, size, stride, fill=0.0):
    """
    Pad an image so every window of an (size, stride) scan is in range.

    The leading pad is padding_size(size) on both spatial axes; the trailing
    pad is whatever the last window needs to stay inside the array.

    Args:
        image: Array of shape (..., height, width)
        size: Kernel size
        stride: Scan stride
        fill: Value used for out-of-bounds cells

    Returns:
        (padded image, out_h, out_w)
    """
    height, width = image.shape[-2:]
    pad = padding_size(size)
    out_h = output_size(height, stride)
    out_w = output_size(width, stride)
    after_h = max(0, (out_h - 1) * stride + size - pad - height)
    after_w = max(0, (out_w - 1) * stride + size - pad - width)

    pad_width = [(0, 0)] * (image.ndim - 2) + [(pad, after_h), (pad, after_w)]
    padded = np.pad(image, pad_width, mode='constant', constant_values=fill)
    return padded, out_h, out_w


def window_stack(image, size, stride, fill=0.0):
    """
    Gather every kernel offset of a strided scan.

    Args:
        image: Array of shape (..., height, width)

    Returns:
        Array of shape (..., size, size, out_h, out_w) where entry
        [..., kr, kc, i, j] is the input at (i*stride + kr - pad, j*stride + kc - pad)
        or `fill` when that position is out of bounds.
    """
    padded, out_h, out_w = pad_image(image, size, stride, fill)
    lead = image.shape[:-2]
    windows = np.empty(lead + (size, size, out_h, out_w), dtype=padded.dtype)
    for kr in range(size):
        r_max = kr + stride * out_h
        for kc in range(size):
            c_max = kc + stride * out_w
            windows[..., kr, kc, :, :] = padded[..., kr:r_max:stride, kc:c_max:stride]
    return windows


def im2col(image, size, stride):
    """
    Make a column matrix out of an image.

    Args:
        image: Array of shape (channels, height, width)
        size: Kernel size
        stride: Convolution stride

    Returns:
        Matrix of shape (channels * size * size, out_h * out_w)
    """
    if image.ndim != 3:
        raise ValueError(f"Unsupported image shape: {image.shape}")
    channels = image.shape[0]
    windows = window_stack(image, size, stride)
    out_h, out_w = windows.shape[-2:]
    return windows.reshape(channels * size * size, out_h * out_w)


def col2im(width, height, channels, col, size, stride):
    """
    Add a column matrix back into a fresh image; the transpose of im2col.

    Overlapping windows accumulate, out-of-bounds entries are dropped.

    Args:
        width, height, channels: Geometry of the image to rebuild
        col: Matrix of shape (channels * size * size, out_h * out_w)
        size: Kernel size
        stride: Convolution stride

    Returns:
        Array of shape (channels, height, width)
    """
    out_h = output_size(height, stride)
    out_w = output_size(width, stride)
    expected = (channels * size * size, out_h * out_w)
    if col.shape != expected:
        raise ValueError(
            f"Column matrix has shape {col.shape}, expected {expected}")

    padded, _, _ = pad_image(make_image(width, height, channels), size, stride)
    col = col.reshape(channels, size, size, out_h, out_w)
    for kr in range(size):
        r_max = kr + stride * out_h
        for kc in range(size):
            c_max = kc + stride * out_w
            padded[:, kr:r_max:stride, kc:c_max:stride] += col[:, kr, kc]

    pad = padding_size(size)
    return padded[:, pad:pad + height, pad:pad + width].copy()
