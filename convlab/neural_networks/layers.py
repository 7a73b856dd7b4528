"""
Layer constructors.
"""
from ._batchnorm import BatchNormLayer
from ._conv import ConvolutionalLayer
from ._maxpool import MaxPoolLayer

LAYER_TYPES = {
    'convolutional': ConvolutionalLayer,
    'batchnorm': BatchNormLayer,
    'maxpool': MaxPoolLayer,
}


def make_convolutional_layer(w, h, c, filters, size, stride, rng=None):
    """
    Make a new convolutional layer.

    Args:
        w (int): Width of input image
        h (int): Height of input image
        c (int): Number of channels
        filters (int): Number of filters
        size (int): Size of convolutional filter to apply
        stride (int): Stride of operation
        rng (np.random.Generator, optional): Random number generator

    Returns:
        ConvolutionalLayer
    """
    return ConvolutionalLayer(w, h, c, filters, size, stride, rng=rng)


def make_batchnorm_layer(groups):
    """
    Make a new batch normalization layer.

    Args:
        groups (int): Number of statistics kept, usually the channel count

    Returns:
        BatchNormLayer
    """
    return BatchNormLayer(groups)


def make_maxpool_layer(w, h, c, size, stride):
    """
    Make a new max pooling layer.

    Args:
        w (int): Width of input image
        h (int): Height of input image
        c (int): Number of channels
        size (int): Size of maxpool window
        stride (int): Stride of operation

    Returns:
        MaxPoolLayer
    """
    return MaxPoolLayer(w, h, c, size, stride)


def make_layer(kind, **kwargs):
    """
    Factory function to get layer instances.

    Args:
        kind (str): Layer type ('convolutional', 'batchnorm', 'maxpool')
        **kwargs: Constructor parameters of that layer

    Returns:
        Layer instance
    """
    if kind not in LAYER_TYPES:
        raise ValueError(f"Unknown layer type: {kind}")
    return LAYER_TYPES[kind](**kwargs)
