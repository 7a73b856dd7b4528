"""
Neural network layers: convolution, batch normalization and max pooling.
"""
from ._im2col import (
    im2col,
    col2im,
    make_image,
    float_to_image,
    padding_size,
    output_size
)
from ._conv import (
    ConvolutionalLayer,
    forward_convolutional_bias,
    backward_convolutional_bias
)
from ._batchnorm import BatchNormLayer
from ._maxpool import MaxPoolLayer
from .layers import (
    make_layer,
    make_convolutional_layer,
    make_batchnorm_layer,
    make_maxpool_layer
)
from ._network import (Network, l2_loss)
from .optimizers import (
    SGDOptimizer,
    get_optimizer
)

__all__ = [
    'im2col',
    'col2im',
    'make_image',
    'float_to_image',
    'padding_size',
    'output_size',
    'ConvolutionalLayer',
    'forward_convolutional_bias',
    'backward_convolutional_bias',
    'BatchNormLayer',
    'MaxPoolLayer',
    'make_layer',
    'make_convolutional_layer',
    'make_batchnorm_layer',
    'make_maxpool_layer',
    'Network',
    'l2_loss',
    'SGDOptimizer',
    'get_optimizer'
]
