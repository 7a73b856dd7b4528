"""
convlab: convolution, batch normalization and max pooling layers in numpy.
"""
from .neural_networks import (
    ConvolutionalLayer,
    BatchNormLayer,
    MaxPoolLayer,
    Network,
    SGDOptimizer
)

__version__ = "0.1.0"
