import numpy as np


def numerical_gradient(f, param, h=1e-5):
    """
    Central-difference gradient of a scalar function.

    Every entry of `param` is perturbed in place by +h and -h, `f()` is
    evaluated at both points, and the entry is restored.
    """
    grad = np.zeros_like(param, dtype=float)
    for idx in np.ndindex(param.shape):
        old = param[idx]
        param[idx] = old + h
        plus = f()
        param[idx] = old - h
        minus = f()
        param[idx] = old
        grad[idx] = (plus - minus) / (2 * h)
    return grad


def relative_error(a, b):
    """||a - b|| / (||a|| + ||b||), 0 when both are zero"""
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    scale = np.linalg.norm(a) + np.linalg.norm(b)
    if scale == 0:
        return 0.0
    return float(np.linalg.norm(a - b) / scale)


def check_layer_gradient(layer, x, dy, h=1e-5):
    """
    Compare a layer's analytic dL/dx with the numerical one.

    The loss is sum(layer.forward(x) * dy), so its gradient wrt the output is dy.
    Returns the relative error between the two gradients.
    """
    x = np.array(x, dtype=float)
    layer.forward(x)
    analytic = layer.backward(dy)

    def loss():
        return float(np.sum(layer.forward(x) * dy))

    numeric = numerical_gradient(loss, x, h)
    return relative_error(analytic, numeric)
