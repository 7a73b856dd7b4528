# pylint: disable=missing-docstring
from abc import abstractmethod
from typing import Any, Optional
import numpy as np


# pylint: disable=too-many-instance-attributes, invalid-name line-too-long missing-docstring
class BaseLayer:
    """
    Common interface of every layer: forward, backward, update.

    A layer caches a copy of its forward input in ``_prev_input``; backward is
    only valid after a forward call on the same layer.
    """
    trainable_params: tuple = ()

    def __init__(self):
        self._prev_input: Optional[np.ndarray] = None

    @abstractmethod
    def forward(self, x: np.ndarray) -> np.ndarray:
        """
        :param x: numpy array of shape (N, d) with N being the batch size and d the flattened input size
        :return: numpy array of shape (N, d') with d' being the flattened output size
        """
        raise NotImplementedError

    @abstractmethod
    def backward(self, dy: np.ndarray) -> np.ndarray:
        """
        :param dy: numpy array of shape (N, d'), derivative of the loss wrt the layer output
        :return: numpy array of shape (N, d), derivative of the loss wrt the layer input
        """
        raise NotImplementedError

    @abstractmethod
    def update(self, rate: float, momentum: float, decay: float) -> None:
        """
        :param rate: learning rate
        :param momentum: fraction of the current step kept as residual for the next one
        :param decay: l2 weight decay
        """
        raise NotImplementedError

    def __call__(self, x: np.ndarray) -> np.ndarray:
        return self.forward(x)

    def _cache_input(self, x: np.ndarray) -> np.ndarray:
        self._prev_input = np.array(x, dtype=float, copy=True)
        return self._prev_input

    def _cached_input(self) -> np.ndarray:
        if self._prev_input is None:
            raise RuntimeError(
                f"{type(self).__name__}.backward called before forward")
        return self._prev_input

    def get_params(self, mode: str = "all") -> Any:
        """
        Get parameters for this layer.

        :param mode: Specifies which parameters to return. Options are:
            - "all": Return all parameters.
            - "trainable": Return only trainable parameters (e.g., weights).
            - "non_trainable": Return only non-trainable parameters (e.g., geometry, running statistics).
        :return: Dictionary of parameter names mapped to their values.
        """
        if mode == "all":
            return self.__dict__
        if mode == "trainable":
            return {k: v for k, v in self.__dict__.items() if k in self.trainable_params}
        if mode == "non_trainable":
            return {k: v for k, v in self.__dict__.items() if k not in self.trainable_params}

        raise ValueError(
            f"Invalid mode '{mode}'. Choose from 'all', 'trainable', or 'non_trainable'."
        )


def check_batch(x: np.ndarray, n_features: Optional[int] = None,
                name: str = "input") -> np.ndarray:
    """
    :param x: batch matrix, one flattened sample per row
    :param n_features: expected number of columns, None accepts any
    :return: x as a 2D float array with at least one row
    """
    x = np.asarray(x, dtype=float)
    if x.ndim != 2:
        raise ValueError(f"{name} must be a 2D array, got shape {x.shape}")
    if x.shape[0] == 0:
        raise ValueError(f"{name} is an empty batch, got shape {x.shape}")
    if n_features is not None and x.shape[1] != n_features:
        raise ValueError(
            f"{name} has {x.shape[1]} columns, expected {n_features}")
    return x
