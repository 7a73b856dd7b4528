"""
Stochastic gradient descent for layer networks.
"""


class SGDOptimizer:
    """
    Stochastic Gradient Descent with momentum and l2 weight decay.

    The momentum residual lives in each layer's gradient accumulator, so the
    optimizer only carries the hyperparameters and drives layer updates.
    """

    def __init__(self, lr=0.01, momentum=0.9, decay=0.0005):
        """
        Initialize SGD optimizer.

        Args:
            lr (float): Learning rate
            momentum (float): Momentum factor
            decay (float): L2 weight decay
        """
        if lr < 0:
            raise ValueError(f"Learning rate must be non-negative, got {lr}")
        if momentum < 0:
            raise ValueError(f"Momentum must be non-negative, got {momentum}")
        if decay < 0:
            raise ValueError(f"Decay must be non-negative, got {decay}")
        self.lr = lr
        self.momentum = momentum
        self.decay = decay

    def step(self, network):
        """
        Apply one update to every layer.

        Args:
            network: Network or any iterable of layers
        """
        layers = getattr(network, 'layers', network)
        for layer in layers:
            layer.update(self.lr, self.momentum, self.decay)

    def __repr__(self):
        return (f"SGDOptimizer(lr={self.lr}, momentum={self.momentum}, "
                f"decay={self.decay})")


def get_optimizer(solver='sgd', **kwargs):
    """
    Factory function to get optimizer instances.

    Args:
        solver (str): Optimizer type, only 'sgd' is available
        **kwargs: Optimizer-specific parameters

    Returns:
        Optimizer instance
    """
    if solver == 'sgd':
        return SGDOptimizer(**kwargs)
    raise ValueError(f"Unknown solver: {solver}")
