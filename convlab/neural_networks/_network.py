"""
Sequential network driver: forward, backward and update over a list of layers.
"""
import numpy as np

from .optimizers import SGDOptimizer


def l2_loss(y_pred, y):
    """Squared error 0.5 * sum((y_pred - y)**2) / N and its gradient wrt y_pred"""
    diff = y_pred - y
    n_samples = y.shape[0]
    return 0.5 * np.sum(diff ** 2) / n_samples, diff / n_samples


def _batch_bounds(n_samples, batch_size):
    """
    (start, stop) slices of consecutive minibatches.

    A trailing batch of a single row is merged into the previous one: batch
    normalization treats a single row as inference, which is not a training
    step.
    """
    starts = list(range(0, n_samples, batch_size))
    if len(starts) > 1 and n_samples - starts[-1] == 1:
        starts.pop()
    stops = starts[1:] + [n_samples]
    return list(zip(starts, stops))


class Network:
    """
    Ordered stack of layers trained with SGD on a squared-error loss.

    Each step runs forward through every layer, backward in reverse order,
    then updates every layer, always in that order.
    """
    def __init__(self, layers, verbose=False):
        """Constructor"""
        self.layers = list(layers)
        self.verbose = verbose
        self.loss_curve_ = []

    def forward(self, x):
        """Forward pass through all layers"""
        output = x
        for layer in self.layers:
            output = layer.forward(output)
        return output

    def backward(self, dy):
        """Backward pass through all layers in reverse order"""
        grad = dy
        for layer in reversed(self.layers):
            grad = layer.backward(grad)
        return grad

    def update(self, rate, momentum, decay):
        """Parameter updates"""
        for layer in self.layers:
            layer.update(rate, momentum, decay)

    def __call__(self, x):
        return self.forward(x)

    def train_step(self, x, y, optimizer):
        """
        One forward / backward / update step on a batch.

        Args:
            x (ndarray): Batch of shape (N, d)
            y (ndarray): Targets of shape (N, d_out)
            optimizer (SGDOptimizer): Update hyperparameters

        Returns:
            float: Batch loss before the update
        """
        y_pred = self.forward(x)
        if y_pred.shape != y.shape:
            raise ValueError(
                f"Network output has shape {y_pred.shape}, targets have shape {y.shape}")
        loss, grad = l2_loss(y_pred, y)
        self.backward(grad)
        optimizer.step(self)
        return loss

    def fit(self, x, y, epochs=10, batch_size=32, optimizer=None,
            random_state=None):
        """
        Training: fit(x, y) -> self

        Args:
            x (ndarray): Training data of shape (n_samples, d)
            y (ndarray): Targets of shape (n_samples, d_out)
            epochs (int): Number of passes over the data
            batch_size (int): Size of minibatches
            optimizer (SGDOptimizer, optional): Defaults to SGDOptimizer()
            random_state (int, optional): Seed for shuffling

        Returns:
            self
        """
        x = np.asarray(x, dtype=float)
        y = np.asarray(y, dtype=float)
        if y.ndim == 1:
            y = y.reshape(-1, 1)
        if x.shape[0] != y.shape[0]:
            raise ValueError("x and y must have the same number of samples")
        if x.shape[0] == 0:
            raise ValueError("Cannot fit on an empty dataset")
        if batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {batch_size}")
        if optimizer is None:
            optimizer = SGDOptimizer()

        rng = np.random.default_rng(random_state)
        n_samples = x.shape[0]
        if self.verbose:
            print(f"Number of epochs: {epochs}, Batch size: {batch_size}")

        for epoch in range(epochs):
            indices = rng.permutation(n_samples)
            x_shuffled = x[indices]
            y_shuffled = y[indices]

            batch_losses = []
            for start, stop in _batch_bounds(n_samples, batch_size):
                batch_x = x_shuffled[start:stop]
                batch_y = y_shuffled[start:stop]
                batch_losses.append(self.train_step(batch_x, batch_y, optimizer))

            epoch_loss = float(np.mean(batch_losses))
            self.loss_curve_.append(epoch_loss)
            if self.verbose:
                print(f"Epoch {epoch + 1}/{epochs}, Loss: {epoch_loss:.6f}")

        return self

    def predict(self, x):
        """
        Prediction: forward pass without backward or update.

        This is the plain forward pass, so batch normalization layers still
        see a multi-row x as a training batch: they standardize it with its
        own statistics and fold those into their running estimates. Predict
        one row at a time to use the running estimates only.
        """
        return self.forward(x)

    def __repr__(self):
        inner = ", ".join(repr(layer) for layer in self.layers)
        return f"Network([{inner}])"
