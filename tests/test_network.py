"""
Tests for the network driver, the layer factory and the SGD optimizer.
"""
import numpy as np
import pytest

from convlab.neural_networks import (
    BatchNormLayer,
    ConvolutionalLayer,
    MaxPoolLayer,
    Network,
    SGDOptimizer,
    get_optimizer,
    l2_loss,
    make_layer,
)


def _stack(rng):
    return [
        ConvolutionalLayer(4, 4, 1, 2, 3, 1, rng=rng),
        BatchNormLayer(2),
        MaxPoolLayer(4, 4, 2, 2, 2),
    ]


def test_l2_loss_and_gradient():
    y_pred = np.array([[1.0, 2.0], [3.0, 4.0]])
    y = np.array([[0.0, 2.0], [3.0, 2.0]])

    loss, grad = l2_loss(y_pred, y)

    assert loss == pytest.approx(0.5 * (1.0 + 4.0) / 2)
    np.testing.assert_allclose(grad, [[0.5, 0.0], [0.0, 1.0]])


def test_forward_backward_shapes():
    rng = np.random.default_rng(0)
    net = Network(_stack(rng))
    x = rng.normal(size=(5, 16))

    y = net.forward(x)
    assert y.shape == (5, 8)

    dx = net.backward(np.ones_like(y))
    assert dx.shape == x.shape


def test_backward_runs_in_reverse_order():
    calls = []

    class Recorder:
        def __init__(self, name):
            self.name = name

        def forward(self, x):
            calls.append(("forward", self.name))
            return x

        def backward(self, dy):
            calls.append(("backward", self.name))
            return dy

        def update(self, rate, momentum, decay):
            calls.append(("update", self.name))

    net = Network([Recorder("a"), Recorder("b")])
    net.forward(np.zeros((1, 1)))
    net.backward(np.zeros((1, 1)))
    net.update(0.1, 0.9, 0.0)

    assert calls == [("forward", "a"), ("forward", "b"),
                     ("backward", "b"), ("backward", "a"),
                     ("update", "a"), ("update", "b")]


def test_train_step_reduces_loss():
    rng = np.random.default_rng(1)
    net = Network([ConvolutionalLayer(4, 4, 1, 2, 3, 1, rng=rng),
                   MaxPoolLayer(4, 4, 2, 2, 2)])
    x = rng.normal(size=(6, 16))
    y = rng.normal(size=(6, 8))
    optimizer = SGDOptimizer(lr=0.005, momentum=0.5, decay=0.0)

    losses = [net.train_step(x, y, optimizer) for _ in range(60)]

    assert losses[-1] < losses[0]


def test_train_step_rejects_mismatched_targets():
    rng = np.random.default_rng(2)
    net = Network(_stack(rng))
    with pytest.raises(ValueError):
        net.train_step(rng.normal(size=(3, 16)), np.zeros((3, 7)), SGDOptimizer())


def test_fit_records_loss_curve(capsys):
    rng = np.random.default_rng(3)
    net = Network(_stack(rng), verbose=True)
    x = rng.normal(size=(10, 16))
    y = rng.normal(size=(10, 8))

    result = net.fit(x, y, epochs=2, batch_size=4, random_state=0,
                     optimizer=SGDOptimizer(lr=0.001, momentum=0.9, decay=0.0))

    assert result is net
    assert len(net.loss_curve_) == 2
    assert all(np.isfinite(net.loss_curve_))
    out = capsys.readouterr().out
    assert "Epoch 1/2" in out
    assert "Epoch 2/2" in out


def test_fit_rejects_mismatched_samples():
    rng = np.random.default_rng(4)
    net = Network(_stack(rng))
    with pytest.raises(ValueError):
        net.fit(np.zeros((4, 16)), np.zeros((3, 8)))


def test_optimizer_step_updates_every_layer():
    rng = np.random.default_rng(5)
    conv = ConvolutionalLayer(4, 4, 1, 2, 3, 1, rng=rng)
    conv._weight_grad[:] = 1.0
    weight = conv.weight_.copy()

    SGDOptimizer(lr=0.1, momentum=0.0, decay=0.0).step(Network([conv]))

    np.testing.assert_allclose(conv.weight_, weight - 0.1)
    assert not conv.weight_grad.any()


def test_get_optimizer():
    optimizer = get_optimizer('sgd', lr=0.05, momentum=0.8, decay=0.001)
    assert isinstance(optimizer, SGDOptimizer)
    assert optimizer.lr == 0.05
    with pytest.raises(ValueError):
        get_optimizer('adam')


@pytest.mark.parametrize("kwargs", [
    {"lr": -0.1}, {"momentum": -0.1}, {"decay": -1.0},
])
def test_optimizer_rejects_bad_hyperparameters(kwargs):
    with pytest.raises(ValueError):
        SGDOptimizer(**kwargs)


def test_zero_learning_rate_leaves_weights_unchanged():
    rng = np.random.default_rng(6)
    conv = ConvolutionalLayer(4, 4, 1, 2, 3, 1, rng=rng)
    conv._weight_grad[:] = 1.0
    weight = conv.weight_.copy()

    optimizer = SGDOptimizer(lr=0.0, momentum=1.0, decay=0.0)
    optimizer.step([conv])

    np.testing.assert_array_equal(conv.weight_, weight)
    np.testing.assert_array_equal(conv.weight_grad, 1.0)


def test_make_layer():
    layer = make_layer('maxpool', width=4, height=4, channels=1, size=2, stride=2)
    assert isinstance(layer, MaxPoolLayer)
    assert isinstance(make_layer('batchnorm', groups=3), BatchNormLayer)
    conv = make_layer('convolutional', width=3, height=3, channels=1,
                      filters=2, size=3)
    assert conv.stride == 1
    with pytest.raises(ValueError):
        make_layer('dense')


def test_fit_merges_trailing_single_row_batch():
    sizes = []

    class BatchSizeRecorder:
        def forward(self, x):
            sizes.append(x.shape[0])
            return x

        def backward(self, dy):
            return dy

        def update(self, rate, momentum, decay):
            pass

    net = Network([BatchSizeRecorder()])
    net.fit(np.zeros((9, 2)), np.zeros((9, 2)), epochs=1, batch_size=4)

    assert sizes == [4, 5]


def test_fit_with_batchnorm_and_ragged_batches_reduces_loss():
    rng = np.random.default_rng(8)
    net = Network(_stack(rng))
    x = rng.normal(size=(9, 16))
    y = rng.normal(size=(9, 8))

    net.fit(x, y, epochs=60, batch_size=4, random_state=0,
            optimizer=SGDOptimizer(lr=0.02, momentum=0.5, decay=0.0))

    assert all(np.isfinite(net.loss_curve_))
    assert np.mean(net.loss_curve_[-5:]) < np.mean(net.loss_curve_[:5])


def test_fit_rejects_empty_dataset():
    rng = np.random.default_rng(9)
    net = Network(_stack(rng))
    with pytest.raises(ValueError):
        net.fit(np.zeros((0, 16)), np.zeros((0, 8)))


def test_predict_updates_running_statistics_only_for_multi_row_batches():
    rng = np.random.default_rng(10)
    batchnorm = BatchNormLayer(2)
    net = Network([ConvolutionalLayer(4, 4, 1, 2, 3, 1, rng=rng), batchnorm])
    x = rng.normal(size=(3, 16))

    net.predict(x[:1])
    assert not batchnorm.running_mean_.any()

    net.predict(x)
    assert batchnorm.running_mean_.any()
