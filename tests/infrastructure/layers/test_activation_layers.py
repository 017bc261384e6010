import unittest

import numpy as np

from lazynn.domain._errors import ContractViolationError, ShapeMismatchError
from lazynn.infrastructure.evaluate._evaluate import evaluate
from lazynn.infrastructure.layers import (
    LAYER_INPUT,
    LAYER_OUTPUT,
    LayerIO,
    NegativeLayer,
    SigmoidLayer,
    TanhLayer,
)
from lazynn.infrastructure.operators import get_operator, register_operator
from lazynn.infrastructure.operators._elementwise import SIGMOID
from lazynn.infrastructure.tensor._tensor import Tensor


def _tensor_from_numpy(arr) -> Tensor:
    return Tensor.from_numpy(np.asarray(arr, dtype=np.float32))


def _np(expr) -> np.ndarray:
    return evaluate(expr).to_numpy()


def _forward(layer, x):
    return layer.feed_forward(LayerIO.of(input=x))[LAYER_OUTPUT]


def _backward(layer, g):
    return layer.feed_backward(layer.output_container({LAYER_OUTPUT: g}))


class TestTanhLayer(unittest.TestCase):
    def setUp(self):
        self.x_np = np.array([[-0.27], [-0.41]], dtype=np.float32)

    def test_inference_only_layer(self):
        layer = TanhLayer("root")
        self.assertFalse(layer.is_feedback_output)
        self.assertFalse(layer.is_update)
        layer.neutral_invariant()

        y = _np(_forward(layer, _tensor_from_numpy(self.x_np)))
        np.testing.assert_allclose(y, np.tanh(self.x_np), atol=1e-3)
        self.assertEqual(layer.buffered_count, 0)

        grads = layer.feed_backward(LayerIO.of())
        self.assertTrue(grads.is_empty)
        layer.neutral_invariant()

    def test_single_backward(self):
        layer = TanhLayer("root", feedback_output=True)
        self.assertTrue(layer.is_feedback_output)
        layer.neutral_invariant()

        y = _np(_forward(layer, _tensor_from_numpy(self.x_np)))
        np.testing.assert_allclose(y, [[-0.2636], [-0.3889]], atol=1e-3)
        np.testing.assert_allclose(y, np.tanh(self.x_np), atol=1e-4)

        g_np = np.array([[0.1], [0.3]], dtype=np.float32)
        fb = _np(_backward(layer, _tensor_from_numpy(g_np))[LAYER_INPUT])
        expected = g_np * (1 - np.tanh(self.x_np) ** 2)
        np.testing.assert_allclose(fb, expected, atol=1e-4)

        layer.neutral_invariant()

    def test_varying_shapes_unwind_in_reverse_order(self):
        layer = TanhLayer("root", feedback_output=True)
        rng = np.random.default_rng(7)
        inputs = []

        for rows in range(1, 10):
            x_np = rng.uniform(-1.0, 1.0, size=(rows, 3)).astype(np.float32)
            inputs.append(x_np)
            y = _np(_forward(layer, _tensor_from_numpy(x_np)))
            self.assertEqual(y.shape, (rows, 3))
            np.testing.assert_allclose(y, np.tanh(x_np), atol=1e-4)

        self.assertEqual(layer.buffered_count, 9)
        with self.assertRaises(ContractViolationError):
            layer.neutral_invariant()

        for rows in range(9, 0, -1):
            g_np = rng.uniform(-2.0, 2.0, size=(rows, 3)).astype(np.float32)
            fb = _np(_backward(layer, _tensor_from_numpy(g_np))[LAYER_INPUT])
            x_np = inputs.pop()
            self.assertEqual(fb.shape, x_np.shape)
            np.testing.assert_allclose(fb, g_np * (1 - np.tanh(x_np) ** 2), atol=1e-4)

        layer.neutral_invariant()

    def test_backward_gradient_shape_must_match_forward(self):
        layer = TanhLayer(feedback_output=True)
        _forward(layer, _tensor_from_numpy(np.zeros((2, 3))))
        with self.assertRaises(ShapeMismatchError):
            _backward(layer, _tensor_from_numpy(np.zeros((3, 2))))


class TestSigmoidLayer(unittest.TestCase):
    def test_forward_and_backward(self):
        layer = SigmoidLayer("root", feedback_output=True)
        x_np = np.array([[-1.0, 0.0, 2.5]], dtype=np.float32)
        g_np = np.array([[0.5, -1.0, 2.0]], dtype=np.float32)

        y = _np(_forward(layer, _tensor_from_numpy(x_np)))
        y_ref = 1.0 / (1.0 + np.exp(-x_np))
        np.testing.assert_allclose(y, y_ref, atol=1e-4)

        fb = _np(_backward(layer, _tensor_from_numpy(g_np))[LAYER_INPUT])
        np.testing.assert_allclose(fb, g_np * y_ref * (1 - y_ref), atol=1e-4)
        layer.neutral_invariant()

    def test_backward_without_forward_raises(self):
        layer = SigmoidLayer(feedback_output=True)
        with self.assertRaises(ContractViolationError):
            _backward(layer, _tensor_from_numpy([1.0]))

    def test_k_forwards_then_k_backwards(self):
        layer = SigmoidLayer(feedback_output=True)
        shapes = [(1,), (2, 2), (3,)]
        for s in shapes:
            _forward(layer, _tensor_from_numpy(np.zeros(s)))

        for s in reversed(shapes):
            fb = _backward(layer, _tensor_from_numpy(np.ones(s)))[LAYER_INPUT]
            self.assertEqual(fb.shape, s)
            np.testing.assert_allclose(_np(fb), np.full(s, 0.25), atol=1e-6)

        layer.neutral_invariant()
        with self.assertRaises(ContractViolationError):
            _backward(layer, _tensor_from_numpy([1.0]))

    def test_inference_only_layer_ignores_backward_history(self):
        layer = SigmoidLayer()
        for _ in range(3):
            _forward(layer, _tensor_from_numpy([1.0, 2.0]))
        self.assertEqual(layer.buffered_count, 0)
        self.assertTrue(_backward(layer, _tensor_from_numpy([1.0, 1.0])).is_empty)
        layer.neutral_invariant()

    def test_missing_input_key_raises(self):
        layer = SigmoidLayer()
        with self.assertRaises(ContractViolationError):
            layer.feed_forward(LayerIO.of(other=_tensor_from_numpy([1.0])))

    def test_missing_gradient_key_raises(self):
        layer = SigmoidLayer(feedback_output=True)
        _forward(layer, _tensor_from_numpy([1.0]))
        with self.assertRaises(ContractViolationError):
            layer.feed_backward(LayerIO.of())

    def test_accepts_lazy_inputs(self):
        layer = SigmoidLayer()
        x = _tensor_from_numpy([0.0, 1.0])
        y = layer(LayerIO.of(input=-x))[LAYER_OUTPUT]
        np.testing.assert_allclose(_np(y), 1.0 / (1.0 + np.exp([0.0, 1.0])), atol=1e-6)

    def test_update_is_not_supported(self):
        with self.assertRaises(ValueError):
            SigmoidLayer(update=True)


class TestNegativeLayer(unittest.TestCase):
    def test_forward_and_backward(self):
        layer = NegativeLayer(feedback_output=True)
        y = _forward(layer, _tensor_from_numpy([1.0, -2.0]))
        np.testing.assert_array_equal(_np(y), [-1.0, 2.0])

        fb = _backward(layer, _tensor_from_numpy([0.5, 3.0]))[LAYER_INPUT]
        np.testing.assert_array_equal(_np(fb), [-0.5, -3.0])
        layer.neutral_invariant()


class TestLongUnroll(unittest.TestCase):
    def test_two_thousand_steps_forced_at_the_end(self):
        steps = 2000
        layer = TanhLayer("cell", feedback_output=True)
        h0 = np.array([0.5, -0.25], dtype=np.float32)

        h = _tensor_from_numpy(h0)
        for _ in range(steps):
            h = _forward(layer, h)
        self.assertEqual(layer.buffered_count, steps)

        g = _tensor_from_numpy(np.ones(2))
        for _ in range(steps):
            g = _backward(layer, g)[LAYER_INPUT]
        layer.neutral_invariant()

        ys = []
        y = h0
        for _ in range(steps):
            y = np.tanh(y)
            ys.append(y)
        g_ref = np.ones(2, dtype=np.float32)
        for y in reversed(ys):
            g_ref = g_ref * (1 - y * y)

        # Only the gradient is forced; it pulls in the whole forward chain.
        np.testing.assert_allclose(_np(g), g_ref, rtol=1e-5)
        np.testing.assert_allclose(_np(h), ys[-1], rtol=1e-5)


class TestSigmoidOutputReuse(unittest.TestCase):
    def setUp(self):
        self.sigmoid_def = get_operator(SIGMOID)
        self.runs = []
        make_unit = self.sigmoid_def.unit_factory

        def counting_factory(input_handles, output_handle, device, **aux):
            unit = make_unit(input_handles, output_handle, device, **aux)
            run = unit.eval

            def counted():
                self.runs.append(output_handle.identity)
                run()

            unit.eval = counted
            return unit

        register_operator(SIGMOID, counting_factory, replace=True)

    def tearDown(self):
        register_operator(SIGMOID, self.sigmoid_def.unit_factory, replace=True)

    def test_backward_reads_the_memoized_forward_output(self):
        x_np = np.array([[-1.0, 0.0, 2.0]], dtype=np.float32)
        g_np = np.array([[0.5, 1.0, -1.0]], dtype=np.float32)
        layer = SigmoidLayer(feedback_output=True)

        y = _forward(layer, _tensor_from_numpy(x_np))
        y_val = _np(y)
        self.assertEqual(self.runs, [y.identity])

        dx = _backward(layer, _tensor_from_numpy(g_np))[LAYER_INPUT]
        np.testing.assert_allclose(_np(dx), g_np * y_val * (1 - y_val), atol=1e-6)
        self.assertEqual(self.runs, [y.identity])
        layer.neutral_invariant()


if __name__ == "__main__":
    unittest.main()
