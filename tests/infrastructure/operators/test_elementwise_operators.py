import unittest

import numpy as np

from lazynn.domain._errors import ShapeMismatchError
from lazynn.infrastructure.evaluate._evaluate import evaluate
from lazynn.infrastructure.operators import (
    Operator,
    absolute,
    exp,
    get_operator,
    make_operator,
    negative,
    register_operator,
    sigmoid,
    sigmoid_grad,
    tanh,
    tanh_grad,
)
from lazynn.infrastructure.operators._eval_units import ElementwiseEvalUnit
from lazynn.infrastructure.tensor._tensor import Tensor


def _tensor_from_numpy(arr) -> Tensor:
    return Tensor.from_numpy(np.asarray(arr, dtype=np.float32))


def _np(expr) -> np.ndarray:
    return evaluate(expr).to_numpy()


def _sigmoid_np(x):
    return 1.0 / (1.0 + np.exp(-x))


class TestUnaryOperators(unittest.TestCase):
    def setUp(self):
        self.x_np = np.array([[-1.5, 0.0], [0.3, 2.0]], dtype=np.float32)
        self.x = _tensor_from_numpy(self.x_np)

    def test_sigmoid(self):
        np.testing.assert_allclose(_np(sigmoid(self.x)), _sigmoid_np(self.x_np), atol=1e-4)

    def test_tanh(self):
        np.testing.assert_allclose(_np(tanh(self.x)), np.tanh(self.x_np), atol=1e-4)

    def test_negative_absolute_exp(self):
        np.testing.assert_array_equal(_np(negative(self.x)), -self.x_np)
        np.testing.assert_array_equal(_np(absolute(self.x)), np.abs(self.x_np))
        np.testing.assert_allclose(_np(exp(self.x)), np.exp(self.x_np), rtol=1e-5)

    def test_shape_is_known_without_computing(self):
        y = tanh(sigmoid(self.x))
        self.assertEqual(y.shape, (2, 2))
        self.assertFalse(y.eval_register().is_evaluated)
        evaluate(y)
        self.assertTrue(y.eval_register().is_evaluated)


class TestGradientHelpers(unittest.TestCase):
    def test_sigmoid_grad_uses_output(self):
        y_np = np.array([0.2, 0.5, 0.9], dtype=np.float32)
        g_np = np.array([1.0, -2.0, 0.5], dtype=np.float32)
        out = _np(sigmoid_grad(_tensor_from_numpy(g_np), _tensor_from_numpy(y_np)))
        np.testing.assert_allclose(out, g_np * y_np * (1 - y_np), atol=1e-6)

    def test_tanh_grad_uses_output(self):
        y_np = np.array([-0.2636, -0.3889], dtype=np.float32)
        g_np = np.array([0.1, 0.3], dtype=np.float32)
        out = _np(tanh_grad(_tensor_from_numpy(g_np), _tensor_from_numpy(y_np)))
        np.testing.assert_allclose(out, g_np * (1 - y_np**2), atol=1e-6)

    def test_gradient_helpers_require_equal_shapes(self):
        g = _tensor_from_numpy(np.ones((2, 3)))
        y = _tensor_from_numpy(np.ones((3,)))
        with self.assertRaises(ShapeMismatchError) as ctx:
            sigmoid_grad(g, y)
        self.assertIn("SigmoidGrad", str(ctx.exception))
        with self.assertRaises(ShapeMismatchError):
            tanh_grad(g, y)


class TestOperatorTable(unittest.TestCase):
    def test_builtin_tags_are_registered(self):
        for tag in ("negative", "sigmoid", "sigmoid_grad", "duplicate", "collapse", "interpolate"):
            with self.subTest(tag=tag):
                self.assertEqual(get_operator(tag).tag, tag)

    def test_unknown_tag(self):
        with self.assertRaises(ValueError):
            get_operator("no_such_operator")
        with self.assertRaises(ValueError):
            make_operator("no_such_operator", [Tensor((1,))], (1,))

    def test_duplicate_registration_is_rejected(self):
        with self.assertRaises(ValueError):
            register_operator("sigmoid", ElementwiseEvalUnit)

    def test_custom_elementwise_operator(self):
        from functools import partial

        register_operator(
            "test_square", partial(ElementwiseEvalUnit, kernel=np.square), replace=True
        )
        x = _tensor_from_numpy([1.0, -3.0])
        op = make_operator("test_square", [x], x.shape)

        self.assertIsInstance(op, Operator)
        self.assertEqual(op.tag, "test_square")
        self.assertEqual(op.operands, (x,))
        np.testing.assert_array_equal(_np(op), [1.0, 9.0])

    def test_scalar_is_an_auxiliary_parameter(self):
        x = _tensor_from_numpy([1.0])
        op = x * 3.0
        self.assertEqual(op.tag, "mul_scalar")
        self.assertEqual(op.aux, {"scalar": 3.0})
        self.assertEqual(op.operands, (x,))

    def test_division_by_zero_scalar_matches_tensor_division(self):
        x = _tensor_from_numpy([1.0, -2.0])
        by_scalar = x / 0.0
        by_tensor = x / _tensor_from_numpy([0.0, 0.0])
        self.assertEqual(by_scalar.tag, "div_scalar")

        with np.errstate(divide="ignore"):
            np.testing.assert_array_equal(_np(by_scalar), [np.inf, -np.inf])
            np.testing.assert_array_equal(_np(by_tensor), [np.inf, -np.inf])

    def test_binary_promotion_inserts_duplicate(self):
        a = _tensor_from_numpy(np.ones((2, 3)))
        b = _tensor_from_numpy(np.ones((3,)))
        op = a + b
        self.assertEqual(op.shape, (2, 3))
        self.assertIs(op.operands[0], a)
        self.assertEqual(op.operands[1].tag, "duplicate")


if __name__ == "__main__":
    unittest.main()
