import unittest

import numpy as np

from lazynn.domain._errors import ContractViolationError, ShapeMismatchError
from lazynn.domain._tensor import IExpression, ITensor
from lazynn.domain.device._device import Device
from lazynn.infrastructure.evaluate._evaluate import evaluate
from lazynn.infrastructure.operators import Operator
from lazynn.infrastructure.tensor._tensor import Tensor


def _tensor_from_numpy(arr) -> Tensor:
    return Tensor.from_numpy(np.asarray(arr, dtype=np.float32))


class TestTensorConstruction(unittest.TestCase):
    def test_zero_initialized(self):
        t = Tensor((2, 3))
        self.assertEqual(t.shape, (2, 3))
        self.assertEqual(t.device, Device("cpu"))
        np.testing.assert_array_equal(t.to_numpy(), np.zeros((2, 3)))
        self.assertEqual(t.to_numpy().dtype, np.float32)

    def test_from_numpy_copies(self):
        src = np.array([1.0, 2.0], dtype=np.float32)
        t = Tensor.from_numpy(src)
        src[0] = 9.0
        self.assertEqual(t[0], 1.0)

    def test_full_and_device_string(self):
        t = Tensor.full((2,), 1.5, "cuda:0")
        self.assertEqual(t.device, Device("cuda:0"))
        np.testing.assert_array_equal(t.to_numpy(), [1.5, 1.5])

    def test_satisfies_protocols(self):
        t = Tensor((1,))
        self.assertIsInstance(t, ITensor)
        self.assertIsInstance(t, IExpression)


class TestTensorMutability(unittest.TestCase):
    def test_writable_until_registered(self):
        t = Tensor((2, 2))
        t.set_value((0, 1), 4.0)
        t.fill(1.0)
        t.copy_from_numpy(np.eye(2))
        self.assertFalse(t.is_frozen)
        self.assertEqual(t[0, 0], 1.0)
        self.assertEqual(t[0, 1], 0.0)

        t.eval_register()
        self.assertTrue(t.is_frozen)
        with self.assertRaises(ContractViolationError):
            t.set_value((0, 0), 2.0)
        with self.assertRaises(ContractViolationError):
            t.fill(0.0)
        with self.assertRaises(ContractViolationError):
            t.copy_from_numpy(np.zeros((2, 2)))

    def test_copy_from_numpy_shape_mismatch(self):
        t = Tensor((2, 2))
        with self.assertRaises(ShapeMismatchError):
            t.copy_from_numpy(np.zeros((3,)))

    def test_to_numpy_is_read_only_view(self):
        t = _tensor_from_numpy([1.0, 2.0])
        view = t.to_numpy()
        with self.assertRaises(ValueError):
            view[0] = 5.0

    def test_evaluation_results_are_frozen_and_shared(self):
        x = _tensor_from_numpy([1.0, 2.0])
        y = evaluate(-x)
        self.assertTrue(y.is_frozen)
        self.assertTrue(x.is_frozen)
        self.assertIs(evaluate(y), y)


class TestTensorArithmetic(unittest.TestCase):
    def test_operators_build_lazy_nodes(self):
        a = _tensor_from_numpy([1.0, 2.0])
        b = _tensor_from_numpy([3.0, 5.0])
        for expr in (a + b, a - b, a * b, a / b, -a, abs(a), 1 + a, 1 - a, 2 * a, 1 / a):
            with self.subTest(expr=expr):
                self.assertIsInstance(expr, Operator)
                self.assertEqual(expr.shape, (2,))
        # Building never freezes operands.
        self.assertFalse(a.is_frozen)

    def test_operator_results(self):
        a = _tensor_from_numpy([1.0, -2.0])
        b = _tensor_from_numpy([4.0, 8.0])
        cases = [
            (a + b, [5.0, 6.0]),
            (a - b, [-3.0, -10.0]),
            (a * b, [4.0, -16.0]),
            (a / b, [0.25, -0.25]),
            (-a, [-1.0, 2.0]),
            (abs(a), [1.0, 2.0]),
            (a + 1, [2.0, -1.0]),
            (1 - a, [0.0, 3.0]),
            (a - 1, [0.0, -3.0]),
            (3 * a, [3.0, -6.0]),
            (b / 2, [2.0, 4.0]),
            (8 / b, [2.0, 1.0]),
        ]
        for expr, expected in cases:
            with self.subTest(expr=expr):
                np.testing.assert_allclose(evaluate(expr).to_numpy(), expected, rtol=1e-6)

    def test_broadcasting_operands(self):
        a = _tensor_from_numpy([[1.0, 2.0, 3.0], [4.0, 5.0, 6.0]])
        row = _tensor_from_numpy([10.0, 20.0, 30.0])
        out = evaluate(a + row)
        np.testing.assert_allclose(out.to_numpy(), a.to_numpy() + row.to_numpy())

    def test_incompatible_shapes_raise_at_build_time(self):
        a = _tensor_from_numpy([[1.0, 2.0]])
        b = _tensor_from_numpy([1.0, 2.0, 3.0])
        with self.assertRaises(ShapeMismatchError):
            a * b

    def test_non_expression_operand_raises_type_error(self):
        a = _tensor_from_numpy([1.0])
        with self.assertRaises(TypeError):
            a + "x"


if __name__ == "__main__":
    unittest.main()
