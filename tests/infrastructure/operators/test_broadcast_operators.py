import unittest

import numpy as np

from lazynn.domain._errors import DeviceNotSupportedError, ShapeMismatchError
from lazynn.domain.device._device import Device
from lazynn.infrastructure.evaluate._eval_plan import EvalPlan
from lazynn.infrastructure.evaluate._evaluate import evaluate
from lazynn.infrastructure.operators import collapse, duplicate, interpolate
from lazynn.infrastructure.tensor._tensor import Tensor


def _tensor_from_numpy(arr, device=None) -> Tensor:
    return Tensor.from_numpy(np.asarray(arr, dtype=np.float32), device)


def _np(expr) -> np.ndarray:
    return evaluate(expr).to_numpy()


class TestDuplicate(unittest.TestCase):
    def test_same_shape_returns_operand(self):
        x = _tensor_from_numpy([1.0, 2.0])
        self.assertIs(duplicate(x, (2,)), x)

    def test_promotes_by_repetition(self):
        x = _tensor_from_numpy([1.0, 2.0, 3.0])
        d = duplicate(x, (2, 3))
        self.assertEqual(d.shape, (2, 3))
        np.testing.assert_array_equal(_np(d), [[1, 2, 3], [1, 2, 3]])

    def test_promotes_size_one_axis(self):
        x = _tensor_from_numpy([[1.0], [2.0]])
        np.testing.assert_array_equal(_np(duplicate(x, (2, 3))), [[1, 1, 1], [2, 2, 2]])

    def test_scalar_shape(self):
        x = _tensor_from_numpy(4.0)
        np.testing.assert_array_equal(_np(duplicate(x, (2, 2))), np.full((2, 2), 4.0))

    def test_incompatible_target_raises(self):
        x = _tensor_from_numpy([1.0, 2.0])
        with self.assertRaises(ShapeMismatchError):
            duplicate(x, (2, 3))


class TestCollapse(unittest.TestCase):
    def test_same_shape_returns_operand(self):
        g = _tensor_from_numpy([1.0, 2.0])
        self.assertIs(collapse(g, (2,)), g)

    def test_sums_leading_axes(self):
        g = _tensor_from_numpy(np.arange(6).reshape(2, 3))
        c = collapse(g, (3,))
        self.assertEqual(c.shape, (3,))
        np.testing.assert_array_equal(_np(c), [3, 5, 7])

    def test_sums_size_one_axes(self):
        g = _tensor_from_numpy(np.arange(6).reshape(2, 3))
        np.testing.assert_array_equal(_np(collapse(g, (2, 1))), [[3], [12]])
        np.testing.assert_array_equal(_np(collapse(g, ())), 15)

    def test_incompatible_target_raises(self):
        g = _tensor_from_numpy(np.zeros((2, 3)))
        with self.assertRaises(ShapeMismatchError):
            collapse(g, (2,))

    def test_collapse_undoes_duplicate_up_to_repetition_count(self):
        x = _tensor_from_numpy([1.0, 2.0])
        c = collapse(duplicate(x, (4, 2)), (2,))
        np.testing.assert_array_equal(_np(c), [4.0, 8.0])


class TestInterpolate(unittest.TestCase):
    def test_same_shapes(self):
        v1 = _tensor_from_numpy([1.0, 2.0])
        v2 = _tensor_from_numpy([3.0, 6.0])
        lam = _tensor_from_numpy([0.25, 0.5])
        np.testing.assert_allclose(_np(interpolate(v1, v2, lam)), [2.5, 4.0], rtol=1e-6)

    def test_broadcast_lambda(self):
        rng = np.random.default_rng(0)
        v1_np = rng.standard_normal((3, 4)).astype(np.float32)
        v2_np = rng.standard_normal((4,)).astype(np.float32)
        lam_np = np.float32(0.3)

        y = interpolate(
            _tensor_from_numpy(v1_np), _tensor_from_numpy(v2_np), _tensor_from_numpy(lam_np)
        )
        self.assertEqual(y.shape, (3, 4))
        np.testing.assert_allclose(
            _np(y), lam_np * v1_np + (1 - lam_np) * v2_np, rtol=1e-5, atol=1e-6
        )

    def test_incompatible_shapes_raise(self):
        with self.assertRaises(ShapeMismatchError):
            interpolate(
                _tensor_from_numpy(np.zeros((2, 3))),
                _tensor_from_numpy(np.zeros((3, 2))),
                _tensor_from_numpy(0.5),
            )


class TestUnsupportedDevice(unittest.TestCase):
    def tearDown(self):
        EvalPlan.for_device(Device("cuda:0")).clear()

    def test_cuda_kernels_raise(self):
        x = _tensor_from_numpy([1.0, 2.0], Device("cuda:0"))
        for expr in (duplicate(x, (2, 2)), collapse(duplicate(x, (2, 2)), (2,)), -x):
            with self.subTest(expr=expr):
                with self.assertRaises(DeviceNotSupportedError) as ctx:
                    evaluate(expr)
                self.assertEqual(ctx.exception.device, "cuda:0")


if __name__ == "__main__":
    unittest.main()
