import unittest

import numpy as np

from lazynn.domain._errors import ContractViolationError, UndefinedValueError
from lazynn.domain.device._device import Device
from lazynn.infrastructure.evaluate._eval_handle import (
    EvalHandle,
    HandleState,
    next_identity,
)
from lazynn.infrastructure.tensor._tensor import Tensor


def _cpu() -> Device:
    return Device("cpu")


class TestEvalHandleStateMachine(unittest.TestCase):
    def setUp(self):
        self.h = EvalHandle(next_identity(), _cpu())

    def test_starts_unallocated(self):
        self.assertIs(self.h.state, HandleState.UNALLOCATED)
        self.assertFalse(self.h.is_evaluated)

    def test_full_lifecycle(self):
        self.h.allocate((2, 2))
        self.assertIs(self.h.state, HandleState.ALLOCATED)

        buf = self.h.mutable_data()
        self.assertEqual(buf.shape, (2, 2))
        self.assertEqual(buf.dtype, np.float32)
        buf[...] = 3.0

        self.h.set_eval()
        self.assertIs(self.h.state, HandleState.EVALUATED)

        value = self.h.data()
        self.assertIsInstance(value, Tensor)
        self.assertTrue(value.is_frozen)
        np.testing.assert_array_equal(value.to_numpy(), np.full((2, 2), 3.0))

    def test_data_before_evaluated_raises(self):
        with self.assertRaises(UndefinedValueError):
            self.h.data()
        self.h.allocate((1,))
        with self.assertRaises(UndefinedValueError):
            self.h.data()

    def test_mutable_data_before_allocate_raises(self):
        with self.assertRaises(UndefinedValueError):
            self.h.mutable_data()

    def test_set_eval_before_allocate_raises(self):
        with self.assertRaises(UndefinedValueError):
            self.h.set_eval()

    def test_second_set_eval_raises(self):
        self.h.allocate((1,))
        self.h.set_eval()
        with self.assertRaises(ContractViolationError):
            self.h.set_eval()

    def test_allocate_twice_raises(self):
        self.h.allocate((1,))
        with self.assertRaises(ContractViolationError):
            self.h.allocate((1,))

    def test_mutable_data_after_eval_raises(self):
        self.h.allocate((1,))
        self.h.set_eval()
        with self.assertRaises(ContractViolationError):
            self.h.mutable_data()

    def test_of_tensor_is_already_evaluated(self):
        t = Tensor.from_numpy(np.array([1.0, 2.0]))
        h = EvalHandle.of_tensor(t)
        self.assertTrue(h.is_evaluated)
        self.assertIs(h.data(), t)
        self.assertEqual(h.identity, t.identity)


class TestIdentities(unittest.TestCase):
    def test_identities_are_unique_and_increasing(self):
        a, b = next_identity(), next_identity()
        self.assertLess(a, b)

    def test_tensors_get_distinct_identities(self):
        self.assertNotEqual(Tensor((1,)).identity, Tensor((1,)).identity)


if __name__ == "__main__":
    unittest.main()
