"""
Materialized dense tensor.

`Tensor` is the leaf of every expression graph: a contiguous NumPy `float32`
buffer with a `Shape` and a `Device`.

Mutability
----------
A freshly constructed tensor is writable so callers can fill it
(`set_value`, `copy_from_numpy`, `fill`). The first time it takes part in an
evaluation (its `eval_register` is called) it is frozen: the backing array is
marked read-only and any later write raises `ContractViolationError`. Tensors
produced by evaluation units are frozen from the start.

Sharing
-------
Frozen tensors are shared by reference between every consumer; `to_numpy`
returns a read-only view, never a copy.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple, Union

import numpy as np

from ...domain._errors import ContractViolationError, ShapeMismatchError
from ...domain._shape import Shape
from ...domain.device._device import Device
from ..evaluate._eval_handle import DTYPE, EvalHandle, next_identity
from .mixins._arithmetic import ExpressionArithmeticMixin

DeviceArg = Union[Device, str, None]


class Tensor(ExpressionArithmeticMixin):
    """
    Dense tensor value.

    Parameters
    ----------
    shape : Iterable[int]
        Shape of the tensor. Storage is zero-initialized.
    device : Device | str | None, optional
        Storage device. Defaults to the CPU.
    """

    def __init__(self, shape, device: DeviceArg = None) -> None:
        self._shape = Shape(shape)
        self._device = Device.coerce(device)
        self._data = np.zeros(self._shape, dtype=DTYPE)
        self._identity = next_identity()
        self._handle: Optional[EvalHandle] = None

    @classmethod
    def from_numpy(cls, arr: Any, device: DeviceArg = None) -> "Tensor":
        """
        Build a writable tensor holding a copy of `arr`.

        Parameters
        ----------
        arr : array-like
            Source values; converted to `float32`.
        device : Device | str | None, optional
            Storage device.
        """
        src = np.asarray(arr, dtype=DTYPE)
        t = cls(src.shape, device)
        t._data[...] = src
        return t

    @classmethod
    def full(cls, shape, value: float, device: DeviceArg = None) -> "Tensor":
        """Build a writable tensor filled with `value`."""
        t = cls(shape, device)
        t._data.fill(value)
        return t

    @classmethod
    def _wrap(cls, arr: np.ndarray, device: Device) -> "Tensor":
        """Adopt `arr` without copying and freeze it (evaluation results)."""
        t = cls.__new__(cls)
        t._shape = Shape(arr.shape)
        t._device = device
        t._data = arr
        t._identity = next_identity()
        t._handle = None
        t.freeze()
        return t

    @property
    def identity(self) -> int:
        return self._identity

    @property
    def shape(self) -> Shape:
        return self._shape

    @property
    def device(self) -> Device:
        return self._device

    @property
    def is_frozen(self) -> bool:
        return not self._data.flags.writeable

    def freeze(self) -> None:
        """Make the tensor immutable. Idempotent."""
        self._data.flags.writeable = False

    def _check_writable(self) -> None:
        if self.is_frozen:
            raise ContractViolationError(
                "Tensor is immutable once it has been used in an evaluation."
            )

    def set_value(self, index: Union[int, Tuple[int, ...]], value: float) -> None:
        """Write a single element."""
        self._check_writable()
        self._data[index] = value

    def copy_from_numpy(self, arr: Any) -> None:
        """
        Overwrite every element from an array of the same shape.

        Raises
        ------
        ShapeMismatchError
            If the array shape differs from this tensor's shape.
        """
        self._check_writable()
        src = np.asarray(arr, dtype=DTYPE)
        if src.shape != self._shape:
            raise ShapeMismatchError(
                "copy_from_numpy shape mismatch", expected=self._shape, actual=src.shape
            )
        self._data[...] = src

    def fill(self, value: float) -> None:
        """Set every element to `value`."""
        self._check_writable()
        self._data.fill(value)

    def to_numpy(self) -> np.ndarray:
        """Return a read-only view of the storage."""
        view = self._data.view()
        view.flags.writeable = False
        return view

    def __getitem__(self, index) -> float:
        return float(self._data[index])

    def eval_register(self) -> EvalHandle:
        """
        Freeze this tensor and return its (already evaluated) handle.
        """
        if self._handle is None:
            self.freeze()
            self._handle = EvalHandle.of_tensor(self)
        return self._handle

    def __repr__(self) -> str:
        return f"Tensor(shape={tuple(self._shape)}, device={self._device})"
