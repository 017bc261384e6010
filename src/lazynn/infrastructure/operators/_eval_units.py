"""
Concrete evaluation units and their CPU kernels.

Three unit families cover every built-in operator:

- `ElementwiseEvalUnit`: n-ary elementwise map over inputs of identical shape
  (negate, sigmoid, sigmoid-gradient, tanh, arithmetic, interpolate, ...).
- `DuplicateEvalUnit`: broadcast (promote) one input to a wider shape.
- `CollapseEvalUnit`: sum a broadcast input back to a narrower shape.

Each family declares a device-agnostic ``eval`` and registers a CPU
implementation with `unit_control_path_manager`. CPU kernels follow the same
pattern: read the evaluated inputs, allocate the output handle, write the
result through ``mutable_data()``, then call ``set_eval()``.
"""

from __future__ import annotations

from typing import Any, Callable, Sequence

import numpy as np

from ...domain._eval_unit import BaseEvalUnit
from ...domain._errors import ShapeMismatchError
from ...domain._shape import Shape
from ...domain.device._device import Device
from ..evaluate._eval_handle import EvalHandle
from ..evaluate._eval_unit_builder import unit_control_path_manager, unsupported_device

Kernel = Callable[..., np.ndarray]


class ElementwiseEvalUnit(BaseEvalUnit):
    """
    Elementwise map over same-shaped inputs.

    Parameters
    ----------
    input_handles : Sequence[EvalHandle]
        Operand handles; all must hold values of one shape.
    output_handle : EvalHandle
        Handle receiving the result (same shape as the inputs).
    device : Device
        Execution device.
    kernel : Callable[..., np.ndarray]
        ``kernel(*arrays, **aux)`` computing the output array.
    **aux
        Extra keyword arguments for `kernel` (e.g. ``scalar``).
    """

    def __init__(
        self,
        input_handles: Sequence[EvalHandle],
        output_handle: EvalHandle,
        device: Device,
        *,
        kernel: Kernel,
        **aux: Any,
    ) -> None:
        super().__init__(device)
        self._inputs = tuple(input_handles)
        self._output = output_handle
        self._kernel = kernel
        self._aux = aux

    def eval(self) -> None:
        raise NotImplementedError


@unit_control_path_manager(
    ElementwiseEvalUnit, ElementwiseEvalUnit.eval, Device("cpu"), unsupported_device
)
def elementwise_eval_cpu(self: ElementwiseEvalUnit) -> None:
    arrays = [h.data().to_numpy() for h in self._inputs]
    shape = arrays[0].shape
    for arr in arrays[1:]:
        if arr.shape != shape:
            raise ShapeMismatchError(
                "Elementwise operands disagree at execution time",
                expected=shape,
                actual=arr.shape,
            )

    self._output.allocate(shape)
    out = self._output.mutable_data()
    out[...] = self._kernel(*arrays, **self._aux)
    self._output.set_eval()


class DuplicateEvalUnit(BaseEvalUnit):
    """
    Broadcast one input to `target_shape` by repetition.
    """

    def __init__(
        self,
        input_handles: Sequence[EvalHandle],
        output_handle: EvalHandle,
        device: Device,
        *,
        target_shape,
    ) -> None:
        super().__init__(device)
        (self._input,) = input_handles
        self._output = output_handle
        self._target = Shape(target_shape)

    def eval(self) -> None:
        raise NotImplementedError


@unit_control_path_manager(
    DuplicateEvalUnit, DuplicateEvalUnit.eval, Device("cpu"), unsupported_device
)
def duplicate_eval_cpu(self: DuplicateEvalUnit) -> None:
    src = self._input.data()
    if not src.shape.can_promote_to(self._target):
        raise ShapeMismatchError(
            "Cannot duplicate operand to target shape",
            expected=self._target,
            actual=src.shape,
        )

    self._output.allocate(self._target)
    out = self._output.mutable_data()
    out[...] = np.broadcast_to(src.to_numpy(), self._target)
    self._output.set_eval()


class CollapseEvalUnit(BaseEvalUnit):
    """
    Sum one input over its broadcast axes down to `target_shape`.
    """

    def __init__(
        self,
        input_handles: Sequence[EvalHandle],
        output_handle: EvalHandle,
        device: Device,
        *,
        target_shape,
    ) -> None:
        super().__init__(device)
        (self._input,) = input_handles
        self._output = output_handle
        self._target = Shape(target_shape)

    def eval(self) -> None:
        raise NotImplementedError


@unit_control_path_manager(
    CollapseEvalUnit, CollapseEvalUnit.eval, Device("cpu"), unsupported_device
)
def collapse_eval_cpu(self: CollapseEvalUnit) -> None:
    src = self._input.data()
    reduce_axes, _ = src.shape.collapse_axes(self._target)

    arr = src.to_numpy()
    if reduce_axes:
        arr = arr.sum(axis=reduce_axes, keepdims=True)

    self._output.allocate(self._target)
    out = self._output.mutable_data()
    out[...] = arr.reshape(self._target)
    self._output.set_eval()
