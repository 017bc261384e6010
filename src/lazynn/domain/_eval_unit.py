"""
Evaluation unit interface.

An evaluation unit is one concrete computation step bound to its input
handles and its single output handle. Units are created when an expression is
registered with an evaluation plan and executed at most once, after all of
their dependencies have been evaluated.

Concrete units implement `eval`, which must:

1. read its inputs (all already evaluated),
2. allocate its output handle,
3. write the result into the allocated storage,
4. mark the output handle evaluated.
"""

from abc import ABC, abstractmethod

from .device._device import Device


class BaseEvalUnit(ABC):
    """
    Abstract base class for evaluation units.

    Parameters
    ----------
    device : Device
        Device whose storage this unit reads and writes. A unit never touches
        storage on another device.
    """

    def __init__(self, device: Device) -> None:
        self._device = device

    @property
    def device(self) -> Device:
        """Device this unit executes on."""
        return self._device

    @abstractmethod
    def eval(self) -> None:
        """
        Run the computation and transition the output handle to evaluated.

        Raises
        ------
        ShapeMismatchError
            If the inputs violate the unit's shape contract at execution time.
        DeviceNotSupportedError
            If no kernel is available for the unit's device.
        """
        ...
