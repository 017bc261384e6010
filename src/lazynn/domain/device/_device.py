"""
Device abstraction utilities.

This module defines lightweight abstractions for representing where tensor
storage lives:

- `DeviceType`: an enumeration of device kinds
- `Device`: a concrete device descriptor that validates and normalizes
  user-facing device strings such as "cpu" or "cuda:0"

Only the CPU kind has an execution contract. CUDA descriptors are accepted so
that graphs can be tagged with them, but every kernel dispatched to them raises
`DeviceNotSupportedError`.
"""

from enum import Enum
from typing import Union
import re


class DeviceType(Enum):
    """
    Enumeration of device kinds.

    Evaluation plans are scoped per kind: all CUDA indices share one plan.

    Attributes
    ----------
    CPU : DeviceType
        Central Processing Unit.
    CUDA : DeviceType
        Placeholder for CUDA GPUs.
    """

    CPU = "cpu"
    CUDA = "cuda"


class Device:
    """
    Concrete device descriptor.

    Parameters
    ----------
    device : str
        Device identifier string. Must be either:
        - "cpu"
        - "cuda:<index>", where <index> is a non-negative integer

    Raises
    ------
    ValueError
        If the provided device string does not match the supported formats.

    Notes
    -----
    `__slots__` is used to prevent dynamic attribute creation; instances are
    hashable and compare by (type, index) so they can key dispatch tables.
    """

    __slots__ = ("type", "index")

    _CUDA_PATTERN = re.compile(r"^cuda:(\d+)$")

    def __init__(self, device: str = "cpu"):
        if device == "cpu":
            self.type = DeviceType.CPU
            self.index = None
        else:
            m = self._CUDA_PATTERN.match(device)
            if not m:
                raise ValueError(
                    f"Invalid device '{device}'. Expected 'cpu' or 'cuda:<index>'"
                )
            self.type = DeviceType.CUDA
            self.index = int(m.group(1))

    @classmethod
    def coerce(cls, device: Union["Device", str, None]) -> "Device":
        """
        Normalize a device argument.

        Parameters
        ----------
        device : Device | str | None
            An existing descriptor, a device string, or None for the CPU.

        Returns
        -------
        Device
            The normalized descriptor.
        """
        if device is None:
            return cls("cpu")
        if isinstance(device, Device):
            return device
        return cls(str(device))

    def __str__(self) -> str:
        return "cpu" if self.type is DeviceType.CPU else f"cuda:{self.index}"

    def __repr__(self) -> str:
        return f"Device('{self}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Device):
            return NotImplemented
        return (self.type, self.index) == (other.type, other.index)

    def __hash__(self) -> int:
        return hash((self.type, self.index))

    def is_cpu(self) -> bool:
        """Return True if this descriptor is the CPU."""
        return self.type is DeviceType.CPU

    def is_cuda(self) -> bool:
        """Return True if this descriptor is a CUDA device."""
        return self.type is DeviceType.CUDA
