"""
Control-path manager for device-specific evaluation kernels.

Evaluation units declare a device-agnostic ``eval`` method and register one
implementation per device with this manager:

    @unit_control_path_manager(MyUnit, MyUnit.eval, Device("cpu"), unsupported_device)
    def my_unit_eval_cpu(self): ...

Calling ``unit.eval()`` then dispatches on ``unit.device``. Devices without a
registered path raise `DeviceNotSupportedError` through `unsupported_device`.
"""

from typing import Any, Callable

from ...domain._errors import DeviceNotSupportedError
from ...domain.utils._control_path import create_path_builder

unit_control_path_manager = create_path_builder("device")


def unsupported_device(method: Callable, device: Any) -> Exception:
    """Build the error raised for a kernel missing on `device`."""
    return DeviceNotSupportedError(method.__qualname__, str(device))
