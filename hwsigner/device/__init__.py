"""Signing device implementations for hwsigner."""

from ..device.base import DeviceSigningPort
from ..device.software import SoftwareSigningDevice

__all__ = [
    "DeviceSigningPort",
    "SoftwareSigningDevice",
]
