"""Typed views over host objects (chains, devices, parameters)."""

from .chain import Chain, ChainMixerDevice, DrumChain
from .device import Device, DeviceParameter
from .entity import Entity

__all__ = ["Chain", "ChainMixerDevice", "Device", "DeviceParameter", "DrumChain", "Entity"]
