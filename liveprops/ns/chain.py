from __future__ import annotations
from typing import Any, List, Optional

from ..errors import ProtocolError
from .device import Device, DeviceParameter
from .entity import Entity


class ChainMixerDevice(Entity):
    """Volume, panning, sends and activator of a rack chain."""
    gettable = ("canonical_parent",)
    observable = ("canonical_parent", "chain_activator", "panning", "sends", "volume")
    raw_fields = ("id", "canonical_parent", "chain_activator", "panning", "sends", "volume")

    def _parameter(self, prop: str) -> DeviceParameter:
        data = self.client.get_prop(self.path / prop)
        return DeviceParameter(self.client, data, self.path / prop)

    def get_chain_activator(self) -> DeviceParameter:
        return self._parameter("chain_activator")

    def get_panning(self) -> DeviceParameter:
        return self._parameter("panning")

    def get_volume(self) -> DeviceParameter:
        return self._parameter("volume")

    def get_sends(self) -> List[DeviceParameter]:
        data = self.client.get_prop(self.path / "sends")
        return [DeviceParameter(self.client, raw, self.path.child("sends", i))
                for i, raw in enumerate(data or [])]

    def get_send(self, index: int) -> Optional[DeviceParameter]:
        path = self.path.child("sends", index)
        try:
            data = self.client.get_prop(path)
        except ProtocolError:
            return None
        return DeviceParameter(self.client, data, path)


class Chain(Entity):
    """A chain inside an Instrument, Drum or Audio Effect Rack."""
    gettable = ("name", "color", "color_index", "is_auto_colored", "mute", "solo")
    settable = ("name", "color", "color_index", "is_auto_colored", "mute", "solo")
    observable = ("name", "color", "color_index", "is_auto_colored", "mute", "solo", "devices")
    raw_fields = ("id", "name", "color", "color_index", "is_auto_colored", "mute", "solo",
                  "devices", "mixer_device")

    def get_devices(self) -> List[Device]:
        data = self.client.get_prop(self.path / "devices")
        return [Device(self.client, raw, self.path.child("devices", i))
                for i, raw in enumerate(data or [])]

    def get_device(self, index: int) -> Optional[Device]:
        path = self.path.child("devices", index)
        try:
            data = self.client.get_prop(path)
        except ProtocolError:
            return None
        return Device(self.client, data, path)

    def get_mixer_device(self) -> ChainMixerDevice:
        data = self.client.get_prop(self.path / "mixer_device")
        return ChainMixerDevice(self.client, data, self.path / "mixer_device")

    def delete_device(self, index: int) -> Any:
        return self.client.call(self.path, "delete_device", index)


class DrumChain(Chain):
    """Chain of a Drum Rack; adds choke group and pad behaviour."""
    gettable = Chain.gettable + ("choke_group", "out_of_key", "auto_select_on_receive")
    settable = Chain.settable + ("choke_group", "out_of_key", "auto_select_on_receive")
    observable = Chain.observable + ("choke_group", "out_of_key", "auto_select_on_receive")
    raw_fields = Chain.raw_fields + ("choke_group", "out_of_key", "auto_select_on_receive")
