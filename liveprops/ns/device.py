from __future__ import annotations
from typing import List

from .entity import Entity


class DeviceParameter(Entity):
    """A single automatable parameter (volume, panning, a send, a device knob)."""
    gettable = ("value", "name", "min", "max", "is_enabled", "is_quantized", "value_items")
    settable = ("value",)
    observable = ("value",)
    raw_fields = ("id", "value")


class Device(Entity):
    gettable = ("name", "class_name", "class_display_name", "can_have_chains",
                "can_have_drum_pads")
    settable = ("name",)
    observable = ("name", "parameters")
    raw_fields = ("id", "type")

    def get_parameters(self) -> List[DeviceParameter]:
        data = self.client.get_prop(self.path / "parameters")
        return [DeviceParameter(self.client, raw, self.path.child("parameters", i))
                for i, raw in enumerate(data or [])]
