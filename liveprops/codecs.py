from __future__ import annotations
from typing import Any, Dict, List, Protocol as TypingProtocol

import json

import msgpack

class Codec(TypingProtocol):
    name: str
    def dumps(self, obj: Any) -> bytes: ...
    def loads(self, data: bytes) -> Any: ...

class JSONCodec:
    """Compact UTF-8 JSON. NaN/Infinity are refused: the host cannot parse them."""
    name = "json"
    def dumps(self, obj: Any) -> bytes:
        return json.dumps(obj, separators=(",", ":"), allow_nan=False).encode("utf-8")
    def loads(self, data: bytes) -> Any:
        return json.loads(data.decode("utf-8"))

class MsgPackCodec:
    """msgpack with str/bytes kept apart; floats stay 64-bit on the wire."""
    name = "msgpack"
    def dumps(self, obj: Any) -> bytes:
        return msgpack.packb(obj, use_bin_type=True, use_single_float=False)
    def loads(self, data: bytes) -> Any:
        # strict_map_key=False: the host may key mappings by integer id
        return msgpack.unpackb(data, raw=False, strict_map_key=False)

class Codecs:
    _registry: Dict[str, Codec] = {
        JSONCodec.name: JSONCodec(),
        MsgPackCodec.name: MsgPackCodec(),
    }

    @classmethod
    def get(cls, name: str) -> Codec:
        if name not in cls._registry:
            raise ValueError(f"Unknown codec: {name}")
        return cls._registry[name]

    @classmethod
    def names(cls) -> List[str]:
        return sorted(cls._registry)
