from __future__ import annotations
from typing import Any, Union

from .address import Address
from .codecs import Codec, JSONCodec
from .errors import DecodeError
from .message import Event, Op, Reply, Request

# Frame layouts (any codec):
#   request: {"id", "op", "path", "args"}
#   reply:   {"id", "value"} | {"id", "error"}
#   event:   {"path", "payload"}            -- no "id"

_DEFAULT = JSONCodec()

def encode_request(req: Request, codec: Codec = _DEFAULT) -> bytes:
    return codec.dumps({
        "id":   req.id,
        "op":   str(req.op),
        "path": req.path.to_wire(),
        "args": list(req.args),
    })

def decode_frame(frame: bytes, codec: Codec = _DEFAULT) -> Union[Reply, Event]:
    """Decode an inbound frame. Anything malformed raises DecodeError."""
    obj = _load(frame, codec)

    if "id" in obj:
        rid = obj["id"]
        if isinstance(rid, bool) or not isinstance(rid, int):
            raise DecodeError(f"bad correlation id: {rid!r}")
        if "error" in obj and obj["error"] is not None:
            return Reply(id=rid, error=str(obj["error"]))
        if "value" not in obj:
            raise DecodeError(f"reply {rid} carries neither value nor error")
        return Reply(id=rid, value=obj["value"])

    if "path" in obj:
        return Event(path=_path(obj["path"]), payload=obj.get("payload"))

    raise DecodeError("frame is neither a reply nor an event")

# ---- host side (mock hosts, tests) ----

def decode_request(frame: bytes, codec: Codec = _DEFAULT) -> Request:
    obj = _load(frame, codec)
    try:
        op = Op(obj["op"])
        rid = obj["id"]
    except (KeyError, ValueError) as ex:
        raise DecodeError(f"bad request frame: {ex}") from ex
    args = obj.get("args") or []
    return Request(id=rid, op=op, path=_path(obj.get("path", [])), args=list(args))

def encode_reply(request_id: int, value: Any = None, *, error: Any = None,
                 codec: Codec = _DEFAULT) -> bytes:
    if error is not None:
        return codec.dumps({"id": request_id, "error": str(error)})
    return codec.dumps({"id": request_id, "value": value})

def encode_event(path: Union[Address, str], payload: Any = None,
                 codec: Codec = _DEFAULT) -> bytes:
    return codec.dumps({"path": Address.of(path).to_wire(), "payload": payload})

def _load(frame: bytes, codec: Codec) -> dict:
    try:
        obj = codec.loads(frame)
    except Exception as ex:
        raise DecodeError(f"{codec.name} decode failed: {ex}") from ex
    if not isinstance(obj, dict):
        raise DecodeError(f"frame is not a mapping: {type(obj).__name__}")
    return obj

def _path(raw: Any) -> Address:
    try:
        return Address.from_wire(raw)
    except ValueError as ex:
        raise DecodeError(str(ex)) from ex
