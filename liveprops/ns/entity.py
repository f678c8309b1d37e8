from __future__ import annotations
from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Tuple, Union

from ..address import Address, AddressLike
from ..client import LiveClient
from ..registry import Subscription


class Entity:
    """
    Base for typed views over one node of the host's object graph.

    Subclasses declare property names; accessors are generated per name:
      gettable   -> get_<prop>()
      settable   -> set_<prop>(value)
      observable -> add_<prop>_listener(cb) / remove_<prop>_listener(cb)
    Each accessor addresses `self.path / <prop>`.
    """
    gettable: ClassVar[Tuple[str, ...]] = ()
    settable: ClassVar[Tuple[str, ...]] = ()
    observable: ClassVar[Tuple[str, ...]] = ()
    raw_fields: ClassVar[Tuple[str, ...]] = ("id",)

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        for prop in cls.gettable:
            _attach(cls, f"get_{prop}", _getter(prop))
        for prop in cls.settable:
            _attach(cls, f"set_{prop}", _setter(prop))
        for prop in cls.observable:
            _attach(cls, f"add_{prop}_listener", _adder(prop))
            _attach(cls, f"remove_{prop}_listener", _remover(prop))

    def __init__(self, client: LiveClient, raw: Optional[Mapping[str, Any]] = None,
                 path: Optional[AddressLike] = None):
        self.client = client
        self.raw: Dict[str, Any] = dict(raw or {})
        if path is None and "id" in self.raw:
            path = Address().child("id", int(self.raw["id"]))
        self.path = Address.of(path)

    @property
    def id(self) -> Optional[int]:
        return self.raw.get("id")

    def to_dict(self) -> Dict[str, Any]:
        return {name: self.raw.get(name) for name in self.raw_fields}

    def __repr__(self) -> str:
        return f"<{type(self).__name__} id={self.id} path={str(self.path)!r}>"


def _attach(cls: type, name: str, fn: Callable) -> None:
    # explicit definitions in the class body win
    if name not in cls.__dict__:
        fn.__name__ = name
        fn.__qualname__ = f"{cls.__qualname__}.{name}"
        setattr(cls, name, fn)


def _getter(prop: str):
    def get(self: Entity) -> Any:
        return self.client.get_prop(self.path / prop)
    return get


def _setter(prop: str):
    def set_(self: Entity, value: Any) -> Any:
        return self.client.set_prop(self.path / prop, value)
    return set_


def _adder(prop: str):
    def add(self: Entity, listener: Callable[[Any], None]) -> Subscription:
        return self.client.add_listener(self.path / prop, listener)
    return add


def _remover(prop: str):
    def remove(self: Entity, listener: Union[Subscription, Callable[[Any], None]]) -> bool:
        return self.client.remove_listener(self.path / prop, listener)
    return remove
