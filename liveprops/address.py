from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Iterator, List, Optional, Tuple, Union


@dataclass(frozen=True)
class Segment:
    name: str
    index: Optional[int] = None

    def __str__(self) -> str:
        return self.name if self.index is None else f"{self.name} {self.index}"


@dataclass(frozen=True)
class Address:
    """
    Path to a node in the host's object graph, e.g. "track 0 chain 1 devices 2".
    Each segment is a name token optionally followed by an integer index.
    Equality and hashing are structural.
    """
    segments: Tuple[Segment, ...] = ()

    @classmethod
    def parse(cls, text: str) -> "Address":
        tokens = text.split()
        segments: List[Segment] = []
        for tok in tokens:
            if _is_index(tok):
                if not segments or segments[-1].index is not None:
                    raise ValueError(f"Index {tok!r} has no name to attach to in {text!r}")
                segments[-1] = Segment(segments[-1].name, int(tok))
            else:
                segments.append(Segment(tok))
        return cls(tuple(segments))

    @classmethod
    def of(cls, value: Union["Address", str, None]) -> "Address":
        if value is None:
            return cls()
        if isinstance(value, Address):
            return value
        return cls.parse(value)

    def child(self, name: str, index: Optional[int] = None) -> "Address":
        return Address(self.segments + (Segment(name, index),))

    def join(self, other: Union["Address", str]) -> "Address":
        return Address(self.segments + Address.of(other).segments)

    def __truediv__(self, other: Union["Address", str]) -> "Address":
        return self.join(other)

    @property
    def parent(self) -> "Address":
        return Address(self.segments[:-1])

    @property
    def leaf(self) -> Optional[Segment]:
        return self.segments[-1] if self.segments else None

    # ---- wire form: [[name, index|None], ...] ----
    def to_wire(self) -> List[List[Any]]:
        return [[s.name, s.index] for s in self.segments]

    @classmethod
    def from_wire(cls, raw: Any) -> "Address":
        if not isinstance(raw, (list, tuple)):
            raise ValueError(f"path must be a list, got {type(raw).__name__}")
        segments = []
        for item in raw:
            if not isinstance(item, (list, tuple)) or len(item) != 2:
                raise ValueError(f"bad path segment: {item!r}")
            name, index = item
            if not isinstance(name, str) or not name:
                raise ValueError(f"bad segment name: {name!r}")
            if index is not None and (isinstance(index, bool) or not isinstance(index, int)):
                raise ValueError(f"bad segment index: {index!r}")
            segments.append(Segment(name, index))
        return cls(tuple(segments))

    def __iter__(self) -> Iterator[Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)

    def __bool__(self) -> bool:
        return bool(self.segments)

    def __str__(self) -> str:
        return " ".join(str(s) for s in self.segments)


def _is_index(tok: str) -> bool:
    return tok.lstrip("-").isdigit()


AddressLike = Union[Address, str]
