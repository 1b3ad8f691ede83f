"""Stable node and pin identities.

Every ordering decision in the layout pipeline is made over these keys, never
over list position or object identity, so identical input always produces
identical output.
"""

from __future__ import annotations

import uuid
import zlib
from dataclasses import dataclass

from flowgraph_layout.types import PinDirection

_KEY_BITS = 128
_KEY_LIMIT = 1 << _KEY_BITS


@dataclass(frozen=True, order=True)
class NodeKey:
    """Opaque 128-bit node identifier ordered as an unsigned integer."""

    value: int

    def __post_init__(self) -> None:
        if not 0 <= self.value < _KEY_LIMIT:
            raise ValueError(f"NodeKey out of range: {self.value}")

    @classmethod
    def parse(cls, text: str) -> NodeKey:
        """Parse the hyphenated (or bare) 32-hex-digit form."""
        digits = text.strip().replace("-", "")
        if len(digits) != 32:
            raise ValueError(f"Invalid node key '{text}'")
        try:
            return cls(int(digits, 16))
        except ValueError:
            raise ValueError(f"Invalid node key '{text}'") from None

    @classmethod
    def from_words(cls, a: int, b: int, c: int, d: int) -> NodeKey:
        return cls((a & 0xFFFFFFFF) << 96 | (b & 0xFFFFFFFF) << 64 | (c & 0xFFFFFFFF) << 32 | (d & 0xFFFFFFFF))

    def __str__(self) -> str:
        return str(uuid.UUID(int=self.value)).upper()


@dataclass(frozen=True)
class PinKey:
    """Composite pin identity: owner key, direction, pin name, index within owner."""

    node_key: NodeKey
    direction: PinDirection
    pin_name: str
    pin_index: int

    def __str__(self) -> str:
        return build_pin_key_string(self)


# ─── Comparators ─────────────────────────────────────────────────────────────


def node_key_sort_key(key: NodeKey) -> int:
    return key.value


def pin_key_sort_key(key: PinKey) -> tuple[int, int, str, str, int]:
    # Pin names compare case-insensitively; the exact spelling only breaks ties.
    return (key.node_key.value, int(key.direction), key.pin_name.casefold(), key.pin_name, key.pin_index)


def _cmp(a, b) -> int:
    return (a > b) - (a < b)


def compare_node_keys(a: NodeKey, b: NodeKey) -> int:
    return _cmp(a.value, b.value)


def compare_pin_keys(a: PinKey, b: PinKey) -> int:
    return _cmp(pin_key_sort_key(a), pin_key_sort_key(b))


def node_key_less(a: NodeKey, b: NodeKey) -> bool:
    return a.value < b.value


# ─── Construction helpers ────────────────────────────────────────────────────


def make_pin_key(owner: NodeKey, direction: PinDirection, pin_name: str, pin_index: int) -> PinKey:
    return PinKey(node_key=owner, direction=direction, pin_name=pin_name, pin_index=pin_index)


def make_dummy_pin_key(owner: NodeKey, direction: PinDirection) -> PinKey:
    return PinKey(node_key=owner, direction=direction, pin_name="Dummy", pin_index=0)


def build_pin_key_string(key: PinKey) -> str:
    return f"{key.node_key}|{key.direction.label}|{key.pin_name}|{key.pin_index}"


def build_edge_stable_key(src_pin: PinKey, dst_pin: PinKey) -> str:
    return f"{build_pin_key_string(src_pin)}->{build_pin_key_string(dst_pin)}"


def _crc32(text: str) -> int:
    return zlib.crc32(text.encode("utf-8")) & 0xFFFFFFFF


def make_synthetic_node_key(seed: str) -> NodeKey:
    """Derive a key from a string seed, identical across runs and machines."""
    return NodeKey.from_words(_crc32(seed), _crc32(f"{seed}|A"), _crc32(f"{seed}|B"), _crc32(f"{seed}|C"))


def node_key_for_id(node_id: int) -> NodeKey:
    """Fallback key for callers that only have integer ids; keeps id order."""
    if node_id < 0:
        return make_synthetic_node_key(f"Node|{node_id}")
    return NodeKey(node_id)
