"""Typed, content-hashed binary segments backing glTF accessors.

A segment is an immutable array that knows how to pack itself
little-endian, which accessor type/componentType describe it and which
bufferView target it belongs to. Equality is by kind plus the SHA-256
digest of the packed bytes, so byte-identical segments collapse to one
entry in the BufferPool.

Index segments pick their width from the largest index present:
    max < 0xFF    -> 1 byte  (UNSIGNED_BYTE)
    max < 0xFFFF  -> 2 bytes (UNSIGNED_SHORT)
    otherwise     -> 4 bytes (UNSIGNED_INT)
"""

import hashlib
import struct

from .gltf_constants import (
    UNSIGNED_BYTE, UNSIGNED_SHORT, UNSIGNED_INT, FLOAT,
    ARRAY_BUFFER, ELEMENT_ARRAY_BUFFER,
    SCALAR, VEC3,
)


class BufferSegment:
    """Base class; subclasses set the class-level format attributes."""

    accessor_type = None
    component_type = None
    component_size = 0
    struct_char = None
    target = None

    def __init__(self, data):
        self.data = tuple(data)
        self._bytes = None
        self._hash = None

    @property
    def count(self):
        """Number of accessor elements (not components)."""
        return len(self.data)

    @property
    def byte_length(self):
        return len(self.data) * self.component_size

    def to_bytes(self):
        if self._bytes is None:
            self._bytes = struct.pack(f"<{len(self.data)}{self.struct_char}", *self.data)
        return self._bytes

    @property
    def hash(self):
        if self._hash is None:
            self._hash = hashlib.sha256(self.to_bytes()).hexdigest()
        return self._hash

    @property
    def min(self):
        return [min(self.data)]

    @property
    def max(self):
        return [max(self.data)]

    def __eq__(self, other):
        if not isinstance(other, BufferSegment):
            return NotImplemented
        return type(self) is type(other) and self.hash == other.hash

    def __hash__(self):
        return hash((type(self).__name__, self.hash))

    def __repr__(self):
        return f"{type(self).__name__}(count={self.count}, hash={self.hash[:12]})"


class VectorSegment(BufferSegment):
    """Flat list of 3-float groups (positions or normals)."""

    accessor_type = VEC3
    component_type = FLOAT
    component_size = 4
    struct_char = "f"
    target = ARRAY_BUFFER

    def __init__(self, data):
        data = [float(v) for v in data]
        if not data:
            raise ValueError("Vector segment requires at least one vector")
        if len(data) % 3 != 0:
            raise ValueError(f"Vector segment length {len(data)} is not divisible by 3")
        super().__init__(data)

    @property
    def count(self):
        return len(self.data) // 3

    def _axis(self, axis):
        # bounds of the packed float32 values
        packed = struct.unpack(f"<{len(self.data)}f", self.to_bytes())
        return packed[axis::3]

    @property
    def min(self):
        return [min(self._axis(a)) for a in range(3)]

    @property
    def max(self):
        return [max(self._axis(a)) for a in range(3)]


class Scalar1Segment(BufferSegment):
    accessor_type = SCALAR
    component_type = UNSIGNED_BYTE
    component_size = 1
    struct_char = "B"
    target = ELEMENT_ARRAY_BUFFER


class Scalar2Segment(BufferSegment):
    accessor_type = SCALAR
    component_type = UNSIGNED_SHORT
    component_size = 2
    struct_char = "H"
    target = ELEMENT_ARRAY_BUFFER


class Scalar4Segment(BufferSegment):
    accessor_type = SCALAR
    component_type = UNSIGNED_INT
    component_size = 4
    struct_char = "I"
    target = ELEMENT_ARRAY_BUFFER


def make_index_segment(indices):
    """Build the narrowest index segment able to hold ``indices``.

    Args:
        indices: sequence of non-negative ints

    Returns:
        Scalar1Segment, Scalar2Segment or Scalar4Segment

    Raises:
        ValueError: empty list or negative index
    """
    indices = [int(i) for i in indices]
    if not indices:
        raise ValueError("Index segment requires at least one index")
    if min(indices) < 0:
        raise ValueError(f"Negative index {min(indices)} in index segment")

    top = max(indices)
    if top < 0xFF:
        return Scalar1Segment(indices)
    if top < 0xFFFF:
        return Scalar2Segment(indices)
    return Scalar4Segment(indices)
