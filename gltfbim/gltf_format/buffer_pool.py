"""Deduplicating pool of buffer segments and the glTF buffer packer.

Every segment interned here becomes exactly one bufferView and one accessor
with the same index, so mesh primitives can refer to the pool index
directly as an accessor index.

Pipeline:
    1. intern() each position / normal / index segment while building
    2. pack() lays segments out in insertion order, aligned to their
       component size, and returns the accessor / bufferView / buffer
       tables together with the binary blob(s)
"""

import logging

from .gltf_schema import GLTFAccessor, GLTFBufferView, GLTFBuffer
from .gltf_constants import BIN_SUFFIX

_log = logging.getLogger("gltfbim.buffer_pool")


def _pad_to(blob, alignment):
    """Append zero bytes until len(blob) is a multiple of alignment."""
    remainder = len(blob) % alignment
    if remainder:
        blob.extend(b'\x00' * (alignment - remainder))


class PackedBuffers:
    """Result of BufferPool.pack().

    Attributes:
        accessors: list of GLTFAccessor
        buffer_views: list of GLTFBufferView
        buffers: list of GLTFBuffer
        blobs: list of (uri, bytes), parallel to buffers
    """

    def __init__(self):
        self.accessors = []
        self.buffer_views = []
        self.buffers = []
        self.blobs = []


class BufferPool:
    """Content-addressed segment store.

    Usage:
        pool = BufferPool()
        pos = pool.intern(VectorSegment(coords))
        idx = pool.intern(make_index_segment(indices))
        packed = pool.pack("model")
    """

    def __init__(self):
        self._segments = []     # insertion-ordered BufferSegment list
        self._by_key = {}       # (segment class, sha256) -> index

    def __len__(self):
        return len(self._segments)

    def __getitem__(self, index):
        return self._segments[index]

    @property
    def segments(self):
        return tuple(self._segments)

    def intern(self, segment):
        """Return the index of ``segment``, appending it only if new."""
        key = (type(segment), segment.hash)
        index = self._by_key.get(key)
        if index is not None:
            return index
        index = len(self._segments)
        self._segments.append(segment)
        self._by_key[key] = index
        return index

    def pack(self, name, single_binary=True):
        """Serialize all segments.

        Args:
            name: document name; buffer uris are derived from it
            single_binary: one shared .bin when True, one .bin per segment
                otherwise

        Returns:
            PackedBuffers
        """
        if single_binary:
            packed = self._pack_single(name)
        else:
            packed = self._pack_multiple(name)
        _log.debug("Packed %d segment(s) into %d buffer(s) for %s",
                   len(self._segments), len(packed.buffers), name)
        return packed

    def _pack_single(self, name):
        packed = PackedBuffers()
        if not self._segments:
            return packed

        blob = bytearray()
        for index, segment in enumerate(self._segments):
            _pad_to(blob, segment.component_size)
            offset = len(blob)
            data = segment.to_bytes()
            blob.extend(data)
            packed.buffer_views.append(GLTFBufferView(
                buffer=0, byte_offset=offset, byte_length=len(data),
                target=segment.target))
            packed.accessors.append(self._accessor(index, segment))
        _pad_to(blob, 4)

        uri = name + BIN_SUFFIX
        packed.buffers.append(GLTFBuffer(uri=uri, byte_length=len(blob)))
        packed.blobs.append((uri, bytes(blob)))
        return packed

    def _pack_multiple(self, name):
        packed = PackedBuffers()
        for index, segment in enumerate(self._segments):
            blob = bytearray(segment.to_bytes())
            length = len(blob)
            _pad_to(blob, 4)
            uri = f"{name}-{index}{BIN_SUFFIX}"
            packed.buffer_views.append(GLTFBufferView(
                buffer=index, byte_offset=0, byte_length=length,
                target=segment.target))
            packed.accessors.append(self._accessor(index, segment))
            packed.buffers.append(GLTFBuffer(uri=uri, byte_length=len(blob)))
            packed.blobs.append((uri, bytes(blob)))
        return packed

    @staticmethod
    def _accessor(view_index, segment):
        return GLTFAccessor(
            buffer_view=view_index,
            component_type=segment.component_type,
            count=segment.count,
            type=segment.accessor_type,
            min=segment.min,
            max=segment.max,
        )
