import struct

import pytest

from gltfbim.gltf_format import gltf_constants as C
from gltfbim.gltf_format.buffer_pool import BufferPool
from gltfbim.gltf_format.buffer_segments import (
    VectorSegment, Scalar1Segment, Scalar2Segment, Scalar4Segment,
    make_index_segment,
)


class TestSegments:
    def test_vector_segment_requires_triples(self):
        with pytest.raises(ValueError):
            VectorSegment([0.0, 1.0])

    def test_vector_min_max_per_axis(self):
        seg = VectorSegment([0, 5, -1, 2, -3, 4])
        assert seg.count == 2
        assert seg.min == [0, -3, -1]
        assert seg.max == [2, 5, 4]
        assert seg.component_type == C.FLOAT
        assert seg.target == C.ARRAY_BUFFER

    def test_vector_bounds_match_packed_floats(self):
        seg = VectorSegment([0.1, 0.2, 0.3, -0.7, 1.1, 2.3])
        packed = struct.unpack("<6f", seg.to_bytes())
        assert seg.min == [packed[3], packed[1], packed[2]]
        assert seg.max == [packed[0], packed[4], packed[5]]
        assert seg.max[0] == struct.unpack("<f", struct.pack("<f", 0.1))[0]
        assert seg.max[0] != 0.1

    @pytest.mark.parametrize("top, cls, size", [
        (254, Scalar1Segment, 1),
        (256, Scalar2Segment, 2),
        (70000, Scalar4Segment, 4),
    ])
    def test_index_width_from_max_index(self, top, cls, size):
        seg = make_index_segment([0, 1, top])
        assert type(seg) is cls
        assert seg.component_size == size
        assert len(seg.to_bytes()) == 3 * size
        assert seg.target == C.ELEMENT_ARRAY_BUFFER

    def test_index_segment_rejects_empty_and_negative(self):
        with pytest.raises(ValueError):
            make_index_segment([])
        with pytest.raises(ValueError):
            make_index_segment([0, -1, 2])

    def test_equality_by_content(self):
        assert VectorSegment([1, 2, 3]) == VectorSegment([1.0, 2.0, 3.0])
        assert VectorSegment([1, 2, 3]) != VectorSegment([1, 2, 4])


class TestPool:
    def test_intern_deduplicates(self):
        pool = BufferPool()
        first = pool.intern(VectorSegment([0, 0, 0, 1, 0, 0]))
        other = pool.intern(make_index_segment([0, 1, 1]))
        again = pool.intern(VectorSegment([0, 0, 0, 1, 0, 0]))
        assert first == again == 0
        assert other == 1
        assert len(pool) == 2

    def test_same_bytes_different_kind_are_distinct(self):
        pool = BufferPool()
        # 4 bytes of zeros either way
        pool.intern(Scalar4Segment([0]))
        pool.intern(Scalar2Segment([0, 0]))
        assert len(pool) == 2

    def test_single_binary_alignment(self):
        pool = BufferPool()
        pool.intern(make_index_segment([0, 1, 2]))        # 3 bytes
        pool.intern(VectorSegment([1, 2, 3]))             # 12 bytes, aligned to 4
        packed = pool.pack("model")

        assert len(packed.buffers) == 1
        assert packed.buffers[0].uri == "model.bin"
        views = packed.buffer_views
        assert views[0].byte_offset == 0 and views[0].byte_length == 3
        assert views[1].byte_offset == 4 and views[1].byte_length == 12

        uri, blob = packed.blobs[0]
        assert len(blob) % 4 == 0
        assert blob[3:4] == b"\x00"
        assert struct.unpack_from("<3f", blob, 4) == (1.0, 2.0, 3.0)

        accessor = packed.accessors[1]
        assert accessor.buffer_view == 1
        assert accessor.count == 1
        assert accessor.type == C.VEC3
        assert accessor.min == [1.0, 2.0, 3.0]

    def test_multi_binary(self):
        pool = BufferPool()
        pool.intern(VectorSegment([1, 2, 3]))
        pool.intern(make_index_segment([0, 0, 0]))
        packed = pool.pack("model", single_binary=False)
        assert [b.uri for b in packed.buffers] == ["model-0.bin", "model-1.bin"]
        assert [v.buffer for v in packed.buffer_views] == [0, 1]
        assert packed.buffer_views[1].byte_length == 3
        assert packed.buffers[1].byte_length == 4

    def test_empty_pool_packs_nothing(self):
        packed = BufferPool().pack("model")
        assert packed.buffers == [] and packed.blobs == []
