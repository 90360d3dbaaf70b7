import pytest

from gltfbim.exporter.geometry import (
    VectorData, FacetData, PrimitiveData, BoundsData, PartData,
)
from gltfbim.utils.matrix_utils import translation


def _quad(offset=0.0):
    return PrimitiveData.from_flat(
        [offset, 0, 0, offset + 1, 0, 0, offset + 1, 1, 0, offset, 1, 0],
        [0, 1, 2, 0, 2, 3])


class TestVector:
    def test_arithmetic(self):
        a = VectorData(1, 2, 3)
        b = VectorData(4, 6, 8)
        assert a + b == VectorData(5, 8, 11)
        assert b - a == VectorData(3, 4, 5)
        assert b / 2 == VectorData(2, 3, 4)

    def test_lexicographic_order(self):
        values = [VectorData(1, 0, 0), VectorData(0, 5, 5), VectorData(0, 5, 1)]
        assert sorted(values) == [VectorData(0, 5, 1), VectorData(0, 5, 5), VectorData(1, 0, 0)]
        assert max(values) == VectorData(1, 0, 0)

    def test_transform_translation(self):
        moved = VectorData(1, 1, 1).transform(translation(2, 0, -1))
        assert moved == VectorData(3, 1, 0)

    def test_to_list_rounds(self):
        assert VectorData(0.123456, 1, 2).to_list() == [0.1235, 1.0, 2.0]


class TestFacet:
    def test_shift(self):
        assert FacetData(0, 1, 2) + 3 == FacetData(3, 4, 5)

    def test_negative_index(self):
        with pytest.raises(ValueError):
            FacetData(-1, 0, 1)


class TestPrimitive:
    def test_requires_vertices_and_faces(self):
        with pytest.raises(ValueError):
            PrimitiveData([], [FacetData(0, 1, 2)])
        with pytest.raises(ValueError):
            PrimitiveData([VectorData()], [])

    def test_rejects_out_of_range_facet(self):
        with pytest.raises(ValueError):
            PrimitiveData([VectorData(), VectorData(1, 0, 0)], [FacetData(0, 1, 2)])

    def test_rejects_flat_coords_not_divisible_by_three(self):
        with pytest.raises(ValueError):
            PrimitiveData.from_flat([0, 0, 0, 1], [0, 0, 0])

    def test_rejects_normal_count_mismatch(self, triangle):
        with pytest.raises(ValueError):
            PrimitiveData(triangle.vertices, triangle.faces, [VectorData(0, 0, 1)])

    def test_merge_shifts_right_faces(self, triangle):
        merged = triangle + _quad(5)
        assert len(merged.vertices) == 7
        assert merged.faces[1] == FacetData(3, 4, 5)
        assert merged.faces[2] == FacetData(3, 5, 6)

    def test_merge_is_associative(self, triangle):
        a, b, c = triangle, _quad(2), _quad(4)
        left = (a + b) + c
        right = a + (b + c)
        assert left == right
        for face in left.faces:
            assert max(face) < len(left.vertices)

    def test_merge_drops_normals_unless_both_sides_have_them(self, triangle):
        up = [VectorData(0, 0, 1)] * 3
        with_normals = PrimitiveData(triangle.vertices, triangle.faces, up)
        assert (with_normals + triangle).normals is None
        assert len((with_normals + with_normals).normals) == 6

    def test_translated(self, triangle):
        moved = triangle.translated(VectorData(1, 1, 1))
        assert moved.vertices[0] == VectorData(1, 1, 1)
        assert moved.faces == triangle.faces


class TestBounds:
    def test_min_must_not_exceed_max(self):
        with pytest.raises(ValueError):
            BoundsData(VectorData(1, 0, 0), VectorData(0, 1, 1))

    def test_union_commutative_and_idempotent(self):
        a = BoundsData(VectorData(0, 0, 0), VectorData(1, 1, 1))
        b = BoundsData(VectorData(-1, 0.5, 0), VectorData(0.5, 2, 3))
        assert a.union(a) == a
        assert a.union(b) == b.union(a)
        u = a.union(b)
        for box in (a, b):
            assert u.min.x <= box.min.x and u.min.y <= box.min.y and u.min.z <= box.min.z
            assert u.max.x >= box.max.x and u.max.y >= box.max.y and u.max.z >= box.max.z

    def test_from_points(self, triangle):
        bounds = BoundsData.from_points(triangle.vertices)
        assert bounds.min == VectorData(0, 0, 0)
        assert bounds.max == VectorData(1, 1, 0)

    def test_transform_rederives_min_max(self):
        # 180 degrees around Z swaps the corners
        rotate = [-1, 0, 0, 0,
                  0, -1, 0, 0,
                  0, 0, 1, 0,
                  0, 0, 0, 1]
        box = BoundsData(VectorData(0, 0, 0), VectorData(2, 1, 1))
        moved = box.transform(rotate)
        assert moved.min == VectorData(-2, -1, 0)
        assert moved.max == VectorData(0, 0, 1)

    def test_center(self):
        box = BoundsData(VectorData(0, 0, 0), VectorData(2, 4, 6))
        assert box.center() == VectorData(1, 2, 3)


class TestPart:
    def test_add_merges_primitives(self, triangle):
        part = PartData(triangle, color=(1, 2, 3)) + PartData(_quad())
        assert len(part.primitive.vertices) == 7
        assert part.color == (1, 2, 3)

    def test_add_with_empty_side(self, triangle):
        assert (PartData() + PartData(triangle)).primitive == triangle

    def test_same_appearance(self, concrete):
        assert PartData(material=concrete).same_appearance(concrete, None)
        assert not PartData(color=(1, 1, 1)).same_appearance(concrete, None)
        assert PartData(color=(1, 1, 1)).same_appearance(None, (1, 1, 1))
        assert not PartData(color=(1, 1, 1)).same_appearance(None, (1, 1, 1), 0.5)
