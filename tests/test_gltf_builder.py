import json

import pytest

from gltfbim.bim_extension.bim_extension import BIMNodeExtension
from gltfbim.exporter.geometry import BoundsData, VectorData
from gltfbim.exporter.gltf_builder import GLTFBuilder, GLTFBuilderError
from gltfbim.gltf_format.gltf_constants import BIM_EXTENSION


TRI = [0, 0, 0, 1, 0, 0, 0, 1, 0]


def _box(lo, hi):
    return BoundsData(VectorData(*lo), VectorData(*hi))


@pytest.fixture
def builder():
    b = GLTFBuilder("model")
    b.open_scene("scene")
    return b


class TestNodeStack:
    def test_balanced_open_close_empties_stack(self, builder):
        a = builder.open_node("a")
        b = builder.open_node("b")
        builder.close_node()
        builder.close_node()
        assert builder.stack_depth == 0
        assert builder.nodes[a].children == {b}
        assert builder.scenes[0].nodes == [a]

    def test_close_more_than_open_raises(self, builder):
        builder.open_node("a")
        builder.close_node()
        with pytest.raises(GLTFBuilderError):
            builder.close_node()

    def test_open_node_requires_scene(self):
        with pytest.raises(GLTFBuilderError):
            GLTFBuilder("model").open_node("a")

    def test_close_scene_with_open_nodes_raises(self, builder):
        builder.open_node("a")
        with pytest.raises(GLTFBuilderError):
            builder.close_scene()

    def test_open_existing_keeps_single_parent(self, builder):
        a = builder.open_node("a")
        child = builder.open_node("child")
        builder.close_node()
        builder.close_node()
        b = builder.open_node("b")
        with pytest.raises(GLTFBuilderError):
            builder.open_existing_node(child)
        assert builder.find_parent_node(child) == a
        assert child not in builder.nodes[b].children

    def test_open_existing_reuses_node(self, builder):
        a = builder.open_node("a")
        t = builder.open_node("type")
        builder.close_node()
        assert builder.find_child_node(lambda n: n.name == "type") == t
        builder.open_existing_node(t)
        builder.close_node()
        builder.close_node()
        assert builder.nodes[a].children == {t}
        assert len(builder.nodes) == 2

    def test_find_child_node_is_not_global(self, builder):
        builder.open_node("a")
        builder.open_node("x")
        builder.close_node()
        builder.close_node()
        builder.open_node("b")
        assert builder.find_child_node(lambda n: n.name == "x") is None
        assert builder.find_node(lambda n: n.name == "x") == 1

    def test_unknown_node_index(self, builder):
        with pytest.raises(GLTFBuilderError):
            builder.get_node(42)


class TestGeometry:
    def test_add_primitive_requires_open_node(self, builder):
        with pytest.raises(GLTFBuilderError):
            builder.add_primitive(TRI, [0, 1, 2])

    def test_close_bundles_mesh(self, builder):
        node = builder.open_node("a")
        assert builder.add_primitive(TRI, [0, 1, 2]) == 0
        builder.close_node()
        assert builder.nodes[node].mesh == 0
        assert len(builder.meshes[0].primitives) == 1

    def test_identical_geometry_shares_mesh_and_buffers(self, builder):
        for name in ("a", "b"):
            builder.open_node(name)
            builder.add_primitive(TRI, [0, 1, 2])
            builder.close_node()
        assert len(builder.meshes) == 1
        assert builder.nodes[0].mesh == builder.nodes[1].mesh == 0
        assert len(builder.pool) == 2

    def test_index_out_of_range(self, builder):
        builder.open_node("a")
        with pytest.raises(ValueError):
            builder.add_primitive(TRI, [0, 1, 3])

    def test_material_reuse(self, builder):
        builder.open_node("a")
        p0 = builder.add_primitive(TRI, [0, 1, 2])
        p1 = builder.add_primitive(TRI, [2, 1, 0])
        m0 = builder.add_material(p0, "red", [1, 0, 0, 1])
        m1 = builder.add_material(p1, "red", [1, 0, 0, 1])
        builder.close_node()
        assert m0 == m1 == 0
        assert builder.find_material(lambda m: m.name == "red") == 0
        assert [p.material for p in builder.meshes[0].primitives] == [0, 0]

    def test_update_material_unknown_index(self, builder):
        builder.open_node("a")
        p = builder.add_primitive(TRI, [0, 1, 2])
        with pytest.raises(GLTFBuilderError):
            builder.update_material(p, 3)
        with pytest.raises(GLTFBuilderError):
            builder.update_material(5, 0)


class TestBounds:
    def test_update_bounds_walks_ancestors(self, builder):
        root = builder.open_node("root")
        mid = builder.open_node("mid", extensions={BIM_EXTENSION: BIMNodeExtension(id="m")})
        leaf = builder.open_node("leaf")
        builder.update_bounds(leaf, _box((0, 0, 0), (1, 1, 1)))
        builder.update_bounds(leaf, _box((-1, 0, 0), (0, 2, 0)))
        expected = _box((-1, 0, 0), (1, 2, 1))
        assert builder.nodes[leaf].bounds == expected
        assert builder.nodes[mid].bounds == expected
        assert builder.nodes[root].bounds == expected
        assert builder.nodes[mid].extensions[BIM_EXTENSION].bounds == expected

    def test_update_bounds_without_propagation(self, builder):
        root = builder.open_node("root")
        level = builder.open_node("level")
        builder.update_bounds(level, _box((0, 0, 0), (5, 5, 5)), propagate=False)
        assert builder.nodes[root].bounds is None


class TestPack:
    def test_pack_document(self, builder):
        builder.set_asset(generator="gen")
        builder.open_node("a", matrix=[1, 0, 0, 0, 0, 1, 0, 0, 0, 0, 1, 0, 2, 0, 0, 1])
        p = builder.add_primitive(TRI, [0, 1, 2])
        builder.add_material(p, "grey", [0.5, 0.5, 0.5, 1])
        builder.close_node()
        builder.close_scene()

        items = builder.pack()
        assert [i.uri for i in items] == ["model.gltf", "model.bin"]
        doc = json.loads(items[0].data)
        assert doc["asset"] == {"generator": "gen", "version": "2.0"}
        assert doc["scene"] == 0
        assert doc["nodes"][0]["mesh"] == 0
        assert doc["nodes"][0]["matrix"][12] == 2
        assert doc["meshes"][0]["primitives"][0]["attributes"] == {"POSITION": 0}
        assert doc["meshes"][0]["primitives"][0]["indices"] == 1
        assert doc["materials"][0]["pbrMetallicRoughness"]["metallicFactor"] == 0.0
        assert doc["accessors"][0]["max"] == [1.0, 1.0, 0.0]
        assert doc["buffers"][0]["byteLength"] == len(items[1].data)

    def test_pack_with_open_scene_raises(self, builder):
        with pytest.raises(GLTFBuilderError):
            builder.pack()
