import json

from gltfbim.bim_extension.bim_extension import (
    BIMAssetExtension, BIMMaterialExtension, BIMNodeExtension,
)
from gltfbim.bim_extension.property_container import PropertyContainer


def test_groups_are_shared_between_identical_property_sets():
    container = PropertyContainer("model-properties.json")
    g1 = container.record("a", {"Width": 0.3, "Fire Rating": "2h"})
    g2 = container.record("b", {"Width": 0.3, "Fire Rating": "2h"})
    g3 = container.record("c", {"Width": 0.2, "Fire Rating": "2h"})
    assert g1 == g2 != g3
    assert container.keys == ["Width", "Fire Rating"]
    assert container.values == [0.3, "2h", 0.2]
    data = container.data_dict()
    assert data["records"] == {"a": [0], "b": [0], "c": [1]}
    assert data["groups"][1] == {"keys": [0, 1], "values": [2, 1]}


def test_none_values_are_skipped():
    container = PropertyContainer("p.json")
    container.record("a", {"Mark": None, "Width": 1})
    assert container.keys == ["Width"]


def test_pack_is_json():
    container = PropertyContainer("p.json")
    assert not container.has_data()
    container.record("a", {"Width": 1})
    assert container.has_data()
    assert json.loads(container.pack())["keys"] == ["Width"]
    assert container.to_dict() == {"$type": "properties", "uri": "p.json"}


def test_node_extension_embeds_or_records(wall):
    embedded = BIMNodeExtension.from_element(wall)
    assert embedded.properties == {"Width": 0.3}

    container = PropertyContainer("p.json")
    recorded = BIMNodeExtension.from_element(wall, container=container)
    assert recorded.properties is None
    assert "properties" not in recorded.to_dict()
    assert "wall-1" in container.records

    excluded = BIMNodeExtension.from_element(wall, include_properties=False)
    assert excluded.properties is None


def test_material_extension(concrete):
    concrete.properties = {"Density": 2400}
    ext = BIMMaterialExtension.from_material(concrete)
    assert ext.to_dict() == {"id": "mat-1", "properties": {"Density": 2400}}


def test_asset_extension_references_container(document):
    document.properties = {"Project Number": "001"}
    container = PropertyContainer("model-properties.json")
    ext = BIMAssetExtension.from_document(document, container=container)
    ext.add_container(container)
    out = ext.to_dict()
    assert out["id"] == "doc-1"
    assert out["title"] == "Project"
    assert out["containers"] == [{"$type": "properties", "uri": "model-properties.json"}]
    assert "properties" not in out
