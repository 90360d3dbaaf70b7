"""glTF 2.0 JSON records.

Each record is a plain dataclass whose to_dict() returns the glTF JSON
object with unset optional fields omitted. Extension payloads may be plain
dicts or any object exposing to_dict().
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Any

from .gltf_constants import GLTF_VERSION, DEFAULT_METALLIC, DEFAULT_ROUGHNESS


def _serialize(value):
    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    if isinstance(value, (set, frozenset)):
        return sorted(value)
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    return value


def _compact(mapping):
    """Drop None and empty containers, serialize the rest."""
    out = {}
    for key, value in mapping.items():
        if value is None:
            continue
        if isinstance(value, (dict, list, set, tuple)) and not value:
            continue
        out[key] = _serialize(value)
    return out


# ---------------------------------------------------------------------------
# Asset / scene / node
# ---------------------------------------------------------------------------

@dataclass
class GLTFAsset:
    generator: Optional[str] = None
    copyright: Optional[str] = None
    version: str = GLTF_VERSION
    extensions: Dict[str, Any] = field(default_factory=dict)
    extras: Optional[Any] = None

    def to_dict(self):
        return _compact({
            "generator": self.generator,
            "copyright": self.copyright,
            "version": self.version,
            "extensions": self.extensions,
            "extras": self.extras,
        })


@dataclass
class GLTFScene:
    name: Optional[str] = None
    nodes: List[int] = field(default_factory=list)    # root nodes, unique
    extensions: Dict[str, Any] = field(default_factory=dict)
    extras: Optional[Any] = None

    def add_root(self, node_index):
        if node_index not in self.nodes:
            self.nodes.append(node_index)

    def to_dict(self):
        return _compact({
            "name": self.name,
            "nodes": self.nodes,
            "extensions": self.extensions,
            "extras": self.extras,
        })


@dataclass
class GLTFNode:
    """Scene graph node.

    ``bounds`` is exporter-side state (a BoundsData) aggregated from this
    node's geometry and descendants. It is written through the node's BIM
    extension when present.
    """

    name: Optional[str] = None
    matrix: Optional[List[float]] = None     # 16 floats, column-major
    mesh: Optional[int] = None
    children: Set[int] = field(default_factory=set)
    extensions: Dict[str, Any] = field(default_factory=dict)
    extras: Optional[Any] = None
    bounds: Optional[Any] = None

    def to_dict(self):
        return _compact({
            "name": self.name,
            "matrix": self.matrix,
            "mesh": self.mesh,
            "children": self.children,
            "extensions": self.extensions,
            "extras": self.extras,
        })


# ---------------------------------------------------------------------------
# Mesh / material
# ---------------------------------------------------------------------------

@dataclass
class GLTFMeshPrimitive:
    attributes: Dict[str, int] = field(default_factory=dict)
    indices: Optional[int] = None
    material: Optional[int] = None

    def to_dict(self):
        return _compact({
            "attributes": self.attributes,
            "indices": self.indices,
            "material": self.material,
        })


@dataclass
class GLTFMesh:
    primitives: List[GLTFMeshPrimitive] = field(default_factory=list)
    name: Optional[str] = None

    def __eq__(self, other):
        if not isinstance(other, GLTFMesh):
            return NotImplemented
        return self.primitives == other.primitives

    def to_dict(self):
        return _compact({
            "name": self.name,
            "primitives": self.primitives,
        })


@dataclass
class GLTFPBR:
    base_color_factor: List[float] = field(default_factory=lambda: [1.0, 1.0, 1.0, 1.0])
    metallic_factor: float = DEFAULT_METALLIC
    roughness_factor: float = DEFAULT_ROUGHNESS

    def to_dict(self):
        return {
            "baseColorFactor": list(self.base_color_factor),
            "metallicFactor": self.metallic_factor,
            "roughnessFactor": self.roughness_factor,
        }


@dataclass
class GLTFMaterial:
    name: Optional[str] = None
    pbr: GLTFPBR = field(default_factory=GLTFPBR)
    extensions: Dict[str, Any] = field(default_factory=dict)
    extras: Optional[Any] = None

    def to_dict(self):
        return _compact({
            "name": self.name,
            "pbrMetallicRoughness": self.pbr,
            "extensions": self.extensions,
            "extras": self.extras,
        })


# ---------------------------------------------------------------------------
# Accessor / bufferView / buffer
# ---------------------------------------------------------------------------

@dataclass
class GLTFAccessor:
    buffer_view: int
    component_type: int
    count: int
    type: str
    byte_offset: int = 0
    min: Optional[List[float]] = None
    max: Optional[List[float]] = None

    def to_dict(self):
        return _compact({
            "bufferView": self.buffer_view,
            "byteOffset": self.byte_offset,
            "componentType": self.component_type,
            "count": self.count,
            "type": self.type,
            "min": self.min,
            "max": self.max,
        })


@dataclass
class GLTFBufferView:
    buffer: int
    byte_offset: int
    byte_length: int
    target: Optional[int] = None

    def to_dict(self):
        return _compact({
            "buffer": self.buffer,
            "byteOffset": self.byte_offset,
            "byteLength": self.byte_length,
            "target": self.target,
        })


@dataclass
class GLTFBuffer:
    uri: str
    byte_length: int

    def to_dict(self):
        return {"uri": self.uri, "byteLength": self.byte_length}
