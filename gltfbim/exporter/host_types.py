"""Host-side records handed to the exporter by the modeling application.

The exporter never talks to the host API directly. An adapter converts
host objects into these records and replays the host traversal as calls
on ExportContext. Metadata (taxonomies, property dictionaries, ...) is
extracted by the adapter; the exporter only carries it into the output.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Any

from .geometry import BoundsData, PrimitiveData, VectorData


@dataclass
class HostMaterial:
    """Host material. ``transparency`` is 0 (opaque) .. 1 (invisible)."""

    id: str
    name: str
    color: Tuple[int, int, int] = (255, 255, 255)
    transparency: float = 0.0
    taxonomies: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    properties: Dict[str, Any] = field(default_factory=dict)


@dataclass
class HostMesh:
    """Tessellated face geometry read directly from an element."""

    primitive: PrimitiveData
    material: Optional[HostMaterial] = None


@dataclass
class HostElement:
    """One host object (element, element type, view or link instance).

    ``id`` must be stable and unique within its document.
    """

    id: str
    name: str = ""
    category: Optional[str] = None
    element_type: Optional["HostElement"] = None
    taxonomies: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    mark: Optional[str] = None
    description: Optional[str] = None
    comment: Optional[str] = None
    uri: Optional[str] = None
    data_url: Optional[str] = None
    image_url: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    level: Optional[str] = None
    bounds: Optional[BoundsData] = None

    # Face geometry for elements exported outside the host traversal
    # (terrain surfaces).
    meshes: List[HostMesh] = field(default_factory=list)

    # Terrain cut by a building pad: its side faces come out of the host
    # with inverted winding and must be flipped.
    flip_side_faces: bool = False

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if not isinstance(other, HostElement):
            return NotImplemented
        return self.id == other.id


@dataclass
class HostLevel:
    element: HostElement
    elevation: float = 0.0
    extents: Optional[BoundsData] = None


@dataclass
class HostGrid:
    element: HostElement
    start: VectorData = field(default_factory=VectorData)
    end: VectorData = field(default_factory=VectorData)


@dataclass
class HostDocument:
    """A host model file (the main model or a linked one)."""

    id: str
    title: str = ""
    source: Optional[str] = None
    application: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)
    materials: Dict[str, HostMaterial] = field(default_factory=dict)
    levels: List[HostLevel] = field(default_factory=list)
    grids: List[HostGrid] = field(default_factory=list)
    surfaces: List[HostElement] = field(default_factory=list)

    def __hash__(self):
        return hash(self.id)

    def __eq__(self, other):
        if not isinstance(other, HostDocument):
            return NotImplemented
        return self.id == other.id

    def get_material(self, material_id):
        return self.materials.get(material_id)


def category_filter(*categories):
    """Element filter accepting only the given host categories."""
    wanted = set(categories)

    def _filter(element):
        return element.category in wanted

    return _filter
