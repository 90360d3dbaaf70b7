"""EXT_bim extension payloads.

Three payload kinds are attached to the glTF document:

    BIMAssetExtension     on asset: document identity, level/grid node
                          indices, external property containers
    BIMNodeExtension      on every element / type node: identity,
                          taxonomy, properties, level, zones, bounds
    BIMMaterialExtension  on materials created from host materials

Properties are either embedded into the payload or, when a
PropertyContainer is supplied, recorded into it under the element id and
left out of the payload.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


def _compact(mapping):
    return {k: v for k, v in mapping.items() if v is not None and v != [] and v != {}}


def _resolve_properties(element_id, properties, include_properties, container):
    """Embedded properties, or None after recording into ``container``."""
    if not include_properties or not properties:
        return None
    if container is None:
        return dict(properties)
    container.record(element_id, properties)
    return None


@dataclass
class BIMNodeExtension:
    id: str
    taxonomies: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    mark: Optional[str] = None
    description: Optional[str] = None
    comment: Optional[str] = None
    uri: Optional[str] = None
    data_url: Optional[str] = None
    image_url: Optional[str] = None
    properties: Optional[Dict[str, Any]] = None
    level: Optional[str] = None
    zones: List[str] = field(default_factory=list)
    bounds: Optional[Any] = None    # BoundsData, set during bounds aggregation

    @classmethod
    def from_element(cls, element, zone_finder=None, include_properties=True,
                     container=None, uri=None):
        """Build the node payload for a host element (or element type).

        Args:
            element: HostElement
            zone_finder: callable(element) -> list of zone ids, or None
            include_properties: export element properties at all
            container: PropertyContainer to record into instead of embedding
            uri: reference to an external document (linked models)
        """
        zones = list(zone_finder(element)) if zone_finder is not None else []
        return cls(
            id=element.id,
            taxonomies=list(element.taxonomies),
            classes=list(element.classes),
            mark=element.mark,
            description=element.description,
            comment=element.comment,
            uri=uri if uri is not None else element.uri,
            data_url=element.data_url,
            image_url=element.image_url,
            properties=_resolve_properties(
                element.id, element.properties, include_properties, container),
            level=element.level,
            zones=zones,
        )

    def to_dict(self):
        return _compact({
            "id": self.id,
            "taxonomies": self.taxonomies,
            "classes": self.classes,
            "mark": self.mark,
            "description": self.description,
            "comment": self.comment,
            "uri": self.uri,
            "dataUrl": self.data_url,
            "imageUrl": self.image_url,
            "properties": self.properties,
            "level": self.level,
            "zones": self.zones,
            "bounds": self.bounds.to_dict() if self.bounds is not None else None,
        })


@dataclass
class BIMMaterialExtension:
    id: str
    taxonomies: List[str] = field(default_factory=list)
    classes: List[str] = field(default_factory=list)
    properties: Optional[Dict[str, Any]] = None

    @classmethod
    def from_material(cls, material, include_properties=True, container=None):
        return cls(
            id=material.id,
            taxonomies=list(material.taxonomies),
            classes=list(material.classes),
            properties=_resolve_properties(
                material.id, material.properties, include_properties, container),
        )

    def to_dict(self):
        return _compact({
            "id": self.id,
            "taxonomies": self.taxonomies,
            "classes": self.classes,
            "properties": self.properties,
        })


@dataclass
class BIMAssetExtension:
    id: str
    application: Optional[str] = None
    title: Optional[str] = None
    source: Optional[str] = None
    levels: List[int] = field(default_factory=list)
    grids: List[int] = field(default_factory=list)
    containers: List[Any] = field(default_factory=list)
    properties: Optional[Dict[str, Any]] = None

    @classmethod
    def from_document(cls, document, include_properties=True, container=None):
        ext = cls(
            id=document.id,
            application=document.application,
            title=document.title,
            source=document.source,
        )
        if include_properties and document.properties:
            if container is None:
                ext.properties = dict(document.properties)
            else:
                container.record(document.id, document.properties)
                ext.add_container(container)
        return ext

    def add_container(self, container):
        if container not in self.containers:
            self.containers.append(container)

    def to_dict(self):
        return _compact({
            "application": self.application,
            "id": self.id,
            "title": self.title,
            "source": self.source,
            "levels": self.levels,
            "grids": self.grids,
            "containers": [c.to_dict() for c in self.containers],
            "properties": self.properties,
        })
