"""In-memory glTF document builder.

Assembles one output document (scenes, nodes, meshes, materials and the
buffer pool) through an explicit open-node stack:

    builder = GLTFBuilder("model")
    builder.open_scene("Level 1")
    builder.open_node("Wall")            # root of the open scene
    builder.open_node("Wall 1234")       # child of "Wall"
    builder.add_primitive(coords, indices)
    builder.close_node()                 # pending primitives -> mesh
    builder.close_node()
    builder.close_scene()
    items = builder.pack()

Rules enforced here:
    - a node has at most one parent (tracked in a parent-index map)
    - geometry, materials and transforms need an open node
    - nodes only open inside an open scene
    - meshes and materials are deduplicated by value, buffers by content

Any violation raises GLTFBuilderError: it means the caller replayed
actions in the wrong order, so there is nothing to recover.
"""

import json
import logging

from ..gltf_format.buffer_pool import BufferPool
from ..gltf_format.buffer_segments import VectorSegment, make_index_segment
from ..gltf_format.gltf_package import PackageJsonItem, PackageBinaryItem
from ..gltf_format.gltf_schema import (
    GLTFAsset, GLTFScene, GLTFNode, GLTFMesh, GLTFMeshPrimitive,
    GLTFMaterial, GLTFPBR,
)
from ..gltf_format.gltf_constants import (
    ATTR_POSITION, ATTR_NORMAL, GLTF_SUFFIX, JSON_INDENT,
)

_log = logging.getLogger("gltfbim.builder")


class GLTFBuilderError(RuntimeError):
    """Builder used out of order (broken recording / replay contract)."""


class _OpenNode:
    """Stack frame: node index + primitives queued against it."""

    __slots__ = ("index", "primitives")

    def __init__(self, index):
        self.index = index
        self.primitives = []


class GLTFBuilder:
    """Builds one glTF document; see module docstring for usage."""

    def __init__(self, name):
        self.name = name
        self.asset = GLTFAsset()
        self.scenes = []
        self.nodes = []
        self.meshes = []
        self.materials = []
        self.extensions_used = []   # ordered, unique extension names

        self._pool = BufferPool()
        self._active_scene = None   # index into scenes, None when closed
        self._stack = []            # list of _OpenNode
        self._parents = {}          # child node index -> parent node index

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    @property
    def pool(self):
        return self._pool

    @property
    def stack_depth(self):
        return len(self._stack)

    @property
    def active_scene_index(self):
        return self._active_scene

    @property
    def active_node_index(self):
        return self._stack[-1].index if self._stack else None

    def get_node(self, index):
        if index is None or not 0 <= index < len(self.nodes):
            raise GLTFBuilderError(f"Node index {index} does not exist")
        return self.nodes[index]

    def get_active_node(self):
        if not self._stack:
            raise GLTFBuilderError("No open node")
        return self.nodes[self._stack[-1].index]

    def _require_scene(self):
        if self._active_scene is None:
            raise GLTFBuilderError("No open scene")
        return self.scenes[self._active_scene]

    def _require_frame(self):
        if not self._stack:
            raise GLTFBuilderError("No open node")
        return self._stack[-1]

    # ------------------------------------------------------------------
    # Asset / extensions
    # ------------------------------------------------------------------

    def use_extension(self, name):
        if name not in self.extensions_used:
            self.extensions_used.append(name)

    def _use_extensions(self, extensions):
        for name in (extensions or {}):
            self.use_extension(name)

    def set_asset(self, generator=None, copyright=None, extensions=None, extras=None):
        self.asset = GLTFAsset(
            generator=generator,
            copyright=copyright,
            extensions=dict(extensions or {}),
            extras=extras,
        )
        self._use_extensions(extensions)
        return self.asset

    # ------------------------------------------------------------------
    # Scenes
    # ------------------------------------------------------------------

    def open_scene(self, name, extensions=None, extras=None):
        if self._active_scene is not None:
            raise GLTFBuilderError(
                f"Scene {self._active_scene} is still open, cannot open {name!r}")
        self.scenes.append(GLTFScene(
            name=name, extensions=dict(extensions or {}), extras=extras))
        self._use_extensions(extensions)
        self._active_scene = len(self.scenes) - 1
        return self._active_scene

    def close_scene(self):
        self._require_scene()
        if self._stack:
            raise GLTFBuilderError(
                f"Cannot close scene with {len(self._stack)} open node(s)")
        self._active_scene = None

    # ------------------------------------------------------------------
    # Node stack
    # ------------------------------------------------------------------

    def _attach(self, index):
        """Register ``index`` under the current top, or as a scene root."""
        if self._stack:
            parent = self._stack[-1].index
            current = self._parents.get(index)
            if current is not None and current != parent:
                raise GLTFBuilderError(
                    f"Node {index} already has parent {current}, cannot attach to {parent}")
            if index == parent or self._is_ancestor(index, parent):
                raise GLTFBuilderError(f"Attaching node {index} under {parent} creates a cycle")
            self.nodes[parent].children.add(index)
            self._parents[index] = parent
        else:
            if index in self._parents:
                raise GLTFBuilderError(
                    f"Node {index} has parent {self._parents[index]}, cannot be a scene root")
            self.scenes[self._active_scene].add_root(index)

    def _is_ancestor(self, candidate, index):
        parent = self._parents.get(index)
        while parent is not None:
            if parent == candidate:
                return True
            parent = self._parents.get(parent)
        return False

    def open_node(self, name, matrix=None, extensions=None, extras=None):
        """Create a node under the current top (or the scene) and push it."""
        self._require_scene()
        node = GLTFNode(
            name=name,
            matrix=list(matrix) if matrix is not None else None,
            extensions=dict(extensions or {}),
            extras=extras,
        )
        self.nodes.append(node)
        index = len(self.nodes) - 1
        self._use_extensions(extensions)
        self._attach(index)
        self._stack.append(_OpenNode(index))
        return index

    def open_existing_node(self, index):
        """Push a previously created node again."""
        self._require_scene()
        self.get_node(index)
        if any(frame.index == index for frame in self._stack):
            raise GLTFBuilderError(f"Node {index} is already open")
        self._attach(index)
        self._stack.append(_OpenNode(index))
        return index

    def close_node(self):
        """Pop the stack, turning queued primitives into the node's mesh."""
        if not self._stack:
            raise GLTFBuilderError("close_node called with no open node")
        frame = self._stack.pop()
        if frame.primitives:
            node = self.nodes[frame.index]
            primitives = list(frame.primitives)
            if node.mesh is not None:
                # reopened node: keep what it already had
                primitives = list(self.meshes[node.mesh].primitives) + primitives
            node.mesh = self._intern_mesh(GLTFMesh(primitives=primitives))
        return frame.index

    def _intern_mesh(self, mesh):
        for index, existing in enumerate(self.meshes):
            if existing == mesh:
                return index
        self.meshes.append(mesh)
        return len(self.meshes) - 1

    def set_node_matrix(self, matrix):
        node = self.get_active_node()
        node.matrix = list(matrix) if matrix is not None else None

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def find_node(self, predicate):
        """First node (global search) satisfying ``predicate(node)``."""
        for index, node in enumerate(self.nodes):
            if predicate(node):
                return index
        return None

    def find_child_node(self, predicate):
        """Search only the open node's children (scene roots if none open)."""
        if self._stack:
            candidates = sorted(self.nodes[self._stack[-1].index].children)
        elif self._active_scene is not None:
            candidates = self.scenes[self._active_scene].nodes
        else:
            return None
        for index in candidates:
            if predicate(self.nodes[index]):
                return index
        return None

    def find_parent_node(self, index):
        self.get_node(index)
        return self._parents.get(index)

    def find_material(self, predicate):
        for index, material in enumerate(self.materials):
            if predicate(material):
                return index
        return None

    # ------------------------------------------------------------------
    # Bounds
    # ------------------------------------------------------------------

    @staticmethod
    def _store_bounds(node, bounds):
        node.bounds = bounds if node.bounds is None else node.bounds.union(bounds)
        for ext in node.extensions.values():
            if hasattr(ext, "bounds"):
                ext.bounds = node.bounds
        return node.bounds

    def update_bounds(self, index, bounds, propagate=True):
        """Union ``bounds`` into node ``index`` and into all its ancestors.

        Args:
            propagate: False to leave ancestors untouched (reference
                nodes such as levels whose extents are not geometry)

        Returns:
            the node's bounds after the union
        """
        node = self.get_node(index)
        expanded = self._store_bounds(node, bounds)
        if not propagate:
            return expanded
        parent = self._parents.get(index)
        while parent is not None:
            self._store_bounds(self.nodes[parent], expanded)
            parent = self._parents.get(parent)
        return expanded

    # ------------------------------------------------------------------
    # Geometry / materials
    # ------------------------------------------------------------------

    def add_primitive(self, vertices, indices, normals=None):
        """Queue a primitive on the open node.

        Args:
            vertices: flat [x, y, z, ...] floats
            indices: flat triangle indices into ``vertices``
            normals: optional flat normals, one per vertex

        Returns:
            position of the primitive among the open node's queued
            primitives (used by add_material / update_material)
        """
        frame = self._require_frame()

        positions = VectorSegment(vertices)
        index_segment = make_index_segment(indices)
        if max(index_segment.data) >= positions.count:
            raise ValueError(
                f"Index {max(index_segment.data)} out of range for "
                f"{positions.count} vertices")

        attributes = {ATTR_POSITION: self._pool.intern(positions)}
        if normals:
            normal_segment = VectorSegment(normals)
            if normal_segment.count != positions.count:
                raise ValueError(
                    f"{normal_segment.count} normals for {positions.count} vertices")
            attributes[ATTR_NORMAL] = self._pool.intern(normal_segment)

        frame.primitives.append(GLTFMeshPrimitive(
            attributes=attributes,
            indices=self._pool.intern(index_segment),
        ))
        return len(frame.primitives) - 1

    def add_material(self, primitive_index, name, color, extensions=None, extras=None):
        """Create (or reuse an identical) material and bind it to a primitive.

        Args:
            primitive_index: value returned by add_primitive
            name: material name
            color: RGBA base color factor, floats in 0..1

        Returns:
            material index
        """
        self._require_frame()
        material = GLTFMaterial(
            name=name,
            pbr=GLTFPBR(base_color_factor=list(color)),
            extensions=dict(extensions or {}),
            extras=extras,
        )
        index = self.find_material(lambda m: m == material)
        if index is None:
            self.materials.append(material)
            index = len(self.materials) - 1
            self._use_extensions(extensions)
        self.update_material(primitive_index, index)
        return index

    def update_material(self, primitive_index, material_index):
        frame = self._require_frame()
        if not 0 <= primitive_index < len(frame.primitives):
            raise GLTFBuilderError(
                f"Primitive {primitive_index} is not queued on node {frame.index}")
        if not 0 <= material_index < len(self.materials):
            raise GLTFBuilderError(f"Material index {material_index} does not exist")
        frame.primitives[primitive_index].material = material_index

    # ------------------------------------------------------------------
    # Pack
    # ------------------------------------------------------------------

    def to_dict(self, packed):
        doc = {
            "asset": self.asset.to_dict(),
            "extensionsUsed": list(self.extensions_used),
            "scene": 0 if self.scenes else None,
            "scenes": [s.to_dict() for s in self.scenes],
            "nodes": [n.to_dict() for n in self.nodes],
            "meshes": [m.to_dict() for m in self.meshes],
            "materials": [m.to_dict() for m in self.materials],
            "accessors": [a.to_dict() for a in packed.accessors],
            "bufferViews": [v.to_dict() for v in packed.buffer_views],
            "buffers": [b.to_dict() for b in packed.buffers],
        }
        return {k: v for k, v in doc.items() if v is not None and v != []}

    def pack(self, single_binary=True):
        """Serialize the document.

        Returns:
            list of package items: "<name>.gltf" first, then the .bin file(s)

        Raises:
            GLTFBuilderError: a node or scene is still open
        """
        if self._stack:
            raise GLTFBuilderError(f"Cannot pack {self.name!r} with {len(self._stack)} open node(s)")
        if self._active_scene is not None:
            raise GLTFBuilderError(f"Cannot pack {self.name!r} with an open scene")

        packed = self._pool.pack(self.name, single_binary=single_binary)
        text = json.dumps(self.to_dict(packed), indent=JSON_INDENT)

        items = [PackageJsonItem(self.name + GLTF_SUFFIX, text)]
        items.extend(PackageBinaryItem(uri, blob) for uri, blob in packed.blobs)

        _log.info("Packed %s: %d scene(s), %d node(s), %d mesh(es), %d material(s), "
                  "%d buffer segment(s)", self.name, len(self.scenes), len(self.nodes),
                  len(self.meshes), len(self.materials), len(self._pool))
        return items
