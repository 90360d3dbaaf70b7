"""Replay of a recorded action queue into glTF documents.

One replay walks the queue once, front to back:

    - every begin action evaluates the element filter and pushes the
      result; its matching end action pops it and only runs if the begin
      ran, so the builder's node stack never desyncs
    - element actions run only while every enclosing begin passed (a
      rejected element takes its transform / bounds / geometry with it)
      and their own element, if any, passes the filter
    - scene and link begins always pass
    - when linked models are not embedded, everything between a link begin
      and its link transform goes to a separate BuildContext, packed as
      its own document; links nest, and a linked model that appears
      again only gets another instance node pointing at the same document

Each replay creates fresh BuildContexts, so the same queue can be replayed
with different filters or build configs.
"""

import logging

from .build_actions import (
    SceneBegin, SceneEnd, ElementBegin, ElementEnd,
    LinkBegin, LinkTransform, LinkEnd,
    ElementTransform, ElementBounds, PartFromData, PartFromElement,
    LevelAction, GridAction,
    is_begin, is_end, element_of,
)
from .build_log import NullBuildLog
from .export_configs import BuildConfigs
from .geometry import BoundsData, PrimitiveData
from .gltf_builder import GLTFBuilder, GLTFBuilderError
from ..bim_extension.bim_extension import (
    BIMAssetExtension, BIMNodeExtension, BIMMaterialExtension,
)
from ..bim_extension.property_container import PropertyContainer
from ..gltf_format.gltf_constants import (
    BIM_EXTENSION, DEFAULT_SCENE_NAME, GLTF_SUFFIX, PROPERTIES_SUFFIX,
)
from ..gltf_format.gltf_package import PackageJsonItem
from ..utils.matrix_utils import IDENTITY, almost_equals

_log = logging.getLogger("gltfbim.build_driver")


# ============================================================================
# Helpers
# ============================================================================

def color_id(color):
    """Material name for color-only parts, e.g. "#ff8000"."""
    r, g, b = color
    return f"#{r:02x}{g:02x}{b:02x}"


def color_factor(color, transparency=0.0):
    """RGB bytes + transparency -> glTF RGBA base color factor."""
    r, g, b = color
    return [r / 255.0, g / 255.0, b / 255.0, 1.0 - transparency]


def bim_id_of(gltf_object):
    """Element id stored in an object's BIM extension, or None."""
    ext = gltf_object.extensions.get(BIM_EXTENSION)
    return getattr(ext, "id", None)


def level_matrix(elevation):
    """Translation along the up (Y) axis; None at elevation 0."""
    if elevation == 0:
        return None
    matrix = list(IDENTITY)
    matrix[13] = float(elevation)
    return matrix


def flip_side_faces(primitive):
    """Reverse the winding of non-horizontal triangles.

    A triangle is horizontal when the average Y (up) of its vertices
    equals the Y of its first vertex. Only used for terrain cut by a
    building pad, whose side faces come out of the host inside-out.
    """
    faces = []
    for face in primitive.faces:
        y0 = primitive.vertices[face.v1].y
        y_avg = (y0
                 + primitive.vertices[face.v2].y
                 + primitive.vertices[face.v3].y) / 3.0
        if almost_equals(y_avg, y0):
            faces.append(face)
        else:
            faces.append(face.reversed())
    return PrimitiveData(primitive.vertices, faces, primitive.normals)


# ============================================================================
# Build context
# ============================================================================

class BuildContext:
    """One output document: builder, asset extension, property container."""

    def __init__(self, name, document, configs, extras_builder=None):
        self.name = name
        self.document = document
        self.configs = configs
        self.builder = GLTFBuilder(name)

        self.property_container = None
        if configs.export_properties and not configs.embed_properties:
            self.property_container = PropertyContainer(name + PROPERTIES_SUFFIX)

        self.asset_extension = BIMAssetExtension.from_document(
            document,
            include_properties=configs.export_properties,
            container=self.property_container,
        )
        self.builder.set_asset(
            generator=configs.generator_id,
            copyright=configs.copyright_message,
            extensions={BIM_EXTENSION: self.asset_extension},
            extras=extras_builder(document) if extras_builder else None,
        )

    def pack(self, build_configs=None):
        build_configs = build_configs or BuildConfigs()
        container = self.property_container
        if container is not None and container.has_data():
            self.asset_extension.add_container(container)

        items = self.builder.pack(single_binary=build_configs.single_binary(self.configs))
        if container is not None and container.has_data():
            items.append(PackageJsonItem(container.uri, container.pack()))
        return items


# ============================================================================
# Replay
# ============================================================================

class _OpenLink:
    """Stack frame: a link instance being replayed.

    ``context`` is None for embedded links. ``muted`` is set for a repeated
    link document, whose content was already built by its first instance;
    everything up to its link transform is skipped.
    """

    __slots__ = ("context", "previous", "owner", "muted")

    def __init__(self, context, previous, owner=False, muted=False):
        self.context = context
        self.previous = previous        # context to return to
        self.owner = owner              # opened the link document's scene
        self.muted = muted


class ActionReplayer:
    """Executes recorded actions against BuildContexts.

    Args:
        document: main HostDocument
        configs: ExportConfigs of the recording
        element_filter: callable(element) -> bool, None accepts everything
        zone_finder: callable(element) -> list of zone ids
        extras_builder: callable(element or document) -> extras or None
        log: BuildLog for the session trace
    """

    def __init__(self, document, configs, element_filter=None,
                 zone_finder=None, extras_builder=None, log=None):
        self.document = document
        self.configs = configs
        self.element_filter = element_filter
        self.zone_finder = zone_finder
        self.extras_builder = extras_builder
        self.log = log or NullBuildLog()

        # one dispatch entry per action kind
        self._handlers = {
            SceneBegin: self._scene_begin,
            SceneEnd: self._scene_end,
            ElementBegin: self._element_begin,
            ElementEnd: self._element_end,
            LinkBegin: self._link_begin,
            LinkTransform: self._link_transform,
            LinkEnd: self._link_end,
            ElementTransform: self._element_transform,
            ElementBounds: self._element_bounds,
            PartFromData: self._part_from_data,
            PartFromElement: self._part_from_element,
            LevelAction: self._level,
            GridAction: self._grid,
        }

        self._main = None
        self._current = None
        self._links = []            # _OpenLink stack
        self._link_contexts = {}    # link document id -> BuildContext
        self._contexts = []
        self._type_open = []        # per open element: type node opened too

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def _passes(self, action):
        if isinstance(action, (SceneBegin, LinkBegin)):
            return True
        if self.element_filter is None:
            return True
        element = element_of(action)
        if element is None:
            return True
        return bool(self.element_filter(element))

    def replay(self, actions, build_configs=None):
        """Run ``actions`` once and pack every resulting document.

        Returns:
            list of package items, main document first, then one
            document per distinct linked model in encounter order

        Raises:
            GLTFBuilderError: unbalanced or out-of-order actions
        """
        self._main = BuildContext(self.configs.name, self.document,
                                  self.configs, self.extras_builder)
        self._current = self._main
        self._links = []
        self._link_contexts = {}
        self._contexts = [self._main]
        self._type_open = []

        passes = []
        self.log.log("+ start build")
        for action in actions:
            handler = self._handlers.get(type(action))
            if handler is None:
                raise GLTFBuilderError(f"Unknown build action {action!r}")

            if is_begin(action):
                enclosing = all(passes)
                passed = not self._muted and self._passes(action) and (
                    enclosing or isinstance(action, (SceneBegin, LinkBegin)))
                passes.append(passed)
                if passed:
                    handler(action)
            elif is_end(action):
                if not passes:
                    raise GLTFBuilderError(f"{type(action).__name__} without matching begin")
                if passes.pop():
                    handler(action)
            # element actions need every enclosing begin to have passed,
            # plus their own element
            elif all(passes) and self._passes(action):
                if not self._muted or isinstance(action, LinkTransform):
                    handler(action)

        if passes:
            raise GLTFBuilderError(f"{len(passes)} begin action(s) never ended")
        self.log.log("- end build")

        self.log.log("+ start pack")
        items = []
        for context in self._contexts:
            items.extend(context.pack(build_configs))
        self.log.log("- end pack")
        return items

    @property
    def _muted(self):
        return bool(self._links) and self._links[-1].muted

    @property
    def _builder(self):
        return self._current.builder

    def _container(self):
        return self._current.property_container

    def _extras(self, obj):
        return self.extras_builder(obj) if self.extras_builder else None

    def _node_extension(self, element, uri=None, zones=True):
        ext = BIMNodeExtension.from_element(
            element,
            zone_finder=self.zone_finder if zones else None,
            include_properties=self.configs.export_properties,
            container=self._container(),
            uri=uri,
        )
        return {BIM_EXTENSION: ext}

    # ------------------------------------------------------------------
    # Scene
    # ------------------------------------------------------------------

    def _scene_begin(self, action):
        view = action.view
        self.log.log_element("+ scene begin", view)
        builder = self._builder
        builder.open_scene(
            name=view.name,
            extensions=self._node_extension(view, zones=False),
            extras=self._extras(view),
        )
        # root node holding the whole view
        builder.open_node(name=view.name, matrix=list(IDENTITY))

    def _scene_end(self, action):
        self.log.log("- scene end")
        self._builder.close_node()
        self._builder.close_scene()

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    def _open_element_node(self, element, uri=None, zones=True):
        """Reopen the sibling node carrying ``element``'s id, or create it."""
        builder = self._builder
        index = builder.find_child_node(lambda n: bim_id_of(n) == element.id)
        if index is not None:
            return builder.open_existing_node(index), False
        index = builder.open_node(
            name=element.name,
            extensions=self._node_extension(element, uri=uri, zones=zones),
            extras=self._extras(element),
        )
        return index, True

    def _open_element(self, element, element_type, uri):
        with_type = self.configs.export_hierarchy and element_type is not None
        if with_type:
            self._open_element_node(element_type, zones=False)
        self._type_open.append(with_type)

        index, created = self._open_element_node(element, uri=uri)
        if created and element.bounds is not None:
            self._builder.update_bounds(index, element.bounds)

    def _element_begin(self, action):
        self.log.log_element("+ element begin", action.element)
        self._open_element(action.element, action.element_type, action.uri)

    def _element_end(self, action):
        self.log.log("- element end")
        if not self._type_open:
            raise GLTFBuilderError("Element end without an open element")
        self._builder.close_node()
        if self._type_open.pop():
            self._builder.close_node()

    def _element_transform(self, action):
        self.log.log("> transform")
        self._builder.set_node_matrix(action.matrix)

    def _element_bounds(self, action):
        self.log.log("> bounds")
        builder = self._builder
        builder.update_bounds(builder.active_node_index, action.bounds)

    # ------------------------------------------------------------------
    # Links
    # ------------------------------------------------------------------

    def _link_begin(self, action):
        self.log.log_element("+ link begin", action.element)
        embed = self.configs.embed_linked_models
        uri = action.uri
        if not embed and uri is None:
            uri = action.link_id + GLTF_SUFFIX
        self._open_element(action.element, action.link_type, uri)

        if embed:
            self._links.append(_OpenLink(None, self._current))
            return
        if action.link_document is None:
            raise GLTFBuilderError(f"Link {action.element.id} has no document")

        context = self._link_contexts.get(action.link_id)
        if context is not None:
            # one document per linked model; later instances only reference it
            self.log.log("~ link document already built")
            self._links.append(_OpenLink(context, self._current, muted=True))
            return

        context = BuildContext(action.link_id, action.link_document,
                               self.configs, self.extras_builder)
        context.builder.open_scene(DEFAULT_SCENE_NAME)
        self._link_contexts[action.link_id] = context
        self._contexts.append(context)
        self._links.append(_OpenLink(context, self._current, owner=True))
        self._current = context

    def _link_transform(self, action):
        self.log.log("> link transform")
        if not self._links:
            raise GLTFBuilderError("Link transform without an open link")
        link = self._links[-1]
        link.muted = False
        self._current = link.previous
        self._builder.set_node_matrix(action.matrix)

    def _link_end(self, action):
        self.log.log("- link end")
        if not self._links:
            raise GLTFBuilderError("Link end without an open link")
        link = self._links.pop()
        if link.owner:
            link.context.builder.close_scene()
        self._current = link.previous
        self._element_end(action)

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def _bind_material(self, primitive_index, material, color, transparency):
        builder = self._builder
        if material is None:
            color = color or self.configs.default_color
            name = color_id(color)
            index = builder.find_material(lambda m: m.name == name)
            if index is not None:
                builder.update_material(primitive_index, index)
            else:
                builder.add_material(primitive_index, name,
                                     color_factor(color, transparency))
            return

        index = builder.find_material(lambda m: bim_id_of(m) == material.id)
        if index is not None:
            builder.update_material(primitive_index, index)
            return
        ext = BIMMaterialExtension.from_material(
            material,
            include_properties=self.configs.export_properties,
            container=self._container(),
        )
        builder.add_material(
            primitive_index,
            material.name,
            color_factor(material.color or self.configs.default_color,
                         material.transparency),
            extensions={BIM_EXTENSION: ext},
        )

    def _add_primitive(self, primitive):
        return self._builder.add_primitive(
            primitive.flat_vertices(),
            primitive.flat_indices(),
            primitive.flat_normals(),
        )

    def _part_from_data(self, action):
        self.log.log("> primitive")
        part = action.part
        if part.primitive is None:
            return
        index = self._add_primitive(part.primitive)
        self._bind_material(index, part.material, part.color, part.transparency)

    def _part_from_element(self, action):
        element = action.element
        self.log.log_element("> custom element", element)
        builder = self._builder
        for mesh in action.meshes:
            primitive = mesh.primitive
            if element.flip_side_faces:
                primitive = flip_side_faces(primitive)
            node_index = builder.open_node(
                name=element.name,
                extensions=self._node_extension(element),
                extras=self._extras(element),
            )
            index = self._add_primitive(primitive)
            if mesh.material is not None:
                self._bind_material(index, mesh.material, None, 0.0)
            builder.update_bounds(node_index, BoundsData.from_points(primitive.vertices))
            builder.close_node()

    # ------------------------------------------------------------------
    # Levels / grids
    # ------------------------------------------------------------------

    def _level(self, action):
        element = action.element
        self.log.log_element("> level", element)
        builder = self._builder
        index = builder.open_node(
            name=element.name,
            matrix=level_matrix(action.elevation),
            extensions=self._node_extension(element, zones=False),
            extras=self._extras(element),
        )
        if action.extents is not None:
            builder.update_bounds(index, action.extents, propagate=False)
        builder.close_node()
        self._current.asset_extension.levels.append(index)

    def _grid(self, action):
        element = action.element
        self.log.log_element("> grid", element)
        if action.start is None or action.end is None:
            _log.warning("Grid %s has no line, skipped", element.id)
            return
        builder = self._builder
        index = builder.open_node(
            name=element.name,
            extensions=self._node_extension(element, zones=False),
            extras=self._extras(element),
        )
        builder.update_bounds(index, BoundsData.from_points([action.start, action.end]),
                              propagate=False)
        builder.close_node()
        self._current.asset_extension.grids.append(index)


def build_actions(actions, document, configs, element_filter=None,
                  zone_finder=None, extras_builder=None, build_configs=None,
                  log=None):
    """Replay ``actions`` once with fresh builders; see ActionReplayer."""
    replayer = ActionReplayer(document, configs, element_filter=element_filter,
                              zone_finder=zone_finder, extras_builder=extras_builder,
                              log=log)
    return replayer.replay(actions, build_configs=build_configs)
