"""Recording side of the export: host events -> build action queue.

The host walks its model once and calls the on_* methods in order:

    start()
    on_view_begin(view)
        on_element_begin(element)
            on_instance_begin(matrix)
                on_material(...)  on_polymesh(primitive)  ...
            on_instance_end()
        on_element_end()
        on_element_begin(link_instance, link_document=doc)
            on_link_begin(doc)
                ... elements of the linked model ...
            on_link_end(matrix)
        on_element_end()
    on_view_end()
    finish()

Each element's geometry is collected into a stack of parts (one part per
material run) and turned into actions when the element ends. Nothing is
built until build() is called, which may be called again with a
different filter or build configs.
"""

import logging

from .build_actions import (
    SceneBegin, SceneEnd, ElementBegin, ElementEnd,
    LinkBegin, LinkTransform, LinkEnd,
    ElementTransform, ElementBounds, PartFromData, PartFromElement,
    LevelAction, GridAction,
)
from .build_driver import build_actions
from .build_log import BuildLog
from .export_configs import ExportConfigs
from .geometry import BoundsData, PartData, VectorData
from ..utils.matrix_utils import translation

_log = logging.getLogger("gltfbim.export_context")


class ExportContext:
    """Collects build actions from one host traversal.

    Args:
        document: root HostDocument being exported
        configs: ExportConfigs (defaults when None)
        log: BuildLog for the session trace (a new one when None)
    """

    def __init__(self, document, configs=None, log=None):
        self.document = document
        self.configs = configs or ExportConfigs()
        self.log = log or BuildLog()

        self._actions = []          # recorded queue, owned by this context
        self._processed = set()     # element / view ids seen in the root document
        self._documents = [document]
        self._elements = []         # open elements: (element, is_link) or None if skipped
        self._skip_view = False

        # per-element recording state
        self._parts = []            # PartData stack, one per material run
        self._transform = None      # explicit instance transform, if any
        self._instance_matrix = None

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    @property
    def actions(self):
        """Recorded actions (read-only copy)."""
        return tuple(self._actions)

    @property
    def active_document(self):
        return self._documents[-1]

    @property
    def _skipping(self):
        """True outside any element or inside a skipped one."""
        return not self._elements or self._elements[-1] is None

    def _reset_element(self):
        self._parts = []
        self._transform = None
        self._instance_matrix = None

    def reset(self):
        """Drop everything recorded so far."""
        self.log.reset()
        self._actions.clear()
        self._processed.clear()
        self._documents = [self.document]
        self._elements = []
        self._skip_view = False
        self._reset_element()

    def start(self):
        self._processed.clear()
        self._documents = [self.document]
        self._elements = []
        self._skip_view = False
        self._reset_element()
        self.log.log("+ start collect")
        return True

    def finish(self):
        self.log.log("- end collect")
        _log.info("Recorded %d build action(s)", len(self._actions))

    def is_cancelled(self):
        """Poll the cancel token; a cancelled session is reset."""
        cancelled = self.configs.cancel_token.is_cancelled
        if cancelled:
            self.log.log("x cancelled")
            self.reset()
        return cancelled

    def _record_or_skip(self, element_id):
        """True when ``element_id`` was already recorded in the root document."""
        if self.active_document is not self.document:
            return False
        if element_id in self._processed:
            return True
        self._processed.add(element_id)
        return False

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def on_view_begin(self, view):
        """Start a scene for ``view``. Returns False when the view is skipped."""
        if self._record_or_skip(view.id):
            self.log.log_element("x duplicate view", view)
            self._skip_view = True
            return False

        self.log.log_element("+ view begin", view)
        self._actions.append(SceneBegin(view=view))
        self._queue_document_elements(self.active_document)
        return True

    def _queue_document_elements(self, document):
        """Elements the host traversal does not report on its own."""
        for level in document.levels:
            self._actions.append(LevelAction(
                element=level.element, elevation=level.elevation, extents=level.extents))
        for grid in document.grids:
            self._actions.append(GridAction(
                element=grid.element, start=grid.start, end=grid.end))
        for surface in document.surfaces:
            if surface.meshes:
                self._actions.append(PartFromElement(
                    element=surface, meshes=list(surface.meshes)))

    def on_view_end(self):
        if self._skip_view:
            self._skip_view = False
            return
        self.log.log("- view end")
        self._actions.append(SceneEnd())

    # ------------------------------------------------------------------
    # Elements
    # ------------------------------------------------------------------

    def on_element_begin(self, element, link_document=None):
        """Open an element; ``link_document`` marks a link instance.

        Returns:
            False when the host should skip the element's geometry
        """
        self._reset_element()
        is_link = link_document is not None

        if element.element_type is None:
            self.log.log_element("x element without type", element)
            self._elements.append(None)
            return False
        if self._record_or_skip(element.id):
            self.log.log_element("x duplicate element", element)
            self._elements.append(None)
            return False

        if is_link:
            if not self.configs.export_linked_models:
                self.log.log("~ exclude link element")
                self._elements.append(None)
                return False
            self.log.log_element("+ element (link) begin", element)
            self._actions.append(LinkBegin(
                element=element,
                link_type=element.element_type,
                link_document=link_document,
            ))
        else:
            self.log.log_element("+ element begin", element)
            self._actions.append(ElementBegin(
                element=element, element_type=element.element_type))

        self._elements.append((element, is_link))
        return True

    def on_element_end(self):
        if not self._elements:
            raise RuntimeError("on_element_end called without on_element_begin")
        entry = self._elements.pop()
        if entry is None:
            self._reset_element()
            return
        element, is_link = entry

        parts = [p for p in self._parts if p.primitive is not None]
        if parts:
            if self._transform is not None:
                self.log.log("> determine instance bounding box")
                bounds = self._part_bounds(parts, self._transform)
            else:
                self.log.log("> determine bounding box")
                bounds = self._part_bounds(parts)
                self.log.log("> localized transform")
                parts, matrix = self._localize(parts, bounds)
                self._actions.append(ElementTransform(matrix=matrix, element=element))

            self._actions.append(ElementBounds(bounds=bounds, element=element))
            for part in parts:
                self._actions.append(PartFromData(part=part, element=element))
        self._reset_element()

        if is_link:
            self.log.log("- link element end")
            self._actions.append(LinkEnd())
        else:
            self.log.log("- element end")
            self._actions.append(ElementEnd())

    @staticmethod
    def _part_bounds(parts, matrix=None):
        points = []
        for part in parts:
            if matrix is None:
                points.extend(part.primitive.vertices)
            else:
                points.extend(v.transform(matrix) for v in part.primitive.vertices)
        return BoundsData.from_points(points)

    @staticmethod
    def _localize(parts, bounds):
        """Move geometry so the bounds center sits at the origin.

        Returns:
            (shifted parts, translation matrix back to the original place)
        """
        anchor = bounds.center()
        offset = VectorData() - anchor
        shifted = [
            PartData(part.primitive.translated(offset), part.material,
                     part.color, part.transparency)
            for part in parts
        ]
        return shifted, translation(anchor.x, anchor.y, anchor.z)

    # ------------------------------------------------------------------
    # Instances / links
    # ------------------------------------------------------------------

    def on_instance_begin(self, matrix):
        if self._skipping:
            return False
        self.log.log("+ instance begin")
        self._instance_matrix = list(matrix)
        return True

    def on_instance_end(self):
        if self._skipping:
            return
        # only keep the transform if this instance produced geometry
        if self._parts and self._instance_matrix is not None:
            self.log.log("> transform")
            self._transform = self._instance_matrix
            element, _ = self._elements[-1]
            self._actions.append(ElementTransform(matrix=self._transform, element=element))
        self._instance_matrix = None
        self.log.log("- instance end")

    def on_link_begin(self, link_document):
        if not self.configs.export_linked_models:
            self.log.log("~ exclude link document")
            return False
        self._documents.append(link_document)
        self.log.log("+ link document begin")
        return True

    def on_link_end(self, matrix):
        if not self.configs.export_linked_models:
            return
        if len(self._documents) < 2:
            raise RuntimeError("on_link_end called without on_link_begin")
        self.log.log("> transform (link)")
        self._actions.append(LinkTransform(matrix=list(matrix)))
        self._documents.pop()
        self.log.log("- link document end")

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def on_material(self, material=None, color=None, transparency=0.0):
        """Switch the active material; equal consecutive materials are merged."""
        if self._skipping:
            return
        if self._parts and self._parts[-1].same_appearance(material, color, transparency):
            self.log.log("> material keep")
            return
        if material is None:
            self.log.log("x material empty (use color)")
        else:
            self.log.log(f"> material {material.name}")
        self._parts.append(PartData(
            material=material, color=color, transparency=transparency))

    def on_face_begin(self):
        self.log.log("+ face begin")
        return True

    def on_face_end(self):
        self.log.log("- face end")

    def on_polymesh(self, primitive):
        """Add a PrimitiveData to the active material run."""
        if self._skipping:
            return
        if not self._parts:
            self._parts.append(PartData(color=self.configs.default_color))
        self.log.log("> polymesh")
        self._parts[-1].append(primitive)

    # ------------------------------------------------------------------
    # Build
    # ------------------------------------------------------------------

    def build(self, element_filter=None, zone_finder=None, extras_builder=None,
              build_configs=None):
        """Replay the recorded queue into fresh documents.

        Returns:
            list of package items, empty when the session was cancelled
        """
        if self.configs.cancel_token.is_cancelled:
            return []
        return build_actions(
            list(self._actions),
            self.document,
            self.configs,
            element_filter=element_filter,
            zone_finder=zone_finder,
            extras_builder=extras_builder,
            build_configs=build_configs,
            log=self.log,
        )
