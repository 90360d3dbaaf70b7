"""Recorded build actions.

The recording pass turns host events into a flat queue of these records;
the replay driver (build_driver.py) executes them against a GLTFBuilder.
Actions are plain data and are never mutated, so one queue can be
replayed any number of times.

Kinds:
    begin       SceneBegin, ElementBegin, LinkBegin
    end         SceneEnd, ElementEnd, LinkEnd
    element     ElementTransform, ElementBounds, PartFromData,
                PartFromElement, LevelAction, GridAction, LinkTransform

Begin/end actions push/pop the replay filter stack. Element actions are
tested against the filter but never touch the stack.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


# ---------------------------------------------------------------------------
# Scene
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SceneBegin:
    view: Any               # HostElement of the exported view


@dataclass(frozen=True)
class SceneEnd:
    pass


# ---------------------------------------------------------------------------
# Element
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ElementBegin:
    element: Any            # HostElement
    element_type: Any = None
    uri: Optional[str] = None


@dataclass(frozen=True)
class ElementEnd:
    pass


@dataclass(frozen=True)
class ElementTransform:
    matrix: List[float]     # 16 floats, column-major
    element: Any = None


@dataclass(frozen=True)
class ElementBounds:
    bounds: Any             # BoundsData
    element: Any = None


# ---------------------------------------------------------------------------
# Link
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class LinkBegin:
    element: Any            # link instance element
    link_type: Any = None
    link_document: Any = None
    uri: Optional[str] = None

    @property
    def link_id(self):
        return self.link_document.id if self.link_document is not None else self.element.id


@dataclass(frozen=True)
class LinkTransform:
    matrix: List[float]
    element: Any = None


@dataclass(frozen=True)
class LinkEnd:
    pass


# ---------------------------------------------------------------------------
# Geometry / standalone elements
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class PartFromData:
    part: Any               # PartData
    element: Any = None


@dataclass(frozen=True)
class PartFromElement:
    """Geometry read from the element itself, outside the host traversal."""

    element: Any
    meshes: List[Any] = field(default_factory=list)    # HostMesh


@dataclass(frozen=True)
class LevelAction:
    element: Any
    elevation: float = 0.0
    extents: Any = None     # BoundsData or None


@dataclass(frozen=True)
class GridAction:
    element: Any
    start: Any = None       # VectorData
    end: Any = None


BEGIN_ACTIONS = (SceneBegin, ElementBegin, LinkBegin)
END_ACTIONS = (SceneEnd, ElementEnd, LinkEnd)


def is_begin(action):
    return isinstance(action, BEGIN_ACTIONS)


def is_end(action):
    return isinstance(action, END_ACTIONS)


def element_of(action):
    """Element an action is filtered on (None for scene/end actions)."""
    if isinstance(action, SceneBegin):
        return action.view
    return getattr(action, "element", None)
