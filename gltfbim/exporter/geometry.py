"""Geometry intermediate types used between recording and replay.

Host geometry arrives pre-tessellated. While an element is being recorded
its triangles are accumulated into these value types, then frozen into
build actions:

    VectorData     3D point / direction with lexicographic ordering
    FacetData      one triangle (3 vertex indices)
    PrimitiveData  vertex list + facet list (+ optional normals), mergeable
    BoundsData     axis-aligned box, transformable and unionable
    PartData       one material run of an element's geometry

Malformed data raises ValueError at construction so it never reaches the
buffer pool.
"""

from functools import total_ordering

from ..utils.matrix_utils import transform_point, ROUND_DIGITS


# ============================================================================
# Vector / Facet
# ============================================================================

@total_ordering
class VectorData:
    """Immutable 3-component vector."""

    __slots__ = ("x", "y", "z")

    def __init__(self, x=0.0, y=0.0, z=0.0):
        self.x = float(x)
        self.y = float(y)
        self.z = float(z)

    def __add__(self, other):
        return VectorData(self.x + other.x, self.y + other.y, self.z + other.z)

    def __sub__(self, other):
        return VectorData(self.x - other.x, self.y - other.y, self.z - other.z)

    def __truediv__(self, scalar):
        return VectorData(self.x / scalar, self.y / scalar, self.z / scalar)

    def __neg__(self):
        return VectorData(-self.x, -self.y, -self.z)

    def __iter__(self):
        yield self.x
        yield self.y
        yield self.z

    def __eq__(self, other):
        if not isinstance(other, VectorData):
            return NotImplemented
        return (self.x, self.y, self.z) == (other.x, other.y, other.z)

    def __lt__(self, other):
        if not isinstance(other, VectorData):
            return NotImplemented
        return (self.x, self.y, self.z) < (other.x, other.y, other.z)

    def __hash__(self):
        return hash((self.x, self.y, self.z))

    def __repr__(self):
        return f"VectorData({self.x}, {self.y}, {self.z})"

    def transform(self, matrix):
        """Apply a 16-float column-major affine matrix (point semantics)."""
        return VectorData(*transform_point(matrix, (self.x, self.y, self.z)))

    def to_list(self):
        """Components rounded to export resolution."""
        return [round(self.x, ROUND_DIGITS),
                round(self.y, ROUND_DIGITS),
                round(self.z, ROUND_DIGITS)]


class FacetData:
    """Triangle referencing three vertices of its owning primitive."""

    __slots__ = ("v1", "v2", "v3")

    def __init__(self, v1, v2, v3):
        if v1 < 0 or v2 < 0 or v3 < 0:
            raise ValueError(f"Facet indices must be unsigned: ({v1}, {v2}, {v3})")
        self.v1 = int(v1)
        self.v2 = int(v2)
        self.v3 = int(v3)

    def __add__(self, shift):
        return FacetData(self.v1 + shift, self.v2 + shift, self.v3 + shift)

    def __iter__(self):
        yield self.v1
        yield self.v2
        yield self.v3

    def __eq__(self, other):
        if not isinstance(other, FacetData):
            return NotImplemented
        return (self.v1, self.v2, self.v3) == (other.v1, other.v2, other.v3)

    def __hash__(self):
        return hash((self.v1, self.v2, self.v3))

    def __repr__(self):
        return f"FacetData({self.v1}, {self.v2}, {self.v3})"

    def reversed(self):
        """Same triangle with opposite winding."""
        return FacetData(self.v3, self.v2, self.v1)


# ============================================================================
# Primitive batch
# ============================================================================

class PrimitiveData:
    """Indexed triangle batch.

    Every facet index is valid for this batch's own vertex list. Merging two
    batches with ``+`` shifts the right operand's facets by the left
    operand's vertex count, so the invariant holds for the result too.
    Normals are per-vertex and survive a merge only if both sides have them.
    """

    def __init__(self, vertices, faces, normals=None):
        if not vertices:
            raise ValueError("Primitive requires at least one vertex")
        if not faces:
            raise ValueError("Primitive requires at least one facet")

        self.vertices = list(vertices)
        self.faces = list(faces)
        self.normals = list(normals) if normals else None

        count = len(self.vertices)
        for face in self.faces:
            if face.v1 >= count or face.v2 >= count or face.v3 >= count:
                raise ValueError(
                    f"Facet {face!r} references a vertex outside 0..{count - 1}")
        if self.normals is not None and len(self.normals) != count:
            raise ValueError(
                f"Normal count {len(self.normals)} does not match "
                f"vertex count {count}")

    @classmethod
    def from_flat(cls, coords, indices, normals=None):
        """Build a batch from flat [x, y, z, ...] and [i, j, k, ...] lists."""
        if len(coords) % 3 != 0:
            raise ValueError(f"Vertex coordinate count {len(coords)} is not divisible by 3")
        if len(indices) % 3 != 0:
            raise ValueError(f"Index count {len(indices)} is not divisible by 3")
        if normals and len(normals) % 3 != 0:
            raise ValueError(f"Normal component count {len(normals)} is not divisible by 3")

        vertices = [VectorData(*coords[i:i + 3]) for i in range(0, len(coords), 3)]
        faces = [FacetData(*indices[i:i + 3]) for i in range(0, len(indices), 3)]
        norms = None
        if normals:
            norms = [VectorData(*normals[i:i + 3]) for i in range(0, len(normals), 3)]
        return cls(vertices, faces, norms)

    def __add__(self, other):
        shift = len(self.vertices)
        normals = None
        if self.normals is not None and other.normals is not None:
            normals = self.normals + other.normals
        return PrimitiveData(
            self.vertices + other.vertices,
            self.faces + [f + shift for f in other.faces],
            normals,
        )

    def __eq__(self, other):
        if not isinstance(other, PrimitiveData):
            return NotImplemented
        return (self.vertices == other.vertices
                and self.faces == other.faces
                and self.normals == other.normals)

    def __repr__(self):
        return (f"PrimitiveData(vertices={len(self.vertices)}, "
                f"faces={len(self.faces)}, normals={self.normals is not None})")

    def translated(self, offset):
        """Copy with every vertex moved by ``offset``; normals are unchanged."""
        return PrimitiveData(
            [v + offset for v in self.vertices], self.faces, self.normals)

    def flat_vertices(self):
        out = []
        for v in self.vertices:
            out.extend(v.to_list())
        return out

    def flat_normals(self):
        if self.normals is None:
            return None
        out = []
        for n in self.normals:
            out.extend(n.to_list())
        return out

    def flat_indices(self):
        out = []
        for f in self.faces:
            out.extend((f.v1, f.v2, f.v3))
        return out


# ============================================================================
# Bounds
# ============================================================================

class BoundsData:
    """Axis-aligned bounding box; min <= max on every axis."""

    __slots__ = ("min", "max")

    def __init__(self, min, max):
        if min.x > max.x or min.y > max.y or min.z > max.z:
            raise ValueError(f"Bounds min {min!r} exceeds max {max!r}")
        self.min = min
        self.max = max

    @classmethod
    def from_points(cls, points):
        points = list(points)
        if not points:
            raise ValueError("Cannot compute bounds of an empty point set")
        return cls(
            VectorData(min(p.x for p in points),
                       min(p.y for p in points),
                       min(p.z for p in points)),
            VectorData(max(p.x for p in points),
                       max(p.y for p in points),
                       max(p.z for p in points)),
        )

    def __eq__(self, other):
        if not isinstance(other, BoundsData):
            return NotImplemented
        return self.min == other.min and self.max == other.max

    def __hash__(self):
        return hash((self.min, self.max))

    def __repr__(self):
        return f"BoundsData(min={self.min!r}, max={self.max!r})"

    def union(self, other):
        if other is None:
            return self
        return BoundsData(
            VectorData(min(self.min.x, other.min.x),
                       min(self.min.y, other.min.y),
                       min(self.min.z, other.min.z)),
            VectorData(max(self.max.x, other.max.x),
                       max(self.max.y, other.max.y),
                       max(self.max.z, other.max.z)),
        )

    def corners(self):
        lo, hi = self.min, self.max
        return [VectorData(x, y, z)
                for x in (lo.x, hi.x)
                for y in (lo.y, hi.y)
                for z in (lo.z, hi.z)]

    def transform(self, matrix):
        """Axis-aligned box enclosing this box after ``matrix`` is applied."""
        return BoundsData.from_points(c.transform(matrix) for c in self.corners())

    def center(self):
        return self.min + (self.max - self.min) / 2.0

    def to_dict(self):
        return {"min": self.min.to_list(), "max": self.max.to_list()}


# ============================================================================
# Part
# ============================================================================

class PartData:
    """Geometry of one element sharing a single material or color.

    Attributes:
        primitive: PrimitiveData or None until geometry arrives
        material: host material record, or None for color-only parts
        color: (r, g, b) bytes used when there is no material
        transparency: 0..1, used when there is no material
    """

    def __init__(self, primitive=None, material=None, color=None, transparency=0.0):
        self.primitive = primitive
        self.material = material
        self.color = color
        self.transparency = transparency

    def __add__(self, other):
        if self.primitive is None:
            merged = other.primitive
        elif other.primitive is None:
            merged = self.primitive
        else:
            merged = self.primitive + other.primitive
        return PartData(merged, self.material, self.color, self.transparency)

    def append(self, primitive):
        """Merge ``primitive`` into this part in place."""
        if self.primitive is None:
            self.primitive = primitive
        else:
            self.primitive = self.primitive + primitive

    def same_appearance(self, material, color, transparency=0.0):
        if material is not None or self.material is not None:
            return (material is not None and self.material is not None
                    and material.id == self.material.id)
        return self.color == color and self.transparency == transparency

    def __repr__(self):
        mat = self.material.id if self.material is not None else self.color
        return f"PartData({self.primitive!r}, material={mat!r})"
