"""Matrix helpers bridging glTF column-major lists and mathutils.

glTF stores a node transform as 16 floats in column-major order: element
(row r, column c) lives at index c * 4 + r. mathutils.Matrix is indexed
by row, so every conversion goes through these helpers.
"""

from mathutils import Matrix, Vector


# Relative tolerance for float comparisons of host coordinates
EPSILON = 1.0e-9

# Coordinates are exported at 1/10 mm resolution
ROUND_DIGITS = 4

IDENTITY = [
    1.0, 0.0, 0.0, 0.0,
    0.0, 1.0, 0.0, 0.0,
    0.0, 0.0, 1.0, 0.0,
    0.0, 0.0, 0.0, 1.0,
]


def almost_equals(a, b, epsilon=EPSILON):
    """Compare two floats with a tolerance relative to their magnitude."""
    if a == b:
        return True
    diff = abs(a - b)
    scale = max(abs(a), abs(b), 1.0)
    return diff <= epsilon * scale


def to_matrix(values):
    """Convert a 16-float column-major list into a mathutils.Matrix."""
    if len(values) != 16:
        raise ValueError(f"Expected 16 matrix values, got {len(values)}")
    return Matrix([
        [values[c * 4 + r] for c in range(4)]
        for r in range(4)
    ])


def from_matrix(matrix):
    """Convert a 4x4 mathutils.Matrix into a 16-float column-major list."""
    return [float(matrix[r][c]) for c in range(4) for r in range(4)]


def is_identity(values):
    return all(almost_equals(v, i) for v, i in zip(values, IDENTITY))


def translation(x, y, z):
    """Column-major translation matrix."""
    return from_matrix(Matrix.Translation(Vector((x, y, z))))


def transform_point(values, point):
    """Apply a column-major affine matrix to an (x, y, z) tuple."""
    result = to_matrix(values) @ Vector(point)
    return result.x, result.y, result.z


def multiply(left, right):
    """Column-major product ``left @ right``."""
    return from_matrix(to_matrix(left) @ to_matrix(right))
