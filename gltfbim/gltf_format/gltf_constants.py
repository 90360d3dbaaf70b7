"""glTF 2.0 constants used by the buffer pool and the document builder."""

GLTF_VERSION = "2.0"

# Accessor componentType
UNSIGNED_BYTE = 5121
UNSIGNED_SHORT = 5123
UNSIGNED_INT = 5125
FLOAT = 5126

# BufferView target
ARRAY_BUFFER = 34962
ELEMENT_ARRAY_BUFFER = 34963

# Accessor type
SCALAR = "SCALAR"
VEC3 = "VEC3"

# Mesh primitive attribute names
ATTR_POSITION = "POSITION"
ATTR_NORMAL = "NORMAL"

# Default PBR factors for exported materials
DEFAULT_METALLIC = 0.0
DEFAULT_ROUGHNESS = 1.0

# Custom metadata extension
BIM_EXTENSION = "EXT_bim"

# File naming
GLTF_SUFFIX = ".gltf"
BIN_SUFFIX = ".bin"
PROPERTIES_SUFFIX = "-properties.json"

# Scene opened for each linked-model document
DEFAULT_SCENE_NAME = "default"

# JSON output
JSON_INDENT = 2
