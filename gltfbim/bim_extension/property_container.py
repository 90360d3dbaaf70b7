"""Externalized property records.

When properties are not embedded into each node extension they are
recorded here and written as a separate JSON file next to the glTF
document. Keys, values and whole key/value groups are deduplicated so an
element type shared by thousands of instances is stored once.

JSON layout:
    {
      "records": {"<element id>": [group index, ...]},
      "groups":  [{"keys": [key index, ...], "values": [value index, ...]}],
      "keys":    ["Width", ...],
      "values":  [0.3, ...]
    }
"""

import json

from ..gltf_format.gltf_constants import JSON_INDENT


CONTAINER_TYPE = "properties"


class PropertyContainer:
    """Deduplicating property store referenced from the asset extension."""

    def __init__(self, uri):
        self.uri = uri
        self.records = {}       # element id -> set of group indices
        self.groups = []        # list of (key indices tuple, value indices tuple)
        self.keys = []
        self.values = []
        self._key_index = {}
        self._group_index = {}

    def __eq__(self, other):
        if not isinstance(other, PropertyContainer):
            return NotImplemented
        return self.uri == other.uri

    def __hash__(self):
        return hash(self.uri)

    def has_data(self):
        return bool(self.records)

    def _add_key(self, key):
        index = self._key_index.get(key)
        if index is None:
            index = len(self.keys)
            self.keys.append(key)
            self._key_index[key] = index
        return index

    def _add_value(self, value):
        # values may be unhashable (lists); linear lookup keeps them generic
        for index, existing in enumerate(self.values):
            if type(existing) is type(value) and existing == value:
                return index
        self.values.append(value)
        return len(self.values) - 1

    def record(self, element_id, properties):
        """Store ``properties`` for ``element_id``.

        None values are skipped. Recording the same id again adds another
        group to its record.

        Returns:
            index of the (possibly shared) group
        """
        keys = []
        values = []
        for key, value in properties.items():
            if value is None:
                continue
            keys.append(self._add_key(key))
            values.append(self._add_value(value))

        group = (tuple(keys), tuple(values))
        group_index = self._group_index.get(group)
        if group_index is None:
            group_index = len(self.groups)
            self.groups.append(group)
            self._group_index[group] = group_index

        self.records.setdefault(element_id, set()).add(group_index)
        return group_index

    def to_dict(self):
        """Reference written into the asset extension's containers list."""
        return {"$type": CONTAINER_TYPE, "uri": self.uri}

    def data_dict(self):
        return {
            "records": {eid: sorted(groups) for eid, groups in self.records.items()},
            "groups": [{"keys": list(k), "values": list(v)} for k, v in self.groups],
            "keys": list(self.keys),
            "values": list(self.values),
        }

    def pack(self):
        """Serialized JSON text of the container data."""
        return json.dumps(self.data_dict(), indent=JSON_INDENT)
