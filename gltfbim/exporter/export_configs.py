"""Export and build configuration.

ExportConfigs is fixed for a recording session; BuildConfigs may differ
for each replay of the same recording.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple


class CancelToken:
    """Cooperative cancellation flag polled between host events."""

    def __init__(self):
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    def reset(self):
        self._cancelled = False

    @property
    def is_cancelled(self):
        return self._cancelled


@dataclass
class ExportConfigs:
    """Recording / replay options."""

    # Output document name; buffers are "<name>.bin"
    name: str = "model"

    # One .bin per document (True) or one .bin per buffer segment
    use_single_binary: bool = True

    # Record linked models at all, and whether they go into the main
    # document (embedded) or into one document per link
    export_linked_models: bool = True
    embed_linked_models: bool = False

    # Open an element-type node above every element instance
    export_hierarchy: bool = True

    # Element properties: export them, and embed them in the node
    # extension (True) or write a separate "<name>-properties.json"
    export_properties: bool = True
    embed_properties: bool = True

    # Written into asset.generator / asset.copyright
    generator_id: Optional[str] = "gltfbim"
    copyright_message: Optional[str] = None

    # RGB color of geometry that arrives without material or color
    default_color: Tuple[int, int, int] = (250, 250, 250)

    cancel_token: CancelToken = field(default_factory=CancelToken)


@dataclass
class BuildConfigs:
    """Per-replay overrides; None keeps the ExportConfigs value."""

    use_single_binary: Optional[bool] = None

    def single_binary(self, configs):
        if self.use_single_binary is None:
            return configs.use_single_binary
        return self.use_single_binary
