"""gltfbim: deferred glTF 2.0 exporter with BIM metadata.

Pipeline:
    1. ExportContext records host traversal events as build actions
    2. ExportContext.build() replays the actions into GLTFBuilder
       instances (main model + one per linked model)
    3. the returned package items are written with write_package()

Usage:
    ctx = ExportContext(document, ExportConfigs(name="model"))
    ctx.start()
    ... host calls ctx.on_view_begin / on_element_begin / on_polymesh ...
    ctx.finish()
    write_package(ctx.build(), "out/")
"""

__version__ = "0.1.0"

from .exporter.export_context import ExportContext
from .exporter.export_configs import ExportConfigs, BuildConfigs, CancelToken
from .exporter.build_driver import ActionReplayer, BuildContext, build_actions
from .exporter.gltf_builder import GLTFBuilder, GLTFBuilderError
from .exporter.build_log import BuildLog, NullBuildLog
from .gltf_format.gltf_package import write_package
