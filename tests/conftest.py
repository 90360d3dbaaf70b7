import pytest

from gltfbim.exporter.export_configs import ExportConfigs
from gltfbim.exporter.geometry import PrimitiveData
from gltfbim.exporter.host_types import HostDocument, HostElement, HostMaterial


@pytest.fixture
def document():
    return HostDocument(id="doc-1", title="Project", source="/models/project.rvt",
                        application="Host 2024")


@pytest.fixture
def wall_type():
    return HostElement(id="type-1", name="Basic Wall", category="Walls")


@pytest.fixture
def wall(wall_type):
    return HostElement(id="wall-1", name="Wall 1", category="Walls",
                       element_type=wall_type, properties={"Width": 0.3})


@pytest.fixture
def view():
    return HostElement(id="view-1", name="3D View", category="Views")


@pytest.fixture
def concrete():
    return HostMaterial(id="mat-1", name="Concrete", color=(128, 128, 128))


@pytest.fixture
def triangle():
    return PrimitiveData.from_flat([0, 0, 0, 1, 0, 0, 0, 1, 0], [0, 1, 2])


@pytest.fixture
def configs():
    return ExportConfigs(name="model")
