import typing as t
from enum import IntEnum

import yaml
from pydantic import BaseModel, ValidationError

from voxplan.exceptions import ConfigurationError


class Point3D(t.NamedTuple):
    x: float
    y: float
    z: float


class VoxelState(IntEnum):
    UNKNOWN = -1
    FREE = 0
    OCCUPIED = 1


class VoxelCounts(t.NamedTuple):
    free: int = 0
    occupied: int = 0
    unknown: int = 0

    @property
    def total(self) -> int:
        return self.free + self.occupied + self.unknown


Bounds3D = t.Tuple[Point3D, Point3D]
GridCellModel = t.Tuple[int, int, int]


# REQUEST MODELS


class FoVConfigModel(BaseModel):
    horizontal_angle: float = 90.0
    """Full horizontal opening, in degrees."""

    vertical_angle: float = 60.0
    """Full vertical opening, in degrees."""

    pitch_angle: float = 0.0
    """Fixed camera pitch, in degrees. Positive pitches down."""

    depth_min: float = 0.5
    depth_max: float = 5.0


class GainWeightsModel(BaseModel):
    free: float = 0.0
    occupied: float = 1.0
    unknown: float = 1.0
    distance: float = 0.0


class PathRequestModel(BaseModel):
    start: t.List[float]
    goal: t.List[float]
    max_iterations: int = 1000
    goal_bias: float = 0.1
    probability_of_full_path_test: float = 0.0
    goal_tolerance: float = 0.5
    step_size: float = 1.0
    seed: int | None = None
    bounds: t.List[t.List[float]] | None = None
    sampling_margin: float = 5.0
    treat_unknown_as_free: bool = False


class NBVRequestModel(BaseModel):
    start: t.List[float]
    target: t.List[float]
    fov: FoVConfigModel = FoVConfigModel()
    max_iterations: int = 200
    goal_bias: float = 0.1
    step_size: float = 1.0
    gain_weights: GainWeightsModel = GainWeightsModel()
    gain_of_interest_threshold: float = 0.0
    seed: int | None = None
    bounds: t.List[t.List[float]] | None = None
    sampling_margin: float = 5.0
    treat_unknown_as_free: bool = False


# RESPONSE MODELS


class PathResponseModel(BaseModel):
    success: bool
    waypoints: t.List[Point3D] = []


class NBVResponseModel(BaseModel):
    found_sufficient_gain: bool
    waypoints: t.List[Point3D] = []
    best_gain: float | None = None


# YAML MODELS


class BoxYamlModel(BaseModel):
    min: t.List[float]
    max: t.List[float]
    state: t.Literal["free", "occupied", "unknown"] = "occupied"


class VoxelMapYamlConfigModel(BaseModel):
    resolution: float
    origin: t.List[float] = [0.0, 0.0, 0.0]
    size: t.List[float]
    """Extent of the map along x, y and z, in meters."""

    default_state: t.Literal["free", "occupied", "unknown"] = "free"
    grid_file: str | None = None
    boxes: t.List[BoxYamlModel] = []


class SmoothingYamlModel(BaseModel):
    resolution: int = 100
    spacing: float | None = None


class ScenarioYamlModel(BaseModel):
    map: VoxelMapYamlConfigModel
    path_request: PathRequestModel | None = None
    nbv_request: NBVRequestModel | None = None
    smoothing: SmoothingYamlModel = SmoothingYamlModel()


def parse_voxel_state(name: str) -> VoxelState:
    return VoxelState[name.upper()]


def scenario_from_yaml(file_path: str) -> ScenarioYamlModel:
    with open(file_path, "r") as stream:
        config = yaml.safe_load(stream)
    try:
        return ScenarioYamlModel(**config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid scenario file {file_path}: {e}") from e
