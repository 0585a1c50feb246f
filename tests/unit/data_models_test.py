import os

import pytest

from voxplan.data_models import (
    NBVRequestModel,
    VoxelState,
    parse_voxel_state,
    scenario_from_yaml,
)
from voxplan.exceptions import ConfigurationError
from voxplan.world.voxel_occupancy_grid import VoxelOccupancyGrid

SCENARIOS_FOLDER = os.path.join(os.path.dirname(__file__), "../scenarios")


def test_parse_voxel_state():
    assert parse_voxel_state("free") == VoxelState.FREE
    assert parse_voxel_state("Occupied") == VoxelState.OCCUPIED
    assert parse_voxel_state("UNKNOWN") == VoxelState.UNKNOWN


def test_nbv_request_defaults():
    request = NBVRequestModel(start=[0, 0, 0], target=[1, 1, 1])
    assert request.fov.horizontal_angle == 90.0
    assert request.gain_weights.unknown == 1.0
    assert request.gain_of_interest_threshold == 0.0


def test_load_scenario():
    scenario = scenario_from_yaml(os.path.join(SCENARIOS_FOLDER, "wall.yaml"))
    assert scenario.map.resolution == 0.5
    assert len(scenario.map.boxes) == 2
    assert scenario.path_request.goal == [5.0, 0.0, 0.0]
    assert scenario.nbv_request.gain_weights.unknown == 1.0
    assert scenario.smoothing.spacing == 0.5


def test_invalid_scenario(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("map:\n  resolution: 0.5\npath_request:\n  start: [0, 0, 0]\n")
    with pytest.raises(ConfigurationError):
        scenario_from_yaml(str(path))


def test_load_map_from_yaml(tmp_path):
    path = tmp_path / "map.yaml"
    path.write_text(
        "resolution: 1.0\n"
        "size: [4.0, 4.0, 4.0]\n"
        "default_state: unknown\n"
        "boxes:\n"
        "  - {min: [0, 0, 0], max: [2, 4, 4], state: free}\n"
    )
    grid = VoxelOccupancyGrid.load_from_yaml(str(path))
    assert grid.classify((0.5, 0.5, 0.5), (1.5, 3.5, 3.5)) == VoxelState.FREE
    assert grid.classify((3.5, 0.5, 0.5)) == VoxelState.UNKNOWN


def test_invalid_map_yaml(tmp_path):
    path = tmp_path / "map.yaml"
    path.write_text("resolution: 1.0\ndefault_state: purple\n")
    with pytest.raises(ConfigurationError):
        VoxelOccupancyGrid.load_from_yaml(str(path))
