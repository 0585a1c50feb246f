import math

import numpy as np
import pytest

from voxplan.data_models import VoxelMapYamlConfigModel, VoxelState
from voxplan.exceptions import ConfigurationError
from voxplan.world.fov import DepthRange, FoV
from voxplan.world.voxel_occupancy_grid import VoxelOccupancyGrid


def make_fov(position, yaw=0.0, depth=(0.5, 3.0)):
    return FoV(
        position=position,
        yaw=yaw,
        pitch=0.0,
        horizontal=math.radians(60),
        vertical=math.radians(60),
        depth_range=DepthRange(*depth),
        target=(position[0] + 5, position[1], position[2]),
    )


def test_grid():
    grid = VoxelOccupancyGrid(cell_size=1, size=(3, 3, 3))
    assert grid.grid.shape == (3, 3, 3)
    assert grid.get_bounds() == ((0, 0, 0), (3, 3, 3))
    assert grid.count_states().free == 27

    grid.set_box((1, 1, 1), (2, 2, 2))
    assert grid.count_states().occupied == 1
    assert grid.get_cell_value((1, 1, 1)) == VoxelState.OCCUPIED


def test_point_classification():
    grid = VoxelOccupancyGrid(cell_size=1, size=(3, 3, 3)).set_box((1, 1, 1), (2, 2, 2))
    assert grid.classify((1.5, 1.5, 1.5)) == VoxelState.OCCUPIED
    assert grid.classify((0.5, 0.5, 0.5)) == VoxelState.FREE
    assert grid.classify((-1.0, 0.5, 0.5)) == VoxelState.UNKNOWN
    assert grid.classify((0.5, 0.5, 3.5)) == VoxelState.UNKNOWN


def test_segment_classification():
    grid = VoxelOccupancyGrid(cell_size=1, size=(3, 3, 3)).set_box((1, 1, 1), (2, 2, 2))
    assert grid.classify((0.5, 1.5, 1.5), (2.5, 1.5, 1.5)) == VoxelState.OCCUPIED
    assert grid.classify((0.5, 0.5, 0.5), (2.5, 0.5, 0.5)) == VoxelState.FREE
    assert grid.classify((0.5, 0.5, 0.5), (0.5, 0.5, 5.0)) == VoxelState.UNKNOWN


def test_occupied_wins_over_unknown():
    grid = VoxelOccupancyGrid(cell_size=1, size=(3, 3, 3)).set_box((1, 1, 1), (2, 2, 2))
    assert grid.classify((-2.0, 1.5, 1.5), (2.5, 1.5, 1.5)) == VoxelState.OCCUPIED


def test_unknown_default_state():
    grid = VoxelOccupancyGrid(
        cell_size=0.5, size=(2, 2, 2), default_state=VoxelState.UNKNOWN
    )
    assert grid.count_states().unknown == 64
    grid.set_box((0, 0, 0), (1, 1, 1), VoxelState.FREE)
    assert grid.classify((0.2, 0.2, 0.2), (0.8, 0.8, 0.8)) == VoxelState.FREE


def test_init_from_grid():
    array = np.zeros((2, 3, 4), dtype=np.int8)
    array[1, 2, 3] = VoxelState.OCCUPIED
    grid = VoxelOccupancyGrid(cell_size=0.5, size=(0, 0, 0), grid=array)
    assert grid.d_shape == (2, 3, 4)
    assert grid.size == (1.0, 1.5, 2.0)
    assert grid.classify((0.75, 1.25, 1.75)) == VoxelState.OCCUPIED


def test_invalid_cell_size():
    with pytest.raises(ConfigurationError):
        VoxelOccupancyGrid(cell_size=0, size=(1, 1, 1))


def test_from_config():
    config = VoxelMapYamlConfigModel(
        resolution=1.0,
        origin=[-1.0, -1.0, -1.0],
        size=[4.0, 4.0, 4.0],
        default_state="unknown",
        boxes=[{"min": [0, 0, 0], "max": [1, 1, 1], "state": "occupied"}],
    )
    grid = VoxelOccupancyGrid.from_config(config)
    assert grid.point_to_cell((0.5, 0.5, 0.5)) == (1, 1, 1)
    assert grid.classify((0.5, 0.5, 0.5)) == VoxelState.OCCUPIED
    assert grid.classify((-0.5, -0.5, -0.5)) == VoxelState.UNKNOWN


class TestFrustumClassify:
    def setup_method(self):
        self.grid = VoxelOccupancyGrid(cell_size=1, size=(10, 10, 10))

    def test_frustum_inside_free_grid(self):
        counts = self.grid.frustum_classify(make_fov((5.0, 5.0, 5.0)))
        assert counts.free > 0
        assert counts.occupied == 0
        assert counts.unknown == 0

    def test_frustum_sees_obstacle(self):
        self.grid.set_box((7, 4, 4), (8, 6, 6))
        counts = self.grid.frustum_classify(make_fov((5.0, 5.0, 5.0)))
        assert counts.occupied == 4

    def test_frustum_outside_grid_is_unknown(self):
        counts = self.grid.frustum_classify(make_fov((9.0, 5.0, 5.0)))
        assert counts.unknown > 0

    def test_obstacle_behind_camera_is_not_counted(self):
        self.grid.set_box((1, 4, 4), (3, 6, 6))
        counts = self.grid.frustum_classify(make_fov((5.0, 5.0, 5.0)))
        assert counts.occupied == 0

    def test_counts_match_contained_voxel_centers(self):
        fov = make_fov((5.0, 5.0, 5.0), yaw=0.7)
        cells = np.stack(
            np.meshgrid(np.arange(10), np.arange(10), np.arange(10), indexing="ij"),
            axis=-1,
        ).reshape(-1, 3)
        centers = cells + 0.5
        assert self.grid.frustum_classify(fov).total == int(
            np.count_nonzero(fov.contains(centers))
        )

    def test_chunked_counts_match_single_pass(self):
        self.grid.set_box((7, 4, 4), (8, 6, 6))
        self.grid.set_box((6, 2, 2), (9, 4, 8), VoxelState.UNKNOWN)
        for fov in (
            make_fov((5.0, 5.0, 5.0), yaw=0.3),
            make_fov((9.0, 5.0, 5.0)),
            make_fov((5.0, 5.0, 5.0), yaw=math.pi, depth=(0.5, 8.0)),
        ):
            expected = self.grid.frustum_classify(fov)
            self.grid.frustum_chunk_cells = 7
            assert self.grid.frustum_classify(fov) == expected
            del self.grid.frustum_chunk_cells
            assert expected.total > 0
