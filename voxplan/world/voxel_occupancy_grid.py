import math
import os
import typing as t

import numpy as np
import numpy.typing as npt
import yaml
from pydantic import ValidationError
from typing_extensions import Self

from voxplan.data_models import (
    Bounds3D,
    GridCellModel,
    Point3D,
    VoxelCounts,
    VoxelMapYamlConfigModel,
    VoxelState,
    parse_voxel_state,
)
from voxplan.exceptions import ConfigurationError
from voxplan.world.fov import FoV


class VoxelOccupancyGrid:
    """
    A dense three-valued voxel map. Cells hold a `VoxelState` value and are indexed
    `[ix, iy, iz]` from `origin`. Anything outside the grid is reported as UNKNOWN.
    """

    frustum_chunk_cells = 1_000_000
    """Upper bound on the cells enumerated at once by `frustum_classify`."""

    def __init__(
        self,
        *,
        cell_size: float,
        size: t.Sequence[float],
        origin: t.Sequence[float] = (0.0, 0.0, 0.0),
        grid: npt.NDArray[np.int8] | None = None,
        default_state: VoxelState = VoxelState.FREE,
    ):
        if cell_size <= 0:
            raise ConfigurationError("cell_size must be positive, got {}".format(cell_size))
        self.cell_size = cell_size
        self.origin = Point3D(*(float(c) for c in origin))
        self.size = tuple(float(s) for s in size)
        self.d_shape = tuple(math.ceil(s / cell_size) for s in self.size)

        if grid is not None:
            self.set_grid(grid)
        else:
            self.grid = np.full(self.d_shape, int(default_state), dtype=np.int8)

    def set_grid(self, grid: npt.NDArray[np.int8]):
        if grid.ndim != 3:
            raise ConfigurationError(
                "A voxel grid must be 3-dimensional, got shape {}".format(grid.shape)
            )
        self.d_shape = tuple(int(s) for s in grid.shape)
        self.size = tuple(s * self.cell_size for s in self.d_shape)
        self.grid = grid.astype(np.int8)

    def get_bounds(self) -> Bounds3D:
        return (
            self.origin,
            Point3D(
                self.origin[0] + self.size[0],
                self.origin[1] + self.size[1],
                self.origin[2] + self.size[2],
            ),
        )

    def point_to_cell(self, point: t.Sequence[float]) -> GridCellModel:
        """Computes the voxel containing a real-valued (x, y, z) position"""
        return (
            int(math.floor((point[0] - self.origin[0]) / self.cell_size)),
            int(math.floor((point[1] - self.origin[1]) / self.cell_size)),
            int(math.floor((point[2] - self.origin[2]) / self.cell_size)),
        )

    def get_cell_center(self, cell: GridCellModel) -> Point3D:
        return Point3D(
            self.origin[0] + cell[0] * self.cell_size + self.cell_size / 2,
            self.origin[1] + cell[1] * self.cell_size + self.cell_size / 2,
            self.origin[2] + cell[2] * self.cell_size + self.cell_size / 2,
        )

    def is_cell_in_bounds(self, cell: GridCellModel) -> bool:
        for i in range(3):
            if cell[i] < 0 or cell[i] >= self.d_shape[i]:
                return False
        return True

    def get_cell_value(self, cell: GridCellModel) -> VoxelState:
        if not self.is_cell_in_bounds(cell):
            return VoxelState.UNKNOWN
        return VoxelState(int(self.grid[cell]))

    def set_box(
        self,
        box_min: t.Sequence[float],
        box_max: t.Sequence[float],
        state: VoxelState = VoxelState.OCCUPIED,
    ):
        """Sets every voxel overlapping the axis-aligned box [box_min, box_max] to `state`."""
        lo = np.floor(
            (np.asarray(box_min, dtype=np.float64) - self.origin) / self.cell_size
        ).astype(int)
        hi = np.ceil(
            (np.asarray(box_max, dtype=np.float64) - self.origin) / self.cell_size
        ).astype(int)
        hi = np.maximum(hi, lo + 1)
        lo = np.clip(lo, 0, self.d_shape)
        hi = np.clip(hi, 0, self.d_shape)
        self.grid[lo[0] : hi[0], lo[1] : hi[1], lo[2] : hi[2]] = int(state)
        return self

    def _states_of_cells(self, cells: npt.NDArray[np.int_]) -> npt.NDArray[np.int8]:
        """Looks up the state of (N, 3) integer cells, UNKNOWN for those out of bounds."""
        shape = np.asarray(self.d_shape)
        in_bounds = np.all((cells >= 0) & (cells < shape), axis=1)
        states = np.full(len(cells), int(VoxelState.UNKNOWN), dtype=np.int8)
        inside = cells[in_bounds]
        states[in_bounds] = self.grid[inside[:, 0], inside[:, 1], inside[:, 2]]
        return states

    def classify(
        self, start: t.Sequence[float], end: t.Sequence[float] | None = None
    ) -> VoxelState:
        if end is None:
            return self.get_cell_value(self.point_to_cell(start))

        a = np.asarray(start, dtype=np.float64)
        b = np.asarray(end, dtype=np.float64)
        length = float(np.linalg.norm(b - a))
        n_steps = max(1, math.ceil(length / (self.cell_size / 2)))
        alphas = np.linspace(0.0, 1.0, n_steps + 1)[:, None]
        points = a + alphas * (b - a)
        cells = np.floor((points - np.asarray(self.origin)) / self.cell_size).astype(int)
        states = self._states_of_cells(cells)

        if np.any(states == VoxelState.OCCUPIED):
            return VoxelState.OCCUPIED
        if np.any(states == VoxelState.UNKNOWN):
            return VoxelState.UNKNOWN
        return VoxelState.FREE

    def frustum_classify(self, fov: FoV) -> VoxelCounts:
        """
        Counts the voxels whose centres lie inside `fov`, by state. The frustum's bounding
        box is walked in slabs along x of at most `frustum_chunk_cells` cells, or a single
        x slice when one slice alone is larger.
        """
        box_min, box_max = fov.bounding_box()
        origin = np.asarray(self.origin)
        lo = np.floor((np.asarray(box_min) - origin) / self.cell_size).astype(int)
        hi = np.floor((np.asarray(box_max) - origin) / self.cell_size).astype(int)

        ys = np.arange(lo[1], hi[1] + 1)
        zs = np.arange(lo[2], hi[2] + 1)
        slab_width = max(1, self.frustum_chunk_cells // (len(ys) * len(zs)))

        free = occupied = unknown = 0
        for x0 in range(lo[0], hi[0] + 1, slab_width):
            xs = np.arange(x0, min(x0 + slab_width, hi[0] + 1))
            cells = np.stack(np.meshgrid(xs, ys, zs, indexing="ij"), axis=-1).reshape(-1, 3)
            inside = fov.contains(origin + (cells + 0.5) * self.cell_size)
            if xs[-1] < 0 or xs[0] >= self.d_shape[0]:
                # slab lies entirely outside the grid
                unknown += int(np.count_nonzero(inside))
                continue
            states = self._states_of_cells(cells[inside])
            free += int(np.count_nonzero(states == VoxelState.FREE))
            occupied += int(np.count_nonzero(states == VoxelState.OCCUPIED))
            unknown += int(np.count_nonzero(states == VoxelState.UNKNOWN))

        return VoxelCounts(free=free, occupied=occupied, unknown=unknown)

    def count_states(self) -> VoxelCounts:
        return VoxelCounts(
            free=int(np.count_nonzero(self.grid == VoxelState.FREE)),
            occupied=int(np.count_nonzero(self.grid == VoxelState.OCCUPIED)),
            unknown=int(np.count_nonzero(self.grid == VoxelState.UNKNOWN)),
        )

    @classmethod
    def from_config(
        cls, config: VoxelMapYamlConfigModel, base_dir: str = "."
    ) -> Self:
        default_state = parse_voxel_state(config.default_state)
        grid = None
        if config.grid_file:
            grid = np.load(os.path.join(base_dir, config.grid_file))
        result = cls(
            cell_size=config.resolution,
            size=config.size,
            origin=config.origin,
            grid=grid,
            default_state=default_state,
        )
        for box in config.boxes:
            result.set_box(box.min, box.max, parse_voxel_state(box.state))
        return result

    @classmethod
    def load_from_yaml(cls, yaml_file: str) -> Self:
        with open(yaml_file, "r") as file:
            data = yaml.safe_load(file)

        try:
            config = VoxelMapYamlConfigModel(**data)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid map file {yaml_file}: {e}") from e
        return cls.from_config(config, base_dir=os.path.dirname(yaml_file))
