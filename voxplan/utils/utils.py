import json
import logging
import math
import typing as t
from datetime import datetime

import numpy as np
import numpy.typing as npt

from voxplan.data_models import Point3D


def timestamp_string():
    return datetime.now().strftime("%Y-%m-%d-%Hh%Mm%Ss_%f")


class PlannerLog:
    def __init__(self, message: str, step: int, timestamp: str | None = None):
        self.message = message
        self.step = step
        self.timestamp = timestamp if timestamp is not None else timestamp_string()

    def __str__(self):
        return "At iteration {}: '{}'".format(self.step, self.message)

    def toJSON(self):
        return json.dumps(self, default=lambda o: o.__dict__, sort_keys=True, indent=4)


class PlannerLogger(list[PlannerLog]):
    def __init__(self, printout: bool = False, sink: logging.Logger | None = None):
        super(PlannerLogger, self).__init__()
        self.printout = printout
        self.sink = sink

    def append(self, log: PlannerLog):
        super(PlannerLogger, self).append(log)
        if self.printout:
            print(log)
        if self.sink:
            self.sink.info(f"[voxplan]:[iteration={log.step}]: {log.message}")

    def messages(self) -> t.List[str]:
        return [log.message for log in self]


def to_array(point: t.Sequence[float]) -> npt.NDArray[np.float64]:
    arr = np.asarray(point, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError("Expected a 3D point, got shape {}".format(arr.shape))
    return arr


def to_point(arr: t.Sequence[float]) -> Point3D:
    return Point3D(float(arr[0]), float(arr[1]), float(arr[2]))


def euclidean_distance(a: t.Sequence[float], b: t.Sequence[float]) -> float:
    return math.sqrt((b[0] - a[0]) ** 2 + (b[1] - a[1]) ** 2 + (b[2] - a[2]) ** 2)


def sum_of_euclidean_distances(points: t.Sequence[t.Sequence[float]]) -> float:
    if len(points) == 0:
        return float("inf")
    if len(points) == 1:
        return 0.0

    total = 0.0
    prev_point = points[0]
    for cur_point in points[1:]:
        total += euclidean_distance(cur_point, prev_point)
        prev_point = cur_point

    return total


def step_towards(
    origin: t.Sequence[float], target: t.Sequence[float], step_size: float
) -> Point3D:
    """
    Moves from `origin` toward `target` by at most `step_size`. The target itself is returned
    when it is closer than one step.
    """
    distance = euclidean_distance(origin, target)
    if distance <= step_size:
        return to_point(target)
    ratio = step_size / distance
    return Point3D(
        origin[0] + ratio * (target[0] - origin[0]),
        origin[1] + ratio * (target[1] - origin[1]),
        origin[2] + ratio * (target[2] - origin[2]),
    )


def yaw_from_direction(
    direction_vector: t.Sequence[float], radians: bool = True
) -> float:
    """
    Takes an (x,y) direction vector and converts it to a `yaw` angle in either radians or degrees
    """
    yaw = math.atan2(direction_vector[1], direction_vector[0])
    if radians:
        return yaw
    return math.degrees(yaw)


def is_close(a: t.Sequence[float], b: t.Sequence[float], abs_tol: float = 1e-6) -> bool:
    return all(math.isclose(x, y, abs_tol=abs_tol) for x, y in zip(a, b))
