from voxplan.algorithms.bezier_spline import BezierSpline
from voxplan.planner_service import create_service_from_file
from voxplan.utils import utils


runner = create_service_from_file(
    "tests/scenarios/wall.yaml", logger=utils.PlannerLogger(printout=True)
)
response = runner.service.find_path(runner.scenario.path_request)
assert response.success
spline = BezierSpline(response.waypoints, resolution=runner.scenario.smoothing.resolution)
print("Smoothed path length: {:.3f}".format(spline.total_arc_length()))
for point in spline.sample_by_distance(1.0):
    print(point)
