import typing as t

import typer

from voxplan.data_models import Point3D
from voxplan.planner_service import create_service_from_file
from voxplan.utils import utils

app = typer.Typer()


def _echo_waypoints(waypoints: t.Sequence[Point3D]):
    for i, p in enumerate(waypoints):
        typer.echo(f"{i}: ({p.x:.3f}, {p.y:.3f}, {p.z:.3f})")


@app.command()
def plan(
    scenario: str,
    seed: t.Annotated[t.Optional[int], typer.Option("--seed")] = None,
    verbose: t.Annotated[bool, typer.Option("--verbose")] = False,
):
    runner = create_service_from_file(
        scenario, logger=utils.PlannerLogger(printout=verbose)
    )
    request = runner.scenario.path_request
    if request is None:
        raise typer.BadParameter("Scenario has no path_request", param_hint="SCENARIO")
    if seed is not None:
        request = request.model_copy(update={"seed": seed})

    response = runner.service.find_path(request)
    if not response.success:
        typer.echo("No path found")
        raise typer.Exit(code=1)
    _echo_waypoints(response.waypoints)


@app.command()
def nbv(
    scenario: str,
    seed: t.Annotated[t.Optional[int], typer.Option("--seed")] = None,
    verbose: t.Annotated[bool, typer.Option("--verbose")] = False,
):
    runner = create_service_from_file(
        scenario, logger=utils.PlannerLogger(printout=verbose)
    )
    request = runner.scenario.nbv_request
    if request is None:
        raise typer.BadParameter("Scenario has no nbv_request", param_hint="SCENARIO")
    if seed is not None:
        request = request.model_copy(update={"seed": seed})

    response = runner.service.next_best_view(request)
    if response.found_sufficient_gain:
        typer.echo(f"Found a view with sufficient gain ({response.best_gain:.3f})")
    elif response.best_gain is None:
        typer.echo("No view with sufficient gain, the tree never grew past its root")
    else:
        typer.echo(f"No view with sufficient gain, best gain was {response.best_gain:.3f}")
    _echo_waypoints(response.waypoints)


@app.command()
def smooth(
    scenario: str,
    resolution: t.Annotated[t.Optional[int], typer.Option("--resolution")] = None,
    spacing: t.Annotated[t.Optional[float], typer.Option("--spacing")] = None,
    seed: t.Annotated[t.Optional[int], typer.Option("--seed")] = None,
):
    """Plans the scenario's path request, then prints the smoothed curve."""
    runner = create_service_from_file(scenario)
    request = runner.scenario.path_request
    if request is None:
        raise typer.BadParameter("Scenario has no path_request", param_hint="SCENARIO")
    if seed is not None:
        request = request.model_copy(update={"seed": seed})

    response = runner.service.find_path(request)
    if not response.success:
        typer.echo("No path found")
        raise typer.Exit(code=1)

    smoothing = runner.scenario.smoothing
    points = runner.service.smooth(
        response.waypoints,
        resolution=resolution if resolution is not None else smoothing.resolution,
        spacing=spacing if spacing is not None else smoothing.spacing,
    )
    _echo_waypoints(points)


if __name__ == "__main__":
    app()
