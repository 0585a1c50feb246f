class ConfigurationError(Exception):
    """Raised when planner or spline parameters are rejected, before any work starts."""

    pass


class EnvironmentUnavailable(Exception):
    """Raised when no occupancy map could be obtained for a request."""

    pass


class SearchExhausted(Exception):
    """
    Describes a search that used its whole iteration budget without meeting its goal or
    gain condition. It is recoverable: planners return it as part of their result instead
    of raising it.
    """

    def __init__(self, iterations: int, *args: object):
        super().__init__(
            "Search exhausted after {} iterations".format(iterations), *args
        )
        self.iterations = iterations


class OutOfRange(Exception):
    """Raised for spline queries outside the curve's domain, or on an unconstructed spline."""

    def __init__(self, message: str, value: float | None = None):
        super().__init__(message)
        self.value = value
