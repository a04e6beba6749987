class MetricScalerError(Exception):
    pass


class MetricsParseError(MetricScalerError, ValueError):
    """A metrics line that is not exactly `<name> <value>`."""


class ConvergenceTimeout(MetricScalerError):
    """The workload did not reach the requested pod count in time."""

    def __init__(self, workload_name, desired, observed, timeout):
        self.workload_name = workload_name
        self.desired = desired
        self.observed = observed
        self.timeout = timeout
        super().__init__(
            f"{workload_name} did not converge to {desired} pods within {timeout}s "
            f"(observed {observed})"
        )
