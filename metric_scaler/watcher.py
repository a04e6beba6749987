import threading
import time
from dataclasses import dataclass
from typing import Mapping, Optional

from . import config
from .exceptions import ConvergenceTimeout
from .object_manager import ObjectManager
from .policy import desired_replicas
from .rolling_buffer import RollingBuffer
from .sampler import MetricsSampler

# Annotation key -> parser, in WatcherConfig field order
ANNOTATION_PARSERS = {
    config.CURRENT_METRIC_NAME_ANNOTATION: str,
    config.MAX_METRIC_NAME_ANNOTATION: str,
    config.MAX_REPLICAS_ANNOTATION: int,
    config.MIN_REPLICAS_ANNOTATION: int,
    config.TARGET_USAGE_PCT_ANNOTATION: int,
    config.SCALE_THRESHOLD_PCT_ANNOTATION: int,
}


def parse_annotations(annotations):
    """Parse each scaler annotation, mapping absent or unparsable values to None."""
    parsed = {}
    for key, parser in ANNOTATION_PARSERS.items():
        value = annotations.get(key)
        try:
            parsed[key] = parser(value) if value not in (None, "") else None
        except (TypeError, ValueError):
            parsed[key] = None
    return parsed


@dataclass(frozen=True)
class WatcherConfig:
    current_metric_name: str
    max_metric_name: str
    max_replicas: int
    min_replicas: int
    target_usage_pct: int
    scale_threshold_pct: int

    @classmethod
    def from_annotations(cls, annotations: Mapping[str, str]) -> Optional["WatcherConfig"]:
        """Build a config from Deployment annotations, or None if any is missing."""
        values = list(parse_annotations(annotations).values())
        if any(value is None for value in values):
            return None
        return cls(*values)


class Watcher:
    """Samples a workload's usage metric in the background and scales it toward a target.

    One thread per watcher owns the rolling buffer and configuration. Other
    threads only signal through the `finished` and `scaling_allowed` events,
    and may call `scale_to_desired_replicas` on their own cadence.
    """

    def __init__(self, workload_name, logger, object_manager=None, sampler=None,
                 sample_interval=config.SAMPLE_INTERVAL,
                 samples_per_window=config.SAMPLES_PER_WINDOW,
                 poll_interval=config.CONVERGENCE_POLL_INTERVAL):
        self.workload_name = workload_name
        self.logger = logger
        self.object_manager = object_manager or ObjectManager()
        self.sampler = sampler or MetricsSampler(self.object_manager, logger=logger)
        self.sample_interval = sample_interval
        self.samples_per_window = samples_per_window
        self.poll_interval = poll_interval

        self.metrics = RollingBuffer(config.MAX_METRICS_COUNT)
        self.config = None
        self.config_checked = False
        self.thread = None
        self._finished = threading.Event()
        self._scaling_allowed = threading.Event()
        self._scaling_allowed.set()

        logger.info(f"Metrics scaling enabled for {workload_name}")
        self.configure()

    @property
    def configured(self):
        return self.config is not None

    @property
    def finished(self):
        return self._finished.is_set()

    @property
    def running(self):
        return self.thread is not None and self.thread.is_alive()

    @property
    def scaling_allowed(self):
        return self._scaling_allowed.is_set()

    def pause_scaling(self):
        self.logger.info(f"Scaling paused for {self.workload_name}")
        self._scaling_allowed.clear()

    def resume_scaling(self):
        self.logger.info(f"Scaling resumed for {self.workload_name}")
        self._scaling_allowed.set()

    def configure(self):
        self.logger.info(f"Fetching configuration for {self.workload_name}")
        annotations = self.object_manager.get_annotations(self.workload_name)
        was_configured = self.configured
        self.config = WatcherConfig.from_annotations(annotations)

        if not self.configured and (was_configured or not self.config_checked):
            missing = [key for key, value in parse_annotations(annotations).items() if value is None]
            self.logger.warning(
                f"Configuration for {self.workload_name} incomplete, missing or invalid: {', '.join(missing)}"
            )
        self.config_checked = True
        return self.config

    def start(self):
        self.thread = threading.Thread(
            target=self._run, name=f"metric-scaler-{self.workload_name}", daemon=True
        )
        self.thread.start()

    def stop(self):
        self.logger.info(f"Watcher thread for {self.workload_name} stopping")
        self._finished.set()
        if self.thread is not None:
            self.thread.join()

    def _run(self):
        self.logger.info(f"Watcher thread for {self.workload_name} starting")
        while not self.finished:
            try:
                self.configure()
            except Exception as e:
                self.logger.exception(f"Failed to fetch configuration for {self.workload_name}: {e}")
                self._finished.wait(self.sample_interval)
                continue

            if not self.configured:
                self.logger.info(f"Watcher for {self.workload_name} not configured, exiting")
                break

            # Collect metrics for ~1 minute then check for config changes
            for _ in range(self.samples_per_window):
                self.collect_sample()
                if self._finished.wait(self.sample_interval):
                    break
        self.logger.info(f"Watcher thread for {self.workload_name} stopped")

    def collect_sample(self):
        watcher_config = self.config
        try:
            sample = self.sampler.sample_percent_usage(
                self.workload_name,
                watcher_config.current_metric_name,
                watcher_config.max_metric_name,
            )
        except Exception as e:
            self.logger.exception(f"Failed to sample metrics for {self.workload_name}: {e}")
            return None

        if sample is not None:
            self.metrics.push(sample)
        return sample

    def desired_replicas(self, current_replicas):
        watcher_config = self.config
        return desired_replicas(
            current_replicas,
            self.metrics.mean(),
            watcher_config.target_usage_pct,
            watcher_config.scale_threshold_pct,
            watcher_config.min_replicas,
            watcher_config.max_replicas,
        )

    def scale_to_desired_replicas(self, timeout=None):
        """Scale one step toward the target and block until the pods match.

        With `timeout` (seconds) the wait raises ConvergenceTimeout instead of
        blocking forever.
        """
        if not self.configured:
            return
        if not self.scaling_allowed:
            self.logger.info(f"Scaling not allowed for {self.workload_name}, skipping")
            return
        if not len(self.metrics):
            self.logger.info(f"No metrics collected for {self.workload_name} yet, skipping")
            return

        current_count = self.object_manager.get_replica_spec(self.workload_name).replicas
        desired_count = self.desired_replicas(current_count)

        if desired_count == current_count:  # within tolerance, or already at max or minimum
            return

        self.logger.info(f"Scaling {self.workload_name} from {current_count} to {desired_count} replicas")
        self.object_manager.scale(self.workload_name, desired_count)

        self.wait_for_pod_count(desired_count, timeout)
        self.logger.info(f"Scaling {self.workload_name} complete")

    def wait_for_pod_count(self, desired_count, timeout=None):
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            observed = len(self.object_manager.get_endpoints(self.workload_name))
            if observed == desired_count:
                return
            if deadline is not None and time.monotonic() >= deadline:
                raise ConvergenceTimeout(self.workload_name, desired_count, observed, timeout)
            time.sleep(self.poll_interval)
