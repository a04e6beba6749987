from .exceptions import ConvergenceTimeout, MetricScalerError, MetricsParseError
from .policy import desired_replicas
from .rolling_buffer import RollingBuffer
from .sampler import MetricsSampler, parse_metrics_text
from .watcher import Watcher, WatcherConfig

__version__ = "0.1.0"
