import logging
import math

import requests

from .config import METRICS_PATH, METRICS_PORT, SCRAPE_TIMEOUT
from .exceptions import MetricsParseError

logger = logging.getLogger(__name__)


def parse_metrics_text(text, logger=logger):
    """Map metric names to raw string values from a text exposition.

    Lines that are not exactly `<name> <value>` are logged and skipped.
    """
    metrics = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue

        parts = line.split()
        if len(parts) != 2:
            logger.debug(f"Skipping malformed metrics line: {line!r}")
            continue
        name, value = parts
        metrics[name] = value
    return metrics


def metric_value(metrics, name):
    # Missing metrics count as 0
    value = float(metrics.get(name, 0))
    if not math.isfinite(value):
        raise MetricsParseError(f"Non-finite value for {name}: {metrics[name]}")
    return value


class MetricsSampler:
    def __init__(self, object_manager, port=METRICS_PORT, path=METRICS_PATH,
                 timeout=SCRAPE_TIMEOUT, session=None, logger=logger):
        self.object_manager = object_manager
        self.port = port
        self.path = path
        self.timeout = timeout
        self.session = session or requests.Session()
        self.logger = logger

    def pod_ips(self, workload_name):
        return self.object_manager.get_endpoints(workload_name)

    def scrape_metrics_from_ip(self, ip):
        response = self.session.get(f"http://{ip}:{self.port}{self.path}", timeout=self.timeout)
        response.raise_for_status()
        return parse_metrics_text(response.text, self.logger)

    def sample_percent_usage(self, workload_name, current_metric_name, max_metric_name):
        """Aggregate usage across the workload's pods as a percentage.

        Pods whose max metric is 0 have not handled traffic yet and are left
        out, as are pods that could not be scraped. Returns None when no pod
        is eligible.
        """
        total_consumed = total_max = 0.0

        for ip in self.pod_ips(workload_name):
            try:
                metrics = self.scrape_metrics_from_ip(ip)
                max_value = metric_value(metrics, max_metric_name)
                if max_value == 0.0:  # Metric not initialized yet
                    continue
                consumed = metric_value(metrics, current_metric_name)
            except (requests.exceptions.RequestException, ValueError) as e:
                self.logger.warning(f"Failed to scrape metrics for {workload_name} from {ip}: {e}")
                continue

            total_consumed += consumed
            total_max += max_value

        if total_max == 0.0:
            self.logger.info(f"{workload_name} has no pods reporting {max_metric_name}, skipping sample")
            return None

        current_usage_pct = (total_consumed / total_max) * 100
        if not math.isfinite(current_usage_pct):
            self.logger.warning(
                f"{workload_name} usage is not finite ({total_consumed} of {total_max}), skipping sample"
            )
            return None
        self.logger.info(f"{workload_name} consuming {total_consumed} of {total_max}, {current_usage_pct}%")
        return current_usage_pct
