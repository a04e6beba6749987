import os


def getenv(name, default):
    return os.getenv(name, default)


def _optional_float(value):
    if value in (None, ""):
        return None
    return float(value)


# Kubernetes
NAMESPACE = getenv("WATCH_NAMESPACE", "default")
ENABLED_ANNOTATION = "metric_scaler_enabled"

# Annotations read from each managed Deployment
CURRENT_METRIC_NAME_ANNOTATION = "metric_scaler_current_metric_name"  # i.e. "puma_busy_threads"
MAX_METRIC_NAME_ANNOTATION = "metric_scaler_max_metric_name"          # i.e. "puma_max_threads"
MAX_REPLICAS_ANNOTATION = "metric_scaler_max_replicas"                # i.e. "5"
MIN_REPLICAS_ANNOTATION = "metric_scaler_min_replicas"                # i.e. "1"
TARGET_USAGE_PCT_ANNOTATION = "metric_scaler_target_usage_pct"        # i.e. "50"
SCALE_THRESHOLD_PCT_ANNOTATION = "metric_scaler_scale_threshold_pct"  # i.e. "20"

# Metrics scraping
METRICS_PORT = int(getenv("METRICS_PORT", "9394"))
METRICS_PATH = getenv("METRICS_PATH", "/metrics")
SCRAPE_TIMEOUT = float(getenv("SCRAPE_TIMEOUT", "5"))

# Sampling window
MAX_METRICS_COUNT = 60
SAMPLES_PER_WINDOW = 60  # ~1 minute of samples, then configuration is re-read
SAMPLE_INTERVAL = float(getenv("SAMPLE_INTERVAL", "1"))

# Scaling
SCALE_CHECK_INTERVAL = float(getenv("SCALE_CHECK_INTERVAL", "60"))
CONVERGENCE_POLL_INTERVAL = float(getenv("CONVERGENCE_POLL_INTERVAL", "1"))
CONVERGENCE_TIMEOUT = _optional_float(getenv("CONVERGENCE_TIMEOUT", None))  # None waits forever

LOG_LEVEL = getenv("LOG_LEVEL", "INFO").upper()
