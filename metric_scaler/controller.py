#!/usr/bin/env python3
import logging

import kopf

from . import config
from .exceptions import ConvergenceTimeout
from .object_manager import ObjectManager
from .watcher import Watcher

logger = logging.getLogger(__name__)
thread_logger = logging.getLogger(f"{__name__}.thread")

ENABLED = {config.ENABLED_ANNOTATION: "true"}

watchers = {}


def configure_logging(level=config.LOG_LEVEL):
    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s %(name)s %(message)s"
    )


def watcher_key(namespace, name):
    return f"{namespace}_{name}"


def start_watcher(namespace, name):
    key = watcher_key(namespace, name)
    watcher = watchers.get(key)
    if watcher is not None and watcher.running:
        logger.info(f"Watcher for {namespace}/{name} already running")
        return watcher

    watcher = Watcher(name, thread_logger, object_manager=ObjectManager(namespace=namespace))
    watchers[key] = watcher
    if not watcher.configured:
        logger.warning(f"Deployment {namespace}/{name} is missing metric scaler annotations, not starting")
        return watcher

    watcher.start()
    return watcher


def stop_watcher(namespace, name):
    watcher = watchers.pop(watcher_key(namespace, name), None)
    if watcher is not None:
        watcher.stop()
    return watcher


@kopf.on.startup()
def startup_fn(settings: kopf.OperatorSettings, **kwargs):
    configure_logging()
    settings.posting.level = logging.WARNING


@kopf.on.create("apps", "v1", "deployments", annotations=ENABLED)
@kopf.on.resume("apps", "v1", "deployments", annotations=ENABLED)
def create_fn(name, namespace, logger, **kwargs):
    logger.info(f"Starting metric scaler for {namespace}/{name}")
    watcher = start_watcher(namespace, name)
    return {"watcherStarted": watcher.running}


@kopf.on.update("apps", "v1", "deployments", annotations=ENABLED, field="metadata.annotations")
def update_fn(name, namespace, logger, **kwargs):
    watcher = watchers.get(watcher_key(namespace, name))
    if watcher is not None and watcher.running:
        # The running loop picks up annotation changes on its next window
        return {"watcherRestarted": False}

    logger.info(f"Annotations changed for {namespace}/{name}, restarting metric scaler")
    stop_watcher(namespace, name)
    watcher = start_watcher(namespace, name)
    return {"watcherRestarted": watcher.running}


def has_watcher(name, namespace, **kwargs):
    return watcher_key(namespace, name) in watchers


@kopf.on.update("apps", "v1", "deployments", field="metadata.annotations", when=has_watcher)
def opt_out_fn(name, namespace, new, logger, **kwargs):
    if (new or {}).get(config.ENABLED_ANNOTATION) == "true":
        return None

    logger.info(f"Metric scaling disabled for {namespace}/{name}, stopping metric scaler")
    stop_watcher(namespace, name)
    return {"watcherStopped": True}


@kopf.on.delete("apps", "v1", "deployments", annotations=ENABLED, optional=True)
def delete_fn(name, namespace, logger, **kwargs):
    logger.info(f"Stopping metric scaler for {namespace}/{name}")
    stop_watcher(namespace, name)
    return {"watcherStopped": True}


@kopf.timer("apps", "v1", "deployments", annotations=ENABLED,
            interval=config.SCALE_CHECK_INTERVAL, initial_delay=config.SCALE_CHECK_INTERVAL)
def scale_fn(name, namespace, logger, **kwargs):
    watcher = watchers.get(watcher_key(namespace, name))
    if watcher is None or not watcher.running:
        return

    try:
        watcher.scale_to_desired_replicas(timeout=config.CONVERGENCE_TIMEOUT)
    except ConvergenceTimeout as e:
        logger.warning(str(e))


@kopf.on.cleanup()
def cleanup_fn(**kwargs):
    for key in list(watchers):
        watcher = watchers.pop(key)
        watcher.stop()


def main():
    kopf.run(namespaces=[config.NAMESPACE])


if __name__ == "__main__":
    main()
