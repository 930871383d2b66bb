import os

from services.common.core.logging_config import configure_queue_logging
from services.common.core.logging_config import setup_logging as common_setup_logging


def setup_logging():
    """
    Load the YAML config and initialize logging.
    Also move handlers behind a queue so request handlers never block on I/O.
    """
    config_path = os.getenv("LOG_CONFIG_PATH", "config/gateway_log.yaml")
    common_setup_logging(config_path)
    if os.getenv("LOG_QUEUE_ENABLED", "true").lower() == "true":
        configure_queue_logging(service_name="kube-edge-gateway")
