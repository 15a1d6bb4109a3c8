"""
Bus factory, builds the configured transport.
"""

import logging

from wiki.bus.http import HttpBus
from wiki.bus.local import LocalBus
from wiki.bus.types import BusBase
from wiki.config import BusConfig

logger = logging.getLogger(__name__)


def create_bus(config: BusConfig) -> BusBase:
    """
    Create a bus instance by type.
    """
    logger.debug("Creating bus type=%s", config.type)
    if config.type == "local":
        return LocalBus()
    elif config.type == "http":
        return HttpBus(base_url=config.base_url)
    else:
        raise ValueError(f"Unknown bus type: {config.type}")
