"""drone-docker - build a Docker image and push it to configured registries.

A Drone pipeline step driven entirely by ``PLUGIN_*`` environment variables.
"""

__version__ = "0.1.0"

# Configure logging for library use
import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

# Re-export main CLI entry point
from .cli import main

__all__ = ["main"]
