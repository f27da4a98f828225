"""fstrigger Core - Shared utilities and infrastructure.

Import specific functions from submodules:
    from fstrigger.core.config import ConfigManager
    from fstrigger.core import constants
    from fstrigger.core import logging
    from fstrigger.core import validators
"""

# Re-export main module references for convenience
from fstrigger.core import config, constants, logging, validators

__all__ = [
    "config",
    "constants",
    "logging",
    "validators",
]
