"""layerpack Core - Shared constants and validation.

Import specific functions from submodules:
    from layerpack.core import constants
    from layerpack.core import validators
"""

from layerpack.core import constants, validators

__all__ = [
    "constants",
    "validators",
]
