"""layerpack - deterministic tar layer builder for container images."""

from layerpack.core.constants import LAYERPACK_VERSION

__version__ = LAYERPACK_VERSION
