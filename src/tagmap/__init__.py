"""
tagmap - Tag-driven SQL mapping for dataclass entities.

Public names are re-exported from :mod:`tagmap.core`.
"""

__version__ = "0.1.0"

from tagmap.core import *  # noqa
