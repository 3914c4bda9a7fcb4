"""Safety wrapper around dd for writing images to block devices."""

from .__version__ import __version__

__all__ = ["__version__"]
