"""switchback — wrong-layout word auto-correction for EN/UK keyboards."""

from switchback.__version__ import __version__

__all__ = ["__version__"]
