from voratiq.identity import __version__

__all__ = ["__version__"]
