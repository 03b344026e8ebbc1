"""TagSense: multi-signal tag recommendations for workspace projects and folders."""

__version__ = "0.1.0"
