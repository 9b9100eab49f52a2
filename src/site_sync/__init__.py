"""site-sync - publish a static site directory to an object store with change detection."""

__version__ = "0.3.0"
