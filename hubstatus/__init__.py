"""Health collection, storage and dashboard fragments for a home IoT hub."""

__version__ = "0.1.0"