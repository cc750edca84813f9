"""Car-service requests, progress tracking and chat between clients and employees."""

__version__ = "1.0.0"
