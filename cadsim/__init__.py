"""Components of a cycle-driven multiprocessor architecture simulator."""

__version__ = "0.1.0"