"""Thread-safe skip-list set and map, and bounded and unbounded FIFO ring queues."""

__version__ = "0.1.0"
__all__ = ["flag", "levels", "skipset", "skipmap", "ring", "lscq"]