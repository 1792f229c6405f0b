"""File-name indexing, searching and monitoring over memory-mapped record databases."""

__version__ = "0.1.0"
__all__ = ["__version__"]