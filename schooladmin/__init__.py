"""School administration console"""

__version__ = "1.0.0"
