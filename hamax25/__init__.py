"""AX.25 route learning daemon and AX.25-over-IP building blocks."""

__version__ = "0.1.0"