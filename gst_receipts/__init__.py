"""GST tax computation and thermal receipt encoding."""

__version__ = "0.1.0"
