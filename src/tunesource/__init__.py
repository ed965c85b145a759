"""TuneSource - unified music source providers."""

__version__ = "0.1.0"
