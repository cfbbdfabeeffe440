"""Photography session booking configurator."""

__version__ = "0.1.0"
