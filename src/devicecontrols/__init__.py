"""Virtual device registry and control-update broadcaster."""

__version__ = "0.1.0"
