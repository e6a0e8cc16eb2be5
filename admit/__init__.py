"""admit - configuration governance for deploy-time environments."""

__version__ = "0.7.0"
