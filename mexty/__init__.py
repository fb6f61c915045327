"""mexty — block registry client and typed-export generator."""

__version__ = "0.3.0"
