"""Developer portal AI Core gateway."""

__version__ = "1.4.0"
