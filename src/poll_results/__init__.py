"""Poll results client — demographic breakdowns for hosted polls."""

__version__ = "0.1.0"
