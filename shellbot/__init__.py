"""shellbot: a Discord command bot with hot-reloadable command units."""

__version__ = "1.0.0"
