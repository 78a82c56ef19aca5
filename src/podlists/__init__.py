"""podlists - smart episode lists and advanced search for podcast libraries."""

__version__ = "0.1.0"
