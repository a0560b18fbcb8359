"""Pattern Atlas: search and ranking over a catalog of AI use-case patterns."""

__version__ = "0.1.0"
