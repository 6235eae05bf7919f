"""scrapedash: resilient async client for a remote web-scraping service."""

__version__ = "0.3.0"

__all__ = ["__version__"]
