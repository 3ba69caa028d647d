"""Settings and descriptor documents for deployed artifacts."""

from .renderer import ConfigurationPackager, RenderedDocuments

__all__ = ["ConfigurationPackager", "RenderedDocuments"]
