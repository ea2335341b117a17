"""Order dispatch assignment service for the scrap collection back office."""

__version__ = "0.1.0"
