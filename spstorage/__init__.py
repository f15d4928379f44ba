"""Read-only SharePoint document library storage with delegated Graph credentials."""

__version__ = "1.0.0"
