"""Natural-language chart editing for embedded Power BI reports."""

__version__ = "0.1.0"
