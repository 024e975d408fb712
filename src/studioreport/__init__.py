"""studioreport -- project financial and delivery rollups for client reports."""

__version__ = "0.3.0"
