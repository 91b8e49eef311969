"""Renkli Dünya kindergarten site: public pages plus a small content admin panel."""

__version__ = "1.0.0"
