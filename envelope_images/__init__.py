"""Envelope images - one replaceable image per envelope, served by stable URL."""

__version__ = "0.1.0"
