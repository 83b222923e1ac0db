"""Landed cost and retail price estimation for imported furniture."""

__version__ = "1.0.0"
