"""Utility modules for the landed cost estimator."""

from .export import Exporter

__all__ = [
    "Exporter",
]
