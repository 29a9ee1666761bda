"""Package manifest model and subpath resolution."""

from .model import Manifest, deep_assign

__all__ = ["Manifest", "deep_assign"]
