"""JSON Patch construction for mutated pods."""

from .generator import PatchError, create_patch

__all__ = ["PatchError", "create_patch"]
