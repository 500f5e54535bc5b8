"""Core interfaces."""

from joblife.core.interfaces.backend import JobBackend

__all__ = ["JobBackend"]
