"""Infrastructure connections (job backend)."""

from joblife.infra.transform import BackendClient, TransformBackend

__all__ = [
    "BackendClient",
    "TransformBackend",
]
