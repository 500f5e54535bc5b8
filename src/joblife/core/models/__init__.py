"""Job models.

Models are defined using Pydantic.
"""

from joblife.core.models.job import JobDefinition, JobId, JobSpec

__all__ = [
    "JobDefinition",
    "JobId",
    "JobSpec",
]
