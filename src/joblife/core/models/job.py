"""Job definition and job spec models."""

from typing import Any

from pydantic import BaseModel, Field

JobId = str


class JobDefinition(BaseModel):
    """Caller-supplied descriptor of a managed job.

    `kind` selects the generator; unknown kinds are rejected at install
    time, not at parse time, so the registry stays open for extension.
    """

    id: str = Field(min_length=1)
    revision: int = Field(default=1, ge=1)
    kind: str = Field(min_length=1)
    params: dict[str, Any] = Field(default_factory=dict)


class JobSpec(BaseModel):
    """Backend request for one job: its id plus the request body."""

    job_id: JobId
    body: dict[str, Any]

    model_config = {"frozen": True}

    def to_api(self) -> dict[str, Any]:
        """Convert to the backend's PUT body."""
        return dict(self.body)
