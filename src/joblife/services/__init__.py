"""Services module."""

from joblife.services.lifecycle import DEFAULT_IGNORE_RULES, JobLifecycleController

__all__ = ["DEFAULT_IGNORE_RULES", "JobLifecycleController"]
