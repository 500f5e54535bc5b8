"""Job spec generators, keyed by job definition kind."""

from joblife.app.config import GeneratorConfig
from joblife.core.generators.base import GeneratorRegistry, JobKind, JobSpecGenerator
from joblife.core.generators.latest import LatestJobGenerator
from joblife.core.generators.pivot import PivotJobGenerator


def default_registry(config: GeneratorConfig | None = None) -> GeneratorRegistry:
    """Registry with every built-in kind."""
    return GeneratorRegistry(
        [PivotJobGenerator(config), LatestJobGenerator(config)]
    )


__all__ = [
    "GeneratorRegistry",
    "JobKind",
    "JobSpecGenerator",
    "LatestJobGenerator",
    "PivotJobGenerator",
    "default_registry",
]
