"""Job spec generator base class and registry."""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping
from enum import StrEnum
from typing import Any, ClassVar

from joblife.app.config import GeneratorConfig, get_settings
from joblife.core.errors import InvalidJobDefinitionError
from joblife.core.models import JobDefinition, JobId, JobSpec


class JobKind(StrEnum):
    """Built-in job kinds."""

    PIVOT = "pivot"
    LATEST = "latest"


def require_str(params: Mapping[str, Any], key: str) -> str:
    value = params.get(key)
    if not isinstance(value, str) or not value:
        raise InvalidJobDefinitionError(
            f"Missing or invalid param [{key}]: expected non-empty string"
        )
    return value


def require_mapping(params: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = params.get(key)
    if not isinstance(value, Mapping) or not value:
        raise InvalidJobDefinitionError(
            f"Missing or invalid param [{key}]: expected non-empty mapping"
        )
    return value


class JobSpecGenerator(ABC):
    """Turns a JobDefinition into a backend JobSpec.

    Subclasses set `kind` and build the function section (pivot, latest).
    Source, destination, frequency, sync and _meta are shared.

    Params common to all kinds:
    - source_index (required)
    - dest_index (required)
    - query: optional source query document
    - frequency: check interval (default GENERATOR_DEFAULT_FREQUENCY)
    - sync_field: timestamp field for continuous mode (optional)
    - sync_delay: ingest delay for continuous mode (default GENERATOR_DEFAULT_SYNC_DELAY)
    """

    kind: ClassVar[str]

    def __init__(self, config: GeneratorConfig | None = None) -> None:
        self._config = config or get_settings().generator

    def job_id_for(self, definition: JobDefinition) -> JobId:
        """Stable id: same definition id and revision give the same job."""
        return f"{self._config.job_id_prefix}-{definition.id}-{definition.revision}"

    def get_job_spec(self, definition: JobDefinition) -> JobSpec:
        """Build the JobSpec for a definition.

        Raises:
            InvalidJobDefinitionError: If params are missing or malformed
        """
        params = definition.params
        body: dict[str, Any] = {
            "description": f"Managed job [{definition.id}] revision [{definition.revision}]",
            "source": self._source(params),
            "dest": {"index": require_str(params, "dest_index")},
            "frequency": params.get("frequency", self._config.default_frequency),
            "_meta": {
                "definition_id": definition.id,
                "revision": definition.revision,
                "kind": definition.kind,
                "managed": True,
            },
        }
        if sync := self._sync(params):
            body["sync"] = sync
        body.update(self.build_function(params))
        return JobSpec(job_id=self.job_id_for(definition), body=body)

    @abstractmethod
    def build_function(self, params: Mapping[str, Any]) -> dict[str, Any]:
        """Return the kind-specific section, e.g. {"pivot": {...}}."""
        ...

    def _source(self, params: Mapping[str, Any]) -> dict[str, Any]:
        source: dict[str, Any] = {"index": require_str(params, "source_index")}
        query = params.get("query")
        if query is not None:
            if not isinstance(query, Mapping):
                raise InvalidJobDefinitionError("Invalid param [query]: expected mapping")
            source["query"] = dict(query)
        return source

    def _sync(self, params: Mapping[str, Any]) -> dict[str, Any] | None:
        field = params.get("sync_field")
        if field is None:
            return None
        if not isinstance(field, str) or not field:
            raise InvalidJobDefinitionError(
                "Invalid param [sync_field]: expected non-empty string"
            )
        return {
            "time": {
                "field": field,
                "delay": params.get("sync_delay", self._config.default_sync_delay),
            }
        }


class GeneratorRegistry(Mapping[str, JobSpecGenerator]):
    """Kind tag -> generator lookup.

    New kinds are added with register() without touching the controller.
    """

    def __init__(self, generators: Iterable[JobSpecGenerator] = ()) -> None:
        self._generators: dict[str, JobSpecGenerator] = {}
        for generator in generators:
            self.register(generator)

    def register(self, generator: JobSpecGenerator, kind: str | None = None) -> None:
        """Register generator under kind (default: generator.kind).

        Re-registering a kind replaces the previous generator.
        """
        self._generators[kind or generator.kind] = generator

    def kinds(self) -> list[str]:
        return sorted(self._generators)

    def __getitem__(self, kind: str) -> JobSpecGenerator:
        return self._generators[kind]

    def __iter__(self) -> Iterator[str]:
        return iter(self._generators)

    def __len__(self) -> int:
        return len(self._generators)
