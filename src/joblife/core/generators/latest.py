"""Latest job generator: keep the most recent document per unique key."""

from collections.abc import Mapping
from typing import Any

from joblife.core.errors import InvalidJobDefinitionError
from joblife.core.generators.base import JobKind, JobSpecGenerator, require_str


class LatestJobGenerator(JobSpecGenerator):
    kind = JobKind.LATEST

    def build_function(self, params: Mapping[str, Any]) -> dict[str, Any]:
        unique_key = params.get("unique_key")
        if (
            not isinstance(unique_key, list)
            or not unique_key
            or not all(isinstance(key, str) and key for key in unique_key)
        ):
            raise InvalidJobDefinitionError(
                "Missing or invalid param [unique_key]: expected non-empty list of field names"
            )
        return {"latest": {"unique_key": list(unique_key), "sort": require_str(params, "sort")}}
