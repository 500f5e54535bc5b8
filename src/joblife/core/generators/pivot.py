"""Pivot job generator: group source documents and aggregate per group."""

from collections.abc import Mapping
from typing import Any

from joblife.core.errors import InvalidJobDefinitionError
from joblife.core.generators.base import JobKind, JobSpecGenerator, require_mapping


class PivotJobGenerator(JobSpecGenerator):
    """Generator for `pivot` jobs.

    Params:
    - group_by: name -> terms field, or name -> full group source
      (e.g. {"@timestamp": {"date_histogram": {...}}})
    - aggregations: name -> aggregation document, passed through
    """

    kind = JobKind.PIVOT

    def build_function(self, params: Mapping[str, Any]) -> dict[str, Any]:
        group_by: dict[str, Any] = {}
        for name, source in require_mapping(params, "group_by").items():
            if isinstance(source, str) and source:
                group_by[name] = {"terms": {"field": source}}
            elif isinstance(source, Mapping) and source:
                group_by[name] = dict(source)
            else:
                raise InvalidJobDefinitionError(
                    f"Invalid group_by source [{name}]: expected field name or mapping"
                )

        aggregations = require_mapping(params, "aggregations")
        return {"pivot": {"group_by": group_by, "aggregations": dict(aggregations)}}
