"""Exception hierarchy for the lineage engine.

Only malformed input is exceptional.  Querying a node, attribute, or group
that does not exist is signalled by returning ``None`` from the query
function so that callers decide how to present a miss.
"""

from __future__ import annotations


class LineageEngineError(Exception):
    """Base class for every error raised by the lineage engine."""


class ConfigLoadError(LineageEngineError):
    """Raised when a configuration file cannot be read or decoded."""


class ConfigValidationError(LineageEngineError):
    """Raised when a configuration fails structural validation.

    Attributes
    ----------
    errors:
        Human-readable validation messages, in discovery order.
    """

    def __init__(self, errors: list[str]) -> None:
        self.errors = errors
        super().__init__("Invalid configuration: " + "; ".join(errors))


class InvalidSelectionError(LineageEngineError):
    """Raised when backfill planning receives names that are not pipelines.

    Attributes
    ----------
    invalid:
        The offending names, in the order they were supplied.
    """

    def __init__(self, invalid: list[str], message: str | None = None) -> None:
        self.invalid = invalid
        if message is None:
            message = "Backfill planning is only available for pipelines. " f"Invalid: {', '.join(invalid)}"
        super().__init__(message)


class CyclicDependencyError(LineageEngineError):
    """Raised when the dependency graph contains one or more cycles.

    Attributes
    ----------
    cycles:
        A list of cycles, where each cycle is a list of node names
        forming the loop (e.g. ``[["a", "b", "c"]]`` means a -> b -> c -> a).
    """

    def __init__(self, cycles: list[list[str]]) -> None:
        self.cycles = cycles
        formatted = "; ".join(" -> ".join(c + [c[0]]) for c in cycles if c)
        super().__init__(f"Cyclic dependencies detected: {formatted}")


class MissingAirflowLinksError(LineageEngineError):
    """Raised when a backfill plan cannot be mapped onto Airflow DAGs."""

    def __init__(self, missing: list[str]) -> None:
        self.missing = missing
        super().__init__(
            "Cannot generate Airflow backfill plan. The following pipelines are "
            f"missing airflow links: {', '.join(missing)}"
        )
