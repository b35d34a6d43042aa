"""
Failure registry for deferred collection, aggregation, and output.

Implements a collect-aggregate-flush pattern for replication failures.
Instead of emitting one warning per failed replication (which produces
hundreds of duplicates for a systematically degenerate scenario), the
registry buffers the failures and emits one aggregated
:class:`ReplicationFailureWarning` per scenario once the replication loop
has completed.

The ``get_diagnostics()`` method always returns the full record set, so
failures stay inspectable after the warning has been filtered out.
"""

import warnings
from collections import defaultdict
from dataclasses import dataclass
from typing import Optional

from .warnings_categories import ReplicationFailureWarning


@dataclass(frozen=True)
class FailureRecord:
    """Single replication failure captured by the registry."""

    replication: int
    error_type: str
    message: str


class FailureRegistry:
    """
    Collector of replication failures for one scenario.

    Parameters
    ----------
    scenario_name : str
        Label used in the aggregated warning message.
    """

    def __init__(self, scenario_name: str) -> None:
        self._scenario_name = scenario_name
        self._records: list[FailureRecord] = []
        self._flushed: bool = False

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def collect(self, replication: int, error_type: str, message: str) -> None:
        """Buffer a failure record without emitting anything."""
        self._records.append(
            FailureRecord(replication=replication, error_type=error_type, message=message)
        )

    @property
    def n_failed(self) -> int:
        return len(self._records)

    def flush(self, total_replications: Optional[int] = None) -> Optional[str]:
        """
        Emit one aggregated warning for the buffered failures.

        Subsequent calls are no-ops (idempotent). An empty registry emits
        nothing.

        Parameters
        ----------
        total_replications : int or None
            Replications attempted, used to report an ``M/R`` ratio.

        Returns
        -------
        str or None
            The emitted message, or None if nothing was emitted.
        """
        if self._flushed:
            return None
        self._flushed = True

        if not self._records:
            return None

        message = self._format_summary(total_replications)
        warnings.warn(message, ReplicationFailureWarning, stacklevel=2)
        return message

    def get_diagnostics(self) -> list[dict]:
        """
        Return structured diagnostic data for all collected failures.

        Returns
        -------
        list of dict
            One dict per error type with keys ``error_type``, ``message``
            (first occurrence), ``count`` and ``replications``.
        """
        diagnostics = []
        for error_type, records in self._aggregate_by_type().items():
            diagnostics.append({
                'error_type': error_type,
                'message': records[0].message,
                'count': len(records),
                'replications': [r.replication for r in records],
            })
        return diagnostics

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _aggregate_by_type(self) -> dict[str, list[FailureRecord]]:
        """Group records by error type, preserving insertion order."""
        grouped: dict[str, list[FailureRecord]] = defaultdict(list)
        for rec in self._records:
            grouped[rec.error_type].append(rec)
        return dict(grouped)

    def _format_summary(self, total_replications: Optional[int]) -> str:
        n_failed = len(self._records)
        if total_replications:
            ratio_str = f"{n_failed}/{total_replications} replications failed"
        else:
            ratio_str = f"{n_failed} replications failed"
        parts = [
            f"{error_type} x{len(records)} (first: {records[0].message})"
            for error_type, records in self._aggregate_by_type().items()
        ]
        return f"Scenario '{self._scenario_name}': {ratio_str}: " + "; ".join(parts)
