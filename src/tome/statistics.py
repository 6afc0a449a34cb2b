from __future__ import annotations

from collections import defaultdict
from time import monotonic
from typing import TYPE_CHECKING, DefaultDict, Dict, Optional

from tome.registry import InterfaceRegistry

if TYPE_CHECKING:
    from tome.base.interface import BaseInterface

STATISTIC_KEYS = (
    "ConnectionTime",
    "ExecutionTime",
    "SelectCount",
    "SelectRows",
    "IduCount",
    "IduRows",
    "ProcedureCount",
    "Transactions",
    "Commits",
    "Rollbacks",
)
SELECT_VERBS = ("SELECT", "WITH")
IDU_VERBS = ("INSERT", "UPDATE", "DELETE", "MERGE")
PROCEDURE_VERBS = ("CALL", "EXEC", "EXECUTE", "{CALL")


class ConnectionStatistics:
    """Counters collected by an interface while statistics are enabled.

    Times are in milliseconds.
    """

    def __init__(self) -> None:
        self._connected_at: Optional[float] = None
        self.reset()

    def reset(self) -> None:
        self._counter: DefaultDict[str, int] = defaultdict(int)
        if self._connected_at is not None:
            self._connected_at = monotonic()

    def connected(self) -> None:
        self._connected_at = monotonic()

    def disconnected(self) -> None:
        if self._connected_at is not None:
            self._counter["ConnectionTime"] += _elapsed_ms(self._connected_at)
        self._connected_at = None

    def record_execution(self, query: str, rows: int, started: float) -> None:
        words = query.split(None, 1)
        verb = words[0].upper() if words else ""
        if verb in SELECT_VERBS:
            self._counter["SelectCount"] += 1
            self._counter["SelectRows"] += max(rows, 0)
        elif verb in IDU_VERBS:
            self._counter["IduCount"] += 1
            self._counter["IduRows"] += max(rows, 0)
        elif verb in PROCEDURE_VERBS:
            self._counter["ProcedureCount"] += 1
        self._counter["ExecutionTime"] += _elapsed_ms(started)

    def record_transaction(self, event: str) -> None:
        key = {
            "begin": "Transactions",
            "commit": "Commits",
            "rollback": "Rollbacks",
        }[event]
        self._counter[key] += 1

    def as_dict(self) -> Dict[str, int]:
        values = {key: self._counter.get(key, 0) for key in STATISTIC_KEYS}
        if self._connected_at is not None:
            values["ConnectionTime"] += _elapsed_ms(self._connected_at)
        return values


def _elapsed_ms(since: float) -> int:
    return int((monotonic() - since) * 1000)


def log_statistics_report(logger, *interfaces: BaseInterface) -> None:
    COLUMN_SIZE = 14
    if not interfaces:
        interfaces = tuple(InterfaceRegistry())
    enabled = [
        interface for interface in interfaces if interface.statistics_enabled
    ]
    if not enabled:
        logger.warning("No interface statistics found")
        return

    names = {interface: str(interface) for interface in enabled}
    max_name = max(map(len, names.values()))
    keys = [key.rjust(COLUMN_SIZE) for key in STATISTIC_KEYS]
    headers = " | ".join([" " * max_name, *keys])

    totals: DefaultDict[str, int] = defaultdict(int)
    row_data = []
    for interface in sorted(enabled, key=lambda i: names[i]):
        statistics = interface.retrieve_statistics()
        for key, value in statistics.items():
            totals[key] += value
        row_data.append(
            " | ".join(
                [
                    names[interface].rjust(max_name),
                    *[
                        str(statistics[key]).rjust(COLUMN_SIZE)
                        for key in STATISTIC_KEYS
                    ],
                ]
            )
        )

    rows = "\n".join(row_data)
    divider = "=" * len(row_data[0])
    total_row = " | ".join(
        [
            "TOTALS".rjust(max_name),
            *[str(totals[key]).rjust(COLUMN_SIZE) for key in STATISTIC_KEYS],
        ]
    )
    title = "CONNECTION STATISTICS".center(len(divider))

    logger.info(
        f"SQL Statistics Report\n\n{title}\n\n{headers}\n"
        f"{rows}\n{divider}\n{total_row}\n\n"
    )
