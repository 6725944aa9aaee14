"""
arca/city/event_log.py

The registry's transition log.

Every successful mutating operation appends exactly one LogEntry:
the operation name, who called it, its parameters, and the record it
emitted (None for operations that emit nothing).

Ordering rule: records are emitted BEFORE the registry writes the state
change. Subscribers run synchronously at emission, so a subscriber that
re-queries the registry sees the state as it was before the write.
If a subscriber raises, the pending entry is dropped and the exception
propagates, which aborts the operation before anything is written.
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Optional

from loguru import logger

from arca.agents.agent import AgentTraits


# ─── Emitted records ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class CityCreated:
    creator: str
    name: str
    max_population: int
    timestamp: int


@dataclass(frozen=True)
class AgentCreated:
    """
    balance is whatever the token reported for the identity at creation.
    The stored Agent always starts at 0, so the two can disagree.
    """
    owner: str
    name: str
    identity: str
    persona: str
    balance: int
    traits: AgentTraits
    timestamp: int
    reputation_score: int


@dataclass(frozen=True)
class AgentKilled:
    killer: str
    identity: str
    timestamp: int


@dataclass(frozen=True)
class RoleGranted:
    role: str
    account: str
    sender: str


@dataclass(frozen=True)
class RoleRevoked:
    role: str
    account: str
    sender: str


EVENT_TYPES = {
    cls.__name__: cls
    for cls in (CityCreated, AgentCreated, AgentKilled, RoleGranted, RoleRevoked)
}


@dataclass(frozen=True)
class LogEntry:
    seq: int
    operation: str
    caller: str
    timestamp: int
    params: dict = field(default_factory=dict)
    event: Optional[Any] = None

    def to_dict(self) -> dict:
        event = None
        if self.event is not None:
            payload = asdict(self.event)
            if isinstance(self.event, AgentCreated):
                payload["traits"] = self.event.traits.model_dump()
            event = {"type": type(self.event).__name__, **payload}
        return {
            "seq": self.seq,
            "operation": self.operation,
            "caller": self.caller,
            "timestamp": self.timestamp,
            "params": dict(self.params),
            "event": event,
        }


def entry_from_dict(data: dict) -> LogEntry:
    """Inverse of LogEntry.to_dict, used when restoring a saved registry."""
    event = None
    raw = data.get("event")
    if raw:
        raw = dict(raw)
        cls = EVENT_TYPES[raw.pop("type")]
        if cls is AgentCreated:
            raw["traits"] = AgentTraits(**raw["traits"])
        event = cls(**raw)
    return LogEntry(
        seq=data["seq"],
        operation=data["operation"],
        caller=data["caller"],
        timestamp=data["timestamp"],
        params=dict(data.get("params") or {}),
        event=event,
    )


Subscriber = Callable[[LogEntry], None]


class EventLog:
    """
    Append-only, in-memory ledger of registry transitions.
    """

    def __init__(self, entries: list[LogEntry] = None):
        self._entries: list[LogEntry] = list(entries or [])
        self._subscribers: list[Subscriber] = []

    def subscribe(self, callback: Subscriber) -> None:
        """callback(entry) is invoked for every new entry, before the state write."""
        self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        if callback in self._subscribers:
            self._subscribers.remove(callback)

    # ─── Core logging ─────────────────────────────────────────────────────────

    def record(
        self,
        operation: str,
        caller: str,
        timestamp: int,
        params: dict = None,
        event: Any = None,
    ) -> LogEntry:
        """
        Append an entry and notify subscribers.
        Returns the new entry. On subscriber failure nothing is kept.
        """
        entry = LogEntry(
            seq=len(self._entries) + 1,
            operation=operation,
            caller=caller,
            timestamp=timestamp,
            params=dict(params or {}),
            event=event,
        )
        self._entries.append(entry)
        try:
            for callback in list(self._subscribers):
                callback(entry)
        except Exception:
            self._entries.pop()
            logger.warning(f"EventLog: subscriber rejected #{entry.seq} {operation}, entry dropped")
            raise

        kind = type(event).__name__ if event is not None else "-"
        logger.debug(f"EventLog #{entry.seq}: {operation} by {caller} → {kind}")
        return entry

    # ─── Queries ──────────────────────────────────────────────────────────────

    def entries(self) -> list[LogEntry]:
        return list(self._entries)

    def events(self, kind: type = None) -> list:
        """Emitted records in order, optionally only those of one type."""
        return [
            e.event for e in self._entries
            if e.event is not None and (kind is None or isinstance(e.event, kind))
        ]

    def __len__(self) -> int:
        return len(self._entries)
