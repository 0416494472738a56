"""Tagged result of looking up an event in a transaction receipt."""
from dataclasses import dataclass, field
from typing import Any, Union


@dataclass(frozen=True)
class EventFound:
    """The receipt contained a decodable log for the event."""
    name: str
    args: dict[str, Any] = field(default_factory=dict)
    log_index: int | None = None


@dataclass(frozen=True)
class EventNotFound:
    """No log in the receipt decoded to the event.

    The transaction itself succeeded; only the derived identifier is unknown.
    """
    name: str


EventLookup = Union[EventFound, EventNotFound]
