from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from chefstake.util.structured_logging import log_event

Json = Dict[str, Any]

DEPOSIT = "Deposit"
WITHDRAW = "Withdraw"
EMERGENCY_WITHDRAW = "EmergencyWithdraw"
POOL_ADDED = "PoolAdded"
POOL_WEIGHT_SET = "PoolWeightSet"
REWARD_RATE_SET = "RewardRateSet"

_log = logging.getLogger("chefstake.events")


@dataclass(frozen=True)
class Event:
    name: str
    actor: str
    pool_index: Optional[int]
    amount: int
    time: int
    extra: Optional[Json] = None

    def to_json(self) -> Json:
        return asdict(self)


class EventLog:
    """Append-only record of registry events, mirrored to the JSONL log."""

    def __init__(self) -> None:
        self._events: List[Event] = []
        self._lock = threading.Lock()

    def emit(
        self,
        name: str,
        *,
        actor: str,
        pool_index: Optional[int],
        amount: int,
        time: int,
        **extra: Any,
    ) -> Event:
        ev = Event(
            name=str(name),
            actor=str(actor),
            pool_index=pool_index,
            amount=int(amount),
            time=int(time),
            extra=dict(extra) or None,
        )
        with self._lock:
            self._events.append(ev)
        log_event(_log, name, actor=ev.actor, pool_index=pool_index, amount=ev.amount, time=ev.time, **extra)
        return ev

    def all(self) -> List[Event]:
        with self._lock:
            return list(self._events)

    def named(self, name: str) -> List[Event]:
        return [e for e in self.all() if e.name == name]

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)
