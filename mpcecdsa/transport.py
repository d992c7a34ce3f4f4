"""Transport abstractions for moving values between parties."""
from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Dict, Iterable, Optional, Set, Tuple

import structlog

from .errors import DuplicateShareWrite, ShareNotReceived

logger = structlog.get_logger(__name__)

SlotKey = Tuple[int, str]


def encode_value(value: int) -> str:
    """Integers travel as 0x prefixed lower case hex text."""
    if value < 0:
        raise ValueError(f"only non-negative integers can be sent, got {value}")
    return hex(value)


def decode_value(payload: str) -> int:
    return int(payload, 16)


class Transport(ABC):
    """
    Named point to point value exchange.

    Slots are keyed by (destination party, name) and are written at most once.
    A read of an empty slot waits until the slot is written.
    """

    @abstractmethod
    async def register(self, party_id: int) -> Set[int]:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def get_parties(self) -> Set[int]:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def wait_for_parties(self, parties: Iterable[int], timeout: Optional[float] = None) -> Set[int]:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def send(self, destination: int, name: str, value: str) -> None:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def receive(self, party_id: int, name: str, timeout: Optional[float] = None) -> str:  # pragma: no cover - interface
        ...

    @abstractmethod
    async def clear(self) -> None:  # pragma: no cover - interface
        ...


class LocalTransport(Transport):
    """
    In process transport. All parties share one instance and run on one
    event loop.
    """

    def __init__(self, name: str = "default") -> None:
        self.name = name
        self._parties: Set[int] = set()
        self._slots: Dict[SlotKey, asyncio.Future] = {}
        self._joined: Optional[asyncio.Condition] = None

    def _slot(self, key: SlotKey) -> asyncio.Future:
        fut = self._slots.get(key)
        if fut is None:
            fut = asyncio.get_running_loop().create_future()
            self._slots[key] = fut
        return fut

    def _condition(self) -> asyncio.Condition:
        if self._joined is None:
            self._joined = asyncio.Condition()
        return self._joined

    async def register(self, party_id: int) -> Set[int]:
        cond = self._condition()
        async with cond:
            self._parties.add(party_id)
            cond.notify_all()
        logger.debug("party_registered", session=self.name, party=party_id)
        return set(self._parties)

    async def get_parties(self) -> Set[int]:
        return set(self._parties)

    async def wait_for_parties(self, parties: Iterable[int], timeout: Optional[float] = None) -> Set[int]:
        expected = set(parties)
        cond = self._condition()

        async def _wait() -> None:
            async with cond:
                await cond.wait_for(lambda: expected <= self._parties)

        try:
            await asyncio.wait_for(_wait(), timeout)
        except asyncio.TimeoutError as exc:
            missing = sorted(expected - self._parties)
            raise ShareNotReceived(f"parties {missing} did not join {self.name}") from exc
        return set(self._parties)

    async def send(self, destination: int, name: str, value: str) -> None:
        fut = self._slot((destination, name))
        if fut.done():
            raise DuplicateShareWrite(f"slot p{destination}/{name} already written")
        fut.set_result(value)

    async def receive(self, party_id: int, name: str, timeout: Optional[float] = None) -> str:
        fut = self._slot((party_id, name))
        if fut.done():
            return fut.result()
        try:
            # shield: an expired reader must not cancel the slot for later reads
            return await asyncio.wait_for(asyncio.shield(fut), timeout)
        except asyncio.TimeoutError as exc:
            raise ShareNotReceived(f"p{party_id}/{name} not received within {timeout}s") from exc

    async def clear(self) -> None:
        # pending readers get ShareNotReceived, never a bare CancelledError
        for (party_id, name), fut in self._slots.items():
            if not fut.done():
                fut.set_exception(ShareNotReceived(f"p{party_id}/{name}: session {self.name} cleared"))
                # mark retrieved, a slot whose reader already gave up must not log
                fut.exception()
        self._slots.clear()
        self._parties.clear()
        logger.debug("session_cleared", session=self.name)

    def __repr__(self):
        return f"LocalTransport({self.name}, parties={sorted(self._parties)}, slots={len(self._slots)})"
