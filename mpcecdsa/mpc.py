"""
Secret sharing based arithmetic run by every party.

Each party holds one fragment of every shared variable. Addition is local.
Multiplication multiplies fragments locally, which gives a point on a
polynomial of degree 2(k-1), then re-shares that product and interpolates
the received fragments back down to degree k-1.

For more details refer to the BGW degree reduction:
https://eprint.iacr.org/2011/136.pdf
"""

import asyncio
from typing import Awaitable, Callable, Dict, Iterable, Optional, Set

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from .config import DEALER, DEFAULT_TRANSPORT_CONFIG, MPCConfig, TransportConfig
from .errors import FieldInverseOfZero, ModulusMismatch, TransportError
from .finite_field import FiniteField, P_FIELD
from .transport import Transport, decode_value, encode_value
from .variables import Public, Secret, Share

logger = structlog.get_logger(__name__)


class Party:
    def __init__(self, id: int, transport: Transport,
                 config: TransportConfig = DEFAULT_TRANSPORT_CONFIG):
        if id < 1:
            raise ValueError(f"party id must be positive, got {id}")
        self.id = id
        self.transport = transport
        self.config = config

    async def connect(self) -> Set[int]:
        return await self._retry(self.transport.register, self.id)

    async def wait_for_peers(self, peers: Iterable[int]) -> Set[int]:
        return await self.transport.wait_for_parties(peers, self.config.timeout)

    @staticmethod
    def share_key(share: Share) -> str:
        return f"{share.name}/p{share.idx}"

    async def send_share(self, share: Share, peer_id: int):
        if not share.known:
            raise ValueError(f"{share!r} has no value to send")
        await self._retry(self.transport.send, peer_id, self.share_key(share), encode_value(share.value))
        logger.debug("share_sent", party=self.id, peer=peer_id, name=share.name, idx=share.idx)

    async def receive_share(self, share: Share) -> bool:
        """
        Fill share with the value posted for this party. Returns at once if
        the share is already known.
        """
        if share.known:
            return True
        payload = await self._retry(self.transport.receive, self.id, self.share_key(share), self.config.timeout)
        share.value = share.field.normalize(decode_value(payload))
        logger.debug("share_received", party=self.id, name=share.name, idx=share.idx)
        return True

    async def send_public(self, public: Public, peer_id: int):
        if not public.known:
            raise ValueError(f"{public!r} has no value to send")
        await self._retry(self.transport.send, peer_id, public.name, encode_value(public.value))

    async def receive_public(self, public: Public) -> bool:
        if public.known:
            return True
        payload = await self._retry(self.transport.receive, self.id, public.name, self.config.timeout)
        public.value = decode_value(payload)
        return True

    async def _retry(self, fn, *args):
        # only transport failures are retried, a timeout is fatal to the run
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(TransportError),
            stop=stop_after_attempt(self.config.retries),
            wait=wait_exponential(multiplier=self.config.backoff_min,
                                  min=self.config.backoff_min, max=self.config.backoff_max),
            before_sleep=self._log_retry,
            reraise=True,
        ):
            with attempt:
                result = await fn(*args)
        return result

    def _log_retry(self, retry_state):
        logger.warning("transport_retry", party=self.id,
                       attempt=retry_state.attempt_number,
                       error=repr(retry_state.outcome.exception()))

    def __repr__(self):
        return f"Party({'dealer' if self.id == DEALER else self.id})"


class MPC:
    def __init__(self, p: Party, conf: MPCConfig, field: FiniteField = P_FIELD):
        self.p = p
        self.conf = conf
        self.field = field

    @property
    def id(self) -> int:
        return self.p.id

    def check_field(self, *variables):
        for v in variables:
            if v.field != self.field:
                raise ModulusMismatch(f"{v!r} belongs to {v.field}, engine runs over {self.field}")

    def split(self, s: Secret) -> Dict[int, Share]:
        self.check_field(s)
        return s.split(self.conf.n, self.conf.k)

    async def send_share(self, share: Share, peer_id: int):
        await self.p.send_share(share, peer_id)

    async def receive_share(self, share: Share) -> bool:
        return await self.p.receive_share(share)

    async def send_public(self, public: Public, peers: Optional[Iterable[int]] = None):
        peers = self.conf.parties if peers is None else peers
        await asyncio.gather(*(self.p.send_public(public, peer) for peer in peers))

    async def receive_public(self, public: Public) -> bool:
        return await self.p.receive_public(public)

    async def ensure(self, *shares: Share):
        # the same operand may be passed twice, as in add(c, a, a), and a share
        # object is filled once
        pending = {id(s): s for s in shares if not s.known}
        await asyncio.gather(*(self.p.receive_share(s) for s in pending.values()))

    async def add(self, c: Share, a: Share, b: Share) -> Share:
        self.check_field(c, a, b)
        await self.ensure(a, b)
        c.value = self.field.add(a.value, b.value)
        return c

    async def mul(self, c: Share, a: Share, b: Share) -> Share:
        self.check_field(c, a, b)
        await self.ensure(a, b)
        prefix = f"{c.name}:{a.name}*{b.name}"

        ab_local = Secret(f"{prefix}#{self.id}", self.field.mul(a.value, b.value), self.field)
        await self._distribute(ab_local)
        logger.debug("mul_reshared", party=self.id, name=c.name)

        # one fragment of every party's product, all on the original party indices
        ab = Secret(prefix, field=self.field)
        remote = [Share(f"{prefix}#{i}", self.id, field=self.field) for i in self.conf.parties]
        await self.ensure(*remote)
        for i, share in zip(self.conf.parties, remote):
            ab.set_share(Share(prefix, i, share.value, self.field))
        c.value = ab.reconstruct(self.conf.n)
        return c

    async def rand(self, share: Share) -> Share:
        self.check_field(share)
        if self.conf.rand_mode == "local":
            share.value = self.field.rand()
            return share

        contribution = Secret(f"{share.name}:rand#{self.id}", self.field.rand(), self.field)
        await self._distribute(contribution)
        remote = [Share(f"{share.name}:rand#{i}", self.id, field=self.field) for i in self.conf.parties]
        await self.ensure(*remote)
        value = 0
        for r in remote:
            value = self.field.add(value, r.value)
        share.value = value
        return share

    async def inv(self, c: Share, a: Share) -> Share:
        """
        Fragment of a^-1.

        local: invert the own fragment. This is not a fragment of the inverse
               of the shared value, it is kept for compatibility only.
        joint: open w = a*u for a jointly random mask u, then c = w^-1 * u.
               Reveals nothing about a as long as u stays hidden.
        """
        self.check_field(c, a)
        await self.ensure(a)
        if self.conf.inverse_mode == "local":
            c.value = self.field.inv(a.value)
            return c

        u = await self.rand(Share(f"{c.name}:mask", self.id, field=self.field))
        w = await self.mul(Share(f"{c.name}:masked", self.id, field=self.field), a, u)
        w_open = await self.open(w)
        if w_open == 0:
            raise FieldInverseOfZero(f"{a.name} or its mask is zero, no inverse")
        c.value = self.field.mul(self.field.inv(w_open), u.value)
        return c

    async def open(self, share: Share) -> int:
        """Reveal a shared value to every party."""
        self.check_field(share)
        await self.ensure(share)
        name = f"{share.name}:open"
        mine = Share(name, self.id, share.value, self.field)
        await asyncio.gather(*(self.p.send_share(mine, peer) for peer in self.conf.parties))
        opened = Secret(name, field=self.field)
        for i in self.conf.parties:
            opened.get_share(i)
        await self.ensure(*opened.shares.values())
        return opened.reconstruct(self.conf.k)

    async def _distribute(self, s: Secret):
        shares = s.split(self.conf.n, self.conf.k)
        await asyncio.gather(*(self.p.send_share(share, idx) for idx, share in shares.items()))


async def mp_compute(p: Party, conf: MPCConfig, func: Callable[[MPC], Awaitable[Share]],
                     field: FiniteField = P_FIELD, dealer: int = DEALER) -> Share:
    """
    Run func as party p and hand the resulting share to the dealer.
    """
    mpc = MPC(p, conf, field)
    await p.connect()
    result = await func(mpc)
    await p.send_share(result, dealer)
    logger.info("result_sent", party=p.id, name=result.name, dealer=dealer)
    return result
