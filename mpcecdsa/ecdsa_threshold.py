"""
Threshold ECDSA on top of the secret sharing MPC engine.

Honest but curious model, no proofs of correct behaviour.
n = total number of participants
k = minimum number of participants needed to reconstruct

Per signer i:
1. key generation: random fragment x_i, Q_i = x_i*G, Q = interpolation of the Q_i
2. nonce generation: random fragment k_i, R_i = k_i*G, R = interpolation, r = R.x mod N
3. fragment of k^-1
4. beta_i = H(m) + r*x_i
5. s_i = fragment of k^-1 * beta
6. a coordinator interpolates s from at least k fragments. Signature is (r, s).

All scalars live in the curve order field N_FIELD, never in P_FIELD.
"""

import asyncio
from enum import Enum
from typing import Iterable, List, NamedTuple, Optional, Sequence

import structlog

from .config import DEALER, MPCConfig
from .ecdsa_op import (
    O, Signature, ec_add, ec_scalar_mul, ecdsa_verify, hash_message, order,
    point_from_coords, pub_key_from_priv, uncompressed_hex, valid,
)
from .errors import InsufficientShares, ModulusMismatch, ProtocolStateError, SigningError
from .finite_field import N_FIELD
from .mpc import MPC, Party
from .shamir import check_points, lagrange_coefficient
from .variables import Public, Secret, Share

logger = structlog.get_logger(__name__)


class ECPointShare(NamedTuple):
    idx: int
    point: object


def reconstruct_point(points: Sequence[ECPointShare], k: int):
    """
    Lagrange interpolation at x = 0 in the curve group:
        sum_i lambda_i * P_i
    The coefficients are computed modulo the curve order.
    """
    xs = [idx for idx, _ in points]
    check_points(xs, k)
    result = O
    for i, (idx, P) in enumerate(points):
        if not valid(P):
            raise ValueError(f"point of party {idx} is not on the curve")
        result = ec_add(result, ec_scalar_mul(P, lagrange_coefficient(xs, i, N_FIELD)))
    return result


def point_names(name: str, idx: int):
    return f"{name}#{idx}.x", f"{name}#{idx}.y"


async def gather_point(p: Party, name: str, parties: Iterable[int], k: int):
    """Receive the public point fragments named name and interpolate them."""
    parties = list(parties)
    coords = [tuple(Public(n) for n in point_names(name, i)) for i in parties]
    await asyncio.gather(*(p.receive_public(v) for pair in coords for v in pair))
    points = [ECPointShare(i, point_from_coords(x.value, y.value))
              for i, (x, y) in zip(parties, coords)]
    return reconstruct_point(points, k)


class SignerState(Enum):
    IDLE = "idle"
    KEY_GENERATED = "key_generated"
    NONCE_GENERATED = "nonce_generated"
    SHARE_COMPUTED = "share_computed"
    SHARE_SENT = "share_sent"
    COORDINATOR_RECONSTRUCTED = "coordinator_reconstructed"
    SIGNATURE_READY = "signature_ready"


class MPCECDSA:
    def __init__(self, mpc: MPC, coordinator: int = DEALER):
        if mpc.field != N_FIELD:
            raise ModulusMismatch(f"ECDSA scalars must live in {N_FIELD}, engine runs over {mpc.field}")
        self.mpc = mpc
        self.coordinator = coordinator
        self.state = SignerState.IDLE
        self.pub = None
        self.r: Optional[int] = None
        self._nonce_name: Optional[str] = None

    @property
    def id(self) -> int:
        return self.mpc.id

    @property
    def conf(self) -> MPCConfig:
        return self.mpc.conf

    def _require(self, *states: SignerState):
        if self.state not in states:
            allowed = ", ".join(s.value for s in states)
            raise ProtocolStateError(f"party {self.id} is {self.state.value}, expected one of {allowed}")

    def _targets(self) -> List[int]:
        targets = list(self.conf.parties)
        if self.coordinator not in targets:
            targets.append(self.coordinator)
        return targets

    async def _broadcast_point(self, name: str, point):
        x, y = point_names(name, self.id)
        await asyncio.gather(
            self.mpc.send_public(Public(x, point.x()), self._targets()),
            self.mpc.send_public(Public(y, point.y()), self._targets()),
        )

    async def keygen(self, priv: Share, name: str = "pub"):
        """
        Generate this party's private key fragment into priv and return the
        joint public key.
        """
        self._require(SignerState.IDLE)
        await self.mpc.rand(priv)
        await self._broadcast_point(name, pub_key_from_priv(priv.value))
        self.pub = await gather_point(self.mpc.p, name, self.conf.parties, self.conf.k)
        self.state = SignerState.KEY_GENERATED
        logger.info("key_generated", party=self.id, pub=uncompressed_hex(self.pub))
        return self.pub

    async def gen_nonce(self, nonce: Share, name: str = "R") -> int:
        self._require(SignerState.KEY_GENERATED, SignerState.SHARE_SENT, SignerState.SIGNATURE_READY)
        await self.mpc.rand(nonce)
        await self._broadcast_point(name, pub_key_from_priv(nonce.value))
        R = await gather_point(self.mpc.p, name, self.conf.parties, self.conf.k)
        if R == O or R.x() % order == 0:
            raise SigningError("joint nonce gives r = 0, generate a new one")
        self.r = R.x() % order
        self._nonce_name = name
        self.state = SignerState.NONCE_GENERATED
        logger.debug("nonce_generated", party=self.id, name=name)
        return self.r

    async def sign(self, message: bytes, priv: Share, nonce: Share, name: str = "s") -> Optional[Signature]:
        """
        Compute this party's fragment of s and send it to the coordinator.
        The coordinator also collects the fragments and gets the signature,
        the other parties get None.
        """
        self._require(SignerState.NONCE_GENERATED)
        self.mpc.check_field(priv, nonce)

        k_inv = await self.mpc.inv(Share(f"{name}:kinv", self.id, field=N_FIELD), nonce)
        beta = N_FIELD.element(hash_message(message)) + priv.element * self.r
        s_i = await self.mpc.mul(
            Share(name, self.id, field=N_FIELD),
            k_inv,
            Share(f"{name}:beta", self.id, int(beta), N_FIELD),
        )
        self.state = SignerState.SHARE_COMPUTED

        await self.mpc.send_share(s_i, self.coordinator)
        self.state = SignerState.SHARE_SENT
        if self.id != self.coordinator:
            return None

        coordinator = SignatureCoordinator(self.mpc.p, self.conf)
        signature = await coordinator.assemble(self._nonce_name, name)
        self.state = SignerState.COORDINATOR_RECONSTRUCTED
        coordinator.check(signature, self.pub, message)
        self.state = SignerState.SIGNATURE_READY
        return signature

    async def disclose(self, share: Share):
        """Hand a fragment to the coordinator. Debugging and tests only."""
        await self.mpc.send_share(share, self.coordinator)


class SignatureCoordinator:
    """
    Collects the public points and the fragments of s, and assembles
    the final signature.
    """

    def __init__(self, p: Party, conf: MPCConfig, participants: Optional[Iterable[int]] = None):
        self.p = p
        self.conf = conf
        self.participants = sorted(conf.parties if participants is None else participants)
        unknown = set(self.participants) - set(conf.parties)
        if unknown:
            raise ValueError(f"Invalid participants {sorted(unknown)}, parties are 1..{conf.n}")

    async def receive_point(self, name: str):
        return await gather_point(self.p, name, self.conf.parties, self.conf.k)

    async def _reconstruct(self, name: str) -> int:
        if len(self.participants) < self.conf.k:
            raise InsufficientShares(f"{len(self.participants)} participants, {self.conf.k} needed")
        secret = Secret(name, field=N_FIELD)
        await asyncio.gather(*(self.p.receive_share(secret.get_share(i)) for i in self.participants))
        return secret.reconstruct(self.conf.k)

    async def assemble(self, nonce: str = "R", name: str = "s") -> Signature:
        """(r, s) from the nonce points and the fragments of s. Not verified."""
        R = await self.receive_point(nonce)
        if R == O or R.x() % order == 0:
            raise SigningError("r = 0")
        s = await self._reconstruct(name)
        if s == 0:
            raise SigningError("s = 0")
        return Signature(R.x() % order, s)

    def check(self, signature: Signature, pub, message: bytes):
        if not ecdsa_verify(pub, signature, message):
            raise SigningError(f"joint signature does not verify under {uncompressed_hex(pub)}")
        logger.info("signature_ready", party=self.p.id, signature=repr(signature))

    async def collect_signature(self, message: bytes, pub, nonce: str = "R", name: str = "s") -> Signature:
        signature = await self.assemble(nonce, name)
        self.check(signature, pub, message)
        return signature

    async def reconstruct_private_key(self, name: str = "priv") -> int:
        """Only for fragments explicitly disclosed by the signers."""
        return await self._reconstruct(name)
