"""
Tests
"""

import asyncio
import itertools
import secrets
from hashlib import sha256

import pytest
from ecdsa import BadSignatureError, SECP256k1, VerifyingKey
from ecdsa.ellipticcurve import PointJacobi

from mpcecdsa.config import DEALER, MPCConfig
from mpcecdsa.ecdsa_op import O, pub_key_from_priv, uncompressed_hex
from mpcecdsa.ecdsa_threshold import (
    ECPointShare, MPCECDSA, SignatureCoordinator, SignerState, reconstruct_point,
)
from mpcecdsa.errors import InsufficientShares, ModulusMismatch, ProtocolStateError, SigningError
from mpcecdsa.finite_field import N_FIELD, P_FIELD
from mpcecdsa.mpc import MPC, Party
from mpcecdsa.transport import LocalTransport
from mpcecdsa.variables import Secret, Share


def test_point_interpolation():
    priv = Secret("priv", N_FIELD.rand(), N_FIELD)
    shares = priv.split(3, 2)
    points = [ECPointShare(i, pub_key_from_priv(s.value)) for i, s in shares.items()]
    expected = pub_key_from_priv(priv.value)
    for size in (2, 3):
        for subset in itertools.combinations(points, size):
            assert reconstruct_point(subset, 2) == expected


def test_point_interpolation_needs_k_points():
    points = [ECPointShare(1, pub_key_from_priv(5))]
    with pytest.raises(InsufficientShares):
        reconstruct_point(points, 2)


def test_point_interpolation_rejects_off_curve_points():
    good = pub_key_from_priv(5)
    bad = PointJacobi(SECP256k1.curve, good.x(), good.y() + 1, 1)
    with pytest.raises(ValueError):
        reconstruct_point([ECPointShare(1, good), ECPointShare(2, bad)], 2)


def test_point_interpolation_uses_curve_order():
    # coefficients modulo P instead of N would give a different point
    priv = Secret("priv", 12345, N_FIELD)
    shares = priv.split(3, 3)
    points = [ECPointShare(i, pub_key_from_priv(s.value)) for i, s in shares.items()]
    assert reconstruct_point(points, 3) == pub_key_from_priv(12345)


def test_signer_needs_curve_order_field(conf, parties):
    with pytest.raises(ModulusMismatch):
        MPCECDSA(MPC(parties[0], conf, P_FIELD))


async def run_signers(parties, conf, message, coordinator=DEALER, disclose=False):
    async def party(p):
        signer = MPCECDSA(MPC(p, conf, N_FIELD), coordinator)
        await p.connect()
        priv = Share("priv", p.id, field=N_FIELD)
        nonce = Share("nonce", p.id, field=N_FIELD)
        pub = await signer.keygen(priv)
        assert signer.state is SignerState.KEY_GENERATED
        await signer.gen_nonce(nonce)
        assert signer.state is SignerState.NONCE_GENERATED
        if disclose:
            await signer.disclose(priv)
        signature = await signer.sign(message, priv, nonce)
        return signer, pub, signature

    return await asyncio.gather(*(party(p) for p in parties))


def verify_with_ecdsa(pub, signature, message):
    vk = VerifyingKey.from_string(bytes.fromhex(uncompressed_hex(pub)), curve=SECP256k1, hashfunc=sha256)
    vk.verify(bytes.fromhex(str(signature)), message)
    pytest.raises(BadSignatureError, vk.verify, bytes.fromhex(str(signature)), message + b"polysign")


@pytest.mark.asyncio
async def test_keygen_matches_private_key(conf, parties, dealer):
    async def run_dealer():
        coordinator = SignatureCoordinator(dealer, conf)
        pub = await coordinator.receive_point("pub")
        priv = await coordinator.reconstruct_private_key("priv")
        return pub, priv

    message = b"keygen"
    results = await asyncio.gather(run_dealer(), run_signers(parties, conf, message, disclose=True))
    (pub, priv), signers = results
    assert pub == pub_key_from_priv(priv)
    for signer, signer_pub, signature in signers:
        assert signer_pub == pub
        assert signature is None
        assert signer.state is SignerState.SHARE_SENT


@pytest.mark.asyncio
async def test_private_key_shares_any_subset(conf, parties, dealer):
    async def run_dealer():
        await dealer.connect()
        priv = Secret("priv", field=N_FIELD)
        for i in conf.parties:
            await dealer.receive_share(priv.get_share(i))
        return priv

    async def party(p):
        signer = MPCECDSA(MPC(p, conf, N_FIELD))
        priv = Share("priv", p.id, field=N_FIELD)
        pub = await signer.keygen(priv)
        await signer.disclose(priv)
        return pub

    priv, *pubs = await asyncio.gather(run_dealer(), *(party(p) for p in parties))
    x = priv.reconstruct(conf.k)
    points = [ECPointShare(i, pub_key_from_priv(s.value)) for i, s in priv.shares.items()]
    for subset in itertools.combinations(points, conf.k):
        assert reconstruct_point(subset, conf.k) == pub_key_from_priv(x)
    assert all(pub == pub_key_from_priv(x) for pub in pubs)


@pytest.mark.asyncio
async def test_mpc_signing(conf, parties, dealer):
    message = secrets.token_bytes(32)

    async def run_dealer():
        coordinator = SignatureCoordinator(dealer, conf)
        pub = await coordinator.receive_point("pub")
        return pub, await coordinator.collect_signature(message, pub)

    (pub, signature), _ = await asyncio.gather(run_dealer(), run_signers(parties, conf, message))
    print(f"public_key = [{uncompressed_hex(pub)}] signature = [{signature!r}]")
    verify_with_ecdsa(pub, signature, message)


@pytest.mark.asyncio
@pytest.mark.parametrize("participants", [[1, 2], [1, 3], [2, 3]])
async def test_mpc_signing_with_k_fragments(conf, parties, dealer, participants):
    message = b"Nitin"

    async def run_dealer():
        coordinator = SignatureCoordinator(dealer, conf, participants)
        pub = await coordinator.receive_point("pub")
        return pub, await coordinator.collect_signature(message, pub)

    (pub, signature), _ = await asyncio.gather(run_dealer(), run_signers(parties, conf, message))
    verify_with_ecdsa(pub, signature, message)


@pytest.mark.asyncio
async def test_coordinator_needs_k_participants(conf, parties, dealer):
    coordinator = SignatureCoordinator(dealer, conf, [1])
    with pytest.raises(InsufficientShares):
        await coordinator.reconstruct_private_key("priv")


def test_coordinator_rejects_unknown_participants(conf, dealer):
    with pytest.raises(ValueError):
        SignatureCoordinator(dealer, conf, [1, 7])


@pytest.mark.asyncio
async def test_signer_as_coordinator(conf, parties):
    message = b"coordinated by party 1"
    results = await run_signers(parties, conf, message, coordinator=1)
    (signer, pub, signature), *others = results
    assert signer.state is SignerState.SIGNATURE_READY
    verify_with_ecdsa(pub, signature, message)
    for other, _, sig in others:
        assert sig is None
        assert other.state is SignerState.SHARE_SENT


@pytest.mark.asyncio
async def test_sign_twice_with_one_key(conf, parties):
    async def party(p):
        signer = MPCECDSA(MPC(p, conf, N_FIELD), coordinator=1)
        priv = Share("priv", p.id, field=N_FIELD)
        pub = await signer.keygen(priv)
        signatures = []
        for i, message in enumerate([b"first", b"second"]):
            nonce = Share(f"nonce{i}", p.id, field=N_FIELD)
            await signer.gen_nonce(nonce, name=f"R{i}")
            signatures.append(await signer.sign(message, priv, nonce, name=f"s{i}"))
        return pub, signatures

    (pub, (first, second)), *_ = await asyncio.gather(*(party(p) for p in parties))
    verify_with_ecdsa(pub, first, b"first")
    verify_with_ecdsa(pub, second, b"second")
    assert first.r != second.r


@pytest.mark.asyncio
async def test_five_parties(transport_config):
    conf = MPCConfig(n=5, k=3)
    transport = LocalTransport("five")
    parties = [Party(i, transport, transport_config) for i in conf.parties]
    message = b"five parties"
    results = await run_signers(parties, conf, message, coordinator=5)
    _, pub, signature = results[-1]
    verify_with_ecdsa(pub, signature, message)


@pytest.mark.asyncio
async def test_local_modes_fail_closed(parties, dealer):
    # inverting the own nonce fragment does not give a fragment of k^-1
    conf = MPCConfig(n=3, k=2, rand_mode="local", inverse_mode="local")
    message = b"fail closed"

    async def run_dealer():
        coordinator = SignatureCoordinator(dealer, conf)
        pub = await coordinator.receive_point("pub")
        with pytest.raises(SigningError):
            await coordinator.collect_signature(message, pub)

    await asyncio.gather(run_dealer(), run_signers(parties, conf, message))


@pytest.mark.asyncio
async def test_state_machine(conf, parties):
    signer = MPCECDSA(MPC(parties[0], conf, N_FIELD))
    assert signer.state is SignerState.IDLE
    with pytest.raises(ProtocolStateError):
        await signer.gen_nonce(Share("nonce", 1, field=N_FIELD))
    with pytest.raises(ProtocolStateError):
        await signer.sign(b"m", Share("priv", 1, field=N_FIELD), Share("nonce", 1, field=N_FIELD))


def test_infinity_is_not_a_public_key():
    assert pub_key_from_priv(0) == O
