"""
2-of-3 threshold ECDSA demo, all parties in one process.

Each party generates a fragment of the private key and of the nonce, nobody
ever holds the full key. The dealer collects the fragments of s and prints
the public key and the signature.

    python ecdsa_threshold.py "message to sign"
"""

import asyncio
import sys

from mpcecdsa.config import DEALER, MPCConfig
from mpcecdsa.ecdsa_op import compressed_hex
from mpcecdsa.ecdsa_threshold import MPCECDSA, SignatureCoordinator
from mpcecdsa.finite_field import N_FIELD
from mpcecdsa.logging import configure_logging
from mpcecdsa.mpc import MPC, Party
from mpcecdsa.transport import LocalTransport
from mpcecdsa.variables import Share


async def party(p, conf, message):
    signer = MPCECDSA(MPC(p, conf, N_FIELD))
    await p.connect()
    await p.wait_for_peers(conf.parties)
    priv = Share("priv", p.id, field=N_FIELD)
    nonce = Share("nonce", p.id, field=N_FIELD)
    await signer.keygen(priv)
    await signer.gen_nonce(nonce)
    await signer.sign(message, priv, nonce)


async def dealer(p, conf, message):
    await p.connect()
    coordinator = SignatureCoordinator(p, conf)
    pub = await coordinator.receive_point("pub")
    signature = await coordinator.collect_signature(message, pub)
    return pub, signature


async def main(message: bytes):
    conf = MPCConfig(n=3, k=2)
    transport = LocalTransport("demo")
    parties = [Party(i, transport) for i in conf.parties]
    results = await asyncio.gather(
        dealer(Party(DEALER, transport), conf, message),
        *(party(p, conf, message) for p in parties),
    )
    pub, signature = results[0]
    print(f"message    = {message!r}")
    print(f"public_key = [{compressed_hex(pub)}]")
    print(f"signature  = [{signature!r}]")
    print(f"der        = [{signature.to_der().hex().upper()}]")


if __name__ == "__main__":
    configure_logging("warning")
    asyncio.run(main(sys.argv[1].encode() if len(sys.argv) > 1 else b"hello mpc ecdsa\n"))
