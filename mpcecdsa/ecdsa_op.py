"""
ecdsa for secp256k1.
Thin layer over the python-ecdsa curve implementation for:
    1. EC Public Key generation
    2. EC point addition and scalar multiplication
    3. Point encoding (compressed / uncompressed hex)
    4. Message hashing
    5. Single key verification of the threshold signature, and ecdsa_sign,
       a plain single key signer kept as the reference in the tests.

    Signature implementation is just implementing:
    https://en.wikipedia.org/wiki/Elliptic_Curve_Digital_Signature_Algorithm

"""

from collections import namedtuple
from hashlib import sha256

from ecdsa import SECP256k1, VerifyingKey, BadSignatureError
from ecdsa.ellipticcurve import INFINITY, PointJacobi
from ecdsa.util import sigencode_der

from .finite_field import N, N_FIELD

curve = SECP256k1
generator = SECP256k1.generator
order = SECP256k1.order
# The point at origin. This means generator * order = O
O = INFINITY

assert order == N, "curve order and scalar field are out of sync"


def valid(P) -> bool:
    if P == O:
        return True
    return curve.curve.contains_point(P.x(), P.y())


def point_from_coords(x: int, y: int) -> PointJacobi:
    if not curve.curve.contains_point(x, y):
        raise ValueError(f"({x:X}, {y:X}) is not on {curve.name}")
    return PointJacobi(curve.curve, x, y, 1, order)


def ec_add(P, Q):
    if P == O:
        return Q
    if Q == O:
        return P
    return P + Q


def ec_scalar_mul(P, scalar: int):
    scalar %= order
    if scalar == 0 or P == O:
        return O
    return P * scalar


def pub_key_from_priv(private: int):
    return ec_scalar_mul(generator, private)


def uncompressed_hex(point) -> str:
    return f"04{point.x():0>64X}{point.y():0>64X}"


def compressed_hex(point) -> str:
    if point.y() % 2 == 0:
        return f"02{point.x():0>64X}"
    else:
        return f"03{point.x():0>64X}"


def hash_message(message: bytes) -> int:
    """
    H(m) as an integer, truncated to the bit length of the order.
    """
    e = int.from_bytes(sha256(message).digest(), byteorder="big")
    L_n = order.bit_length()
    e_bit_len = e.bit_length()
    return e if L_n >= e_bit_len else e >> (e_bit_len - L_n)


Signature = namedtuple("Signature", "r s")


class Signature(Signature):
    def __repr__(self):
        return f"{self.r:0>64X}{self.s:0>64X}"

    def to_string(self) -> bytes:
        return bytes.fromhex(repr(self))

    def to_der(self) -> bytes:
        return sigencode_der(self.r, self.s, order)


def ecdsa_sign(private: int, message: bytes) -> Signature:
    """
    Implementing  https://en.wikipedia.org/wiki/Elliptic_Curve_Digital_Signature_Algorithm
    """
    z = hash_message(message)
    r = 0
    s = 0
    while s == 0:
        r = 0
        while r == 0:
            k = N_FIELD.rand()
            R = ec_scalar_mul(generator, k)
            if R == O:
                continue
            r = R.x() % order
        s = N_FIELD.mul(N_FIELD.inv(k), z + r * private)
    return Signature(r, s)


def verifying_key(pub) -> VerifyingKey:
    return VerifyingKey.from_public_point(pub, curve=curve, hashfunc=sha256)


def ecdsa_verify(pub, signature: Signature, message: bytes) -> bool:
    try:
        return verifying_key(pub).verify(signature.to_string(), message)
    except BadSignatureError:
        return False
