"""
Errors raised by the MPC and threshold signing layers.
"""


class MPCError(Exception):
    """Base class of every protocol failure."""


class FieldInverseOfZero(MPCError, ZeroDivisionError):
    """Inverse of 0 requested."""


class InsufficientShares(MPCError, ValueError):
    """Reconstruction attempted with fewer than k points."""


class ShareNotReceived(MPCError, TimeoutError):
    """A peer value did not arrive before the deadline."""


class DuplicateShareWrite(MPCError):
    """A write-once slot or value was written twice."""


class ModulusMismatch(MPCError):
    """Values of two different fields were combined."""


class TransportError(MPCError):
    """The transport failed to move a value. Retried before it surfaces."""


class ProtocolStateError(MPCError):
    """A signing step was invoked out of order."""


class SigningError(MPCError):
    """The joint signature could not be produced or did not verify."""
