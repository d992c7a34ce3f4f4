import itertools

import pytest

from mpcecdsa import shamir
from mpcecdsa.config import DEALER, MPCConfig, TransportConfig
from mpcecdsa.mpc import Party
from mpcecdsa.transport import LocalTransport


@pytest.fixture
def conf():
    return MPCConfig(n=3, k=2)


@pytest.fixture
def transport_config():
    # short deadline so that a broken protocol fails fast instead of hanging
    return TransportConfig(timeout=5.0, retries=3, backoff_min=0.0, backoff_max=0.01)


@pytest.fixture
def transport():
    return LocalTransport("test")


@pytest.fixture
def parties(transport, transport_config, conf):
    return [Party(i, transport, transport_config) for i in conf.parties]


@pytest.fixture
def dealer(transport, transport_config):
    return Party(DEALER, transport, transport_config)


def expect_reconstructable(secret, k, expected=None):
    """Every subset of at least k known shares gives the same value."""
    points = [(idx, s.value) for idx, s in sorted(secret.shares.items())]
    if expected is None:
        expected = secret.reconstruct(k)
    for size in range(k, len(points) + 1):
        for subset in itertools.combinations(points, size):
            assert shamir.reconstruct(subset, k, secret.field) == expected
    return expected
