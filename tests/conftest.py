import pytest

import ripe


@pytest.fixture(scope="session")
def rsa_pair():
    """A 2048-bit (private_pem, public_pem) pair shared by the session."""
    return ripe.generate_rsa_keypair(2048)


@pytest.fixture
def shared_key():
    return "0123456789abcdef0123456789abcdef"
