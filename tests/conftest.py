"""
Pytest fixtures for the avail_submit tests.
"""
import pytest
from substrateinterface import Keypair

from tests.fakes import FakeConnection


@pytest.fixture
def alice():
    return Keypair.create_from_uri("//Alice")


@pytest.fixture
def connection():
    return FakeConnection()
