import pytest

from tablesync.models import Identity
from tablesync.tests.fakes import FakeNetwork


@pytest.fixture
def network() -> FakeNetwork:
    return FakeNetwork()


@pytest.fixture
def identity() -> Identity:
    return Identity(address="0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266", context_id=1, auth_token="siwe-token")
