import pytest

from fakes import FakeDeployer


@pytest.fixture
def fake_deployer():
    return FakeDeployer()
