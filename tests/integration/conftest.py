"""
Chain fixtures for the contract suites.

A dedicated Anvil node is started once per session. Artifacts are looked up
in NFT_DAO_ARTIFACTS / NFT_DAO_CONTRACTS (default: ./artifacts, ./contracts).
"""

import os

import pytest

from nft_dao.artifacts import ArtifactNotFoundError, ArtifactStore
from nft_dao.chain_env import ChainEnvironment, find_anvil
from nft_dao.fixtures import FixtureLoader


REQUIRED_CONTRACTS = ("DAOToken", "TimelockController", "DAOGovernor")


@pytest.fixture(scope="session")
def artifacts():
    store = ArtifactStore(
        artifacts_dir=os.getenv("NFT_DAO_ARTIFACTS", "artifacts"),
        contracts_dir=os.getenv("NFT_DAO_CONTRACTS", "contracts"),
    )
    for name in REQUIRED_CONTRACTS:
        try:
            store.get(name)
        except ArtifactNotFoundError:
            pytest.skip(f"{name} artifact not available")
    return store


@pytest.fixture(scope="session")
def chain(artifacts):
    if find_anvil() is None:
        pytest.skip("anvil not installed")
    env = ChainEnvironment(anvil_port=int(os.getenv("NFT_DAO_TEST_PORT", "8546")))
    env.start()
    yield env
    env.stop()


@pytest.fixture(scope="session")
def loader(chain):
    return FixtureLoader(chain)
