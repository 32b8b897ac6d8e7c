"""
Test fixtures

Snapshot-backed fixture loading plus the standard DAO fixtures used by the
contract test suites.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from web3.contract import Contract

from nft_dao.artifacts import ArtifactStore
from nft_dao.chain_env import ChainEnvironment
from nft_dao.deploy_dao import deploy_governor, deploy_timelock, deploy_token
from nft_dao.deployer import Deployer, Signer
from nft_dao.roles import MINTER_ROLE


@dataclass
class Signers:
    admin: Signer
    others: List[Signer] = field(default_factory=list)


@dataclass
class DAOContext:
    """Contracts and accounts a test works with"""
    deployer: Deployer
    signers: Signers
    token: Optional[Contract] = None
    timelock: Optional[Contract] = None
    governor: Optional[Contract] = None
    greeter: Optional[Contract] = None


class FixtureLoader:
    """
    Run a fixture once, then reuse its chain state.

    The first load of a fixture runs it and snapshots the chain. Later loads
    revert to that snapshot and return the same result object.
    """

    def __init__(self, env: ChainEnvironment):
        self.env = env
        self._snapshots: Dict[Callable[[], Any], Tuple[str, Any]] = {}

    def load(self, fixture: Callable[[], Any]) -> Any:
        if fixture in self._snapshots:
            snapshot_id, result = self._snapshots[fixture]
            if not self.env.revert_to_snapshot(snapshot_id):
                raise RuntimeError(f"Failed to revert to fixture snapshot {snapshot_id}")
            # evm_revert consumes the snapshot
            self._snapshots[fixture] = (self.env.create_snapshot(), result)
            return result

        result = fixture()
        self._snapshots[fixture] = (self.env.create_snapshot(), result)
        return result


def _signers(env: ChainEnvironment, minimum: int) -> List[Signer]:
    signers = env.get_signers()
    if len(signers) < minimum:
        raise RuntimeError(f"Fixture needs {minimum} unlocked accounts, node has {len(signers)}")
    return signers


def token_fixture(env: ChainEnvironment, artifacts: ArtifactStore, base_uri: str = "https://base.uri/") -> DAOContext:
    """
    DAOToken deployed by admin, with MINTER_ROLE granted to the second signer

    Signers: admin, minter, user
    """
    admin, minter, user = _signers(env, 3)[:3]
    deployer = Deployer(env.w3, admin, artifacts)

    token = deployer.deploy("DAOToken", base_uri, "DAOToken", "DAO")
    deployer.transact(token, "grantRole", MINTER_ROLE, minter.address)

    return DAOContext(deployer=deployer, signers=Signers(admin, [minter, user]), token=token)


def governor_fixture(env: ChainEnvironment, artifacts: ArtifactStore) -> DAOContext:
    """
    Token with three self-delegated holders, a timelock and a governor

    Signers: admin, voter1, voter2. Governor parameters: voting period 1,
    voting delay 1, proposal threshold 1, quorum 1%.
    """
    admin, voter1, voter2 = _signers(env, 3)[:3]
    deployer = Deployer(env.w3, admin, artifacts)

    token = deployer.deploy("DAOToken", "https://base.uri/", "DAOToken", "DAO")

    deployer.transact(token, "safeMint", voter1.address, "tokenURI1")
    deployer.transact(token, "safeMint", voter2.address, "tokenURI2")
    deployer.transact(token, "safeMint", admin.address, "tokenURI0")

    for holder in (voter1, voter2, admin):
        deployer.connect(holder).transact(token, "delegate", holder.address)

    timelock = deploy_timelock(deployer, 3600, [admin.address], [admin.address], admin.address)
    governor = deploy_governor(deployer, token.address, timelock.address, "DAOGovernor", 1, 1, 1, 1)

    return DAOContext(
        deployer=deployer,
        signers=Signers(admin, [voter1, voter2]),
        token=token,
        timelock=timelock,
        governor=governor
    )
