"""
Governor client

Thin wrapper over the governor's public methods. Vote counting, quorum and
timelock delays are enforced by the contracts; nothing here recomputes them.
"""

from enum import IntEnum
from typing import List, Sequence, Union

from eth_utils import keccak, to_checksum_address
from web3.contract import Contract

from nft_dao.deployer import Deployer, Signer


class ProposalState(IntEnum):
    """Governor.state() return values"""
    PENDING = 0
    ACTIVE = 1
    CANCELED = 2
    DEFEATED = 3
    SUCCEEDED = 4
    QUEUED = 5
    EXPIRED = 6
    EXECUTED = 7


class VoteType(IntEnum):
    """Support values for castVote"""
    AGAINST = 0
    FOR = 1
    ABSTAIN = 2


def description_hash(description: str) -> bytes:
    return keccak(text=description)


class GovernorClient:
    """Proposal lifecycle calls as one signer"""

    def __init__(self, deployer: Deployer, governor: Contract):
        self.deployer = deployer
        self.governor = governor

    def connect(self, signer: Signer) -> "GovernorClient":
        return GovernorClient(self.deployer.connect(signer), self.governor)

    def hash_proposal(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[Union[bytes, str]],
        description: str
    ) -> int:
        return self.deployer.call(
            self.governor,
            "hashProposal",
            _checksummed(targets),
            list(values),
            list(calldatas),
            description_hash(description)
        )

    def propose(
        self,
        targets: Sequence[str],
        values: Sequence[int],
        calldatas: Sequence[Union[bytes, str]],
        description: str
    ) -> int:
        """
        Submit a proposal

        Returns:
            Proposal id (as computed by the governor's hashProposal)
        """
        proposal_id = self.hash_proposal(targets, values, calldatas, description)
        self.deployer.transact(
            self.governor,
            "propose",
            _checksummed(targets),
            list(values),
            list(calldatas),
            description
        )
        return proposal_id

    def state(self, proposal_id: int) -> ProposalState:
        return ProposalState(self.deployer.call(self.governor, "state", proposal_id))

    def cast_vote(self, proposal_id: int, support: VoteType = VoteType.FOR):
        return self.deployer.transact(self.governor, "castVote", proposal_id, int(support))

    def queue(self, targets, values, calldatas, description: str):
        return self.deployer.transact(
            self.governor,
            "queue",
            _checksummed(targets),
            list(values),
            list(calldatas),
            description_hash(description)
        )

    def execute(self, targets, values, calldatas, description: str, value: int = 0):
        return self.deployer.transact(
            self.governor,
            "execute",
            _checksummed(targets),
            list(values),
            list(calldatas),
            description_hash(description),
            value=value
        )

    def proposal_count(self) -> int:
        return self.deployer.call(self.governor, "proposalCount")

    def proposal_details(self, proposal_id: int):
        """(targets, values, calldatas, descriptionHash)"""
        return self.deployer.call(self.governor, "proposalDetails", proposal_id)


def _checksummed(addresses: Sequence[str]) -> List[str]:
    return [to_checksum_address(a) for a in addresses]
