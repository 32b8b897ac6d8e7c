from eth_utils import keccak

from nft_dao.deployer import Signer
from nft_dao.governance import GovernorClient, ProposalState, VoteType, description_hash

from fakes import VOTER1, FakeContract, FakeDeployer


ZERO = "0x0000000000000000000000000000000000000000"


def make_client(**call_results):
    deployer = FakeDeployer(call_results=call_results)
    return GovernorClient(deployer, FakeContract("DAOGovernor", "0x" + "0" * 39 + "9")), deployer


class TestDescriptionHash:

    def test_is_keccak_of_utf8(self):
        assert description_hash("Test Proposal") == keccak(text="Test Proposal")
        assert len(description_hash("")) == 32


class TestEnums:

    def test_proposal_states_follow_governor_order(self):
        assert [s.name for s in ProposalState] == [
            "PENDING", "ACTIVE", "CANCELED", "DEFEATED",
            "SUCCEEDED", "QUEUED", "EXPIRED", "EXECUTED",
        ]
        assert ProposalState(7) is ProposalState.EXECUTED

    def test_vote_types(self):
        assert (VoteType.AGAINST, VoteType.FOR, VoteType.ABSTAIN) == (0, 1, 2)


class TestGovernorClient:

    def test_propose_returns_hashed_id(self):
        client, deployer = make_client(hashProposal=1234)
        proposal_id = client.propose([ZERO], [0], ["0x"], "Test Proposal")

        assert proposal_id == 1234
        assert deployer.transactions("DAOGovernor") == [
            ("propose", ([ZERO], [0], ["0x"], "Test Proposal")),
        ]

    def test_hash_proposal_passes_description_hash(self):
        client, deployer = make_client(hashProposal=1)
        client.hash_proposal([ZERO], [0], ["0x"], "Test Proposal")
        call = [entry for entry in deployer.log if entry[0] == 'call'][0]
        assert call[3] == "hashProposal"
        assert call[4][3] == keccak(text="Test Proposal")

    def test_state_is_enum(self):
        client, _ = make_client(state=4)
        assert client.state(1) is ProposalState.SUCCEEDED

    def test_cast_vote_sends_int_support(self):
        client, deployer = make_client()
        client.cast_vote(99, VoteType.AGAINST)
        assert deployer.transactions() == [("castVote", (99, 0))]

    def test_queue_and_execute_use_description_hash(self):
        client, deployer = make_client()
        client.queue([ZERO], [0], ["0x"], "Test Proposal")
        client.execute([ZERO], [0], ["0x"], "Test Proposal")
        fns = deployer.transactions()
        assert [fn for fn, _ in fns] == ["queue", "execute"]
        assert fns[0][1][3] == keccak(text="Test Proposal")

    def test_proposal_count_and_details(self):
        details = ([ZERO], [0], [b""], keccak(text="x"))
        client, _ = make_client(proposalCount=1, proposalDetails=details)
        assert client.proposal_count() == 1
        assert client.proposal_details(5) == details

    def test_connect_switches_signer(self):
        client, deployer = make_client()
        voter_client = client.connect(Signer(VOTER1))
        voter_client.cast_vote(1)
        assert deployer.log[-1][1] == VOTER1
        assert voter_client.governor is client.governor
