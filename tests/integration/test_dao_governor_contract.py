"""
DAOGovernor contract suite: proposal creation.
"""

import pytest

from nft_dao.fixtures import governor_fixture
from nft_dao.governance import GovernorClient, ProposalState, description_hash


pytestmark = pytest.mark.integration

TARGETS = ["0x0000000000000000000000000000000000000000"]
VALUES = [0]
CALLDATAS = [b""]
DESCRIPTION = "Test Proposal"


@pytest.fixture(scope="module")
def governor_setup(chain, artifacts):
    def setup():
        return governor_fixture(chain, artifacts)
    return setup


@pytest.fixture
def ctx(loader, governor_setup):
    return loader.load(governor_setup)


@pytest.fixture
def proposal(ctx):
    client = GovernorClient(ctx.deployer, ctx.governor)
    proposal_id = client.propose(TARGETS, VALUES, CALLDATAS, DESCRIPTION)
    return client, proposal_id


class TestGovernance:

    def test_proposal_count(self, proposal):
        client, _ = proposal
        assert client.proposal_count() == 1

    def test_proposal_details(self, proposal):
        client, proposal_id = proposal
        targets, values, calldatas, desc_hash = client.proposal_details(proposal_id)
        assert list(targets) == TARGETS
        assert list(values) == VALUES
        assert list(calldatas) == CALLDATAS
        assert desc_hash == description_hash(DESCRIPTION)

    def test_new_proposal_is_pending(self, proposal):
        client, proposal_id = proposal
        assert client.state(proposal_id) is ProposalState.PENDING
