"""
DAO Deployment - Deployment sequences

Deploys DAOToken, TimelockController and DAOGovernor, mints the membership
tokens and hands every privileged role over to the governor.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, List, Tuple

from eth_utils import to_checksum_address
from web3.contract import Contract

from nft_dao.dao_config import DAOConfig
from nft_dao.deployer import Deployer


TOKEN_CONTRACT = "DAOToken"
TIMELOCK_CONTRACT = "TimelockController"
GOVERNOR_CONTRACT = "DAOGovernor"
GREETER_CONTRACT = "Greeter"


class DAODeployment:
    """Addresses and facts recorded by a full DAO deployment"""

    def __init__(
        self,
        chain_id: int,
        deployer: str,
        token_address: str,
        timelock_address: str,
        governor_address: str,
        minted: List[Tuple[str, str]],
        timelock_roles_wired: bool
    ):
        self.chain_id = chain_id
        self.deployer = deployer
        self.token_address = token_address
        self.timelock_address = timelock_address
        self.governor_address = governor_address
        self.minted = minted
        self.timelock_roles_wired = timelock_roles_wired
        self.created_at = datetime.now()
        self.timestamp = self.created_at.isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chain_id': self.chain_id,
            'deployer': self.deployer,
            'contracts': {
                TOKEN_CONTRACT: self.token_address,
                TIMELOCK_CONTRACT: self.timelock_address,
                GOVERNOR_CONTRACT: self.governor_address,
            },
            'minted': [{'recipient': r, 'token_uri': uri} for r, uri in self.minted],
            'timelock_roles_wired': self.timelock_roles_wired,
            'timestamp': self.timestamp,
        }


def deploy_greeter(deployer: Deployer, greeting: str) -> Contract:
    greeter = deployer.deploy(GREETER_CONTRACT, greeting)
    print("Greeter deployed to: ", greeter.address)
    return greeter


def deploy_token(deployer: Deployer, base_uri: str, name: str, symbol: str) -> Contract:
    token = deployer.deploy(TOKEN_CONTRACT, base_uri, name, symbol)
    print("DAOToken deployed to:", token.address)
    return token


def deploy_timelock(
    deployer: Deployer,
    min_delay: int,
    proposers: List[str],
    executors: List[str],
    admin: str,
    contract_name: str = TIMELOCK_CONTRACT
) -> Contract:
    timelock = deployer.deploy(
        contract_name,
        min_delay,
        [to_checksum_address(a) for a in proposers],
        [to_checksum_address(a) for a in executors],
        to_checksum_address(admin)
    )
    print(f"{contract_name} deployed to:", timelock.address)
    return timelock


def deploy_governor(
    deployer: Deployer,
    token_address: str,
    timelock_address: str,
    governor_name: str,
    voting_period: int,
    voting_delay: int,
    proposal_threshold: int,
    percentage_quorum: int
) -> Contract:
    # Constructor order is (token, timelock, name, period, delay, threshold, quorum)
    governor = deployer.deploy(
        GOVERNOR_CONTRACT,
        to_checksum_address(token_address),
        to_checksum_address(timelock_address),
        governor_name,
        voting_period,
        voting_delay,
        proposal_threshold,
        percentage_quorum
    )
    print("DAOGovernor deployed to:", governor.address)
    return governor


def mint_to_recipients(deployer: Deployer, token: Contract, recipients: List[str]) -> List[Tuple[str, str]]:
    """
    Mint one token per recipient with URI `tokenURI<index>`

    The index is the first position of the recipient in the list, so a
    repeated recipient gets the URI of its first entry.
    """
    print("Minting tokens to recipients...")
    checksummed = [to_checksum_address(recipient) for recipient in recipients]
    minted = []
    for recipient, address in zip(recipients, checksummed):
        token_uri = f"tokenURI{checksummed.index(address)}"
        deployer.transact(token, "safeMint", address, token_uri)
        print(f"Token minted to {recipient}")
        minted.append((recipient, token_uri))
    return minted


def hand_token_roles_to_governor(deployer: Deployer, token: Contract, governor_address: str):
    minter_role = deployer.call(token, "MINTER_ROLE")
    default_admin_role = deployer.call(token, "DEFAULT_ADMIN_ROLE")

    print("Assigning Minter and Default Admin roles to DAOGovernor...")
    deployer.transact(token, "grantRole", minter_role, governor_address)
    print("Minter role granted to DAOGovernor.")

    deployer.transact(token, "grantRole", default_admin_role, governor_address)
    print("Default Admin role granted to DAOGovernor.")

    print("Renouncing Minter and Default Admin roles from deployer...")
    deployer.transact(token, "renounceRole", minter_role, deployer.address)
    print("Minter role renounced by deployer.")

    # admin role must be the last one renounced
    deployer.transact(token, "renounceRole", default_admin_role, deployer.address)
    print("Default Admin role renounced by deployer.")


def hand_timelock_roles_to_governor(deployer: Deployer, timelock: Contract, governor_address: str):
    proposer_role = deployer.call(timelock, "PROPOSER_ROLE")
    executor_role = deployer.call(timelock, "EXECUTOR_ROLE")
    canceller_role = deployer.call(timelock, "CANCELLER_ROLE")
    default_admin_role = deployer.call(timelock, "DEFAULT_ADMIN_ROLE")

    print("Assigning Proposer, Executor, and Canceler roles to DAOGovernor in TimelockController...")
    deployer.transact(timelock, "grantRole", proposer_role, governor_address)
    print("Proposer role granted to DAOGovernor.")

    deployer.transact(timelock, "grantRole", executor_role, governor_address)
    print("Executor role granted to DAOGovernor.")

    deployer.transact(timelock, "grantRole", canceller_role, governor_address)
    print("Canceler role granted to DAOGovernor.")

    print("Renouncing Default Admin role from deployer in TimelockController...")
    deployer.transact(timelock, "renounceRole", default_admin_role, deployer.address)
    print("Default Admin role renounced by deployer in TimelockController.")


def deploy_dao(
    deployer: Deployer,
    config: DAOConfig,
    timelock_contract: str = TIMELOCK_CONTRACT
) -> DAODeployment:
    """
    Full DAO deployment

    Steps (in order):
    1. Deploy DAOToken
    2. Deploy TimelockController (empty proposers/executors/admin -> deployer)
    3. Deploy DAOGovernor
    4. Mint one token to each configured recipient
    5. Grant MINTER/DEFAULT_ADMIN on the token to the governor, renounce from deployer
    6. Grant PROPOSER/EXECUTOR/CANCELLER on the timelock to the governor,
       renounce timelock DEFAULT_ADMIN from deployer

    Step 6 is skipped when the configured timelock admin is not the deployer,
    since the deployer then has no right to grant timelock roles.

    Args:
        deployer: Deployer bound to the deploying account
        config: DAO parameters
        timelock_contract: Artifact name of the timelock

    Returns:
        DAODeployment record
    """
    deployer_address = deployer.address
    print("Deploying contracts with the account:", deployer_address)

    token = deploy_token(deployer, config.base_uri, config.token_name, config.token_symbol)

    admin = to_checksum_address(config.resolve_admin(deployer_address))
    timelock = deploy_timelock(
        deployer,
        config.min_delay,
        config.resolve_proposers(deployer_address),
        config.resolve_executors(deployer_address),
        admin,
        contract_name=timelock_contract
    )

    governor = deploy_governor(
        deployer,
        token.address,
        timelock.address,
        config.governor_name,
        config.voting_period,
        config.voting_delay,
        config.proposal_threshold,
        config.percentage_quorum
    )

    minted = mint_to_recipients(deployer, token, config.token_recipients)

    hand_token_roles_to_governor(deployer, token, governor.address)

    timelock_roles_wired = admin == deployer_address
    if timelock_roles_wired:
        hand_timelock_roles_to_governor(deployer, timelock, governor.address)
    else:
        print(f"⚠️  Timelock admin is {admin}, not the deployer")
        print("   Skipping timelock role wiring, the admin must grant Proposer/Executor/Canceler to DAOGovernor")

    print("DAO setup complete.")

    return DAODeployment(
        chain_id=deployer.w3.eth.chain_id,
        deployer=deployer_address,
        token_address=token.address,
        timelock_address=timelock.address,
        governor_address=governor.address,
        minted=minted,
        timelock_roles_wired=timelock_roles_wired
    )


def save_deployment(deployment: DAODeployment, output_dir: str = "deployments") -> str:
    """Save deployment record as JSON, returns the file path"""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    timestamp = deployment.created_at.strftime("%Y%m%d_%H%M%S_%f")
    filepath = output_path / f"dao_{deployment.chain_id}_{timestamp}.json"

    with open(filepath, 'w', encoding='utf-8') as f:
        json.dump(deployment.to_dict(), f, indent=2, ensure_ascii=False)

    return str(filepath)
