"""
DAO Configuration - Deployment Parameters

Responsibilities:
1. Hold the parameters used to deploy the token, timelock and governor
2. Load overrides from a JSON file (path argument or NFT_DAO_CONFIG)
3. Validate addresses and numeric ranges before anything touches the chain
"""

import json
import os
from dataclasses import dataclass, field, fields, asdict
from pathlib import Path
from typing import Dict, Any, List, Optional

from eth_utils import is_hex_address


DEFAULT_TOKEN_RECIPIENTS = [
    "0x489e3E846bB550CB7b023108ce071bB39Fd23Cd8",
    "0x09dD35BbF83e64E90F998e54C9D0ecB9B0E614B5",
    "0xb5B069370Ef24BC67F114e185D185063CE3479f8",
    "0x7f953f11343408ebccaecd04eb0d1e6bacdef87f",
    "0xd00e5109a8b25cec2b6f5982646de18abeaf73b1",
    "0xc682131e3b82d2ba073f33f0889c36e52b4ba402",
    "0xe7358d1805f27BAe1031c37d54e29888c7C87622",
    "0x28Cd26d85b4ac655A489Aa3f259F81283BD1A804",
]

# camelCase keys used by the Hardhat-era config files
CAMEL_CASE_KEYS = {
    'tokenName': 'token_name',
    'tokenSymbol': 'token_symbol',
    'baseURI': 'base_uri',
    'governorName': 'governor_name',
    'votingPeriod': 'voting_period',
    'votingDelay': 'voting_delay',
    'proposalThreshold': 'proposal_threshold',
    'percentageQuorum': 'percentage_quorum',
    'minDelay': 'min_delay',
    'tokenRecipients': 'token_recipients',
}

INTEGER_FIELDS = (
    'voting_period',
    'voting_delay',
    'proposal_threshold',
    'percentage_quorum',
    'min_delay',
)


def _as_integer(value: Any) -> int:
    """Accept ints and decimal strings only"""
    if isinstance(value, bool):
        raise ValueError(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(value)


@dataclass
class DAOConfig:
    """
    Parameters for a full DAO deployment.

    Empty proposers/executors/admin mean "use the deploying account".
    """

    token_name: str = "MyNFT"
    token_symbol: str = "MNFT"
    base_uri: str = "https://my-nft-uri.com/"
    governor_name: str = "MyDAOGovernor"
    voting_period: int = 5760
    voting_delay: int = 576
    proposal_threshold: int = 1
    percentage_quorum: int = 4
    min_delay: int = 3600
    proposers: List[str] = field(default_factory=list)
    executors: List[str] = field(default_factory=list)
    admin: str = ""
    token_recipients: List[str] = field(default_factory=lambda: list(DEFAULT_TOKEN_RECIPIENTS))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DAOConfig":
        """
        Build a config from a dictionary, accepting snake_case or camelCase keys

        Keys that are not present keep their defaults.
        """
        known = {f.name for f in fields(cls)}
        values = {}
        unknown = []

        for key, value in data.items():
            name = CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                unknown.append(key)
                continue
            values[name] = value

        if unknown:
            raise ValueError(f"Unknown DAO config keys: {', '.join(sorted(unknown))}")

        errors = []
        for name in INTEGER_FIELDS:
            if name in values:
                try:
                    values[name] = _as_integer(values[name])
                except ValueError:
                    errors.append(f"{name} must be an integer, got {values[name]!r}")
        if errors:
            raise ValueError("Invalid DAO config:\n  - " + "\n  - ".join(errors))

        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def validate(self) -> "DAOConfig":
        """
        Check addresses and numeric parameters

        Returns:
            self, so calls can be chained

        Raises:
            ValueError listing every problem found
        """
        errors = []

        for name in INTEGER_FIELDS:
            if getattr(self, name) < 0:
                errors.append(f"{name} must be non-negative, got {getattr(self, name)}")

        if not 0 <= self.percentage_quorum <= 100:
            errors.append(f"percentage_quorum must be within 0..100, got {self.percentage_quorum}")

        for list_name in ('proposers', 'executors', 'token_recipients'):
            for address in getattr(self, list_name):
                if not is_hex_address(address):
                    errors.append(f"{list_name}: invalid address {address!r}")

        if self.admin and not is_hex_address(self.admin):
            errors.append(f"admin: invalid address {self.admin!r}")

        if not self.token_name or not self.token_symbol:
            errors.append("token_name and token_symbol must not be empty")

        if errors:
            raise ValueError("Invalid DAO config:\n  - " + "\n  - ".join(errors))
        return self

    def resolve_proposers(self, deployer: str) -> List[str]:
        return list(self.proposers) if self.proposers else [deployer]

    def resolve_executors(self, deployer: str) -> List[str]:
        return list(self.executors) if self.executors else [deployer]

    def resolve_admin(self, deployer: str) -> str:
        return self.admin or deployer


def load_config(path: Optional[str] = None) -> DAOConfig:
    """
    Load a DAO config

    Args:
        path: JSON file with overrides
              - None: use NFT_DAO_CONFIG environment variable if set
              - Otherwise the built-in defaults are returned

    Returns:
        Validated DAOConfig
    """
    if path is None:
        path = os.getenv('NFT_DAO_CONFIG')

    if not path:
        return DAOConfig().validate()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"DAO config file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        data = json.load(f)

    if not isinstance(data, dict):
        raise ValueError(f"DAO config must be a JSON object: {config_path}")

    return DAOConfig.from_dict(data).validate()
