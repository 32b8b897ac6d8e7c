"""
Access-control role identifiers

Role ids are keccak256 of the role name, except DEFAULT_ADMIN_ROLE which is
32 zero bytes.
"""

from eth_utils import keccak


def role_id(name: str) -> bytes:
    """keccak256(utf8(name))"""
    return keccak(text=name)


DEFAULT_ADMIN_ROLE = b'\x00' * 32
MINTER_ROLE = role_id('MINTER_ROLE')
PROPOSER_ROLE = role_id('PROPOSER_ROLE')
EXECUTOR_ROLE = role_id('EXECUTOR_ROLE')
CANCELLER_ROLE = role_id('CANCELLER_ROLE')
