"""
NFT DAO - Deployment and Test Tooling

Deploys a membership NFT (DAOToken), a TimelockController and a DAOGovernor,
wires their roles together, and provides a harness for exercising the
deployed contracts against a local Anvil node or any JSON-RPC endpoint.
"""

__version__ = "0.1.0"
