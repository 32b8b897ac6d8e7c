"""
Contract Deployer - Deployment and transaction layer

Responsibilities:
1. Deploy contracts from artifacts and wait for the deployment receipt
2. Send state-changing calls, signing locally or via an unlocked node account
3. Run read-only calls on behalf of the current signer
"""

from typing import Dict, Any, Optional

from eth_account import Account
from eth_utils import to_checksum_address
from web3 import Web3
from web3.contract import Contract
from web3.exceptions import ContractLogicError

from nft_dao.artifacts import ArtifactStore


class DeploymentError(Exception):
    """Raised when a deployment or transaction does not succeed"""


class TransactionReverted(DeploymentError):
    """Raised when the node rejects or reverts a contract call"""


class Signer:
    """
    Account that sends transactions

    Without a private key the node is expected to hold the account unlocked
    (Anvil default accounts, impersonated accounts).
    """

    def __init__(self, address: str, private_key: Optional[str] = None):
        self.address = to_checksum_address(address)
        self.private_key = private_key

    @classmethod
    def from_private_key(cls, private_key: str) -> "Signer":
        account = Account.from_key(private_key)
        return cls(account.address, private_key)

    @property
    def is_local(self) -> bool:
        return self.private_key is not None

    def __eq__(self, other) -> bool:
        return isinstance(other, Signer) and other.address == self.address

    def __hash__(self) -> int:
        return hash(self.address)

    def __repr__(self) -> str:
        return f"Signer({self.address})"


class Deployer:
    """Deploy contracts and send transactions as one signer"""

    def __init__(
        self,
        w3: Web3,
        signer: Signer,
        artifacts: ArtifactStore,
        receipt_timeout: int = 120
    ):
        self.w3 = w3
        self.signer = signer
        self.artifacts = artifacts
        self.receipt_timeout = receipt_timeout

    @property
    def address(self) -> str:
        return self.signer.address

    def connect(self, signer: Signer) -> "Deployer":
        """Same connection and artifacts, different signer"""
        return Deployer(self.w3, signer, self.artifacts, self.receipt_timeout)

    def deploy(self, name: str, *args) -> Contract:
        """
        Deploy contract by artifact name

        Args:
            name: Contract name (e.g. "DAOToken")
            *args: Constructor arguments

        Returns:
            Contract bound to the deployed address
        """
        artifact = self.artifacts.get(name)
        if not artifact.deployable:
            raise DeploymentError(f"{name} has no creation bytecode (abstract contract or interface?)")

        factory = self.w3.eth.contract(abi=artifact.abi, bytecode=artifact.bytecode)
        try:
            receipt = self._send(factory.constructor(*args))
        except ContractLogicError as e:
            raise TransactionReverted(f"{name} constructor reverted: {e}") from e

        if receipt['status'] != 1:
            raise DeploymentError(f"{name} deployment failed: status={receipt['status']}")

        address = receipt.get('contractAddress')
        if not address:
            raise DeploymentError(f"{name} deployment failed - no contract address")

        return self.w3.eth.contract(address=to_checksum_address(address), abi=artifact.abi)

    def at(self, name: str, address: str) -> Contract:
        """Bind an already deployed contract"""
        artifact = self.artifacts.get(name)
        return self.w3.eth.contract(address=to_checksum_address(address), abi=artifact.abi)

    def transact(self, contract: Contract, fn_name: str, *args, value: int = 0) -> Dict[str, Any]:
        """
        Send a state-changing contract call and wait for it

        Returns:
            Transaction receipt

        Raises:
            TransactionReverted if the node rejects the call or the receipt has status 0
        """
        fn = getattr(contract.functions, fn_name)(*args)
        try:
            receipt = self._send(fn, value=value)
        except ContractLogicError as e:
            raise TransactionReverted(f"{fn_name} reverted: {e}") from e

        if receipt['status'] != 1:
            raise TransactionReverted(f"{fn_name} failed: status={receipt['status']}")
        return receipt

    def call(self, contract: Contract, fn_name: str, *args):
        """Read-only call as the current signer"""
        return getattr(contract.functions, fn_name)(*args).call({'from': self.address})

    def _send(self, fn, value: int = 0) -> Dict[str, Any]:
        params = {'from': self.address}
        if value:
            params['value'] = value

        if self.signer.is_local:
            params['nonce'] = self.w3.eth.get_transaction_count(self.address, 'pending')
            params['chainId'] = self.w3.eth.chain_id
            transaction = fn.build_transaction(params)
            signed = self.w3.eth.account.sign_transaction(transaction, self.signer.private_key)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)
        else:
            tx_hash = fn.transact(params)

        return self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
