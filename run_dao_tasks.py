"""
Run NFT DAO deployment tasks

Usage:
    # Full DAO from the default config on a throwaway local Anvil node
    python run_dao_tasks.py deploy-dao

    # Full DAO from a config file on a real network
    python run_dao_tasks.py --rpc-url https://sepolia.example --private-key 0x... deploy-dao --config configs/dao_config.json

    # Single contracts
    python run_dao_tasks.py deploy-nft-token --name MyNFT --symbol MNFT --base-uri https://my-nft-uri.com/
    python run_dao_tasks.py deploy-timelock --min-delay 3600 --proposers 0xA,0xB --executors 0xA --admin 0xA

Without --rpc-url a local Anvil node is started for the run and stopped afterwards.
"""

import argparse
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Tuple

from eth_utils import is_hex_address

from nft_dao.artifacts import ArtifactStore
from nft_dao.chain_env import ChainEnvironment
from nft_dao.check_setup import run_checks
from nft_dao.dao_config import DAOConfig, load_config
from nft_dao.deploy_dao import (
    TIMELOCK_CONTRACT,
    deploy_dao,
    deploy_governor,
    deploy_greeter,
    deploy_timelock,
    deploy_token,
    save_deployment,
)
from nft_dao.deployer import Deployer, Signer


class TeeWriter:
    """Writer that outputs to both console and file simultaneously"""

    def __init__(self, original_stream, log_file):
        self.original_stream = original_stream
        self.log_file = log_file
        self.encoding = getattr(original_stream, 'encoding', 'utf-8') or 'utf-8'

    def write(self, message):
        self.original_stream.write(message)
        if self.log_file and not self.log_file.closed:
            self.log_file.write(message)
            self.log_file.flush()

    def flush(self):
        self.original_stream.flush()
        if self.log_file and not self.log_file.closed:
            self.log_file.flush()

    def isatty(self):
        return self.original_stream.isatty() if hasattr(self.original_stream, 'isatty') else False

    def fileno(self):
        return self.original_stream.fileno()


def address_list(value: str) -> List[str]:
    """Comma-separated addresses -> list (empty string -> [])"""
    addresses = [item.strip() for item in value.split(',') if item.strip()]
    for address in addresses:
        if not is_hex_address(address):
            raise argparse.ArgumentTypeError(f"invalid address: {address}")
    return addresses


def address(value: str) -> str:
    if not is_hex_address(value):
        raise argparse.ArgumentTypeError(f"invalid address: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Deploy and wire the NFT DAO contracts',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Check toolchain and artifacts
  python run_dao_tasks.py check-setup

  # Deploy the full DAO with the default config (local Anvil)
  python run_dao_tasks.py deploy-dao

  # Deploy a governor for existing token and timelock
  python run_dao_tasks.py --rpc-url http://127.0.0.1:8545 deploy-nft-governor \\
      --token-address 0x... --timelock-address 0x... --governor-name MyDAOGovernor \\
      --voting-period 5760 --voting-delay 576 --proposal-threshold 1 --percentage-quorum 4
        """
    )

    parser.add_argument(
        '--rpc-url',
        type=str,
        default=os.getenv('DAO_RPC_URL'),
        help='JSON-RPC endpoint (env DAO_RPC_URL). If not provided, a local Anvil node is started.'
    )
    parser.add_argument(
        '--private-key',
        type=str,
        default=os.getenv('DEPLOYER_PRIVATE_KEY'),
        help='Deployer private key (env DEPLOYER_PRIVATE_KEY). If not provided, the first unlocked node account is used.'
    )
    parser.add_argument(
        '--artifacts-dir',
        type=str,
        default='artifacts',
        help='Directory with compiled contract artifacts (default: artifacts)'
    )
    parser.add_argument(
        '--contracts-dir',
        type=str,
        default='contracts',
        help='Directory with Solidity sources, compiled when no artifact exists (default: contracts)'
    )
    parser.add_argument(
        '--solc-version',
        type=str,
        default='0.8.20',
        help='Solidity compiler version (default: 0.8.20)'
    )
    parser.add_argument(
        '--anvil-port',
        type=int,
        default=8545,
        help='Port for the local Anvil node (default: 8545)'
    )
    parser.add_argument(
        '--fork-url',
        type=str,
        default=None,
        help='Remote RPC for the local Anvil node to fork (env ANVIL_FORK_URL)'
    )
    parser.add_argument(
        '--output-dir',
        type=str,
        default='deployments',
        help='Directory to save deployment records (default: deployments)'
    )
    parser.add_argument(
        '--log-dir',
        type=str,
        default='log',
        help='Directory for the console log (default: log)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    greeter = subparsers.add_parser('deploy-greeter', help='Deploy the Greeter contract')
    greeter.add_argument('--greeting', required=True, help='Say hello, be nice')

    token = subparsers.add_parser('deploy-nft-token', help='Deploy DAOToken')
    _add_token_args(token)

    governor = subparsers.add_parser('deploy-nft-governor', help='Deploy DAOGovernor')
    governor.add_argument('--token-address', type=address, required=True, help='Token Address')
    governor.add_argument('--timelock-address', type=address, required=True, help='Timelock Address')
    _add_governor_args(governor)

    timelock = subparsers.add_parser('deploy-timelock', help='Deploy the timelock')
    _add_timelock_args(timelock)

    dao = subparsers.add_parser('deploy-nft-dao', help='Deploy token, timelock and governor and wire roles')
    _add_token_args(dao)
    _add_governor_args(dao)
    _add_timelock_args(dao)
    dao.add_argument(
        '--recipients',
        type=address_list,
        default=[],
        help='Comma-separated addresses that each receive one membership token'
    )

    from_config = subparsers.add_parser('deploy-dao', help='Deploy the full DAO from a config file')
    from_config.add_argument(
        '--config',
        type=str,
        default=None,
        help='DAO config JSON (env NFT_DAO_CONFIG, default: built-in config)'
    )
    from_config.add_argument(
        '--timelock-contract',
        type=str,
        default=TIMELOCK_CONTRACT,
        help=f'Timelock artifact name (default: {TIMELOCK_CONTRACT})'
    )

    subparsers.add_parser('check-setup', help='Check toolchain and contract artifacts')

    return parser


def _add_token_args(parser: argparse.ArgumentParser):
    parser.add_argument('--name', required=True, help='Token Name')
    parser.add_argument('--symbol', required=True, help='Token Symbol')
    parser.add_argument('--base-uri', required=True, help='Base URI')


def _add_governor_args(parser: argparse.ArgumentParser):
    parser.add_argument('--governor-name', required=True, help='Governor Name')
    parser.add_argument('--voting-period', type=int, required=True, help='Voting Period')
    parser.add_argument('--voting-delay', type=int, required=True, help='Voting Delay')
    parser.add_argument('--proposal-threshold', type=int, required=True, help='Proposal Threshold')
    parser.add_argument('--percentage-quorum', type=int, required=True, help='Percentage Quorum')


def _add_timelock_args(parser: argparse.ArgumentParser):
    parser.add_argument('--min-delay', type=int, required=True, help='Min Delay')
    parser.add_argument('--proposers', type=address_list, required=True, help='Proposers (comma-separated)')
    parser.add_argument('--executors', type=address_list, required=True, help='Executors (comma-separated)')
    parser.add_argument('--admin', type=address, required=True, help='Admin')
    parser.add_argument(
        '--timelock-contract',
        type=str,
        default=TIMELOCK_CONTRACT,
        help=f'Timelock artifact name (default: {TIMELOCK_CONTRACT})'
    )


def open_deployer(args: argparse.Namespace) -> Tuple[ChainEnvironment, Deployer]:
    """Start/attach the chain and build a deployer for the first signer"""
    env = ChainEnvironment(
        rpc_url=args.rpc_url,
        anvil_port=args.anvil_port,
        fork_url=args.fork_url
    )
    env.start()

    try:
        if args.private_key:
            signer = Signer.from_private_key(args.private_key)
        else:
            signers = env.get_signers()
            if not signers:
                raise RuntimeError("Node exposes no unlocked accounts, pass --private-key")
            signer = signers[0]
    except BaseException:
        env.stop()
        raise

    artifacts = ArtifactStore(
        artifacts_dir=args.artifacts_dir,
        contracts_dir=args.contracts_dir,
        solc_version=args.solc_version
    )
    return env, Deployer(env.w3, signer, artifacts)


def config_from_args(args: argparse.Namespace) -> DAOConfig:
    return DAOConfig(
        token_name=args.name,
        token_symbol=args.symbol,
        base_uri=args.base_uri,
        governor_name=args.governor_name,
        voting_period=args.voting_period,
        voting_delay=args.voting_delay,
        proposal_threshold=args.proposal_threshold,
        percentage_quorum=args.percentage_quorum,
        min_delay=args.min_delay,
        proposers=args.proposers,
        executors=args.executors,
        admin=args.admin,
        token_recipients=args.recipients,
    ).validate()


def run_task(args: argparse.Namespace, deployer: Deployer) -> Optional[str]:
    """
    Execute one deployment command

    Returns:
        Path of the saved deployment record, for full DAO deployments
    """
    if args.command == 'deploy-greeter':
        deploy_greeter(deployer, args.greeting)
    elif args.command == 'deploy-nft-token':
        deploy_token(deployer, args.base_uri, args.name, args.symbol)
    elif args.command == 'deploy-nft-governor':
        deploy_governor(
            deployer,
            args.token_address,
            args.timelock_address,
            args.governor_name,
            args.voting_period,
            args.voting_delay,
            args.proposal_threshold,
            args.percentage_quorum
        )
    elif args.command == 'deploy-timelock':
        deploy_timelock(
            deployer,
            args.min_delay,
            args.proposers,
            args.executors,
            args.admin,
            contract_name=args.timelock_contract
        )
    elif args.command == 'deploy-nft-dao':
        deployment = deploy_dao(deployer, config_from_args(args), timelock_contract=args.timelock_contract)
        return save_deployment(deployment, args.output_dir)
    elif args.command == 'deploy-dao':
        config = load_config(args.config)
        deployment = deploy_dao(deployer, config, timelock_contract=args.timelock_contract)
        return save_deployment(deployment, args.output_dir)
    else:
        raise ValueError(f"Unknown command: {args.command}")
    return None


def run(args: argparse.Namespace) -> int:
    if args.command == 'check-setup':
        store = ArtifactStore(args.artifacts_dir, args.contracts_dir, args.solc_version)
        return run_checks(store, rpc_url=args.rpc_url)

    env = None
    try:
        env, deployer = open_deployer(args)
        if env.is_local:
            print("⚠️  Deploying to a temporary local Anvil node, state is discarded on exit")

        record_path = run_task(args, deployer)
        if record_path:
            print(f"\n📁 Deployment saved to: {record_path}")
        return 0
    except Exception as e:
        print("Deployment error:", e, file=sys.stderr)
        return 1
    finally:
        if env is not None:
            env.stop()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    log_dir = Path(args.log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_path = log_dir / f"nft_dao_{args.command}_{timestamp}.log"

    original_stdout = sys.stdout
    original_stderr = sys.stderr

    with open(log_path, 'w', encoding='utf-8') as log_file:
        sys.stdout = TeeWriter(original_stdout, log_file)
        sys.stderr = TeeWriter(original_stderr, log_file)
        try:
            exit_code = run(args)
        finally:
            sys.stdout = original_stdout
            sys.stderr = original_stderr

    print(f"📁 Full log saved to: {log_path}")
    return exit_code


if __name__ == "__main__":
    sys.exit(main())
