"""
Chain Environment - Environment Layer

Responsibilities:
1. Start a local Anvil node (optionally forking a remote chain), or attach to an RPC URL
2. Provide the Web3 connection and the node's unlocked signers
3. Snapshot / revert and time travel for tests
"""

import os
import queue
import socket
import subprocess
import threading
import time
from typing import Optional, Dict, Any, List

import requests
from eth_utils import to_checksum_address
from web3 import Web3
from web3.providers.rpc import HTTPProvider

from nft_dao.deployer import Signer


ANVIL_PATHS = [
    os.path.expanduser('~/.foundry/bin/anvil'),
    '/usr/local/bin/anvil',
    'anvil',
]

PROXY_VARS = ['http_proxy', 'https_proxy', 'HTTP_PROXY', 'HTTPS_PROXY',
              'all_proxy', 'ALL_PROXY', 'ftp_proxy', 'FTP_PROXY']


def find_anvil() -> Optional[str]:
    """Return the first working anvil binary, or None"""
    for path in ANVIL_PATHS:
        try:
            subprocess.run(
                [path, '--version'],
                capture_output=True,
                check=True,
                text=True,
                timeout=5
            )
            return path
        except (subprocess.CalledProcessError, FileNotFoundError, PermissionError, subprocess.TimeoutExpired):
            continue
    return None


class ChainEnvironment:
    """Chain environment management class"""

    def __init__(
        self,
        rpc_url: Optional[str] = None,
        anvil_port: int = 8545,
        fork_url: Optional[str] = None,
        chain_id: int = 31337,
        accounts: int = 10,
        startup_timeout: int = 60
    ):
        """
        Initialize chain environment

        Args:
            rpc_url: Existing JSON-RPC endpoint
                     - None: start a local Anvil node on anvil_port
                     - URL: attach to it, nothing is started
            anvil_port: Port for the local Anvil node
            fork_url: Remote RPC for Anvil to fork (optional, env ANVIL_FORK_URL)
            chain_id: Chain ID for the local node
            accounts: Number of unlocked dev accounts Anvil creates
            startup_timeout: Seconds to wait for Anvil to open its port
        """
        if fork_url is None:
            fork_url = os.getenv('ANVIL_FORK_URL') or None

        self.rpc_url = rpc_url
        self.anvil_port = anvil_port
        self.fork_url = fork_url
        self.chain_id = chain_id
        self.accounts = accounts
        self.startup_timeout = startup_timeout
        self.anvil_process: Optional[subprocess.Popen] = None
        self.anvil_cmd: Optional[str] = None

        self.w3: Optional[Web3] = None

    @property
    def is_local(self) -> bool:
        """True when this environment owns an Anvil process"""
        return self.anvil_process is not None

    def start(self) -> Dict[str, Any]:
        """
        Start environment

        Returns:
            Environment info dictionary
        """
        if self.rpc_url is None:
            self._start_anvil()
            self.rpc_url = f"http://127.0.0.1:{self.anvil_port}"

        self.w3 = self._connect(self.rpc_url)

        if not self.w3.is_connected():
            self._cleanup_anvil()
            raise ConnectionError(f"Cannot connect to RPC: {self.rpc_url}")

        chain_id = self.w3.eth.chain_id
        block_number = self.w3.eth.block_number

        print(f"✓ RPC connected successfully")
        print(f"  Chain ID: {chain_id}")
        print(f"  RPC: {self.rpc_url}")
        if self.fork_url:
            print(f"  Fork: {self.fork_url}")

        return {
            'rpc_url': self.rpc_url,
            'chain_id': chain_id,
            'block_number': block_number,
            'local': self.is_local,
            'fork_url': self.fork_url,
        }

    def stop(self):
        """Stop environment"""
        self._cleanup_anvil()
        self.w3 = None
        print("✓ Environment cleaned up")

    def __enter__(self) -> "ChainEnvironment":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()

    def get_signers(self) -> List[Signer]:
        """Unlocked node accounts, in node order"""
        self._require_started()
        return [Signer(address) for address in self.w3.eth.accounts]

    def create_snapshot(self) -> str:
        """
        Create snapshot of current state

        Returns:
            Snapshot ID
        """
        self._require_started()
        response = self.w3.provider.make_request("evm_snapshot", [])
        if 'result' not in response:
            raise RuntimeError(f"Snapshot failed: {response.get('error', response)}")
        return response['result']

    def revert_to_snapshot(self, snapshot_id: str) -> bool:
        """
        Revert to specified snapshot

        The node discards the snapshot on revert, take a new one if needed.

        Returns:
            Whether revert was successful
        """
        self._require_started()
        response = self.w3.provider.make_request("evm_revert", [snapshot_id])
        reverted = bool(response.get('result', False))
        if not reverted:
            print(f"⚠️  Failed to revert snapshot: {snapshot_id}")
        return reverted

    def mine(self, blocks: int = 1):
        """Mine `blocks` empty blocks"""
        self._require_started()
        if blocks < 1:
            return
        self.w3.provider.make_request('anvil_mine', [hex(blocks)])

    def increase_time(self, seconds: int):
        """Advance block timestamp by `seconds` and mine a block"""
        self._require_started()
        self.w3.provider.make_request('evm_increaseTime', [seconds])
        self.mine(1)

    def set_balance(self, address: str, balance_wei: int):
        """
        Set address balance using Anvil cheatcode

        Args:
            address: Address
            balance_wei: Balance (wei)
        """
        self._require_started()
        self.w3.provider.make_request(
            'anvil_setBalance',
            [to_checksum_address(address), hex(balance_wei)]
        )

    def _require_started(self):
        if not self.w3:
            raise RuntimeError("Environment not started, call start() first")

    def _connect(self, rpc_url: str) -> Web3:
        # Local node traffic must not go through a system proxy
        session = requests.Session()
        session.proxies = {
            'http': None,
            'https': None,
        }
        session.trust_env = False

        provider = HTTPProvider(
            rpc_url,
            session=session,
            request_kwargs={'timeout': 60}
        )
        return Web3(provider)

    def _start_anvil(self):
        """Start Anvil process"""
        if self._is_port_in_use(self.anvil_port):
            raise RuntimeError(
                f"Port {self.anvil_port} is already in use, cannot start Anvil\n"
                f"Either pass --rpc-url to attach to the running node, or free the port:\n"
                f"  Linux/Mac: lsof -ti:{self.anvil_port} | xargs kill -9\n"
                f"  Windows: netstat -ano | findstr :{self.anvil_port}"
            )

        self.anvil_cmd = find_anvil()
        if not self.anvil_cmd:
            raise RuntimeError(
                "Anvil not found! Please install Foundry:\n"
                "  curl -L https://foundry.paradigm.xyz | bash\n"
                "  foundryup"
            )
        print(f"✓ Found Anvil: {self.anvil_cmd}")

        anvil_cmd_list = [
            self.anvil_cmd,
            '--port', str(self.anvil_port),
            '--host', '127.0.0.1',
            '--chain-id', str(self.chain_id),
            '--accounts', str(self.accounts),
        ]
        if self.fork_url:
            anvil_cmd_list += ['--fork-url', self.fork_url, '--timeout', '60000', '--retries', '3']

        print(f"🔨 Starting Anvil...")
        print(f"   Port: {self.anvil_port}")

        anvil_env = os.environ.copy()
        for var in PROXY_VARS:
            anvil_env.pop(var, None)
        anvil_env['no_proxy'] = '*'
        anvil_env['NO_PROXY'] = '*'

        # stdout is discarded and stderr drained on a thread so pipe buffers never fill
        self.anvil_process = subprocess.Popen(
            anvil_cmd_list,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            env=anvil_env
        )

        stderr_output: List[str] = []
        stderr_queue: "queue.Queue[str]" = queue.Queue()
        process = self.anvil_process

        def read_stderr():
            for line in iter(process.stderr.readline, b''):
                stderr_queue.put(line.decode('utf-8', errors='ignore').strip())

        threading.Thread(target=read_stderr, daemon=True).start()

        def drain():
            while not stderr_queue.empty():
                try:
                    line = stderr_queue.get_nowait()
                except queue.Empty:
                    break
                if line:
                    stderr_output.append(line)

        for i in range(self.startup_timeout * 4):
            time.sleep(0.25)
            drain()

            if self._is_port_in_use(self.anvil_port):
                print(f"✓ Anvil started successfully ({(i + 1) / 4:.1f}s)")
                return

            if self.anvil_process.poll() is not None:
                returncode = self.anvil_process.returncode
                time.sleep(0.5)
                drain()
                error_msg = '\n'.join(stderr_output[-20:]) if stderr_output else "No error message"
                self.anvil_process = None
                raise RuntimeError(
                    f"Anvil process exited unexpectedly (code {returncode})\n"
                    f"Error message: {error_msg[:500]}"
                )

        drain()
        stderr_log = '\n'.join(stderr_output[-30:]) if stderr_output else "No output captured"
        self._cleanup_anvil()
        raise RuntimeError(
            f"Anvil start timed out ({self.startup_timeout}s)\n"
            f"Anvil stderr output (last 30 lines):\n{stderr_log}"
        )

    def _cleanup_anvil(self):
        """Cleanup Anvil process"""
        if self.anvil_process:
            try:
                self.anvil_process.terminate()
                self.anvil_process.wait(timeout=5)
                print("✓ Anvil process terminated")
            except subprocess.TimeoutExpired:
                self.anvil_process.kill()
                print("✓ Anvil process forcibly terminated")
            self.anvil_process = None

    def _is_port_in_use(self, port: int) -> bool:
        """Check if port is in use"""
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            return s.connect_ex(('127.0.0.1', port)) == 0
