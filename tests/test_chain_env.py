"""
Tests for ChainEnvironment RPC helpers against a mocked provider.

Starting a real Anvil process is covered by the integration suites.
"""

import subprocess
from unittest.mock import MagicMock

import pytest

from nft_dao import chain_env
from nft_dao.chain_env import ChainEnvironment, find_anvil

from fakes import ADMIN, VOTER1


def started_env():
    env = ChainEnvironment(rpc_url="http://127.0.0.1:9999")
    env.w3 = MagicMock()
    return env, env.w3.provider.make_request


class TestNotStarted:

    def test_rpc_helpers_require_start(self):
        env = ChainEnvironment(rpc_url="http://127.0.0.1:9999")
        with pytest.raises(RuntimeError, match="not started"):
            env.create_snapshot()
        with pytest.raises(RuntimeError):
            env.get_signers()

    def test_attached_environment_is_not_local(self):
        assert not ChainEnvironment(rpc_url="http://127.0.0.1:9999").is_local

    def test_fork_url_from_env(self, monkeypatch):
        monkeypatch.setenv('ANVIL_FORK_URL', 'https://rpc.example')
        assert ChainEnvironment().fork_url == 'https://rpc.example'


class TestStart:

    def test_attach_to_rpc_url(self, monkeypatch):
        w3 = MagicMock()
        w3.is_connected.return_value = True
        w3.eth.chain_id = 31337
        w3.eth.block_number = 5
        monkeypatch.setattr(ChainEnvironment, '_connect', lambda self, url: w3)

        env = ChainEnvironment(rpc_url="http://node:8545")
        info = env.start()

        assert info['rpc_url'] == "http://node:8545"
        assert info['chain_id'] == 31337
        assert info['local'] is False
        assert env.anvil_process is None

    def test_unreachable_rpc(self, monkeypatch):
        w3 = MagicMock()
        w3.is_connected.return_value = False
        monkeypatch.setattr(ChainEnvironment, '_connect', lambda self, url: w3)

        with pytest.raises(ConnectionError, match="node:8545"):
            ChainEnvironment(rpc_url="http://node:8545").start()

    def test_connect_uses_rpc_url(self):
        w3 = ChainEnvironment()._connect("http://127.0.0.1:8545")
        assert w3.provider.endpoint_uri == "http://127.0.0.1:8545"


class TestSnapshots:

    def test_create_snapshot_returns_id(self):
        env, make_request = started_env()
        make_request.return_value = {'result': '0x1'}
        assert env.create_snapshot() == '0x1'
        make_request.assert_called_once_with("evm_snapshot", [])

    def test_snapshot_error(self):
        env, make_request = started_env()
        make_request.return_value = {'error': {'message': 'nope'}}
        with pytest.raises(RuntimeError, match="Snapshot failed"):
            env.create_snapshot()

    def test_revert(self):
        env, make_request = started_env()
        make_request.return_value = {'result': True}
        assert env.revert_to_snapshot('0x1') is True
        make_request.assert_called_once_with("evm_revert", ['0x1'])

    def test_revert_failure(self):
        env, make_request = started_env()
        make_request.return_value = {'result': False}
        assert env.revert_to_snapshot('0x9') is False


class TestChainControl:

    def test_mine(self):
        env, make_request = started_env()
        env.mine(3)
        make_request.assert_called_once_with('anvil_mine', ['0x3'])

    def test_mine_zero_is_noop(self):
        env, make_request = started_env()
        env.mine(0)
        make_request.assert_not_called()

    def test_increase_time_mines_a_block(self):
        env, make_request = started_env()
        env.increase_time(3600)
        assert [c.args[0] for c in make_request.call_args_list] == ['evm_increaseTime', 'anvil_mine']
        assert make_request.call_args_list[0].args[1] == [3600]

    def test_set_balance(self):
        env, make_request = started_env()
        env.set_balance(ADMIN.lower(), 10**18)
        make_request.assert_called_once_with('anvil_setBalance', [ADMIN, hex(10**18)])

    def test_signers_from_node_accounts(self):
        env, _ = started_env()
        env.w3.eth.accounts = [ADMIN, VOTER1]
        assert [s.address for s in env.get_signers()] == [ADMIN, VOTER1]
        assert not any(s.is_local for s in env.get_signers())


class TestFindAnvil:

    def test_not_installed(self, monkeypatch):
        def missing(*args, **kwargs):
            raise FileNotFoundError(args[0][0])

        monkeypatch.setattr(chain_env.subprocess, 'run', missing)
        assert find_anvil() is None

    def test_first_working_path(self, monkeypatch):
        def run(cmd, **kwargs):
            if cmd[0] != 'anvil':
                raise subprocess.CalledProcessError(1, cmd)
            return MagicMock()

        monkeypatch.setattr(chain_env.subprocess, 'run', run)
        assert find_anvil() == 'anvil'

    def test_port_in_use_refuses_start(self, monkeypatch):
        env = ChainEnvironment(anvil_port=8545)
        monkeypatch.setattr(ChainEnvironment, '_is_port_in_use', lambda self, port: True)
        with pytest.raises(RuntimeError, match="already in use"):
            env.start()
