#!/usr/bin/env python3
"""
NFT DAO Setup Checker

Verifies that the toolchain and contract artifacts needed for deployment
are available.
"""

import sys
from pathlib import Path
from typing import Optional

from nft_dao.artifacts import ArtifactStore, ArtifactNotFoundError
from nft_dao.chain_env import find_anvil


REQUIRED_CONTRACTS = ["DAOToken", "TimelockController", "DAOGovernor"]


def check_directory_exists(dirpath: Path, description: str) -> bool:
    """Check if a directory exists"""
    if dirpath.exists() and dirpath.is_dir():
        print(f"✅ {description}: {dirpath}")
        return True
    else:
        print(f"❌ {description}: {dirpath} NOT FOUND")
        return False


def check_artifact(store: ArtifactStore, name: str) -> bool:
    """Check that a deployable artifact exists for a contract"""
    try:
        artifact = store.get(name)
    except ArtifactNotFoundError:
        print(f"❌ {name}: no artifact or source found")
        return False
    except Exception as e:
        print(f"❌ {name}: {e}")
        return False

    if not artifact.deployable:
        print(f"❌ {name}: artifact has no bytecode")
        return False

    print(f"✅ {name}: {len(artifact.abi)} ABI entries")
    return True


def report_solc(version: str):
    import solcx

    installed = [str(v) for v in solcx.get_installed_solc_versions()]
    if version in installed:
        print(f"✅ solc {version} installed")
    else:
        print(f"⚠️  solc {version} not installed (will be installed on first compile)")


def run_checks(store: ArtifactStore, rpc_url: Optional[str] = None) -> int:
    """
    Run all checks

    Args:
        store: Artifact store to inspect
        rpc_url: When set, Anvil is not required

    Returns:
        Process exit code (0 = ready)
    """
    print("=" * 80)
    print("🔍 NFT DAO Setup Checker")
    print("=" * 80)
    print()

    all_checks_passed = True

    print("📁 Project Directories:")
    has_artifacts = check_directory_exists(store.artifacts_dir, "Artifacts")
    has_sources = check_directory_exists(store.contracts_dir, "Contracts")
    if not (has_artifacts or has_sources):
        all_checks_passed = False
    print()

    print("🔧 Toolchain:")
    anvil = find_anvil()
    if anvil:
        print(f"✅ Anvil: {anvil}")
    elif rpc_url:
        print(f"⚠️  Anvil not found (not needed, using {rpc_url})")
    else:
        print("❌ Anvil not found and no RPC URL configured")
        all_checks_passed = False

    if has_sources and not has_artifacts:
        report_solc(store.solc_version)
    print()

    print("📦 Contract Artifacts:")
    for name in REQUIRED_CONTRACTS:
        all_checks_passed &= check_artifact(store, name)
    print()

    print("=" * 80)
    if all_checks_passed:
        print("✅ ALL CHECKS PASSED - Ready to deploy!")
        print()
        print("Next steps:")
        print("  1. Local dry run:  nft-dao deploy-dao")
        print("  2. Real network:   nft-dao --rpc-url <url> --private-key <key> deploy-dao --config configs/dao_config.json")
    else:
        print("❌ SOME CHECKS FAILED - Please review errors above")
        print("=" * 80)
        return 1
    print("=" * 80)

    return 0


def main() -> int:
    return run_checks(ArtifactStore())


if __name__ == "__main__":
    sys.exit(main())
