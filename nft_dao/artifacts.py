"""
Contract Artifacts - ABI and bytecode lookup

Artifacts come from two places, in order:
1. Pre-built JSON artifacts (Hardhat `artifacts/` or Foundry `out/` layout)
2. Solidity sources compiled on demand with py-solc-x
"""

import json
from pathlib import Path
from typing import Dict, Any, List, Optional


class ArtifactNotFoundError(LookupError):
    """Raised when no artifact or source defines the requested contract"""


class ContractArtifact:
    """ABI + creation bytecode for one contract"""

    def __init__(self, name: str, abi: List[Dict[str, Any]], bytecode: str):
        self.name = name
        self.abi = abi
        bytecode = bytecode or ''
        self.bytecode = bytecode if bytecode.startswith('0x') else '0x' + bytecode

    @property
    def deployable(self) -> bool:
        return len(self.bytecode) > 2

    @classmethod
    def from_json(cls, name: str, data: Dict[str, Any]) -> "ContractArtifact":
        """
        Build from an artifact JSON document

        Hardhat stores `bytecode` as a hex string, Foundry as `{"object": "0x..."}`.
        """
        bytecode = data.get('bytecode', '')
        if isinstance(bytecode, dict):
            bytecode = bytecode.get('object', '')
        return cls(data.get('contractName', name), data.get('abi', []), bytecode)

    def __repr__(self) -> str:
        return f"ContractArtifact({self.name!r}, functions={len(self.abi)}, deployable={self.deployable})"


class ArtifactStore:
    """Artifact lookup with in-memory cache"""

    def __init__(
        self,
        artifacts_dir: str = 'artifacts',
        contracts_dir: str = 'contracts',
        solc_version: str = '0.8.20',
        import_remappings: Optional[Dict[str, str]] = None
    ):
        """
        Args:
            artifacts_dir: Directory searched recursively for `<Name>.json`
            contracts_dir: Directory with `.sol` sources, used when no JSON artifact exists
            solc_version: Compiler version (installed on first use)
            import_remappings: prefix -> path, default maps @openzeppelin/ to node_modules
        """
        self.artifacts_dir = Path(artifacts_dir)
        self.contracts_dir = Path(contracts_dir)
        self.solc_version = solc_version
        if import_remappings is None:
            import_remappings = {'@openzeppelin/': 'node_modules/@openzeppelin/'}
        self.import_remappings = import_remappings
        self._cache: Dict[str, ContractArtifact] = {}
        self._compiled = False

    def get(self, name: str) -> ContractArtifact:
        """
        Get artifact by contract name

        Raises:
            ArtifactNotFoundError if neither a JSON artifact nor a source defines it
        """
        if name in self._cache:
            return self._cache[name]

        artifact = self._load_json_artifact(name)
        if artifact is None and not self._compiled:
            self._compile_sources()
            artifact = self._cache.get(name)

        if artifact is None:
            raise ArtifactNotFoundError(
                f"Contract artifact not found: {name}\n"
                f"  Searched: {self.artifacts_dir}/**/{name}.json\n"
                f"  Sources:  {self.contracts_dir}/**/*.sol"
            )

        self._cache[name] = artifact
        return artifact

    def available(self) -> List[str]:
        """Contract names with a JSON artifact on disk"""
        if not self.artifacts_dir.is_dir():
            return []
        return sorted({
            path.stem for path in self.artifacts_dir.rglob('*.json')
            if not path.name.endswith('.dbg.json')
        })

    def _load_json_artifact(self, name: str) -> Optional[ContractArtifact]:
        if not self.artifacts_dir.is_dir():
            return None

        for path in sorted(self.artifacts_dir.rglob(f'{name}.json')):
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
            if isinstance(data, dict) and 'abi' in data:
                return ContractArtifact.from_json(name, data)
        return None

    def _compile_sources(self):
        """Compile every .sol file under contracts_dir and cache the results"""
        if not self.contracts_dir.is_dir():
            self._compiled = True
            return

        sources = sorted(str(p) for p in self.contracts_dir.rglob('*.sol'))
        if not sources:
            self._compiled = True
            return

        import solcx

        if self.solc_version not in [str(v) for v in solcx.get_installed_solc_versions()]:
            print(f"  • Installing solc {self.solc_version}...")
            solcx.install_solc(self.solc_version)

        print(f"🔨 Compiling {len(sources)} Solidity source(s) with solc {self.solc_version}...")
        remappings = [f"{prefix}={target}" for prefix, target in self.import_remappings.items()]
        compiled = solcx.compile_files(
            sources,
            output_values=['abi', 'bin'],
            solc_version=self.solc_version,
            import_remappings=remappings,
            allow_paths=[str(Path('.').resolve())],
            optimize=True,
        )

        for contract_id, interface in compiled.items():
            # contract_id looks like "contracts/DAOToken.sol:DAOToken"
            contract_name = contract_id.rsplit(':', 1)[-1]
            self._cache.setdefault(
                contract_name,
                ContractArtifact(contract_name, interface['abi'], interface['bin'])
            )
        self._compiled = True

        print(f"✓ Compiled {len(compiled)} contract(s)")
