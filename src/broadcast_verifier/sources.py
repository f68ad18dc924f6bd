"""Contract source resolution for broadcast-verifier."""

import logging
from pathlib import Path
from typing import Dict, Iterable, Optional, Union

from .exceptions import SourceNotFoundError

logger = logging.getLogger(__name__)


def contract_identifier(source_path: str, contract_name: str) -> str:
    """Fully qualified identifier understood by forge: "<path>:<Name>"."""
    return f"{source_path}:{contract_name}"


class SourceResolver:
    """Maps contract names to source files inside a Foundry project."""

    def __init__(
        self,
        project_root: Union[Path, str],
        overrides: Optional[Dict[str, str]] = None,
        search_dirs: Iterable[str] = ("contracts", "lib"),
    ):
        """
        Args:
            project_root: Foundry project root; searches and returned paths are relative to it
            overrides: Exact contract name -> source path, consulted before any search.
                       Override paths may rely on remappings and are not checked on disk.
            search_dirs: Directories (relative to project_root) searched in order
        """
        self.project_root = Path(project_root)
        self.overrides = dict(overrides or {})
        self.search_dirs = tuple(search_dirs)

    def find_source_path(self, contract_name: str) -> Optional[str]:
        """
        Find the source file declaring a contract.

        Args:
            contract_name: Contract name as recorded in the broadcast file

        Returns:
            Project-relative POSIX path, or None if nothing matches
        """
        if contract_name in self.overrides:
            return self.overrides[contract_name]

        file_name = f"{contract_name}.sol"
        for search_dir in self.search_dirs:
            base = self.project_root / search_dir
            if not base.is_dir():
                continue
            # Sorted so the first hit does not depend on directory listing order
            matches = sorted(p for p in base.rglob(file_name) if p.is_file())
            if matches:
                return matches[0].relative_to(self.project_root).as_posix()

        return None

    def resolve(self, contract_name: str) -> str:
        """
        Resolve a contract name to its fully qualified identifier.

        Raises:
            SourceNotFoundError: If neither the overrides nor the search find a file
        """
        source_path = self.find_source_path(contract_name)
        if source_path is None:
            raise SourceNotFoundError(f"source not found: {contract_name}")

        logger.debug("Resolved %s -> %s", contract_name, source_path)
        return contract_identifier(source_path, contract_name)
