"""
Mvmender FILE SYSTEM MANAGER
----------------------------
Handles all physical I/O operations:
- Atomic file writes (temp file + os.replace)
- `<file>.bak` backups taken before any overwrite
- RPG Maker MV project discovery and data-file crawling
"""

import os
import shutil
import logging
from pathlib import Path
from typing import Generator, Tuple

logger = logging.getLogger("mvmender.io")

BACKUP_SUFFIX = ".bak"
TEMP_SUFFIX = ".mvmender.tmp"


def is_project_root(path: Path) -> bool:
    """An RPG Maker MV project is a folder holding data/System.json."""
    return (Path(path) / "data" / "System.json").is_file()


class FileSystemManager:
    """
    Abstraction layer for local file system operations.
    """

    def __init__(self, workspace_root: Path, app_name: str = "mvmender"):
        self.workspace = Path(workspace_root).resolve()
        self.app_name = app_name

    def read_text(self, path: Path) -> str:
        """Reads text file with BOM handling."""
        return Path(path).read_text(encoding='utf-8-sig')

    def atomic_write(self, target_path: Path, content: str) -> None:
        """
        Atomically writes content to file.
        Uses <name>.mvmender.tmp + os.replace, so readers never see half a file.
        """
        target_path = Path(target_path)
        temp_file = target_path.with_name(target_path.name + TEMP_SUFFIX)
        try:
            with open(temp_file, 'w', encoding='utf-8', newline='') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())

            os.replace(temp_file, target_path)

        except Exception as e:
            if temp_file.exists():
                temp_file.unlink()
            raise IOError(f"Atomic write failed: {e}")

    def backup_path_for(self, target_path: Path) -> Path:
        target_path = Path(target_path)
        return target_path.with_name(target_path.name + BACKUP_SUFFIX)

    def create_backup(self, target_path: Path) -> Path:
        """
        Copies target to <target>.bak, overwriting an older backup.

        Raises:
            IOError: if the backup cannot be written or is incomplete.
        """
        target_path = Path(target_path)
        backup_path = self.backup_path_for(target_path)
        try:
            shutil.copy2(target_path, backup_path)
        except Exception as e:
            raise IOError(f"Backup failed for {target_path.name}: {e}")

        if backup_path.stat().st_size != target_path.stat().st_size:
            raise IOError(f"Backup of {target_path.name} is incomplete")

        logger.debug(f"Backed up {target_path.name} -> {backup_path.name}")
        return backup_path

    def data_dir_for(self, root_path: Path) -> Path:
        """Resolves a project root to its data/ folder; anything else is used as given."""
        root_path = Path(root_path)
        if is_project_root(root_path):
            return root_path / "data"
        return root_path

    def crawl(self, root_path: Path, recursive: bool = False) -> Generator[Tuple[Path, str], None, None]:
        """
        Generator that yields (absolute_path, relative_path_str) for every
        *.json data file under root_path, sorted by path.
        Skips hidden entries, backups and temp files.
        """
        root_path = self.data_dir_for(root_path)

        if not root_path.exists():
            logger.error(f"Scan root does not exist: {root_path}")
            return

        pattern = "**/*.json" if recursive else "*.json"
        for abs_path in sorted(root_path.glob(pattern)):
            if not abs_path.is_file():
                continue
            rel_parts = abs_path.relative_to(root_path).parts
            if any(part.startswith(".") for part in rel_parts):
                continue

            try:
                rel_path = str(abs_path.resolve().relative_to(self.workspace))
            except ValueError:
                # File outside workspace (e.g. external scan)
                rel_path = str(abs_path)

            yield abs_path, rel_path
