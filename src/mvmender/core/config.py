"""
Mvmender CONFIGURATION MANAGER
------------------------------
Handles loading and parsing of user configuration (.mvmender.yaml).
Allows customization of:
- Free-text keys whose values may hold raw script source
- Repair limits (point-patch passes, bracket-balance tolerance)
- Batch worker count and file ignore patterns (glob-based)
"""

import copy
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Tuple
from fnmatch import fnmatch
from ruamel.yaml import YAML

logger = logging.getLogger("mvmender.config")


@dataclass(frozen=True)
class RepairOptions:
    """Knobs consumed by the scanner, detectors and strategies."""
    free_text_keys: Tuple[str, ...] = ("note",)
    max_passes: int = 5
    max_balance_delta: int = 2
    escape_control_characters: bool = False


class ConfigManager:
    """
    Manages user configuration state.
    defaults:
      repair.max_passes: 5
      batch.workers: 4
      rules.ignore: []
    """

    DEFAULT_CONFIG = {
        "repair": {
            "free_text_keys": ["note"],
            "max_passes": 5,
            "max_balance_delta": 2,
            "escape_control_characters": False,
        },
        "batch": {
            "workers": 4,
            "recursive": False,
        },
        "rules": {
            "ignore": [],
        },
    }

    def __init__(self, workspace_root: Path, app_name: str = "mvmender"):
        self.workspace = Path(workspace_root)
        self.app_name = app_name
        self.config = copy.deepcopy(self.DEFAULT_CONFIG)
        self.source = None
        self._load_config()

    def _load_config(self):
        """
        Attempts to load configuration from:
        1. .<app_name>/config.yaml (Preferred)
        2. .<app_name>.yaml (Root file)
        """
        yaml = YAML(typ='safe')

        possible_files = [
            self.workspace / f".{self.app_name}" / "config.yaml",
            self.workspace / f".{self.app_name}.yaml",
        ]

        for path in possible_files:
            if not path.exists():
                continue
            try:
                loaded = yaml.load(path)
                if loaded:
                    self._merge_config(loaded)
                self.source = path
                logger.info(f"Loaded configuration from {path.name}")
                return
            except Exception as e:
                logger.warning(f"Failed to parse {path.name}: {e}")

    def _merge_config(self, user_config: Dict[str, Any]):
        """Section-level merge of user config into defaults."""
        if not isinstance(user_config, dict):
            logger.warning("Ignoring configuration: top level must be a mapping")
            return
        for section, defaults in self.config.items():
            override = user_config.get(section)
            if isinstance(override, dict):
                defaults.update(override)
            elif override is not None:
                logger.warning(f"Ignoring config section '{section}': expected a mapping")

    def is_ignored(self, file_path: str) -> bool:
        """
        Determines if a file should be skipped.

        Args:
            file_path: Path to the file, relative to the workspace when possible.

        Returns:
            True if any ignore glob matches the path or its file name.
        """
        name = Path(file_path).name
        for pattern in self.config["rules"].get("ignore") or []:
            if fnmatch(file_path, pattern) or fnmatch(name, pattern):
                return True
        return False

    @property
    def repair_options(self) -> RepairOptions:
        section = self.config["repair"]
        keys = section.get("free_text_keys") or ["note"]
        if isinstance(keys, str):
            keys = [keys]
        return RepairOptions(
            free_text_keys=tuple(str(k) for k in keys),
            max_passes=max(1, int(section.get("max_passes", 5))),
            max_balance_delta=max(0, int(section.get("max_balance_delta", 2))),
            escape_control_characters=bool(section.get("escape_control_characters", False)),
        )

    @property
    def workers(self) -> int:
        return max(1, int(self.config["batch"].get("workers", 4)))

    @property
    def recursive(self) -> bool:
        return bool(self.config["batch"].get("recursive", False))
