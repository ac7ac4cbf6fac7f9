"""Centralized path management for tillroll.

All receipt artifacts (photos, raw recognizer output, parsed documents)
live under one project root.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path


def _get_project_root() -> Path:
    """Project root: $TILLROLL_HOME, else the current working directory."""
    home = os.environ.get("TILLROLL_HOME")
    return Path(home).expanduser() if home else Path.cwd()


@dataclass
class ProjectPaths:
    """Container for all project-related paths.

    All paths are computed relative to the project root, ensuring consistency
    across all modules.
    """

    root: Path = field(default_factory=_get_project_root)

    def __post_init__(self) -> None:
        # Ensure root is resolved to absolute path
        self.root = self.root.resolve()

    # --- Configuration paths ---
    @property
    def config(self) -> Path:
        """Configuration directory (config/)."""
        return self.root / "config"

    @property
    def parser_config(self) -> Path:
        """Parser threshold overrides TOML file."""
        return self.config / "parser.toml"

    # --- Receipt paths ---
    @property
    def receipts(self) -> Path:
        """Root receipts directory."""
        return self.root / "receipts"

    @property
    def receipts_images(self) -> Path:
        """Receipt photos/images."""
        return self.receipts / "images"

    @property
    def receipts_ocr_json(self) -> Path:
        """Raw recognizer results (JSON)."""
        return self.receipts / "ocr_json"

    @property
    def receipts_parsed(self) -> Path:
        """Parsed receipt documents (JSON)."""
        return self.receipts / "parsed"

    def ensure_receipt_directories(self) -> None:
        """Create all receipt-related directories if they don't exist."""
        self.receipts_images.mkdir(parents=True, exist_ok=True)
        self.receipts_ocr_json.mkdir(parents=True, exist_ok=True)
        self.receipts_parsed.mkdir(parents=True, exist_ok=True)


# Module-level singleton
_paths: ProjectPaths | None = None


def get_paths() -> ProjectPaths:
    """Get the singleton ProjectPaths instance.

    Returns:
        The global ProjectPaths instance.
    """
    global _paths
    if _paths is None:
        _paths = ProjectPaths()
    return _paths


def reset_paths() -> None:
    """Forget the singleton so the next get_paths() re-reads the environment."""
    global _paths
    _paths = None
