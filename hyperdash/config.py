"""
Runtime configuration.

Settings come from environment variables; the default series selection
comes from a YAML file in data/.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Union
import yaml
from hyperdash.selection import Selection


DEFAULT_SELECTION_PATH = Path(__file__).parent.parent / "data" / "selection.yaml"


@dataclass(frozen=True)
class Settings:
    """
    Process-wide settings.

    Attributes:
        basic_auth_user: Username for the /dashboard gateway (None rejects every login)
        basic_auth_pass: Password for the /dashboard gateway
        max_workers: Concurrent fetches per refresh
        http_timeout: Default HTTP timeout in seconds
        output_dir: Directory for reports and exported datasets
    """
    basic_auth_user: Optional[str] = None
    basic_auth_pass: Optional[str] = None
    max_workers: int = 6
    http_timeout: float = 30.0
    output_dir: str = "reports"

    def __post_init__(self):
        """Validate representation invariants."""
        if self.max_workers <= 0:
            raise ValueError("max_workers must be positive")
        if self.http_timeout <= 0:
            raise ValueError("http_timeout must be positive")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from environment variables.

        Reads BASIC_AUTH_USER, BASIC_AUTH_PASS, HYPERDASH_MAX_WORKERS,
        HYPERDASH_HTTP_TIMEOUT and HYPERDASH_OUTPUT_DIR.

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        try:
            max_workers = int(env.get("HYPERDASH_MAX_WORKERS", cls.max_workers))
            http_timeout = float(env.get("HYPERDASH_HTTP_TIMEOUT", cls.http_timeout))
        except ValueError as e:
            raise ValueError(f"Invalid numeric setting: {e}") from e
        return cls(
            basic_auth_user=env.get("BASIC_AUTH_USER") or None,
            basic_auth_pass=env.get("BASIC_AUTH_PASS") or None,
            max_workers=max_workers,
            http_timeout=http_timeout,
            output_dir=env.get("HYPERDASH_OUTPUT_DIR", cls.output_dir),
        )


def load_selection(path: Optional[Union[str, Path]] = None) -> Selection:
    """
    Load a Selection from a YAML file.

    Falls back to the built-in defaults when no path is given and the
    default file is absent.

    Args:
        path: YAML file path (defaults to data/selection.yaml)

    Returns:
        Selection

    Raises:
        FileNotFoundError: If an explicit path does not exist
        ValueError: If the file content is not a valid selection
    """
    if path is None:
        if not DEFAULT_SELECTION_PATH.exists():
            return Selection()
        path = DEFAULT_SELECTION_PATH

    selection_file = Path(path)
    if not selection_file.exists():
        raise FileNotFoundError(f"Selection file not found: {path}")

    with open(selection_file) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Selection file must contain a mapping: {path}")

    return Selection.from_dict(data)
