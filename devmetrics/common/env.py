"""Environment variable loading utilities.

Loads provider credentials from a ``.env`` file using python-dotenv before the
configuration loaders in ``devmetrics.common.config`` read them.

Usage in application entrypoints:

    from devmetrics.common.env import load_env
    load_env()

The module searches for .env files in this order:
1. Current working directory
2. Project root (detected by pyproject.toml or .git)

Variables already set in the shell take precedence over .env values.
"""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv as _load_dotenv

from devmetrics.common.logging import get_logger

logger = get_logger(__name__)


def find_project_root(start_path: Optional[Path] = None) -> Optional[Path]:
    """Find the project root by looking for pyproject.toml or .git."""
    current = start_path or Path.cwd()

    for parent in [current, *current.parents]:
        if (parent / "pyproject.toml").exists():
            return parent
        if (parent / ".git").exists():
            return parent

    return None


def find_env_file(filename: str = ".env") -> Optional[Path]:
    """Return the first .env file found in the cwd or the project root."""
    cwd_env = Path.cwd() / filename
    if cwd_env.exists():
        return cwd_env

    project_root = find_project_root()
    if project_root:
        root_env = project_root / filename
        if root_env.exists():
            return root_env

    return None


def load_env(env_file: Optional[str] = None, override: bool = False) -> bool:
    """Load environment variables from a .env file.

    Args:
        env_file: Path to .env file. If None, searches standard locations.
        override: If True, .env values override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    dotenv_path = Path(env_file) if env_file else find_env_file()
    if dotenv_path is None or not dotenv_path.exists():
        logger.debug("No .env file found, using environment variables only")
        return False

    logger.info("Loading environment file", extra={"env_file": str(dotenv_path)})
    _load_dotenv(dotenv_path=dotenv_path, override=override)
    return True
