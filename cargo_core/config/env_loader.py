"""Centralized environment variable loading utility."""

from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def load_environment_variables(project_dir: Optional[Path] = None) -> None:
    """Load environment variables from .env file.

    Checks for .env file in parent directory first, then in project directory.
    Values already present in the process environment are not overridden.

    Args:
        project_dir: Project root directory. If None, calculates from this file.
    """
    if project_dir is None:
        # cargo_core/config -> project root
        project_dir = Path(__file__).parent.parent.parent

    parent_dir = project_dir.parent
    env_file = parent_dir / ".env"

    if env_file.exists():
        load_dotenv(env_file)
    elif (project_dir / ".env").exists():
        load_dotenv(project_dir / ".env")
