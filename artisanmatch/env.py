import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


def load_env(env_path: Optional[Path] = None) -> bool:
    """Load .env from the project root if present.

    Existing environment variables win over values in the file, so a
    deployment can always override a checked-in .env.
    Returns True when a file was loaded.
    """
    env_path = env_path or Path.cwd() / ".env"
    if not env_path.exists():
        return False
    return load_dotenv(dotenv_path=env_path, override=False)


def getenv_any(*names: str, default: Optional[str] = None) -> Optional[str]:
    """Return the first non-empty value among several environment variable names.

    The catalog credentials have been published under two naming
    conventions (YUHINKAI_* and OSHI_V2_*); both are accepted.
    """
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return default


def getenv_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}
