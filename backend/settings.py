import os
from pathlib import Path

# Basic settings helper to read environment configuration.

DEFAULT_LAYOUTS_DIR = Path(__file__).resolve().parent / "layouts"


def _as_bool(val: str | None, default: bool = False) -> bool:
    if val is None:
        return default
    return val.lower() in ("1", "true", "yes", "on")


def _as_float(val: str | None, default: float) -> float:
    if val is None or not val.strip():
        return default
    try:
        return float(val)
    except ValueError:
        return default


class Settings:
    def __init__(self) -> None:
        self.PLAN_ORACLE_ENABLED: bool = _as_bool(os.getenv("PLAN_ORACLE_ENABLED"), False)
        self.PLAN_ORACLE_URL: str | None = os.getenv("PLAN_ORACLE_URL") or None
        self.PLAN_ORACLE_API_KEY: str | None = os.getenv("PLAN_ORACLE_API_KEY") or None
        self.PLAN_ORACLE_TIMEOUT: float = _as_float(os.getenv("PLAN_ORACLE_TIMEOUT"), 30.0)
        self.LAYOUTS_DIR: Path = Path(os.getenv("LAYOUTS_DIR") or DEFAULT_LAYOUTS_DIR)


settings = Settings()
