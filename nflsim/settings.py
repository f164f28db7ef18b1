"""
Process-level settings read from the environment (and a local .env file).

Model calibration lives in ModelConfig; this module only holds the knobs an
operator sets per deployment: default trial count, default engine, log level.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

from nflsim.core.errors import ConfigurationError

# Load .env file
load_dotenv()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

DEFAULT_TRIALS = 10_000
DEFAULT_ENGINE = "gaussian"
DEFAULT_HFA_POINTS = 0.0


def get_default_trials() -> int:
    """Trial count used when a request does not set one (NFLSIM_TRIALS)."""
    raw = os.getenv("NFLSIM_TRIALS", str(DEFAULT_TRIALS))
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"NFLSIM_TRIALS must be an integer, got {raw!r}") from None


def get_default_engine() -> str:
    return os.getenv("NFLSIM_ENGINE", DEFAULT_ENGINE).strip().lower()


def get_default_hfa() -> float:
    """Home-field advantage in points (NFLSIM_HFA_POINTS)."""
    raw = os.getenv("NFLSIM_HFA_POINTS", str(DEFAULT_HFA_POINTS))
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"NFLSIM_HFA_POINTS must be a number, got {raw!r}") from None


def configure_logging(level: str | None = None) -> None:
    """Configure root logging for an entry point (CLI or API)."""
    level_name = (level or os.getenv("NFLSIM_LOG_LEVEL", "INFO")).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
    )


def get_team_stats_path() -> str | None:
    """Team stats CSV the API preloads at startup (NFLSIM_TEAM_STATS), if any."""
    return os.getenv("NFLSIM_TEAM_STATS") or None
