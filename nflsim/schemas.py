"""
Pydantic request/response schemas for simulation inputs.

Using explicit schemas instead of raw dicts gives one place where market
lines, trial counts and engine names are validated before any sampling,
and generates accurate OpenAPI docs for the API.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from nflsim.core.errors import ConfigurationError, SimulationInputError
from nflsim.core.model_config import ENGINE_NAMES
from nflsim.services.conditions import GameConditions
from nflsim.settings import get_default_engine, get_default_trials

# Fields whose validation failures are configuration problems, not input problems
_CONFIG_FIELDS = {"trial_count", "engine", "seed", "correlated"}


# ---------------------------------------------------------------------------
# Simulation configuration block
# ---------------------------------------------------------------------------

class GameConditionsModel(BaseModel):
    """Venue and weather for one game."""

    dome: bool = Field(False, description="Indoor game; weather terms ignored")
    wind_mph: float = Field(0.0, ge=0, le=80)
    temperature_f: float = Field(70.0, ge=-40, le=130)
    precipitation: Literal["none", "light_rain", "heavy_rain", "snow"] = "none"

    def to_conditions(self) -> GameConditions:
        return GameConditions(
            dome=self.dome,
            wind_mph=self.wind_mph,
            temperature_f=self.temperature_f,
            precipitation=self.precipitation,
        )


class SimulationRequest(BaseModel):
    """
    Configuration block for one matchup.

    market_spread is quoted from the home side: -3.5 means the home team is
    favoured by 3.5.  Lines left as None skip the matching market output.
    """

    home_field_advantage_points: float = Field(0.0, ge=-10, le=10, description="HFA in points")
    trial_count: int = Field(default_factory=get_default_trials, description="Monte Carlo trials (>= 1)")
    market_total: Optional[float] = Field(None, ge=0, description="Game total line")
    market_spread: Optional[float] = Field(None, description="Home spread, negative = home favoured")
    home_team_total: Optional[float] = Field(None, ge=0)
    away_team_total: Optional[float] = Field(None, ge=0)

    engine: str = Field(default_factory=get_default_engine, description='"gaussian" or "drive"')
    correlated: bool = Field(False, description="Gaussian only: adaptive home/away correlation")
    seed: Optional[int] = Field(None, ge=0, description="RNG seed for reproducible runs")
    conditions: Optional[GameConditionsModel] = None

    @field_validator("trial_count", mode="before")
    @classmethod
    def validate_trial_count(cls, v: Any) -> Any:
        if isinstance(v, bool):
            raise ValueError("trial_count must be an integer, not a boolean")
        if isinstance(v, float) and not v.is_integer():
            raise ValueError(f"trial_count must be a whole number, got {v}")
        return v

    @field_validator("trial_count")
    @classmethod
    def validate_trial_count_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError(f"trial_count must be >= 1, got {v}")
        return v

    @field_validator("engine")
    @classmethod
    def validate_engine(cls, v: str) -> str:
        name = v.strip().lower()
        if name not in ENGINE_NAMES:
            raise ValueError(f"engine must be one of {sorted(ENGINE_NAMES)}, got {v!r}")
        return name

    def game_conditions(self) -> Optional[GameConditions]:
        return self.conditions.to_conditions() if self.conditions else None

    model_config = {
        "json_schema_extra": {
            "example": {
                "home_field_advantage_points": 1.5,
                "trial_count": 10000,
                "market_total": 47.5,
                "market_spread": -3.0,
                "engine": "gaussian",
                "seed": 42,
            }
        }
    }


def parse_request(data: Mapping[str, Any] | None = None, **overrides: Any) -> SimulationRequest:
    """
    Validate a configuration block, raising the package's error kinds.

    ConfigurationError for trial_count / engine / seed problems,
    SimulationInputError for everything else (e.g. a non-numeric line).
    """
    payload = dict(data or {})
    payload.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return SimulationRequest(**payload)
    except ValidationError as exc:
        raise translate_validation_error(exc) from exc


def translate_validation_error(exc: ValidationError) -> Exception:
    """Map a pydantic ValidationError onto ConfigurationError / SimulationInputError."""
    messages = []
    config_problem = False
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()))
        messages.append(f"{loc}: {err.get('msg')}")
        if err.get("loc") and err["loc"][0] in _CONFIG_FIELDS:
            config_problem = True
    message = "; ".join(messages)
    return ConfigurationError(message) if config_problem else SimulationInputError(message)


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------

class TeamPayload(BaseModel):
    """One team's season stats keyed by canonical metric name or a known header alias."""

    name: str = Field(..., min_length=1, max_length=80)
    stats: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("team name cannot be blank")
        return v


class SimulateBody(BaseModel):
    """Payload for POST /api/simulate."""

    home: TeamPayload
    away: TeamPayload
    config: SimulationRequest = Field(default_factory=SimulationRequest)

    model_config = {
        "json_schema_extra": {
            "example": {
                "home": {"name": "Kansas City", "stats": {"off_epa": 0.11, "off_sr": "47%"}},
                "away": {"name": "Buffalo", "stats": {"off_epa": 0.09, "def_epa_allowed": -0.02}},
                "config": {"market_total": 47.5, "market_spread": -2.5, "seed": 7},
            }
        }
    }


class HealthResponse(BaseModel):
    status: str
    engines: List[str]
    default_trials: int
