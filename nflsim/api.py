"""
FastAPI application for the NFL game simulator.

Endpoints:
    GET  /health                         liveness + engine list
    POST /api/simulate                   two stat mappings + config block
    GET  /api/teams                      teams in the preloaded table
    GET  /api/teams/health               defaulted metrics per team
    POST /api/simulate/{home}/{away}     simulate two preloaded teams

The team table is loaded once at startup from NFLSIM_TEAM_STATS (optional).
"""

import logging
from contextlib import asynccontextmanager
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse

from nflsim.core.errors import ConfigurationError, SimulationInputError, SourceDataError
from nflsim.core.model_config import ENGINE_NAMES
from nflsim.schemas import HealthResponse, SimulateBody, SimulationRequest
from nflsim.services.simulator import GameSimulator
from nflsim.services.team_stats import TeamTable, load_team_table, normalize_row
from nflsim.settings import configure_logging, get_default_trials, get_team_stats_path

# Logging setup
configure_logging()
logger = logging.getLogger(__name__)

simulator = GameSimulator()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events"""
    app.state.team_table = None
    path = get_team_stats_path()
    if path:
        try:
            app.state.team_table = load_team_table(path)
        except SourceDataError as exc:
            logger.error("Team table not loaded: %s", exc)
    yield
    logger.info("Shutting down NFL simulator API")


app = FastAPI(
    title="NFL Monte Carlo Simulator",
    description="Score, total and spread distributions from team season stats",
    version="1.0.0",
    lifespan=lifespan,
)


def _team_table() -> TeamTable:
    table: Optional[TeamTable] = getattr(app.state, "team_table", None)
    if table is None:
        raise HTTPException(status_code=503, detail="No team table loaded (set NFLSIM_TEAM_STATS)")
    return table


# ============================================================================
# PUBLIC ENDPOINTS
# ============================================================================

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status="healthy",
        engines=sorted(ENGINE_NAMES),
        default_trials=get_default_trials(),
    )


@app.post("/api/simulate")
def simulate(body: SimulateBody) -> Dict:
    """Simulate a matchup from two raw stat mappings."""
    home = normalize_row({**body.home.stats, "Team": body.home.name}, "Team")
    away = normalize_row({**body.away.stats, "Team": body.away.name}, "Team")
    try:
        summary = simulator.simulate(home, away, body.config)
    except (SimulationInputError, ConfigurationError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    result = summary.to_dict()
    result["data_health"] = {
        body.home.name: list(home.defaulted),
        body.away.name: list(away.defaulted),
    }
    return result


@app.get("/api/teams")
async def list_teams() -> List[str]:
    return _team_table().names()


@app.get("/api/teams/health")
async def team_data_health() -> Dict[str, List[str]]:
    """Teams with metrics that fell back to league defaults."""
    return _team_table().data_health()


@app.post("/api/simulate/{home_team}/{away_team}")
def simulate_loaded(home_team: str, away_team: str, request: Optional[SimulationRequest] = None) -> Dict:
    """Simulate two teams from the preloaded table (fuzzy name matching)."""
    table = _team_table()
    home = table.resolve(home_team)
    away = table.resolve(away_team)
    missing = [name for name, hit in ((home_team, home), (away_team, away)) if hit is None]
    if missing:
        raise HTTPException(status_code=404, detail=f"Team not found: {', '.join(missing)}")
    try:
        summary = simulator.simulate_matchup(table, home, away, request or SimulationRequest())
    except (SimulationInputError, ConfigurationError) as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    return summary.to_dict()


# ============================================================================
# ERROR HANDLERS
# ============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Catch-all exception handler"""
    logger.error("Unhandled exception: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "type": type(exc).__name__},
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
