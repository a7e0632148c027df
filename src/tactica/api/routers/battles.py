"""Battle session endpoints: create, step, run, snapshot and restore."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request

from tactica.api.schemas import (
    BattleResponse,
    CreateBattleRequest,
    RestoreBattleRequest,
    SessionSummary,
    StepRequest,
)
from tactica.api.serializers import serialize_battle
from tactica.core.config import SimulationConfig
from tactica.experiment.presets import get_preset

router = APIRouter()


def resolve_config(config: dict[str, Any] | None, preset: str | None) -> SimulationConfig | None:
    """Build a config from a preset name or a raw dict; 404/400 on bad input."""
    if preset:
        try:
            return get_preset(preset)
        except KeyError:
            raise HTTPException(status_code=404, detail=f"Preset '{preset}' not found")
    if config:
        try:
            return SimulationConfig.from_dict(config)
        except TypeError as e:
            raise HTTPException(status_code=400, detail=f"Invalid config: {e}")
    return None


def _get(request: Request, session_id: str):
    mgr = request.app.state.session_manager
    try:
        return mgr.get_battle(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Battle '{session_id}' not found")


@router.post("/sessions", response_model=BattleResponse)
def create_battle(req: CreateBattleRequest, request: Request):
    mgr = request.app.state.session_manager
    config = resolve_config(req.config, req.preset)
    try:
        session = mgr.create_battle(req.roster_a, req.roster_b, config=config, name=req.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return serialize_battle(session)


@router.post("/restore", response_model=BattleResponse)
def restore_battle(req: RestoreBattleRequest, request: Request):
    mgr = request.app.state.session_manager
    config = resolve_config(req.config, None)
    try:
        session = mgr.restore_battle(req.state, config=config, name=req.name)
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid battle state: {e}")
    return serialize_battle(session)


@router.get("/sessions", response_model=list[SessionSummary])
def list_battles(request: Request):
    mgr = request.app.state.session_manager
    return [s for s in mgr.list_sessions() if s["kind"] == "battle"]


@router.get("/sessions/{session_id}", response_model=BattleResponse)
def get_battle(session_id: str, request: Request):
    return serialize_battle(_get(request, session_id))


@router.get("/sessions/{session_id}/state")
def get_battle_state(session_id: str, request: Request):
    """Full serialized snapshot, suitable for ``/restore``."""
    session = _get(request, session_id)
    return session.resolver.get_state().to_dict()


@router.get("/sessions/{session_id}/log")
def get_battle_log(session_id: str, request: Request, limit: int = 100, offset: int = 0):
    session = _get(request, session_id)
    log = session.resolver.state.log
    return {
        "total": len(log),
        "entries": [e.to_dict() for e in log[offset:offset + limit]],
    }


@router.post("/sessions/{session_id}/step", response_model=BattleResponse)
def step_battle(session_id: str, req: StepRequest, request: Request):
    mgr = request.app.state.session_manager
    _get(request, session_id)
    return serialize_battle(mgr.step_battle(session_id, req.n))


@router.post("/sessions/{session_id}/run", response_model=BattleResponse)
def run_battle(session_id: str, request: Request):
    mgr = request.app.state.session_manager
    _get(request, session_id)
    return serialize_battle(mgr.run_battle(session_id))


@router.delete("/sessions/{session_id}")
def delete_battle(session_id: str, request: Request):
    mgr = request.app.state.session_manager
    _get(request, session_id)
    mgr.delete_session(session_id)
    return {"deleted": True}
