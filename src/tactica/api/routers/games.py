"""Full-game session endpoints: economy rounds, battles and market trades."""

from __future__ import annotations

from dataclasses import asdict

from fastapi import APIRouter, HTTPException, Request

from tactica.api.routers.battles import resolve_config
from tactica.api.schemas import (
    CreateGameRequest,
    GameResponse,
    SessionSummary,
    StepRequest,
    TradeRequest,
    TradeResponse,
)
from tactica.api.serializers import serialize_game

router = APIRouter()


def _get(request: Request, session_id: str):
    mgr = request.app.state.session_manager
    try:
        return mgr.get_game(session_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Game '{session_id}' not found")


@router.post("/sessions", response_model=GameResponse)
def create_game(req: CreateGameRequest, request: Request):
    mgr = request.app.state.session_manager
    config = resolve_config(req.config, req.preset)
    try:
        session = mgr.create_game(config=config, name=req.name)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return serialize_game(session)


@router.get("/sessions", response_model=list[SessionSummary])
def list_games(request: Request):
    mgr = request.app.state.session_manager
    return [s for s in mgr.list_sessions() if s["kind"] == "game"]


@router.get("/sessions/{session_id}", response_model=GameResponse)
def get_game(session_id: str, request: Request):
    return serialize_game(_get(request, session_id))


@router.get("/sessions/{session_id}/state")
def get_game_state(session_id: str, request: Request):
    session = _get(request, session_id)
    return session.engine.get_state().to_dict()


@router.get("/sessions/{session_id}/metrics")
def get_game_metrics(session_id: str, request: Request):
    session = _get(request, session_id)
    return {
        "summary": session.collector.summary(),
        "unit_type_win_rates": session.collector.unit_type_win_rates(),
        "imbalances": [asdict(a) for a in session.collector.imbalances()],
        **session.collector.export(),
    }


@router.post("/sessions/{session_id}/step", response_model=GameResponse)
def step_game(session_id: str, req: StepRequest, request: Request):
    mgr = request.app.state.session_manager
    _get(request, session_id)
    return serialize_game(mgr.step_game(session_id, req.n))


@router.post("/sessions/{session_id}/run", response_model=GameResponse)
def run_game(session_id: str, request: Request):
    mgr = request.app.state.session_manager
    _get(request, session_id)
    return serialize_game(mgr.run_game(session_id))


@router.post("/sessions/{session_id}/purchase", response_model=TradeResponse)
def purchase(session_id: str, req: TradeRequest, request: Request):
    engine = _get(request, session_id).engine
    if req.player_id not in engine.players:
        raise HTTPException(status_code=404, detail=f"Player '{req.player_id}' not found")
    ok = engine.purchase(req.player_id, req.item_id)
    return {"success": ok, "gold": engine.players[req.player_id].gold}


@router.post("/sessions/{session_id}/sell", response_model=TradeResponse)
def sell(session_id: str, req: TradeRequest, request: Request):
    """``item_id`` names the player's held item entry."""
    engine = _get(request, session_id).engine
    if req.player_id not in engine.players:
        raise HTTPException(status_code=404, detail=f"Player '{req.player_id}' not found")
    ok = engine.sell(req.player_id, req.item_id)
    return {"success": ok, "gold": engine.players[req.player_id].gold}


@router.delete("/sessions/{session_id}")
def delete_game(session_id: str, request: Request):
    mgr = request.app.state.session_manager
    _get(request, session_id)
    mgr.delete_session(session_id)
    return {"deleted": True}
