"""Experiment endpoints: presets, archetypes, sampling, batches and auto-balancing."""

from __future__ import annotations

import numpy as np
from fastapi import APIRouter, HTTPException

from tactica.api.routers.battles import resolve_config
from tactica.api.schemas import (
    ArchetypeInfo,
    BatchRequest,
    OptimizeRequest,
    OptimizeResponse,
    PresetInfo,
    SampleRequest,
    TrialResponse,
)
from tactica.experiment.archetypes import ARCHETYPES, list_archetypes
from tactica.experiment.balancer import AutoBalancer
from tactica.experiment.presets import get_preset, list_presets
from tactica.experiment.runner import ExperimentRunner
from tactica.experiment.sampling import DEFAULT_SPACE, sample

router = APIRouter()


def _archetype_info(name: str) -> dict:
    arch = ARCHETYPES[name]
    return {
        "name": name,
        "display_name": arch.name,
        "reroll_rate": arch.reroll_rate,
        "level_up_threshold": arch.level_up_threshold,
        "save_gold_threshold": arch.save_gold_threshold,
        "buy_unit_ratio": arch.buy_unit_ratio,
        "risk_tolerance": arch.risk_tolerance,
        "preferred_units": list(arch.preferred_units),
    }


@router.get("/presets", response_model=list[PresetInfo])
def get_presets():
    return [
        {"name": name, "config": get_preset(name).to_dict()}
        for name in list_presets()
    ]


@router.get("/presets/{name}", response_model=PresetInfo)
def get_preset_detail(name: str):
    try:
        config = get_preset(name)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Preset '{name}' not found")
    return {"name": name, "config": config.to_dict()}


@router.get("/archetypes", response_model=list[ArchetypeInfo])
def get_archetypes_list():
    return [_archetype_info(name) for name in list_archetypes()]


@router.get("/archetypes/{name}", response_model=ArchetypeInfo)
def get_archetype_detail(name: str):
    key = name.lower()
    if key not in ARCHETYPES:
        raise HTTPException(status_code=404, detail=f"Archetype '{name}' not found")
    return _archetype_info(key)


@router.get("/parameter-space")
def get_parameter_space():
    return {name: list(bounds) for name, bounds in DEFAULT_SPACE.items()}


@router.post("/sample")
def sample_parameters(req: SampleRequest):
    space = req.space or DEFAULT_SPACE
    try:
        return sample(space, req.n, req.method, np.random.default_rng(req.seed))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/batch", response_model=list[TrialResponse])
def run_batch(req: BatchRequest):
    """Sample and run a small batch synchronously in-process."""
    base = resolve_config(req.config, req.preset)
    try:
        results = ExperimentRunner().sample_and_run(
            req.space or DEFAULT_SPACE, req.n, req.method,
            seeds_per_set=req.seeds_per_set, base_config=base, mode=req.mode,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [r.to_dict() for r in results]


@router.post("/optimize", response_model=OptimizeResponse)
def optimize(req: OptimizeRequest):
    """Run an auto-balance search synchronously in-process."""
    base = resolve_config(req.config, req.preset)
    try:
        balancer = AutoBalancer(
            req.space or DEFAULT_SPACE,
            np.random.default_rng(req.seed),
            base_config=base,
            mode=req.mode,
            seeds_per_set=req.seeds_per_set,
        )
        result = balancer.optimize(iterations=req.iterations)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return result.to_dict()
