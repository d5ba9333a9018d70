from __future__ import annotations

import logging
from dataclasses import asdict
from typing import Annotated, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from api.deps import get_clock, get_preference_manager
from api.schemas import (
    ApplyDefaultsRequest,
    ImportResult,
    PreferenceStatsOut,
    SmartDefaultsOut,
    SmartDefaultsRequest,
)
from core.config import get_settings
from core.services.defaults_context import Clock, DefaultsContext, assemble_context
from core.services.preference_learner import learn_from_save
from core.services.preference_profile import profile_from_document, profile_to_document
from core.services.preference_store import PreferenceManager
from core.services.smart_defaults import SmartDefaults, apply_defaults, compute_smart_defaults, top_reasons
from core.validators import PreferenceDocument, SessionSaveInput

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1")

Manager = Annotated[PreferenceManager, Depends(get_preference_manager)]
ClockDep = Annotated[Clock, Depends(get_clock)]


def _context_from_request(body: SmartDefaultsRequest, manager: PreferenceManager, clock: Clock) -> DefaultsContext:
    profile = manager.get_preferences(body.user_id) if body.user_id else None
    return assemble_context(
        clock,
        workout_type=body.workout_type,
        current_team_id=body.current_team_id,
        teams=[t.model_dump() for t in body.teams],
        players=[p.model_dump() for p in body.players],
        calendar=body.calendar.model_dump() if body.calendar else None,
        history=[h.model_dump() for h in body.history],
        facilities=[f.model_dump() for f in body.facilities],
        profile=profile,
    )


def _compute(body: SmartDefaultsRequest, manager: PreferenceManager, clock: Clock) -> SmartDefaults:
    ctx = _context_from_request(body, manager, clock)
    return compute_smart_defaults(ctx, max_players=get_settings().max_default_players)


def _to_out(defaults: SmartDefaults) -> SmartDefaultsOut:
    payload = defaults.to_dict()
    payload["top_reasons"] = [asdict(r) for r in top_reasons(defaults)]
    return SmartDefaultsOut.model_validate(payload)


@router.get("/health", tags=["system"])
def health():
    return {"status": "ok"}


@router.post("/smart-defaults", response_model=SmartDefaultsOut, tags=["smart-defaults"])
def smart_defaults(body: SmartDefaultsRequest, manager: Manager, clock: ClockDep):
    return _to_out(_compute(body, manager, clock))


@router.post("/smart-defaults/apply", tags=["smart-defaults"])
def smart_defaults_apply(body: ApplyDefaultsRequest, manager: Manager, clock: ClockDep):
    return apply_defaults(body.form, _compute(body.context, manager, clock))


@router.get("/preferences/{user_id}", response_model=PreferenceDocument, tags=["preferences"])
def get_preferences(user_id: str, manager: Manager):
    return profile_to_document(manager.get_or_create_preferences(user_id))


@router.put("/preferences/{user_id}", response_model=PreferenceDocument, tags=["preferences"])
def put_preferences(user_id: str, body: PreferenceDocument, manager: Manager):
    profile = profile_from_document(body.model_dump(mode="json"))
    profile.user_id = user_id
    manager.save_preferences(user_id, profile)
    return profile_to_document(profile)


@router.delete("/preferences/{user_id}", status_code=status.HTTP_204_NO_CONTENT, tags=["preferences"])
def reset_preferences(user_id: str, manager: Manager):
    manager.reset_preferences(user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/preferences/{user_id}/learn", response_model=PreferenceDocument, tags=["preferences"])
def learn_preferences(user_id: str, body: SessionSaveInput, manager: Manager):
    settings = get_settings()
    profile = learn_from_save(
        manager,
        user_id,
        body,
        ema_weight=settings.duration_ema_weight,
        promotion_threshold=settings.intensity_promotion_threshold,
    )
    return profile_to_document(profile)


@router.get("/preferences/{user_id}/export", tags=["preferences"])
def export_preferences(user_id: str, manager: Manager):
    exported: Optional[str] = manager.export_preferences(user_id)
    if exported is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"code": "NOT_FOUND", "message": "No stored preferences"})
    return Response(content=exported, media_type="application/json")


@router.post("/preferences/{user_id}/import", response_model=ImportResult, tags=["preferences"])
async def import_preferences(user_id: str, request: Request, manager: Manager):
    payload = (await request.body()).decode("utf-8", errors="replace")
    if not manager.import_preferences(user_id, payload):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"code": "INVALID_PREFERENCES", "message": "Preference document failed validation"},
        )
    return ImportResult(imported=True)


@router.get("/preferences/{user_id}/stats", response_model=PreferenceStatsOut, tags=["preferences"])
def preference_stats(user_id: str, manager: Manager):
    return asdict(manager.preference_stats(user_id))
