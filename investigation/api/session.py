"""HTTP surface for the presentation layer: one endpoint per engine command.

The live session is held in the process cache and driven by a wall-clock
scheduler that is pumped at the start of every request, so delayed effects
(incident pause, debounced saves) land before the command is applied.
"""
from __future__ import annotations

import logging
import threading
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from investigation.cache import get_cache_value, pop_cache_value
from investigation.constants import STAGE_FAILED, STAGE_SUCCESS
from investigation.core.scheduler import MonotonicScheduler
from investigation.core.session import InvestigationSession, open_session
from investigation.models.outcomes import FailureSummary

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/session", tags=["session"])

_SESSION_CACHE_KEY = "api_session"
_LOCK = threading.RLock()


class IntroduceRequest(BaseModel):
    character_id: str


class OpenConversationRequest(BaseModel):
    character_id: str


class StartAccusationRequest(BaseModel):
    suspect_id: str


class PresentEvidenceRequest(BaseModel):
    clue_id: str


def get_session() -> InvestigationSession:
    return get_cache_value(_SESSION_CACHE_KEY, lambda: open_session(scheduler=MonotonicScheduler()))


def reset_session_cache() -> None:
    """Drop the live session (flushing any pending save)."""
    with _LOCK:
        session = pop_cache_value(_SESSION_CACHE_KEY)
        if session is not None:
            session.close()


def _pumped() -> InvestigationSession:
    session = get_session()
    scheduler = session.scheduler
    if isinstance(scheduler, MonotonicScheduler):
        scheduler.pump()
    return session


def _progress(session: InvestigationSession) -> dict[str, Any]:
    return session.get_progress().model_dump()


@router.get("/state")
def get_state():
    with _LOCK:
        return _pumped().snapshot()


@router.get("/events")
def get_events(since: int = Query(0, ge=0)):
    with _LOCK:
        session = _pumped()
        return {"events": session.events_since(since), "last_seq": session.last_event_seq}


@router.post("/introduce")
def introduce_character(body: IntroduceRequest):
    with _LOCK:
        session = _pumped()
        if body.character_id not in session.bundle.dialogs:
            raise HTTPException(status_code=404, detail=f"Unknown character: {body.character_id}")
        introduced = session.phases.introduce_character(body.character_id)
        return {"introduced": introduced, "progress": _progress(session)}


@router.post("/conversation/open")
def open_conversation(body: OpenConversationRequest):
    with _LOCK:
        session = _pumped()
        if body.character_id not in session.bundle.dialogs:
            raise HTTPException(status_code=404, detail=f"Unknown character: {body.character_id}")
        selection = session.conversations.open_conversation(body.character_id)
        if selection is None:
            raise HTTPException(status_code=409, detail="A conversation is already open")
        return selection.model_dump()


@router.post("/conversation/close")
def close_conversation():
    with _LOCK:
        session = _pumped()
        if not session.conversations.is_open():
            raise HTTPException(status_code=409, detail="No conversation is open")
        requests = session.conversations.close_conversation()
        return {"unlock_requests": requests, "progress": _progress(session)}


def _require_clue(session: InvestigationSession, clue_id: str) -> None:
    if session.bundle.clues.get(clue_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown clue: {clue_id}")


@router.post("/clues/{clue_id}/unlock")
def unlock_clue(clue_id: str):
    with _LOCK:
        session = _pumped()
        _require_clue(session, clue_id)
        if not session.clues.unlock(clue_id):
            raise HTTPException(status_code=409, detail=f"Clue {clue_id} is already {session.clues.get_state(clue_id)}")
        return {"clue_id": clue_id, "state": session.clues.get_state(clue_id)}


@router.post("/clues/{clue_id}/discover")
def discover_clue(clue_id: str):
    with _LOCK:
        session = _pumped()
        _require_clue(session, clue_id)
        if not session.clues.can_interact(clue_id):
            raise HTTPException(
                status_code=409,
                detail=f"Clue {clue_id} cannot be examined now (state: {session.clues.get_state(clue_id)})",
            )
        session.clues.discover(clue_id)
        return {"clue_id": clue_id, "state": session.clues.get_state(clue_id), "progress": _progress(session)}


@router.get("/accusation/eligibility")
def accusation_eligibility():
    with _LOCK:
        session = _pumped()
        eligibility = session.accusation.can_initiate_accusation()
        return {**eligibility.model_dump(), "suspects": session.accusation.available_suspects()}


@router.post("/accusation/start")
def start_accusation(body: StartAccusationRequest):
    with _LOCK:
        session = _pumped()
        if body.suspect_id not in session.accusation.available_suspects():
            raise HTTPException(status_code=404, detail=f"Unknown suspect: {body.suspect_id}")
        statement = session.accusation.start_accusation(body.suspect_id)
        if statement is None:
            eligibility = session.accusation.can_initiate_accusation()
            detail = eligibility.reason or f"Cannot accuse now (stage: {session.accusation.stage})"
            raise HTTPException(status_code=409, detail=detail)
        return {"suspect_id": body.suspect_id, "statement": statement.model_dump()}


@router.post("/accusation/evidence")
def present_evidence(body: PresentEvidenceRequest):
    with _LOCK:
        session = _pumped()
        _require_clue(session, body.clue_id)
        result = session.accusation.present_evidence(body.clue_id)
        if result is None:
            raise HTTPException(status_code=409, detail="Evidence cannot be presented now")
        payload: dict[str, Any] = {"result": result.model_dump(), "stage": session.accusation.stage}
        if result.confrontation_failed:
            payload["game_over"] = session.accusation.is_game_over()
        return payload


@router.post("/accusation/advance")
def advance_statement():
    with _LOCK:
        session = _pumped()
        before = session.accusation.current_statement()
        statement = session.accusation.advance_statement()
        completed = session.accusation.is_confrontation_complete()
        if statement is None and not (before is not None and completed):
            raise HTTPException(status_code=409, detail="Current statement has not been contradicted")
        return {"statement": statement.model_dump() if statement else None, "completed": completed}


@router.post("/accusation/cancel")
def cancel_accusation():
    with _LOCK:
        session = _pumped()
        if not session.accusation.cancel_accusation():
            raise HTTPException(status_code=409, detail="No accusation in progress")
        return {"stage": session.accusation.stage}


@router.post("/accusation/verdict")
def accusation_verdict():
    with _LOCK:
        session = _pumped()
        progress = session.accusation.progress()
        if progress is None:
            raise HTTPException(status_code=409, detail="No confrontation in progress")
        summary = session.accusation.on_confrontation_success(progress.suspect_id)
        if summary is None:
            raise HTTPException(status_code=409, detail="Confrontation is not complete")
        outcome = STAGE_FAILED if isinstance(summary, FailureSummary) else STAGE_SUCCESS
        return {"outcome": outcome, "summary": summary.model_dump()}


@router.post("/reset")
def reset_investigation():
    with _LOCK:
        session = _pumped()
        session.reset()
        return {"progress": _progress(session)}
