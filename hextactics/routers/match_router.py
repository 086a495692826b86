from fastapi import APIRouter, HTTPException

from hextactics.schemas import (
    MatchCreateRequest,
    MatchCreateResponse,
    MatchStateResponse,
    PointerRequest,
    TickRequest,
)
from hextactics.services.match import store


router = APIRouter()


def _not_found(match_id: str) -> HTTPException:
    return HTTPException(status_code=404, detail=f"match {match_id} not found")


@router.post("/", response_model=MatchCreateResponse)
def create_match(req: MatchCreateRequest) -> MatchCreateResponse:
    try:
        return store.create(req)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.get("/{match_id}", response_model=MatchStateResponse)
def get_state(match_id: str) -> MatchStateResponse:
    try:
        return store.state(match_id)
    except KeyError:
        raise _not_found(match_id)


@router.delete("/{match_id}")
def delete_match(match_id: str) -> dict:
    try:
        store.delete(match_id)
    except KeyError:
        raise _not_found(match_id)
    return {"status": "deleted"}


@router.post("/{match_id}/tick", response_model=MatchStateResponse)
def tick(match_id: str, req: TickRequest | None = None) -> MatchStateResponse:
    try:
        return store.tick(match_id, (req or TickRequest()).frames)
    except KeyError:
        raise _not_found(match_id)


@router.post("/{match_id}/pointer", response_model=MatchStateResponse)
def pointer(match_id: str, req: PointerRequest) -> MatchStateResponse:
    try:
        return store.pointer(match_id, req.pos)
    except KeyError:
        raise _not_found(match_id)


@router.post("/{match_id}/primary", response_model=MatchStateResponse)
def primary(match_id: str, req: PointerRequest) -> MatchStateResponse:
    try:
        return store.primary(match_id, req.pos)
    except KeyError:
        raise _not_found(match_id)


@router.post("/{match_id}/secondary", response_model=MatchStateResponse)
def secondary(match_id: str) -> MatchStateResponse:
    try:
        return store.secondary(match_id)
    except KeyError:
        raise _not_found(match_id)


@router.post("/{match_id}/end_turn", response_model=MatchStateResponse)
def end_turn(match_id: str) -> MatchStateResponse:
    try:
        return store.end_turn(match_id)
    except KeyError:
        raise _not_found(match_id)


@router.post("/{match_id}/skip_attack", response_model=MatchStateResponse)
def skip_attack(match_id: str) -> MatchStateResponse:
    try:
        return store.skip_attack(match_id)
    except KeyError:
        raise _not_found(match_id)


@router.post("/{match_id}/cancel_move", response_model=MatchStateResponse)
def cancel_move(match_id: str) -> MatchStateResponse:
    try:
        return store.cancel_move(match_id)
    except KeyError:
        raise _not_found(match_id)


@router.post("/{match_id}/action_completed", response_model=MatchStateResponse)
def action_completed(match_id: str) -> MatchStateResponse:
    try:
        return store.action_completed(match_id)
    except KeyError:
        raise _not_found(match_id)
