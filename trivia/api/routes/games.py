from typing import List

from fastapi import APIRouter, Depends, HTTPException

from trivia.core.errors import RoomNotFound
from trivia.dependencies import get_coordinator
from trivia.schemas import RoomSummary, RoomView
from trivia.services.lifecycle import GameCoordinator

router = APIRouter(prefix="/games", tags=["games"])


@router.get("", response_model=List[RoomSummary])
async def list_games(coordinator: GameCoordinator = Depends(get_coordinator)):
    return coordinator.summaries()


@router.get("/{game_id}", response_model=RoomView)
async def game_state(game_id: str, coordinator: GameCoordinator = Depends(get_coordinator)):
    try:
        return coordinator.room_view(game_id)
    except RoomNotFound:
        raise HTTPException(status_code=404, detail="Game not found")
