from fastapi import APIRouter, Depends

from trivia.core.time import epoch_ms
from trivia.dependencies import get_coordinator
from trivia.services.lifecycle import GameCoordinator

router = APIRouter()


@router.get("/health")
async def health(coordinator: GameCoordinator = Depends(get_coordinator)):
    return {"status": "ok", "open_games": len(coordinator.registry), "time": epoch_ms()}
