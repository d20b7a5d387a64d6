from trivia.core.config import settings
from trivia.services.lifecycle import GameCoordinator

# One registry per process; every route receives it through get_coordinator
coordinator = GameCoordinator.build(settings)


def get_coordinator() -> GameCoordinator:
    return coordinator
