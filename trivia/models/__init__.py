from trivia.models.archive import ArchivedGame

__all__ = ["ArchivedGame"]
