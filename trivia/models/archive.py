import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, Column, DateTime
from sqlmodel import Field, SQLModel

from trivia.core.time import utc_now


class ArchivedGame(SQLModel, table=True):
    __tablename__ = "archived_games"

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)
    room_id: str = Field(index=True)
    quiz_id: Optional[str] = None
    quiz_title: Optional[str] = None
    participant_count: int = Field(default=0, ge=0)
    document: dict = Field(sa_column=Column(JSON, nullable=False))
    finished_at: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    archived_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True)))
