# backend/models/models.py
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class Player(BaseModel):
    name: str
    card: float = 0


class Room(BaseModel):
    """
    The shared room document.

    Wire shape:
        {
            "name": "Sprint 42",
            "ownerId": "8431_sprint-42",
            "revealed": false,
            "players": {"8431_sprint-42": {"name": "Alice", "card": 5}}
        }
    """

    model_config = ConfigDict(populate_by_name=True)

    name: str
    owner_id: str = Field(alias="ownerId")
    revealed: bool = False
    players: Dict[str, Player] = Field(default_factory=dict)

    def to_document(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class FieldWrite(BaseModel):
    """Replace the value found at ``path`` inside the room document."""

    path: Tuple[str, ...]
    value: Any


class PartialUpdate(BaseModel):
    writes: List[FieldWrite] = Field(default_factory=list)

    def set(self, *path: str, value: Any) -> "PartialUpdate":
        self.writes.append(FieldWrite(path=path, value=value))
        return self


class RoomPhase(str, Enum):
    EMPTY = "empty"
    COLLECTING = "collecting"
    REVEALED = "revealed"


class PlayerView(BaseModel):
    key: str
    name: str
    card: Optional[float] = None  # None while hidden from the viewer
    selected: bool
    is_self: bool = False


class RoomView(BaseModel):
    name: str
    revealed: bool
    phase: RoomPhase
    is_owner: bool
    user_key: Optional[str] = None
    average: str = "?"
    players: List[PlayerView] = Field(default_factory=list)


class CreateRoomRequest(BaseModel):
    id: Optional[str] = None
    name: str
    owner_id: str
