from __future__ import annotations

from enum import IntEnum
from typing import TypeAlias

__all__ = (
    "CategoryId",
    "GameId",
    "ObsoleteFilter",
    "RunId",
    "ValueId",
    "VariableId",
    "VerificationStatus",
    "VideoFilter",
)

GameId: TypeAlias = str
CategoryId: TypeAlias = str
VariableId: TypeAlias = str
ValueId: TypeAlias = str
RunId: TypeAlias = str


class ObsoleteFilter(IntEnum):
    """Leaderboard filter on a run's obsolete state."""

    HIDDEN = 0
    SHOWN = 1
    EXCLUSIVE = 2


class VideoFilter(IntEnum):
    ANY = 0
    PRESENT = 1
    MISSING = 2


class VerificationStatus(IntEnum):
    PENDING = 0
    VERIFIED = 1
    REJECTED = 2
