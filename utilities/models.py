"""Wire and domain models for the speedrun.com v2 API.

Response models ignore fields they do not declare, so new server fields never
break decoding. Request models omit unset fields when encoded so that the
server only sees what the caller actually provided.
"""

from __future__ import annotations

from typing import Any, Mapping

import msgspec

from ._types import CategoryId, GameId, ObsoleteFilter, RunId, ValueId, VariableId, VideoFilter
from .errors import ErrorKind

__all__ = (
    "Article",
    "ArticleGame",
    "ArticleList",
    "BulkOutcome",
    "Category",
    "CategoryIds",
    "CategoryNames",
    "EditParams",
    "Game",
    "GameData",
    "GameLeaderboard",
    "LeaderboardFilterParams",
    "Level",
    "Pagination",
    "PlayerSummary",
    "PutRunSettingsResponse",
    "Run",
    "RunOutcome",
    "RunSettings",
    "SubcategoryValue",
    "Time",
    "User",
    "Value",
    "ValueFilter",
    "Variable",
)


class Base(msgspec.Struct, rename="camel", kw_only=True): ...


class FrozenBase(msgspec.Struct, rename="camel", kw_only=True, frozen=True): ...


class Pagination(Base):
    count: int = 0
    page: int = 1
    pages: int = 0
    per: int = 0


class User(Base):
    id: str
    name: str
    url: str = ""
    power_level: int = 0
    area_id: str | None = None


class Article(Base):
    id: str
    slug: str
    title: str
    summary: str = ""
    body: str = ""
    user_id: str | None = None
    game_id: str | None = None
    create_date: int | None = None
    update_date: int | None = None
    publish_date: int | None = None
    publish_target: str | None = None
    publish_tags: list[str] = msgspec.field(default_factory=list)
    cover_image_path: str | None = None
    comments_count: int = 0
    community: bool = False


class ArticleGame(Base):
    id: str
    name: str
    url: str


class ArticleList(Base):
    article_list: list[Article]
    pagination: Pagination
    game_list: list[ArticleGame] = msgspec.field(default_factory=list)
    user_list: list[User] = msgspec.field(default_factory=list)


class Game(Base):
    id: GameId
    name: str
    url: str
    type: str = ""
    loadtimes: bool = False
    milliseconds: bool = msgspec.field(default=False, name="miliseconds")
    igt: bool = False
    verification: bool = False
    auto_verify: bool = False
    require_video: bool = False
    emulator: int = 0
    default_timer: int = 0
    valid_timers: list[int] = msgspec.field(default_factory=list)
    release_date: int | None = None


class Category(Base):
    id: CategoryId
    name: str
    pos: int = 0
    game_id: GameId | None = None
    is_misc: bool = False
    is_per_level: bool = False
    num_player: int = 1
    exact_player: bool = False
    time_direction: int = 0
    enforce_ms: bool = False
    archived: bool = False
    rules: str = ""


class Level(Base):
    id: str
    name: str
    url: str = ""
    pos: int = 0
    archived: bool = False


class Variable(Base):
    """A named axis of classification, scoped to a category or to a level."""

    id: VariableId
    name: str
    url: str = ""
    pos: int = 0
    game_id: GameId | None = None
    category_scope: int = 0
    category_id: CategoryId | None = None
    level_scope: int = 0
    level_id: str | None = None
    is_mandatory: bool = False
    is_subcategory: bool = False
    is_user_defined: bool = False
    is_obsoleting: bool = False
    default_value: ValueId | None = None
    archived: bool = False


class Value(Base):
    id: ValueId
    name: str
    variable_id: VariableId
    url: str = ""
    pos: int = 0
    is_misc: bool = False
    rules: str | None = None
    archived: bool = False


class GameData(Base):
    """Snapshot of a game as returned by ``GetGameData``."""

    game: Game
    categories: list[Category] = msgspec.field(default_factory=list)
    levels: list[Level] = msgspec.field(default_factory=list)
    variables: list[Variable] = msgspec.field(default_factory=list)
    values: list[Value] = msgspec.field(default_factory=list)
    users: list[User] = msgspec.field(default_factory=list)


class Run(Base):
    id: RunId
    game_id: GameId
    category_id: CategoryId | None = None
    level_id: str | None = None
    challenge_id: str | None = None
    time: float | None = None
    time_with_loads: float | None = None
    igt: float | None = None
    enforce_ms: bool | None = None
    platform_id: str | None = None
    emulator: bool = False
    region_id: str | None = None
    video: str | None = None
    comment: str | None = None
    submitted_by_id: str | None = None
    verified: int = 0
    verified_by_id: str | None = None
    reason: str | None = None
    date: int | None = None
    date_submitted: int | None = None
    date_verified: int | None = None
    has_splits: bool = False
    obsolete: bool = False
    place: int | None = None
    player_ids: list[str] = msgspec.field(default_factory=list)
    value_ids: list[ValueId] = msgspec.field(default_factory=list)


class PlayerSummary(Base):
    id: str
    name: str
    url: str = ""
    power_level: int = 0


class GameLeaderboard(Base):
    run_list: list[Run]
    pagination: Pagination
    player_list: list[PlayerSummary] = msgspec.field(default_factory=list)


class Time(Base):
    hour: int = 0
    minute: int = 0
    second: int = 0
    millisecond: int = msgspec.field(default=0, name="milisecond")


class SubcategoryValue(FrozenBase):
    variable_id: VariableId
    value_id: ValueId


class RunSettings(Base):
    """Writable view of a run, read and written by ``GetRunSettings`` / ``PutRunSettings``.

    Fields the server did not send stay ``UNSET`` and are left off the wire.
    An explicit ``None`` is sent as ``null``.
    """

    run_id: RunId
    game_id: GameId
    category_id: CategoryId | None | msgspec.UnsetType = msgspec.UNSET
    level_id: str | None | msgspec.UnsetType = msgspec.UNSET
    player_names: list[str] | None | msgspec.UnsetType = msgspec.UNSET
    time: Time | None | msgspec.UnsetType = msgspec.UNSET
    time_with_loads: Time | None | msgspec.UnsetType = msgspec.UNSET
    igt: Time | None | msgspec.UnsetType = msgspec.UNSET
    platform_id: str | None | msgspec.UnsetType = msgspec.UNSET
    emulator: bool | None | msgspec.UnsetType = msgspec.UNSET
    region_id: str | None | msgspec.UnsetType = msgspec.UNSET
    video: str | None | msgspec.UnsetType = msgspec.UNSET
    comment: str | None | msgspec.UnsetType = msgspec.UNSET
    date: int | None | msgspec.UnsetType = msgspec.UNSET
    values: list[SubcategoryValue] | None | msgspec.UnsetType = msgspec.UNSET

    def merged_into(self, payload: Mapping[str, Any]) -> dict[str, Any]:
        """Overlay these settings onto the raw payload they were read from.

        Keys this model does not declare keep their fetched value.
        """
        return {**payload, **msgspec.to_builtins(self)}


class PutRunSettingsResponse(Base):
    run_id: RunId


class CategoryNames(Base):
    """A category as a human would name it.

    ``subcategory_names`` are value names (e.g. ``"NTSC"``), not variable names.
    """

    game_url: str
    category_name: str
    subcategory_names: list[str] = msgspec.field(default_factory=list)


class CategoryIds(Base):
    """A category resolved to the ids the API works with.

    ``subcategories`` keeps the order of the names it was resolved from.
    """

    game_id: GameId
    category_id: CategoryId
    subcategories: list[SubcategoryValue] = msgspec.field(default_factory=list)

    def subcategory_map(self) -> dict[VariableId, ValueId]:
        """Return the selections as a variable id to value id mapping."""
        return {s.variable_id: s.value_id for s in self.subcategories}


class ValueFilter(Base):
    variable_id: VariableId
    value_ids: list[ValueId]


class LeaderboardFilterParams(Base, omit_defaults=True):
    values: list[ValueFilter] | None = None
    video: VideoFilter | None = None
    verified: bool | None = None
    timer: int | None = None
    obsolete: ObsoleteFilter | None = None
    platform_ids: list[str] | None = None
    region_ids: list[str] | None = None
    date_from: str | None = None
    date_to: str | None = None


class EditParams(Base, omit_defaults=True):
    """Partial run settings. Fields left ``UNSET`` keep their fetched value."""

    game_id: GameId | msgspec.UnsetType = msgspec.UNSET
    category_id: CategoryId | msgspec.UnsetType = msgspec.UNSET
    player_names: list[str] | msgspec.UnsetType = msgspec.UNSET
    time: Time | None | msgspec.UnsetType = msgspec.UNSET
    time_with_loads: Time | None | msgspec.UnsetType = msgspec.UNSET
    igt: Time | None | msgspec.UnsetType = msgspec.UNSET
    platform_id: str | msgspec.UnsetType = msgspec.UNSET
    emulator: bool | msgspec.UnsetType = msgspec.UNSET
    region_id: str | None | msgspec.UnsetType = msgspec.UNSET
    video: str | None | msgspec.UnsetType = msgspec.UNSET
    comment: str | None | msgspec.UnsetType = msgspec.UNSET
    date: int | msgspec.UnsetType = msgspec.UNSET
    values: list[SubcategoryValue] | msgspec.UnsetType = msgspec.UNSET

    def changes(self) -> dict[str, Any]:
        """Return the fields that were set, keyed by attribute name."""
        return {
            name: value
            for name in self.__struct_fields__
            if (value := getattr(self, name)) is not msgspec.UNSET
        }

    def apply(self, settings: RunSettings) -> RunSettings:
        """Return a copy of ``settings`` with every set field overwritten."""
        return msgspec.structs.replace(settings, **self.changes())


class RunOutcome(Base):
    run_id: RunId
    ok: bool
    error: ErrorKind | None = None


class BulkOutcome(Base):
    """Per-run results of a bulk edit or move, in leaderboard order.

    Truthy whenever the runs could be enumerated, regardless of individual failures.
    """

    outcomes: list[RunOutcome] = msgspec.field(default_factory=list)

    def __bool__(self) -> bool:
        return True

    @property
    def succeeded(self) -> list[RunId]:
        return [o.run_id for o in self.outcomes if o.ok]

    @property
    def failed(self) -> list[RunOutcome]:
        return [o for o in self.outcomes if not o.ok]
