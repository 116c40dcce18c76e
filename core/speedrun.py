from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Mapping, ParamSpec, TypeVar

import aiohttp

from extensions.api_client import APIClient
from extensions.categories import CategoryResolver
from extensions.runs import RunOrchestrator
from utilities._types import ObsoleteFilter
from utilities.config import API_V2_URL
from utilities.errors import SpeedrunError

if TYPE_CHECKING:
    from types import TracebackType

    from utilities._types import CategoryId, GameId, RunId
    from utilities.config import Config
    from utilities.models import (
        ArticleList,
        BulkOutcome,
        CategoryIds,
        CategoryNames,
        EditParams,
        GameData,
        GameLeaderboard,
        LeaderboardFilterParams,
        Run,
        RunSettings,
        SubcategoryValue,
        Value,
        Variable,
    )

__all__ = ("SpeedrunClient", "absent_on_error")

log = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def absent_on_error(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R | None]]:
    """Turn a ``SpeedrunError`` raised by ``func`` into a ``None`` result.

    The error kind is logged so that failures stay diagnosable even though the
    caller only sees the absence.
    """

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R | None:
        try:
            return await func(*args, **kwargs)
        except SpeedrunError as e:
            log.warning("%s failed (%s): %s", func.__name__, e.kind.value, e)
            return None

    return wrapper


def succeeded(func: Callable[P, Awaitable[object]]) -> Callable[P, Awaitable[bool]]:
    """Like ``absent_on_error`` but report ``True``/``False`` instead of the result."""
    inner = absent_on_error(func)

    @wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> bool:
        return await inner(*args, **kwargs) is not None

    return wrapper


class SpeedrunClient:
    """Client for the speedrun.com v2 API.

    Every method returns ``None`` (or ``False``) when the call chain fails for
    any reason: missing game, category or run, rejected credentials or a
    transport error. Use ``api``, ``categories`` and ``runs`` directly to get
    the typed ``SpeedrunError`` instead.
    """

    def __init__(
        self,
        session_id: str = "",
        csrf_token: str = "",
        *,
        base_url: str = API_V2_URL,
        timeout: float | None = None,
        session: aiohttp.ClientSession | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            session_id: ``PHPSESSID`` cookie or bare id. Leave empty for read-only use.
            csrf_token: CSRF token for edits. Leave empty for read-only use.
            base_url: API base URL.
            timeout: Total timeout per request in seconds.
            session: An existing aiohttp session to share.
        """
        self.api = APIClient(session_id, csrf_token, base_url=base_url, timeout=timeout, session=session)
        self.categories = CategoryResolver(self.api)
        self.runs = RunOrchestrator(self.api, self.categories)

    @classmethod
    def from_config(cls, config: Config, *, session: aiohttp.ClientSession | None = None) -> SpeedrunClient:
        """Build a client from a decoded configuration file."""
        return cls(
            config.credentials.session,
            config.credentials.csrf,
            base_url=config.api.base_url,
            timeout=config.api.timeout,
            session=session,
        )

    async def close(self) -> None:
        await self.api.close()

    async def __aenter__(self) -> SpeedrunClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # Endpoints

    @absent_on_error
    async def get_article_list(self) -> ArticleList:
        return await self.api.get_article_list()

    @absent_on_error
    async def get_game_data_by_url(self, game_url: str) -> GameData:
        return await self.api.get_game_data_by_url(game_url)

    @absent_on_error
    async def get_game_data_by_id(self, game_id: GameId) -> GameData:
        return await self.api.get_game_data_by_id(game_id)

    @absent_on_error
    async def get_game_leaderboard(
        self,
        game_id: GameId,
        category_id: CategoryId,
        filters: LeaderboardFilterParams | None = None,
        page: int = 1,
    ) -> GameLeaderboard:
        return await self.api.get_game_leaderboard(game_id, category_id, filters, page)

    @absent_on_error
    async def get_run(self, run_id: RunId) -> Run:
        return await self.api.get_run(run_id)

    @absent_on_error
    async def get_run_settings(self, run_id: RunId) -> RunSettings:
        return await self.api.get_run_settings(run_id)

    @succeeded
    async def put_run_settings(self, settings: RunSettings | Mapping[str, Any], autoverify: bool = False) -> object:
        return await self.api.put_run_settings(settings, autoverify)

    # Categories

    @absent_on_error
    async def get_category_id(self, game_url: str, category_name: str) -> CategoryId:
        """Get the id of a category in a game, or None if the game or category doesn't exist."""
        return await self.categories.category_id(game_url, category_name)

    @absent_on_error
    async def get_all_variables_in_category(self, game_url: str, category_name: str) -> list[Variable]:
        return await self.categories.variables_for_category(game_url, category_name)

    @absent_on_error
    async def get_all_subcategories_in_category(self, game_url: str, category_name: str) -> list[Value]:
        return await self.categories.subcategory_values_for_category(game_url, category_name)

    @absent_on_error
    async def get_subcategory_variable_and_value(
        self, game_url: str, category_name: str, subcategory_name: str
    ) -> SubcategoryValue:
        return await self.categories.subcategory_selection(game_url, category_name, subcategory_name)

    @absent_on_error
    async def get_category_ids(self, category: CategoryNames) -> CategoryIds:
        """Resolve a category and its subcategories from names to ids."""
        return await self.categories.resolve(category)

    @absent_on_error
    async def get_leaderboard_for_category(
        self,
        category: CategoryNames,
        page: int = 1,
        filters: LeaderboardFilterParams | None = None,
    ) -> GameLeaderboard:
        return await self.categories.leaderboard_for_category(category, page, filters)

    # Runs

    @absent_on_error
    async def get_all_runs_in_category(
        self, category: CategoryNames, obsolete: ObsoleteFilter = ObsoleteFilter.SHOWN
    ) -> list[RunId]:
        """Get the ids of every run in a category, or None if it cannot be enumerated."""
        return await self.runs.run_ids_for_category(category, obsolete)

    @succeeded
    async def edit_run(self, run_id: RunId, changes: EditParams) -> object:
        """Edit some fields of a run. Returns whether the edit was stored."""
        return await self.runs.edit_run(run_id, changes)

    @absent_on_error
    async def edit_all_runs_in_category(self, category: CategoryNames, changes: EditParams) -> BulkOutcome:
        """Edit every run in a category.

        Returns:
            BulkOutcome | None: Per-run results, or None if the runs could not be enumerated.
        """
        return await self.runs.edit_all_runs_in_category(category, changes)

    @succeeded
    async def move_run_to_category(self, run_id: RunId, old: CategoryNames, new: CategoryNames) -> object:
        return await self.runs.move_run_to_category(run_id, old, new)

    @succeeded
    async def move_run_to_category_with_id(self, run_id: RunId, old: CategoryIds, new: CategoryIds) -> object:
        return await self.runs.move_run_to_category_with_id(run_id, old, new)

    @absent_on_error
    async def move_all_runs_in_category(self, old: CategoryNames, new: CategoryNames) -> BulkOutcome:
        """Move every run of one category to another.

        Returns:
            BulkOutcome | None: Per-run results, or None if enumeration or resolution failed.
        """
        return await self.runs.move_all_runs_in_category(old, new)
