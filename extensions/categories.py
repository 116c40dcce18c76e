from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

import msgspec

from utilities.errors import NotFoundError
from utilities.models import (
    CategoryIds,
    GameLeaderboard,
    LeaderboardFilterParams,
    SubcategoryValue,
    ValueFilter,
)

if TYPE_CHECKING:
    from extensions.api_client import APIClient
    from utilities._types import CategoryId
    from utilities.models import CategoryNames, GameData, Value, Variable

__all__ = ("CategoryResolver",)

log = getLogger(__name__)


class CategoryResolver:
    """Maps human-readable game, category and subcategory names to API ids.

    Every lookup fetches a fresh game snapshot. Nothing is cached between calls,
    so resolving a category with N subcategory names costs 2 + 3N fetches:
    two for the game and category, then three per subcategory name.
    All methods raise ``SpeedrunError`` subclasses instead of returning None.
    """

    def __init__(self, api: APIClient) -> None:
        self.api = api

    @staticmethod
    def _find_category_id(game: GameData, category_name: str) -> CategoryId:
        # First exact match wins. Duplicate names within a game are not detected.
        for category in game.categories:
            if category.name == category_name:
                return category.id
        raise NotFoundError(f"Category {category_name!r} not found in game {game.game.url!r}.")

    async def category_id(self, game_url: str, category_name: str) -> CategoryId:
        """Resolve a category name to its id.

        Args:
            game_url (str): The game's URL slug.
            category_name (str): Exact category name.

        Returns:
            CategoryId: The id of the first category with that name.

        Raises:
            NotFoundError: If the game or the category does not exist.
        """
        game = await self.api.get_game_data_by_url(game_url)
        return self._find_category_id(game, category_name)

    async def variables_for_category(self, game_url: str, category_name: str) -> list[Variable]:
        """Return every variable scoped to the named category."""
        game = await self.api.get_game_data_by_url(game_url)
        category_id = await self.category_id(game_url, category_name)
        return [variable for variable in game.variables if variable.category_id == category_id]

    async def subcategory_values_for_category(self, game_url: str, category_name: str) -> list[Value]:
        """Return the values of every subcategory variable of the named category.

        Args:
            game_url (str): The game's URL slug.
            category_name (str): Exact category name.

        Returns:
            list[Value]: Values in snapshot order.
        """
        variables = await self.variables_for_category(game_url, category_name)
        subcategory_ids = {variable.id for variable in variables if variable.is_subcategory}
        game = await self.api.get_game_data_by_url(game_url)
        return [value for value in game.values if value.variable_id in subcategory_ids]

    async def subcategory_selection(self, game_url: str, category_name: str, value_name: str) -> SubcategoryValue:
        """Resolve a subcategory value name to its variable and value ids.

        Raises:
            NotFoundError: If the game, the category or the value does not exist.
        """
        values = await self.subcategory_values_for_category(game_url, category_name)
        for value in values:
            if value.name == value_name:
                return SubcategoryValue(variable_id=value.variable_id, value_id=value.id)
        raise NotFoundError(f"Subcategory {value_name!r} not found in {game_url!r} / {category_name!r}.")

    async def resolve(self, category: CategoryNames) -> CategoryIds:
        """Resolve a name-based category reference completely.

        Subcategories are returned in the order their names were given. If any
        stage fails the whole resolution fails; no partial result is returned.

        Args:
            category (CategoryNames): The reference to resolve.

        Returns:
            CategoryIds: Game id, category id and subcategory selections.
        """
        game = await self.api.get_game_data_by_url(category.game_url)
        category_id = await self.category_id(category.game_url, category.category_name)
        subcategories = []
        for name in category.subcategory_names:
            selection = await self.subcategory_selection(category.game_url, category.category_name, name)
            subcategories.append(selection)
        log.debug("Resolved %r to %s/%s.", category, game.game.id, category_id)
        return CategoryIds(game_id=game.game.id, category_id=category_id, subcategories=subcategories)

    @staticmethod
    def leaderboard_filters(
        category: CategoryIds, base: LeaderboardFilterParams | None = None
    ) -> LeaderboardFilterParams:
        """Build leaderboard filters that select exactly the category's subcategories.

        Args:
            category (CategoryIds): The resolved category.
            base (LeaderboardFilterParams | None): Other filters to keep. Its ``values`` are replaced.
        """
        values = [ValueFilter(variable_id=s.variable_id, value_ids=[s.value_id]) for s in category.subcategories]
        if base is None:
            return LeaderboardFilterParams(values=values)
        return msgspec.structs.replace(base, values=values)

    async def leaderboard_for_category(
        self,
        category: CategoryNames,
        page: int = 1,
        filters: LeaderboardFilterParams | None = None,
    ) -> GameLeaderboard:
        """Resolve a category by name and fetch one page of its leaderboard."""
        ids = await self.resolve(category)
        return await self.api.get_game_leaderboard(
            ids.game_id, ids.category_id, self.leaderboard_filters(ids, filters), page
        )
