from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING, Any, Coroutine

import msgspec

from utilities._types import ObsoleteFilter
from utilities.errors import SpeedrunError
from utilities.models import BulkOutcome, LeaderboardFilterParams, RunOutcome, SubcategoryValue

if TYPE_CHECKING:
    from extensions.api_client import APIClient
    from extensions.categories import CategoryResolver
    from utilities._types import RunId, ValueId, VariableId
    from utilities.models import (
        CategoryIds,
        CategoryNames,
        EditParams,
        PutRunSettingsResponse,
        RunSettings,
    )

__all__ = ("RunOrchestrator", "move_selections")

log = getLogger(__name__)


def move_selections(
    values: list[SubcategoryValue] | None,
    old: CategoryIds,
    new: CategoryIds,
) -> list[SubcategoryValue]:
    """Swap a run's subcategory selections from one category to another.

    A selection is dropped when its value is the one ``old`` declares for that
    variable. The new category's selections are then applied per variable, so
    a variable never ends up with two values. Selections for variables that
    ``old`` does not declare are kept as they are.

    Args:
        values: The run's current selections.
        old: The category the run is leaving.
        new: The category the run is joining.

    Returns:
        list[SubcategoryValue]: The selections to store.
    """
    old_map = old.subcategory_map()
    merged: dict[VariableId, ValueId] = {
        v.variable_id: v.value_id for v in values or [] if old_map.get(v.variable_id) != v.value_id
    }
    merged.update(new.subcategory_map())
    return [SubcategoryValue(variable_id=k, value_id=v) for k, v in merged.items()]


class RunOrchestrator:
    """Enumerates, edits and moves runs.

    Remote calls are issued strictly one after another. Bulk operations keep
    going past failures on individual runs and report them per run.
    """

    def __init__(self, api: APIClient, categories: CategoryResolver) -> None:
        self.api = api
        self.categories = categories

    async def run_ids_for_category(
        self,
        category: CategoryNames,
        obsolete: ObsoleteFilter = ObsoleteFilter.SHOWN,
    ) -> list[RunId]:
        """List every run id in a category, across all leaderboard pages.

        Args:
            category (CategoryNames): The category to enumerate.
            obsolete (ObsoleteFilter): Obsolete filter. Defaults to showing obsolete runs so
                that enumeration is exhaustive.

        Returns:
            list[RunId]: Run ids in page order, then leaderboard order within each page.

        Raises:
            SpeedrunError: If the category cannot be resolved or the first page cannot be fetched.
                Failures on later pages are logged and that page is skipped.
        """
        ids = await self.categories.resolve(category)
        return await self._run_ids(ids, obsolete)

    async def _run_ids(self, ids: CategoryIds, obsolete: ObsoleteFilter = ObsoleteFilter.SHOWN) -> list[RunId]:
        filters = self.categories.leaderboard_filters(ids, LeaderboardFilterParams(obsolete=obsolete))

        first = await self.api.get_game_leaderboard(ids.game_id, ids.category_id, filters, 1)
        run_ids = [run.id for run in first.run_list]

        for page in range(2, first.pagination.pages + 1):
            try:
                leaderboard = await self.api.get_game_leaderboard(ids.game_id, ids.category_id, filters, page)
            except SpeedrunError as e:
                log.warning(
                    "Skipping leaderboard page %d/%d of category %s: %s",
                    page,
                    first.pagination.pages,
                    ids.category_id,
                    e,
                )
                continue
            run_ids.extend(run.id for run in leaderboard.run_list)

        log.debug("Found %d runs in category %s.", len(run_ids), ids.category_id)
        return run_ids

    async def _push(self, payload: dict[str, Any], settings: RunSettings) -> PutRunSettingsResponse:
        return await self.api.put_run_settings(settings.merged_into(payload), autoverify=True)

    async def edit_run(self, run_id: RunId, changes: EditParams) -> PutRunSettingsResponse:
        """Change some fields of a run and leave the rest untouched.

        The run's settings are fetched immediately before writing so that only
        the fields set in ``changes`` are overwritten.

        Args:
            run_id (RunId): The run to edit.
            changes (EditParams): Fields to overwrite.

        Returns:
            PutRunSettingsResponse: The server's acknowledgement.
        """
        settings, payload = await self.api.get_run_settings_with_payload(run_id)
        return await self._push(payload, changes.apply(settings))

    async def edit_all_runs_in_category(self, category: CategoryNames, changes: EditParams) -> BulkOutcome:
        """Apply the same edit to every run in a category.

        Raises:
            SpeedrunError: Only if the runs cannot be enumerated.
        """
        run_ids = await self.run_ids_for_category(category)
        result = BulkOutcome()
        for run_id in run_ids:
            result.outcomes.append(await self._attempt(run_id, self.edit_run(run_id, changes)))
        log.info("Edited %d/%d runs in %r.", len(result.succeeded), len(run_ids), category)
        return result

    async def move_run_to_category_with_id(
        self, run_id: RunId, old: CategoryIds, new: CategoryIds
    ) -> PutRunSettingsResponse:
        """Move a run between two resolved categories.

        Args:
            run_id (RunId): The run to move.
            old (CategoryIds): The category the run is currently in.
            new (CategoryIds): The category to move it to.

        Returns:
            PutRunSettingsResponse: The server's acknowledgement.
        """
        settings, payload = await self.api.get_run_settings_with_payload(run_id)
        moved = msgspec.structs.replace(
            settings,
            category_id=new.category_id,
            values=move_selections(settings.values or None, old, new),
        )
        return await self._push(payload, moved)

    async def move_run_to_category(
        self, run_id: RunId, old: CategoryNames, new: CategoryNames
    ) -> PutRunSettingsResponse:
        """Resolve both categories by name and move a run between them."""
        old_ids = await self.categories.resolve(old)
        new_ids = await self.categories.resolve(new)
        return await self.move_run_to_category_with_id(run_id, old_ids, new_ids)

    async def move_all_runs_in_category(self, old: CategoryNames, new: CategoryNames) -> BulkOutcome:
        """Move every run of a category to another category.

        Both categories are resolved once for the whole batch.

        Raises:
            SpeedrunError: If the runs cannot be enumerated or either category cannot be resolved.
        """
        old_ids = await self.categories.resolve(old)
        new_ids = await self.categories.resolve(new)
        run_ids = await self._run_ids(old_ids)

        result = BulkOutcome()
        for run_id in run_ids:
            result.outcomes.append(
                await self._attempt(run_id, self.move_run_to_category_with_id(run_id, old_ids, new_ids))
            )
        log.info("Moved %d/%d runs from %r to %r.", len(result.succeeded), len(run_ids), old, new)
        return result

    @staticmethod
    async def _attempt(run_id: RunId, operation: Coroutine[Any, Any, object]) -> RunOutcome:
        try:
            await operation
        except SpeedrunError as e:
            log.warning("Run %s failed (%s): %s", run_id, e.kind.value, e)
            return RunOutcome(run_id=run_id, ok=False, error=e.kind)
        return RunOutcome(run_id=run_id, ok=True)
