"""Tests for the public client and its None/False-on-failure contract."""

from unittest.mock import AsyncMock

import pytest

from core import SpeedrunClient, absent_on_error
from tests.factories import GAME_ID, GAME_URL, make_fetched, make_leaderboard, make_settings
from utilities.config import Config, decode
from utilities.errors import NotFoundError, TransportError, UnauthorizedError
from utilities.models import CategoryIds, CategoryNames, EditParams, PutRunSettingsResponse, SubcategoryValue

ANY_NTSC = CategoryNames(game_url=GAME_URL, category_name="Any%", subcategory_names=["NTSC"])


@pytest.fixture
def client(api) -> SpeedrunClient:
    client = SpeedrunClient("PHPSESSID=abc", "tok")
    client.api = api
    client.categories.api = api
    client.runs.api = api
    return client


@pytest.mark.asyncio
async def test_absent_on_error_passes_results_through():
    @absent_on_error
    async def ok() -> int:
        return 1

    assert await ok() == 1


@pytest.mark.asyncio
async def test_absent_on_error_swallows_only_speedrun_errors():
    @absent_on_error
    async def missing() -> int:
        raise NotFoundError("gone")

    @absent_on_error
    async def broken() -> int:
        raise RuntimeError("bug")

    assert await missing() is None
    with pytest.raises(RuntimeError):
        await broken()


def test_credentials_are_normalized():
    client = SpeedrunClient("PHPSESSID=abc", "tok")
    assert client.api.session_id == "abc"
    assert client.api.csrf_token == "tok"


def test_from_config():
    config = decode(
        """
        [credentials]
        session = "PHPSESSID=xyz"
        csrf = "c"

        [api]
        base_url = "http://localhost:9000/api/v2"
        timeout = 5.0
        """
    )

    client = SpeedrunClient.from_config(config)

    assert client.api.session_id == "xyz"
    assert client.api.csrf_token == "c"
    assert client.api.base_url == "http://localhost:9000/api/v2"


def test_from_default_config():
    client = SpeedrunClient.from_config(Config())
    assert client.api.session_id == ""
    assert client.api.base_url == "https://www.speedrun.com/api/v2"


@pytest.mark.asyncio
async def test_get_category_id(client):
    assert await client.get_category_id(GAME_URL, "Any%") == "cat1"
    assert await client.get_category_id(GAME_URL, "Low%") is None


@pytest.mark.asyncio
async def test_get_category_id_unknown_game(client, api):
    api.get_game_data_by_url.side_effect = NotFoundError("GetGameData returned 404.")
    assert await client.get_category_id("nope", "Any%") is None


@pytest.mark.asyncio
async def test_subcategory_lookups(client):
    variables = await client.get_all_variables_in_category(GAME_URL, "Any%")
    values = await client.get_all_subcategories_in_category(GAME_URL, "Any%")
    selection = await client.get_subcategory_variable_and_value(GAME_URL, "Any%", "NTSC")

    assert variables is not None and len(variables) == 3
    assert values is not None and [v.name for v in values] == ["NTSC", "PAL", "No Major Glitches", "Glitched"]
    assert selection == SubcategoryValue(variable_id="var1", value_id="val1")
    assert await client.get_subcategory_variable_and_value(GAME_URL, "Any%", "SECAM") is None


@pytest.mark.asyncio
async def test_get_category_ids(client):
    ids = await client.get_category_ids(ANY_NTSC)
    assert ids == CategoryIds(
        game_id=GAME_ID, category_id="cat1", subcategories=[SubcategoryValue(variable_id="var1", value_id="val1")]
    )
    bad = CategoryNames(game_url=GAME_URL, category_name="Any%", subcategory_names=["NTSC", "SECAM"])
    assert await client.get_category_ids(bad) is None


@pytest.mark.asyncio
async def test_get_all_runs_in_category(client, api):
    api.get_game_leaderboard.side_effect = [make_leaderboard(["r1"], 1, 2), make_leaderboard(["r2"], 2, 2)]
    assert await client.get_all_runs_in_category(ANY_NTSC) == ["r1", "r2"]


@pytest.mark.asyncio
async def test_get_all_runs_in_category_first_page_fails(client, api):
    api.get_game_leaderboard.side_effect = TransportError("boom", status=503)
    assert await client.get_all_runs_in_category(ANY_NTSC) is None


@pytest.mark.asyncio
async def test_get_leaderboard_for_category(client, api):
    leaderboard = await client.get_leaderboard_for_category(ANY_NTSC)
    assert leaderboard is not None
    assert [run.id for run in leaderboard.run_list] == ["r1"]


@pytest.mark.asyncio
async def test_edit_run_reports_success(client, api):
    api.put_run_settings.return_value = PutRunSettingsResponse(run_id="r1")
    assert await client.edit_run("r1", EditParams(comment="new")) is True


@pytest.mark.asyncio
async def test_edit_run_reports_failure(client, api):
    api.get_run_settings_with_payload.side_effect = NotFoundError("GetRunSettings returned 404.")
    assert await client.edit_run("r1", EditParams(comment="new")) is False

    api.get_run_settings_with_payload.side_effect = None
    api.get_run_settings_with_payload.return_value = make_fetched("r1")
    api.put_run_settings.side_effect = UnauthorizedError("PutRunSettings rejected the session credentials (403).")
    assert await client.edit_run("r1", EditParams(comment="new")) is False


@pytest.mark.asyncio
async def test_edit_all_runs_in_category(client, api):
    api.get_game_leaderboard.return_value = make_leaderboard(["r1", "r2"], 1, 1)
    api.put_run_settings.side_effect = [PutRunSettingsResponse(run_id="r1"), TransportError("boom", status=500)]

    outcome = await client.edit_all_runs_in_category(ANY_NTSC, EditParams(comment="x"))

    assert outcome
    assert outcome.succeeded == ["r1"]
    assert [o.run_id for o in outcome.failed] == ["r2"]


@pytest.mark.asyncio
async def test_edit_all_runs_in_category_enumeration_fails(client, api):
    api.get_game_leaderboard.side_effect = TransportError("boom", status=500)
    assert await client.edit_all_runs_in_category(ANY_NTSC, EditParams(comment="x")) is None


@pytest.mark.asyncio
async def test_move_run_to_category(client, api):
    target = CategoryNames(game_url=GAME_URL, category_name="100%", subcategory_names=["PAL"])
    assert await client.move_run_to_category("r1", ANY_NTSC, target) is True
    assert api.put_run_settings.await_args.args[0].category_id == "cat2"

    unknown = CategoryNames(game_url=GAME_URL, category_name="Low%")
    assert await client.move_run_to_category("r1", ANY_NTSC, unknown) is False


@pytest.mark.asyncio
async def test_move_run_to_category_with_id(client, api):
    old = CategoryIds(
        game_id=GAME_ID, category_id="cat1", subcategories=[SubcategoryValue(variable_id="var1", value_id="val1")]
    )
    new = CategoryIds(
        game_id=GAME_ID, category_id="cat2", subcategories=[SubcategoryValue(variable_id="var5", value_id="val8")]
    )

    assert await client.move_run_to_category_with_id("r1", old, new) is True
    assert api.put_run_settings.await_args.args[0].values == [SubcategoryValue(variable_id="var5", value_id="val8")]


@pytest.mark.asyncio
async def test_move_all_runs_in_category(client, api):
    api.get_game_leaderboard.return_value = make_leaderboard(["r1", "r2"], 1, 1)
    target = CategoryNames(game_url=GAME_URL, category_name="100%", subcategory_names=["NTSC"])

    outcome = await client.move_all_runs_in_category(ANY_NTSC, target)

    assert outcome is not None
    assert outcome.succeeded == ["r1", "r2"]


@pytest.mark.asyncio
async def test_endpoint_passthroughs(client, api):
    api.get_run.return_value = make_leaderboard(["r1"], 1, 1).run_list[0]
    api.get_article_list = AsyncMock(side_effect=TransportError("boom", status=500))

    assert (await client.get_run("r1")).id == "r1"
    assert (await client.get_game_data_by_id(GAME_ID)).game.id == GAME_ID
    assert (await client.get_game_data_by_url(GAME_URL)).game.url == GAME_URL
    assert (await client.get_run_settings("r1")).run_id == "r1"
    assert await client.get_article_list() is None
    assert await client.put_run_settings(make_settings("r1")) is True
