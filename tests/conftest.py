"""Pytest configuration and fixtures."""

import json
from typing import AsyncGenerator
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from extensions.api_client import APIClient
from extensions.categories import CategoryResolver
from extensions.runs import RunOrchestrator
from tests.factories import GAME_ID, GAME_URL, make_fetched, make_leaderboard, make_settings
from utilities.models import Category, Game, GameData, Value, Variable


@pytest.fixture
def game_data() -> GameData:
    """A small game with two categories, subcategory variables and a level variable."""
    return GameData(
        game=Game(id=GAME_ID, name="Game", url=GAME_URL),
        categories=[
            Category(id="cat1", name="Any%"),
            Category(id="cat2", name="100%"),
            Category(id="cat3", name="Any%"),
        ],
        variables=[
            Variable(id="var1", name="Version", category_id="cat1", is_subcategory=True),
            Variable(id="var2", name="Glitches", category_id="cat1", is_subcategory=True),
            Variable(id="var3", name="Notes", category_id="cat1", is_subcategory=False),
            Variable(id="var4", name="Level Version", category_id=None, level_id="lvl1", is_subcategory=True),
            Variable(id="var5", name="Version", category_id="cat2", is_subcategory=True),
        ],
        values=[
            Value(id="val1", name="NTSC", variable_id="var1"),
            Value(id="val2", name="PAL", variable_id="var1"),
            Value(id="val3", name="No Major Glitches", variable_id="var2"),
            Value(id="val4", name="Glitched", variable_id="var2"),
            Value(id="val5", name="Emulator", variable_id="var3"),
            Value(id="val6", name="Level NTSC", variable_id="var4"),
            Value(id="val7", name="NTSC", variable_id="var5"),
            Value(id="val8", name="PAL", variable_id="var5"),
        ],
    )


@pytest.fixture
def api(game_data: GameData) -> MagicMock:
    """An APIClient double whose endpoint calls are AsyncMocks."""
    mock = MagicMock(spec=APIClient)
    mock.get_game_data_by_url = AsyncMock(return_value=game_data)
    mock.get_game_data_by_id = AsyncMock(return_value=game_data)
    mock.get_game_leaderboard = AsyncMock(return_value=make_leaderboard(["r1"], 1, 1))
    mock.get_run = AsyncMock()
    mock.get_run_settings = AsyncMock(side_effect=lambda run_id: make_settings(run_id))
    mock.get_run_settings_with_payload = AsyncMock(side_effect=lambda run_id: make_fetched(run_id))
    mock.put_run_settings = AsyncMock()
    return mock


@pytest.fixture
def resolver(api: MagicMock) -> CategoryResolver:
    return CategoryResolver(api)


@pytest.fixture
def orchestrator(api: MagicMock, resolver: CategoryResolver) -> RunOrchestrator:
    return RunOrchestrator(api, resolver)


class FakeSpeedrunAPI:
    """In-process stand-in for the v2 API that records every request."""

    def __init__(self) -> None:
        self.requests: list[dict] = []
        self.responses: dict[str, tuple[int, object, dict[str, str]]] = {}

    def respond(self, name: str, payload: object, status: int = 200, headers: dict[str, str] | None = None) -> None:
        self.responses[name] = (status, payload, headers or {})

    async def handle(self, request: web.Request) -> web.Response:
        name = request.match_info["name"]
        raw = await request.read()
        self.requests.append(
            {
                "method": request.method,
                "name": name,
                "query": list(request.query.items()),
                "headers": dict(request.headers),
                "body": json.loads(raw) if raw else None,
            }
        )
        status, payload, headers = self.responses.get(name, (200, {}, {}))
        text = payload if isinstance(payload, str) else json.dumps(payload)
        return web.Response(status=status, text=text, content_type="application/json", headers=headers)


@pytest_asyncio.fixture
async def fake_api() -> AsyncGenerator[tuple[FakeSpeedrunAPI, str], None]:
    """Run a fake API server and yield it with its base URL."""
    fake = FakeSpeedrunAPI()
    app = web.Application()
    app.router.add_route("*", "/api/v2/{name}", fake.handle)
    server = TestServer(app)
    await server.start_server()
    try:
        yield fake, str(server.make_url("/api/v2"))
    finally:
        await server.close()
