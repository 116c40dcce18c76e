from __future__ import annotations

import asyncio
from functools import lru_cache
from http import HTTPStatus
from logging import getLogger
from typing import (
    TYPE_CHECKING,
    Any,
    Coroutine,
    Literal,
    Mapping,
    Type,
    TypeVar,
    overload,
)

import aiohttp
import msgspec
from multidict import MultiDict

from utilities.config import API_V2_URL
from utilities.errors import (
    NotFoundError,
    SpeedrunError,
    TransportError,
    UnauthorizedError,
    parse_retry_after,
)
from utilities.extra import SESSION_COOKIE, normalize_session_id
from utilities.models import (
    ArticleList,
    GameData,
    GameLeaderboard,
    LeaderboardFilterParams,
    PutRunSettingsResponse,
    Run,
    RunSettings,
)

if TYPE_CHECKING:
    from types import TracebackType

    from utilities._types import CategoryId, GameId, RunId

    T = TypeVar("T")
    D = TypeVar("D")
    Response = Coroutine[Any, Any, T]

__all__ = ("APIClient", "Route")

log = getLogger(__name__)

Method = Literal["GET", "POST"]


@lru_cache(maxsize=None)
def get_decoder(model: type[D]) -> msgspec.json.Decoder[D]:
    """Return a cached msgspec decoder for the given model type.

    Args:
        model (type[D]): The type to decode into.

    Returns:
        msgspec.json.Decoder[D]: A decoder for the model.
    """
    return msgspec.json.Decoder(model)


class Route:
    def __init__(self, method: Method, name: str, *, base: str = API_V2_URL) -> None:
        """Initialize a Route for one of the API's named endpoints.

        Args:
            method (Method): HTTP method, ``"GET"`` or ``"POST"``.
            name (str): Endpoint name, e.g. ``"GetGameData"``. Sent verbatim.
            base (str): API base URL without a trailing slash.
        """
        self.method: Method = method
        self.name: str = name
        self.url: str = f"{base.rstrip('/')}/{name}"

    def __repr__(self) -> str:
        return f"<Route {self.method} {self.name}>"


class _SettingsPayload(msgspec.Struct):
    settings: dict[str, Any]


class _PutRunSettingsBody(msgspec.Struct):
    settings: dict[str, Any]
    autoverify: bool


class APIClient:
    """Sends requests to the speedrun.com v2 API.

    Reads are plain GETs. Every POST carries the session cookie, and calls that
    mutate state additionally carry the CSRF token in the body.
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
        """Initialize the APIClient.

        Args:
            session_id (str): ``PHPSESSID`` cookie, either as ``PHPSESSID=<id>`` or the bare id.
                Only needed for authenticated calls.
            csrf_token (str): CSRF token for calls that write. Only needed for authenticated calls.
            base_url (str): API base URL.
            timeout (float | None): Total timeout per request in seconds. ``None`` keeps aiohttp's default.
            session (aiohttp.ClientSession | None): An existing session to use. The client does not close
                sessions it did not create.
        """
        self._session_id = normalize_session_id(session_id)
        self._csrf_token = csrf_token
        self.base_url = base_url
        self._timeout = aiohttp.ClientTimeout(total=timeout) if timeout is not None else None
        self._encoder = msgspec.json.Encoder()
        self.__session = session
        self._owns_session = session is None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def csrf_token(self) -> str:
        return self._csrf_token

    def _get_session(self) -> aiohttp.ClientSession:
        if self.__session is None or self.__session.closed:
            if self._timeout is not None:
                self.__session = aiohttp.ClientSession(timeout=self._timeout)
            else:
                self.__session = aiohttp.ClientSession()
            self._owns_session = True
        return self.__session

    async def close(self) -> None:
        """Close the underlying HTTP session if this client created it."""
        if self._owns_session and self.__session is not None and not self.__session.closed:
            await self.__session.close()

    async def __aenter__(self) -> APIClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    def route(self, method: Method, name: str) -> Route:
        return Route(method, name, base=self.base_url)

    @staticmethod
    def _to_query_str(v: Any) -> str:  # noqa: ANN401
        if isinstance(v, bool):
            return "true" if v else "false"
        return str(v)

    def _flatten_params(self, params: Mapping[str, Any]) -> MultiDict[str]:
        flat_params: MultiDict[str] = MultiDict()
        for k, v in params.items():
            if v is None:
                continue
            elif isinstance(v, list):
                for item in v:
                    flat_params.add(k, self._to_query_str(item))
            else:
                flat_params.add(k, self._to_query_str(v))
        return flat_params

    @staticmethod
    def _error_for_status(route: Route, status: int, retry_after: str | None) -> SpeedrunError:
        if status in (HTTPStatus.UNAUTHORIZED, HTTPStatus.FORBIDDEN):
            return UnauthorizedError(f"{route.name} rejected the session credentials ({status}).")
        if status == HTTPStatus.NOT_FOUND:
            return NotFoundError(f"{route.name} returned 404.")
        return TransportError(
            f"{route.name} did not succeed.",
            status=status,
            retry_after=parse_retry_after(retry_after),
        )

    async def _request(
        self,
        route: Route,
        *,
        response_model: Type[T] | Any = Any,
        params: Mapping[str, Any] | None = None,
        data: msgspec.Struct | Mapping[str, Any] | None = None,
        auth: bool = False,
    ) -> Any:  # noqa: ANN401
        """Send a request to the API and decode the response.

        Args:
            route (Route): The route to call.
            response_model (Type[T] | Any): Type to decode the JSON body into.
            params (Mapping[str, Any] | None): Query parameters. Only used for GET.
            data (msgspec.Struct | Mapping[str, Any] | None): JSON body. Only used for POST.
            auth (bool): Attach the CSRF token to the body.

        Returns:
            Any: The decoded response.

        Raises:
            UnauthorizedError: If the server rejects the credentials.
            NotFoundError: If the server answers 404.
            TransportError: For any other non-200 status, connection problem or undecodable body.
        """
        kwargs: dict[str, Any] = {}
        if route.method == "GET":
            if params:
                kwargs["params"] = self._flatten_params(params)
        else:
            body: dict[str, Any] = dict(msgspec.to_builtins(data)) if data is not None else {}
            if auth:
                body["csrfToken"] = self._csrf_token
            kwargs["data"] = self._encoder.encode(body)
            kwargs["headers"] = {
                "Content-Type": "application/json",
                "Cookie": f"{SESSION_COOKIE}={self._session_id}",
            }

        log.debug("%s %s", route.method, route.name)
        try:
            async with self._get_session().request(route.method, route.url, **kwargs) as resp:
                if resp.status != HTTPStatus.OK:
                    raise self._error_for_status(route, resp.status, resp.headers.get("Retry-After"))
                raw = await resp.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise TransportError(f"{route.name} failed: {e!r}") from e

        try:
            return get_decoder(response_model).decode(raw)
        except msgspec.DecodeError as e:
            raise TransportError(f"{route.name} returned an unexpected payload: {e}") from e

    async def get(self, name: str, params: Mapping[str, Any] | None = None) -> Any | None:  # noqa: ANN401
        """Issue an unauthenticated read against a named endpoint.

        Returns:
            Any | None: The decoded JSON body, or None if the call did not succeed.
        """
        try:
            return await self._request(self.route("GET", name), params=params)
        except SpeedrunError as e:
            log.warning("GET %s failed (%s): %s", name, e.kind.value, e)
            return None

    async def post(
        self, name: str, body: Mapping[str, Any] | None = None, *, auth: bool = False
    ) -> Any | None:  # noqa: ANN401
        """Issue a POST against a named endpoint with the session cookie attached.

        Returns:
            Any | None: The decoded JSON body, or None if the call did not succeed.
        """
        try:
            return await self._request(self.route("POST", name), data=body or {}, auth=auth)
        except SpeedrunError as e:
            log.warning("POST %s failed (%s): %s", name, e.kind.value, e)
            return None

    def get_article_list(self) -> Response[ArticleList]:
        """Fetch the list of news articles.

        Returns:
            Response[ArticleList]: Articles with their games and authors.
        """
        return self._request(self.route("GET", "GetArticleList"), response_model=ArticleList)

    @overload
    def get_game_data(self, *, game_url: str) -> Response[GameData]: ...

    @overload
    def get_game_data(self, *, game_id: GameId) -> Response[GameData]: ...

    def get_game_data(self, *, game_url: str | None = None, game_id: GameId | None = None) -> Response[GameData]:
        """Fetch the full snapshot of a game.

        Args:
            game_url (str | None): The game's URL slug (optional, if game_id is used).
            game_id (GameId | None): The game's internal id (optional, if game_url is used).

        Returns:
            Response[GameData]: The game snapshot.

        Raises:
            ValueError: If neither or both of game_url and game_id are provided.
        """
        if (game_url is None) == (game_id is None):
            raise ValueError("You must provide exactly one of game_url or game_id")
        params = {"gameUrl": game_url} if game_url is not None else {"gameId": game_id}
        return self._request(self.route("GET", "GetGameData"), response_model=GameData, params=params)

    def get_game_data_by_url(self, game_url: str) -> Response[GameData]:
        return self.get_game_data(game_url=game_url)

    def get_game_data_by_id(self, game_id: GameId) -> Response[GameData]:
        return self.get_game_data(game_id=game_id)

    def get_game_leaderboard(
        self,
        game_id: GameId,
        category_id: CategoryId,
        filters: LeaderboardFilterParams | None = None,
        page: int = 1,
    ) -> Response[GameLeaderboard]:
        """Fetch one page of a category's leaderboard.

        Args:
            game_id (GameId): Internal game id.
            category_id (CategoryId): Internal category id.
            filters (LeaderboardFilterParams | None): Subcategory values, obsolete/video filters and so on.
            page (int): 1-based page number.

        Returns:
            Response[GameLeaderboard]: The runs on that page and the pagination metadata.
        """
        params: dict[str, Any] = {"gameId": game_id, "categoryId": category_id}
        if filters is not None:
            params.update(msgspec.to_builtins(filters))
        return self._request(
            self.route("POST", "GetGameLeaderboard2"),
            response_model=GameLeaderboard,
            data={"params": params, "page": page},
        )

    def get_run(self, run_id: RunId) -> Response[Run]:
        """Fetch a single run record."""
        return self._request(self.route("GET", "GetRun"), response_model=Run, params={"runId": run_id})

    async def get_run_settings_with_payload(self, run_id: RunId) -> tuple[RunSettings, dict[str, Any]]:
        """Fetch the editable settings of a run, typed and raw.

        The raw payload keeps every key the server sent, including ones
        ``RunSettings`` does not declare, so that a write-back can preserve them.

        Args:
            run_id (RunId): The run to fetch.

        Returns:
            tuple[RunSettings, dict[str, Any]]: The typed settings and the raw ``settings`` object.

        Raises:
            TransportError: If the settings object does not match ``RunSettings``.
        """
        resp = await self._request(
            self.route("POST", "GetRunSettings"),
            response_model=_SettingsPayload,
            data={"runId": run_id},
        )
        try:
            settings = msgspec.convert(resp.settings, RunSettings)
        except msgspec.ValidationError as e:
            raise TransportError(f"GetRunSettings returned unexpected settings: {e}") from e
        return settings, resp.settings

    async def get_run_settings(self, run_id: RunId) -> RunSettings:
        """Fetch the editable settings of a run."""
        settings, _ = await self.get_run_settings_with_payload(run_id)
        return settings

    def put_run_settings(
        self, settings: RunSettings | Mapping[str, Any], autoverify: bool = False
    ) -> Response[PutRunSettingsResponse]:
        """Overwrite a run's settings. Requires the session id and CSRF token.

        Args:
            settings (RunSettings | Mapping[str, Any]): The complete settings to store, typed or as a raw payload.
            autoverify (bool): Verify the run as part of the edit.

        Returns:
            Response[PutRunSettingsResponse]: The id of the stored run.
        """
        return self._request(
            self.route("POST", "PutRunSettings"),
            response_model=PutRunSettingsResponse,
            data=_PutRunSettingsBody(settings=msgspec.to_builtins(settings), autoverify=autoverify),
            auth=True,
        )
