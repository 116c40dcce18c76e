from __future__ import annotations

import os
from pathlib import Path

import msgspec

__all__ = ("API_V2_URL", "Config", "decode", "load")

API_V2_URL = "https://www.speedrun.com/api/v2"

SESSION_ENV = "SPEEDRUN_SESSION"
CSRF_ENV = "SPEEDRUN_CSRF"


class Base(msgspec.Struct, forbid_unknown_fields=True): ...


class Credentials(Base):
    session: str = ""
    csrf: str = ""


class Api(Base):
    base_url: str = API_V2_URL
    timeout: float | None = None


class Config(Base):
    credentials: Credentials = msgspec.field(default_factory=Credentials)
    api: Api = msgspec.field(default_factory=Api)


def decode(data: bytes | str) -> Config:
    """Decode a config.toml file."""
    return msgspec.toml.decode(data, type=Config)


def load(path: str | os.PathLike[str] | None = None) -> Config:
    """Load configuration from a TOML file and the environment.

    ``SPEEDRUN_SESSION`` and ``SPEEDRUN_CSRF`` take precedence over the file.

    Args:
        path: Location of the TOML file. When ``None`` only defaults and the
            environment are used.

    Returns:
        Config: The decoded configuration.
    """
    config = decode(Path(path).read_bytes()) if path is not None else Config()
    credentials = msgspec.structs.replace(
        config.credentials,
        session=os.getenv(SESSION_ENV, config.credentials.session),
        csrf=os.getenv(CSRF_ENV, config.credentials.csrf),
    )
    return msgspec.structs.replace(config, credentials=credentials)
