# ruff: noqa: E402
import sentry_sdk
import truststore

truststore.inject_into_ssl()
import argparse
import asyncio
import contextlib
import logging
import os
import sys
from typing import Iterator, Sequence

from core import SpeedrunClient
from utilities import config
from utilities.extra import seconds_to_time
from utilities.models import BulkOutcome, CategoryNames, EditParams, Time

SENTRY_DSN = os.getenv("SENTRY_DSN")
SPEEDRUN_ENVIRONMENT = os.getenv("SPEEDRUN_ENVIRONMENT")

if SENTRY_DSN:
    sentry_sdk.init(
        dsn=SENTRY_DSN,
        send_default_pii=False,
        traces_sample_rate=1.0,
        enable_logs=True,
        environment=SPEEDRUN_ENVIRONMENT,
    )

log = logging.getLogger("main")


@contextlib.contextmanager
def setup_logging() -> Iterator[None]:
    """Set up logging."""
    log = logging.getLogger()

    try:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter("[{asctime}] [{levelname:<8}] {name}: {message}", "%Y-%m-%d %H:%M:%S", style="{")
        )
        log.addHandler(handler)
        log.setLevel(logging.INFO)
        logging.getLogger("aiohttp").setLevel(logging.WARNING)
        if SPEEDRUN_ENVIRONMENT == "development":
            logging.getLogger("core").setLevel(logging.DEBUG)
            logging.getLogger("extensions").setLevel(logging.DEBUG)
            logging.getLogger("utilities").setLevel(logging.DEBUG)
        yield None
    finally:
        handlers = log.handlers[:]
        for hdlr in handlers:
            hdlr.close()
            log.removeHandler(hdlr)


def run_time(value: str) -> Time:
    """Parse a run time given in seconds, e.g. ``754.56``."""
    try:
        return seconds_to_time(float(value))
    except (ValueError, OverflowError) as e:
        raise argparse.ArgumentTypeError(f"invalid run time: {value!r}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Bulk list, edit and move runs on speedrun.com",
        allow_abbrev=True,
    )
    parser.add_argument(
        "-c",
        "--config",
        type=str,
        help="path to config.toml file",
        default=None,
    )
    commands = parser.add_subparsers(dest="command", required=True)

    def add_category(sub: argparse.ArgumentParser) -> None:
        sub.add_argument("game", help="game URL slug, e.g. celeste")
        sub.add_argument("category", help="category name, e.g. Any%%")
        sub.add_argument(
            "-s", "--sub", dest="subcategories", action="append", default=[], help="subcategory value name"
        )

    runs = commands.add_parser("runs", help="print every run id in a category")
    add_category(runs)

    edit = commands.add_parser("edit", help="edit every run in a category")
    add_category(edit)
    edit.add_argument("--comment", default=None)
    edit.add_argument("--time", type=run_time, default=None, help="run time in seconds, e.g. 754.56")
    edit.add_argument("--video", default=None)
    edit.add_argument("--platform", dest="platform_id", default=None)
    edit.add_argument("--emulator", action=argparse.BooleanOptionalAction, default=None)

    move = commands.add_parser("move", help="move every run in a category to another category")
    add_category(move)
    move.add_argument("--to", dest="to_category", required=True, help="target category name")
    move.add_argument("--to-sub", dest="to_subcategories", action="append", default=[])

    return parser


def edit_params_from_args(args: argparse.Namespace) -> EditParams:
    changes = {
        name: value
        for name in ("comment", "video", "platform_id", "emulator", "time")
        if (value := getattr(args, name)) is not None
    }
    return EditParams(**changes)


def report(outcome: BulkOutcome | None) -> int:
    if outcome is None:
        log.error("Could not enumerate or resolve the category.")
        return 1
    for failed in outcome.failed:
        log.error("Run %s failed: %s", failed.run_id, failed.error.value if failed.error else "unknown")
    log.info("%d succeeded, %d failed.", len(outcome.succeeded), len(outcome.failed))
    return 1 if outcome.failed else 0


async def run(argv: Sequence[str] | None = None) -> int:
    """Run the command line interface and return the exit status."""
    args = build_parser().parse_args(argv)
    settings = config.load(args.config)
    category = CategoryNames(
        game_url=args.game, category_name=args.category, subcategory_names=list(args.subcategories)
    )

    async with SpeedrunClient.from_config(settings) as client:
        if args.command == "runs":
            run_ids = await client.get_all_runs_in_category(category)
            if run_ids is None:
                log.error("Could not enumerate %s / %s.", args.game, args.category)
                return 1
            for run_id in run_ids:
                print(run_id)
            return 0

        if args.command == "edit":
            return report(await client.edit_all_runs_in_category(category, edit_params_from_args(args)))

        target = CategoryNames(
            game_url=args.game, category_name=args.to_category, subcategory_names=list(args.to_subcategories)
        )
        return report(await client.move_all_runs_in_category(category, target))


def cli() -> None:
    with setup_logging():
        sys.exit(asyncio.run(run()))


if __name__ == "__main__":
    cli()
