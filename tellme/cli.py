from __future__ import annotations

import argparse
import json
import logging
import sys
import textwrap
import time
from collections.abc import Callable, Sequence

from tellme.core.content import ContentUnit
from tellme.core.ingest import KeywordQualityPolicy, SuitableLengthPolicy, run_ingest
from tellme.core.service import ContentService, classify_reading
from tellme.core.settings import Settings
from tellme.core.storage import DB, open_db
from tellme.core.topics import Topic, parse_topic
from tellme.providers.wikipedia import WikipediaClient

logger = logging.getLogger(__name__)

NO_CONTENT_MESSAGE = "No content available. Run `tellme fetch` first."


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _format_unit(unit: ContentUnit, width: int = 80) -> str:
    paragraphs = [textwrap.fill(p, width=width) for p in unit.body.split("\n\n")]
    header = f"[{unit.topic.display_name}] {unit.title} ({unit.word_count} words)"
    return "\n".join([header, "=" * min(len(header), width), "", "\n\n".join(paragraphs), "", unit.source_url])


def read_loop(
    service: ContentService,
    *,
    prompt: Callable[[str], str] = input,
    out: Callable[[str], None] = print,
    clock: Callable[[], float] = time.monotonic,
) -> int:
    """Show units until the reader quits. Returns the number of units shown.

    Enter moves on (counts as read after 3 seconds), "s" skips, "q" quits
    (so do Ctrl-C and end of input).
    The unit on screen when quitting is recorded too.
    """
    shown = 0
    while True:
        unit = service.next_content()
        if unit is None:
            out(NO_CONTENT_MESSAGE)
            return shown

        out(_format_unit(unit))
        shown += 1
        started = clock()
        try:
            answer = prompt("\n[Enter] next  [s] skip  [q] quit > ").strip().lower()
        except (EOFError, KeyboardInterrupt):
            answer = "q"
        elapsed = int(clock() - started)

        interaction = classify_reading(unit.id, fully_displayed=answer != "s", reading_time_seconds=elapsed)
        service.record(interaction)

        if answer == "q":
            out("Thanks for using tellme! Keep learning!")
            return shown


def cmd_fetch(args: argparse.Namespace, settings: Settings) -> int:
    db = open_db(settings.db_path)
    try:
        existing = db.content_count()
        print(f"Current database contains {existing} content units")
        if existing > 0 and not args.yes:
            answer = input("Database already contains content. Add more? (y/N) ")
            if not answer.strip().lower().startswith("y"):
                print("Cancelled.")
                return 0

        topics = [parse_topic(t) for t in args.topic] if args.topic else list(Topic.all())
        policy = KeywordQualityPolicy() if args.strict else SuitableLengthPolicy()
        with WikipediaClient(settings.wikipedia_api_url, settings.wikipedia_user_agent) as client:
            results = run_ingest(
                client,
                db,
                topics,
                args.units or settings.units_per_topic,
                policy=policy,
                request_delay=settings.request_delay,
            )

        for result in results:
            print(f"{result.topic.display_name}: {result.units_added} units")
        print(f"Total content units in database: {db.content_count()}")
        if not db.has_content_for_all_topics():
            print("Some topics may have limited content")
        return 0
    finally:
        db.close()


def cmd_read(args: argparse.Namespace, settings: Settings) -> int:
    service = ContentService(open_db(settings.db_path))
    try:
        read_loop(service)
        return 0
    finally:
        service.close()


def cmd_stats(args: argparse.Namespace, settings: Settings) -> int:
    db: DB = open_db(settings.db_path)
    try:
        print(json.dumps(db.get_stats(), indent=2))
        return 0
    finally:
        db.close()


def cmd_serve(args: argparse.Namespace, settings: Settings) -> int:
    import uvicorn

    uvicorn.run(
        "tellme.main:app",
        host=args.host or settings.web_host,
        port=args.port or settings.web_port,
        log_level=settings.log_level.lower(),
    )
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="tellme", description="Short encyclopedia reads, one at a time")
    sub = parser.add_subparsers(dest="command", required=True)

    fetch = sub.add_parser("fetch", help="Download Wikipedia articles into the local database.")
    fetch.add_argument(
        "--topic",
        action="append",
        choices=[t.value for t in Topic.all()],
        help="Topic id to fetch (repeatable, default: all).",
    )
    fetch.add_argument("--units", type=int, help="Units per topic (default: UNITS_PER_TOPIC).")
    fetch.add_argument("--strict", action="store_true", help="Filter units with the keyword quality policy.")
    fetch.add_argument("-y", "--yes", action="store_true", help="Add to a non-empty database without asking.")
    fetch.set_defaults(func=cmd_fetch)

    read = sub.add_parser("read", help="Read in the terminal.")
    read.set_defaults(func=cmd_read)

    stats = sub.add_parser("stats", help="Print content and interaction totals.")
    stats.set_defaults(func=cmd_stats)

    serve = sub.add_parser("serve", help="Run the web reader.")
    serve.add_argument("--host", help="Bind address (default: WEB_HOST).")
    serve.add_argument("--port", type=int, help="Port (default: WEB_PORT).")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = Settings.from_env()
    _configure_logging(settings.log_level)
    try:
        return args.func(args, settings)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
