import argparse
import os
from dataclasses import replace
from pathlib import Path

from .env import load_env

from . import __version__
from .config import SlugConfig, TableConfig, database_url_from_env
from .database import get_session
from .logger import get_logger
from .repository import SlugRepository, StorageUnavailable
from .resolver import UniquenessBudgetExhausted, UniquenessResolver
from .sanitize import SlugSanitizer
from .updater import SlugUpdater
from .validate import validate


def table_config_from_args(args: argparse.Namespace) -> TableConfig:
    return TableConfig.from_env().override(
        table=args.table,
        id_column=args.id_column,
        title_column=args.title_column,
        slug_column=args.slug_column,
        deleted_column=args.deleted_column,
    )


def slug_config_from_args(args: argparse.Namespace) -> SlugConfig:
    config = SlugConfig.from_env()
    if getattr(args, "fallback_character", None) is not None:
        config = replace(config, fallback_character=args.fallback_character)
    if getattr(args, "max_length", None) is not None:
        config = replace(config, max_length=args.max_length)
    return config


def open_repository(args: argparse.Namespace) -> SlugRepository:
    session = get_session(args.db or database_url_from_env())
    return SlugRepository(session, table_config_from_args(args))


def cmd_check(args: argparse.Namespace) -> None:
    repo = open_repository(args)
    try:
        blank = repo.count_rows_with_blank_slug()
    except StorageUnavailable as e:
        raise SystemExit(str(e))
    finally:
        repo.session.close()
    if blank:
        print(f"Update necessary: {blank} row(s) in {repo.config.table} have a blank {repo.config.slug_column}")
    else:
        print("Nothing to do.")


def cmd_list(args: argparse.Namespace) -> None:
    repo = open_repository(args)
    try:
        rows = repo.fetch_rows_with_blank_slug()
    except StorageUnavailable as e:
        raise SystemExit(str(e))
    finally:
        repo.session.close()
    if not rows:
        print("No rows with a blank slug.")
        return
    print(f"Found {len(rows)} row(s) with a blank slug in {repo.config.table}:\n")
    for row in rows:
        title = row["title"] if row["title"] else "(no title, will be skipped)"
        print(f"ID: {row['id']}  Title: {title}")


def cmd_run(args: argparse.Namespace) -> None:
    logger = get_logger()
    repo = open_repository(args)
    resolver = UniquenessResolver(
        repo.count_active_rows_with_slug_excluding,
        strict=args.strict,
        logger=logger,
    )
    updater = SlugUpdater(
        repo,
        sanitizer=SlugSanitizer(slug_config_from_args(args)),
        resolver=resolver,
        logger=logger,
    )
    try:
        problems = updater.missing_prerequisites()
        if problems:
            print("Database not ready:")
            for p in problems:
                print(f" - {p}")
            raise SystemExit(2)

        if not updater.update_necessary():
            print("Nothing to do.")
            return

        print(updater.description)
        summary = updater.execute_update()
    except (StorageUnavailable, UniquenessBudgetExhausted) as e:
        raise SystemExit(f"Aborted: {e}")
    finally:
        repo.session.close()

    logger.log_metrics_summary()
    print(
        f"Done. scanned={summary['scanned']} updated={summary['updated']} "
        f"suffixed={summary['suffixed']} skipped={summary['skipped_blank_title']}"
    )
    if summary["exhausted"]:
        print(f"[warn] duplicate slugs accepted for rows: {summary['exhausted']}")
    if summary["not_persisted"]:
        print(f"[warn] updates touched no row for ids: {summary['not_persisted']}")


def cmd_verify(args: argparse.Namespace) -> None:
    repo = open_repository(args)
    try:
        errors = validate(repo.session, repo.config)
    except StorageUnavailable as e:
        raise SystemExit(str(e))
    finally:
        repo.session.close()
    if errors:
        print("Invalid:")
        for e in errors:
            print(f" - {e}")
        raise SystemExit(1)
    print("Valid")


def add_common_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--db", help="SQLAlchemy URL or SQLite file (default: $SLUGFILL_DATABASE_URL or sqlite:///data/glossary.db)")
    parser.add_argument("--table", help="Table to repair")
    parser.add_argument("--id-column", help="Primary key column")
    parser.add_argument("--title-column", help="Column the slug is derived from")
    parser.add_argument("--slug-column", help="Slug column to fill")
    parser.add_argument("--deleted-column", help="Soft-delete flag column (empty string: none)")


def main(argv=None):
    # Load .env if present (SLUGFILL_DATABASE_URL, SLUGFILL_TABLE, etc.)
    load_env()
    parser = argparse.ArgumentParser(
        prog="slugfill",
        description="Fill blank slug columns with unique, URL-safe versions of each row's title",
    )
    parser.add_argument("--version", action="store_true", help="Show version")
    parser.add_argument("--log-level", default=None, help="Console log level (default: $SLUGFILL_LOG_LEVEL or INFO)")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files (default: $SLUGFILL_LOG_DIR or logs/)")

    subparsers = parser.add_subparsers(dest="command")
    chk = subparsers.add_parser("check", help="Report whether any row has a blank slug")
    add_common_options(chk)
    chk.set_defaults(func=cmd_check)

    lst = subparsers.add_parser("list", help="List rows with a blank slug")
    add_common_options(lst)
    lst.set_defaults(func=cmd_list)

    run = subparsers.add_parser("run", help="Fill blank slugs once")
    add_common_options(run)
    run.add_argument("--strict", action="store_true", help="Abort instead of accepting a duplicate when all numbered variants are taken")
    run.add_argument("--fallback-character", help="Word separator for generated slugs (default: -)")
    run.add_argument("--max-length", type=int, help="Truncate slugs on a word boundary to this length")
    run.set_defaults(func=cmd_run)

    ver = subparsers.add_parser("verify", help="Check that active rows with a title have unique, non-empty slugs")
    add_common_options(ver)
    ver.set_defaults(func=cmd_verify)

    args = parser.parse_args(argv)

    if args.version:
        print(__version__)
        return

    level = args.log_level or os.getenv("SLUGFILL_LOG_LEVEL", "INFO")
    log_dir = args.log_dir or (Path(os.environ["SLUGFILL_LOG_DIR"]) if os.getenv("SLUGFILL_LOG_DIR") else None)
    get_logger(level=level, log_dir=log_dir)

    if hasattr(args, "func"):
        args.func(args)
        return

    parser.print_help()


if __name__ == "__main__":
    main()
