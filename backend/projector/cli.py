"""CLI for replaying EO logs into projections."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from datetime import timedelta
from pathlib import Path
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from eoapi.config import settings
from eoapi.schemas.projection import ProjectedContent
from projector.access import access_mode
from projector.delta import apply_delta
from projector.replay import replay_entity
from projector.site_index import replay_site_index

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(levelname)-5.5s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

_projection = TypeAdapter(ProjectedContent)


def _load_json(path: Path) -> Any:
    """Read and decode a JSON file, or return None after logging why not."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        logger.error(f"Cannot read {path}: {e}")
    except json.JSONDecodeError as e:
        logger.error(f"Invalid JSON in {path}: {e}")
    return None


def _load_records(path: Path) -> list[Any] | None:
    data = _load_json(path)
    if data is None:
        return None
    if not isinstance(data, list):
        logger.error(f"{path} must contain a JSON list of log records")
        return None
    return data


def _emit(model: BaseModel | None, output: Path | None) -> None:
    text = json.dumps(
        model.model_dump(mode="json") if model is not None else None, indent=2
    )
    if output is None:
        print(text)
    else:
        output.write_text(text + "\n", encoding="utf-8")
        logger.info(f"  -> {output}")


def replay_command(
    events_path: Path,
    content_id: str,
    include_drafts: bool = False,
    meta_path: Path | None = None,
    output: Path | None = None,
) -> int:
    """Replay one entity's log and print its projection.

    Args:
        events_path: JSON file with the entity's records, oldest first.
        content_id: Root content id, e.g. "wiki:operators".
        include_drafts: Emit draft/private content too.
        meta_path: Optional JSON file with a metadata snapshot.
        output: Write here instead of stdout.

    Returns:
        0 on success, 1 on failure.
    """
    records = _load_records(events_path)
    if records is None:
        return 1
    meta_override = None
    if meta_path is not None:
        meta_override = _load_json(meta_path)
        if not isinstance(meta_override, dict):
            logger.error(f"{meta_path} must contain a JSON object")
            return 1

    try:
        projection = replay_entity(
            content_id,
            records,
            mode=access_mode(include_drafts),
            meta_override=meta_override,
            conflict_window=timedelta(seconds=settings.conflict_window_seconds),
        )
    except ValueError as e:
        logger.error(str(e))
        return 1

    if projection is None:
        logger.warning(f"{content_id} is not visible in this build")
    else:
        logger.info(
            f"Replayed {content_id}: {len(records)} records, "
            f"{len(projection.history)} applied"
        )
    _emit(projection, output)
    return 0


def index_command(events_path: Path, output: Path | None = None) -> int:
    """Replay the site index stream and print the catalog."""
    records = _load_records(events_path)
    if records is None:
        return 1
    index = replay_site_index(records)
    logger.info(f"Site index: {len(index.entries)} entries, {len(index.nav)} in nav")
    _emit(index, output)
    return 0


def delta_command(
    snapshot_path: Path, events_path: Path, output: Path | None = None
) -> int:
    """Apply new records to a stored projection and print the result."""
    data = _load_json(snapshot_path)
    records = _load_records(events_path)
    if data is None or records is None:
        return 1
    try:
        snapshot = _projection.validate_python(data)
    except ValidationError as e:
        logger.error(f"{snapshot_path} is not a projection: {e.error_count()} error(s)")
        return 1

    projection = apply_delta(
        snapshot,
        records,
        conflict_window=timedelta(seconds=settings.conflict_window_seconds),
    )
    logger.info(f"Applied {len(records)} records to {snapshot.content_id}")
    _emit(projection, output)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main entry point for CLI."""
    parser = argparse.ArgumentParser(description="EO log replay/projection CLI")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Replay command
    replay_parser = subparsers.add_parser(
        "replay", help="Replay one entity's log into its projection"
    )
    replay_parser.add_argument(
        "events",
        type=Path,
        help="JSON file with the entity's log records (oldest first)",
    )
    replay_parser.add_argument(
        "--content-id",
        required=True,
        help="Root content id (e.g., 'wiki:operators')",
    )
    replay_parser.add_argument(
        "--include-drafts",
        action="store_true",
        default=settings.include_drafts,
        help="Include draft/private content (archived stays hidden)",
    )
    replay_parser.add_argument(
        "--meta",
        type=Path,
        help="JSON file with a side-channel metadata snapshot",
    )
    replay_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write JSON here instead of stdout",
    )

    # Index command
    index_parser = subparsers.add_parser("index", help="Replay the site index stream")
    index_parser.add_argument(
        "events",
        type=Path,
        help="JSON file with the index log records (oldest first)",
    )
    index_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write JSON here instead of stdout",
    )

    # Delta command
    delta_parser = subparsers.add_parser(
        "delta", help="Apply new log records to a stored projection"
    )
    delta_parser.add_argument(
        "snapshot",
        type=Path,
        help="JSON file with a projection produced by 'replay'",
    )
    delta_parser.add_argument(
        "events",
        type=Path,
        help="JSON file with the newer log records (oldest first)",
    )
    delta_parser.add_argument(
        "--output",
        "-o",
        type=Path,
        help="Write JSON here instead of stdout",
    )

    args = parser.parse_args(argv)

    if args.command == "replay":
        return replay_command(
            events_path=args.events,
            content_id=args.content_id,
            include_drafts=args.include_drafts,
            meta_path=args.meta,
            output=args.output,
        )

    elif args.command == "index":
        return index_command(events_path=args.events, output=args.output)

    elif args.command == "delta":
        return delta_command(
            snapshot_path=args.snapshot,
            events_path=args.events,
            output=args.output,
        )

    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
