#!/usr/bin/env python3
"""
CLI for the YouTube channel tracker

Usage:
    vidhunt discover --max-subscribers 1000000 --count 20
    vidhunt collect --mode new --count 50 --derived averageViewsPerVideo shortsCount
    vidhunt collect --mode existing
    vidhunt collect --handle @somechannel --count 0
    vidhunt index
    vidhunt folders
    vidhunt resolve @somechannel

Reads YOUTUBE_API_KEY, DRIVE_FOLDER_ID and GOOGLE_ACCESS_TOKEN from the
environment or a .env file. With --dry-run documents are kept in memory.
"""
import argparse
import json
import logging
import signal
import sys

from google.oauth2.credentials import Credentials

from .config import (
    DEFAULT_CHANNEL_COUNT,
    DEFAULT_DERIVED_FIELDS,
    DEFAULT_MAX_SUBSCRIBERS,
    DEFAULT_SEARCH_KEYWORD,
    DEFAULT_STATIC_FIELDS,
    SUBSCRIBER_TIERS,
    YOUTUBE_CATEGORIES,
    load_settings,
    setup_logging,
)
from .errors import VidHuntError
from .fields import DERIVED_FIELDS, SNAPSHOT_FIELDS, STATIC_FIELDS
from .finder import find_channels
from .pipeline import ChannelCollector, UpdateMode, build_worklist
from .repository import ChannelRepository, RetentionPolicy
from .scheduler import ProcessingScheduler
from .sorting import SORT_OPTIONS, SortOption
from .storage import DriveDocumentStore, MemoryDocumentStore
from .youtube_api import YouTubeService

logger = logging.getLogger(__name__)

DRIVE_SCOPES = ['https://www.googleapis.com/auth/drive.file']


def subscriber_ceiling(value: str) -> int:
    """Accept a plain number or a tier such as 1M, 500K or 1B."""
    tier = SUBSCRIBER_TIERS.get(f"<= {value.upper()}")
    if tier is not None:
        return tier
    try:
        return int(value.replace(',', '').replace('_', ''))
    except ValueError:
        tiers = ', '.join(label[3:] for label in SUBSCRIBER_TIERS)
        raise argparse.ArgumentTypeError(f"expected a number or one of: {tiers}")


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Discover YouTube channels and track their metrics over time"
    )
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON"
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Logging level (default: VIDHUNT_LOG_LEVEL or INFO)"
    )
    parser.add_argument(
        "--env-file",
        default=None,
        help="Path to a .env file"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Keep documents in memory instead of Google Drive"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_search_options(sub):
        sub.add_argument(
            "--max-subscribers",
            type=subscriber_ceiling,
            default=DEFAULT_MAX_SUBSCRIBERS,
            help=f"Inclusive subscriber ceiling, a number or a tier like 1M (default: {DEFAULT_MAX_SUBSCRIBERS:,})"
        )
        sub.add_argument(
            "--sort",
            choices=list(SORT_OPTIONS.values()),
            default=SortOption.VIEW_COUNT,
            help="Candidate ordering: " + ", ".join(f"{v} ({k.lower()})" for k, v in SORT_OPTIONS.items())
        )
        sub.add_argument(
            "--count",
            type=int,
            default=DEFAULT_CHANNEL_COUNT,
            help=f"Number of new channels to find (default: {DEFAULT_CHANNEL_COUNT})"
        )
        sub.add_argument(
            "--category",
            choices=[c for c in YOUTUBE_CATEGORIES if c],
            default=None,
            metavar="ID",
            help="YouTube video category id: " + ", ".join(f"{c}={label}" for c, label in YOUTUBE_CATEGORIES.items() if c)
        )
        sub.add_argument(
            "--keyword",
            default=DEFAULT_SEARCH_KEYWORD,
            help=f"Search keyword (default: {DEFAULT_SEARCH_KEYWORD})"
        )

    # Discover command
    discover_parser = subparsers.add_parser(
        "discover",
        help="Find new channel ids without collecting them"
    )
    add_search_options(discover_parser)

    # Collect command
    collect_parser = subparsers.add_parser(
        "collect",
        help="Collect snapshots for new or already indexed channels"
    )
    add_search_options(collect_parser)
    collect_parser.add_argument(
        "--mode",
        choices=list(UpdateMode.ALL),
        default=UpdateMode.NEW,
        help="new: discover channels; existing: re-measure the index (default: new)"
    )
    collect_parser.add_argument(
        "--handle",
        action="append",
        default=[],
        help="Channel handle to add to the worklist (repeatable)"
    )
    collect_parser.add_argument(
        "--fields",
        nargs="+",
        choices=sorted(set(STATIC_FIELDS) | set(SNAPSHOT_FIELDS)),
        default=sorted(DEFAULT_STATIC_FIELDS),
        metavar="FIELD",
        help="Profile and counter fields to store"
    )
    collect_parser.add_argument(
        "--derived",
        nargs="+",
        choices=sorted(DERIVED_FIELDS),
        default=sorted(DEFAULT_DERIVED_FIELDS),
        metavar="METRIC",
        help="Derived metrics to compute"
    )
    collect_parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between channels (default: VIDHUNT_INTERVAL_SECONDS or 5)"
    )
    collect_parser.add_argument(
        "--retention",
        choices=list(RetentionPolicy.ALL),
        default=None,
        help="Snapshot retention policy (default: VIDHUNT_RETENTION_POLICY or append-all)"
    )

    # Index command
    subparsers.add_parser(
        "index",
        help="Show the channel index"
    )

    # Folders command
    subparsers.add_parser(
        "folders",
        help="List storage folders, to pick a DRIVE_FOLDER_ID"
    )

    # Resolve command
    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Convert a channel handle to a channel id"
    )
    resolve_parser.add_argument(
        "handle",
        help="Channel handle, with or without @"
    )

    return parser.parse_args(argv)


def build_store(settings, args):
    """Drive store from the access token, or an in-memory one for dry runs."""
    if args.dry_run:
        return MemoryDocumentStore(), 'root'
    if not settings.google_access_token:
        raise ValueError("GOOGLE_ACCESS_TOKEN is required (or use --dry-run)")
    credentials = Credentials(token=settings.google_access_token, scopes=DRIVE_SCOPES)
    return DriveDocumentStore(credentials=credentials), settings.drive_folder_id


def cmd_discover(service, repository, args) -> dict:
    """Execute the discover command."""
    known = set(repository.existing_channel_ids())
    channel_ids = find_channels(
        service,
        max_subscribers=args.max_subscribers,
        sort_by=args.sort,
        desired_count=args.count,
        category_id=args.category,
        exclude_ids=known,
        keyword=args.keyword,
        on_progress=logger.info,
    )
    return {
        "command": "discover",
        "excluded": len(known),
        "channels": channel_ids,
    }


def cmd_collect(service, repository, args, interval: float) -> dict:
    """Execute the collect command."""
    worklist = build_worklist(
        service,
        repository,
        mode=args.mode,
        max_subscribers=args.max_subscribers,
        sort_by=args.sort,
        desired_count=args.count,
        category_id=args.category,
        keyword=args.keyword,
        handles=args.handle,
        on_progress=logger.info,
    )

    collector = ChannelCollector(service, repository, args.fields, args.derived)
    scheduler = ProcessingScheduler(collector.collect, interval=interval)

    previous_sigint = signal.signal(signal.SIGINT, lambda signum, frame: scheduler.request_stop())
    previous_sigusr1 = None
    if hasattr(signal, 'SIGUSR1'):
        previous_sigusr1 = signal.signal(
            signal.SIGUSR1, lambda signum, frame: scheduler.request_toggle_pause()
        )
    try:
        results = scheduler.run(worklist)
    finally:
        signal.signal(signal.SIGINT, previous_sigint)
        if previous_sigusr1 is not None:
            signal.signal(signal.SIGUSR1, previous_sigusr1)

    filters = {
        "maxSubscribers": args.max_subscribers,
        "sortBy": args.sort,
        "categoryId": args.category,
        "keyword": args.keyword,
        "channelCount": args.count,
    }
    manifest = collector.write_manifest(worklist, results, args.mode, filters)

    return {
        "command": "collect",
        "mode": args.mode,
        "state": scheduler.state,
        "progress": scheduler.progress(),
        "manifest": manifest,
        "results": [
            {"channelId": r.channel_id, "status": r.status, "message": r.message}
            for r in results
        ],
    }


def cmd_index(repository, args) -> dict:
    """Execute the index command."""
    index = repository.load_index()
    return {"command": "index", **index.to_dict()}


def cmd_folders(store, args) -> dict:
    """Execute the folders command."""
    return {
        "command": "folders",
        "folders": [{"id": f.id, "name": f.name} for f in store.list_containers()],
    }


def cmd_resolve(service, args) -> dict:
    """Execute the resolve command."""
    return {
        "command": "resolve",
        "handle": args.handle,
        "channelId": service.resolve_handle(args.handle),
    }


def print_result(result: dict):
    print(f"\n{'=' * 50}")
    print(f"Command: {result['command']}")
    print(f"{'=' * 50}")

    command = result["command"]
    if command == "discover":
        print(f"Excluded (already indexed): {result['excluded']}")
        print(f"Found {len(result['channels'])} channels:")
        for channel_id in result["channels"]:
            print(f"  {channel_id}")

    elif command == "collect":
        progress = result["progress"]
        print(f"Mode: {result['mode']}")
        print(f"State: {result['state']}")
        print(f"Processed: {progress['processed']}/{progress['total']}")
        print(f"Succeeded: {progress['succeeded']}")
        print(f"Failed: {progress['failed']}")
        if result["manifest"]:
            print(f"Manifest: {result['manifest']}")
        for r in result["results"]:
            if r["status"] != "success":
                print(f"  [{r['status']}] {r['channelId']}: {r['message']}")

    elif command == "index":
        print(f"Channels: {result['totalChannels']}")
        print(f"Last updated: {result['lastUpdated']}")
        for entry in result["channels"]:
            print(f"  {entry['channelId']}  {entry['title']}  ({entry['totalSnapshots']} snapshots)")

    elif command == "folders":
        print(f"Found {len(result['folders'])} folders:")
        for folder in result["folders"]:
            print(f"  {folder['id']}  {folder['name']}")

    elif command == "resolve":
        print(f"{result['handle']} -> {result['channelId']}")


def main(argv=None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    settings = load_settings(args.env_file)
    setup_logging(args.log_level or settings.log_level)

    try:
        if args.command == "resolve":
            result = cmd_resolve(YouTubeService(settings.youtube_api_key), args)
        else:
            store, root_id = build_store(settings, args)
            retention = getattr(args, 'retention', None) or settings.retention_policy
            repository = ChannelRepository(store, root_id, retention_policy=retention)

            if args.command == "index":
                result = cmd_index(repository, args)
            elif args.command == "folders":
                result = cmd_folders(store, args)
            elif args.command == "discover":
                result = cmd_discover(YouTubeService(settings.youtube_api_key), repository, args)
            elif args.command == "collect":
                interval = args.interval if args.interval is not None else settings.interval_seconds
                result = cmd_collect(YouTubeService(settings.youtube_api_key), repository, args, interval)
            else:
                logger.error(f"Unknown command: {args.command}")
                return 1
    except (VidHuntError, ValueError) as e:
        logger.error(f"{args.command} failed: {e}")
        return 1

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        print_result(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
