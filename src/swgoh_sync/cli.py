"""CLI entrypoint for profile lookup, admin statistics and refresh jobs."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

from swgoh_sync.keys import normalize_player_key
from swgoh_sync.logging_setup import configure_logging
from swgoh_sync.profile_data.admin import since_oldest_update
from swgoh_sync.profile_data.config import RefreshConfig
from swgoh_sync.profile_data.durable_store import PlayerDataStore
from swgoh_sync.profile_data.errors import ProfileDataError, ProfileUnavailableError
from swgoh_sync.profile_data.repo import PlayerDataRepository
from swgoh_sync.profile_data.scheduler import FileTaskQueue
from swgoh_sync.profile_data.service import ProfileService
from swgoh_sync.profile_data.volatile_cache import VolatileCache
from swgoh_sync.settings import Settings
from swgoh_sync.source_client import HttpProfileSource, ProfileSource
from swgoh_sync.time_utils import iso_z


def build_service(settings: Settings, *, source: ProfileSource) -> ProfileService:
    """Wire stores and queue from settings around an already opened source."""
    data_dir = Path(settings.data_dir).expanduser()
    repo = PlayerDataRepository(
        store=PlayerDataStore(data_dir),
        cache=VolatileCache(ttl_seconds=settings.volatile_ttl_s),
    )
    return ProfileService(
        repo=repo,
        source=source,
        queue=FileTaskQueue(data_dir),
        config=RefreshConfig.from_settings(settings),
    )


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, sort_keys=True, indent=2))


def _cmd_profile(args: argparse.Namespace, service: ProfileService) -> int:
    try:
        result = service.get_profile(args.player, full_update=bool(args.full_update))
    except ProfileUnavailableError as exc:
        print(f"profile unavailable: {exc}", file=sys.stderr)
        if not service.schedule_refresh(normalize_player_key(args.player), full_update=False):
            return 2
        _print_json({"Status": "Reloading"})
        return 0

    for error in result.errors:
        print(f"warning: {error}", file=sys.stderr)
    if args.json_output:
        payload = result.profile.model_dump(mode="json")
        payload["state"] = result.state
        _print_json(payload)
    else:
        print(f"{result.player} {result.profile} state={result.state}")
    return 0


def _cmd_stats(args: argparse.Namespace, service: ProfileService) -> int:
    stats = service.player_stats()
    since = since_oldest_update(stats, service.clock())
    oldest = stats.oldest_player_sync
    payload = {
        "player_count": stats.player_count,
        "stale_player_count": stats.stale_player_count,
        "oldest_player_sync": iso_z(oldest) if oldest else "",
        "since_oldest_update_s": int(since.total_seconds()) if since is not None else None,
    }
    if args.json_output:
        _print_json(payload)
    else:
        for key, value in payload.items():
            print(f"{key}={value}")
    return 0


def _cmd_stale(args: argparse.Namespace, service: ProfileService) -> int:
    rows = [
        {
            "player": record.key,
            "last_update": iso_z(record.last_update) if record.last_update else "",
        }
        for record in service.stale_players(limit=args.limit or None)
    ]
    if args.json_output:
        _print_json(rows)
    elif not rows:
        print("no stale players")
    else:
        for row in rows:
            print(f"{row['last_update'] or '-'} {row['player']}")
    return 0


def _cmd_reload_all(args: argparse.Namespace, service: ProfileService) -> int:
    scheduled = service.reload_all()
    print(f"scheduled={scheduled}")
    return 0


def _cmd_run_jobs(args: argparse.Namespace, service: ProfileService) -> int:
    handled = service.run_pending_jobs()
    print(f"handled={handled}")
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="swgoh-sync", description="Player profile cache")
    parser.add_argument("--data-dir", default="")
    subparsers = parser.add_subparsers(dest="command")

    profile = subparsers.add_parser("profile", help="Look up a player profile")
    profile.set_defaults(func=_cmd_profile)
    profile.add_argument("player")
    profile.add_argument("--full-update", action="store_true")
    profile.add_argument("--json", dest="json_output", action="store_true")

    stats = subparsers.add_parser("stats", help="Show cached profile statistics")
    stats.set_defaults(func=_cmd_stats)
    stats.add_argument("--json", dest="json_output", action="store_true")

    stale = subparsers.add_parser("stale", help="List the oldest stale profiles")
    stale.set_defaults(func=_cmd_stale)
    stale.add_argument("--limit", type=int, default=0)
    stale.add_argument("--json", dest="json_output", action="store_true")

    reload_all = subparsers.add_parser("reload-all", help="Schedule refresh of stale profiles")
    reload_all.set_defaults(func=_cmd_reload_all)

    run_jobs = subparsers.add_parser("run-jobs", help="Run queued refresh jobs")
    run_jobs.set_defaults(func=_cmd_run_jobs)

    return parser


def main(argv: list[str] | None = None, *, source: ProfileSource | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    func = getattr(args, "func", None)
    if func is None:
        parser.print_help()
        return 0
    settings = Settings()
    if args.data_dir.strip():
        settings = settings.model_copy(update={"data_dir": args.data_dir.strip()})
    configure_logging(settings)
    try:
        if source is not None:
            return int(func(args, build_service(settings, source=source)))
        with HttpProfileSource(settings) as http_source:
            return int(func(args, build_service(settings, source=http_source)))
    except (ProfileDataError, FileNotFoundError, ValueError) as exc:
        print(str(exc), file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
