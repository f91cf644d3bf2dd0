"""List command: Show retained snapshot generations."""

import argparse
import json
import logging

from .. import __util__, spool
from ..__logger__ import create_logger
from ..core.recorder import last_success
from ..spool import Tier
from .common import get_log_level, load_cli_config

logger = logging.getLogger(__name__)


def execute_list(args: argparse.Namespace) -> int:
    """Execute the list command.

    Args:
        args: Parsed command line arguments

    Returns:
        Exit code
    """
    create_logger(level=get_log_level(args))

    config = load_cli_config(args)
    if config is None:
        return 1

    names = getattr(args, "target", None)
    targets = [t for t in config.targets if not names or t.name in names]
    if names:
        unknown = sorted(set(names) - {t.name for t in targets})
        if unknown:
            logger.error("Unknown target(s): %s", ", ".join(unknown))
            return 1

    listing = [_describe_target(t.spool_dir, t.name) for t in targets]

    if getattr(args, "json", False):
        print(json.dumps(listing, indent=2))
        return 0

    for entry in listing:
        print(f"Target: {entry['name']}  ({entry['path']})")
        print(f"  current: {'present' if entry['current'] else 'missing'}")
        print(f"  last_run: {entry['last_run'] or 'never'}")
        for tier in Tier:
            generations = entry["generations"][tier.value]
            if not generations:
                continue
            print(f"  {tier.value}:")
            for gen in generations:
                print(f"    {gen['name']}  {gen['modified']}")
        print("")

    return 0


def _describe_target(root, name: str) -> dict:
    completed = last_success(root, name)
    last_run = __util__.format_timestamp(completed) if completed is not None else None

    generations: dict[str, list[dict]] = {}
    for tier in Tier:
        entries = []
        for index in spool.list_generations(root, name, tier):
            path = spool.generation_dir(root, name, tier, index)
            try:
                modified = __util__.format_timestamp(path.stat().st_mtime)
            except OSError:
                modified = "?"
            entries.append({"name": path.name, "index": index, "modified": modified})
        generations[tier.value] = entries

    return {
        "name": name,
        "path": str(spool.target_dir(root, name)),
        "current": spool.current_dir(root, name).is_dir(),
        "last_run": last_run,
        "generations": generations,
    }
