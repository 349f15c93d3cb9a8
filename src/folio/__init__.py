"""Folio package root."""

from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from typing import Sequence

__version__ = "0.1.0"

LOGGER = logging.getLogger("folio.cli")

_RUN_COMMANDS = {
    "cluster": "Search feature subsets and cluster listened tracks.",
    "train": "Train the image classifier.",
    "enrich": "Fetch audio features for listened tracks.",
    "build": "Render the static site.",
}


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="folio", description="Folio command line tools.")
    subparsers = parser.add_subparsers(dest="command")

    for name, help_text in _RUN_COMMANDS.items():
        command_parser = subparsers.add_parser(name, help=help_text)
        kind = "SiteConfig" if name == "build" else "ProjectConfig"
        command_parser.add_argument("--config", required=True, help=f"{kind} YAML path.")

    config_parser = subparsers.add_parser("config", help="Config file utilities.")
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    migrate_parser = config_subparsers.add_parser(
        "migrate", help="Normalize a ProjectConfig or SiteConfig YAML file."
    )
    migrate_parser.add_argument("--input", required=True, help="Input config YAML path.")
    migrate_parser.add_argument(
        "--output",
        required=False,
        help="Output path. Default: <input_stem>.migrated.yaml",
    )
    migrate_parser.add_argument(
        "--target-version",
        type=int,
        default=1,
        help="Migration target version (only 1 is supported).",
    )
    return parser


def _run_command(command: str, config_path: str) -> object:
    from folio.api import runner
    from folio.config.io import load_project_config, load_site_config

    if command == "build":
        return runner.build_site(load_site_config(config_path))
    config = load_project_config(config_path)
    if command == "cluster":
        return runner.cluster(config)
    if command == "train":
        return runner.train_classifier(config)
    return runner.enrich(config)


def _migrate(args: argparse.Namespace) -> object:
    from folio.api.logging import log_event
    from folio.config.migrate import migrate_config_file

    result = migrate_config_file(
        input_path=args.input,
        output_path=args.output,
        target_version=args.target_version,
    )
    log_event(
        LOGGER,
        logging.INFO,
        "config migrate completed",
        run_id="config-migrate",
        artifact_path=None,
        task_type="config",
        config_kind=result.config_kind,
        input_path=result.input_path,
        output_path=result.output_path,
        source_version=result.source_version,
        target_version=result.target_version,
        changed=result.changed,
        warnings=result.warnings,
    )
    return result


def main(argv: Sequence[str] | None = None) -> None:
    from folio.api.exceptions import FolioError

    parser = _build_parser()
    args = parser.parse_args(argv)

    is_migrate = args.command == "config" and args.config_command == "migrate"
    if args.command not in _RUN_COMMANDS and not is_migrate:
        parser.print_help()
        return

    try:
        result = _migrate(args) if is_migrate else _run_command(args.command, args.config)
    except (FolioError, ValueError, OSError) as exc:
        # ValueError covers config files that fail schema validation.
        raise SystemExit(f"ERROR: {exc}") from exc

    print(json.dumps(asdict(result), ensure_ascii=False, indent=2, default=str))
