"""Command line interface for minimake."""
from __future__ import annotations

from argparse import ArgumentParser, Namespace
from pathlib import Path
from typing import Dict, Iterable, List, Tuple
import logging
import sys

import yaml

from .build import BuildError
from .command_runner import RecordingCommandRunner, SubprocessCommandRunner
from .config_loader import MakeConfig, discover_config
from .make import Make
from .parser import MakefileParseError, parse_makefile


logger = logging.getLogger("minimake")

_LOG_FORMAT = "%(message)s"
_FILE_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int, *, log_file: str | Path | None = None) -> logging.Logger:
    """Route ``minimake`` log records to stderr and, optionally, a log file."""

    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(_LOG_FORMAT))
    logger.addHandler(console)
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(_FILE_LOG_FORMAT))
        logger.addHandler(file_handler)
    logger.setLevel(level)
    logger.propagate = False
    return logger


def _make_runner(dry_run: bool, shell: str) -> SubprocessCommandRunner | RecordingCommandRunner:
    return RecordingCommandRunner() if dry_run else SubprocessCommandRunner(shell=shell)


def _split_goals(items: Iterable[str]) -> Tuple[Dict[str, str], List[str]]:
    overrides: Dict[str, str] = {}
    targets: List[str] = []
    for item in items:
        name, sep, value = item.partition("=")
        if sep and name and not any(ch.isspace() or ch == ":" for ch in name):
            overrides[name] = value
        else:
            targets.append(item)
    return overrides, targets


def _emit_dry_run_output(runner: RecordingCommandRunner, *, workspace: Path) -> None:
    for line in runner.iter_formatted(workspace=workspace):
        print(line)


def _parse_arguments(argv: Iterable[str]) -> Namespace:
    parser = ArgumentParser(prog="minimake", description="Build targets from a makefile")
    parser.add_argument("goals", nargs="*", metavar="TARGET|NAME=VALUE", help="Targets to build and variable overrides")
    parser.add_argument("-f", "--file", dest="makefile", help="Read FILE as the makefile")
    parser.add_argument("-C", "--directory", dest="directory", help="Change to DIRECTORY before doing anything")
    parser.add_argument("-n", "--dry-run", action="store_true", default=None, help="Print commands instead of running them")
    parser.add_argument(
        "-i",
        "--ignore-errors",
        action="store_true",
        default=None,
        help="Ignore errors from recipe commands",
    )
    parser.add_argument("-l", "--list", dest="list_targets", action="store_true", help="List the available targets and exit")
    parser.add_argument("--config", dest="config", help="Path to a minimake configuration file")
    parser.add_argument(
        "--log-level",
        dest="log_level",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Logging verbosity (defaults to the configured log_level)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Shortcut for --log-level debug")
    parser.add_argument("-q", "--quiet", action="store_true", help="Shortcut for --log-level warning")
    return parser.parse_args(list(argv))


def _effective_log_level(args: Namespace, config: MakeConfig | None) -> str:
    if args.log_level:
        return args.log_level
    if args.verbose:
        return "debug"
    if args.quiet:
        return "warning"
    if config is not None:
        return config.global_config.log_level
    return "info"


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_arguments(sys.argv[1:] if argv is None else argv)
    workspace = Path(args.directory).resolve() if args.directory else Path.cwd()
    configure_logging(_effective_log_level(args, None))

    try:
        config = discover_config(workspace, args.config)
    except (OSError, TypeError, ValueError, yaml.YAMLError) as exc:
        logger.error("minimake: *** invalid configuration: %s", exc)
        return 2

    settings = config.global_config
    log_file = Path(settings.log_file) if settings.log_file else None
    if log_file is not None and not log_file.is_absolute():
        log_file = workspace / log_file
    configure_logging(_effective_log_level(args, config), log_file=log_file)

    overrides, goals = _split_goals(args.goals)

    makefile = Path(args.makefile or settings.makefile)
    if not makefile.is_absolute():
        makefile = workspace / makefile
    if not makefile.is_file():
        logger.error("minimake: *** No makefile found at '%s'. Stop.", makefile)
        return 1

    try:
        rules = parse_makefile(makefile, variables=overrides, defaults=config.variables)
    except (MakefileParseError, OSError) as exc:
        logger.error("minimake: *** %s. Stop.", exc)
        return 2

    if args.list_targets:
        for target in rules.targets():
            print(target)
        return 0

    dry_run = settings.dry_run if args.dry_run is None else args.dry_run
    ignore_errors = settings.ignore_errors if args.ignore_errors is None else args.ignore_errors
    runner = _make_runner(dry_run, settings.shell)
    make = Make(rules, command_runner=runner, workspace=workspace, ignore_errors=ignore_errors)

    try:
        if goals:
            make.build_multiple(*goals)
        else:
            make.build_default()
    except BuildError as exc:
        logger.error("minimake: *** %s. Stop.", exc)
        return 2
    finally:
        if isinstance(runner, RecordingCommandRunner):
            _emit_dry_run_output(runner, workspace=workspace)
    return 0