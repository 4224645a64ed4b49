"""Track Finder -- Entry point and command-line interface."""

from __future__ import annotations

import argparse
import sys
import threading
from pathlib import Path

import yaml

from trackfinder.utils.constants import (
    APP_NAME,
    APP_VERSION,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_MAX_SCAN_DEPTH,
    DEFAULT_MIN_SCORE,
    DEFAULT_SUGGESTION_LIMIT,
    MAX_MIN_SCORE,
    MAX_SCAN_DEPTH_LIMIT,
)
from trackfinder.utils.logger import get_logger, setup_logger

_VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_USAGE = 2


def validate_config(config: dict) -> list[str]:
    """Validate configuration values and return a list of warnings.

    Checks:
    - music_folders is a list of non-empty strings
    - max_scan_depth is an integer within 1-10
    - min_score is a number within 0-200
    - log_level names a known logging level

    Invalid values are replaced in place so the dict can be passed straight
    to ``AppConfig.from_dict()``.

    Args:
        config: Configuration dictionary.

    Returns:
        List of human-readable warning strings. Empty if all checks pass.
    """
    warnings: list[str] = []

    folders = config.get("music_folders", [])
    if folders is None:
        config["music_folders"] = []
    elif isinstance(folders, str):
        warnings.append(
            f"music_folders should be a list, got a single string {folders!r}. "
            f"Treating it as one folder."
        )
        config["music_folders"] = [folders]
    elif not isinstance(folders, list):
        warnings.append(f"music_folders must be a list, got {folders!r}. Ignoring it.")
        config["music_folders"] = []
    else:
        kept = [f for f in folders if isinstance(f, str) and f.strip()]
        if len(kept) != len(folders):
            warnings.append(
                f"Dropped {len(folders) - len(kept)} music_folders entries "
                f"that are not non-empty strings."
            )
            config["music_folders"] = kept

    depth = config.get("max_scan_depth", DEFAULT_MAX_SCAN_DEPTH)
    if (
        isinstance(depth, bool)
        or not isinstance(depth, int)
        or not (1 <= depth <= MAX_SCAN_DEPTH_LIMIT)
    ):
        warnings.append(
            f"max_scan_depth must be 1-{MAX_SCAN_DEPTH_LIMIT}, got {depth!r}. "
            f"Using default ({DEFAULT_MAX_SCAN_DEPTH})."
        )
        config["max_scan_depth"] = DEFAULT_MAX_SCAN_DEPTH

    min_score = config.get("min_score", DEFAULT_MIN_SCORE)
    if (
        isinstance(min_score, bool)
        or not isinstance(min_score, (int, float))
        or not (0 <= min_score <= MAX_MIN_SCORE)
    ):
        warnings.append(
            f"min_score must be 0-{MAX_MIN_SCORE}, got {min_score!r}. "
            f"Using default ({DEFAULT_MIN_SCORE})."
        )
        config["min_score"] = DEFAULT_MIN_SCORE

    log_level = config.get("log_level", "INFO")
    if not isinstance(log_level, str) or log_level.upper() not in _VALID_LOG_LEVELS:
        warnings.append(f"log_level {log_level!r} is not recognized. Using INFO.")
        config["log_level"] = "INFO"
    else:
        config["log_level"] = log_level.upper()

    return warnings


def load_config(path: Path | str | None = None) -> dict:
    """Load configuration from a YAML file.

    Args:
        path: Config file to read. Defaults to ``config/config.yaml`` next
            to the package. A missing file yields an empty config.

    Returns:
        Configuration dictionary (suitable for ``AppConfig.from_dict()``).
    """
    config: dict = {}

    if path is None:
        config_path = Path(__file__).parent.parent / "config" / DEFAULT_CONFIG_FILENAME
    else:
        config_path = Path(path).expanduser()

    if config_path.exists():
        with open(config_path, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

    if not isinstance(config, dict):
        raise ValueError(f"{config_path} must contain a mapping, got {type(config).__name__}")
    return config


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the ``trackfinder`` command."""
    parser = argparse.ArgumentParser(
        prog="trackfinder",
        description="Resolve local-track locators to audio files on disk.",
    )
    parser.add_argument("--version", action="version", version=f"{APP_NAME} {APP_VERSION}")
    parser.add_argument("--config", type=Path, default=None, help="Path to a YAML config file")
    parser.add_argument(
        "--folder",
        action="append",
        default=[],
        metavar="PATH",
        help="Extra music folder to search (may be repeated)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")

    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Print the file behind a locator")
    resolve.add_argument("locator")

    sub.add_parser("index", help="List every entry of the player's binary index")

    suggest = sub.add_parser("suggest", help="List files with names close to a locator's title")
    suggest.add_argument("locator")
    suggest.add_argument("--limit", type=int, default=DEFAULT_SUGGESTION_LIMIT)

    sub.add_parser("folders", help="List configured music folders and their audio file counts")

    sub.add_parser("watch", help="Log change notifications until interrupted")

    return parser


def _cmd_resolve(resolver, args) -> int:
    path = resolver.resolve(args.locator)
    if path is None:
        return EXIT_NOT_FOUND
    print(path)
    return EXIT_OK


def _cmd_index(resolver, args) -> int:
    for entry in resolver.load_index():
        print(f"{entry.display_key}\t{entry.file_path}")
    return EXIT_OK


def _cmd_suggest(resolver, args) -> int:
    if args.limit < 1:
        print("--limit must be at least 1", file=sys.stderr)
        return EXIT_USAGE
    suggestions = resolver.suggest(args.locator, limit=args.limit)
    for path, score in suggestions:
        print(f"{score:5.1f}\t{path}")
    return EXIT_OK if suggestions else EXIT_NOT_FOUND


def _cmd_folders(resolver, args) -> int:
    for folder in resolver.folders:
        state = "ok" if folder.is_dir() else "missing"
        print(f"{folder}\t{state}\t{resolver.scanner.count_audio_files([folder])}")
    return EXIT_OK


def _cmd_watch(resolver, args) -> int:
    logger = get_logger("main")
    stop = threading.Event()

    def changed() -> None:
        logger.info("Local files changed")

    unsubscribe = resolver.on_change(changed)
    logger.info("Watching %d folder(s); press Ctrl+C to stop", len(resolver.folders))
    try:
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        logger.info("Stopping")
    finally:
        unsubscribe()
    return EXIT_OK


_COMMANDS = {
    "resolve": _cmd_resolve,
    "index": _cmd_index,
    "suggest": _cmd_suggest,
    "folders": _cmd_folders,
    "watch": _cmd_watch,
}


def main(argv: list[str] | None = None) -> int:
    """Application entry point. Loads config, sets up logging, and runs a command.

    Returns:
        Process exit status.
    """
    from trackfinder.core.resolver import TrackResolver
    from trackfinder.models.config import AppConfig

    args = build_parser().parse_args(argv)

    try:
        raw_config = load_config(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Cannot read config: {e}", file=sys.stderr)
        return EXIT_USAGE

    # Validate the raw dict first (mutates to fix invalid values)
    config_warnings = validate_config(raw_config)

    # Build typed config from the validated dict
    config = AppConfig.from_dict(raw_config)
    config.music_folders.extend(args.folder)
    if args.verbose:
        config.log_level = "DEBUG"

    setup_logger(log_level=config.log_level, log_file=config.log_file)
    logger = get_logger("main")
    logger.debug("%s v%s starting", APP_NAME, APP_VERSION)
    logger.debug("Effective config: %s", config.to_dict())

    for warning in config_warnings:
        logger.warning("Config: %s", warning)

    resolver = TrackResolver(config)
    try:
        return _COMMANDS[args.command](resolver, args)
    finally:
        resolver.close()


if __name__ == "__main__":
    sys.exit(main())
