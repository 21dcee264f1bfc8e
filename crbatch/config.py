"""Configuration and argument parsing for the batch runner."""

import argparse
import dataclasses
import json
import os
import sys
from typing import Any, Dict, List, Mapping, Optional, Sequence

from . import __version__
from .errors import BatchLineError
from .models import (
    DEFAULT_BATCH_FILE,
    DEFAULT_CONFIG_FILE,
    DEFAULT_RESOLUTION,
    DEFAULT_RETRY,
    DEFAULT_SUBTITLE_FORMAT,
    DEFAULT_TAG,
    ENV_PASS,
    ENV_USER,
    FALLBACK_RESOLUTION,
    RESOLUTION_TABLE,
    Configuration,
)

# Keys a JSON configuration file may set. Credentials are left to the
# command line and the environment.
CONFIG_FILE_FLAG_KEYS = {"no_cache", "no_merge", "rebuild_cache", "verbose"}
CONFIG_FILE_TEXT_KEYS = {"subtitle_format", "output", "series", "filename", "tag", "resolution", "batch"}
CONFIG_FILE_KEYS = CONFIG_FILE_FLAG_KEYS | CONFIG_FILE_TEXT_KEYS | {"retry"}


def non_negative_int(value: str) -> int:
    """Return *value* parsed as an integer >= 0 for argparse."""

    try:
        parsed = int(value)
    except (TypeError, ValueError) as exc:
        raise argparse.ArgumentTypeError("Expected a non-negative integer") from exc

    if parsed < 0:
        raise argparse.ArgumentTypeError("Expected a non-negative integer")

    return parsed


class _LineArgumentParser(argparse.ArgumentParser):
    """Parser for batch-file lines: raises instead of exiting the process."""

    def error(self, message):
        raise BatchLineError(message)


def load_config_file(config_path: str) -> Dict[str, Any]:
    """Load default settings from a JSON file.

    Returns an empty dictionary when the file is missing or unusable, so a
    broken file never stops a run.
    """
    if not os.path.exists(config_path):
        return {}

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except json.JSONDecodeError as exc:
        print(f"Warning: Failed to parse config file {config_path}: {exc}. Ignoring.", file=sys.stderr)
        return {}
    except OSError as exc:
        print(f"Warning: Failed to read config file {config_path}: {exc}. Ignoring.", file=sys.stderr)
        return {}

    if not isinstance(config, dict):
        print(f"Warning: Config file {config_path} must contain a JSON object. Ignoring.", file=sys.stderr)
        return {}

    invalid_keys = set(config.keys()) - CONFIG_FILE_KEYS
    if invalid_keys:
        print(f"Warning: Unknown config keys ignored: {', '.join(sorted(invalid_keys))}", file=sys.stderr)

    settings: Dict[str, Any] = {}
    for key, value in config.items():
        if key not in CONFIG_FILE_KEYS:
            continue
        try:
            settings[key] = _check_config_value(key, value)
        except (TypeError, argparse.ArgumentTypeError) as exc:
            print(f"Warning: Ignoring config key {key}={value!r} in {config_path}: {exc}", file=sys.stderr)

    return settings


def _check_config_value(key: str, value: Any) -> Any:
    """Validate a JSON value the way the matching flag would."""
    if key in CONFIG_FILE_FLAG_KEYS:
        if not isinstance(value, bool):
            raise TypeError("expected true or false")
        return value

    if key == "retry":
        # Floats are rejected, not truncated
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise TypeError("expected a non-negative integer")
        return non_negative_int(value)

    if key == "resolution" and isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    if value is not None and not isinstance(value, str):
        raise TypeError("expected a string")
    return value


def _add_arguments(parser: argparse.ArgumentParser, defaults: Optional[Mapping[str, Any]]) -> None:
    """Register the flag surface on *parser*.

    With ``defaults=None`` every argument defaults to ``SUPPRESS`` so the
    parsed namespace only holds what was given explicitly.
    """

    def default(name: str, fallback: Any) -> Any:
        if defaults is None:
            return argparse.SUPPRESS
        return defaults.get(name, fallback)

    # Authentication
    parser.add_argument("-p", "--pass", dest="password", default=default("password", None), help="The password.")
    parser.add_argument("-u", "--user", dest="user", default=default("user", None), help="The e-mail address or username.")

    # Disables
    parser.add_argument(
        "-c", "--cache",
        dest="no_cache",
        action="store_true",
        default=default("no_cache", False),
        help="Disables the cache.",
    )
    parser.add_argument(
        "-m", "--merge",
        dest="no_merge",
        action="store_true",
        default=default("no_merge", False),
        help="Disables merging subtitles and videos.",
    )

    # Settings
    parser.add_argument(
        "-f", "--format",
        dest="subtitle_format",
        default=default("subtitle_format", DEFAULT_SUBTITLE_FORMAT),
        help=f"The subtitle format. (Default: {DEFAULT_SUBTITLE_FORMAT})",
    )
    parser.add_argument(
        "-o", "--output",
        default=default("output", None),
        help="The output path. (Default: current directory)",
    )
    parser.add_argument("-s", "--series", default=default("series", None), help="The series override.")
    parser.add_argument("-n", "--filename", default=default("filename", None), help="The name override.")
    parser.add_argument(
        "-t", "--tag",
        default=default("tag", DEFAULT_TAG),
        help=f"The subgroup. (Default: {DEFAULT_TAG})",
    )
    parser.add_argument(
        "-r", "--resolution",
        default=default("resolution", DEFAULT_RESOLUTION),
        help="The video resolution. (Default: 1080 (360, 480, 720, 1080))",
    )
    parser.add_argument(
        "-g", "--rebuildcrp",
        dest="rebuild_cache",
        action="store_true",
        default=default("rebuild_cache", False),
        help="Rebuild the persistent cache file.",
    )
    parser.add_argument(
        "-b", "--batch",
        default=default("batch", DEFAULT_BATCH_FILE),
        help=f"Batch file, relative to the output path. (Default: {DEFAULT_BATCH_FILE})",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=default("verbose", False),
        help="Make tool verbose",
    )
    parser.add_argument(
        "--retry",
        type=non_negative_int,
        default=default("retry", DEFAULT_RETRY),
        help=f"Number of times to retry fetching a series. (Default: {DEFAULT_RETRY})",
    )
    parser.add_argument(
        "addresses",
        nargs="*",
        default=default("addresses", []),
        help="Series URLs or ids to fetch. When omitted, the batch file is used.",
    )


def build_parser(defaults: Optional[Mapping[str, Any]] = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crbatch",
        description="Fetch series in batch, one after the other, retrying failed fetches.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        default=DEFAULT_CONFIG_FILE,
        help=f"Path to JSON configuration file (default: {DEFAULT_CONFIG_FILE})",
    )
    _add_arguments(parser, defaults if defaults is not None else {})
    return parser


def _find_config_path(argv: Sequence[str]) -> str:
    config_path = DEFAULT_CONFIG_FILE
    for idx, token in enumerate(argv):
        if token == "--config" and idx + 1 < len(argv):
            config_path = argv[idx + 1]
        elif token.startswith("--config="):
            config_path = token.split("=", 1)[1]
    return config_path


def _namespace_to_config(namespace: argparse.Namespace) -> Configuration:
    values = vars(namespace)
    field_names = {f.name for f in dataclasses.fields(Configuration)}
    kwargs = {k: v for k, v in values.items() if k in field_names}
    kwargs["addresses"] = tuple(values.get("addresses") or ())
    return Configuration(**kwargs)


def apply_credential_defaults(config: Configuration, environ: Optional[Mapping[str, str]] = None) -> Configuration:
    """Fill missing credentials from the environment."""
    if environ is None:
        environ = os.environ

    updates = {}
    if not config.user:
        env_user = environ.get(ENV_USER, "").strip()
        if env_user:
            updates["user"] = env_user
    if not config.password:
        env_pass = environ.get(ENV_PASS, "")
        if env_pass:
            updates["password"] = env_pass

    return dataclasses.replace(config, **updates) if updates else config


def parse_args(argv: Optional[Sequence[str]] = None, environ: Optional[Mapping[str, str]] = None) -> Configuration:
    """Parse command-line arguments into a fresh :class:`Configuration`."""
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)

    config_path = _find_config_path(argv)
    file_defaults = load_config_file(config_path)
    if file_defaults:
        print(f"Loaded configuration from {config_path}")

    parser = build_parser(file_defaults)
    namespace = parser.parse_intermixed_args(argv)
    return apply_credential_defaults(_namespace_to_config(namespace), environ)


def parse_overrides(tokens: Sequence[str]) -> Dict[str, Any]:
    """Parse the tokens of a batch-file line.

    Only the settings the line sets explicitly are returned. Raises
    :class:`BatchLineError` when the tokens are not valid flags.
    """
    parser = _LineArgumentParser(prog="batch line", add_help=False)
    _add_arguments(parser, None)
    namespace = parser.parse_intermixed_args(list(tokens))
    overrides = vars(namespace)
    if "addresses" in overrides:
        overrides["addresses"] = tuple(overrides["addresses"])
    return overrides


def resolve_resolution(config: Configuration) -> Configuration:
    """Return *config* with the derived video format, quality and height set.

    Unknown resolution labels fall back to 1080p with a warning.
    """
    label = config.resolution
    if not label:
        entry = RESOLUTION_TABLE[FALLBACK_RESOLUTION]
    else:
        entry = RESOLUTION_TABLE.get(str(label).strip())
        if entry is None:
            print(
                f"Warning: Invalid resolution {label}p. Setting to {FALLBACK_RESOLUTION}p",
                file=sys.stderr,
            )
            entry = RESOLUTION_TABLE[FALLBACK_RESOLUTION]

    return dataclasses.replace(
        config,
        video_format=entry.format,
        video_quality=entry.quality,
        video_height=entry.height,
    )


def merge_config(base: Configuration, overrides: Mapping[str, Any]) -> Configuration:
    """Build a batch-line configuration from *base* and the line's *overrides*.

    Precedence is per field: a value set on the line wins, anything else is
    taken from *base*. Addresses only ever come from the line. The derived
    video fields are inherited from *base* unless the line picks its own
    resolution, in which case that resolution is resolved here.
    """
    field_names = {f.name for f in dataclasses.fields(Configuration)}
    unknown = set(overrides) - field_names
    if unknown:
        raise ValueError(f"Unknown configuration fields: {', '.join(sorted(unknown))}")

    updates: Dict[str, Any] = dict(overrides)
    updates["addresses"] = tuple(overrides.get("addresses", ()))
    merged = dataclasses.replace(base, **updates)

    if "resolution" in overrides or not merged.is_resolved:
        merged = resolve_resolution(merged)
    return merged


def describe_config(config: Configuration) -> List[str]:
    """Short human-readable lines about a configuration, for the run banner."""
    lines = [
        f"Output directory: {config.output_dir()}",
        f"Resolution: {config.resolution or FALLBACK_RESOLUTION}p "
        f"(quality={config.video_quality}, format={config.video_format})",
        f"Subtitles: {config.subtitle_format}" + (" (not merged)" if config.no_merge else " (merged)"),
        f"Cache: {'disabled' if config.no_cache else 'enabled'}",
        f"Retries per series: {config.retry}",
    ]
    if config.user:
        lines.append(f"User: {config.user}")
    return lines
