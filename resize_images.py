#!/usr/bin/env python3
"""
Image Resizing Script - Shrink Oversized Images in a Folder Tree
================================================================

Purpose
-------
Keep every image below a folder under a maximum width and height by:
- walking the folder and all of its subfolders,
- backing up each image that is too large into ``backupimages``,
- shrinking it in place while preserving the aspect ratio,
- writing a second copy of the shrunk image into a configured subfolder.

Images already within bounds are left alone, so running the script twice is
harmless.

Dependencies
------------
- Pillow (PIL)

Settings
--------
Read from ``appsettings.json`` in the current directory (override with ``--config``):

    {
        "MaxWidth": 800,
        "MaxHeight": 600,
        "SupportedFileTypes": [".jpg", ".jpeg", ".png"],
        "SubfolderName": "resized",
        "OverwriteExisting": true,
        "LogFilePath": "resize.log"
    }

Usage
-----
    python resize_images.py <folder>

    Options:
        --config PATH        Settings file (default: appsettings.json in the current directory)
        --dry-run            Walk and plan without writing any files
        --log-level LEVEL    Logging level (default: INFO)
"""
from __future__ import annotations

import argparse
import json
import logging
import os
import shutil
import sys
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import FrozenSet, List, Optional

from PIL import Image


# -----------------------------
# Configuration
# -----------------------------
DEFAULT_CONFIG_FILE = Path("appsettings.json")
BACKUP_FOLDER_NAME = "backupimages"
JPEG_QUALITY = 90


class ConfigError(ValueError):
    """Settings file is malformed or holds invalid values."""


@dataclass(frozen=True)
class Settings:
    """Validated run settings, loaded once at startup."""
    max_width: int
    max_height: int
    supported_extensions: FrozenSet[str]               # lowercase, with leading dot
    subfolder_name: str                                # output folder name
    overwrite_existing: bool = False                   # applies to the output copy only
    log_file_path: Optional[str] = None

    def is_supported(self, filename: str) -> bool:
        return Path(filename).suffix.lower() in self.supported_extensions


def _positive_int(raw: dict, key: str) -> int:
    value = raw.get(key)
    # bool is an int subclass; "MaxWidth": true is not a width.
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    return value


def settings_from_dict(raw: dict) -> Settings:
    """
    Build Settings from the decoded JSON document.

    The legacy ``TargetDimensions`` block is tolerated and ignored; sizing is
    driven by MaxWidth/MaxHeight only.
    """
    if not isinstance(raw, dict):
        raise ConfigError("Settings must be a JSON object")

    max_width = _positive_int(raw, "MaxWidth")
    max_height = _positive_int(raw, "MaxHeight")

    file_types = raw.get("SupportedFileTypes")
    if not isinstance(file_types, list) or not file_types:
        raise ConfigError("SupportedFileTypes must be a non-empty list of extensions")
    extensions = set()
    for ext in file_types:
        if not isinstance(ext, str) or len(ext) < 2 or not ext.startswith("."):
            raise ConfigError(f"Invalid entry in SupportedFileTypes: {ext!r} (expected e.g. '.jpg')")
        extensions.add(ext.lower())

    subfolder_name = raw.get("SubfolderName")
    if not isinstance(subfolder_name, str) or not subfolder_name.strip():
        raise ConfigError("SubfolderName must be a non-empty string")
    if subfolder_name in (".", "..") or "/" in subfolder_name or "\\" in subfolder_name:
        raise ConfigError(f"SubfolderName must be a plain folder name, got {subfolder_name!r}")
    if subfolder_name.lower() == BACKUP_FOLDER_NAME:
        raise ConfigError(f"SubfolderName cannot be '{BACKUP_FOLDER_NAME}' (reserved for backups)")

    overwrite_existing = raw.get("OverwriteExisting", False)
    if not isinstance(overwrite_existing, bool):
        raise ConfigError(f"OverwriteExisting must be true or false, got {overwrite_existing!r}")

    log_file_path = raw.get("LogFilePath")
    if log_file_path is not None and not isinstance(log_file_path, str):
        raise ConfigError(f"LogFilePath must be a string, got {log_file_path!r}")
    if log_file_path is not None and not log_file_path.strip():
        log_file_path = None

    return Settings(
        max_width=max_width,
        max_height=max_height,
        supported_extensions=frozenset(extensions),
        subfolder_name=subfolder_name,
        overwrite_existing=overwrite_existing,
        log_file_path=log_file_path,
    )


def load_settings(config_path: str | Path = DEFAULT_CONFIG_FILE) -> Settings:
    """Load and validate the settings file with explicit errors."""
    path = Path(config_path)
    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        raise ConfigError(f"Malformed configuration file {path}: {e}") from e
    return settings_from_dict(raw)


# -----------------------------
# Logging setup
# -----------------------------
logger = logging.getLogger(__name__)
LOG_FORMAT = "%(asctime)s: %(message)s"


def configure_logging(log_file_path: Optional[str] = None, level: int = logging.INFO) -> None:
    """Send log lines to stdout and, when a path is given, append them to that file."""
    handlers: List[logging.Handler] = []
    if log_file_path and log_file_path.strip():
        handlers.append(logging.FileHandler(log_file_path, mode="a", encoding="utf-8"))
    handlers.insert(0, logging.StreamHandler(sys.stdout))

    close_logging()
    formatter = logging.Formatter(LOG_FORMAT)
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)


def close_logging() -> None:
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.setLevel(logging.NOTSET)


# -----------------------------
# Image IO helpers
# -----------------------------
def open_image(image_path: str | Path) -> Image.Image:
    """Decode an image fully into memory so the source file is released."""
    with Image.open(image_path) as img:
        img.load()
        return img


def encode_image(image: Image.Image, image_format: str) -> bytes:
    """Encode in memory, in the same format the original was stored in."""
    buffer = BytesIO()
    if image_format == "JPEG":
        image.save(buffer, format=image_format, quality=JPEG_QUALITY)
    else:
        image.save(buffer, format=image_format)
    return buffer.getvalue()


# -----------------------------
# Resize policy
# -----------------------------
@dataclass(frozen=True)
class ResizePlan:
    resize_needed: bool
    target_width: int
    target_height: int


def plan_resize(original_width: int, original_height: int, max_width: int, max_height: int) -> ResizePlan:
    """
    Decide whether an image must shrink to fit within max_width x max_height.

    Width is clamped first, then height; the other side follows the aspect
    ratio and is truncated, never rounded up.
    """
    if min(original_width, original_height, max_width, max_height) <= 0:
        raise ValueError(
            f"Dimensions must be positive: {original_width}x{original_height} "
            f"within {max_width}x{max_height}"
        )

    if original_width <= max_width and original_height <= max_height:
        return ResizePlan(False, original_width, original_height)

    aspect_ratio = original_width / original_height

    if original_width > max_width:
        target_width = max_width
        target_height = int(max_width / aspect_ratio)
    else:
        target_width = original_width
        target_height = original_height

    if target_height > max_height:
        target_height = max_height
        target_width = int(max_height * aspect_ratio)

    # Extreme aspect ratios can truncate a side to zero.
    return ResizePlan(True, max(1, target_width), max(1, target_height))


# -----------------------------
# Per-file processing
# -----------------------------
STATUS_RESIZED = "RESIZED"
STATUS_WITHIN_BOUNDS = "WITHIN_BOUNDS"
STATUS_ERROR = "ERROR"
STATUS_WOULD_RESIZE = "WOULD_RESIZE"


@dataclass(frozen=True)
class FileResult:
    """Outcome of one file; process_file returns one of these instead of raising."""
    path: Path
    status: str
    message: str = ""
    output_written: bool = False


@dataclass(frozen=True)
class DirectoryContext:
    """A directory being processed and the backup/output folders that belong to it."""
    directory: Path
    backup_folder: Path
    output_folder: Path

    @classmethod
    def for_directory(cls, directory: Path, settings: Settings) -> DirectoryContext:
        return cls(
            directory=directory,
            backup_folder=directory / BACKUP_FOLDER_NAME,
            output_folder=directory / settings.subfolder_name,
        )

    def ensure_folders(self, dry_run: bool = False) -> None:
        """Create the backup and output folders if absent. OSError propagates."""
        for folder, label in ((self.backup_folder, "backup"), (self.output_folder, "resized")):
            if folder.is_dir():
                continue
            if dry_run:
                logger.info(f"Would create subfolder for {label} images: {folder}")
                continue
            folder.mkdir()
            logger.info(f"Created subfolder for {label} images: {folder}")


def write_output_copy(output_path: Path, data: bytes, overwrite_existing: bool) -> bool:
    """Write the resized copy; returns False when an existing file is kept."""
    if output_path.exists() and not overwrite_existing:
        logger.info(f"Skipped saving {output_path} as it already exists.")
        return False
    output_path.write_bytes(data)
    return True


def process_file(
    image_path: Path,
    context: DirectoryContext,
    settings: Settings,
    dry_run: bool = False,
) -> FileResult:
    """
    Back up, shrink and replace a single image.

    Order matters: the backup copy is complete before the original is
    overwritten. Every failure is logged and returned as an ERROR result.
    """
    try:
        image = open_image(image_path)
    except Exception as e:
        logger.error(f"Error processing file {image_path}: unable to open image: {e}")
        return FileResult(image_path, STATUS_ERROR, str(e))

    old_size = f"{image.width}x{image.height}"
    try:
        plan = plan_resize(image.width, image.height, settings.max_width, settings.max_height)
        if not plan.resize_needed:
            logger.info(
                f"Skipped resizing {image_path} ({old_size}) as it does not exceed "
                f"{settings.max_width}x{settings.max_height}."
            )
            return FileResult(image_path, STATUS_WITHIN_BOUNDS)

        new_size = f"{plan.target_width}x{plan.target_height}"
        if dry_run:
            logger.info(f"Would resize {image_path} from {old_size} to {new_size}")
            return FileResult(image_path, STATUS_WOULD_RESIZE)

        backup_path = context.backup_folder / image_path.name
        shutil.copy2(image_path, backup_path)

        resized = image.resize((plan.target_width, plan.target_height), Image.LANCZOS)
        data = encode_image(resized, image.format)

        output_path = context.output_folder / image_path.name
        output_written = write_output_copy(output_path, data, settings.overwrite_existing)

        image_path.write_bytes(data)
    except Exception as e:
        logger.error(f"Error processing file {image_path}: {e}")
        return FileResult(image_path, STATUS_ERROR, str(e))
    finally:
        image.close()

    logger.info(f"Resized: {image_path} from {old_size} to {new_size}, original backed up to {backup_path}")
    return FileResult(image_path, STATUS_RESIZED, output_written=output_written)


# -----------------------------
# Run statistics
# -----------------------------
@dataclass
class RunStats:
    """Counters for the whole run; passed down the recursive walk."""
    files_processed: int = 0
    errors: int = 0
    skipped_within_bounds: int = 0
    skipped_existing: int = 0
    would_resize: int = 0                              # dry run only

    def record(self, result: FileResult) -> None:
        if result.status == STATUS_RESIZED:
            self.files_processed += 1
            if not result.output_written:
                self.skipped_existing += 1
        elif result.status == STATUS_WITHIN_BOUNDS:
            self.skipped_within_bounds += 1
        elif result.status == STATUS_WOULD_RESIZE:
            self.would_resize += 1
        elif result.status == STATUS_ERROR:
            self.errors += 1


def summarize(stats: RunStats) -> str:
    summary = (
        f"Image resizing completed. {stats.files_processed} files processed, "
        f"{stats.errors} errors encountered."
    )
    if stats.would_resize:
        summary += f" Dry run: {stats.would_resize} files would be resized."
    return summary


# -----------------------------
# Folder processing
# -----------------------------
def process_folder(
    directory: str | Path,
    settings: Settings,
    stats: RunStats,
    *,
    dry_run: bool = False,
) -> None:
    """
    Process the images directly inside ``directory``, then recurse into its
    subfolders depth-first.

    Listing or folder-creation errors for ``directory`` itself propagate. A
    failing subfolder is logged, counted as one error, and its siblings still
    run. Backup/output folders and symlinked directories are never entered.
    """
    directory = Path(directory)
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda entry: entry.name)

    skip_names = {BACKUP_FOLDER_NAME, settings.subfolder_name}
    image_files = [Path(e.path) for e in entries if e.is_file() and settings.is_supported(e.name)]
    subfolders = [
        Path(e.path) for e in entries
        if e.is_dir(follow_symlinks=False) and e.name not in skip_names
    ]

    if image_files:
        context = DirectoryContext.for_directory(directory, settings)
        context.ensure_folders(dry_run=dry_run)
        for image_path in image_files:
            stats.record(process_file(image_path, context, settings, dry_run=dry_run))

    for subfolder in subfolders:
        try:
            process_folder(subfolder, settings, stats, dry_run=dry_run)
        except OSError as e:
            logger.error(f"Error processing folder {subfolder}: {e}")
            stats.errors += 1


def run(root: str | Path, settings: Settings, *, dry_run: bool = False) -> RunStats:
    """Walk the whole tree and log the summary line once at the end."""
    stats = RunStats()
    process_folder(root, settings, stats, dry_run=dry_run)
    logger.info(summarize(stats))
    return stats


# -----------------------------
# Main entry point
# -----------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="resize-images",
        description="Shrink oversized images in a folder tree, keeping a backup of each original.",
    )
    parser.add_argument("folder_path", nargs="?", help="Folder containing the images.")
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG_FILE),
        help="Settings file (default: appsettings.json in the current directory).",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Walk and plan without creating folders or writing files.",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO).",
    )
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Returns an exit code: 0 when the walk completes (per-file errors are
    reported in the summary), 2 for usage, configuration or folder problems,
    3 when the walk itself fails.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    log_level = getattr(logging, args.log_level.upper())
    configure_logging(level=log_level)
    try:
        return _run_cli(parser, args, log_level)
    finally:
        close_logging()


def _run_cli(parser: argparse.ArgumentParser, args: argparse.Namespace, log_level: int) -> int:
    if args.folder_path is None:
        parser.print_usage()
        return 2

    try:
        settings = load_settings(args.config)
    except (OSError, ConfigError) as e:
        logger.critical(f"Error loading configuration: {e}")
        return 2

    if settings.log_file_path:
        try:
            configure_logging(settings.log_file_path, log_level)
        except OSError as e:
            logger.critical(f"Unable to open log file {settings.log_file_path}: {e}")
            return 2

    folder_path = args.folder_path
    if not folder_path.strip() or not Path(folder_path).is_dir():
        logger.error("Invalid folder path. Exiting.")
        parser.print_usage()
        return 2

    if args.dry_run:
        logger.info("DRY RUN MODE - no files will be written")

    try:
        run(Path(folder_path), settings, dry_run=args.dry_run)
    except OSError as e:
        logger.critical(f"Fatal: {e}")
        return 3
    except Exception as e:
        logger.critical(f"Fatal: Unexpected error: {e}", exc_info=True)
        return 3
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
