"""batch rendering of message files to HTML."""

import logging
import sys
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Optional

import ijson

from chatmarkdown.core.markdown import format_markdown
from chatmarkdown.core.models import RenderOptions
from chatmarkdown.progress import ProgressHandler

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = (".md", ".markdown", ".txt")


def discover_files(source: Path) -> list[Path]:
    """
    discovers message files from source path.

    Args:
        source: path to a markdown/text file, JSON file, or directory

    Returns:
        list of paths to message files

    Raises:
        FileNotFoundError: if source doesn't exist
    """
    if not source.exists():
        raise FileNotFoundError(f"Source not found: {source}")

    if source.is_file():
        if source.suffix in TEXT_SUFFIXES or source.suffix == ".json":
            return [source]
        return []

    return sorted(
        p
        for p in source.iterdir()
        if p.is_file() and (p.suffix in TEXT_SUFFIXES or p.suffix == ".json")
    )


def _message_text(item: Any) -> Optional[str]:
    """extracts message text from a JSON list item."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict):
        for key in ("message", "text"):
            value = item.get(key)
            if isinstance(value, str):
                return value
    return None


def iter_messages(path: Path) -> Iterator[tuple[str, str]]:
    """
    yields (name, text) for each message in a file.

    JSON files hold a list of messages and are streamed, so large exports are
    never loaded at once.

    Args:
        path: message file

    Yields:
        message name and raw text
    """
    if path.suffix != ".json":
        yield path.stem, path.read_text(encoding="utf-8")
        return

    with open(path, "rb") as f:
        for i, item in enumerate(ijson.items(f, "item")):
            text = _message_text(item)
            if text is None:
                logger.debug("skipping item %d in %s: no message text", i, path)
                continue
            yield f"{path.stem}-{i}", text


def _output_name(name: str, path: Path, used: set[str]) -> str:
    """picks an output name not yet written in this run."""
    candidate = name
    if candidate in used:
        candidate = f"{name}-{path.suffix.lstrip('.')}"
    counter = 2
    base = candidate
    while candidate in used:
        candidate = f"{base}-{counter}"
        counter += 1
    used.add(candidate)
    return candidate


def count_messages(files: list[Path]) -> int:
    """counts messages across files, ignoring files that fail to parse."""
    total = 0
    for path in files:
        try:
            total += sum(1 for _ in iter_messages(path))
        except (OSError, UnicodeDecodeError, ijson.JSONError) as e:
            logger.debug("could not count messages in %s: %s", path, e)
    return total


def render_messages(
    source: Path,
    output_dir: Optional[Path] = None,
    options: Optional[RenderOptions] = None,
    progress: Optional[ProgressHandler] = None,
) -> int:
    """
    renders every message found in source.

    Args:
        source: file or directory to read messages from
        output_dir: directory for .html files, or None to write to stdout
        options: formatting options
        progress: progress handler (defaults to a quiet one)

    Returns:
        exit code (0 success, 1 some files failed)

    Raises:
        FileNotFoundError: if source doesn't exist
    """
    progress = progress or ProgressHandler(quiet=True)

    progress.start_discovery()
    files = discover_files(source)
    progress.set_total(count_messages(files))

    if output_dir is not None:
        output_dir.mkdir(parents=True, exist_ok=True)

    rendered = 0
    failed = 0
    used_names: set[str] = set()

    for path in files:
        try:
            for name, text in iter_messages(path):
                html = format_markdown(text, options)
                if output_dir is None:
                    sys.stdout.write(html)
                else:
                    out_name = _output_name(name, path, used_names)
                    if out_name != name:
                        logger.warning(
                            "%s: %s.html already written, using %s.html",
                            path,
                            name,
                            out_name,
                        )
                    (output_dir / f"{out_name}.html").write_text(html, encoding="utf-8")
                    progress.log_info(f"Rendered {out_name}")
                rendered += 1
                progress.update(name)
        except (OSError, UnicodeDecodeError, ijson.JSONError) as e:
            failed += 1
            progress.log_error(f"{path}: {e}")

    progress.finish(rendered, failed)
    return 1 if failed else 0
