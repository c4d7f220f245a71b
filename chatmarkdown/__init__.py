"""Markdown with math to HTML renderer for chat messages."""

import argparse
import logging
from pathlib import Path
from typing import Optional

from chatmarkdown.batch import render_messages
from chatmarkdown.core.markdown import format_markdown
from chatmarkdown.core.models import RenderOptions
from chatmarkdown.progress import ProgressHandler

logger = logging.getLogger(__name__)

__all__ = ["RenderOptions", "format_markdown", "main"]


def main(argv: Optional[list[str]] = None) -> int:
    """
    main entry point for chatmarkdown CLI.

    Args:
        argv: command line arguments (defaults to sys.argv[1:])

    Returns:
        exit code (0 success, 1 partial failure, 2 fatal error)
    """
    parser = argparse.ArgumentParser(
        description="Render chat messages with markdown and math to HTML"
    )
    parser.add_argument(
        "source",
        help="markdown/text file, JSON list of messages, or directory",
    )
    parser.add_argument(
        "-o",
        "--output",
        help="directory for rendered .html files (default: stdout)",
    )
    parser.add_argument(
        "--site-url",
        help="site URL used to recognize internal links",
    )
    parser.add_argument(
        "--search",
        action="append",
        default=[],
        metavar="TERM",
        help="highlight search term (repeatable, trailing * for prefix)",
    )
    parser.add_argument(
        "--singleline",
        action="store_true",
        help="suppress hard line breaks and render paragraphs inline",
    )
    parser.add_argument(
        "--header-prefix",
        default="",
        help="prefix for heading ids",
    )
    parser.add_argument(
        "--progress",
        action="store_true",
        help="show progress bar",
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="only print errors",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="enable debug logging",
    )

    args = parser.parse_args(argv)

    # configures logging
    level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="[%(levelname)s] %(message)s",
    )

    # validates source path exists
    source_path = Path(args.source)
    if not source_path.exists():
        logger.error("Source not found: %s", args.source)
        return 2

    options = RenderOptions(
        search_patterns=tuple(args.search) or None,
        site_url=args.site_url,
        singleline=args.singleline,
        header_prefix=args.header_prefix,
    )

    try:
        with ProgressHandler(quiet=args.quiet, show_progress=args.progress) as progress:
            return render_messages(
                source=source_path,
                output_dir=Path(args.output) if args.output else None,
                options=options,
                progress=progress,
            )
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.error("Fatal error: %s", e)
        return 2
