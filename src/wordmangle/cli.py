"""Command line text sanitization / data masking tool.

Reads a document on stdin and writes the mangled version to stdout::

    echo "Hello world!" | manglefile --corpus=corpus.txt --secret=replace-with-a-secure-passphrase
"""

from __future__ import annotations

import argparse
import cProfile
import sys
from typing import Optional, Sequence

from .config import MIN_SECRET_LENGTH
from .corpus import read_corpus
from .errors import MangleError
from .logging_config import setup_logging
from .mangler import Mangler

PROFILE_FILE = "profile"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="manglefile",
        description=(
            "Simple command line text sanitization / data masking tool. "
            "Accepts input on stdin and writes output on stdout."
        ),
    )
    parser.add_argument(
        "--corpus",
        default="corpus.txt",
        help="File containing corpus of words to use as replacements.",
    )
    parser.add_argument(
        "--secret",
        default="",
        help=f"Required. A secret, used as a salt - must be at least {MIN_SECRET_LENGTH} characters.",
    )
    parser.add_argument(
        "--type",
        dest="filetype",
        choices=["text", "html"],
        default="text",
        help='The file type: "text" (default) or "html".',
    )
    parser.add_argument(
        "--profile",
        action="store_true",
        help=f"Store performance profiling data in ./{PROFILE_FILE}.",
    )
    parser.add_argument("--log-level", default="WARNING", help="Logging level for diagnostics on stderr.")
    return parser


def main(argv: Optional[Sequence[str]] = None, stdin=None, stdout=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logger = setup_logging(None, level=args.log_level, environment="cli")

    if not args.secret:
        parser.print_help(sys.stderr)
        return 0
    if len(args.secret) < MIN_SECRET_LENGTH:
        logger.error(
            "Secret is too short",
            extra={"error": "ConfigurationError", "detail": f"minimum {MIN_SECRET_LENGTH} characters"},
        )
        return 1

    try:
        corpus = read_corpus(args.corpus)
    except (OSError, MangleError) as exc:
        logger.error("Corpus read error", extra={"error": exc.__class__.__name__, "detail": str(exc)})
        return 1

    reader = stdin if stdin is not None else sys.stdin.buffer
    writer = stdout if stdout is not None else sys.stdout.buffer
    mangler = Mangler(corpus, args.secret)
    run = mangler.mangle_html if args.filetype == "html" else mangler.mangle_stream

    profiler = cProfile.Profile() if args.profile else None
    try:
        if profiler is not None:
            profiler.enable()
        run(reader, writer)
        writer.flush()
    except (OSError, MangleError) as exc:
        logger.error("Mangling failed", extra={"error": exc.__class__.__name__, "detail": str(exc)})
        return 1
    finally:
        if profiler is not None:
            profiler.disable()
            profiler.dump_stats(PROFILE_FILE)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
