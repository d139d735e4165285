"""Command line interface for jira-md-sync."""

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Callable, Sequence
from pathlib import Path

from dotenv import load_dotenv

from . import __version__
from .async_utils import gather_limited, init_semaphore, run_sync_limited
from .config import Config, load_config
from .config_loader import discover_config_files, ensure_config, load_hierarchical_config
from .config_schema import build_config, to_fallbacks
from .converters.adf_to_jirawiki import adf_to_jirawiki, adf_to_markdown
from .converters.common import ConversionResult
from .converters.jirawiki_to_markdown import jirawiki_to_markdown
from .converters.markdown_to_jirawiki import convert_with_warnings
from .diff import ChangeKind, compare_dirs
from .errors import JiraMdError
from .file_handler import read_file_async, read_file_with_encoding, write_file
from .logger import setup_logging
from .ticket import Ticket, has_front_matter

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jira-md-sync",
        description="Convert Jira tickets between wiki markup, ADF and Markdown files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Wiki markup to Markdown on stdout
  jira-md-sync to-markdown description.wiki

  # Convert several files; results are written next to the inputs
  jira-md-sync to-wiki tickets/PROJ-1.md tickets/PROJ-2.md

  # ADF document (API v3 description) to Markdown
  jira-md-sync adf --markdown description.json -o PROJ-1.md

  # List local ticket edits not yet pushed
  jira-md-sync status
        """,
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", help="Also append log records to this file")
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default="text",
        help="Log record format (default: text)",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"jira-md-sync version {__version__}",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    to_md = sub.add_parser("to-markdown", help="Convert wiki markup files to Markdown")
    to_md.add_argument("files", nargs="+", type=Path, metavar="FILE")
    to_md.add_argument("-o", "--output", type=Path, help="Output file (single input only)")

    to_wiki = sub.add_parser("to-wiki", help="Convert Markdown files to wiki markup")
    to_wiki.add_argument("files", nargs="+", type=Path, metavar="FILE")
    to_wiki.add_argument("-o", "--output", type=Path, help="Output file (single input only)")
    to_wiki.add_argument(
        "--escape-macros",
        action="store_true",
        help="Escape { and } in plain text so they cannot start a macro",
    )

    adf = sub.add_parser("adf", help="Convert an ADF JSON document to wiki markup")
    adf.add_argument("file", type=Path, metavar="FILE.json")
    adf.add_argument("-o", "--output", type=Path, help="Output file")
    adf.add_argument(
        "--markdown", action="store_true", help="Emit Markdown instead of wiki markup"
    )

    status = sub.add_parser("status", help="Show local ticket changes against the cache")
    status.add_argument("--directory", help="Ticket directory")
    status.add_argument("--cache-directory", help="Cache directory of the last fetch")

    sub.add_parser("init", help="Write a starter config file")
    return parser


def _resolve_config(args: argparse.Namespace) -> Config:
    """CLI args > env vars (.env loaded first) > YAML config > defaults."""
    yaml_fallbacks = None
    if discover_config_files():
        yaml_fallbacks = to_fallbacks(build_config(load_hierarchical_config()))

    return load_config(
        directory=getattr(args, "directory", None),
        cache_directory=getattr(args, "cache_directory", None),
        escape_macros=getattr(args, "escape_macros", False),
        debug=args.debug,
        log_file=args.log_file,
        yaml_fallbacks=yaml_fallbacks,
    )


def _emit(text: str, output: Path | None) -> None:
    if output is None:
        sys.stdout.write(text + "\n")
    else:
        write_file(output, text + "\n")
        logger.info("Wrote %s", output)


async def _convert_one(
    path: Path, convert: Callable[[str], ConversionResult]
) -> ConversionResult:
    content, encoding = await read_file_async(path)
    logger.debug("Read %s (%s, %d chars)", path, encoding, len(content))
    result = await run_sync_limited(convert, content)
    for warning in result.warnings:
        logger.warning("%s: %s", path, warning)
    return result


async def _convert_all(
    paths: Sequence[Path],
    convert: Callable[[str], ConversionResult],
    max_workers: int,
) -> list[ConversionResult]:
    init_semaphore(max_workers)
    return await gather_limited([_convert_one(p, convert) for p in paths])


def _convert_files(
    args: argparse.Namespace,
    config: Config,
    convert: Callable[[str], ConversionResult],
    suffix: str,
) -> int:
    files: list[Path] = args.files
    if args.output is not None and len(files) > 1:
        raise ValueError("--output can only be used with a single input file")

    results = asyncio.run(_convert_all(files, convert, config.max_workers))

    if len(files) == 1:
        _emit(results[0].text, args.output)
        return 0
    for path, result in zip(files, results):
        _emit(result.text, path.with_suffix(suffix))
    return 0


def _cmd_to_markdown(args: argparse.Namespace, config: Config) -> int:
    return _convert_files(args, config, jirawiki_to_markdown, ".md")


def _cmd_to_wiki(args: argparse.Namespace, config: Config) -> int:
    def convert(text: str) -> ConversionResult:
        # Ticket files: only the description body is markup
        if has_front_matter(text):
            text = Ticket.from_markdown(text).body
        return convert_with_warnings(text, escape_macros=config.escape_macros)

    return _convert_files(args, config, convert, ".wiki")


def _cmd_adf(args: argparse.Namespace, config: Config) -> int:
    content, _ = read_file_with_encoding(args.file)
    data = json.loads(content)
    text = adf_to_markdown(data) if args.markdown else adf_to_jirawiki(data)
    _emit(text, args.output)
    return 0


def _cmd_status(args: argparse.Namespace, config: Config) -> int:
    directory = Path(config.directory)
    if not directory.is_dir():
        raise ValueError(f"Ticket directory not found: {directory}")

    results = [r for r in compare_dirs(directory, config.cache_directory) if r.has_diff]
    if not results:
        print("No local changes.")
        return 0

    for result in results:
        print(f"{result.kind.value:<9} {result.key or '-':<12} {result.file_path}")
        if result.kind is ChangeKind.MODIFIED:
            print(result.diff_text.rstrip("\n"))
    return 0


def _cmd_init(args: argparse.Namespace, config: Config) -> int:
    path = ensure_config()
    print(f"Config file: {path}")
    return 0


_COMMANDS: dict[str, Callable[[argparse.Namespace, Config], int]] = {
    "to-markdown": _cmd_to_markdown,
    "to-wiki": _cmd_to_wiki,
    "adf": _cmd_adf,
    "status": _cmd_status,
    "init": _cmd_init,
}


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI and return the process exit code."""
    args = _build_parser().parse_args(argv)

    # .env first so ${VAR} interpolation in YAML can use its values
    load_dotenv()
    setup_logging(debug=args.debug, log_file=args.log_file, debug_format=args.log_format)

    try:
        config = _resolve_config(args)
        return _COMMANDS[args.command](args, config)
    except (JiraMdError, ValueError, OSError) as e:
        logger.debug("Command %s failed", args.command, exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    run()
