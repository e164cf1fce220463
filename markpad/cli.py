#!/usr/bin/env python
"""
Command-line interface for Markpad
"""

import argparse
import logging
import sys
from pathlib import Path

# Add parent directory to path to import markpad
sys.path.insert(0, str(Path(__file__).parent.parent))

from markpad.version_info import __version__, __build_timestamp__, __build_type__
from markpad.core.config import FeatureFlags, RenderOptions, WORDS_PER_MINUTE, load_render_config
from markpad.core.errors import MarkpadError
from markpad.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def print_version():
    """Print version information."""
    print(f"Markpad v{__version__}")
    print(f"Build: {__build_timestamp__}")
    print(f"Build Type: {__build_type__}")


def read_source(path: str) -> str:
    """Read a markdown file, '-' meaning stdin."""
    if path == '-':
        return sys.stdin.read()
    return Path(path).read_text(encoding='utf-8')


def write_output(text: str, output) -> None:
    if output:
        Path(output).write_text(text, encoding='utf-8')
        logger.info(f"Wrote {len(text)} chars to {output}")
    else:
        sys.stdout.write(text)
        if not text.endswith('\n'):
            sys.stdout.write('\n')


def resolve_flags(args) -> tuple:
    """Flags and options from --config, then --only, then --disable."""
    if args.config:
        flags, options = load_render_config(Path(args.config))
    else:
        flags, options = FeatureFlags(), RenderOptions()
    if args.only:
        flags = flags.only(*args.only)
    if args.disable:
        flags = flags.without(*args.disable)
    return flags, options


def cmd_render(args) -> int:
    from markpad.core.renderer import MarkdownRenderer

    flags, options = resolve_flags(args)
    if args.unsafe_no_sanitize:
        logger.warning("Rendering without a sanitizer: output is NOT safe to embed")
        renderer = MarkdownRenderer(sanitizer=None, options=options)
    else:
        renderer = MarkdownRenderer(options=options)

    result = renderer.render_result(read_source(args.file), flags)
    if result.failed_stages:
        logger.warning(f"Stages failed during render: {', '.join(result.failed_stages)}")
    write_output(result.html, args.output)
    return 0


def cmd_toc(args) -> int:
    from markpad.core.document import generate_table_of_contents

    write_output(generate_table_of_contents(read_source(args.file)), args.output)
    return 0


def cmd_stats(args) -> int:
    from markpad.core.document import extract_headings, get_reading_time, get_word_count
    from markpad.editing.text_utils import get_text_metrics

    text = read_source(args.file)
    metrics = get_text_metrics(text)
    print(f"Words:        {get_word_count(text)}")
    print(f"Characters:   {metrics.chars}")
    print(f"Lines:        {metrics.lines}")
    print(f"Headings:     {len(extract_headings(text))}")
    print(f"Reading time: {get_reading_time(text, args.wpm)} min")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='markpad',
        description=f'Markpad v{__version__}',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  markpad --version                        Show version information
  markpad render README.md                 Render to sanitized HTML on stdout
  markpad render README.md -o out.html     Render to a file
  markpad render doc.md --disable tables   Render with tables turned off
  markpad toc README.md                    Print the table of contents
  markpad stats README.md                  Word count and reading time
        """
    )

    parser.add_argument(
        '--version', '-v',
        action='store_true',
        help='Show version information'
    )
    parser.add_argument(
        '--debug', '-d',
        action='store_true',
        help='Verbose logging to the console'
    )
    parser.add_argument(
        '--log-dir',
        type=Path,
        default=None,
        help='Also write a rotating log file into this directory'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    render_parser = subparsers.add_parser('render', help='Render markdown to HTML')
    render_parser.add_argument('file', help="Markdown file, or '-' for stdin")
    render_parser.add_argument('--output', '-o', help='Write HTML here instead of stdout')
    render_parser.add_argument('--config', '-c', help='JSON file with "features" and "options"')
    render_parser.add_argument(
        '--disable',
        action='append',
        metavar='FEATURE',
        help='Turn a feature off (repeatable)'
    )
    render_parser.add_argument(
        '--only',
        action='append',
        metavar='FEATURE',
        help='Turn every feature off except these (repeatable)'
    )
    render_parser.add_argument(
        '--unsafe-no-sanitize',
        action='store_true',
        help='Skip the sanitizer (the output must be sanitized elsewhere)'
    )
    render_parser.set_defaults(handler=cmd_render)

    toc_parser = subparsers.add_parser('toc', help='Print the table of contents as HTML')
    toc_parser.add_argument('file', help="Markdown file, or '-' for stdin")
    toc_parser.add_argument('--output', '-o', help='Write HTML here instead of stdout')
    toc_parser.set_defaults(handler=cmd_toc)

    stats_parser = subparsers.add_parser('stats', help='Show document statistics')
    stats_parser.add_argument('file', help="Markdown file, or '-' for stdin")
    stats_parser.add_argument(
        '--wpm',
        type=int,
        default=WORDS_PER_MINUTE,
        help=f'Reading speed in words per minute (default: {WORDS_PER_MINUTE})'
    )
    stats_parser.set_defaults(handler=cmd_stats)

    return parser


def main(argv=None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print_version()
        return 0

    if args.command is None:
        parser.print_help()
        return 1

    setup_logging(args.log_dir, debug_mode=args.debug)

    try:
        return args.handler(args)
    except MarkpadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    except OSError as e:
        logger.debug("I/O failure", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2


if __name__ == '__main__':
    sys.exit(main())
