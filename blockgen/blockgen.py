"""Command-line entry point."""

from __future__ import annotations

import json
import logging
import sys

from .backend.dispatch import EmitOptions
from .backend.php import emit_php
from .errors import LoadError
from .frontend.blocks import program_to_dict
from .frontend.load import load_program

logger = logging.getLogger(__name__)

TARGETS: list[str] = [
    "php",
]

PHASES: list[str] = [
    "load",
]

USAGE: str = """\
blockgen [OPTIONS] [INPUT] [-o OUTPUT]

Options:
  --target TARGET     Output language: php
  --stop-at PHASE     Stop after phase: load
  --indent N          Spaces per indentation level (default 2)
  --no-header         Omit the <?php opening tag
  -v, --verbose       Log engine activity to stderr
  -o, --output FILE   Write output to FILE instead of stdout
  --help              Show this help message
"""

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def read_source(input_file: str | None) -> tuple[str, int]:
    """Read source from file or stdin. Returns (source, exit_code) where exit_code 0 means OK."""
    if input_file is not None:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            print("error: cannot open '" + input_file + "'", file=sys.stderr)
            return ("", 1)
    else:
        raw = sys.stdin.buffer.read()
    if len(raw) > 0:
        try:
            source = raw.decode("utf-8")
        except ValueError:
            print("error: invalid utf-8 in input", file=sys.stderr)
            return ("", 1)
        return (source, 0)
    return ("", 0)


def write_output(output: str, output_file: str | None) -> int:
    """Write output to file or stdout. Returns 0 on success, 1 on error."""
    if output_file is not None:
        try:
            with open(output_file, "w") as f:
                f.write(output)
        except OSError:
            print("error: cannot write '" + output_file + "'", file=sys.stderr)
            return 1
        return 0
    sys.stdout.write(output)
    return 0


def _print_errors(errors: list[object]) -> None:
    """Print a list of error objects to stderr."""
    for error in errors:
        print(str(error), file=sys.stderr)


def run_pipeline(
    source: str, target: str, stop_at: str | None, options: EmitOptions
) -> tuple[int, str]:
    """Run load and emission. Returns (exit_code, output)."""
    # Phase 1: Load
    try:
        program = load_program(source)
    except LoadError as e:
        _print_errors([e])
        return (1, "")
    logger.debug("loaded %d top-level blocks", len(program.blocks))
    if stop_at == "load":
        return (0, json.dumps(program_to_dict(program), indent=2) + "\n")
    # Phase 2: Emit
    emitters = {
        "php": emit_php,
    }
    if target not in emitters:
        print("error: backend not yet implemented for '" + target + "'", file=sys.stderr)
        return (1, "")
    result = emitters[target](program, options)
    errors = result.errors()
    if len(errors) > 0:
        _print_errors(errors)
        return (1, "")
    return (0, result.output)


def _usage_error(message: str) -> None:
    print("error: " + message, file=sys.stderr)
    sys.exit(2)


def parse_args(
    args: list[str],
) -> tuple[str, str | None, EmitOptions, bool, str | None, str | None]:
    """Parse command-line arguments. Returns (target, stop_at, options, verbose, input_file, output_file)."""
    target = "php"
    stop_at: str | None = None
    options = EmitOptions()
    verbose = False
    input_file: str | None = None
    output_file: str | None = None
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            sys.exit(0)
        elif arg == "--target":
            if i + 1 >= len(args):
                _usage_error("--target requires an argument")
            target = args[i + 1]
            i += 2
        elif arg == "--stop-at":
            if i + 1 >= len(args):
                _usage_error("--stop-at requires an argument")
            stop_at = args[i + 1]
            i += 2
        elif arg == "--indent":
            if i + 1 >= len(args):
                _usage_error("--indent requires an argument")
            width = args[i + 1]
            if not width.isdigit():
                _usage_error("--indent expects a non-negative integer, got '" + width + "'")
            options.indent = " " * int(width)
            i += 2
        elif arg == "--no-header":
            options.header = False
            i += 1
        elif arg == "-v" or arg == "--verbose":
            verbose = True
            i += 1
        elif arg == "-o" or arg == "--output":
            if i + 1 >= len(args):
                _usage_error(arg + " requires an argument")
            output_file = args[i + 1]
            i += 2
        elif arg.startswith("-") and arg != "-":
            _usage_error("unknown flag '" + arg + "'")
        else:
            if input_file is not None:
                _usage_error("unexpected argument '" + arg + "'")
            input_file = None if arg == "-" else arg
            i += 1
    if stop_at is not None and stop_at not in PHASES:
        _usage_error("unknown phase '" + stop_at + "'")
    if target not in TARGETS:
        _usage_error("unknown target '" + target + "'")
    return (target, stop_at, options, verbose, input_file, output_file)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    target, stop_at, options, verbose, input_file, output_file = parse_args(
        sys.argv[1:] if argv is None else argv
    )
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
    source, err = read_source(input_file)
    if err != 0:
        return err
    if len(source.strip()) == 0:
        print("error: no input provided", file=sys.stderr)
        return 2
    exit_code, output = run_pipeline(source, target, stop_at, options)
    if exit_code != 0:
        return exit_code
    if len(output) > 0:
        return write_output(output, output_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
