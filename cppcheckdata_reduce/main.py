#!/usr/bin/env python3
"""cppcheckdata_reduce/main.py — CLI entry-point for the reduction passes.

Usage examples
--------------
    # How many instances does the pass have on this program?
    cppcheck-reduce prog.c.dump --query-instances

    # Reduce the 2nd candidate and print the rewritten source
    cppcheck-reduce prog.c.dump --counter 2

    # Same, running cppcheck first and rewriting the file in place
    cppcheck-reduce prog.c --cppcheck cppcheck --counter 2 --in-place

    # Show the ordered candidates and the classification tables
    cppcheck-reduce prog.c.dump --list-candidates --format sexp

    # List the available transformations
    cppcheck-reduce --transformations

The tool is shaped for an outer reduction loop: each invocation performs
at most one transformation and reports through its exit code.

Exit codes
----------
    0   Success (transformation applied, or query answered).
    1   Internal error; nothing was written.
    2   Infrastructure failure (missing dump, cppcheck, source file,
        bad arguments).
    3   No instance for the requested counter; nothing was written.

The module doubles as ``python -m cppcheckdata_reduce`` via the companion
``cppcheckdata_reduce/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import textwrap
from pathlib import Path
from typing import Dict, List, Optional, Sequence, TextIO

from . import __version__
from .errors import FrontendError, ReduceError, UsageError
from .frontend import (
    SourceLoader,
    load_dump,
    run_cppcheck,
    select_configuration,
)
from .report import FORMATS, render, render_transformations
from .transformation import (
    PassConfig,
    TransformationResult,
    TransformationStatus,
    available_transformations,
    get_transformation,
)

_log = logging.getLogger("cppcheckdata_reduce")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2
EXIT_NO_INSTANCE: int = 3

DEFAULT_TRANSFORMATION = "reduce-pointer-level"


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``cppcheckdata_reduce`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("cppcheckdata_reduce")
    root.setLevel(level)
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)


def _open_output(dest: Optional[str]) -> TextIO:
    """Return a writable text stream.

    *dest* ``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path
    for writing (creating parent directories as needed).
    """
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8", newline="")


def _source_roots(args: argparse.Namespace, dump_path: Path) -> List[str]:
    """``--source-root`` directories, then the dump's directory, then CWD."""
    roots = list(args.source_root or [])
    roots.append(str(dump_path.parent))
    roots.append(os.getcwd())
    return roots


def _write_rewritten(
    args: argparse.Namespace,
    rewritten: Dict[str, str],
    loader: SourceLoader,
) -> int:
    if args.in_place:
        for name, text in rewritten.items():
            path = loader.resolved.get(name, Path(name))
            _log.info("Rewriting %s in place", path)
            with open(path, "w", encoding=loader.encoding, newline="") as fh:
                fh.write(text)
        return EXIT_OK

    if len(rewritten) != 1:
        _log.error(
            "the transformation touched %d files (%s); use --in-place",
            len(rewritten), ", ".join(sorted(rewritten)),
        )
        return EXIT_INFRA

    (text,) = rewritten.values()
    out = _open_output(args.output)
    try:
        out.write(text)
    finally:
        if out is not sys.stdout:
            out.close()
    return EXIT_OK


def _exit_code(result: TransformationResult) -> int:
    if result.status is TransformationStatus.NO_INSTANCE:
        return EXIT_NO_INSTANCE
    if result.status is TransformationStatus.INTERNAL_ERROR:
        return EXIT_ERROR
    return EXIT_OK


# ===========================================================================
# Command implementation
# ===========================================================================

def cmd_transform(args: argparse.Namespace) -> int:
    """Run one transformation invocation.

    Workflow:
        1. Optionally run ``cppcheck --dump`` on a C source.
        2. Parse the ``.dump`` file and pick a configuration.
        3. Analyse, select instance ``--counter`` and rewrite.
        4. Write the rewritten source and report the outcome.
    """
    pass_cls = get_transformation(args.transformation)

    if args.cppcheck:
        dump_path = run_cppcheck(args.dump, cppcheck=args.cppcheck)
    else:
        dump_path = Path(args.dump)
    data = load_dump(str(dump_path))
    cfg = select_configuration(data, args.configuration)

    config = PassConfig(source_roots=tuple(_source_roots(args, dump_path)))
    loader = SourceLoader(roots=config.source_roots, encoding=config.encoding)
    transformation = pass_cls(config=config, loader=loader)

    query_only = args.query_instances or args.list_candidates
    result = transformation.run(cfg, counter=args.counter, query_only=query_only)

    if query_only:
        sys.stdout.write(render(result, args.format, with_candidates=args.list_candidates) + "\n")
        return EXIT_OK

    if result.status is TransformationStatus.OK:
        code = _write_rewritten(args, result.rewritten, loader)
        if code != EXIT_OK:
            return code
        if args.format != "text" or args.verbose:
            sys.stderr.write(render(result, args.format) + "\n")
        return EXIT_OK

    sys.stderr.write(render(result, args.format) + "\n")
    return _exit_code(result)


# ===========================================================================
# Argument parser
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="cppcheck-reduce",
        description=(
            "Program-reduction passes over cppcheck dump files.\n\n"
            "Each invocation applies one instance of a transformation,\n"
            "chosen by --counter, and writes the rewritten source."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              cppcheck-reduce prog.c.dump --query-instances
              cppcheck-reduce prog.c.dump --counter 2 -o reduced.c
              cppcheck-reduce prog.c --cppcheck cppcheck --in-place
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )
    parser.add_argument(
        "dump",
        nargs="?",
        help="cppcheck .dump file (a C source when --cppcheck is given).",
    )

    g = parser.add_argument_group("transformation")
    g.add_argument(
        "--transformation",
        default=DEFAULT_TRANSFORMATION,
        metavar="NAME",
        help=f"Transformation to run (default: {DEFAULT_TRANSFORMATION}).",
    )
    g.add_argument(
        "--transformations",
        action="store_true",
        help="List the available transformations and exit.",
    )
    g.add_argument(
        "--counter",
        type=int,
        default=1,
        metavar="K",
        help="1-based instance to transform (default: 1).",
    )
    g.add_argument(
        "--query-instances",
        action="store_true",
        help="Only report the number of instances.",
    )
    g.add_argument(
        "--list-candidates",
        action="store_true",
        help="Report the ordered candidates instead of transforming.",
    )

    g = parser.add_argument_group("input")
    g.add_argument(
        "--configuration",
        metavar="NAME",
        help="Preprocessor configuration of the dump (default: the first).",
    )
    g.add_argument(
        "--cppcheck",
        metavar="PATH",
        help="Run this cppcheck with --dump on the input first.",
    )
    g.add_argument(
        "--source-root",
        action="append",
        metavar="DIR",
        help="Directory to resolve source file names against (repeatable).",
    )

    g = parser.add_argument_group("output")
    dest = g.add_mutually_exclusive_group()
    dest.add_argument(
        "-o", "--output",
        default="-",
        metavar="PATH",
        help="Write the rewritten source here ('-' for stdout, the default).",
    )
    dest.add_argument(
        "--in-place",
        action="store_true",
        help="Overwrite the rewritten source files.",
    )
    g.add_argument(
        "--format",
        choices=FORMATS,
        default="text",
        help="Report format (default: text).",
    )
    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    if args.transformations:
        sys.stdout.write(render_transformations(available_transformations()) + "\n")
        return EXIT_OK

    if args.dump is None:
        parser.print_usage(sys.stderr)
        _log.error("no dump file given")
        return EXIT_INFRA

    try:
        return cmd_transform(args)
    except (FrontendError, UsageError) as exc:
        sys.stderr.write(f"{exc}\n")
        return EXIT_INFRA
    except ReduceError as exc:
        sys.stderr.write(f"{exc}\n")
        return EXIT_ERROR
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130  # Standard UNIX convention for SIGINT
    except OSError as exc:
        _log.error("I/O error: %s", exc)
        return EXIT_INFRA


# ---------------------------------------------------------------------------
# Module execution support
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    raise SystemExit(main())
