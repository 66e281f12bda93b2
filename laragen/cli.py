# File: laragen/cli.py
"""
laragen - Command-Line Interface
=================================

Built with the standard-library ``argparse`` module.

Usage examples::

    # Generate into a Laravel project (clean mode)
    laragen generate schema.json --project-root ./my-app

    # Keep hand-edited files, merge the generated sections only
    laragen generate schema.json --project-root ./my-app --merge

    # Show what would be generated and cleaned up, write nothing
    laragen generate schema.json --project-root ./my-app --preview

    # Only models and migrations
    laragen generate schema.json --only models,migrations

    # Validate only
    laragen validate schema.json

Exit codes:
    0 — success
    1 — validation error
    2 — generation error
    3 — I/O error
    4 — input error (schema not found, invalid JSON, corrupt manifest)
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING, List, NoReturn, Optional, Sequence

from laragen.errors import InvalidSchemaJson, IOFailure, SchemaNotFound

if TYPE_CHECKING:
    from laragen.generator import GenerationReport

# ---------------------------------------------------------------------------
# Logger (configured in _setup_logging)
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("laragen")


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------

EXIT_SUCCESS: int = 0
EXIT_VALIDATION_ERROR: int = 1
EXIT_GENERATION_ERROR: int = 2
EXIT_IO_ERROR: int = 3
EXIT_INPUT_ERROR: int = 4


# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------


def _setup_logging(verbosity: int) -> None:
    """
    Configure the laragen logger based on verbosity level.

    Args:
        verbosity: 0 = WARNING, 1 = INFO, 2+ = DEBUG.
    """
    if verbosity >= 2:
        level = logging.DEBUG
    elif verbosity >= 1:
        level = logging.INFO
    else:
        level = logging.WARNING

    handler: logging.StreamHandler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    fmt: str = "%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s"
    datefmt: str = "%H:%M:%S"
    handler.setFormatter(logging.Formatter(fmt, datefmt=datefmt))

    root_logger: logging.Logger = logging.getLogger("laragen")
    root_logger.setLevel(level)

    # Remove existing handlers to prevent duplication
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.propagate = False


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _add_verbosity(parser: argparse.ArgumentParser) -> None:
    group = parser.add_argument_group("verbosity")
    group.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v for INFO, -vv for DEBUG).",
    )
    group.add_argument(
        "-q", "--quiet",
        action="store_true",
        default=False,
        help="Suppress all log output.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    from laragen import __version__

    parser: argparse.ArgumentParser = argparse.ArgumentParser(
        prog="laragen",
        description=(
            "laragen — schema-driven Laravel code generator.\n\n"
            "Turns a JSON schema of entities, fields, relations, routes, "
            "policies and observers into models, migrations, controllers, "
            "routes, factories, seeders, policies and observers, and keeps "
            "them in step with the schema across runs."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Examples:\n"
            "  %(prog)s generate schema.json --project-root ./my-app\n"
            "  %(prog)s generate schema.json --merge --only models,routes\n"
            "  %(prog)s generate schema.json --preview\n"
            "  %(prog)s validate schema.json\n"
        ),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"laragen v{__version__}",
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    # --- generate ---
    generate = commands.add_parser(
        "generate",
        help="Generate Laravel files from a schema.",
        description="Generate Laravel files from a schema and update the manifest.",
    )
    generate.add_argument(
        "schema",
        type=str,
        metavar="SCHEMA",
        help="Path to the JSON schema file.",
    )
    generate.add_argument(
        "-p", "--project-root",
        type=str,
        default=".",
        metavar="DIR",
        help="Root of the Laravel project (default: current directory).",
    )

    mode_group = generate.add_argument_group("operation modes")
    mode_group.add_argument(
        "--clean",
        action="store_true",
        default=False,
        help="Delete obsolete files and regenerate everything (default).",
    )
    mode_group.add_argument(
        "--merge",
        action="store_true",
        default=False,
        help="Keep existing files; merge generated sections into routes and seeders.",
    )
    mode_group.add_argument(
        "--preview",
        action="store_true",
        default=False,
        help="Report required and obsolete files without writing anything.",
    )
    mode_group.add_argument(
        "--dry-run",
        action="store_true",
        default=False,
        help="Alias of --preview.",
    )

    behaviour_group = generate.add_argument_group("behaviour flags")
    behaviour_group.add_argument(
        "--only",
        type=str,
        default=None,
        metavar="KINDS",
        help=(
            "Comma-separated components to generate: models, migrations, "
            "controllers, routes, factories, seeders, policies, observers, "
            "auth, providers."
        ),
    )
    behaviour_group.add_argument(
        "--force",
        action="store_true",
        default=False,
        help="Regenerate even when the schema is unchanged.",
    )
    behaviour_group.add_argument(
        "--no-env",
        action="store_true",
        default=False,
        help="Do not update the project's .env file.",
    )
    _add_verbosity(generate)

    # --- validate ---
    validate = commands.add_parser(
        "validate",
        help="Validate a schema without generating anything.",
        description="Validate a schema and print the error and warning report.",
    )
    validate.add_argument(
        "schema",
        type=str,
        metavar="SCHEMA",
        help="Path to the JSON schema file.",
    )
    _add_verbosity(validate)

    return parser


# ---------------------------------------------------------------------------
# Validate
# ---------------------------------------------------------------------------


def _run_validate(schema_path: Path) -> int:
    """
    Run validation only (no code generation).

    Returns the appropriate exit code.
    """
    from laragen.generator import LaravelGenerator
    from laragen.utils import Timer

    logger.info("Running validation for: %s", schema_path)

    with Timer("validation") as t:
        try:
            schema, result = LaravelGenerator().validate_file(schema_path)
        except (SchemaNotFound, InvalidSchemaJson) as exc:
            logger.error("Failed to load schema: %s", exc)
            print(f"✗ {exc}", file=sys.stderr)
            return EXIT_INPUT_ERROR
        except IOFailure as exc:
            logger.error("%s", exc)
            print(f"✗ {exc}", file=sys.stderr)
            return EXIT_IO_ERROR

    print(f"\n{'='*50}")
    print("  Schema Validation Report")
    print(f"{'='*50}")
    print(f"  File:     {schema_path.name}")
    print(f"  Project:  {schema.project}")
    print(f"  Entities: {len(schema.entities)}")
    print(f"  Pivots:   {len(schema.pivots)}")
    print(f"  Time:     {t.elapsed:.3f}s")
    print(f"  Valid:    {'Yes' if result.is_valid else 'No'}")

    if result.errors:
        print(f"\n  Errors ({result.error_count}):")
        for err in result.errors:
            print(f"    ✗ {err}")

    if result.warnings:
        print(f"\n  Warnings ({result.warning_count}):")
        for warn in result.warnings:
            print(f"    ⚠ {warn}")

    if result.is_valid and not result.warnings:
        print("\n  ✅ All validations passed!")

    print(f"{'='*50}\n")

    return EXIT_SUCCESS if result.is_valid else EXIT_VALIDATION_ERROR


# ---------------------------------------------------------------------------
# Generate
# ---------------------------------------------------------------------------


def exit_code_for(report: GenerationReport) -> int:
    """Map a finished run onto the documented exit codes."""
    if report.success:
        return EXIT_SUCCESS
    if report.input_errors:
        return EXIT_INPUT_ERROR
    if report.validation_errors:
        return EXIT_VALIDATION_ERROR
    if report.generation_errors:
        return EXIT_GENERATION_ERROR
    return EXIT_IO_ERROR


def _run_generation(
    schema_path: Path,
    project_root: Path,
    args: argparse.Namespace,
) -> int:
    """
    Run the full generation pipeline.

    Returns the appropriate exit code.
    """
    from laragen.generator import GenerationOptions, LaravelGenerator
    from laragen.reconciler import resolve_mode

    options = GenerationOptions(
        mode=resolve_mode(
            clean=args.clean,
            merge=args.merge,
            preview=args.preview,
            dry_run=args.dry_run,
        ),
        only=args.only,
        force=args.force,
        write_env=not args.no_env,
    )
    logger.info("Mode:    %s", options.mode.value)
    logger.info("Only:    %s", ",".join(options.only) or "all")

    report = LaravelGenerator(options).generate_from_file(
        schema_path=schema_path,
        project_root=project_root,
    )

    print(report.summary())
    return exit_code_for(report)


# ---------------------------------------------------------------------------
# Main entry point
# ---------------------------------------------------------------------------


def cli_main(argv: Optional[Sequence[str]] = None) -> NoReturn:
    """
    Main CLI entry point.

    Can be called from ``__main__.py`` or directly for testing.

    Args:
        argv: Optional argument list (defaults to sys.argv[1:]).
    """
    parser: argparse.ArgumentParser = _build_parser()
    args: argparse.Namespace = parser.parse_args(argv)

    # --- Verbosity ---
    if args.quiet:
        verbosity: int = -1
        logging.disable(logging.CRITICAL)
    else:
        verbosity = args.verbose
        logging.disable(logging.NOTSET)

    _setup_logging(verbosity)

    schema_path: Path = Path(args.schema).resolve()

    if args.command == "validate":
        exit_code: int = _run_validate(schema_path)
        sys.exit(exit_code)

    project_root: Path = Path(args.project_root).resolve()
    if project_root.exists() and not project_root.is_dir():
        logger.error("Project root is not a directory: %s", project_root)
        sys.exit(EXIT_INPUT_ERROR)

    logger.info("Schema:  %s", schema_path)
    logger.info("Project: %s", project_root)

    exit_code = _run_generation(schema_path, project_root, args)

    if exit_code == EXIT_SUCCESS:
        logger.info("Generation completed successfully.")
    else:
        logger.error("Generation failed with exit code %d.", exit_code)

    sys.exit(exit_code)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "cli_main",
    "exit_code_for",
    "EXIT_SUCCESS",
    "EXIT_VALIDATION_ERROR",
    "EXIT_GENERATION_ERROR",
    "EXIT_IO_ERROR",
    "EXIT_INPUT_ERROR",
]

logger.debug("laragen.cli loaded.")
