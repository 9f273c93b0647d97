"""Command-line interface for friction."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import TYPE_CHECKING

from friction.config import AnalysisConfig
from friction.errors import FrictionError
from friction.logging import configure_logging
from friction.output import Output, Verbosity, configure_output

if TYPE_CHECKING:
    from argparse import Namespace

    from friction.knowledge import KnowledgeGraph
    from friction.pipeline import BatchResult


def get_version() -> str:
    """Get the friction version."""
    from friction import __version__

    return __version__


def setup_output(args: Namespace) -> Output:
    """Configure global output and logging based on CLI args."""
    if getattr(args, "quiet", False):
        verbosity = Verbosity.QUIET
    elif getattr(args, "debug", False):
        verbosity = Verbosity.DEBUG
    elif getattr(args, "verbose", False):
        verbosity = Verbosity.VERBOSE
    else:
        verbosity = Verbosity.NORMAL

    configure_logging(
        {
            Verbosity.QUIET: logging.ERROR,
            Verbosity.NORMAL: logging.WARNING,
            Verbosity.VERBOSE: logging.INFO,
            Verbosity.DEBUG: logging.DEBUG,
        }[verbosity]
    )

    return configure_output(
        verbosity=verbosity,
        json_format=getattr(args, "json", False),
        compact=getattr(args, "compact", False),
        no_color=getattr(args, "no_color", False),
    )


def load_config(args: Namespace) -> AnalysisConfig:
    """Load the config named by --config, else the nearest one found, else defaults.

    Raises:
        ConfigError: If the config file is invalid
        FileNotFoundError: If --config names a missing file
    """
    from friction.toml_config import find_config_file, load_toml_config

    if getattr(args, "config", None):
        return load_toml_config(Path(args.config))
    config_path = find_config_file(Path.cwd())
    if config_path is None:
        return AnalysisConfig()
    return load_toml_config(config_path)


def open_graph(args: Namespace, config: AnalysisConfig) -> KnowledgeGraph:
    from friction.knowledge import KnowledgeGraph

    if getattr(args, "graph", None):
        return KnowledgeGraph(Path(args.graph))
    return KnowledgeGraph(config.knowledge.graph_path)


def _print_session_report(output: Output, result: BatchResult) -> None:
    from friction.detectors import build_annotations
    from friction.duration import format_active_duration

    output.header(f"Sessions ({len(result.sessions)})")
    for session in result.sessions:
        active = format_active_duration(session.duration_analysis)
        output.info(
            f"{session.session_id}  {session.project_name}  {active}  "
            f"{len(session.tool_operations)} tool call(s)"
        )
        for annotation in build_annotations(result.findings.get(session.session_id, [])):
            output.info(f"  {annotation.severity.value}: {annotation.message}")
            output.verbose(f"    {annotation.suggestion}")
        for issue in session.data_quality_issues:
            output.verbose(f"  note: {issue}")

    struggling = len(result.struggling_sessions)
    output.print()
    output.success(
        f"Analyzed {len(result.sessions)} session(s) from {result.file_count} file(s), "
        f"{struggling} with struggle patterns"
    )
    if result.skipped_self_generated:
        output.info(f"Skipped {result.skipped_self_generated} self-generated session(s)")
    if result.corrupted_entries:
        output.info(f"Skipped {result.corrupted_entries} corrupted line(s)")
    if result.failures:
        output.warning(f"{len(result.failures)} file(s) could not be analyzed")
        for failure in result.failures:
            output.verbose(f"  {failure.path}: {failure.message}")


def cmd_analyze(args: Namespace) -> int:
    """Analyze assistant logs for struggle patterns."""
    from friction.discovery import default_log_root, find_log_files
    from friction.pipeline import BatchAnalyzer

    output = setup_output(args)

    try:
        config = load_config(args)
    except (FrictionError, FileNotFoundError) as e:
        output.error(f"Error loading config: {e}")
        return 1

    roots = [Path(p) for p in args.paths] or [default_log_root()]
    files: list[Path] = []
    for root in roots:
        files.extend(find_log_files(root))

    if not files:
        output.error(f"No log files found under {', '.join(str(r) for r in roots)}")
        return 1

    graph = None if args.no_graph else open_graph(args, config)

    try:
        analyzer = BatchAnalyzer(
            config,
            graph=graph,
            progress=lambda current, total, message: output.step(message),
        )
        result = analyzer.analyze(files)
    except FrictionError as e:
        output.error(e.to_result().to_compact())
        output.debug_traceback()
        return 1

    if output.is_structured:
        output.data(result.to_dict())
    else:
        _print_session_report(output, result)
    return 0


def cmd_similar(args: Namespace) -> int:
    """Find stored sessions sharing concepts or errors."""
    output = setup_output(args)

    if not args.concept and not args.error:
        output.error("Give at least one --concept or --error")
        return 1

    try:
        config = load_config(args)
        matches = open_graph(args, config).find_similar_sessions(args.concept, args.error)
    except (FrictionError, FileNotFoundError) as e:
        output.error(str(e))
        return 1

    matches = matches[: args.limit]
    if output.is_structured:
        output.data([m.to_dict() for m in matches])
        return 0

    if not matches:
        output.info("No similar sessions found")
        return 0

    output.header("Similar sessions")
    for match in matches:
        output.info(f"{match.similarity_score:>3}  {match.session_id}  ({match.project})")
        output.verbose(f"     concepts: {', '.join(match.concepts) or '-'}")
        output.verbose(f"     errors: {', '.join(match.errors) or '-'}")
    return 0


def cmd_solutions(args: Namespace) -> int:
    """Show solutions recorded for an error."""
    output = setup_output(args)

    try:
        config = load_config(args)
        matches = open_graph(args, config).get_solutions_for_error(args.error, args.concept)
    except (FrictionError, FileNotFoundError) as e:
        output.error(str(e))
        return 1

    matches = matches[: args.limit]
    if output.is_structured:
        output.data([m.to_dict() for m in matches])
        return 0

    if not matches:
        output.info(f"No solutions recorded for '{args.error}'")
        return 0

    output.header(f"Solutions for '{args.error}'")
    for match in matches:
        output.info(f"[{match.relevance_score:.2f}] {match.solution}")
        output.verbose(f"       from {match.session_id} ({match.project})")
    return 0


def _add_graph_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--graph",
        metavar="PATH",
        help="Knowledge graph file (default: from config, .friction/knowledge-connections.json)",
    )


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="friction",
        description="Find where AI coding sessions got stuck",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {get_version()}")

    # Global output options
    parser.add_argument("--json", "-j", action="store_true", help="Output in JSON format")
    parser.add_argument("--compact", "-c", action="store_true", help="Compact single-line output")
    parser.add_argument("--quiet", "-q", action="store_true", help="Quiet mode (errors only)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--debug", action="store_true", help="Debug output (most verbose)")
    parser.add_argument("--no-color", action="store_true", help="Disable colored output")
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Config file (default: nearest friction.toml or pyproject.toml [tool.friction])",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # analyze command
    analyze_parser = subparsers.add_parser("analyze", help="Analyze session logs")
    analyze_parser.add_argument(
        "paths",
        nargs="*",
        help="Log files or directories (default: ~/.claude/projects)",
    )
    _add_graph_argument(analyze_parser)
    analyze_parser.add_argument(
        "--no-graph",
        action="store_true",
        help="Do not record sessions in the knowledge graph",
    )
    analyze_parser.set_defaults(func=cmd_analyze)

    # similar command
    similar_parser = subparsers.add_parser("similar", help="Find similar past sessions")
    similar_parser.add_argument(
        "--concept", action="append", default=[], help="Concept to match (repeatable)"
    )
    similar_parser.add_argument(
        "--error", action="append", default=[], help="Error to match (repeatable)"
    )
    similar_parser.add_argument("--limit", "-n", type=int, default=10, help="Maximum results")
    _add_graph_argument(similar_parser)
    similar_parser.set_defaults(func=cmd_similar)

    # solutions command
    solutions_parser = subparsers.add_parser("solutions", help="Look up solutions for an error")
    solutions_parser.add_argument("error", help="Error text to look up")
    solutions_parser.add_argument(
        "--concept", action="append", default=[], help="Context concept (repeatable)"
    )
    solutions_parser.add_argument("--limit", "-n", type=int, default=10, help="Maximum results")
    _add_graph_argument(solutions_parser)
    solutions_parser.set_defaults(func=cmd_solutions)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
