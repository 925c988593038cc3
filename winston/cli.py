"""CLI entrypoints for winston commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List

from dotenv import load_dotenv

from .auditor import AuditOutcome, AuditRequest, Auditor
from .config import ConfigError, WinstonConfig, load_config
from .errors import NothingToAnalyzeError, WinstonError
from .logging import configure_logging
from .models import Language, StageName, StageSelection
from .pipeline import FailurePolicy

_STAGE_FLAGS = (
    ("-d", "--diagram", StageName.DIAGRAM, "Generate Graphviz and Mermaid diagrams."),
    ("-a", "--analysis", StageName.ANALYSIS, "Run the LLM security analysis."),
    ("-s", "--semgrep", StageName.SEMGREP, "Generate Semgrep rules."),
    ("-t", "--static", StageName.STATIC, "Run the heuristic static analysis."),
    ("-e", "--explain", StageName.EXPLAIN, "Explain functions and report logic vulnerabilities."),
)


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="winston",
        description="Audit Solidity and Rust smart contracts from files, directories or URLs.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    audit_parser = subparsers.add_parser(
        "audit",
        help="Analyze a file, directory, git repository or file URL.",
    )
    _add_verbose_option(audit_parser, suppress_default=True)
    audit_parser.add_argument(
        "input",
        help="Path to a .sol/.rs file or directory, a git repository URL, or a file URL.",
    )
    for short, long, stage, help_text in _STAGE_FLAGS:
        audit_parser.add_argument(
            short,
            long,
            dest="stages",
            action="append_const",
            const=stage.value,
            help=help_text,
        )
    audit_parser.add_argument(
        "-r",
        "--rust",
        action="store_true",
        help="Analyze only Rust files.",
    )
    audit_parser.add_argument(
        "-g",
        "--git",
        action="store_true",
        help="Treat the input as a git repository URL.",
    )
    audit_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Directory for generated artifacts (defaults to ./output).",
    )
    audit_parser.add_argument(
        "--config",
        default=None,
        help="Path to a .winston.yml file (defaults to the current directory).",
    )
    audit_parser.add_argument(
        "--keep-going",
        action="store_true",
        help="Continue with remaining work when a stage fails instead of aborting.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service.",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1", help="Interface to bind.")
    serve_parser.add_argument("--port", type=int, default=8000, help="Port to listen on.")

    return parser


def _selection_from_args(args: argparse.Namespace, config: WinstonConfig) -> StageSelection:
    flags: List[str] = list(args.stages or [])
    if flags:
        return StageSelection.subset(flags)
    return StageSelection.from_flags(config.stages)


def _build_auditor(config: WinstonConfig, *, keep_going: bool) -> Auditor:
    policy = FailurePolicy.CONTINUE if keep_going else FailurePolicy(config.failure_policy)
    return Auditor(config, policy=policy)


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for winston commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))
    load_dotenv()

    if args.command == "audit":
        _run_audit(parser, args)
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_audit(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        config = load_config(Path(args.config) if args.config else None)
        selection = _selection_from_args(args, config)
    except (ConfigError, ValueError) as exc:
        parser.exit(1, f"winston: invalid configuration: {exc}\n")

    if config.log_file is not None or config.log_levels:
        configure_logging(verbose=bool(args.verbose), log_file=config.log_file, levels=config.log_levels)

    request = AuditRequest(
        input=args.input,
        force_git=bool(args.git),
        selection=selection,
        output_dir=Path(args.output) if args.output else None,
        rust_only=bool(args.rust),
    )
    auditor = _build_auditor(config, keep_going=bool(args.keep_going))

    try:
        outcome = auditor.run(request)
    except NothingToAnalyzeError as exc:
        parser.exit(1, f"{exc}\n")
    except WinstonError as exc:
        parser.exit(1, f"winston audit failed: {exc}\nRun with --verbose for more details.\n")
    except Exception as exc:  # stage collaborators may raise anything
        parser.exit(1, f"winston audit failed: {type(exc).__name__}: {exc}\n")

    _print_outcome(outcome)
    if not outcome.succeeded:
        parser.exit(1, f"{len(outcome.report.failures)} stage run(s) failed.\n")


def _print_outcome(outcome: AuditOutcome) -> None:
    for language in Language:
        count = len(outcome.file_set.files_for(language))
        if count:
            print(f"Found {count} {language.label} file(s)")
    for path in outcome.artifacts:
        print(f"  {_relativize(path)}")
    for failure in outcome.report.failures:
        item = failure.item
        print(f"  FAILED {item.stage.value} on {_relativize(item.path)}: {failure.error}")
    print(f"Results saved to: {_relativize(outcome.output_dir)}")


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
