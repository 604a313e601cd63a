import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .checks.base import DEFAULT_COMMAND_TIMEOUT, CheckSettings
from .checks.infrastructure import parse_probe
from .core.collector import DEFAULT_EXCLUDE_DIRS, DEFAULT_INCLUDE_EXTENSIONS, DEFAULT_MAX_FILES, FileCollector, resolve_scan_roots
from .core.compact import ResultCompactor, compactify_checks, expand
from .core.config import FeatureFlags, workspace_root
from .core.errors import ConfigurationError
from .core.loader import build_checks, build_rules, discover_rule_packs, select_rule_packs
from .core.metrics import MetricsRecorder
from .core.orchestrator import FULL, MISSION_TYPES, CheckOrchestrator
from .core.reporting import Reporter
from .core.scanner import DEFAULT_MAX_FINDINGS, PatternScanner, configure_logging


def _split_csv(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gatescan",
        description="Verification gate: pattern scanning plus concurrent lint/build/readiness/security checks.",
    )
    sub = p.add_subparsers(dest="mode", required=True)

    # scan mode
    s = sub.add_parser("scan", help="Scan a source tree for risky patterns.")
    s.add_argument("path", type=Path, nargs="?", default=None, help="Directory to scan (default: product dirs of the workspace).")
    s.add_argument("--workspace", type=Path, default=None, help="Workspace root (default: $GATESCAN_WORKSPACE_ROOT or cwd).")
    s.add_argument("--rules", default="all", help="Comma-delimited rule packs (e.g. 'secrets,injection') or 'all'.")
    s.add_argument("--out", type=Path, default=Path("./scan_output"), help="Output directory.")
    s.add_argument("--workers", type=int, default=4, help="Number of worker threads for scanning.")
    s.add_argument("--max-findings", type=int, default=DEFAULT_MAX_FINDINGS, help="Stop after this many findings.")
    s.add_argument("--max-files", type=int, default=DEFAULT_MAX_FILES, help="Stop collecting after this many files.")
    s.add_argument("--exclude", default="", help="Extra dir names to exclude, comma-separated.")
    s.add_argument("--extensions", default=",".join(sorted(DEFAULT_INCLUDE_EXTENSIONS)), help="File extensions to scan, comma-separated.")
    s.add_argument("--no-progress", action="store_true", help="Disable the progress bar.")
    s.add_argument("--verbose", action="store_true", help="Enable verbose logging output.")

    # verify mode
    v = sub.add_parser("verify", help="Run a verification mission and print the compact result.")
    v.add_argument("path", type=Path, nargs="?", default=None, help="Project directory (default: workspace root).")
    v.add_argument("--workspace", type=Path, default=None, help="Workspace root (default: $GATESCAN_WORKSPACE_ROOT or cwd).")
    v.add_argument("--mission", choices=MISSION_TYPES, default=FULL, help="Mission type.")
    v.add_argument("--checks", default="default", help="Comma-delimited checks, 'default' or 'all'.")
    v.add_argument("--probe", action="append", default=[], metavar="NAME=COMMAND", help="Infrastructure probe; repeatable.")
    v.add_argument("--timeout", type=float, default=None, help="Seconds to wait for all checks before giving up on the rest.")
    v.add_argument("--command-timeout", type=float, default=DEFAULT_COMMAND_TIMEOUT, help="Per external command timeout.")
    v.add_argument("--workers", type=int, default=None, help="Number of checks run at once (default: all).")
    v.add_argument("--max-findings", type=int, default=DEFAULT_MAX_FINDINGS, help="Finding cap for scanning checks.")
    v.add_argument("--out", type=Path, default=None, help="Also write report.json and summary.md here.")
    compact = v.add_mutually_exclusive_group()
    compact.add_argument("--compact", dest="compact", action="store_true", default=None, help="Force compact output.")
    compact.add_argument("--no-compact", dest="compact", action="store_false", help="Emit the full report alongside.")
    v.add_argument("--per-check", action="store_true", help="Print compact per-check statuses instead of the report.")
    v.add_argument("--verbose", action="store_true", help="Enable verbose logging output.")

    # expand mode
    e = sub.add_parser("expand", help="Expand a compact JSON result into readable form.")
    e.add_argument("input", help="Compact JSON file, or '-' for stdin.")

    return p


def run_scan(args: argparse.Namespace) -> int:
    logger = configure_logging(verbose=args.verbose)
    root = workspace_root(args.workspace)
    packs = select_rule_packs(discover_rule_packs(), args.rules)
    rules = build_rules(packs)

    collector = FileCollector(
        exclude_dirs=set(DEFAULT_EXCLUDE_DIRS) | set(_split_csv(args.exclude)),
        include_extensions=_split_csv(args.extensions),
        max_files=args.max_files,
        logger=logger,
    )
    files = collector.collect(resolve_scan_roots(root, args.path), workspace_root=root)
    scanner = PatternScanner(
        rules,
        args.max_findings,
        workers=args.workers,
        logger=logger,
        verbose=args.verbose,
        show_progress=not args.no_progress,
    )
    result = scanner.scan(files)

    Reporter(args.out).write_findings(result)
    logger.info("Wrote findings for %d file(s) to %s", result.files_scanned, args.out)
    return 1 if result.findings else 0


def run_verify(args: argparse.Namespace) -> int:
    logger = configure_logging(verbose=args.verbose)
    root = workspace_root(args.workspace)
    target = root
    if args.path is not None:
        target = args.path if args.path.is_absolute() else root / args.path
        if not target.is_dir():
            raise ConfigurationError(f"Project directory does not exist: {target}")

    settings = CheckSettings(
        command_timeout=args.command_timeout,
        max_findings=args.max_findings,
        probes=dict(parse_probe(p) for p in args.probe),
        logger=logger,
    )
    orchestrator = CheckOrchestrator(
        build_checks(args.checks, settings),
        workers=args.workers,
        timeout=args.timeout,
        logger=logger,
        verbose=args.verbose,
    )
    report = orchestrator.run(target, args.mission)
    if args.out is not None:
        Reporter(args.out).write_report(report)

    if args.per_check:
        payload = {name: c.to_dict() for name, c in compactify_checks(report.checks).items()}
    else:
        flags = FeatureFlags.from_env()
        if args.compact is not None:
            flags = flags.with_overrides(compact_output=args.compact)
        metrics = MetricsRecorder()
        payload = ResultCompactor(flags, metrics, logger=logger).compactify(report).to_dict()
        logger.info("Compact output: %s", metrics.summary())

    print(json.dumps(payload, separators=(",", ":"), default=str))
    return 0 if report.success else 1


def run_expand(args: argparse.Namespace) -> int:
    if args.input == "-":
        raw = sys.stdin.read()
    else:
        path = Path(args.input)
        if not path.is_file():
            raise ConfigurationError(f"No such file: {path}")
        raw = path.read_text(encoding="utf-8")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Input is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError("Compact input must be a JSON object")
    print(json.dumps(expand(data), indent=2, default=str))
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    try:
        if args.mode == "scan":
            return run_scan(args)
        elif args.mode == "verify":
            return run_verify(args)
        elif args.mode == "expand":
            return run_expand(args)
        else:
            parser.print_help()
            return 2
    except ConfigurationError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
