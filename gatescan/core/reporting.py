from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, List

from .models import CODE_TRUNCATE_LENGTH, Report
from .scanner import ScanResult


class Reporter:
    """Writes scan and mission artifacts into one output directory."""

    def __init__(self, out_dir: Path) -> None:
        self.out_dir = Path(out_dir)

    def write_findings(self, result: ScanResult) -> Dict[str, int]:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        data = result.to_dict(truncate=CODE_TRUNCATE_LENGTH)
        (self.out_dir / "findings.json").write_text(json.dumps(data, indent=2), encoding="utf-8")

        lines: List[str] = ["# Security Findings", ""]
        lines.append(f"- files scanned: {result.files_scanned}")
        lines.append(f"- findings: {result.count}" + (" (cap reached)" if result.truncated else ""))
        lines.append("")
        for f in result.findings:
            lines.append(f"- **file**: {f.file}  ")
            lines.append(f"  **line**: {f.line}  ")
            lines.append(f"  **issue**: {f.issue}  ")
            if f.snippet:
                lines.append(f"  **code**: `{f.snippet[:CODE_TRUNCATE_LENGTH]}`  ")
            lines.append("")
        if result.skipped:
            lines.append("## Skipped files")
            lines.append("")
            for path, reason in result.skipped:
                lines.append(f"- {path}: {reason}")
            lines.append("")
        (self.out_dir / "findings.md").write_text("\n".join(lines), encoding="utf-8")
        return {"findings": result.count, "artifacts": 2}

    def write_report(self, report: Report) -> Dict[str, int]:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        (self.out_dir / "report.json").write_text(json.dumps(report.to_dict(), indent=2, default=str), encoding="utf-8")

        lines = ["# Mission Summary", ""]
        lines.append(f"- mission: {report.mission_type}")
        lines.append(f"- result: {'PASS' if report.success else 'FAIL'}")
        lines.append("")
        for name, result in report.checks.items():
            lines.append(f"## {name}")
            lines.append(f"- status: {result.status}")
            lines.append(f"- success: {result.success}")
            lines.append(f"- files: {result.files}")
            lines.append(f"- duration: {result.duration:.2f}s")
            message = result.failure_message()
            if message:
                lines.append(f"- error: {message}")
            for w in result.warnings:
                lines.append(f"- warning: {w}")
            lines.append("")
        (self.out_dir / "summary.md").write_text("\n".join(lines), encoding="utf-8")
        return {"checks": len(report.checks), "artifacts": 2}
