"""
Report generation for scan sessions.
"""
import json
import logging
import os
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from jinja2 import Environment, FileSystemLoader

from ..models import Severity
from ..scanner.session import ScanSession
from .reporter import FindingReporter


class ReportFormat(str, Enum):
    """Supported report formats."""
    MARKDOWN = "markdown"
    JSON = "json"
    CONSOLE = "console"


class ReportGenerator:
    """Generate reports from a finished scan session."""

    EXTENSIONS = {
        ReportFormat.MARKDOWN: "md",
        ReportFormat.JSON: "json",
        ReportFormat.CONSOLE: "txt",
    }

    def __init__(self, output_dir: str, format: ReportFormat = ReportFormat.MARKDOWN):
        """Initialize the report generator.

        Args:
            output_dir: Directory to save reports
            format: Output format for reports
        """
        self.output_dir = output_dir
        self.format = ReportFormat(format)
        self.template_dir = os.path.join(os.path.dirname(__file__), 'templates')
        self.env = Environment(
            loader=FileSystemLoader(self.template_dir),
            autoescape=False,
            trim_blocks=True,
            lstrip_blocks=True
        )
        self.logger = logging.getLogger(__name__)

    def generate_report(self, session: ScanSession, custom_title: Optional[str] = None) -> str:
        """Render the session's results and save them.

        Returns:
            Path to the generated report file
        """
        data = self.prepare_report_data(session, custom_title)

        if self.format == ReportFormat.JSON:
            content = json.dumps(data, indent=2)
        elif self.format == ReportFormat.CONSOLE:
            content = self.render_console(data)
        else:
            content = self.env.get_template('report.md.j2').render(**data)

        return self._save(content, data['repo_name'])

    def prepare_report_data(self, session: ScanSession, custom_title: Optional[str] = None) -> Dict[str, Any]:
        """Prepare data for the report."""
        reporter = FindingReporter(None, session.repo_ref, session.findings)
        by_severity = reporter.group_by_severity()

        return {
            'title': custom_title or f'Security Scan Report - {session.repo_ref.full_name}',
            'repo_name': session.repo_ref.full_name,
            'repo_url': session.repo_ref.html_url,
            'timestamp': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            'status': session.status.value,
            'files_scanned': len(session.eligible_files),
            'total_findings': len(session.findings),
            'severity_counts': reporter.severity_counts(),
            'findings_by_severity': {
                severity.value: [f.to_dict() for f in items]
                for severity, items in by_severity.items()
                if items
            },
            'findings_by_file': {
                path: [f.to_dict() for f in items]
                for path, items in reporter.group_by_file().items()
            },
            'warnings': [w.to_dict() for w in session.warnings],
            'error': session.error,
            'has_findings': bool(session.findings)
        }

    def render_console(self, data: Dict[str, Any]) -> str:
        """Generate a console-friendly report."""
        lines = [
            f"\n{'=' * 80}",
            f"{data['title']}",
            f"Generated: {data['timestamp']}",
            "=" * 80,
            "\nSummary:",
            f"  Files scanned: {data['files_scanned']}",
        ]
        for severity in Severity:
            lines.append(f"  • {severity.value}: {data['severity_counts'][severity.value]}")
        lines.append("\n" + "=" * 80 + "\n")

        for path, findings in data['findings_by_file'].items():
            lines.extend([f"\n{path} - {len(findings)} findings:", "-" * 60])
            for finding in findings:
                lines.append(f"[{finding['severity']}] line {finding['line']}: {finding['description']}")
                if finding.get('remediation'):
                    lines.append(f"  Fix: {finding['remediation']}")

        if data['warnings']:
            lines.append("\nWarnings:")
            lines.extend(f"  - {w['message']}" for w in data['warnings'])

        if not data['has_findings']:
            lines.append("\nNo vulnerabilities found!")

        return "\n".join(lines)

    def _save(self, content: str, repo_name: str) -> str:
        os.makedirs(self.output_dir, exist_ok=True)
        safe_name = repo_name.replace('/', '_')
        filename = (
            f"security_report_{safe_name}_{datetime.now().strftime('%Y%m%d_%H%M%S')}"
            f".{self.EXTENSIONS[self.format]}"
        )
        output_path = os.path.join(self.output_dir, filename)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(content)

        self.logger.info("Saved %s report to %s", self.format.value, output_path)
        return output_path
