"""
VulnCheck - scan a GitHub repository for security issues with an AI reviewer.
"""
import argparse
import asyncio
import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

from .ai_agent.providers import get_provider
from .api.config import settings
from .errors import VulnCheckError, describe_error
from .github.api import GitHubAPI
from .models import ScanProgress
from .reports import ReportFormat, ReportGenerator
from .scanner.pipeline import ScanPipeline

logger = logging.getLogger("vulncheck")


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description='Scan GitHub repositories for security vulnerabilities.')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    serve = subparsers.add_parser('serve', help='Run the HTTP API')
    serve.add_argument('--host', default='0.0.0.0', help='Bind address (default: 0.0.0.0)')
    serve.add_argument('--port', type=int, default=8000, help='Port (default: 8000)')

    scan = subparsers.add_parser('scan', help='Scan one repository and write a report')
    scan.add_argument('repo_url', help='Repository URL, e.g. https://github.com/owner/repo')
    scan.add_argument('--user-id', required=True, help='Account charged for the scan')
    scan.add_argument('--token', help='GitHub personal access token (default: GITHUB_TOKEN env var)')
    scan.add_argument('-f', '--format', default=ReportFormat.MARKDOWN.value,
                      choices=[f.value for f in ReportFormat],
                      help='Report format (default: markdown)')
    scan.add_argument('-o', '--output-dir', default='reports',
                      help='Output directory for reports (default: reports)')

    return parser.parse_args(argv)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def run_scan(args) -> int:
    token = args.token or settings.GITHUB_TOKEN or os.getenv('GITHUB_TOKEN')
    if not token:
        logger.error("GitHub Personal Access Token is required (--token or GITHUB_TOKEN).")
        return 1

    from .api import models
    from .api.database import SessionLocal, engine
    from .api.ledger import CreditLedger

    models.Base.metadata.create_all(bind=engine)
    ledger = CreditLedger(SessionLocal, signup_credits=settings.SIGNUP_CREDITS)

    pipeline = ScanPipeline(
        ledger,
        get_provider(settings),
        pacing_seconds=settings.SCAN_PACING_SECONDS,
        max_file_bytes=settings.MAX_FILE_SIZE_BYTES,
        credit_cost=settings.SCAN_CREDIT_COST
    )
    client = GitHubAPI(
        token,
        base_url=settings.GITHUB_API_URL,
        max_retries=settings.GITHUB_MAX_RETRIES,
        timeout=settings.GITHUB_TIMEOUT
    )

    def on_progress(progress: ScanProgress) -> None:
        logger.info(progress.description)

    try:
        session = pipeline.open_session(args.repo_url)
        pipeline.fetch_files(session, client)
        for warning in session.warnings:
            logger.warning(warning.message)
        logger.info("Found %d scannable files. Starting scan...", len(session.eligible_files))
        asyncio.run(pipeline.scan(session, client, args.user_id, on_progress=on_progress))
    except VulnCheckError as e:
        logger.error(describe_error(e))
        return 1
    finally:
        client.close()

    generator = ReportGenerator(args.output_dir, ReportFormat(args.format))
    report_path = generator.generate_report(session)
    logger.info("Scan complete: %d findings. Report saved to %s", len(session.findings), report_path)
    logger.info("Remaining credits: %d", ledger.get_balance(args.user_id))
    return 0


def main(argv=None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.command == 'serve':
        import uvicorn
        uvicorn.run("vulncheck.api.main:app", host=args.host, port=args.port)
        return 0

    return run_scan(args)


if __name__ == '__main__':
    sys.exit(main())
