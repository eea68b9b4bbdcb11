import argparse
import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from loguru import logger

from agents.catcher import CommentCatcher
from agents.reviewer.reviewer import InlineReviewer
from tools import __version__
from tools.base import CommentExtractionError, ConfigError, DiffError
from tools.config import CatcherConfig, load_config
from tools.git.git_changes import GitChangeDetector
from tools.git.provider_github import (
    DEFAULT_API_URL,
    GitHubPoster,
    PullRequestContext,
    load_pull_request_context,
    parse_github_pr_url,
)
from tools.llm.tool import Finding
from tools.report import REPORT_FORMATS, generate_report, load_report


def _load_env() -> None:
    """Load environment variables from .env if present."""
    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(dotenv_path=env_path)


def _configure_logging(verbose: bool) -> None:
    """Send logs to stderr so reports on stdout stay clean."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "INFO")


def _add_analysis_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "-b", "--base", default="main", help="Base branch to compare against (default: main)"
    )
    parser.add_argument(
        "-d",
        "--depth",
        type=int,
        default=3,
        help="Maximum import hops for related files (default: 3)",
    )
    parser.add_argument(
        "-o", "--output", help="Write the report to this file instead of stdout"
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=REPORT_FORMATS,
        default="markdown",
        help="Report format (default: markdown)",
    )
    parser.add_argument(
        "--no-deps", action="store_true", help="Only analyze the changed files"
    )
    parser.add_argument("--config", help="Path to a config file")
    parser.add_argument(
        "--repo-path", default=".", help="Path to git repository (default: current dir)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="comment-catcher",
        description="Find code comments that a change made outdated",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser(
        "check", help="Check the current branch for outdated comments"
    )
    _add_analysis_args(check)

    review = subparsers.add_parser(
        "review", help="Check and post the results to the current pull request"
    )
    _add_analysis_args(review)
    review.add_argument(
        "--report", help="Publish an existing JSON report instead of running a check"
    )
    review.add_argument(
        "--pr-url", help="Pull request URL (default: read from the GitHub event)"
    )
    return parser


def _load_checked_config(args: argparse.Namespace) -> CatcherConfig:
    """Load config and validate the LLM credential before any network call."""
    config = load_config(args.config, search_dir=args.repo_path)
    config.api_key()
    if args.depth < 0:
        raise ConfigError("--depth must be >= 0")
    return config


def _run_catcher(args: argparse.Namespace, config: CatcherConfig) -> list[Finding]:
    catcher = CommentCatcher(config=config, repo_path=args.repo_path)
    state = asyncio.run(
        catcher.run(base_ref=args.base, depth=args.depth, use_deps=not args.no_deps)
    )
    return state.findings


def _write_report(findings: list[Finding], fmt: str, output: str | None) -> None:
    report = generate_report(findings, fmt)
    if output:
        Path(output).write_text(report, encoding="utf-8")
        logger.info(f"Report written to {output}")
    else:
        sys.stdout.write(report)


def run_check(args: argparse.Namespace) -> int:
    """Exit code 0 when nothing is outdated, 1 on findings or errors."""
    config = _load_checked_config(args)
    findings = _run_catcher(args, config)
    _write_report(findings, args.format, args.output)

    if findings:
        logger.warning(f"{len(findings)} potentially outdated comment(s) found")
        return 1
    logger.info("No outdated comments found")
    return 0


def _pull_request_context(args: argparse.Namespace) -> PullRequestContext | None:
    if args.pr_url:
        owner, repo, number = parse_github_pr_url(args.pr_url)
        return PullRequestContext(owner=owner, repo=repo, number=number)
    return load_pull_request_context()


def run_review(args: argparse.Namespace) -> int:
    """Exit code 0 once results are posted, 1 on errors."""
    token = os.getenv("GITHUB_TOKEN")
    if not token:
        raise ConfigError("GITHUB_TOKEN environment variable is required")

    try:
        context = _pull_request_context(args)
    except ValueError as e:
        raise ConfigError(str(e)) from e
    if context is None:
        logger.info("Not a pull request event, skipping")
        return 0

    if args.report:
        findings = load_report(args.report)
    else:
        config = _load_checked_config(args)
        logger.info(f"Fetching base branch: {args.base}")
        GitChangeDetector(args.repo_path).fetch_base_branch(args.base)
        findings = _run_catcher(args, config)
        if args.output:
            _write_report(findings, args.format, args.output)

    poster = GitHubPoster(token, api_url=os.getenv("GITHUB_API_URL") or DEFAULT_API_URL)
    outcome = InlineReviewer(poster, context).publish(findings)
    logger.info(
        f"Posted {len(outcome.placed)} inline comment(s), "
        f"{len(outcome.unplaced)} listed in the summary"
    )
    return 0


def main(argv: list[str] | None = None) -> None:
    """Entry point for the comment-catcher CLI.

    Args:
        argv: Optional list of CLI arguments (for testing). If None, sys.argv is used.
    """
    _load_env()

    args = build_parser().parse_args(argv)
    _configure_logging(args.verbose)
    logger.debug(f"comment-catcher {__version__} starting: {args.command}")

    try:
        if args.command == "check":
            code = run_check(args)
        else:
            code = run_review(args)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        code = 1
    except (DiffError, CommentExtractionError) as e:
        logger.error(str(e))
        code = 1
    except Exception as e:
        logger.exception(f"comment-catcher failed: {e}")
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
