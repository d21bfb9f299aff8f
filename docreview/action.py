"""GitHub Action entry point: resolve the event, fetch the diff, post the review."""

from __future__ import annotations

import fnmatch
import json
import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from docreview.analyzer import analyze_code
from docreview.config import (
    REVIEW_MODE_COMMIT_RANGE,
    REVIEW_MODE_SINGLE_COMMIT,
    ConfigurationError,
    ReviewerConfig,
)
from docreview.diff_parser import parse_diff
from docreview.github import GitHubClient
from docreview.indentation import WorkingTreeLineProvider
from docreview.llm import ProviderGateway, build_gateway
from docreview.models import DiffFile, PRDetails
from docreview.prompts import load_prompt_template

logger = logging.getLogger(__name__)

COMMENT_EVENT = "issue_comment"


def load_event(path: str) -> dict:
    if not path:
        raise RuntimeError("GITHUB_EVENT_PATH environment variable is not set")
    return json.loads(Path(path).read_text(encoding="utf-8"))


def parse_pr_url(url: str) -> tuple[str, str, int]:
    """``https://api.github.com/repos/<owner>/<repo>/pulls/<n>`` -> (owner, repo, n)."""
    parts = url.rstrip("/").split("/")
    if len(parts) < 4:
        raise ValueError(f"Not a pull request URL: {url}")
    return parts[-4], parts[-3], int(parts[-1])


def resolve_pr_details(event: dict, event_name: str, client: GitHubClient) -> PRDetails:
    """Locate the pull request the event refers to and fetch its title/body."""
    if event_name == COMMENT_EVENT:
        pull_request = (event.get("issue") or {}).get("pull_request")
        if not pull_request:
            raise RuntimeError("Comment is not on a pull request")
        owner, repo, number = parse_pr_url(pull_request["url"])
    else:
        repository = event.get("repository") or {}
        if not (repository.get("owner") or {}).get("login"):
            raise RuntimeError("Invalid event data: missing repository information")
        number = event.get("number") or (event.get("pull_request") or {}).get("number")
        if not number:
            raise RuntimeError("Invalid event data: missing pull request number")
        owner, repo = repository["owner"]["login"], repository["name"]

    logger.info("PR info - owner: %s, repo: %s, number: %s", owner, repo, number)
    data = client.get_pull_request(owner, repo, int(number))
    return PRDetails(
        owner=owner,
        repo=repo,
        pull_number=int(number),
        title=data.get("title") or "",
        description=data.get("body") or "",
    )


def is_user_allowed(user: str, allowed_users: tuple[str, ...]) -> bool:
    """An empty allow-list lets everyone trigger a review."""
    return not allowed_users or user in allowed_users


def parse_commit_range(base_sha: str, head_sha: str) -> tuple[str, str]:
    """Accept ``BASE_SHA`` as ``base..head`` or as a bare base plus ``HEAD_SHA``."""
    parts = base_sha.split("..")
    base = parts[0]
    head = parts[1] if len(parts) > 1 and parts[1] else head_sha
    if not base or not head:
        raise ValueError(f"Invalid commit range: {base_sha}..{head_sha}")
    return base, head


def fetch_diff(
    client: GitHubClient,
    config: ReviewerConfig,
    pr: PRDetails,
    event: dict,
    event_name: str,
) -> Optional[str]:
    """The diff this event asks for, or None for events that are not reviewed."""
    owner, repo, number = pr.owner, pr.repo, pr.pull_number

    if event_name == COMMENT_EVENT:
        if config.review_mode == REVIEW_MODE_SINGLE_COMMIT and config.commit_sha:
            logger.info("Reviewing single commit: %s", config.commit_sha)
            return client.get_commit_diff(owner, repo, config.commit_sha)
        if config.review_mode == REVIEW_MODE_COMMIT_RANGE and config.base_sha:
            base, head = parse_commit_range(config.base_sha, config.head_sha)
            logger.info("Reviewing commit range: %s to %s", base, head)
            return client.compare_commits_diff(owner, repo, base, head)
        logger.info("Reviewing latest PR changes")
        return client.get_pr_diff(owner, repo, number)

    action = event.get("action")
    if action == "opened":
        return client.get_pr_diff(owner, repo, number)
    if action == "synchronize":
        return client.compare_commits_diff(owner, repo, event["before"], event["after"])
    return None


def filter_files(files: list[DiffFile], exclude_patterns: tuple[str, ...]) -> list[DiffFile]:
    """Drop deleted files and files matching any exclude glob."""
    kept = []
    for f in files:
        if f.is_deleted:
            continue
        if any(fnmatch.fnmatchcase(f.target_path, pattern) for pattern in exclude_patterns):
            logger.info("Excluded by pattern: %s", f.target_path)
            continue
        kept.append(f)
    return kept


def run(
    config: ReviewerConfig,
    environ: Mapping[str, str],
    client: Optional[GitHubClient] = None,
    gateway: Optional[ProviderGateway] = None,
) -> int:
    """Run one review for the triggering event. Returns the process exit code.

    Raises:
        ConfigurationError: before any network call, when no usable provider
            is configured.
    """
    # Configuration problems must surface before any chunk is processed
    gateway = gateway or build_gateway(config)
    client = client or GitHubClient(config.github_token, timeout=config.request_timeout)

    event_name = environ.get("GITHUB_EVENT_NAME", "")
    event = load_event(environ.get("GITHUB_EVENT_PATH", ""))
    is_comment_trigger = event_name == COMMENT_EVENT
    logger.info("Event type: %s", event_name)

    if is_comment_trigger:
        user = ((event.get("comment") or {}).get("user") or {}).get("login", "")
        if not is_user_allowed(user, config.allowed_users):
            logger.info(
                "User %s is not allowed to trigger reviews. Allowed users: %s",
                user,
                ", ".join(config.allowed_users),
            )
            return 0

    pr = resolve_pr_details(event, event_name, client)

    def reply(body: str) -> None:
        if is_comment_trigger:
            client.create_issue_comment(pr.owner, pr.repo, pr.pull_number, body)

    diff = fetch_diff(client, config, pr, event, event_name)
    if diff is None:
        logger.info("Unsupported event: %s (%s)", event_name, event.get("action"))
        return 0
    if not diff.strip():
        raise RuntimeError("Failed to retrieve diff from GitHub API")

    parsed = parse_diff(diff)
    if not parsed:
        raise RuntimeError("Failed to parse diff from GitHub API")

    files = filter_files(parsed, config.exclude_patterns)
    if not files:
        logger.info("No files to review after filtering")
        reply("✅ Code review completed, no files to review after filtering.")
        return 0

    template = load_prompt_template(config.prompt_path) if config.prompt_path else None
    line_provider = WorkingTreeLineProvider(config.workspace)

    try:
        comments = analyze_code(
            files,
            pr,
            gateway,
            line_provider=line_provider,
            template=template,
            synthesize=config.synthesize_suggestions,
        )
        if comments:
            client.create_review(pr.owner, pr.repo, pr.pull_number, comments)
            reply(f"✅ Code review completed, {len(comments)} comments generated.")
        else:
            reply("✅ Code review completed, no issues found.")
    except Exception as e:
        _set_failed(f"Critical error during code analysis: {e}")
        reply(f"❌ Code review failed: {e}")
        return 1

    logger.info("AI Code Review completed successfully")
    return 0


def _set_failed(message: str) -> None:
    logger.error("%s", message)
    # Workflow command: surfaces as an error annotation on the run
    print(f"::error::{message}", flush=True)


def main() -> None:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )
    # Keep client library noise at WARNING
    for noisy in ("botocore", "boto3", "urllib3", "httpx", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    try:
        config = ReviewerConfig.from_env()
        exit_code = run(config, os.environ)
    except ConfigurationError as e:
        _set_failed(str(e))
        raise SystemExit(1) from e
    except Exception as e:
        logger.exception("Error in AI Code Review")
        _set_failed(f"Error in AI Code Review: {e}")
        raise SystemExit(1) from e
    raise SystemExit(exit_code)


if __name__ == "__main__":
    main()
