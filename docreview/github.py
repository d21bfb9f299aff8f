"""Thin GitHub REST client for pull request metadata, diffs and reviews."""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from docreview.config import GITHUB_API_BASE, GITHUB_USER_AGENT
from docreview.models import ReviewComment

logger = logging.getLogger(__name__)

DIFF_MEDIA_TYPE = "application/vnd.github.v3.diff"


class GitHubAPIError(RuntimeError):
    """A GitHub API call returned a non-2xx status."""

    def __init__(self, method: str, url: str, status_code: int, body: str):
        super().__init__(f"GitHub {method} {url} returned {status_code}: {body}")
        self.status_code = status_code
        self.body = body


class GitHubClient:
    def __init__(
        self,
        token: str,
        api_base: str = GITHUB_API_BASE,
        client: Optional[httpx.Client] = None,
        timeout: float = 30.0,
    ):
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": GITHUB_USER_AGENT,
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.api_base = api_base.rstrip("/")
        self.client = client or httpx.Client(timeout=timeout)
        self.headers = headers

    def _request(
        self,
        method: str,
        path: str,
        accept: Optional[str] = None,
        json: Optional[dict] = None,
    ) -> httpx.Response:
        url = f"{self.api_base}{path}"
        headers = dict(self.headers)
        if accept:
            headers["Accept"] = accept
        resp = self.client.request(method, url, headers=headers, json=json)
        if resp.is_error:
            raise GitHubAPIError(method, url, resp.status_code, resp.text)
        return resp

    # ── Pull requests ────────────────────────────────────────────────────────

    def get_pull_request(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        return self._request("GET", f"/repos/{owner}/{repo}/pulls/{number}").json()

    def get_pr_diff(self, owner: str, repo: str, number: int) -> str:
        return self._request(
            "GET", f"/repos/{owner}/{repo}/pulls/{number}", accept=DIFF_MEDIA_TYPE
        ).text

    def get_commit_diff(self, owner: str, repo: str, sha: str) -> str:
        return self._request(
            "GET", f"/repos/{owner}/{repo}/commits/{sha}", accept=DIFF_MEDIA_TYPE
        ).text

    def compare_commits_diff(self, owner: str, repo: str, base: str, head: str) -> str:
        return self._request(
            "GET",
            f"/repos/{owner}/{repo}/compare/{base}...{head}",
            accept=DIFF_MEDIA_TYPE,
        ).text

    # ── Posting ──────────────────────────────────────────────────────────────

    def create_review(
        self, owner: str, repo: str, number: int, comments: list[ReviewComment]
    ) -> dict[str, Any]:
        """Create one review carrying every comment, as a plain COMMENT."""
        payload = {
            "event": "COMMENT",
            "comments": [c.to_dict() for c in comments],
        }
        logger.info("Posting review with %d comment(s) to %s/%s#%d", len(comments), owner, repo, number)
        return self._request(
            "POST", f"/repos/{owner}/{repo}/pulls/{number}/reviews", json=payload
        ).json()

    def create_issue_comment(self, owner: str, repo: str, number: int, body: str) -> dict[str, Any]:
        return self._request(
            "POST", f"/repos/{owner}/{repo}/issues/{number}/comments", json={"body": body}
        ).json()
