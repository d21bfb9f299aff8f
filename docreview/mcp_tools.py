"""MCP tool definitions for the documentation reviewer."""

from __future__ import annotations

import asyncio
import json
import logging
import traceback
from typing import Optional

from fastmcp import Context, FastMCP

from docreview.analyzer import review_diff as _review_diff
from docreview.config import ReviewerConfig
from docreview.llm import ProviderGateway, build_gateway
from docreview.llm_parsing import parse_review_items
from docreview.models import PRDetails
from docreview.suggestions import synthesize_suggestion

logger = logging.getLogger(__name__)


def _error_response(tool_name: str, error: Exception) -> str:
    """Build a structured JSON error response for MCP tool failures."""
    logger.error("Tool %s failed: %s\n%s", tool_name, error, traceback.format_exc())
    return json.dumps(
        {
            "comments": [],
            "count": 0,
            "summary": f"Tool '{tool_name}' failed: {error}",
            "error": str(error),
        },
        indent=2,
        ensure_ascii=False,
    )


async def _notify(ctx: Optional[Context], message: str) -> None:
    """Send an MCP log notification; a dropped notification never fails the tool."""
    if ctx is None:
        return
    try:
        await ctx.log(message=message, level="info", logger_name="docreview.mcp")
    except Exception as e:
        logger.warning("Log notification failed: %s", e)


def register_tools(mcp: FastMCP, gateway: Optional[ProviderGateway] = None) -> None:
    """Register all review tools on the given FastMCP server instance.

    The provider gateway is built lazily from the environment on first use
    unless one is passed in.
    """
    state: dict[str, ProviderGateway] = {}
    if gateway is not None:
        state["gateway"] = gateway

    def _gateway() -> ProviderGateway:
        if "gateway" not in state:
            state["gateway"] = build_gateway(ReviewerConfig.from_env())
        return state["gateway"]

    @mcp.tool()
    async def review_diff(
        diff: str,
        ctx: Context,
        title: str = "",
        description: str = "",
    ) -> str:
        """Review a unified diff of documentation changes.

        Every chunk is sent to the configured model and the review items are
        anchored back onto lines of the new file. Items pointing outside
        their chunk are dropped.

        Args:
            diff: Unified diff output (e.g., from `git diff`)
            title: Optional pull request title used as prompt context
            description: Optional pull request description used as prompt context

        Returns:
            JSON ``{"comments": [{"path", "line", "body"}], "count": N}``
        """
        try:
            pr = PRDetails(owner="", repo="", pull_number=0, title=title, description=description)
            await _notify(ctx, "[review] starting")
            comments = await asyncio.to_thread(_review_diff, diff, pr, _gateway())
            await _notify(ctx, f"[review] done, {len(comments)} comment(s)")
            return json.dumps(
                {"comments": [c.to_dict() for c in comments], "count": len(comments)},
                indent=2,
                ensure_ascii=False,
            )
        except Exception as e:
            return _error_response("review_diff", e)

    @mcp.tool()
    async def parse_review_response(text: str) -> str:
        """Extract review items from a raw model response.

        Accepts bare JSON, JSON inside a fenced block, or JSON embedded in
        prose. Returns ``{"reviews": [...], "count": N}``; ``reviews`` is
        null when the response is not usable at all.

        Args:
            text: The raw model output
        """
        try:
            items = parse_review_items(text)
            if items is None:
                return json.dumps({"reviews": None, "count": 0})
            return json.dumps(
                {"reviews": [i.to_dict() for i in items], "count": len(items)},
                indent=2,
                ensure_ascii=False,
            )
        except Exception as e:
            return _error_response("parse_review_response", e)

    @mcp.tool()
    async def suggest_fix(comment: str, source_line: str) -> str:
        """Derive a replacement line from review prose without calling a model.

        Args:
            comment: Review comment text (e.g., 'Change "foo" to "bar".')
            source_line: The line of the document the comment is about

        Returns:
            JSON ``{"suggestion": str | null}``
        """
        try:
            return json.dumps(
                {"suggestion": synthesize_suggestion(comment, source_line)},
                ensure_ascii=False,
            )
        except Exception as e:
            return _error_response("suggest_fix", e)
