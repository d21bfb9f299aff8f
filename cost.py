#!/usr/bin/env python3
"""Summarize the provider usage log and estimate what the reviews cost.

Each review chunk is logged as one TSV row (see ``docreview.llm.log_usage``).
Rows are grouped by provider model and by tool label; chunk counters such as
``review[3/7]`` are folded into ``review``.

Usage:
  python cost.py                # reads usage.log in current directory
  python cost.py /path/to/usage.log
"""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass, field
from pathlib import Path

# ── Model Pricing (USD per million tokens) ───────────────────────────────────


@dataclass(frozen=True)
class ModelPricing:
    label: str
    input_per_million: float
    output_per_million: float

    def cost(self, input_tokens: int, output_tokens: int) -> tuple[float, float]:
        return (
            input_tokens * self.input_per_million / 1_000_000,
            output_tokens * self.output_per_million / 1_000_000,
        )


PRICING: dict[str, ModelPricing] = {
    "gpt-4o-mini": ModelPricing("OpenAI gpt-4o-mini", 0.15, 0.60),
    "gpt-4o": ModelPricing("OpenAI gpt-4o", 2.50, 10.00),
    "gpt-4.1-mini": ModelPricing("OpenAI gpt-4.1-mini", 0.40, 1.60),
    "deepseek-chat": ModelPricing("DeepSeek chat", 0.27, 1.10),
    "deepseek-reasoner": ModelPricing("DeepSeek reasoner", 0.55, 2.19),
    "eu.anthropic.claude-sonnet-4-6": ModelPricing("Bedrock Sonnet 4.6", 3.00, 15.00),
    "anthropic.claude-sonnet-4-6": ModelPricing("Bedrock Sonnet 4.6", 3.00, 15.00),
}

# Unknown models are priced like the default Bedrock model so totals are not understated
UNKNOWN_PRICING = ModelPricing("unknown", 3.00, 15.00)

_CHUNK_COUNTER = re.compile(r"\[\d+/\d+\]$")


def pricing_for(model: str) -> ModelPricing:
    return PRICING.get(model, UNKNOWN_PRICING)


def tool_group(tool: str) -> str:
    """``review[3/7]`` -> ``review``."""
    return _CHUNK_COUNTER.sub("", tool) or tool


# ── Aggregation ──────────────────────────────────────────────────────────────


@dataclass
class Stats:
    calls: int = 0
    input_tokens: int = 0
    output_tokens: int = 0
    input_cost: float = 0.0
    output_cost: float = 0.0
    total_latency_ms: int = 0

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def total_cost(self) -> float:
        return self.input_cost + self.output_cost

    @property
    def avg_latency_s(self) -> float:
        return (self.total_latency_ms / self.calls / 1000) if self.calls else 0.0

    def add(self, model: str, input_tokens: int, output_tokens: int, latency_ms: int) -> None:
        in_cost, out_cost = pricing_for(model).cost(input_tokens, output_tokens)
        self.calls += 1
        self.input_tokens += input_tokens
        self.output_tokens += output_tokens
        self.input_cost += in_cost
        self.output_cost += out_cost
        self.total_latency_ms += latency_ms


@dataclass
class UsageReport:
    by_model: dict[str, Stats] = field(default_factory=dict)
    by_tool: dict[str, Stats] = field(default_factory=dict)
    total: Stats = field(default_factory=Stats)
    skipped: list[str] = field(default_factory=list)

    def add(self, model: str, tool: str, input_tokens: int, output_tokens: int, latency_ms: int) -> None:
        label = pricing_for(model).label
        if label == UNKNOWN_PRICING.label:
            label = f"{model} (unpriced)"
        for bucket, key in ((self.by_model, label), (self.by_tool, tool_group(tool))):
            bucket.setdefault(key, Stats()).add(model, input_tokens, output_tokens, latency_ms)
        self.total.add(model, input_tokens, output_tokens, latency_ms)


def parse_usage_log(path: Path) -> UsageReport:
    """Read a usage TSV into per-model and per-tool totals.

    Malformed rows are recorded in ``skipped`` rather than aborting the report.
    """
    report = UsageReport()
    with open(path, encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            line = line.strip()
            if not line or line.startswith("timestamp"):
                continue

            parts = line.split("\t")
            if len(parts) < 7:
                report.skipped.append(f"line {line_no}: expected 7 columns, got {len(parts)}")
                continue

            _ts, model, tool, inp, out, _total, latency = parts[:7]
            try:
                counts = int(inp), int(out), int(latency)
            except ValueError:
                report.skipped.append(f"line {line_no}: non-numeric token/latency values")
                continue
            report.add(model, tool, *counts)
    return report


# ── Output ───────────────────────────────────────────────────────────────────

_RULE = "  " + "-" * 99


def _row(name: str, s: Stats) -> str:
    return (
        f"  {name:<28} {s.calls:>5} {s.input_tokens:>10,} {s.output_tokens:>10,} "
        f"{s.input_cost:>9.4f} {s.output_cost:>9.4f} {s.total_cost:>9.4f} {s.avg_latency_s:>7.1f}s"
    )


def _print_table(title: str, stats: dict[str, Stats]) -> None:
    print(f"  {title}")
    print(
        f"  {'Name':<28} {'Calls':>5} {'Input':>10} {'Output':>10} "
        f"{'In $':>9} {'Out $':>9} {'Cost $':>9} {'Avg lat':>8}"
    )
    print(_RULE)
    for name, s in sorted(stats.items()):
        print(_row(name, s))
    print()


def print_report(report: UsageReport) -> None:
    for reason in report.skipped:
        print(f"  [skip] {reason}", file=sys.stderr)

    if report.total.calls == 0:
        print("No usage data found.")
        return

    _print_table("By Model", report.by_model)
    _print_table("By Tool", report.by_tool)
    print(_RULE.replace("-", "="))
    print(_row("TOTAL", report.total))
    print()
    print(f"  Total tokens:  {report.total.total_tokens:>10,}")
    print(f"  Total cost:    ${report.total.total_cost:.4f}")
    print(f"  Total time:    {report.total.total_latency_ms / 1000:.1f}s")


def main() -> None:
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else Path("usage.log")
    if not path.exists():
        print(f"Error: {path} not found", file=sys.stderr)
        sys.exit(1)

    print(f"  Parsing: {path}")
    print()
    print_report(parse_usage_log(path))


if __name__ == "__main__":
    main()
