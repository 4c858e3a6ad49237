"""
Terminal summary formatting for crawl jobs.
Renders frontier counters and process resource usage as tables.
"""

import os

import psutil
from tabulate import tabulate

from crawler.policy import REJECT_REASONS

OUTCOME_ROWS = [
    ("Seeded", "seeded"),
    ("Discovered", "discovered"),
    ("Fetched", "fetched"),
    ("Retried", "retried"),
    ("Failed (terminal)", "failed"),
    ("Redirected", "redirected"),
    ("Duplicates", "duplicate"),
    ("Filtered by depth", "depth_exceeded"),
]


def process_memory_mb() -> float:
    return psutil.Process(os.getpid()).memory_info().rss / 1024 / 1024


def format_summary(stats: dict, duration_sec: float = None) -> str:
    """
    Two tables: crawl outcomes, then policy rejections per rule (non-zero only).
    Missing counters are shown as 0.
    """
    outcome_table = [[label, stats.get(key, 0)] for label, key in OUTCOME_ROWS]
    if duration_sec is not None:
        outcome_table.append(["Duration (s)", f"{duration_sec:.2f}"])
    outcome_table.append(["Process memory (MB)", f"{process_memory_mb():.1f}"])

    lines = [
        "=" * 60,
        "CRAWL SESSION SUMMARY",
        "=" * 60,
        tabulate(outcome_table, headers=["Metric", "Value"], tablefmt="github"),
    ]

    rejected = [[reason, stats[reason]] for reason in REJECT_REASONS if stats.get(reason)]
    if rejected:
        lines.append("")
        lines.append(tabulate(rejected, headers=["Rejected by", "Count"], tablefmt="github"))
    lines.append("=" * 60)
    return "\n".join(lines)
