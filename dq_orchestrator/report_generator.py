"""Render a QualityReport as Markdown and save it alongside a JSON copy."""

from __future__ import annotations

import json
import os
from typing import Any

from dq_orchestrator.models import QualityReport, QualityResult


def _format_score_table(report: QualityReport) -> str:
    pre = report.pre_processing_score
    post = report.post_processing_score
    lines = [
        "| | Score | Grade |",
        "|--|-------|-------|",
        f"| Before rectification | {pre.overall_score * 100:.2f}% | {pre.grade} |",
        f"| After rectification | {post.overall_score * 100:.2f}% | {post.grade} |",
        "",
        f"- **Improvement**: {report.improvement * 100:+.2f} percentage points",
        "",
    ]
    metrics = [m for m in post.metric_scores if m in pre.metric_scores]
    if metrics:
        lines.append("| Metric | Before | After |")
        lines.append("|--------|--------|-------|")
        for metric in metrics:
            lines.append(
                f"| {metric.display_name} | {pre.metric_scores[metric] * 100:.2f}% "
                f"| {post.metric_scores[metric] * 100:.2f}% |"
            )
        lines.append("")
    return "\n".join(lines)


def _format_result(result: QualityResult) -> str:
    status = "PASSED" if result.passed else "FAILED"
    lines = [
        f"### {result.metric.display_name} ({status})\n",
        f"- **Score**: {result.score * 100:.2f}% (threshold {result.threshold * 100:.2f}%)",
    ]
    if result.issues:
        lines.append("- **Issues**:")
        lines.extend(f"  - {issue}" for issue in result.issues)
    if result.recommendations:
        lines.append("- **Recommendations**:")
        lines.extend(f"  - {rec}" for rec in result.recommendations)
    lines.append("")
    return "\n".join(lines)


def _format_rectification_log(entries: list[dict[str, Any]]) -> str:
    lines = []
    for entry in entries:
        parts = [f"**{entry.get('agent') or entry.get('metric')}**", entry.get("status", "")]
        parts.append(f"rows: {entry.get('rows_before')} → {entry.get('rows_after')}")
        if entry.get("message"):
            parts.append(entry["message"])
        lines.append("- " + " | ".join(parts))
    return "\n".join(lines)


def render_report(report: QualityReport) -> str:
    """Return the Markdown text for *report*."""
    metadata = report.metadata
    sections: list[str] = []

    sections.append(f"# Data Quality Report: {report.dataset_name}\n")

    sections.append("## Overview\n")
    sections.append(f"- **Report ID**: {report.id}")
    sections.append(f"- **Generated**: {report.timestamp.isoformat()}")
    sections.append(f"- **Processing time**: {report.processing_time_ms} ms")
    if "original_row_count" in metadata:
        sections.append(f"- **Rows before**: {metadata['original_row_count']}")
    if "rectified_row_count" in metadata:
        sections.append(f"- **Rows after**: {metadata['rectified_row_count']}")
    sections.append("")

    sections.append("## Scores\n")
    sections.append(_format_score_table(report))

    sections.append("## Results After Rectification\n")
    if report.results:
        for result in report.results:
            sections.append(_format_result(result))
    else:
        sections.append("No results.\n")

    sections.append("## Rectification Actions\n")
    if report.rectification_actions:
        for action in report.rectification_actions:
            sections.append(f"- {action}")
    else:
        sections.append("No rectification actions were performed.")
    sections.append("")

    log = metadata.get("rectification_log") or []
    if log:
        sections.append("### Rectification Log\n")
        sections.append(_format_rectification_log(log))
        sections.append("")

    sections.append("## Summary\n")
    sections.append(report.summary or "No summary generated.")
    sections.append("")

    errors = metadata.get("errors") or []
    if errors:
        sections.append("## Errors\n")
        for error in errors:
            sections.append(f"- {error}")
        sections.append("")

    return "\n".join(sections)


def generate_report(report: QualityReport, output_dir: str) -> str:
    """Write ``report.md`` and ``report.json`` to *output_dir*.

    Returns:
        The path to the saved Markdown report.
    """
    os.makedirs(output_dir, exist_ok=True)

    report_path = os.path.join(output_dir, "report.md")
    with open(report_path, "w", encoding="utf-8") as f:
        f.write(render_report(report))

    json_path = os.path.join(output_dir, "report.json")
    with open(json_path, "w", encoding="utf-8") as f:
        json.dump(report.to_dict(), f, indent=2, default=str)

    return report_path
