"""Natural-language summaries and recommendations for quality reports.

A LangChain chat model writes the text when one is configured. Every public
method degrades to a deterministic template when there is no model or the
model call fails for any reason (network, quota, malformed response).
"""

from __future__ import annotations

import logging
import re
from typing import Any

from langchain_core.messages import HumanMessage, SystemMessage

from dq_orchestrator.models import QualityReport, QualityResult

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a data quality expert. You explain data quality analysis "
    "results, the improvements made by automated rectification, and "
    "practical next steps. Be concise and specific."
)

FALLBACK_RECOMMENDATIONS = [
    "Review data collection processes to improve completeness",
    "Implement data validation rules at the source",
    "Establish regular data quality monitoring",
    "Consider automated data cleansing procedures",
    "Train data entry personnel on quality standards",
]

FALLBACK_TRENDS = "Unable to analyze trends at this time."


def fallback_summary(report: QualityReport) -> str:
    """Deterministic summary built from the report's scores."""
    lines = [f"Data Quality Report Summary for {report.dataset_name}:", ""]
    lines.append(f"Overall quality improved by {report.improvement * 100:.1f} percentage points.")
    lines.append("Processing completed successfully with automated rectification applied.")
    return "\n".join(lines)


def build_summary_prompt(report: QualityReport) -> str:
    parts = [
        "Generate a comprehensive data quality summary for the following report:",
        "",
        f"Dataset: {report.dataset_name}",
        f"Pre-processing Score: {report.pre_processing_score.overall_score * 100:.2f}% "
        f"({report.pre_processing_score.grade})",
        f"Post-processing Score: {report.post_processing_score.overall_score * 100:.2f}% "
        f"({report.post_processing_score.grade})",
        "",
        "Data Quality Results:",
    ]
    for result in report.results:
        status = "PASSED" if result.passed else "FAILED"
        parts.append(f"- {result.metric.display_name}: {result.score * 100:.2f}% ({status})")
    parts.append("")
    parts.append(
        "Please provide a concise summary highlighting key findings, improvements made, "
        "and overall data quality status."
    )
    return "\n".join(parts)


def build_recommendations_prompt(results: list[QualityResult]) -> str:
    parts = [
        "Based on the following data quality analysis results, provide specific "
        "recommendations for improvement:",
        "",
    ]
    for result in results:
        parts.append(f"Metric: {result.metric.display_name}")
        parts.append(f"Score: {result.score * 100:.2f}%")
        parts.append(f"Status: {'PASSED' if result.passed else 'FAILED'}")
        if result.issues:
            parts.append(f"Issues: {', '.join(result.issues)}")
        parts.append("")
    parts.append(
        "Please provide 3-5 specific, actionable recommendations to improve data quality. "
        "Format as a numbered list."
    )
    return "\n".join(parts)


def build_trends_prompt(report: QualityReport) -> str:
    return "\n".join(
        [
            "Analyze the data quality trends and patterns from this report:",
            "",
            f"Dataset: {report.dataset_name}",
            f"Overall Improvement: {report.improvement * 100:.2f} percentage points",
            "",
            "Provide insights on data quality patterns, potential root causes of issues, "
            "and long-term improvement strategies.",
        ]
    )


def parse_numbered_list(text: str) -> list[str]:
    """Split ``1. foo 2. bar`` style text into its items."""
    items = [item.strip() for item in re.split(r"(?:^|\s)\d+\.\s", text)]
    return [item for item in items if item]


class ReportSummarizer:
    """Writes report text with an optional chat model.

    Args:
        llm: A LangChain chat model, or None to always use the templates.
    """

    def __init__(self, llm: Any = None) -> None:
        self._llm = llm

    def summarize(self, report: QualityReport) -> str:
        if self._llm is None:
            return fallback_summary(report)
        logger.info("Generating data quality summary for report %s", report.id)
        try:
            return self._complete(build_summary_prompt(report))
        except Exception:
            logger.exception("Failed to generate summary with the LLM; using fallback")
            return fallback_summary(report)

    def generate_recommendations(self, results: list[QualityResult]) -> list[str]:
        if self._llm is None:
            return list(FALLBACK_RECOMMENDATIONS)
        logger.info("Generating recommendations for %d results", len(results))
        try:
            items = parse_numbered_list(self._complete(build_recommendations_prompt(results)))
            if not items:
                raise ValueError("LLM response contained no recommendations")
            return items
        except Exception:
            logger.exception("Failed to generate recommendations with the LLM; using fallback")
            return list(FALLBACK_RECOMMENDATIONS)

    def analyze_trends(self, report: QualityReport) -> str:
        if self._llm is None:
            return FALLBACK_TRENDS
        try:
            return self._complete(build_trends_prompt(report))
        except Exception:
            logger.exception("Failed to analyze trends with the LLM")
            return FALLBACK_TRENDS

    def _complete(self, prompt: str) -> str:
        response = self._llm.invoke([SystemMessage(content=SYSTEM_PROMPT), HumanMessage(content=prompt)])
        content = response.content if isinstance(response.content, str) else str(response.content)
        if not content.strip():
            raise ValueError("LLM returned an empty response")
        return content.strip()
