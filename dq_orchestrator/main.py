"""CLI entry point for the data quality orchestrator."""

from __future__ import annotations

import argparse
import logging
import os
import sys

from dq_orchestrator.errors import DataQualityError
from dq_orchestrator.llm_config import SUPPORTED_PROVIDERS

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:] when None).
    """
    parser = argparse.ArgumentParser(
        prog="dq-orchestrator",
        description="Data quality orchestrator: analyze a dataset, rectify its "
        "quality issues, re-analyze it and write a before/after report.",
    )
    parser.add_argument(
        "file",
        nargs="?",
        default=None,
        help="Path to a CSV, TSV, JSON or Excel file to process.",
    )
    parser.add_argument(
        "--sample",
        action="store_true",
        help="Process the built-in sample employee dataset instead of a file.",
    )
    parser.add_argument(
        "--provider",
        default=None,
        choices=sorted(SUPPORTED_PROVIDERS) + ["none"],
        help="LLM provider for the summary. Defaults to DQ_LLM_PROVIDER; "
        "without it (or with 'none') the summary is deterministic.",
    )
    parser.add_argument(
        "--model",
        default=None,
        help="Model name override for --provider (uses provider default when omitted; "
        "DQ_LLM_MODEL applies when the provider comes from the environment).",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="JSON configuration file (thresholds, weights, processing). "
        "Defaults to DQ_* environment variables.",
    )
    parser.add_argument(
        "--output-dir",
        default="output",
        help="Output directory for report.md and report.json (default: output).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO).",
    )
    args = parser.parse_args(argv)
    if args.file is None and not args.sample:
        parser.error("a FILE argument or --sample is required")
    return args


def _build_summarizer(provider: str | None, model: str | None):
    from dq_orchestrator.llm_config import get_llm, llm_from_env
    from dq_orchestrator.summarizer import ReportSummarizer

    if provider == "none":
        return ReportSummarizer()
    try:
        if provider is None:
            llm = llm_from_env()
        else:
            llm = get_llm(provider=provider, model=model)
    except Exception as exc:
        logger.warning("Could not initialize %s LLM (%s); using deterministic summaries", provider or "env", exc)
        llm = None
    return ReportSummarizer(llm)


def main(argv: list[str] | None = None) -> None:
    """Run the analyze / rectify / report pipeline.

    Args:
        argv: Optional argument list for testing; uses sys.argv when None.
    """
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    # Validate that the input file exists early, before heavy imports.
    if not args.sample and not os.path.isfile(args.file):
        print(f"Error: file not found: {args.file}", file=sys.stderr)
        sys.exit(1)

    try:
        from dq_orchestrator.config import load_config
        from dq_orchestrator.file_loader import load_dataset, sample_dataset
        from dq_orchestrator.orchestrator import QualityOrchestrator
        from dq_orchestrator.report_generator import generate_report

        config = load_config(args.config)
        dataset = sample_dataset() if args.sample else load_dataset(args.file)

        orchestrator = QualityOrchestrator(
            config=config, summarizer=_build_summarizer(args.provider, args.model)
        )
        report = orchestrator.process_dataset(dataset)
        if "source_file" in dataset.metadata:
            report = report.with_metadata(source_file=dataset.metadata["source_file"])

        report_path = generate_report(report, args.output_dir)
        print(
            f"Quality score: {report.pre_processing_score.overall_score * 100:.1f}% "
            f"({report.pre_processing_score.grade}) -> "
            f"{report.post_processing_score.overall_score * 100:.1f}% "
            f"({report.post_processing_score.grade})"
        )
        print(f"Report saved to: {report_path}")

    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(130)
    except (DataQualityError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)
    except Exception as exc:
        logger.exception("Unexpected failure")
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
