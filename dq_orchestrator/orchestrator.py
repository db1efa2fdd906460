"""Data quality orchestrator: the analyze / rectify / re-analyze pipeline.

The pipeline is a compiled LangGraph ``StateGraph`` over
:class:`~dq_orchestrator.models.PipelineState`:

    analyze_pre -> score_pre -> rectify -> analyze_post -> score_post
    -> summarize -> assemble

Each node takes the state dict and returns it updated, appending a
timestamped entry to ``state["stage_log"]``. Failures of a single agent or of
the summarizer are isolated inside the nodes; anything else escapes the graph
and is surfaced as a :class:`~dq_orchestrator.errors.ProcessingError`.
"""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from datetime import datetime, timezone
from typing import Any, Optional

from dq_orchestrator.agents.base import QualityAgent
from dq_orchestrator.agents.blanks import BlanksAgent
from dq_orchestrator.agents.completeness import CompletenessAgent
from dq_orchestrator.agents.consistency import ConsistencyAgent
from dq_orchestrator.agents.outliers import OutliersAgent
from dq_orchestrator.agents.uniqueness import UniquenessAgent
from dq_orchestrator.agents.validity import ValidityAgent
from dq_orchestrator.config import QualityConfig
from dq_orchestrator.errors import (
    DataQualityError,
    InvalidDatasetError,
    PipelineCancelledError,
    ProcessingError,
)
from dq_orchestrator.models import (
    Dataset,
    Metric,
    PipelineState,
    QualityReport,
    QualityResult,
    QualityScore,
    RectificationStep,
    ReportBuilder,
)
from dq_orchestrator.scoring import ScoringEngine
from dq_orchestrator.summarizer import ReportSummarizer, fallback_summary

logger = logging.getLogger(__name__)

# How often a running analysis checks the cancel event.
CANCEL_POLL_SECONDS = 0.05

GENERIC_RECOMMENDATIONS = [
    "Review data collection processes",
    "Implement data validation rules",
    "Establish regular data quality monitoring",
]

NO_CHANGE_ACTION = "Applied automated data quality rectification; no metric scores changed"


def default_agents(config: Optional[QualityConfig] = None) -> list[QualityAgent]:
    """The standard agent registry, in rectification order."""
    return [
        CompletenessAgent(config),
        UniquenessAgent(config),
        ValidityAgent(config),
        OutliersAgent(config),
        ConsistencyAgent(config),
        BlanksAgent(config),
    ]


# ---------------------------------------------------------------------------
# State helpers
# ---------------------------------------------------------------------------


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ensure_list(state: dict, key: str) -> None:
    """Ensure *key* exists in state as a list."""
    if key not in state or state[key] is None:
        state[key] = []


def _log_stage(state: dict, stage: str, message: str) -> None:
    _ensure_list(state, "stage_log")
    state["stage_log"].append({"timestamp": _timestamp(), "stage": stage, "message": message})


def _append_error(state: dict, error_msg: str) -> None:
    _ensure_list(state, "errors")
    state["errors"].append(error_msg)


def _check_cancelled(cancel_event: Optional[threading.Event], stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise PipelineCancelledError(f"Pipeline cancelled during {stage}")


def rectification_actions(improvements: dict[Metric, float]) -> list[str]:
    """Describe which metrics rectification improved."""
    actions = [
        f"Improved {metric.display_name} by {delta * 100:.1f} percentage points"
        for metric, delta in improvements.items()
        if delta > 0
    ]
    return actions or [NO_CHANGE_ACTION]


# ---------------------------------------------------------------------------
# Orchestrator
# ---------------------------------------------------------------------------


class QualityOrchestrator:
    """Runs every registered agent over a dataset and assembles the report.

    Args:
        agents: Ordered agent registry. Defaults to :func:`default_agents`.
            The order decides rectification order.
        config: Shared configuration (thresholds, weights, worker count,
            analysis timeout).
        summarizer: Produces the report summary and recommendations.
        scoring: Combines results into an overall score.
    """

    def __init__(
        self,
        agents: Optional[list[QualityAgent]] = None,
        config: Optional[QualityConfig] = None,
        summarizer: Optional[ReportSummarizer] = None,
        scoring: Optional[ScoringEngine] = None,
    ) -> None:
        self._config = config or QualityConfig()
        self._agents = list(agents) if agents is not None else default_agents(self._config)
        self._summarizer = summarizer or ReportSummarizer()
        self._scoring = scoring or ScoringEngine(self._config)
        self._graph = build_pipeline(self)
        logger.info("Initialized %d data quality agents", len(self._agents))

    @property
    def agents(self) -> list[QualityAgent]:
        return list(self._agents)

    @property
    def config(self) -> QualityConfig:
        return self._config

    # -- public operations --------------------------------------------------

    def process_dataset(
        self, dataset: Dataset, cancel_event: Optional[threading.Event] = None
    ) -> QualityReport:
        """Analyze, rectify and re-analyze *dataset*, returning the report.

        Raises:
            InvalidDatasetError: If *dataset* is None or has no rows.
            PipelineCancelledError: If *cancel_event* is set during the run.
            ProcessingError: If the pipeline fails for any other reason.
        """
        if dataset is None or dataset.row_count == 0:
            raise InvalidDatasetError("Dataset must contain data")

        logger.info("Starting data quality processing for dataset: %s", dataset.name)
        initial: PipelineState = {
            "dataset": dataset,
            "cancel_event": cancel_event,
            "started_at": time.perf_counter(),
            "errors": [],
            "stage_log": [],
        }
        try:
            final_state = self._graph.invoke(initial)
        except DataQualityError:
            raise
        except Exception as exc:
            logger.exception("Error during data quality processing")
            raise ProcessingError("Data quality processing failed") from exc

        report = final_state.get("report")
        if report is None:
            raise ProcessingError("Pipeline finished without producing a report")
        logger.info("Data quality processing completed in %d ms", report.processing_time_ms)
        return report

    def analyze_data_quality(
        self, dataset: Dataset, cancel_event: Optional[threading.Event] = None
    ) -> list[QualityResult]:
        """Run every agent's ``analyze`` concurrently; results follow registry order.

        An agent that raises, times out or is cancelled contributes a
        zero-score failed result instead of aborting the run.

        Raises:
            InvalidDatasetError: If *dataset* is None.
            PipelineCancelledError: If *cancel_event* is set before all agents finish.
        """
        if dataset is None:
            raise InvalidDatasetError("Dataset must contain data")
        _check_cancelled(cancel_event, "analysis")
        logger.info("Analyzing data quality with %d agents", len(self._agents))

        timeout = self._config.timeout_seconds
        executor = ThreadPoolExecutor(
            max_workers=self._config.max_concurrent_workers, thread_name_prefix="dq-agent"
        )
        try:
            futures = [executor.submit(self._run_agent, agent, dataset) for agent in self._agents]
            self._wait_for(futures, timeout, cancel_event)
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        results: list[QualityResult] = []
        for agent, future in zip(self._agents, futures):
            if future.done() and not future.cancelled():
                results.append(future.result())
            else:
                future.cancel()
                logger.error("Agent %s timed out after %s seconds", agent.agent_name, timeout)
                results.append(
                    QualityResult.failure(agent.metric, f"Analysis timed out after {timeout:g} seconds")
                )
        return results

    def calculate_data_quality_score(self, dataset: Dataset) -> QualityScore:
        return self._scoring.calculate_score(self.analyze_data_quality(dataset))

    def generate_recommendations(self, results: list[QualityResult]) -> list[str]:
        try:
            return self._summarizer.generate_recommendations(results)
        except Exception:
            logger.exception("Failed to generate recommendations")
            return basic_recommendations(results)

    def rectify_dataset(
        self,
        dataset: Dataset,
        results: list[QualityResult],
        cancel_event: Optional[threading.Event] = None,
        log: Optional[list[RectificationStep]] = None,
    ) -> Dataset:
        """Apply rectification for every failed result, in result order.

        Each agent receives the dataset produced by the previous step. A step
        that raises is logged and leaves the dataset unchanged. When *log* is
        given, one :class:`RectificationStep` per failed result is appended.

        Raises:
            PipelineCancelledError: If *cancel_event* is set between steps.
        """
        logger.info("Rectifying dataset based on analysis results")
        steps = log if log is not None else []
        current = dataset

        for result in results:
            if result.passed:
                continue
            _check_cancelled(cancel_event, "rectification")

            agent = self._find_agent(result.metric)
            rows_before = current.row_count
            if agent is None:
                steps.append(
                    RectificationStep(
                        result.metric, "", "skipped", rows_before, rows_before, "No agent handles this metric"
                    )
                )
                continue

            try:
                logger.debug("Applying rectification for: %s", result.metric.display_name)
                current = agent.rectify(current, result)
            except Exception as exc:
                logger.exception("Rectification failed for metric: %s", result.metric.display_name)
                steps.append(
                    RectificationStep(result.metric, agent.agent_name, "failed", rows_before, rows_before, str(exc))
                )
                continue

            steps.append(
                RectificationStep(result.metric, agent.agent_name, "applied", rows_before, current.row_count)
            )

        return current

    # -- internals ----------------------------------------------------------

    def _run_agent(self, agent: QualityAgent, dataset: Dataset) -> QualityResult:
        try:
            logger.debug("Running agent: %s", agent.agent_name)
            return agent.analyze(dataset)
        except Exception as exc:
            logger.exception("Agent %s failed", agent.agent_name)
            return QualityResult.failure(agent.metric, f"Analysis failed: {exc}", exc)

    def _wait_for(
        self, futures: list[Future], timeout: float, cancel_event: Optional[threading.Event]
    ) -> None:
        if cancel_event is None:
            wait(futures, timeout=timeout)
            return

        deadline = time.monotonic() + timeout
        pending = set(futures)
        while pending:
            if cancel_event.is_set():
                for future in pending:
                    future.cancel()
                raise PipelineCancelledError("Pipeline cancelled during analysis")
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            _, pending = wait(pending, timeout=min(CANCEL_POLL_SECONDS, remaining), return_when=FIRST_COMPLETED)

    def _find_agent(self, metric: Metric) -> Optional[QualityAgent]:
        return next((agent for agent in self._agents if agent.can_handle(metric)), None)

    # -- graph nodes --------------------------------------------------------

    def analyze_pre_node(self, state: PipelineState) -> PipelineState:
        state["pre_results"] = self.analyze_data_quality(state["dataset"], state.get("cancel_event"))
        _log_stage(state, "analyze_pre", f"Analyzed {len(state['pre_results'])} metrics.")
        return state

    def score_pre_node(self, state: PipelineState) -> PipelineState:
        score = self._scoring.calculate_score(state["pre_results"])
        state["pre_score"] = score
        logger.info("Initial data quality score: %.2f%% (%s)", score.overall_score * 100, score.grade)
        _log_stage(state, "score_pre", f"Pre-processing score {score.overall_score:.3f} ({score.grade}).")
        return state

    def rectify_node(self, state: PipelineState) -> PipelineState:
        _ensure_list(state, "rectification_log")
        rectified = self.rectify_dataset(
            state["dataset"],
            state["pre_results"],
            cancel_event=state.get("cancel_event"),
            log=state["rectification_log"],
        )
        state["rectified_dataset"] = rectified
        for step in state["rectification_log"]:
            if step.status == "failed":
                _append_error(state, f"Rectification failed for {step.metric.display_name}: {step.message}")
        applied = sum(1 for step in state["rectification_log"] if step.status == "applied")
        _log_stage(
            state,
            "rectify",
            f"Applied {applied} rectification step(s); rows {state['dataset'].row_count} -> {rectified.row_count}.",
        )
        return state

    def analyze_post_node(self, state: PipelineState) -> PipelineState:
        state["post_results"] = self.analyze_data_quality(state["rectified_dataset"], state.get("cancel_event"))
        _log_stage(state, "analyze_post", f"Re-analyzed {len(state['post_results'])} metrics.")
        return state

    def score_post_node(self, state: PipelineState) -> PipelineState:
        score = self._scoring.calculate_score(state["post_results"])
        state["post_score"] = score
        improvements = self._scoring.calculate_metric_improvements(state["pre_score"], score)
        state["rectification_actions"] = rectification_actions(improvements)
        logger.info("Final data quality score: %.2f%% (%s)", score.overall_score * 100, score.grade)
        _log_stage(state, "score_post", f"Post-processing score {score.overall_score:.3f} ({score.grade}).")
        return state

    def summarize_node(self, state: PipelineState) -> PipelineState:
        draft = self._report_builder(state).build()
        try:
            state["summary"] = self._summarizer.summarize(draft)
            _log_stage(state, "summarize", "Summary generated.")
        except Exception as exc:
            logger.exception("Summarizer failed; using fallback summary")
            _append_error(state, f"Summarizer failed: {exc}")
            state["summary"] = fallback_summary(draft)
            _log_stage(state, "summarize", "Summarizer failed; fallback summary used.")
        return state

    def assemble_node(self, state: PipelineState) -> PipelineState:
        _log_stage(state, "assemble", "Report assembled.")
        elapsed_ms = int((time.perf_counter() - state["started_at"]) * 1000)
        state["report"] = self._report_builder(state).summary(state.get("summary") or "").processing_time_ms(
            elapsed_ms
        ).build()
        return state

    def _report_builder(self, state: PipelineState) -> ReportBuilder:
        dataset = state["dataset"]
        rectified = state["rectified_dataset"]
        pre_score = state["pre_score"]
        post_score = state["post_score"]
        improvements = self._scoring.calculate_metric_improvements(pre_score, post_score)
        return (
            ReportBuilder(dataset.name)
            .pre_processing_score(pre_score)
            .post_processing_score(post_score)
            .results(state["post_results"])
            .rectification_actions(state.get("rectification_actions") or [])
            .metadata(
                dataset_id=dataset.id,
                original_row_count=dataset.row_count,
                rectified_row_count=rectified.row_count,
                improvement=self._scoring.calculate_improvement(pre_score, post_score),
                metric_improvements={m.value: d for m, d in improvements.items()},
                pre_results=[r.to_dict() for r in state["pre_results"]],
                rectification_log=[s.to_dict() for s in state.get("rectification_log") or []],
                stage_log=list(state.get("stage_log") or []),
                errors=list(state.get("errors") or []),
            )
        )


def basic_recommendations(results: list[QualityResult]) -> list[str]:
    """Recommendations of the failing results, de-duplicated, or generic advice."""
    seen: dict[str, None] = {}
    for result in results:
        if not result.passed:
            for recommendation in result.recommendations:
                seen.setdefault(recommendation, None)
    return list(seen) or list(GENERIC_RECOMMENDATIONS)


# ---------------------------------------------------------------------------
# Graph builder
# ---------------------------------------------------------------------------


def build_pipeline(orchestrator: QualityOrchestrator) -> Any:
    """Build and compile the pipeline graph for *orchestrator*.

    Nodes: analyze_pre -> score_pre -> rectify -> analyze_post -> score_post
           -> summarize -> assemble

    Returns:
        A compiled LangGraph ``StateGraph``.
    """
    from langgraph.graph import END, START, StateGraph

    graph = StateGraph(PipelineState)

    graph.add_node("analyze_pre", orchestrator.analyze_pre_node)
    graph.add_node("score_pre", orchestrator.score_pre_node)
    graph.add_node("rectify", orchestrator.rectify_node)
    graph.add_node("analyze_post", orchestrator.analyze_post_node)
    graph.add_node("score_post", orchestrator.score_post_node)
    graph.add_node("summarize", orchestrator.summarize_node)
    graph.add_node("assemble", orchestrator.assemble_node)

    graph.add_edge(START, "analyze_pre")
    graph.add_edge("analyze_pre", "score_pre")
    graph.add_edge("score_pre", "rectify")
    graph.add_edge("rectify", "analyze_post")
    graph.add_edge("analyze_post", "score_post")
    graph.add_edge("score_post", "summarize")
    graph.add_edge("summarize", "assemble")
    graph.add_edge("assemble", END)

    return graph.compile()
