"""Transcript analysis pipeline — metrics, prompt, provider chain, normalization.

The public methods never raise: every failure comes back as an
:class:`AnalysisResult` with ``success=False`` and a classified error.
"""

from __future__ import annotations

import logging
import time

from .actions import ActionRuleEngine
from .client import MultiProviderAnalysisClient
from .config import AnalysisConfig
from .errors import categorize_error
from .metrics import calculate_max_tokens, calculate_transcript_metrics
from .models.actions import IntelligentAction
from .models.analysis import AnalysisResult, ConversationAnalysis
from .models.timeline import SentimentTimeline
from .models.transcript import ConversationTranscript
from .normalizer import normalize_analysis, normalize_processing_time, parse_model_json
from .prompts.analysis import build_analysis_prompt
from .timeline import build_sentiment_timeline

logger = logging.getLogger(__name__)


def _elapsed_ms(started: float) -> int:
    return normalize_processing_time((time.monotonic() - started) * 1000) or 0


class TranscriptAnalysisPipeline:
    """Analyze one transcript per call; holds no per-conversation state.

    Args:
        config: Explicit configuration. Never read from a global.
        client: Provider chain; built from *config* when omitted.
        engine: Action engine; built from *config* when omitted.
    """

    def __init__(
        self,
        config: AnalysisConfig,
        client: MultiProviderAnalysisClient | None = None,
        engine: ActionRuleEngine | None = None,
    ) -> None:
        self.config = config
        self.client = client or MultiProviderAnalysisClient(config)
        self.engine = engine or ActionRuleEngine.from_config(config)

    async def analyze(
        self,
        transcript: ConversationTranscript,
        *,
        conversation_id: str | None = None,
        lead_id: str | None = None,
        call_log_id: str | None = None,
    ) -> AnalysisResult:
        """Run the full pipeline on *transcript*."""
        started = time.monotonic()
        tokens_used = 0
        cost = 0.0
        provider_used: str | None = None
        try:
            metrics = calculate_transcript_metrics(transcript)
            prompt = build_analysis_prompt(transcript, self.config)
            response = await self.client.analyze(prompt, max_tokens=calculate_max_tokens(transcript))
            tokens_used, cost, provider_used = response.tokens_used, response.cost, response.provider

            payload = parse_model_json(response.raw_json)
            analysis = normalize_analysis(
                payload,
                metrics,
                analysis_model=response.model,
                processing_time_ms=(time.monotonic() - started) * 1000,
                conversation_id=conversation_id,
                lead_id=lead_id,
                call_log_id=call_log_id,
                tokens_used=tokens_used,
                cost=cost,
                provider_used=provider_used,
            )
        except Exception as exc:
            category, title = categorize_error(exc)
            logger.warning(
                "Analysis of conversation %s failed (%s): %s",
                conversation_id, category.value, exc,
            )
            return AnalysisResult(
                success=False,
                error=str(exc),
                error_category=category,
                error_title=title,
                processing_time=_elapsed_ms(started),
                tokens_used=tokens_used,
                cost=cost,
                provider_used=provider_used,
            )

        logger.info(
            "Analyzed conversation %s via %s in %d ms",
            conversation_id, provider_used, analysis.processing_time,
        )
        return AnalysisResult(
            success=True,
            analysis=analysis,
            processing_time=analysis.processing_time,
            tokens_used=tokens_used,
            cost=cost,
            provider_used=provider_used,
        )

    def recommend_actions(self, analysis: ConversationAnalysis) -> list[IntelligentAction]:
        """Ranked next steps for an existing analysis."""
        return self.engine.generate_actions(analysis)

    def sentiment_timeline(
        self,
        transcript: ConversationTranscript,
        analysis: ConversationAnalysis,
    ) -> SentimentTimeline:
        """Segment-by-segment lead sentiment, built from the analysis's message readings."""
        cfg = self.config
        return build_sentiment_timeline(
            transcript,
            analysis,
            segment_seconds=cfg.timeline_segment_seconds,
            overlap_seconds=cfg.timeline_overlap_seconds,
            language=cfg.language,
        )

    async def analyze_and_recommend(
        self,
        transcript: ConversationTranscript,
        *,
        conversation_id: str | None = None,
        lead_id: str | None = None,
        call_log_id: str | None = None,
    ) -> tuple[AnalysisResult, list[IntelligentAction]]:
        """Analyze, then rank actions; a failed analysis yields no actions."""
        result = await self.analyze(
            transcript,
            conversation_id=conversation_id,
            lead_id=lead_id,
            call_log_id=call_log_id,
        )
        if not result.success or result.analysis is None:
            return result, []
        return result, self.recommend_actions(result.analysis)

    async def aclose(self) -> None:
        await self.client.aclose()
