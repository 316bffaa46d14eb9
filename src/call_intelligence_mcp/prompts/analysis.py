"""Call analysis prompt templates.

1. ANALYSIS_SYSTEM — system instruction shared by every provider.
2. ANALYSIS_PROMPT — the transcript plus the exact JSON contract the
   normalizer expects. Variables: {conversation}, {minutes}, {total_words},
   {language_name}, {focus}, {schema}.
3. RESPONSE_SCHEMA — the JSON shape, kept in one place so the prompt and
   the normalizer's required groups cannot drift apart.
"""

from __future__ import annotations

import logging

from ..config import AnalysisConfig
from ..models.transcript import ConversationTranscript

logger = logging.getLogger(__name__)

# Top-level groups the normalizer refuses to work without.
REQUIRED_GROUPS: tuple[str, ...] = (
    "sentiment",
    "quality",
    "insights",
    "engagement",
    "predictions",
)

ANALYSIS_SYSTEM = (
    "You are an expert sales conversation analyst. You analyze recorded "
    "sales and collection calls and extract precise insights as JSON."
)

LANGUAGE_NAMES = {"es": "Spanish", "en": "English"}

RESPONSE_SCHEMA = """\
{
  "sentiment": {
    "overall": "positive|negative|neutral|mixed",
    "score": number between -1.0 and 1.0,
    "confidence": number between 0.0 and 1.0,
    "reasoning": "why this sentiment"
  },
  "quality": {
    "overall": number between 0 and 100,
    "agentPerformance": number between 0 and 100,
    "flow": "excellent|good|fair|poor",
    "reasoning": "assessment of conversation quality"
  },
  "insights": {
    "keyTopics": ["topic", ...],
    "painPoints": ["pain point", ...],
    "buyingSignals": ["signal", ...],
    "objections": ["objection", ...],
    "competitors": ["competitor", ...],
    "actionItems": ["action item", ...],
    "followUpSuggestions": ["suggestion", ...],
    "decisionMakers": ["person", ...],
    "timeframe": ["timing cue", ...],
    "priceDiscussion": "summary of the pricing discussion, or null"
  },
  "engagement": {
    "interestLevel": number between 1 and 10,
    "score": number between 0 and 100,
    "responseQuality": "excellent|good|fair|poor",
    "reasoning": "assessment of engagement"
  },
  "predictions": {
    "conversionLikelihood": number between 0 and 100,
    "recommendedAction": "immediate_follow_up|send_proposal|schedule_meeting|nurture_lead|qualify_further|close_deal|archive_lead|escalate_to_manager|send_technical_info|address_objections",
    "urgency": "low|medium|high|critical",
    "followUpTimeline": "immediate|1_day|3_days|1_week|2_weeks|1_month",
    "suggestedApproach": "specific approach for the next contact",
    "reasoning": "justification of the predictions"
  },
  "metrics": {
    "interruptions": number of interruptions
  },
  "confidence": number between 0 and 100,
  "messageAnalysis": [
    {
      "messageIndex": 0-based position of this line in the CONVERSATION section,
      "content": "lead message text",
      "sentiment": "positive|negative|neutral",
      "sentimentScore": number between -1.0 and 1.0,
      "emotions": ["interested", "frustrated", ...],
      "keyPhrases": ["phrase", ...],
      "intent": "question|objection|interest|agreement|concern",
      "urgencyLevel": "low|medium|high"
    }
  ],
  "fullAnalysis": {
    "summary": "executive summary",
    "sentimentProgression": "how the lead's sentiment changed",
    "clientMoments": "moments of strong emotion",
    "strengths": ["strength", ...],
    "improvements": ["improvement", ...],
    "nextSteps": ["step", ...]
  }
}"""

ANALYSIS_PROMPT = """\
ANALYZE THIS SALES CONVERSATION AND RETURN A DETAILED ANALYSIS AS JSON.

=== CONVERSATION ===
{conversation}

=== DURATION ===
{minutes} minutes, {total_words} words

=== INSTRUCTIONS ===
This is a conversation between a sales agent (AGENT) and a prospect (LEAD).
Write every free-text value in {language_name}.

IMPORTANT:
{focus}

Return a JSON object with EXACTLY this structure:

{schema}

RESPOND ONLY WITH THE JSON. DO NOT ADD ANY OTHER TEXT."""

_BASE_FOCUS = [
    "Extract ALL commercially relevant information: names, companies, products, prices, dates.",
    "Identify the specific pain points the lead mentions.",
    "Give specific action items and detailed follow-up suggestions.",
]
_EMOTION_FOCUS = (
    "Analyze the sentiment and emotions of each LEAD message individually "
    "(not the agent's) in messageAnalysis."
)
_TOPIC_FOCUS = "List the key topics discussed in keyTopics."
_BUYING_FOCUS = "Detect every buying signal and every objection, quoting the lead where possible."
_COMPETITOR_FOCUS = "List every competitor or alternative the lead mentions in competitors."


def format_conversation(transcript: ConversationTranscript) -> str:
    """Render turns as ``ROLE: content`` lines."""
    return "\n".join(f"{m.role.upper()}: {m.content}" for m in transcript.messages)


def _focus_lines(config: AnalysisConfig) -> list[str]:
    lines: list[str] = []
    if config.include_emotion_analysis:
        lines.append(_EMOTION_FOCUS)
    lines.extend(_BASE_FOCUS)
    if config.include_topic_extraction:
        lines.append(_TOPIC_FOCUS)
    if config.include_buying_signals:
        lines.append(_BUYING_FOCUS)
    if config.include_competitor_analysis:
        lines.append(_COMPETITOR_FOCUS)
    return lines


def build_analysis_prompt(
    transcript: ConversationTranscript,
    config: AnalysisConfig | None = None,
) -> str:
    """Format *transcript* into the analysis instruction for the model.

    Feature toggles only change the focus instructions; the JSON contract
    is always requested in full.
    """
    cfg = config or AnalysisConfig()
    focus = "\n".join(f"{i}. {line}" for i, line in enumerate(_focus_lines(cfg), start=1))
    prompt = ANALYSIS_PROMPT.format(
        conversation=format_conversation(transcript),
        minutes=int(transcript.duration // 60),
        total_words=transcript.total_words,
        language_name=LANGUAGE_NAMES[cfg.language],
        focus=focus,
        schema=RESPONSE_SCHEMA,
    )
    logger.debug(
        "Built analysis prompt: %d message(s), %d chars",
        len(transcript.messages), len(prompt),
    )
    return prompt
