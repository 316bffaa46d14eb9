"""Rule generators — each scans one signal category of an analysis.

Generators are pure: they read a ConversationAnalysis and return candidate
actions in a fixed order. Missing insight lists are treated as empty.
User-facing text is Spanish, matching the sales teams these actions are
rendered for.
"""

from __future__ import annotations

from collections.abc import Callable

from ..metrics import round_half_up
from ..models.actions import IntelligentAction
from ..models.analysis import ConversationAnalysis
from . import matchers as cues
from .matchers import DEFAULT_CUES, CueTable

Generator = Callable[[ConversationAnalysis, CueTable], list[IntelligentAction]]


MEETING_TEMPLATE = """\
Hola {leadName},

Me da mucho gusto saber de tu interés en {product}.

Como mencionaste en nuestra conversación, me encantaría agendar una reunión \
para mostrarte exactamente cómo podemos {solution}.

¿Te parece bien el {suggestedDay} a las {suggestedTime}?

Saludos,
{agentName}"""


def _entries(values: list[str] | None) -> list[str]:
    return [v for v in values or [] if isinstance(v, str)]


def buying_signal_actions(
    analysis: ConversationAnalysis, table: CueTable = DEFAULT_CUES,
) -> list[IntelligentAction]:
    """Meeting, demo, budget and implementation cues in ``buying_signals``."""
    actions: list[IntelligentAction] = []
    for index, signal in enumerate(_entries(analysis.buying_signals)):
        if table.has(cues.MEETING, signal):
            actions.append(IntelligentAction(
                id=f"schedule_meeting_{index}",
                type="schedule_meeting",
                title="Agendar Reunión",
                description=f'El lead mencionó interés en reunirse: "{signal}"',
                priority="high",
                urgency="immediate",
                reasoning=f'Lead expresó interés directo en agendar reunión: "{signal}"',
                suggested_time="Esta semana",
                template=MEETING_TEMPLATE,
                metadata={"signal": signal, "suggestedDuration": "30 min"},
            ))
        if table.has(cues.DEMO, signal):
            actions.append(IntelligentAction(
                id=f"send_demo_{index}",
                type="send_demo_link",
                title="Enviar Demo",
                description=f'Interés en ver demostración: "{signal}"',
                priority="high",
                urgency="today",
                reasoning=f'Lead quiere ver el producto en acción: "{signal}"',
                template="¡Perfecto! Aquí está el link para la demo personalizada: {demoLink}",
                metadata={"signal": signal},
            ))
        if table.has(cues.BUDGET, signal):
            actions.append(IntelligentAction(
                id=f"send_proposal_{index}",
                type="send_proposal",
                title="Enviar Propuesta",
                description=f'Interés en aspectos comerciales: "{signal}"',
                priority="high",
                urgency="today",
                reasoning=f'Lead está evaluando aspectos comerciales: "{signal}"',
                template="Propuesta comercial personalizada con pricing y términos",
                metadata={"signal": signal},
            ))
        if table.has(cues.IMPLEMENTATION, signal):
            actions.append(IntelligentAction(
                id=f"schedule_implementation_{index}",
                type="schedule_technical_call",
                title="Call Técnico",
                description=f'Interés en implementación: "{signal}"',
                priority="medium",
                urgency="this_week",
                reasoning=f'Lead está pensando en aspectos de implementación: "{signal}"',
                metadata={"signal": signal},
            ))
    return actions


def objection_actions(
    analysis: ConversationAnalysis, table: CueTable = DEFAULT_CUES,
) -> list[IntelligentAction]:
    """Price, competitor, complexity and authority cues in ``objections``."""
    actions: list[IntelligentAction] = []
    for index, objection in enumerate(_entries(analysis.objections)):
        if table.has(cues.PRICE, objection):
            actions.append(IntelligentAction(
                id=f"address_price_objection_{index}",
                type="send_roi_calculator",
                title="Enviar ROI Calculator",
                description=f'Objeción de precio: "{objection}"',
                priority="high",
                urgency="immediate",
                reasoning=f'Necesita demostrar valor vs costo: "{objection}"',
                template=(
                    "Entiendo tu preocupación sobre el precio. Te envío una calculadora "
                    "de ROI que muestra el retorno de inversión: {roiLink}"
                ),
                metadata={"objection": objection},
            ))
        if table.has(cues.COMPETITOR, objection):
            actions.append(IntelligentAction(
                id=f"send_comparison_{index}",
                type="send_comparison",
                title="Enviar Comparativo",
                description=f'Comparando con competencia: "{objection}"',
                priority="high",
                urgency="today",
                reasoning=f'Necesita diferenciarse de la competencia: "{objection}"',
                metadata={"objection": objection},
            ))
        if table.has(cues.COMPLEXITY, objection):
            actions.append(IntelligentAction(
                id=f"send_case_study_{index}",
                type="send_case_study",
                title="Enviar Caso de Éxito",
                description=f'Preocupación sobre implementación: "{objection}"',
                priority="medium",
                urgency="today",
                reasoning=f'Mostrar casos similares exitosos: "{objection}"',
                metadata={"objection": objection},
            ))
        if table.has(cues.AUTHORITY, objection):
            actions.append(IntelligentAction(
                id=f"escalate_decision_{index}",
                type="schedule_meeting",
                title="Meeting con Decisor",
                description=f'Involucrar tomador de decisiones: "{objection}"',
                priority="high",
                urgency="this_week",
                reasoning=f'Necesita involucrar al decisor final: "{objection}"',
                metadata={"objection": objection},
            ))
    return actions


def interest_score(analysis: ConversationAnalysis) -> int:
    """0–10 interest derived from the sentiment score.

    A missing or exactly-zero sentiment score falls back to
    ``lead_interest_level``, then to 0.
    """
    if analysis.sentiment_score:
        return round_half_up((analysis.sentiment_score + 1) * 5)
    if analysis.lead_interest_level:
        return analysis.lead_interest_level
    return 0


def interest_actions(
    analysis: ConversationAnalysis, table: CueTable = DEFAULT_CUES,
) -> list[IntelligentAction]:
    """High (≥8), medium (5–7) and low (<5) interest tiers."""
    level = interest_score(analysis)
    if level >= 8:
        return [
            IntelligentAction(
                id="high_interest_close",
                type="send_contract",
                title="Enviar Contrato",
                description=f"Alto nivel de interés detectado ({level}/10)",
                priority="high",
                urgency="immediate",
                reasoning="Lead muy interesado, momento ideal para cerrar",
                template="Contrato pre-llenado listo para firma",
                metadata={"interestLevel": level},
            ),
            IntelligentAction(
                id="high_interest_trial",
                type="schedule_trial",
                title="Iniciar Prueba",
                description="Configurar trial inmediato",
                priority="high",
                urgency="today",
                reasoning="Capitalizar alto interés con experiencia práctica",
                metadata={"interestLevel": level},
            ),
        ]
    if level >= 5:
        return [IntelligentAction(
            id="medium_interest_nurture",
            type="send_case_study",
            title="Enviar Casos de Éxito",
            description="Nutrir interés con contenido relevante",
            priority="medium",
            urgency="today",
            reasoning="Mantener y aumentar el interés gradualmente",
            metadata={"interestLevel": level},
        )]
    return [IntelligentAction(
        id="low_interest_qualify",
        type="make_followup_call",
        title="Call de Calificación",
        description="Entender mejor necesidades y fit",
        priority="medium",
        urgency="this_week",
        reasoning="Necesita mejor calificación antes de continuar",
        metadata={"interestLevel": level},
    )]


_SENTIMENT_ACTIONS: dict[str, dict] = {
    "positive": {
        "id": "positive_momentum",
        "type": "schedule_meeting",
        "title": "Capitalizar Momentum",
        "description": "Sentiment positivo - acelerar proceso",
        "priority": "high",
        "urgency": "immediate",
        "reasoning": "Sentiment positivo, momento ideal para avanzar",
    },
    "negative": {
        "id": "address_concerns",
        "type": "address_objection",
        "title": "Resolver Preocupaciones",
        "description": "Sentiment negativo - atender dudas",
        "priority": "high",
        "urgency": "immediate",
        "reasoning": "Necesita abordar preocupaciones antes de continuar",
    },
    "neutral": {
        "id": "generate_interest",
        "type": "send_demo_link",
        "title": "Generar Interés",
        "description": "Sentiment neutral - mostrar valor",
        "priority": "medium",
        "urgency": "today",
        "reasoning": "Necesita generar más emoción e interés",
    },
    "mixed": {
        "id": "clarify_position",
        "type": "make_followup_call",
        "title": "Clarificar Posición",
        "description": "Sentiment mixto - entender mejor situación",
        "priority": "medium",
        "urgency": "this_week",
        "reasoning": "Sentiment mixto requiere mayor clarificación",
    },
}


def sentiment_actions(
    analysis: ConversationAnalysis, table: CueTable = DEFAULT_CUES,
) -> list[IntelligentAction]:
    """One action per categorical sentiment."""
    fields = _SENTIMENT_ACTIONS.get((analysis.overall_sentiment or "neutral").lower())
    return [IntelligentAction(**fields)] if fields else []


def conversion_actions(
    analysis: ConversationAnalysis, table: CueTable = DEFAULT_CUES,
) -> list[IntelligentAction]:
    """Tiers on conversion likelihood as a percentage: ≥70, 40–69, <40."""
    percentage = round_half_up((analysis.conversion_likelihood or 0) * 100)
    if percentage >= 70:
        return [IntelligentAction(
            id="high_conversion_close",
            type="send_contract",
            title="Cerrar Venta",
            description=f"{percentage}% probabilidad de conversión",
            priority="high",
            urgency="immediate",
            reasoning="Alta probabilidad - momento perfecto para cerrar",
            metadata={"conversionPercentage": percentage},
        )]
    if percentage >= 40:
        return [IntelligentAction(
            id="medium_conversion_proposal",
            type="send_proposal",
            title="Enviar Propuesta",
            description=f"{percentage}% probabilidad - propuesta formal",
            priority="high",
            urgency="today",
            reasoning="Buena probabilidad - necesita propuesta formal",
            metadata={"conversionPercentage": percentage},
        )]
    return [IntelligentAction(
        id="low_conversion_nurture",
        type="nurture_sequence",
        title="Secuencia de Nurturing",
        description=f"{percentage}% probabilidad - nutrir relación",
        priority="low",
        urgency="next_week",
        reasoning="Baja probabilidad - necesita nurturing a largo plazo",
        metadata={"conversionPercentage": percentage},
    )]


def competitor_actions(
    analysis: ConversationAnalysis, table: CueTable = DEFAULT_CUES,
) -> list[IntelligentAction]:
    """Comparison table and references whenever a competitor was named."""
    competitors = _entries(analysis.competitor_mentions)
    if not competitors:
        return []
    return [
        IntelligentAction(
            id="competitor_comparison",
            type="send_comparison",
            title="Tabla Comparativa",
            description=f"Mencionó: {', '.join(competitors)}",
            priority="high",
            urgency="today",
            reasoning="Está evaluando competencia - necesita diferenciación",
            metadata={"competitors": competitors},
        ),
        IntelligentAction(
            id="competitive_references",
            type="send_references",
            title="Referencias de Clientes",
            description="Casos que cambiaron de la competencia",
            priority="medium",
            urgency="today",
            reasoning=f"Referencias específicas vs {', '.join(competitors)}",
            metadata={"competitors": competitors},
        ),
    ]


def pain_point_actions(
    analysis: ConversationAnalysis, table: CueTable = DEFAULT_CUES,
) -> list[IntelligentAction]:
    """One case-study candidate per pain point."""
    return [
        IntelligentAction(
            id=f"pain_solution_{index}",
            type="send_case_study",
            title="Caso de Éxito Relevante",
            description=f'Solución para: "{pain_point}"',
            priority="medium",
            urgency="today",
            reasoning=f"Caso específico que resuelve: {pain_point}",
            metadata={"painPoint": pain_point},
        )
        for index, pain_point in enumerate(_entries(analysis.main_pain_points))
    ]


# Evaluation order matters: dedup keeps the first occurrence of each type.
DEFAULT_GENERATORS: tuple[Generator, ...] = (
    buying_signal_actions,
    objection_actions,
    interest_actions,
    sentiment_actions,
    conversion_actions,
    competitor_actions,
    pain_point_actions,
)
