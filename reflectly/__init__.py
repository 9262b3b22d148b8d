"""reflectly — listening companion backed by Gemini, with model fallback.

Usage::

    from reflectly import create_companion

    companion = create_companion()
    reply = await companion.chat(session_id, "I feel stuck at work", intent=Intent.SOLVE)
"""

from __future__ import annotations

from typing import Any, Iterable

from dotenv import load_dotenv

load_dotenv()  # reads .env into os.environ (no-op if file missing)

from reflectly.config import CompanionConfig
from reflectly.engine.candidates import build_candidates
from reflectly.engine.companion import Companion
from reflectly.engine.crisis import CrisisPredicate, default_crisis_screen
from reflectly.engine.invoker import DEFAULT_DEADLINE_MS, ModelInvoker
from reflectly.engine.llm import DemoMockLLMClient, GeminiLLMClient, LLMClient
from reflectly.engine.models import ChatMessage, Intent, PromptContext, SummaryResult, Tone, TurnResult
from reflectly.engine.session import InMemoryTranscriptStore, TranscriptStore
from reflectly.engine.summary import SummaryOrchestrator
from reflectly.engine.turn import TurnOrchestrator
from reflectly.tracing.interface import NullTraceCollector, TraceCollector
from reflectly.tracing.jsonl_tracer import JSONLTraceCollector

__all__ = [
    "Companion",
    "CompanionConfig",
    "Intent",
    "SummaryResult",
    "Tone",
    "TurnResult",
    "create_companion",
    "run_turn",
    "summarize_session",
]


def _llm_for(config: CompanionConfig) -> LLMClient:
    if config.use_mock_llm:
        return DemoMockLLMClient()
    # Raises MissingCredential when the key is absent: fail before any request.
    return GeminiLLMClient(
        api_key=config.api_key,
        base_url=config.base_url,
        temperature=config.temperature,
        request_timeout_s=max(config.timeout_ms / 1000.0 * 2, 30.0),
    )


def create_companion(
    config: CompanionConfig | None = None,
    *,
    llm_client: LLMClient | None = None,
    store: TranscriptStore | None = None,
    trace_collector: TraceCollector | None = None,
    crisis_screen: CrisisPredicate = default_crisis_screen,
) -> Companion:
    """Wire all components and return a ready-to-use Companion."""
    config = config or CompanionConfig.from_env()

    # -- components --
    if trace_collector is None:
        trace_collector = JSONLTraceCollector(config.trace_dir) if config.trace_dir else NullTraceCollector()
    llm = llm_client or _llm_for(config)
    invoker = ModelInvoker(llm, trace_collector, deadline_ms=config.timeout_ms)
    candidates = config.candidates

    return Companion(
        store=store or InMemoryTranscriptStore(),
        turns=TurnOrchestrator(invoker, candidates, trace_collector, crisis_screen=crisis_screen),
        summaries=SummaryOrchestrator(invoker, candidates, trace_collector),
        history_limit=config.history_limit,
        transcript_limit=config.transcript_limit,
        prune_on_end=config.prune_on_end,
    )


def _messages(items: Iterable[ChatMessage | dict[str, Any]]) -> list[ChatMessage]:
    return [m if isinstance(m, ChatMessage) else ChatMessage.model_validate(m) for m in items]


def _invoker(credential: str | None, model_preference: str | None, deadline_ms: int) -> tuple[ModelInvoker, list[str]]:
    invoker = ModelInvoker(GeminiLLMClient(api_key=credential), NullTraceCollector(), deadline_ms=deadline_ms)
    return invoker, build_candidates(model_preference)


async def run_turn(
    credential: str | None,
    user_text: str,
    history: Iterable[ChatMessage | dict[str, Any]] = (),
    *,
    tone: Tone | str = Tone.NEUTRAL,
    intent: Intent | str = Intent.GO_DEEP,
    model_preference: str | None = None,
    deadline_ms: int = DEFAULT_DEADLINE_MS,
) -> TurnResult:
    """Stateless single turn. Raises ``MissingCredential``, or ``ValidationError`` for a bad tone, intent or history."""
    context = PromptContext(user_text=user_text, history=list(history), tone=tone, intent=intent)
    invoker, candidates = _invoker(credential, model_preference, deadline_ms)
    orchestrator = TurnOrchestrator(invoker, candidates, NullTraceCollector())
    return await orchestrator.run_turn(context.user_text, context.history, tone=context.tone, intent=context.intent)


async def summarize_session(
    credential: str | None,
    transcript: Iterable[ChatMessage | dict[str, Any]],
    *,
    model_preference: str | None = None,
    deadline_ms: int = DEFAULT_DEADLINE_MS,
) -> SummaryResult:
    """Stateless summary. Raises ``MissingCredential`` or ``SummaryError``."""
    invoker, candidates = _invoker(credential, model_preference, deadline_ms)
    orchestrator = SummaryOrchestrator(invoker, candidates, NullTraceCollector())
    return await orchestrator.summarize(_messages(transcript))
