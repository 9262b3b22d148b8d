from reflectly.engine.models import (
    ChatMessage,
    Intent,
    PromptContext,
    Role,
    SessionMetric,
    SessionStats,
    SummaryResult,
    Tone,
    TurnResult,
    clamp_list,
    normalize_summary,
    normalize_turn,
)
from reflectly.engine.errors import (
    ExhaustedCandidates,
    InvalidModelJson,
    InvocationError,
    InvocationTimeout,
    MissingCredential,
    ParseNotFound,
    ProviderRejected,
    SummaryError,
)
from reflectly.engine.extract import extract_json
from reflectly.engine.candidates import FALLBACK_MODELS, build_candidates
from reflectly.engine.resilience import is_retryable, with_timeout
from reflectly.engine.llm import DemoMockLLMClient, GeminiLLMClient, LLMClient, MockLLMClient
from reflectly.engine.invoker import ModelInvoker
from reflectly.engine.crisis import default_crisis_screen, phrase_screen
from reflectly.engine.session import InMemoryTranscriptStore, TranscriptStore, render_bubble
from reflectly.engine.turn import TurnOrchestrator
from reflectly.engine.summary import SummaryOrchestrator
from reflectly.engine.companion import Companion

__all__ = [
    "ChatMessage",
    "Companion",
    "DemoMockLLMClient",
    "ExhaustedCandidates",
    "FALLBACK_MODELS",
    "GeminiLLMClient",
    "InMemoryTranscriptStore",
    "Intent",
    "InvalidModelJson",
    "InvocationError",
    "InvocationTimeout",
    "LLMClient",
    "MissingCredential",
    "MockLLMClient",
    "ModelInvoker",
    "ParseNotFound",
    "PromptContext",
    "ProviderRejected",
    "Role",
    "SessionMetric",
    "SessionStats",
    "SummaryError",
    "SummaryOrchestrator",
    "SummaryResult",
    "Tone",
    "TranscriptStore",
    "TurnOrchestrator",
    "TurnResult",
    "build_candidates",
    "clamp_list",
    "default_crisis_screen",
    "extract_json",
    "is_retryable",
    "normalize_summary",
    "normalize_turn",
    "phrase_screen",
    "render_bubble",
    "with_timeout",
]
