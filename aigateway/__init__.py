"""
AI Friend Gateway Package

Keeps a chat assistant answering when its backends misbehave:
- Health-checked dispatch to a local Ollama model with a rule-based fallback
- Per-user bounded conversation context
- Image-generation prompt engineering with a content-addressed render cache
- GIF search through an ordered chain of Tenor sources and a local fallback
"""

# Package metadata
__title__ = "AI Friend Gateway"
__version__ = "1.0.0"
__description__ = "Resilience and fallback orchestration for an AI chat companion"
__license__ = "MIT"

__all__ = []


def __getattr__(name: str):
    """Lazy loader so importing submodules doesn't pull the full component graph."""
    if name == "AIResponseOrchestrator":
        from .orchestrator import AIResponseOrchestrator as _Orchestrator
        return _Orchestrator
    if name == "create_orchestrator":
        from .orchestrator import create_orchestrator as _create
        return _create
    if name == "GifFallbackChain":
        from .gif import GifFallbackChain as _Chain
        return _Chain
    raise AttributeError(name)
