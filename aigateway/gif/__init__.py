"""GIF search with Tenor sources and a local fallback."""
from .chain import GifFallbackChain, create_gif_chain
from .local import generate_fallback
from .tenor import convert_tenor_data

__all__ = ["GifFallbackChain", "create_gif_chain", "generate_fallback", "convert_tenor_data"]
