"""
Image-generation intent detection and prompt engineering.

Turns "draw a girl in a saree, full body" into a GenerationRequest carrying the
engineered positive/negative prompts, the composition-specific resolution and a
seed, and renders the provider URL for it.
"""
from __future__ import annotations

import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, FrozenSet, Optional
from urllib.parse import quote

from .utils.logging import get_logger

logger = get_logger(__name__)

IMAGE_INTENT_RE = re.compile(
    r"^(draw|generate image|create image|make an image|paint|visualize)\s+(.+)",
    re.IGNORECASE | re.DOTALL,
)
FULL_BODY_RE = re.compile(r"full body|full pic|full picture|whole body|standing|full length|head to toe", re.IGNORECASE)
PORTRAIT_RE = re.compile(r"portrait|face|eyes|close-up|headshot", re.IGNORECASE)
CULTURAL_FLAG_PATTERNS = {
    "indian": re.compile(r"indian|india|desi|south asian|saree|bindi", re.IGNORECASE),
    "traditional": re.compile(r"traditional|cultural|ethnic|heritage", re.IGNORECASE),
}

QUALITY_BLOCK = (
    "masterpiece, best quality, ultra detailed, 8k uhd, studio lighting, professional, vivid colors, "
    "bokeh, sharp focus, physically-based rendering, extreme detail description, cinematic lighting, "
    "dramatic shadows, photorealistic, hyperrealistic"
)
EYE_DETAIL_BLOCK = (
    "perfect eyes, detailed iris, realistic pupils, eye reflections, catchlight in eyes, detailed eyelashes, "
    "symmetrical eyes, clear cornea, natural eye color, lifelike gaze, sharp eye focus, intricate iris patterns"
)
FULL_BODY_BLOCK = (
    "full body shot, head to toe, complete figure, full length portrait, standing pose, entire body visible, "
    "full frame composition, wide shot"
)
INDIAN_BLOCK = (
    "South Asian features, brown eyes, Indian ethnicity, authentic Indian attire, traditional Indian clothing, "
    "saree or lehenga, Indian jewelry, bindi, mehndi, cultural accuracy, realistic Indian woman"
)
NEGATIVE_BASE = (
    "blurry eyes, crossed eyes, dead eyes, weird eyes, bad eyes, deformed eyes, extra eyes, missing eyes, "
    "cropped body, cut off limbs, incomplete body, blurry, low quality, distorted, deformed, ugly, bad anatomy, "
    "bad proportions, extra limbs, cloned face, disfigured, poorly drawn hands, poorly drawn face, mutation, "
    "bad hands, bad fingers, duplicate, out of frame"
)
NEGATIVE_ETHNICITY_GUARD = "western features, caucasian, blue eyes, blonde hair"

# encodeURIComponent-compatible safe set
_URI_COMPONENT_SAFE = "-_.!~*'()"


class CompositionClass(Enum):
    PORTRAIT = "portrait"
    FULL_BODY = "full_body"
    SCENE = "scene"


RESOLUTIONS = {
    CompositionClass.FULL_BODY: (1024, 1536),
    CompositionClass.PORTRAIT: (1024, 1536),
    CompositionClass.SCENE: (1920, 1080),
}


@dataclass(frozen=True)
class GenerationRequest:
    raw_prompt: str
    composition: CompositionClass
    cultural_flags: FrozenSet[str]
    positive_prompt: str
    negative_prompt: str
    width: int
    height: int
    seed: int

    @property
    def mode_label(self) -> str:
        if self.composition is CompositionClass.PORTRAIT:
            return "Portrait Mode with Enhanced Eye Detail"
        return "Professional AI"


def classify_composition(subject: str) -> CompositionClass:
    """Full-body cues take precedence over portrait cues."""
    if FULL_BODY_RE.search(subject):
        return CompositionClass.FULL_BODY
    if PORTRAIT_RE.search(subject):
        return CompositionClass.PORTRAIT
    return CompositionClass.SCENE


def detect_cultural_flags(subject: str) -> FrozenSet[str]:
    return frozenset(name for name, pattern in CULTURAL_FLAG_PATTERNS.items() if pattern.search(subject))


class PromptEnhancer:
    """Detects image requests and builds engineered render requests."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def next_seed(self) -> int:
        return int(self._clock() * 1000) % 100000

    def detect_image_intent(self, message: str) -> Optional[GenerationRequest]:
        """Return a GenerationRequest when ``message`` starts with an image verb, else None."""
        match = IMAGE_INTENT_RE.match(message or "")
        if not match:
            return None
        subject = match.group(2).strip()
        if not subject:
            return None
        return self.build_request(subject)

    def build_request(self, subject: str) -> GenerationRequest:
        composition = classify_composition(subject)
        flags = detect_cultural_flags(subject)

        parts = [subject]
        if composition is CompositionClass.FULL_BODY:
            parts.append(FULL_BODY_BLOCK)
        if composition is CompositionClass.PORTRAIT:
            parts.append(EYE_DETAIL_BLOCK)
        if "indian" in flags:
            parts.append(INDIAN_BLOCK)
        parts.append(QUALITY_BLOCK)

        negative = NEGATIVE_BASE
        if "indian" in flags:
            negative = f"{negative}, {NEGATIVE_ETHNICITY_GUARD}"

        width, height = RESOLUTIONS[composition]
        request = GenerationRequest(
            raw_prompt=subject,
            composition=composition,
            cultural_flags=flags,
            positive_prompt=", ".join(parts),
            negative_prompt=negative,
            width=width,
            height=height,
            seed=self.next_seed(),
        )

        cultural_note = " [Indian Cultural Context]" if "indian" in flags else ""
        logger.info(
            f"📸 Generating {composition.name.replace('_', '-')}{cultural_note} with optimized settings...",
            extra={
                "subsys": "image",
                "event": "image.request",
                "detail": {"composition": composition.value, "flags": sorted(flags), "seed": request.seed},
            },
        )
        return request


def build_render_url(request: GenerationRequest, base_url: str = "https://image.pollinations.ai/prompt") -> str:
    encoded_prompt = quote(request.positive_prompt, safe=_URI_COMPONENT_SAFE)
    encoded_negative = quote(request.negative_prompt, safe=_URI_COMPONENT_SAFE)
    return (
        f"{base_url.rstrip('/')}/{encoded_prompt}"
        f"?width={request.width}&height={request.height}"
        f"&nologo=true&enhance=true&model=flux-pro&nofeed=true"
        f"&negative={encoded_negative}&seed={request.seed}"
    )
