"""Prompt construction for sticker generation.

Two builders live here:

* ``PromptComposer`` turns a subject, a catalog style and optional custom text
  into positive and negative prompt strings for text-only requests.
* ``DescriptionPromptTransformer`` turns a reference-image description into the
  final constrained prompt that re-asserts subject counts, attribute matching,
  the style directive and the no-text rules.

Both are deterministic: identical inputs always produce identical strings.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from synthetik.models import ComposedPrompt, StyleDefinition, StyleKey, VisionDescription
from synthetik.styles import STICKER_STYLES, default_subject_for
from synthetik.utils import count_phrase

logger = logging.getLogger(__name__)


BASE_NEGATIVE_TERMS = (
    "text", "words", "letters", "numbers", "writing", "labels", "captions",
    "watermark", "signature", "logo", "blurry", "low quality", "distorted",
    "ugly", "bad anatomy", "extra limbs", "extra people", "extra faces",
    "crowd", "deformed", "disfigured", "mutated",
)

QUALITY_DIRECTIVE = "high quality, detailed, professional"
NO_TEXT_DIRECTIVE = "no text, no words, no letters"
STICKER_FORMAT = "sticker design"
STICKER_EDGES = "clean sticker edges"

VARIATION_MODIFIERS = ("", "playful version", "cute version", "dynamic version")

# Custom text that mentions any of these is treated as a style directive.
CUSTOM_STYLE_KEYWORDS = (
    "style", "ghibli", "anime", "disney", "pixar", "watercolor", "cartoon",
    "cinematic", "realistic", "artistic",
)
CUSTOM_STYLE_MIN_LENGTH = 50
SUBJECT_FROM_CUSTOM_MIN_LENGTH = 10


class PromptComposer:
    """Builds prompts for text-only generation from the style catalog."""

    def __init__(self, styles: Dict[StyleKey, StyleDefinition] | None = None):
        self.styles = styles if styles is not None else STICKER_STYLES

    def _style(self, style_key: StyleKey | None) -> Optional[StyleDefinition]:
        if style_key is None:
            return None
        return self.styles.get(style_key)

    def compose(
        self,
        subject: str,
        style_key: StyleKey | None,
        custom_text: str | None = None,
        include_sticker: bool = True,
    ) -> ComposedPrompt:
        """Compose the positive and negative prompt.

        ``style_key=None`` is custom-prompt-only mode: no catalog style text
        appears in either string.
        """
        style = self._style(style_key)
        parts: List[str] = []

        if style:
            parts.append(style.prompt_modifier)
        if include_sticker:
            parts.append(STICKER_FORMAT)

        parts.append(f"of {subject.strip()}")

        if custom_text and custom_text.strip():
            parts.append(custom_text.strip())

        parts.append(QUALITY_DIRECTIVE)
        parts.append(NO_TEXT_DIRECTIVE)

        if include_sticker:
            parts.append(STICKER_EDGES)

        prompt = ", ".join(parts)
        prompt = prompt[:1].upper() + prompt[1:]

        return ComposedPrompt(prompt=prompt, negative_prompt=self.build_negative_prompt(style_key))

    def build_negative_prompt(self, style_key: StyleKey | None) -> str:
        style = self._style(style_key)
        style_terms = style.negative_prompt.split(", ") if style and style.negative_prompt else []
        return ", ".join(term for term in (*BASE_NEGATIVE_TERMS, *style_terms) if term)

    def build_subject(
        self,
        subject: str | None,
        custom_text: str | None,
        style_key: StyleKey | None,
    ) -> str:
        """Pick the subject: explicit subject, descriptive custom text, then the style default."""
        if subject and subject.strip():
            return subject.strip()

        if custom_text and custom_text.strip():
            text = custom_text.strip()
            if len(text) > SUBJECT_FROM_CUSTOM_MIN_LENGTH:
                return text

        return default_subject_for(style_key)

    def build_variation_prompts(
        self,
        subject: str,
        style_key: StyleKey | None,
        custom_text: str | None = None,
        count: int = 4,
    ) -> List[str]:
        """Distinct prompts for a batch, cycling the variation modifiers."""
        prompts = []
        for index in range(count):
            modifier = VARIATION_MODIFIERS[index % len(VARIATION_MODIFIERS)]
            text = ", ".join(part for part in (custom_text, modifier) if part) if modifier else custom_text
            prompts.append(self.compose(subject, style_key, text).prompt)
        return prompts

    @staticmethod
    def detect_custom_style_mode(custom_text: str | None, custom_prompt_only: bool = False) -> bool:
        """Whether the custom text should replace the catalog style."""
        if not custom_text or not custom_text.strip():
            return False
        if custom_prompt_only:
            return True

        lowered = custom_text.lower()
        if any(keyword in lowered for keyword in CUSTOM_STYLE_KEYWORDS):
            return True
        return len(custom_text) > CUSTOM_STYLE_MIN_LENGTH


# ---------------------------------------------------------------------------
# Reference image description -> final prompt
# ---------------------------------------------------------------------------

_PEOPLE_SENTINEL = re.compile(r"EXACTLY\s*(\d+)\s*(?:person|people)", re.IGNORECASE)
_ANIMAL_SENTINEL = re.compile(r"EXACTLY\s*(\d+)\s*(?:animal|animals)", re.IGNORECASE)
_OBJECT_SENTINEL = re.compile(r"EXACTLY\s*(\d+)\s*(?:object|objects)", re.IGNORECASE)

NO_TEXT_FULL = (
    "ABSOLUTELY NO TEXT - No words, letters, numbers, labels, captions, watermarks, "
    "or any written content anywhere in the image."
)
NO_PALETTE_FULL = (
    "NO COLOR PALETTES - Do not add any color swatches, color palette strips, color samples, "
    "color bars, or reference colors at the edges or bottom of the image. The image should "
    "contain ONLY the sticker illustration itself with nothing else."
)
NO_TEXT_SHORT = "ABSOLUTELY NO TEXT - No words, letters, numbers, or writing anywhere."
NO_PALETTE_SHORT = (
    "NO COLOR PALETTES - No color swatches, color strips, or color samples at the edges "
    "or bottom of the image."
)

PEOPLE_RULES = (
    "SKIN TONES: Match the exact skin tones described for each person",
    "GENDER: Match the gender of each person as described",
    "CLOTHING: Match exact clothing colors and types for each person",
    "HAIR: Match exact hair color, length, and style for each person",
    "POSES: Match the poses and actions described",
    "EXPRESSIONS: Match the facial expressions and emotions described",
    "ARRANGEMENT: Position people exactly as described (left/center/right)",
    "BACKGROUND: Include the background setting as described",
)

OBJECT_RULES = (
    "COLORS: Match exact colors for each object",
    "DETAILS: Include all specific details mentioned",
    "ARRANGEMENT: Position objects as described",
    "BACKGROUND: Include background as described",
)

CUSTOM_STYLE_RULE = "STYLE: Follow the style instructions above EXACTLY as specified"


def extract_subject_counts(description: str) -> Tuple[int, int, int]:
    """Read (people, animals, objects) from the rendered EXACTLY sentinels."""
    counts = []
    for pattern in (_PEOPLE_SENTINEL, _ANIMAL_SENTINEL, _OBJECT_SENTINEL):
        match = pattern.search(description or "")
        counts.append(int(match.group(1)) if match else 0)
    return counts[0], counts[1], counts[2]


def _numbered(rules: List[str]) -> str:
    return "\n".join(f"{index}. {rule}" for index, rule in enumerate(rules, start=1))


class DescriptionPromptTransformer:
    """Turns an image description into the final constrained sticker prompt."""

    def transform(
        self,
        description: VisionDescription | str,
        style: str,
        use_custom_style: bool = False,
    ) -> str:
        """Build the final prompt.

        Args:
            description: Vision output; plain strings have their counts read
                from the EXACTLY sentinels.
            style: Catalog style name, or the user's custom style text when
                ``use_custom_style`` is set.
            use_custom_style: Place ``style`` first as the governing directive.
        """
        if isinstance(description, VisionDescription):
            text = description.text
            people, animals, objects = description.people_count, description.animal_count, description.object_count
        else:
            text = description or ""
            people, animals, objects = extract_subject_counts(text)

        text = text.strip() or "a subject in a simple setting"
        style = (style or "").strip() or "artistic"

        if people > 0:
            prompt = self._people_prompt(text, style, people, use_custom_style)
        elif objects > 0 and animals == 0:
            prompt = self._objects_prompt(text, style, objects, use_custom_style)
        else:
            prompt = self._scene_prompt(text, style, use_custom_style)

        logger.debug("Final prompt length: %d", len(prompt))
        return prompt

    def _people_prompt(self, text: str, style: str, count: int, custom: bool) -> str:
        phrase = count_phrase(count, "person", "people")
        number_rule = f"NUMBER: Show EXACTLY {phrase} - not {count - 1}, not {count + 1}, EXACTLY {count}"

        if custom:
            header = (
                f"{style}\n\n"
                f"APPLY THE ABOVE STYLE TO THIS SUBJECT - Create a sticker illustration showing EXACTLY {phrase}:"
            )
            rules = [CUSTOM_STYLE_RULE, number_rule, *PEOPLE_RULES]
        else:
            header = f"Create a {style} style sticker illustration showing EXACTLY {phrase}."
            rules = [number_rule, *PEOPLE_RULES, f"STYLE: {style} artistic style with clean sticker edges"]

        return (
            f"{header}\n\n"
            f"DETAILED SUBJECT DESCRIPTION:\n{text}\n\n"
            f"CRITICAL REQUIREMENTS - MUST FOLLOW:\n{_numbered(rules)}\n\n"
            f"{NO_TEXT_FULL}\n{NO_PALETTE_FULL}"
        )

    def _objects_prompt(self, text: str, style: str, count: int, custom: bool) -> str:
        phrase = count_phrase(count, "object", "objects")
        number_rule = f"NUMBER: Show EXACTLY {phrase} ({count}) as described"

        if custom:
            header = (
                f"{style}\n\n"
                f"APPLY THE ABOVE STYLE TO THIS SUBJECT - Create a sticker illustration showing EXACTLY {phrase}:"
            )
            rules = [CUSTOM_STYLE_RULE, number_rule, *OBJECT_RULES]
        else:
            header = f"Create a {style} style sticker illustration showing EXACTLY {phrase}."
            rules = [number_rule, *OBJECT_RULES, f"STYLE: {style} artistic style with clean sticker edges"]

        return (
            f"{header}\n\n"
            f"DETAILED SUBJECT DESCRIPTION:\n{text}\n\n"
            f"CRITICAL REQUIREMENTS:\n{_numbered(rules)}\n\n"
            f"{NO_TEXT_SHORT}\n{NO_PALETTE_SHORT}"
        )

    def _scene_prompt(self, text: str, style: str, custom: bool) -> str:
        if custom:
            header = f"{style}\n\nAPPLY THE ABOVE STYLE TO CREATE A STICKER ILLUSTRATION:"
            rules = ["Follow the style instructions above EXACTLY as specified"]
        else:
            header = f"Create a {style} style sticker illustration:"
            rules = []

        rules += [
            "Match all visual details exactly as described",
            "Match all colors exactly as described",
            "Include background as described",
        ]
        rules.append("Create clean sticker edges" if custom else f"{style} artistic style with clean sticker edges")
        rules += [
            "ABSOLUTELY NO TEXT, words, letters, or writing anywhere in the image",
            "NO COLOR PALETTES, color swatches, or color samples at edges or bottom of image",
        ]

        bullets = "\n".join(f"- {rule}" for rule in rules)
        return f"{header}\n\nDETAILED DESCRIPTION:\n{text}\n\nREQUIREMENTS:\n{bullets}"
