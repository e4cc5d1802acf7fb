"""Utility functions for the sticker generator."""

import base64
import io
import json
import re
from pathlib import Path
from typing import Any

from PIL import Image


NUMBER_WORDS = {
    1: "one", 2: "two", 3: "three", 4: "four", 5: "five",
    6: "six", 7: "seven", 8: "eight", 9: "nine", 10: "ten",
}


def number_to_word(n: int) -> str:
    """Spell out 1..10; anything else stays a numeral."""
    return NUMBER_WORDS.get(n, str(n))


def count_phrase(n: int, singular: str, plural: str) -> str:
    """'one person', 'three people', '12 objects'."""
    return f"{number_to_word(n)} {singular if n == 1 else plural}"


def clean_base64_image(image_base64: str) -> str:
    """Normalize an uploaded image into a data URL without whitespace."""
    if image_base64.startswith("data:image/"):
        parts = image_base64.split(",")
        if len(parts) == 2:
            payload = re.sub(r"\s", "", parts[1])
            return f"{parts[0]},{payload}"

    cleaned = re.sub(r"\s", "", image_base64)
    return f"data:image/jpeg;base64,{cleaned}"


def save_image_from_base64(
    image_data: str,
    output_path: Path,
    format: str = "PNG"
) -> bool:
    """Save base64 encoded image data to file."""
    try:
        image_bytes = base64.b64decode(image_data)
        image = Image.open(io.BytesIO(image_bytes))

        output_path.parent.mkdir(parents=True, exist_ok=True)
        image.save(output_path, format=format)
        return True

    except Exception:
        return False


def truncate_text(text: str, max_length: int) -> str:
    """Truncate text to maximum length, preserving word boundaries."""
    if len(text) <= max_length:
        return text

    truncated = text[:max_length]
    last_space = truncated.rfind(' ')

    if last_space > max_length * 0.8:
        return truncated[:last_space] + "..."
    else:
        return truncated + "..."


def message_text(content: Any) -> str:
    """Convert LangChain message content (which may be structured) into text."""
    if content is None:
        return ""

    if isinstance(content, str):
        return content

    if isinstance(content, list):
        parts: list[str] = []
        for item in content:
            if isinstance(item, str):
                parts.append(item)
            elif isinstance(item, dict):
                text = item.get("text") or item.get("content")
                if text:
                    parts.append(str(text))
        return "\n".join(part for part in parts if part)

    return str(content)


# -----------------------
# LLM JSON parsing helpers
# -----------------------

def extract_json_from_text(text: str) -> str | None:
    """Extract the first JSON object or array from arbitrary LLM text.

    Handles common cases like code fences and leading/trailing prose.
    """
    if not text:
        return None

    s = text.strip()

    if s.startswith("```"):
        s = re.sub(r"^```(json|JSON)?\s*", "", s)
        s = re.sub(r"\s*```\s*$", "", s)

    if s.startswith("{") or s.startswith("["):
        return s

    obj_match = re.search(r"\{[\s\S]*\}", s)
    arr_match = re.search(r"\[[\s\S]*\]", s)

    candidates = []
    if obj_match:
        candidates.append((obj_match.start(), obj_match.group(0)))
    if arr_match:
        candidates.append((arr_match.start(), arr_match.group(0)))

    if not candidates:
        return None

    candidates.sort(key=lambda x: x[0])
    return candidates[0][1]


def parse_llm_json(text: str) -> Any:
    """Parse JSON from LLM output robustly.

    Returns Python object or raises ValueError on failure.
    """
    candidate = extract_json_from_text(text)
    if candidate is None:
        raise ValueError("No JSON found in LLM output")

    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        # Stray trailing punctuation
        try:
            cleaned = candidate.strip().rstrip('.').rstrip()
            return json.loads(cleaned)
        except json.JSONDecodeError:
            pass

        # Output cut off by the token budget: close open structures at the error point
        try:
            truncated = candidate[:e.pos].rstrip().rstrip(',')
            open_braces = truncated.count('{') - truncated.count('}')
            open_brackets = truncated.count('[') - truncated.count(']')
            truncated += ']' * max(open_brackets, 0)
            truncated += '}' * max(open_braces, 0)
            return json.loads(truncated)
        except json.JSONDecodeError:
            pass

        raise ValueError(f"Failed to parse JSON after cleanup attempts: {e}")
