"""Reference image analysis.

Stage A asks the vision model for a structured JSON analysis and renders it
into a deterministic description. When the structured answer is unusable,
Stage B asks for a free-text description instead. Any request failure ends in
one of a small set of canned, policy-safe descriptions, so ``analyze`` never
raises.
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from langchain_core.messages import HumanMessage, SystemMessage
from pydantic import ValidationError

from synthetik.models import (
    AnalysisSource,
    AnimalDetail,
    ImageAnalysis,
    ObjectDetail,
    PersonDetail,
    VisionDescription,
)
from synthetik.utils import clean_base64_image, message_text, parse_llm_json, truncate_text

logger = logging.getLogger(__name__)


CANNED_EMPTY_REPLY = "a subject in a simple setting"
CANNED_REFUSAL = "a person with warm expression in casual setting"
CANNED_REQUEST_FAILED = "a subject in a casual setting"

REFUSAL_MARKERS = ("i can't", "i cannot", "sorry", "not able to")

# Values the model uses to say "nothing here"; never rendered.
SENTINEL_VALUES = {"none", "not visible", "unclear", "n/a", "unknown", "null"}


STRUCTURED_SYSTEM_PROMPT = (
    "You are a FORENSIC VISUAL DETECTIVE - the world's best observer. Your job is to analyze "
    "images with EXTREME precision like you're documenting evidence. Miss NOTHING about the "
    "subjects. Every detail matters: what they wear, how they stand, their expression, "
    "accessories, colors. You have a photographic memory for details. Output valid JSON only."
)

STRUCTURED_USER_PROMPT = """DETECTIVE ANALYSIS - Examine this image like evidence. Document EVERY observable detail.

PRIORITY: 100% DETAIL ON SUBJECTS (people/animals/objects) + 30% BACKGROUND CONTEXT

Return JSON:

{
  "imageType": "people/objects/mixed/animal/scene",
  "totalPeople": <COUNT HEADS CAREFULLY - this is CRITICAL>,
  "totalAnimals": <exact count>,
  "totalObjects": <main objects count>,
  "people": [
    {
      "position": "left/center/right/foreground/background",
      "distanceFromCamera": "close-up/medium/far",
      "gender": "male/female",
      "approximateAge": "infant/toddler/child (3-12)/teenager (13-19)/young adult (20-35)/adult (36-50)/middle-aged (51-65)/senior (65+)",
      "ethnicity": "observed ethnicity",
      "skinTone": "very dark brown/dark brown/medium brown/caramel/tan/olive/light brown/fair/pale/pink",
      "faceShape": "oval/round/square/heart/oblong/diamond",
      "facialFeatures": "notable features - prominent cheekbones, dimples, freckles, moles, scars",
      "hairColor": "jet black/black/dark brown/medium brown/light brown/dirty blonde/blonde/strawberry blonde/red/auburn/gray/silver/white/bald/dyed [color]",
      "hairTexture": "straight/wavy/curly/coily/kinky",
      "hairLength": "bald/shaved/buzzcut/short/ear-length/chin-length/shoulder-length/mid-back/long",
      "hairStyle": "loose/ponytail/bun/braids/cornrows/dreadlocks/afro/mohawk/slicked back/parted/messy/styled",
      "facialHair": "none/clean shaven/5 o'clock shadow/stubble/mustache/goatee/short beard/full beard/long beard",
      "eyebrows": "thin/medium/thick/arched/straight/bushy",
      "eyes": "shape and color - round brown/almond black/hooded blue/etc",
      "nose": "small/medium/large/wide/narrow/pointed/rounded",
      "lips": "thin/medium/full",
      "facialExpression": "broad smile showing teeth/closed-mouth smile/slight smirk/neutral/serious/frowning/laughing/surprised/thoughtful/squinting",
      "emotionalState": "happy/joyful/content/excited/proud/confident/relaxed/focused/pensive/tired",
      "eyeContact": "looking directly at camera/looking away left/looking away right/looking up/looking down/eyes closed",
      "headPosition": "straight/tilted left/tilted right/looking up/looking down/turned left/turned right",
      "bodyPosture": "standing straight/standing relaxed/leaning/sitting upright/sitting relaxed/crouching/kneeling/lying down",
      "armPosition": "at sides/crossed/on hips/raised/one raised/holding something/hugging/gesturing",
      "handDetails": "visible hands doing what - holding phone/in pockets/making gesture/etc",
      "bodyType": "petite/slim/lean/average/athletic/muscular/stocky/heavy/plus-size",
      "height": "appears short/average/tall relative to others or objects",
      "headwear": "none/baseball cap [color]/snapback [color]/beanie [color]/bucket hat/sun hat/fedora/visor/headband/bandana/hijab [color]/turban [color]/helmet/hood up",
      "eyewear": "none/prescription glasses [frame color and style]/sunglasses [style - aviator/wayfarer/round/sport] [color]/reading glasses",
      "earAccessories": "none/stud earrings [color/material]/hoop earrings [size]/dangling earrings/ear cuff/airpods/headphones",
      "neckAccessories": "none/thin chain necklace [color]/thick chain [color]/pendant necklace/choker/scarf [color and pattern]/tie [color and pattern]/bowtie",
      "wristAccessories": "none/watch [style and color]/bracelet [type]/multiple bracelets/fitness band/bangles",
      "fingerAccessories": "none/ring(s) [which finger, color]",
      "topClothing": "[EXACT color] [material if visible] [style] - e.g., 'navy blue cotton polo shirt with white collar and small logo on chest'",
      "topClothingDetails": "buttons/zipper/graphics/logos/text/patterns/collar style/sleeve length",
      "bottomClothing": "[EXACT color] [material] [style] - e.g., 'faded light blue denim skinny jeans with ripped knees'",
      "bottomClothingDetails": "fit/rips/patterns/pockets visible",
      "footwear": "not visible/barefoot/[EXACT color] [brand if visible] [style] - e.g., 'white Nike Air Force 1 sneakers'",
      "outerLayer": "none/jacket [color, type]/hoodie [color]/coat [color, type]/vest/cardigan",
      "bagOrCarry": "none/backpack [color]/handbag [color]/tote/messenger bag/shopping bag/briefcase",
      "otherAccessories": "none/belt [color]/umbrella/phone in hand/drink/food/book/camera/any held items",
      "clothingCondition": "neat/casual/wrinkled/formal/sporty/dressed up/dressed down",
      "overallStyle": "casual/formal/business casual/sporty/streetwear/bohemian/elegant/grunge"
    }
  ],
  "animals": [
    {
      "species": "specific animal",
      "breed": "breed if identifiable",
      "color": "detailed fur/feather colors and patterns",
      "size": "toy/small/medium/large/giant",
      "position": "location in frame",
      "pose": "sitting/standing/lying/walking/running/playing",
      "expression": "happy/alert/sleepy/playful/anxious/calm",
      "accessories": "collar [color]/leash/clothing/harness/none",
      "notableFeatures": "any distinctive markings or features"
    }
  ],
  "objects": [
    {
      "name": "object name",
      "type": "category",
      "color": "exact colors",
      "material": "material type",
      "size": "relative size",
      "position": "where in frame",
      "details": "notable details"
    }
  ],
  "subjectInteraction": "how subjects interact - hugging/holding hands/talking/looking at each other/standing apart/grouped together",
  "background": {
    "setting": "specific location type",
    "indoorOutdoor": "indoor/outdoor/partially covered",
    "mainElements": "key background elements briefly",
    "dominantColors": "2-3 main background colors",
    "lighting": "natural daylight/overcast/sunset/artificial/mixed/flash/studio",
    "atmosphere": "mood of the setting"
  },
  "photoComposition": {
    "shotType": "extreme close-up/close-up/medium close-up/medium shot/medium full/full shot/wide shot",
    "angle": "eye level/slight low/low angle/slight high/high angle/bird's eye/worm's eye",
    "framing": "centered/rule of thirds/off-center left/off-center right"
  },
  "overallMood": "the emotional feeling of the image",
  "dominantColors": ["top 5 colors in entire image"]
}

DETECTIVE RULES:
1. COUNT SUBJECTS PRECISELY - Count every head visible. 1 person = 1. 3 people = 3. NO GUESSING.
2. ACCESSORIES ARE EVIDENCE - Caps, hats, glasses, sunglasses, jewelry, watches = DOCUMENT ALL
3. COLORS ARE SPECIFIC - Not "blue" but "navy blue" or "sky blue" or "royal blue"
4. SKIN TONES MATTER - Be precise and respectful: dark brown, medium brown, light brown, tan, olive, fair
5. CLOTHING IS IDENTITY - Full description with colors, style, any visible brands/logos
6. EXPRESSIONS TELL STORIES - Capture the exact facial expression and emotional state
7. POSES REVEAL CHARACTER - Document how they stand, sit, gesture
8. NOTHING IS INSIGNIFICANT - If you can see it, document it"""

FREEFORM_PROMPT_TEMPLATE = """Describe this image in EXTREME DETAIL for an artist to recreate as a {style} illustration.

REQUIRED FORMAT - Start with exact count:
"[EXACT COUNT] people/animals/objects: [DETAILED description]"

FOR EACH PERSON, DESCRIBE ALL:
1. BASICS: Gender, age, ethnicity appearance, skin tone (be specific: dark brown, medium brown, light brown, tan, olive, fair, pale)
2. FACE: Shape, expression, emotion, eye color
3. HAIR: Color, length, style (straight/curly/wavy), any specific styling
4. ACCESSORIES (CRITICAL):
   - Headwear: caps, hats, beanies, headbands, hijab, etc.
   - Eyewear: glasses, sunglasses (include frame color/style)
   - Jewelry: necklaces, earrings, bracelets, watches, rings
   - Other: bags, scarves, ties
5. CLOTHING (EXACT COLORS):
   - Top: "[exact color] [type]" e.g., "navy blue polo shirt with white collar"
   - Bottom: "[exact color] [type]" e.g., "light blue denim jeans"
   - Footwear: if visible
6. BODY: Type, pose, action
7. POSITION: Where in frame (left/center/right)

FOR OBJECTS/ANIMALS:
- Type, exact colors, size, material, position, notable details

BACKGROUND (50% importance):
- Setting (indoor/outdoor, specific location)
- Colors, furniture, objects visible
- Nature elements (trees, sky, water)
- Lighting and atmosphere

EXAMPLE:
"1 person: Male adult with dark brown skin, oval face, short black curly hair, wearing black Ray-Ban sunglasses, gold stud earrings, navy blue Nike cap worn backwards, white Nike t-shirt with red swoosh logo, black jogger pants, white Air Jordan sneakers. Standing with arms crossed, confident smile, looking at camera. Background: urban street with graffiti wall (red, blue, yellow), sunny day. Mood: cool and confident."

COUNT CAREFULLY. If 1 person = say "1 person". If 3 people = say "3 people"."""


_LEADING_COUNT = re.compile(
    r"^\s*[\"']?(\d+)\s+(person|people|animals?|objects?)\b",
    re.IGNORECASE,
)


class StructuredOutcome(str, Enum):
    """Result tag of the structured analysis request."""
    VALID_STRUCTURED = "valid_structured"
    INVALID_STRUCTURED = "invalid_structured"
    REQUEST_FAILED = "request_failed"


@dataclass
class StructuredResult:
    outcome: StructuredOutcome
    analysis: Optional[ImageAnalysis] = None
    detail: str = ""


def _present(value: str, *extra_sentinels: str) -> bool:
    if not value:
        return False
    lowered = value.strip().lower()
    return lowered not in SENTINEL_VALUES and lowered not in extra_sentinels


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def _render_person(person: PersonDetail, index: int) -> str:
    position = person.position if _present(person.position) else f"person {index + 1}"
    details: List[str] = []

    if _present(person.distance_from_camera):
        details.append(f"({person.distance_from_camera})")
    for value in (person.gender, person.approximate_age, person.ethnicity):
        if _present(value):
            details.append(value)
    if _present(person.skin_tone):
        details.append(f"with {person.skin_tone} skin")
    if _present(person.face_shape):
        details.append(f"{person.face_shape} face")
    if _present(person.facial_features):
        details.append(f"({person.facial_features})")
    if _present(person.eyes):
        details.append(person.eyes)

    hair = [value for value in (person.hair_color, person.hair_length, person.hair_texture, person.hair_style) if _present(value)]
    if hair:
        details.append(f"{' '.join(hair)} hair")

    if _present(person.facial_hair, "clean shaven"):
        details.append(f"with {person.facial_hair}")
    if _present(person.body_type, "average"):
        details.append(f"{person.body_type} build")
    if _present(person.height):
        details.append(f"({person.height})")

    accessories = [
        value for value in (
            person.headwear, person.eyewear, person.ear_accessories,
            person.neck_accessories, person.wrist_accessories, person.finger_accessories,
        )
        if _present(value)
    ]
    if accessories:
        details.append(f"wearing {', '.join(accessories)}")

    clothing: List[str] = []
    if _present(person.outer_layer):
        clothing.append(person.outer_layer)
    if _present(person.top_clothing):
        if _present(person.top_clothing_details):
            clothing.append(f"{person.top_clothing} ({person.top_clothing_details})")
        else:
            clothing.append(person.top_clothing)
    if _present(person.bottom_clothing):
        if _present(person.bottom_clothing_details):
            clothing.append(f"{person.bottom_clothing} ({person.bottom_clothing_details})")
        else:
            clothing.append(person.bottom_clothing)
    if _present(person.footwear):
        clothing.append(person.footwear)
    if clothing:
        details.append(f"dressed in {', '.join(clothing)}")

    if _present(person.bag_or_carry):
        details.append(f"carrying {person.bag_or_carry}")
    if _present(person.other_accessories):
        details.append(f"with {person.other_accessories}")
    if _present(person.overall_style):
        details.append(f"{person.overall_style} style")
    if _present(person.facial_expression):
        details.append(person.facial_expression)
    if _present(person.emotional_state):
        details.append(f"looking {person.emotional_state}")
    if _present(person.eye_contact):
        details.append(person.eye_contact)
    if _present(person.body_posture):
        details.append(person.body_posture)
    if _present(person.arm_position, "at sides"):
        details.append(f"arms {person.arm_position}")
    if _present(person.hand_details):
        details.append(person.hand_details)

    return f"[{position.upper()}]: {', '.join(details)}".rstrip(": ")


def _render_animal(animal: AnimalDetail) -> str:
    parts = [value for value in (animal.color, animal.breed, animal.species) if _present(value)]
    if _present(animal.size):
        parts.append(f"({animal.size})")
    if _present(animal.pose):
        parts.append(animal.pose)
    if _present(animal.expression):
        parts.append(f"looking {animal.expression}")
    if _present(animal.accessories):
        parts.append(f"wearing {animal.accessories}")
    if _present(animal.notable_features):
        parts.append(f"- {animal.notable_features}")
    return " ".join(parts)


def _render_object(obj: ObjectDetail) -> str:
    parts = [value for value in (obj.color, obj.material, obj.name) if _present(value)]
    if _present(obj.size):
        parts.append(f"({obj.size})")
    if _present(obj.position):
        parts.append(f"at {obj.position}")
    if _present(obj.details):
        parts.append(f"- {obj.details}")
    return " ".join(parts)


def render_description(analysis: ImageAnalysis) -> VisionDescription:
    """Render a structured analysis into prose in a fixed field order.

    Detected people always produce "EXACTLY N person/people" and animals
    "EXACTLY N animal/animals". Objects produce "EXACTLY N object/objects"
    only when they are the sole subjects.
    """
    parts: List[str] = []
    people = analysis.people_count
    animals = analysis.animal_count
    objects = analysis.object_count

    if people:
        parts.append(f"EXACTLY {_plural(people, 'person', 'people')}")
        for index, person in enumerate(analysis.people):
            parts.append(_render_person(person, index))

    if _present(analysis.subject_interaction):
        parts.append(f"Interaction: {analysis.subject_interaction}")

    if animals:
        parts.append(f"EXACTLY {_plural(animals, 'animal', 'animals')}")
        parts.extend(filter(None, (_render_animal(animal) for animal in analysis.animals)))

    if objects:
        if not people and not animals:
            parts.append(f"EXACTLY {_plural(objects, 'object', 'objects')}")
        else:
            parts.append(f"Also visible: {_plural(objects, 'object', 'objects')}")
        parts.extend(filter(None, (_render_object(obj) for obj in analysis.objects)))

    composition = analysis.photo_composition
    if composition:
        shot = [value for value in (composition.shot_type, composition.angle, composition.framing) if _present(value)]
        if shot:
            parts.append(f"Shot: {', '.join(shot)}")

    background = analysis.background
    if background:
        scene: List[str] = []
        if _present(background.setting):
            scene.append(background.setting)
        if _present(background.indoor_outdoor):
            scene.append(f"({background.indoor_outdoor})")
        if _present(background.main_elements):
            scene.append(background.main_elements)
        if _present(background.dominant_colors):
            scene.append(f"colors: {background.dominant_colors}")
        if _present(background.lighting):
            scene.append(f"{background.lighting} lighting")
        if _present(background.atmosphere):
            scene.append(f"{background.atmosphere} atmosphere")
        if scene:
            parts.append(f"BACKGROUND: {', '.join(scene)}")

    if analysis.dominant_colors:
        parts.append(f"Colors: {', '.join(analysis.dominant_colors)}")

    if _present(analysis.overall_mood):
        parts.append(f"Mood: {analysis.overall_mood}")

    return VisionDescription(
        text=". ".join(parts),
        people_count=people,
        animal_count=animals,
        object_count=objects if not people and not animals else 0,
        source=AnalysisSource.STRUCTURED,
    )


def parse_leading_counts(text: str) -> VisionDescription:
    """Wrap a free-text description, reading a leading "N people"/"N objects" count."""
    people = animals = objects = 0
    match = _LEADING_COUNT.match(text)
    if match:
        count = int(match.group(1))
        noun = match.group(2).lower()
        if noun in ("person", "people"):
            people = count
        elif noun.startswith("animal"):
            animals = count
        else:
            objects = count

    return VisionDescription(
        text=text,
        people_count=people,
        animal_count=animals,
        object_count=objects,
        source=AnalysisSource.TEXT,
    )


def is_refusal(text: str) -> bool:
    lowered = text.lower()
    return any(marker in lowered for marker in REFUSAL_MARKERS)


def canned(text: str) -> VisionDescription:
    return VisionDescription(text=text, source=AnalysisSource.CANNED)


class VisionAnalyzer:
    """Two-stage reference image analysis with graceful degradation."""

    def __init__(
        self,
        llm: Any,
        timeout: float = 45.0,
        structured_max_tokens: int = 2000,
        fallback_max_tokens: int = 1200,
    ):
        self.llm = llm
        self.timeout = timeout
        self.structured_max_tokens = structured_max_tokens
        self.fallback_max_tokens = fallback_max_tokens

    async def analyze(self, image_base64: str, target_style_hint: str) -> VisionDescription:
        """Describe the reference image for re-creation in ``target_style_hint``."""
        image_url = clean_base64_image(image_base64)
        result = await self.request_structured(image_url)

        if result.outcome == StructuredOutcome.VALID_STRUCTURED:
            description = render_description(result.analysis)
        elif result.outcome == StructuredOutcome.INVALID_STRUCTURED:
            logger.warning("Structured analysis unusable (%s), requesting free-text description", result.detail)
            description = await self.describe_freeform(image_url, target_style_hint)
        else:
            logger.warning("Structured analysis request failed: %s", result.detail)
            description = canned(CANNED_REQUEST_FAILED)

        logger.info(
            "Image description (%s, counts=%s): %s",
            description.source.value,
            description.counts(),
            truncate_text(description.text, 300),
        )
        return description

    async def request_structured(self, image_url: str) -> StructuredResult:
        """Stage A: request, parse and validate the JSON analysis."""
        messages = [
            SystemMessage(content=STRUCTURED_SYSTEM_PROMPT),
            HumanMessage(content=[
                {"type": "text", "text": STRUCTURED_USER_PROMPT},
                {"type": "image_url", "image_url": {"url": image_url, "detail": "high"}},
            ]),
        ]

        try:
            response = await asyncio.wait_for(
                self.llm.ainvoke(
                    messages,
                    response_format={"type": "json_object"},
                    max_tokens=self.structured_max_tokens,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return StructuredResult(StructuredOutcome.REQUEST_FAILED, detail=f"timed out after {self.timeout:.1f}s")
        except Exception as exc:
            return StructuredResult(StructuredOutcome.REQUEST_FAILED, detail=str(exc))

        content = message_text(getattr(response, "content", response))
        logger.debug("Raw vision JSON response: %s", truncate_text(content, 500))

        if not content.strip():
            return StructuredResult(StructuredOutcome.INVALID_STRUCTURED, detail="empty response")

        try:
            data = parse_llm_json(content)
        except ValueError as exc:
            return StructuredResult(StructuredOutcome.INVALID_STRUCTURED, detail=str(exc))

        if not isinstance(data, dict):
            return StructuredResult(StructuredOutcome.INVALID_STRUCTURED, detail="response is not a JSON object")

        try:
            analysis = ImageAnalysis.model_validate(data)
        except ValidationError as exc:
            return StructuredResult(StructuredOutcome.INVALID_STRUCTURED, detail=f"schema mismatch: {exc.error_count()} errors")

        if not analysis.has_subjects():
            return StructuredResult(StructuredOutcome.INVALID_STRUCTURED, analysis=analysis, detail="no subjects detected")

        return StructuredResult(StructuredOutcome.VALID_STRUCTURED, analysis=analysis)

    async def describe_freeform(self, image_url: str, target_style_hint: str) -> VisionDescription:
        """Stage B: plain-text description, with canned replacements for empty or refused replies."""
        messages = [
            HumanMessage(content=[
                {"type": "text", "text": FREEFORM_PROMPT_TEMPLATE.format(style=target_style_hint)},
                {"type": "image_url", "image_url": {"url": image_url, "detail": "high"}},
            ]),
        ]

        try:
            response = await asyncio.wait_for(
                self.llm.ainvoke(messages, max_tokens=self.fallback_max_tokens),
                timeout=self.timeout,
            )
        except Exception as exc:
            logger.error("Free-text vision analysis failed: %s", exc)
            return canned(CANNED_REQUEST_FAILED)

        text = message_text(getattr(response, "content", response)).strip()
        if not text:
            return canned(CANNED_EMPTY_REPLY)
        if is_refusal(text):
            logger.warning("Vision model declined to describe the image")
            return canned(CANNED_REFUSAL)

        return parse_leading_counts(text)
