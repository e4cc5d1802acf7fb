"""Data models for sticker generation requests, image analysis and results."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class StyleKey(str, Enum):
    """Canonical keys of the sticker style catalog."""
    GHIBLI = "GHIBLI"
    ANIMATED = "ANIMATED"
    RENDER_3D = "3D_RENDER"
    ANIME = "ANIME"
    CHIBI = "CHIBI"
    RETRO_80S = "RETRO_80S"
    CYBERPUNK = "CYBERPUNK"
    WATERCOLOR = "WATERCOLOR"
    PASTEL = "PASTEL"
    PIXEL_ART = "PIXEL_ART"
    POP_ART = "POP_ART"
    MINIMALIST = "MINIMALIST"
    KAWAII = "KAWAII"
    COMIC_BOOK = "COMIC_BOOK"
    VINTAGE = "VINTAGE"
    NEON = "NEON"
    GRAFFITI = "GRAFFITI"
    STAINED_GLASS = "STAINED_GLASS"
    DOODLE = "DOODLE"
    HOLOGRAPHIC = "HOLOGRAPHIC"


class ImageProvider(str, Enum):
    """Supported image generation providers."""
    DALLE = "dalle"
    REPLICATE = "replicate"


class SubjectType(str, Enum):
    """Top-level classification returned by structured image analysis."""
    PEOPLE = "people"
    OBJECTS = "objects"
    MIXED = "mixed"
    ANIMAL = "animal"
    SCENE = "scene"


class AnalysisSource(str, Enum):
    """Which stage of the vision pipeline produced a description."""
    STRUCTURED = "structured"
    TEXT = "text"
    CANNED = "canned"


class StyleDefinition(BaseModel):
    """One immutable entry of the style catalog."""
    model_config = ConfigDict(frozen=True)

    key: StyleKey
    id: str
    name: str
    description: str
    prompt_modifier: str
    negative_prompt: str
    color: str
    preview_image: str
    emoji: str
    lighting: str
    composition: str


class ComposedPrompt(BaseModel):
    """Positive and negative instruction strings for the image model."""
    model_config = ConfigDict(frozen=True)

    prompt: str
    negative_prompt: str


class GenerationRequest(BaseModel):
    """Inbound generation request as posted by the client."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    style: str = Field(min_length=1, description="Style key, id, name or alias")
    custom_prompt: str | None = Field(default=None, description="Optional free text from the user")
    subject: str | None = Field(default=None, description="Explicit subject text")
    number_of_variations: int = Field(default=1, description="Requested variation count")
    image_base64: str | None = Field(default=None, description="Reference image as data URL or raw base64")
    custom_prompt_only: bool = Field(default=False, description="Use the custom prompt as the style")


class GeneratedDesign(BaseModel):
    """A single generated sticker held by the client until the next batch."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    url: str
    base64: str | None = None
    prompt: str | None = None
    style: str | None = None
    created_at: datetime | None = None


class GenerationResponse(BaseModel):
    """Outbound response for the generate endpoint."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    success: bool
    images: List[GeneratedDesign] | None = None
    error: str | None = None
    message: str | None = None


class GenerationOptions(BaseModel):
    """Provider options for a generation batch."""
    size: str = Field(default="1024x1024")
    quality: str = Field(default="standard")
    style: str = Field(default="vivid")
    negative_prompt: str | None = None
    image_base64: str | None = None
    style_label: str | None = Field(default=None, description="Style label stored on each design")


# ---------------------------------------------------------------------------
# Structured vision analysis
# ---------------------------------------------------------------------------


class _LenientModel(BaseModel):
    """Base for LLM-produced records: nulls and odd scalars become strings."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    @field_validator("*", mode="before")
    @classmethod
    def _coerce_scalars(cls, value: Any, info: ValidationInfo) -> Any:
        field = cls.model_fields.get(info.field_name)
        if field is not None and field.annotation is str:
            if value is None:
                return ""
            if isinstance(value, list):
                return ", ".join(str(item) for item in value if item is not None)
            if not isinstance(value, str):
                return str(value)
            return value.strip()
        return value


class PersonDetail(_LenientModel):
    """Detailed observation of one person in the reference image."""
    position: str = ""
    distance_from_camera: str = ""
    gender: str = ""
    approximate_age: str = ""
    ethnicity: str = ""
    skin_tone: str = ""
    face_shape: str = ""
    facial_features: str = ""
    eyebrows: str = ""
    eyes: str = ""
    nose: str = ""
    lips: str = ""
    hair_color: str = ""
    hair_texture: str = ""
    hair_length: str = ""
    hair_style: str = ""
    facial_hair: str = ""
    facial_expression: str = ""
    emotional_state: str = ""
    eye_contact: str = ""
    head_position: str = ""
    body_posture: str = ""
    arm_position: str = ""
    hand_details: str = ""
    body_type: str = ""
    height: str = ""
    headwear: str = ""
    eyewear: str = ""
    ear_accessories: str = ""
    neck_accessories: str = ""
    wrist_accessories: str = ""
    finger_accessories: str = ""
    top_clothing: str = ""
    top_clothing_details: str = ""
    bottom_clothing: str = ""
    bottom_clothing_details: str = ""
    footwear: str = ""
    outer_layer: str = ""
    bag_or_carry: str = ""
    other_accessories: str = ""
    clothing_condition: str = ""
    overall_style: str = ""


class AnimalDetail(_LenientModel):
    species: str = ""
    breed: str = ""
    color: str = ""
    size: str = ""
    position: str = ""
    pose: str = ""
    expression: str = ""
    accessories: str = ""
    notable_features: str = ""


class ObjectDetail(_LenientModel):
    name: str = ""
    type: str = ""
    color: str = ""
    material: str = ""
    size: str = ""
    position: str = ""
    details: str = ""


class BackgroundDetail(_LenientModel):
    setting: str = ""
    indoor_outdoor: str = ""
    main_elements: str = ""
    dominant_colors: str = ""
    lighting: str = ""
    atmosphere: str = ""


class PhotoComposition(_LenientModel):
    shot_type: str = ""
    angle: str = ""
    framing: str = ""


class ImageAnalysis(_LenientModel):
    """Structured output of the first vision stage."""
    image_type: SubjectType | None = None
    total_people: int = 0
    total_animals: int = 0
    total_objects: int = 0
    people: List[PersonDetail] = Field(default_factory=list)
    animals: List[AnimalDetail] = Field(default_factory=list)
    objects: List[ObjectDetail] = Field(default_factory=list)
    subject_interaction: str = ""
    background: BackgroundDetail | None = None
    photo_composition: PhotoComposition | None = None
    overall_mood: str = ""
    dominant_colors: List[str] = Field(default_factory=list)

    @field_validator("image_type", mode="before")
    @classmethod
    def _coerce_image_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            cleaned = value.strip().lower()
            try:
                return SubjectType(cleaned)
            except ValueError:
                return None
        return value if isinstance(value, SubjectType) else None

    @field_validator("total_people", "total_animals", "total_objects", mode="before")
    @classmethod
    def _coerce_count(cls, value: Any) -> int:
        if value is None or isinstance(value, bool):
            return 0
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return 0

    @field_validator("people", "animals", "objects", mode="before")
    @classmethod
    def _coerce_subjects(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, dict):
            return [value]
        if isinstance(value, list):
            return [item for item in value if isinstance(item, (dict, BaseModel))]
        return []

    @field_validator("dominant_colors", mode="before")
    @classmethod
    def _coerce_colors(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        if isinstance(value, list):
            return [str(item) for item in value if item]
        return []

    @field_validator("background", "photo_composition", mode="before")
    @classmethod
    def _coerce_section(cls, value: Any) -> Any:
        return value if isinstance(value, (dict, BaseModel)) else None

    @property
    def people_count(self) -> int:
        """Detected people; the declared total wins, the list length backs it up."""
        if not self.people:
            return 0
        return self.total_people or len(self.people)

    @property
    def animal_count(self) -> int:
        if not self.animals:
            return 0
        return self.total_animals or len(self.animals)

    @property
    def object_count(self) -> int:
        if not self.objects:
            return 0
        return self.total_objects or len(self.objects)

    def has_subjects(self) -> bool:
        return (self.people_count + self.animal_count + self.object_count) > 0


class VisionDescription(BaseModel):
    """Rendered description with the subject counts carried as typed fields."""
    text: str
    people_count: int = 0
    animal_count: int = 0
    object_count: int = 0
    source: AnalysisSource = AnalysisSource.CANNED

    def counts(self) -> Dict[str, int]:
        return {
            "people": self.people_count,
            "animals": self.animal_count,
            "objects": self.object_count,
        }
