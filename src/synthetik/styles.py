"""Sticker style catalog and free-text style resolution."""

import logging
from typing import Any, Dict, List

from synthetik.models import StyleDefinition, StyleKey

logger = logging.getLogger(__name__)


DEFAULT_STYLE = StyleKey.ANIMATED
GENERIC_DEFAULT_SUBJECT = "a creative sticker design"


def _style(key: StyleKey, **fields: str) -> StyleDefinition:
    return StyleDefinition(key=key, **fields)


STICKER_STYLES: Dict[StyleKey, StyleDefinition] = {
    style.key: style
    for style in (
        _style(
            StyleKey.GHIBLI,
            id="ghibli",
            name="Ghibli",
            description="Studio Ghibli inspired anime art style",
            prompt_modifier="Studio Ghibli style, watercolor texture, soft colors, whimsical atmosphere, hand-painted look",
            negative_prompt="realistic, photorealistic, dark, horror, violent, sharp edges, 3D, neon",
            color="linear-gradient(135deg, #d4a574 0%, #8b7355 100%)",
            preview_image="/styles/ghibli.svg",
            emoji="🍃",
            lighting="soft natural light",
            composition="centered subject",
        ),
        _style(
            StyleKey.ANIMATED,
            id="animated",
            name="Cartoon",
            description="Modern 2D animation style",
            prompt_modifier="modern cartoon style, clean outlines, flat colors, expressive features, Disney/Pixar inspired",
            negative_prompt="realistic, sketch, rough, 3D, photograph, blurry",
            color="linear-gradient(135deg, #667eea 0%, #764ba2 100%)",
            preview_image="/styles/cartoon.svg",
            emoji="🎬",
            lighting="bright studio lighting",
            composition="clear silhouette",
        ),
        _style(
            StyleKey.RENDER_3D,
            id="3d-render",
            name="3D Render",
            description="High-quality 3D rendered style",
            prompt_modifier="3D render, Pixar style, smooth surfaces, soft lighting, stylized 3D character",
            negative_prompt="2D, flat, sketch, watercolor, low poly, realistic human",
            color="linear-gradient(135deg, #a8edea 0%, #fed6e3 100%)",
            preview_image="/styles/3d-render.svg",
            emoji="🎮",
            lighting="studio three-point lighting",
            composition="three-quarter view",
        ),
        _style(
            StyleKey.ANIME,
            id="anime",
            name="Anime",
            description="Japanese anime style",
            prompt_modifier="anime style, large expressive eyes, cel-shaded colors, detailed hair, vibrant colors",
            negative_prompt="western cartoon, 3D, realistic, chibi, bad anatomy",
            color="linear-gradient(135deg, #ff6b9d 0%, #c44569 100%)",
            preview_image="/styles/anime.svg",
            emoji="⭐",
            lighting="anime lighting",
            composition="dynamic pose",
        ),
        _style(
            StyleKey.CHIBI,
            id="chibi",
            name="Chibi",
            description="Cute chibi style",
            prompt_modifier="chibi style, oversized head, tiny body, cute features, pastel colors, kawaii",
            negative_prompt="realistic proportions, tall, serious, detailed",
            color="linear-gradient(135deg, #ffecd2 0%, #fcb69f 100%)",
            preview_image="/styles/chibi.svg",
            emoji="🎀",
            lighting="soft flat lighting",
            composition="centered, simple pose",
        ),
        _style(
            StyleKey.RETRO_80S,
            id="retro-80s",
            name="Synthwave",
            description="Nostalgic 80s aesthetic",
            prompt_modifier="synthwave style, neon colors, sunset gradient, retro 80s aesthetic",
            negative_prompt="modern, minimalist, muted colors, realistic",
            color="linear-gradient(135deg, #ff0080 0%, #7928ca 100%)",
            preview_image="/styles/synthwave.svg",
            emoji="🌆",
            lighting="neon glow",
            composition="silhouette against gradient",
        ),
        _style(
            StyleKey.CYBERPUNK,
            id="cyberpunk",
            name="Cyberpunk",
            description="Futuristic cyberpunk style",
            prompt_modifier="cyberpunk style, neon lights, futuristic, cybernetic elements, urban dystopia",
            negative_prompt="natural, pastoral, bright daylight, vintage",
            color="linear-gradient(135deg, #0f0c29 0%, #302b63 50%, #24243e 100%)",
            preview_image="/styles/cyberpunk.svg",
            emoji="🤖",
            lighting="neon lighting",
            composition="urban setting",
        ),
        _style(
            StyleKey.WATERCOLOR,
            id="watercolor",
            name="Watercolor",
            description="Artistic watercolor painting",
            prompt_modifier="watercolor painting, soft edges, transparent colors, brush strokes",
            negative_prompt="digital, sharp edges, flat colors, 3D, photorealistic",
            color="linear-gradient(135deg, #e0c3fc 0%, #8ec5fc 100%)",
            preview_image="/styles/watercolor.svg",
            emoji="🎨",
            lighting="soft natural light",
            composition="organic flow",
        ),
        _style(
            StyleKey.PASTEL,
            id="pastel",
            name="Pastel Dream",
            description="Soft pastel colors",
            prompt_modifier="pastel colors, soft aesthetic, cute styling, gentle colors",
            negative_prompt="dark, high contrast, neon, harsh",
            color="linear-gradient(135deg, #fce7f3 0%, #ddd6fe 100%)",
            preview_image="/styles/pastel.svg",
            emoji="🌸",
            lighting="soft diffused light",
            composition="gentle curves",
        ),
        _style(
            StyleKey.PIXEL_ART,
            id="pixel-art",
            name="Pixel Art",
            description="Retro pixel art style",
            prompt_modifier="pixel art, retro video game style, limited colors, crisp pixels",
            negative_prompt="smooth, anti-aliased, high resolution, photorealistic",
            color="linear-gradient(135deg, #11998e 0%, #38ef7d 100%)",
            preview_image="/styles/pixel-art.svg",
            emoji="👾",
            lighting="flat shading",
            composition="clear silhouette",
        ),
        _style(
            StyleKey.POP_ART,
            id="pop-art",
            name="Pop Art",
            description="Andy Warhol inspired",
            prompt_modifier="pop art style, bold colors, Ben-Day dots, comic book aesthetic",
            negative_prompt="subtle, muted, realistic, watercolor",
            color="linear-gradient(135deg, #f093fb 0%, #f5576c 100%)",
            preview_image="/styles/pop-art.svg",
            emoji="💥",
            lighting="flat graphic lighting",
            composition="bold graphic shapes",
        ),
        _style(
            StyleKey.MINIMALIST,
            id="minimalist",
            name="Minimalist",
            description="Clean minimal design",
            prompt_modifier="minimalist design, simple shapes, limited colors, clean lines",
            negative_prompt="detailed, complex, busy, ornate",
            color="linear-gradient(135deg, #e8e8e8 0%, #c4c4c4 100%)",
            preview_image="/styles/minimalist.svg",
            emoji="◯",
            lighting="flat lighting",
            composition="balanced negative space",
        ),
        _style(
            StyleKey.KAWAII,
            id="kawaii",
            name="Kawaii",
            description="Super cute Japanese style",
            prompt_modifier="kawaii style, extremely cute, sparkly eyes, pastel colors",
            negative_prompt="scary, dark, realistic, serious",
            color="linear-gradient(135deg, #fccb90 0%, #d57eeb 100%)",
            preview_image="/styles/kawaii.svg",
            emoji="💖",
            lighting="soft bright lighting",
            composition="centered cute subject",
        ),
        _style(
            StyleKey.COMIC_BOOK,
            id="comic-book",
            name="Comic Book",
            description="Marvel/DC comic style",
            prompt_modifier="comic book style, bold outlines, dynamic poses, superhero aesthetic",
            negative_prompt="anime, cute, realistic, soft",
            color="linear-gradient(135deg, #eb3349 0%, #f45c43 100%)",
            preview_image="/styles/comic-book.svg",
            emoji="💪",
            lighting="dramatic lighting",
            composition="heroic pose",
        ),
        _style(
            StyleKey.VINTAGE,
            id="vintage",
            name="Vintage",
            description="Retro vintage aesthetic",
            prompt_modifier="vintage style, muted colors, retro aesthetic, classic illustration",
            negative_prompt="modern, digital, neon, futuristic",
            color="linear-gradient(135deg, #c79081 0%, #dfa579 100%)",
            preview_image="/styles/vintage.svg",
            emoji="📺",
            lighting="warm lighting",
            composition="classic framing",
        ),
        _style(
            StyleKey.NEON,
            id="neon",
            name="Neon Glow",
            description="Bright neon lights",
            prompt_modifier="neon glow, bright colors, glowing effects, dark background",
            negative_prompt="daylight, natural, muted, vintage",
            color="linear-gradient(135deg, #00f260 0%, #0575e6 100%)",
            preview_image="/styles/neon.svg",
            emoji="✨",
            lighting="neon lighting",
            composition="glowing subject",
        ),
        _style(
            StyleKey.GRAFFITI,
            id="graffiti",
            name="Street Art",
            description="Urban graffiti style",
            prompt_modifier="graffiti style, spray paint, urban art, bold colors",
            negative_prompt="clean, corporate, delicate, traditional",
            color="linear-gradient(135deg, #f857a6 0%, #ff5858 100%)",
            preview_image="/styles/street-art.svg",
            emoji="🎤",
            lighting="daylight",
            composition="bold graphic",
        ),
        _style(
            StyleKey.STAINED_GLASS,
            id="stained-glass",
            name="Stained Glass",
            description="Colorful stained glass",
            prompt_modifier="stained glass art, lead lines, jewel colors, translucent",
            negative_prompt="opaque, matte, realistic, modern",
            color="linear-gradient(135deg, #4776e6 0%, #8e54e9 100%)",
            preview_image="/styles/stained-glass.svg",
            emoji="🏰",
            lighting="backlit",
            composition="segmented design",
        ),
        _style(
            StyleKey.DOODLE,
            id="doodle",
            name="Doodle",
            description="Hand-drawn doodle style",
            prompt_modifier="hand-drawn doodle, sketchy lines, pen on paper, whimsical",
            negative_prompt="polished, perfect, digital, 3D",
            color="linear-gradient(135deg, #ffeaa7 0%, #dfe6e9 100%)",
            preview_image="/styles/doodle.svg",
            emoji="✏️",
            lighting="flat",
            composition="casual arrangement",
        ),
        _style(
            StyleKey.HOLOGRAPHIC,
            id="holographic",
            name="Holographic",
            description="Iridescent holographic",
            prompt_modifier="holographic effect, rainbow colors, iridescent, shiny",
            negative_prompt="matte, flat, dull, natural",
            color="linear-gradient(135deg, #a8c0ff 0%, #3f2b96 50%, #a8c0ff 100%)",
            preview_image="/styles/holographic.svg",
            emoji="🌈",
            lighting="iridescent",
            composition="showcasing color-shift",
        ),
    )
}


# Keys are lowercase and trimmed; every StyleKey must be reachable.
STYLE_ALIASES: Dict[str, StyleKey] = {
    "ghibli": StyleKey.GHIBLI,
    "studio ghibli": StyleKey.GHIBLI,
    "animated": StyleKey.ANIMATED,
    "cartoon": StyleKey.ANIMATED,
    "3d render": StyleKey.RENDER_3D,
    "3d": StyleKey.RENDER_3D,
    "3d_render": StyleKey.RENDER_3D,
    "3d-render": StyleKey.RENDER_3D,
    "anime": StyleKey.ANIME,
    "chibi": StyleKey.CHIBI,
    "retro 80s": StyleKey.RETRO_80S,
    "retro_80s": StyleKey.RETRO_80S,
    "retro-80s": StyleKey.RETRO_80S,
    "synthwave": StyleKey.RETRO_80S,
    "cyberpunk": StyleKey.CYBERPUNK,
    "watercolor": StyleKey.WATERCOLOR,
    "pastel": StyleKey.PASTEL,
    "pastel dream": StyleKey.PASTEL,
    "pixel art": StyleKey.PIXEL_ART,
    "pixel_art": StyleKey.PIXEL_ART,
    "pixel-art": StyleKey.PIXEL_ART,
    "pixel": StyleKey.PIXEL_ART,
    "pop art": StyleKey.POP_ART,
    "pop_art": StyleKey.POP_ART,
    "pop-art": StyleKey.POP_ART,
    "pop": StyleKey.POP_ART,
    "minimalist": StyleKey.MINIMALIST,
    "minimal": StyleKey.MINIMALIST,
    "kawaii": StyleKey.KAWAII,
    "comic book": StyleKey.COMIC_BOOK,
    "comic_book": StyleKey.COMIC_BOOK,
    "comic-book": StyleKey.COMIC_BOOK,
    "comic": StyleKey.COMIC_BOOK,
    "vintage": StyleKey.VINTAGE,
    "neon": StyleKey.NEON,
    "neon glow": StyleKey.NEON,
    "graffiti": StyleKey.GRAFFITI,
    "street art": StyleKey.GRAFFITI,
    "stained glass": StyleKey.STAINED_GLASS,
    "stained_glass": StyleKey.STAINED_GLASS,
    "stained-glass": StyleKey.STAINED_GLASS,
    "doodle": StyleKey.DOODLE,
    "holographic": StyleKey.HOLOGRAPHIC,
}


DEFAULT_SUBJECTS: Dict[StyleKey, str] = {
    StyleKey.GHIBLI: "a forest spirit",
    StyleKey.ANIMATED: "a cartoon character",
    StyleKey.RENDER_3D: "a 3D mascot",
    StyleKey.ANIME: "an anime character",
    StyleKey.CHIBI: "a chibi character",
    StyleKey.RETRO_80S: "a retro character",
    StyleKey.CYBERPUNK: "a cyberpunk character",
    StyleKey.WATERCOLOR: "a butterfly",
    StyleKey.PASTEL: "a cute bunny",
    StyleKey.PIXEL_ART: "a game character",
    StyleKey.POP_ART: "a pop art portrait",
    StyleKey.MINIMALIST: "a geometric fox",
    StyleKey.KAWAII: "a kawaii character",
    StyleKey.COMIC_BOOK: "a superhero",
    StyleKey.VINTAGE: "a vintage character",
    StyleKey.NEON: "a neon figure",
    StyleKey.GRAFFITI: "a graffiti character",
    StyleKey.STAINED_GLASS: "a phoenix",
    StyleKey.DOODLE: "a doodle creature",
    StyleKey.HOLOGRAPHIC: "a unicorn",
}


def resolve_style(style: str) -> StyleKey:
    """Resolve free-form style text to a catalog key.

    Resolution never fails: aliases are matched on the normalized text, then
    the raw text is accepted if it already is a canonical key, and anything
    else resolves to ``DEFAULT_STYLE``.
    """
    normalized = (style or "").lower().strip()

    alias = STYLE_ALIASES.get(normalized)
    if alias is not None:
        return alias

    try:
        return StyleKey(style)
    except ValueError:
        pass

    logger.debug("Unrecognized style %r, using default %s", style, DEFAULT_STYLE.value)
    return DEFAULT_STYLE


def get_style(key: StyleKey) -> StyleDefinition:
    """Return the catalog entry for a key."""
    return STICKER_STYLES[key]


def default_subject_for(key: StyleKey | None) -> str:
    """Creative default subject used when the request names none."""
    if key is None:
        return GENERIC_DEFAULT_SUBJECT
    return DEFAULT_SUBJECTS.get(key, GENERIC_DEFAULT_SUBJECT)


def list_styles() -> List[Dict[str, Any]]:
    """Catalog records for UI display, each tagged with its key as ``type``."""
    records = []
    for key, style in STICKER_STYLES.items():
        record = style.model_dump(exclude={"key"}, by_alias=False)
        record["type"] = key.value
        records.append(record)
    return records
