"""
Prompt assembly for song, theme and artist generation.

Everything here is pure: parameters in, GenerationRequest out. The Gemini
service is the only place that talks to the network.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Optional

from app.schemas.artist import Artist
from app.services.history_ledger import HistoryLedger

DEFAULT_MODEL = "gemini-2.5-flash"
STYLE_MAX_CHARS = 250

# Themes the model falls back to far too often
BANNED_THEMES = (
    "virtual reality",
    "the metaverse",
    "artificial intelligence",
    "robots or androids",
    "being trapped in a simulation",
    "cyberspace or digital worlds",
    "neon-lit cyberpunk cities",
    "glitches, code or algorithms",
    "social media or screens",
)

LYRICS_FORMAT_EXAMPLE = """[Intro]
[filtered guitar, soft kick building, one-shot vocal ad-lib]

[Verse 1]
Streetlights hum a tune I used to know
Footsteps counting every step I owe

[Pre-Chorus]
Hold on, hold on
The night is almost gone

[Chorus]
We run before the morning finds us here
Louder than the silence, brighter than the fear

[Bridge]
[drums drop out, bass and voice only]
And if it falls apart, at least it fell with you

[Outro]
[fade on the last chorus line]"""

INSTRUMENTAL_FORMAT_EXAMPLE = """[Intro]
[8 bars - solo felt piano, tape hiss, distant rain field recording]

[Theme A]
[warm upright bass enters, brushed snare at 84 BPM, piano carries the motif]

[Build]
[strings swell in fifths, hi-hats open up, tension held for 4 bars]

[Theme B]
[lead synth doubles the motif an octave up, full kit]

[Outro]
[everything drops but piano, motif resolves to the tonic and rings out]"""


class CreativityLevel(IntEnum):
    """Five-step scale for how far a song may stray from the artist's style."""

    IDENTICAL = 0
    SUBTLE = 25
    INSPIRED = 50
    EXPERIMENTAL = 75
    WILDCARD = 100

    @property
    def label(self) -> str:
        return self.name.title()

    @property
    def instruction(self) -> str:
        return _CREATIVITY_INSTRUCTIONS[self]

    @classmethod
    def from_value(cls, value: int) -> "CreativityLevel":
        try:
            return cls(value)
        except ValueError as e:
            raise ValueError(
                f"Creativity must be one of {[level.value for level in cls]}, got {value}"
            ) from e


_CREATIVITY_INSTRUCTIONS = {
    CreativityLevel.IDENTICAL: (
        "STYLE ADHERENCE: IDENTICAL. Stay strictly within the artist's existing style. "
        "Use the same genre, instrumentation, tempo range, vocal delivery and mood. "
        "Do not add any twist; the song must sound like a track from their latest album."
    ),
    CreativityLevel.SUBTLE: (
        "STYLE ADHERENCE: SUBTLE. Keep the artist's core sound, but introduce one small, "
        "tasteful variation such as a different tempo feel, an unexpected instrument or a new "
        "vocal texture. A long-time fan should recognise them instantly."
    ),
    CreativityLevel.INSPIRED: (
        "STYLE ADHERENCE: INSPIRED. The song should be inspired by the artist's main style, "
        "with its own unique variation or twist. Do not simply repeat the artist's style; "
        "borrow from a neighbouring genre while keeping their identity."
    ),
    CreativityLevel.EXPERIMENTAL: (
        "STYLE ADHERENCE: EXPERIMENTAL. Treat the artist's style as a starting point only. "
        "Blend it boldly with at least one distant genre, reshape the song structure and "
        "arrangement, and surprise the listener while leaving a recognisable trace of the artist."
    ),
    CreativityLevel.WILDCARD: (
        "STYLE ADHERENCE: WILDCARD. Deconstruct the artist's style completely. Be unpredictable: "
        "break genre conventions, invert their usual mood, use unexpected forms and sounds. "
        "Only a faint echo of the original artist should remain."
    ),
}


@dataclass(frozen=True)
class GenerationRequest:
    """What to send to the generative service and what shape to expect back."""

    model: str
    prompt: str
    response_schema: Optional[dict[str, Any]] = None
    required_fields: tuple[str, ...] = field(default_factory=tuple)

    @property
    def expects_json(self) -> bool:
        return self.response_schema is not None


def _object_schema(properties: dict[str, str], required: tuple[str, ...]) -> dict[str, Any]:
    return {
        "type": "OBJECT",
        "properties": {
            name: {"type": "STRING", "description": description}
            for name, description in properties.items()
        },
        "required": list(required),
    }


def song_schema_fields(instrumental: bool) -> dict[str, str]:
    """Field descriptions of a song concept; the lyrics field changes meaning for instrumentals."""
    if instrumental:
        lyrics = (
            "A non-singable structural and arrangement description of the instrumental piece, "
            "section by section, using square-bracket section tags. No sung lines."
        )
    else:
        lyrics = (
            "The full lyrics with section tags. Must not contain the artist's name or the genre."
        )
    return {
        "title": "The title of the song.",
        "style": f"The musical style of the song. Maximum {STYLE_MAX_CHARS} characters.",
        "lyrics": lyrics,
    }


def _bullet_list(items: list[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def _history_section(
    artist: Artist,
    history: Optional[HistoryLedger],
    limit: int,
    snippet_chars: int,
) -> str:
    if history is None:
        return ""

    titles = history.prior_titles(artist.id, limit)
    themes = history.prior_themes(artist.id, limit)
    snippets = history.prior_lyric_snippets(artist.id, limit, snippet_chars)

    parts = []
    if titles:
        parts.append(f"Titles already used (do NOT reuse or closely paraphrase):\n{_bullet_list(titles)}")
    if themes:
        parts.append(f"Themes already explored (pick a different angle):\n{_bullet_list(themes)}")
    if snippets:
        parts.append(
            "Openings of previous lyrics (do NOT repeat their images, hooks or phrasing):\n"
            f"{_bullet_list(snippets)}"
        )
    if not parts:
        return ""
    return "### AVOID REPEATING\n" + "\n\n".join(parts) + "\n"


def build_song_request(
    artist: Artist,
    theme: Optional[str] = None,
    creativity: CreativityLevel = CreativityLevel.INSPIRED,
    instrumental: bool = False,
    language: str = "English",
    history: Optional[HistoryLedger] = None,
    model: str = DEFAULT_MODEL,
    part: Optional[str] = None,
    history_limit: int = 10,
    snippet_chars: int = 150,
) -> GenerationRequest:
    """
    Build the request for a full song concept, or for one field of it.

    Args:
        artist: Artist the song is written for
        theme: Optional user idea or comment
        creativity: How far the song may move away from the artist's style
        instrumental: Lyrics field becomes an arrangement description
        language: Language of the lyrics (ignored for instrumentals)
        history: Ledger consulted for anti-repetition constraints
        model: Gemini model id
        part: "title", "style" or "lyrics" to regenerate only that field
    """
    creativity = CreativityLevel.from_value(int(creativity))
    fields = song_schema_fields(instrumental)
    if part is not None and part not in fields:
        raise ValueError(f"Unknown song part: {part}")

    theme = (theme or "").strip()
    if theme:
        theme_section = f'Use the following idea or theme: "{theme}".'
    else:
        theme_section = (
            "The theme must be completely new and original, telling a different story "
            "from any previous song for this artist."
        )

    if instrumental:
        content_rules = f"""This is an INSTRUMENTAL piece. There are no vocals.
The "lyrics" field must NOT contain singable lines. Instead, describe the structure and arrangement
section by section: instrumentation, dynamics, tempo and transitions, inside square-bracket cues.

Example of the required format:
{INSTRUMENTAL_FORMAT_EXAMPLE}"""
    else:
        content_rules = f"""CRITICAL RULE: The lyrics MUST NOT mention the artist's name ("{artist.name}") or the song's genre/style.
The story and emotion should stand on their own.
The lyrics must be written in {language}.

Example of the required format:
{LYRICS_FORMAT_EXAMPLE}"""

    if part is None:
        task = (
            "Your task is to generate a complete song concept for this artist: a title, "
            f"a musical style description (MAXIMUM {STYLE_MAX_CHARS} characters) and the "
            f"{'arrangement description' if instrumental else 'full lyrics'}."
        )
        required = ("title", "style", "lyrics")
    else:
        task = (
            f"Your task is to write ONLY a new {part} for a song by this artist. "
            f"Return only the {part} field."
        )
        required = (part,)

    prompt = f"""You are a songwriter for the artist "{artist.name}". Their signature style is: "{artist.style}".
{task}

### STYLE
{creativity.instruction}

### THEME
{theme_section}
Never write about any of these overused themes:
{_bullet_list(list(BANNED_THEMES))}

{_history_section(artist, history, history_limit, snippet_chars)}
### FORMAT
- Mark every section with a tag such as [Intro], [Verse 1], [Pre-Chorus], [Chorus], [Bridge], [Outro].
- Put descriptive musical and instrumental cues in square brackets, e.g. [soft piano intro].
- Leave exactly one blank line between sections. This is mandatory.
- The style description must not exceed {STYLE_MAX_CHARS} characters.

{content_rules}
"""

    schema = _object_schema({name: fields[name] for name in required}, required)
    return GenerationRequest(
        model=model,
        prompt=prompt,
        response_schema=schema,
        required_fields=required,
    )


def build_theme_request(
    artist: Artist,
    history: Optional[HistoryLedger] = None,
    language: str = "English",
    model: str = DEFAULT_MODEL,
    history_limit: int = 10,
) -> GenerationRequest:
    """Free-text request for a single fresh song theme."""
    avoid = ""
    if history is not None:
        used = history.prior_themes(artist.id, history_limit) + history.prior_titles(artist.id, history_limit)
        if used:
            avoid = f"\nIt must be clearly different from these earlier themes and titles:\n{_bullet_list(used)}\n"

    prompt = f"""Suggest one original song theme for the artist "{artist.name}", whose style is: "{artist.style}".
Write it in {language}, as one or two sentences describing the story or emotion of the song.
Never use any of these overused themes:
{_bullet_list(list(BANNED_THEMES))}
{avoid}
Reply with the theme only. No title, no quotes, no preamble."""

    return GenerationRequest(model=model, prompt=prompt)


def build_artist_request(
    existing_names: list[str],
    direction: Optional[str] = None,
    model: str = DEFAULT_MODEL,
) -> GenerationRequest:
    """Request for a fictional artist concept whose name is not already on the roster."""
    names = ", ".join(existing_names)
    direction = (direction or "").strip()

    if direction:
        inspiration = (
            f'The user has provided a specific creative direction: "{direction}". '
            "Use this as the core inspiration for the artist."
        )
    else:
        inspiration = (
            "Fuse two or more disparate and unconventional genres. Think outside the box."
        )

    prompt = f"""You are an expert in music history and creative branding. Generate a completely fictional, unique and highly creative musical artist concept.
The artist's name must be unique and NOT one of the following: [{names}]. It should also be highly unlikely to belong to any real artist, past or present.

{inspiration}

Provide a name and an evocative description of the musical style, 2-3 sentences long, that clearly explains the fusion of genres.

Examples:
- Name: "Abyssal Choir", Style: "Gregorian chant over deep, atmospheric glitch-hop beats. Ancient and futuristic at once, echoing from a digital cathedral."
- Name: "Sawdust & Starlight", Style: "Appalachian banjo folk blended with ambient space-drone soundscapes. A lonely astronaut playing old mountain tunes."
"""

    schema = _object_schema(
        {
            "name": "The unique name of the fictional artist.",
            "style": "A detailed description of the artist's musical style, fusing unconventional genres.",
        },
        ("name", "style"),
    )
    return GenerationRequest(
        model=model,
        prompt=prompt,
        response_schema=schema,
        required_fields=("name", "style"),
    )
