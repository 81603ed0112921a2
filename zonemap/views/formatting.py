"""
formatting.py — Small presentation helpers shared by the views.

Transmission text
─────────────────
Game masters wrap coded fragments in double bars:

    "Sinal captado ||X-93 KILO|| na torre"

Splitting on "||" gives alternating plain / coded segments; every odd
segment is drawn in the transmission font. An unterminated "||" simply
turns the rest of the text into a coded segment.

Reputation colours
──────────────────
The map and the admin panel band reputation slightly differently
(the map treats exactly 30 as hostile, the admin panel as neutral);
both are kept as players already read them that way.
"""

from dataclasses import dataclass

HOSTILE = "#ff3333"
NEUTRAL = "#ffff33"
ALLIED = "#33ff33"

TRANSMISSION_DELIMITER = "||"


@dataclass(frozen=True)
class TextSegment:
    text: str
    coded: bool = False


def split_transmission(text: str) -> list[TextSegment]:
    if not text:
        return []
    parts = text.split(TRANSMISSION_DELIMITER)
    return [TextSegment(part, coded=index % 2 == 1) for index, part in enumerate(parts) if part]


def map_reputation_color(value: int) -> str:
    if value <= 30:
        return HOSTILE
    if value <= 60:
        return NEUTRAL
    return ALLIED


def admin_reputation_color(value: int) -> str:
    if value < 30:
        return HOSTILE
    if value > 60:
        return ALLIED
    return NEUTRAL
