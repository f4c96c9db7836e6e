"""Character reference decoding for markup text and attribute values.

Named references (``&amp;``, ``&nbsp;``) and numeric ones (``&#60;``,
``&#x3C;``) are decoded. Raw text elements such as ``<style>`` are never
decoded, so stylesheet offsets always line up with the source.
"""

from __future__ import annotations

import html.entities

# Keys include the trailing semicolon where HTML requires it (e.g. "amp;")
_HTML5_ENTITIES: dict[str, str] = html.entities.html5

# Entities that may appear without a semicolon in running text
LEGACY_ENTITIES: frozenset[str] = frozenset(
    name for name in _HTML5_ENTITIES if not name.endswith(";") and name.isalnum()
)

# Windows-1252 code points that HTML maps numeric references onto
NUMERIC_REPLACEMENTS: dict[int, str] = {
    0x80: "\u20ac",
    0x82: "\u201a",
    0x83: "\u0192",
    0x84: "\u201e",
    0x85: "\u2026",
    0x86: "\u2020",
    0x87: "\u2021",
    0x88: "\u02c6",
    0x89: "\u2030",
    0x8A: "\u0160",
    0x8B: "\u2039",
    0x8C: "\u0152",
    0x8E: "\u017d",
    0x91: "\u2018",
    0x92: "\u2019",
    0x93: "\u201c",
    0x94: "\u201d",
    0x95: "\u2022",
    0x96: "\u2013",
    0x97: "\u2014",
    0x98: "\u02dc",
    0x99: "\u2122",
    0x9A: "\u0161",
    0x9B: "\u203a",
    0x9C: "\u0153",
    0x9E: "\u017e",
    0x9F: "\u0178",
}


def decode_numeric_entity(text: str, is_hex: bool = False) -> str:
    codepoint = int(text, 16 if is_hex else 10)

    if codepoint in NUMERIC_REPLACEMENTS:
        return NUMERIC_REPLACEMENTS[codepoint]
    if codepoint == 0 or codepoint > 0x10FFFF or 0xD800 <= codepoint <= 0xDFFF:
        return "\ufffd"
    return chr(codepoint)


def decode_entities_in_text(text: str, in_attribute: bool = False) -> str:
    """Decode all character references in text.

    Args:
        text: Input text potentially containing references
        in_attribute: Attribute values never decode semicolon-less legacy
            references that run into an alphanumeric or "=" character

    Returns:
        Text with references decoded; unknown references are kept verbatim
    """
    result: list[str] = []
    i = 0
    length = len(text)
    while i < length:
        next_amp = text.find("&", i)
        if next_amp == -1:
            result.append(text[i:])
            break

        if next_amp > i:
            result.append(text[i:next_amp])

        i = next_amp
        j = i + 1

        if j < length and text[j] == "#":
            j += 1
            is_hex = j < length and text[j] in "xX"
            if is_hex:
                j += 1

            digit_start = j
            digits = "0123456789abcdefABCDEF" if is_hex else "0123456789"
            while j < length and text[j] in digits:
                j += 1

            has_semicolon = j < length and text[j] == ";"
            end = j + 1 if has_semicolon else j
            digit_text = text[digit_start:j]
            if digit_text:
                result.append(decode_numeric_entity(digit_text, is_hex=is_hex))
            else:
                result.append(text[i:end])
            i = end
            continue

        while j < length and text[j].isalnum():
            j += 1

        entity_name = text[i + 1 : j]
        if not entity_name:
            result.append("&")
            i += 1
            continue

        if j < length and text[j] == ";" and entity_name + ";" in _HTML5_ENTITIES:
            result.append(_HTML5_ENTITIES[entity_name + ";"])
            i = j + 1
            continue

        if entity_name in LEGACY_ENTITIES:
            next_char = text[j] if j < length else ""
            if not (in_attribute and (next_char.isalnum() or next_char == "=")):
                result.append(_HTML5_ENTITIES[entity_name])
                i = j
                continue

        result.append("&")
        i += 1

    return "".join(result)
