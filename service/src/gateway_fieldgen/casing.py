"""Identifier casing shared by every emitter.

Field names in the IDL are snake_case or camelCase; the generated Go code
uses exported PascalCase identifiers.  The casing has to agree exactly with
the struct generator on the other side, so the rules below are fixed.
"""

from __future__ import annotations

import re
from functools import lru_cache

COMMON_INITIALISMS = frozenset(
    {
        "ACL",
        "API",
        "ASCII",
        "CPU",
        "CSS",
        "DNS",
        "EOF",
        "GUID",
        "HTML",
        "HTTP",
        "HTTPS",
        "ID",
        "IP",
        "JSON",
        "LHS",
        "OS",
        "QPS",
        "RAM",
        "RHS",
        "RPC",
        "SLA",
        "SMTP",
        "SQL",
        "SSH",
        "TCP",
        "TLS",
        "TTL",
        "UDP",
        "UI",
        "UID",
        "UUID",
        "URI",
        "URL",
        "UTF8",
        "VM",
        "XML",
        "XMPP",
        "XSRF",
        "XSS",
    }
)

_CHUNK_RE = re.compile(r"[0-9A-Za-z]+")
_MAX_INITIALISM_LEN = 5


def _upper_first(text: str) -> str:
    return text[:1].upper() + text[1:]


def _is_all_caps(text: str) -> bool:
    # non-letters are ignored
    return all(not c.isalpha() or c.isupper() for c in text)


def starts_with_initialism(text: str) -> str:
    """Return the longest known initialism ``text`` begins with, or ``""``."""
    initialism = ""
    for i in range(1, _MAX_INITIALISM_LEN + 1):
        if len(text) >= i and text[:i] in COMMON_INITIALISMS:
            initialism = text[:i]
    return initialism


@lru_cache(maxsize=None)
def pascal_case(src: str) -> str:
    """Convert ``src`` to PascalCase.

    Words are separated by underscores.  Known initialisms are upper-cased,
    SCREAMING_SNAKE words are Title-cased, and a single all-caps word is left
    alone.  Any other word only has its first letter upper-cased, so camelCase
    input survives.
    """
    words = src.split("_")
    allow_all_caps = len(words) == 1

    for i, chunk in enumerate(words):
        if not chunk:
            # foo__bar
            continue

        upper = chunk.upper()
        if upper in COMMON_INITIALISMS:
            words[i] = upper
            continue

        if _is_all_caps(chunk) and not allow_all_caps:
            words[i] = _upper_first(chunk.lower())
            continue

        words[i] = _upper_first(chunk)

    return "".join(words)


def _ensure_initialism_casing(segment: str) -> str:
    upper = segment.upper()
    if upper in COMMON_INITIALISMS:
        return upper

    initialism = starts_with_initialism(upper)
    if initialism:
        return initialism + segment[len(initialism):]

    return segment


def camel_case(src: str) -> str:
    """Convert ``src`` to lowerCamelCase, splitting on anything non-alphanumeric."""
    chunks = _CHUNK_RE.findall(src)
    for idx, chunk in enumerate(chunks):
        if idx == 0:
            chunks[idx] = chunk[:1].lower() + chunk[1:]
        else:
            chunks[idx] = _ensure_initialism_casing(_upper_first(chunk))
    return "".join(chunks)


def lower_pascal(src: str) -> str:
    name = pascal_case(src)
    return name[:1].lower() + name[1:]


def lint_acronym(key: str) -> str:
    """PascalCase ``key`` and upper-case every Titlecased initialism inside it."""
    key = pascal_case(key)
    for initialism in sorted(COMMON_INITIALISMS):
        titled = initialism[0] + initialism[1:].lower()
        if titled in key:
            key = key.replace(titled, initialism)
    return key


def package_name(src: str) -> str:
    return "".join(chunk.lower() for chunk in _CHUNK_RE.findall(src))


def camel_to_snake(src: str) -> str:
    """Convert a camelCase identifier to snake_case, keeping initialisms whole."""
    words: list[str] = []
    last_pos = 0
    i = 0
    while i < len(src):
        if src[i].isupper():
            if i > last_pos:
                words.append(src[last_pos:i])
                last_pos = i
            initialism = starts_with_initialism(src[i:])
            if initialism:
                words.append(initialism)
                i += len(initialism)
                last_pos = i
                continue
        i += 1

    if src[last_pos:]:
        words.append(src[last_pos:])
    return "_".join(words).lower()
