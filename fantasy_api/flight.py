# fantasy_api/flight.py
"""
Extraction of JSON embedded in Next.js "flight" payloads.

Pages ship their state as numbered string fragments:

    self.__next_f.push([1, "...escaped text..."])

Once a fragment is unescaped it may contain a large JSON object under a known
key (e.g. "scorecardApiData":{...}). That object sits inside a larger non-JSON
string, so it is sliced out by bracket balancing rather than by regex.
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

# Captures the JS string literal content, allowing escaped quotes/backslashes.
_FLIGHT_PUSH_RE = re.compile(
    r'self\.__next_f\.push\(\[\s*(\d+)\s*,\s*"((?:\\[\s\S]|[^"\\])*)"\s*\]\)\s*;?'
)


def extract_flight_strings(html: str) -> List[str]:
    """Decoded text of every flight fragment, in page order."""
    out: List[str] = []
    for m in _FLIGHT_PUSH_RE.finditer(html or ""):
        raw = m.group(2)
        try:
            decoded = json.loads(f'"{raw}"')
        except ValueError:
            decoded = raw
        out.append(decoded)
    return out


def slice_balanced_json(text: str, start_index: int) -> Optional[str]:
    """
    Return the JSON object/array that starts at the first '{' or '[' at or
    after `start_index`, up to its matching close bracket.

    Brackets inside quoted strings (including escaped quotes) are ignored.
    Returns None when no opener exists or the value is never closed.
    """
    s = text or ""
    i = max(start_index, 0)
    while i < len(s) and s[i] not in "{[":
        i += 1
    if i >= len(s):
        return None

    open_ch = s[i]
    close_ch = "}" if open_ch == "{" else "]"
    depth = 0
    in_string = False
    esc = False

    for j in range(i, len(s)):
        ch = s[j]
        if in_string:
            if esc:
                esc = False
            elif ch == "\\":
                esc = True
            elif ch == '"':
                in_string = False
            continue

        if ch == '"':
            in_string = True
        elif ch == open_ch:
            depth += 1
        elif ch == close_ch:
            depth -= 1
            if depth == 0:
                return s[i : j + 1]

    return None


def find_named_json(text: str, field_name: str) -> Optional[Any]:
    """Parse the value of `"<field_name>":` inside one decoded text, if any."""
    marker = f'"{field_name}":'
    start = 0
    while True:
        idx = text.find(marker, start)
        if idx == -1:
            return None
        value_start = idx + len(marker)
        while value_start < len(text) and text[value_start].isspace():
            value_start += 1

        # Only object/array values are of interest (null, strings etc. are skipped)
        value_json = None
        if value_start < len(text) and text[value_start] in "{[":
            value_json = slice_balanced_json(text, value_start)
        if value_json is not None:
            try:
                return json.loads(value_json)
            except ValueError:
                pass
        start = idx + len(marker)


def extract_named_json(html: str, field_name: str) -> Optional[Any]:
    """
    First cleanly-parsing JSON value stored under `field_name` in any flight
    fragment of `html`. Returns None when no fragment yields a parse.
    """
    for fragment in extract_flight_strings(html):
        if f'"{field_name}":' not in fragment:
            continue
        value = find_named_json(fragment, field_name)
        if value is not None:
            return value

    logger.debug("No parsable %r found in flight payload", field_name)
    return None
