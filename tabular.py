"""
Minimal CSV reader for the bundled TreeFriends datasets.

The datasets are small, curated exports read once at start-up. Parsing is
line-based: quoted fields may contain commas and doubled quotes, but not
line breaks.
"""

import re
from typing import Dict, List, Sequence, Tuple

_BOM = "\ufeff"
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


def split_lines(text: str) -> List[str]:
    """Strip a leading BOM, trim, and split into non-empty lines."""
    if text.startswith(_BOM):
        text = text[len(_BOM):]
    text = text.strip()
    return [line for line in _LINE_BREAK.split(text) if line]


def parse_csv_line(line: str) -> List[str]:
    """Split one CSV line into fields.

    A double quote toggles quoted mode; inside quoted mode a doubled quote
    is a literal quote. Commas outside quotes end a field. The last field
    is always emitted, so ``"a,"`` yields ``["a", ""]``.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    n = len(line)

    while i < n:
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < n and line[i + 1] == '"':
                current.append('"')
                i += 1
            else:
                in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def parse_table(text: str) -> Tuple[List[str], List[List[str]]]:
    """Parse CSV text into (headers, rows).

    Header-only or empty text returns no rows; headers are still returned
    when present.
    """
    lines = split_lines(text)
    if not lines:
        return [], []
    headers = parse_csv_line(lines[0])
    if len(lines) <= 1:
        return headers, []
    return headers, [parse_csv_line(line) for line in lines[1:]]


def row_to_dict(headers: Sequence[str], values: Sequence[str]) -> Dict[str, str]:
    """Key a row by header name. Short rows are padded with ""."""
    row: Dict[str, str] = {}
    for index, header in enumerate(headers):
        row[header] = values[index] if index < len(values) else ""
    return row


def rows_as_dicts(text: str) -> List[Dict[str, str]]:
    """Parse CSV text straight into header-keyed dicts."""
    headers, rows = parse_table(text)
    return [row_to_dict(headers, values) for values in rows]
