from __future__ import annotations


class UnsupportedInputError(ValueError):
    """Raised for CSV constructs the parser deliberately does not handle."""


def parse_csv(text: str, delimiter: str = ",") -> list[list[str]]:
    """Split delimited text into rows of trimmed fields.

    A double quote toggles the "inside quoted field" state and is never part of
    the value, so quoted fields may contain the delimiter. Escaped quotes
    (``""`` inside a quoted field) are not supported and raise
    ``UnsupportedInputError`` instead of being mis-parsed. Empty input yields
    ``[[""]]`` and trailing blank lines yield degenerate single-field rows;
    callers filter those out.
    """
    rows = []
    for line_no, line in enumerate(text.split("\n"), start=1):
        rows.append(_parse_line(line, delimiter, line_no))
    return rows


def _parse_line(line: str, delimiter: str, line_no: int) -> list[str]:
    fields = []
    current = []
    in_quotes = False
    i = 0
    while i < len(line):
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < len(line) and line[i + 1] == '"':
                raise UnsupportedInputError(f"escaped quote in quoted field at line {line_no}, column {i + 1}")
            in_quotes = not in_quotes
        elif char == delimiter and not in_quotes:
            fields.append("".join(current).strip())
            current = []
        else:
            current.append(char)
        i += 1
    fields.append("".join(current).strip())
    return fields


def is_blank_row(row: list[str]) -> bool:
    return all(not cell for cell in row)
