import re
from typing import Iterator, List, NamedTuple

from rules.errors import RulesSyntaxError


LINE_BREAK = re.compile(r"\r\n|\n|\r")
LINE_PATTERN = re.compile(r'^(?P<key>.*?)\s*=\s*"(?P<value>.*)"$', re.DOTALL)
ESCAPABLE = ('"', "\\")


class Token(NamedTuple):
    line: int
    key: str
    value: str


def split_lines(contents: str) -> List[str]:
    """Split on CRLF, LF or CR, treating CRLF as a single break."""
    return LINE_BREAK.split(contents)


def unescape_value(value: str) -> str:
    """Resolve \\" and \\\\ escapes; other backslash sequences are kept as they are."""
    result = []
    index = 0
    length = len(value)
    while index < length:
        char = value[index]
        if char == "\\" and index + 1 < length and value[index + 1] in ESCAPABLE:
            result.append(value[index + 1])
            index += 2
            continue
        result.append(char)
        index += 1
    return "".join(result)


def iter_tokens(contents: str) -> Iterator[Token]:
    for index, line in enumerate(split_lines(contents)):
        stripped = line.strip()
        if not stripped:
            continue
        match = LINE_PATTERN.match(stripped)
        if not match:
            raise RulesSyntaxError(
                f"Unable to recognize line {index + 1}:\n{line}", line=index + 1
            )
        yield Token(index + 1, match.group("key"), unescape_value(match.group("value")))


def tokenize(contents: str) -> List[Token]:
    return list(iter_tokens(contents))
