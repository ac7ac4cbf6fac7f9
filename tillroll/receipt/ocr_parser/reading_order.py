"""Reading-order sorting of recognized tokens."""

from collections.abc import Iterable

from tillroll.domain.receipt import Token

from .common import normalize_text
from .config import DEFAULT_PARSER_CONFIG, ParserConfig


def _group_rows(tokens: Iterable[Token], tolerance: float) -> list[list[Token]]:
    """Group tokens into rows; a row absorbs tokens within `tolerance` of its first member."""
    ordered = sorted(tokens, key=lambda t: (t.bounding_box.y, t.bounding_box.x, t.line_index))
    rows: list[list[Token]] = []
    for token in ordered:
        if rows and token.bounding_box.y - rows[-1][0].bounding_box.y < tolerance:
            rows[-1].append(token)
        else:
            rows.append([token])
    return rows


def sort_reading_order(tokens: Iterable[Token], config: ParserConfig = DEFAULT_PARSER_CONFIG) -> list[Token]:
    """Return tokens top-to-bottom, and left-to-right within a row."""
    ordered: list[Token] = []
    for row in _group_rows(tokens, config.row_merge_tolerance):
        ordered.extend(sorted(row, key=lambda t: (t.bounding_box.x, t.line_index)))
    return ordered


def joined_text(tokens: Iterable[Token]) -> str:
    """One token per line, in the given order."""
    return "\n".join(token.text for token in tokens)


def normalize_tokens_text(tokens: Iterable[Token]) -> list[Token]:
    """Copy tokens with their text passed through the normalizer."""
    return [
        Token(
            text=normalize_text(token.text).replace("\n", " "),
            confidence=token.confidence,
            bounding_box=token.bounding_box,
            line_index=token.line_index,
            word_index=token.word_index,
        )
        for token in tokens
    ]
