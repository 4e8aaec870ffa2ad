"""Rule-based rewriting of model output into speakable plain text.

Language models answer in Markdown: headings, bullet lists, bold markers,
tables, links and a generous amount of emoji. None of that survives speech
synthesis gracefully, so every reply is flattened here before it reaches the
voice. The rules run in a fixed order because later rules assume the artifacts
of earlier ones are already gone, and the whole rule set is re-applied until the
text stops changing so that normalizing normalized text is a no-op.
"""

import re
from typing import Callable, List, Tuple

MAX_PASSES = 5

SENTENCE_PUNCTUATION = ".!?:;,"

# (start, end) code point ranges, inclusive.
EMOJI_RANGES: Tuple[Tuple[int, int], ...] = (
    (0x1F000, 0x1F0FF),  # mahjong, dominoes, playing cards
    (0x1F100, 0x1F1FF),  # enclosed alphanumerics, regional indicator flags
    (0x1F200, 0x1F2FF),  # enclosed ideographic supplement
    (0x1F300, 0x1F5FF),  # symbols and pictographs
    (0x1F600, 0x1F64F),  # emoticons
    (0x1F650, 0x1F67F),  # ornamental dingbats
    (0x1F680, 0x1F6FF),  # transport and map
    (0x1F700, 0x1F77F),  # alchemical symbols
    (0x1F780, 0x1F7FF),  # geometric shapes extended
    (0x1F800, 0x1F8FF),  # supplemental arrows-c
    (0x1F900, 0x1F9FF),  # supplemental symbols and pictographs
    (0x1FA00, 0x1FA6F),  # chess symbols
    (0x1FA70, 0x1FAFF),  # symbols and pictographs extended-a
    (0x2300, 0x23FF),  # misc technical: watch, hourglass, media controls
    (0x25A0, 0x25FF),  # geometric shapes
    (0x2600, 0x26FF),  # misc symbols
    (0x2700, 0x27BF),  # dingbats
    (0x2B00, 0x2BFF),  # misc symbols and arrows
    (0x3030, 0x3030),
    (0x303D, 0x303D),
    (0x3297, 0x3297),
    (0x3299, 0x3299),
    (0xFE00, 0xFE0F),  # variation selectors
    (0x200D, 0x200D),  # zero width joiner
    (0x20E3, 0x20E3),  # combining enclosing keycap
    (0xE0020, 0xE007F),  # tag characters (subdivision flags)
)

EMOJI_PATTERN = re.compile(
    "[" + "".join(f"\\U{start:08X}-\\U{end:08X}" for start, end in EMOJI_RANGES) + "]"
)

CODE_BLOCK = re.compile(r"```[\s\S]*?```")
HEADING = re.compile(r"^[ \t]{0,3}#{1,6}[ \t]+(.+?)[ \t#]*$", re.M)
HORIZONTAL_RULE = re.compile(r"^[ \t]*([-*_])(?:[ \t]*\1){2,}[ \t]*$", re.M)
BLOCK_QUOTE = re.compile(r"^[ \t]*(?:>[ \t]?)+", re.M)

EMPHASIS: Tuple[re.Pattern, ...] = (
    re.compile(r"\*\*(?=\S)(.+?)(?<=\S)\*\*"),
    re.compile(r"__(?=\S)(.+?)(?<=\S)__"),
    re.compile(r"~~(?=\S)(.+?)(?<=\S)~~"),
    re.compile(r"\*(?=[^\s*])([^*\n]+?)(?<=\S)\*"),
    re.compile(r"(?<!\w)_(?=[^\s_])([^_\n]+?)(?<=\S)_(?!\w)"),
    re.compile(r"`([^`\n]+)`"),
)

LIST_MARKER = re.compile(r"^[ \t]*(?:(?:[-*+\u2022]|\d{1,3}[.)])[ \t]+)+", re.M)

IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
LINK = re.compile(r"\[([^\]]+)\]\([^)]*\)")
REFERENCE_LINK = re.compile(r"\[([^\]]+)\]\[[^\]]*\]")
BARE_URL = re.compile(r"<?(?:https?://|www\.)[^\s<>]+>?")

ARROWS = re.compile(r"[\u2190-\u21FF\u27F0-\u27FF\u2900-\u297F\u2022\u2023\u2043\u00B7]")
ASCII_ARROWS = re.compile(r"[ \t]*(?:<->|<--|-->|==>|=>|->)[ \t]*")

ESCAPED_PUNCTUATION = re.compile(r"\\(?=[^\w\s])")
STRAY_MARKERS = re.compile(r"[*#`~\\]")
STRAY_UNDERSCORES = re.compile(r"_+")

SPACE_RUNS = re.compile(r"[ \t]+")
LINE_EDGES = re.compile(r"^[ \t]+|[ \t]+$", re.M)
SPACE_BEFORE_PUNCTUATION = re.compile(r"[ \t]+([,.!?;:])")
LEADING_SEPARATOR = re.compile(r"^[,;:][ \t]*", re.M)
REPEATED_PUNCTUATION = re.compile(r"([,.])(?:[ \t]*[,.])+")
BLANK_LINE_RUNS = re.compile(r"\n{3,}")


def _heading_to_sentence(match: re.Match) -> str:
    title = match.group(1).strip()
    if title and title[-1] not in SENTENCE_PUNCTUATION:
        title += "."
    return title


def _is_table_separator(line: str) -> bool:
    stripped = line.strip()
    return "|" in stripped and "-" in stripped and not stripped.strip("|:- \t")


def _flatten_tables(text: str) -> str:
    lines: List[str] = []
    for line in text.split("\n"):
        if "|" not in line:
            lines.append(line)
            continue
        if _is_table_separator(line):
            continue
        cells = [cell.strip() for cell in line.strip().strip("|").split("|")]
        lines.append(", ".join(cell for cell in cells if cell))
    return "\n".join(lines)


def _collapse_punctuation(match: re.Match) -> str:
    return "." if "." in match.group(0) else ","


def _strip_code_blocks(text: str) -> str:
    return CODE_BLOCK.sub("", text)


def _strip_headings(text: str) -> str:
    return HEADING.sub(_heading_to_sentence, text)


def _strip_rules_and_quotes(text: str) -> str:
    text = HORIZONTAL_RULE.sub("", text)
    return BLOCK_QUOTE.sub("", text)


def _strip_emphasis(text: str) -> str:
    text = ESCAPED_PUNCTUATION.sub("", text)
    for pattern in EMPHASIS:
        text = pattern.sub(r"\1", text)
    return text


def _strip_list_markers(text: str) -> str:
    return LIST_MARKER.sub("", text)


def _strip_links(text: str) -> str:
    text = IMAGE.sub(r"\1", text)
    text = LINK.sub(r"\1", text)
    text = REFERENCE_LINK.sub(r"\1", text)
    return BARE_URL.sub("", text)


def _strip_symbols(text: str) -> str:
    text = EMOJI_PATTERN.sub("", text)
    text = ASCII_ARROWS.sub(" ", text)
    return ARROWS.sub(" ", text)


def _strip_stray_markers(text: str) -> str:
    text = STRAY_MARKERS.sub("", text)
    return STRAY_UNDERSCORES.sub(" ", text)


def _normalize_whitespace(text: str) -> str:
    text = SPACE_RUNS.sub(" ", text)
    text = LINE_EDGES.sub("", text)
    text = SPACE_BEFORE_PUNCTUATION.sub(r"\1", text)
    text = LEADING_SEPARATOR.sub("", text)
    text = REPEATED_PUNCTUATION.sub(_collapse_punctuation, text)
    text = BLANK_LINE_RUNS.sub("\n\n", text)
    return text.strip()


RULES: Tuple[Callable[[str], str], ...] = (
    _strip_code_blocks,
    _strip_headings,
    _strip_rules_and_quotes,
    _strip_emphasis,
    _strip_list_markers,
    _strip_links,
    _flatten_tables,
    _strip_symbols,
    _strip_stray_markers,
    _normalize_whitespace,
)


def _apply_rules(text: str) -> str:
    for rule in RULES:
        text = rule(text)
    return text


def normalize_for_speech(text: str) -> str:
    """Return ``text`` with markup, emoji and links flattened into plain prose.

    Never raises and never touches the network; ``None`` or empty input
    yields an empty string.
    """
    if not text:
        return ""
    current = text.replace("\r\n", "\n").replace("\r", "\n")
    for _ in range(MAX_PASSES):
        cleaned = _apply_rules(current)
        if cleaned == current:
            break
        current = cleaned
    return current


def contains_emoji(text: str) -> bool:
    return bool(text) and EMOJI_PATTERN.search(text) is not None


def strip_residual_markup(text: str) -> str:
    """Remove emphasis/heading characters and emoji a rewrite may reintroduce."""
    if not text:
        return ""
    text = HEADING.sub(_heading_to_sentence, text)
    text = EMOJI_PATTERN.sub("", text)
    text = _strip_stray_markers(text)
    return _normalize_whitespace(text)
