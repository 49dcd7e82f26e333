"""Scanning and rewriting of Cypher query templates.

Templates carry two kinds of tokens on top of plain Cypher:

    placeholder     := "${" IDENTIFIER "}"
    type list       := ":" WS* type_item (separator type_item)* ["!"]
    separator       := WS* ("|" | "|:") WS*
    type_item       := IDENTIFIER_CHARS | "`" (ANY | "``")* "`" | placeholder

A type list is only recognized directly after a top-level ":" inside a
relationship pattern's square brackets, and a trailing "!" marks it as
entailed (expand to include sub-types). String literals, backtick
identifiers, comments, maps and nested brackets are tracked so that
punctuation inside them is never taken for either token. Placeholders are
still substituted inside string literals, but not inside comments.
"""

import re
from dataclasses import dataclass

from loguru import logger

from cypher_inflector.inflate.entailment import EntailmentExpander
from cypher_inflector.inflate.errors import MissingParameterError
from cypher_inflector.types.general import FlattenedParameters, FlattenedValue

ENTAILMENT_MARKER = "!"
PLACEHOLDER_OPEN = "${"
PLACEHOLDER_CLOSE = "}"

VALUE_DELIMITER = ","
TYPE_DELIMITER = "|"

LINE_COMMENT = "//"
BLOCK_COMMENT_OPEN = "/*"
BLOCK_COMMENT_CLOSE = "*/"

SEPARATOR = re.compile(r"\s*\|:?\s*")
IDENTIFIER = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
TYPE_NAME = re.compile(r"\w+")

_CLOSERS = {")": "(", "]": "[", "}": "{"}


@dataclass(frozen=True, slots=True)
class Text:
    """Template text passed through untouched."""

    text: str


@dataclass(frozen=True, slots=True)
class Placeholder:
    """A `${name}` token."""

    name: str
    in_relationship: bool = False

    @property
    def raw(self) -> str:
        """The token as written in the template."""
        return f"{PLACEHOLDER_OPEN}{self.name}{PLACEHOLDER_CLOSE}"


@dataclass(frozen=True, slots=True)
class TypeName:
    """A literal relationship type, `raw` keeping any backtick quoting."""

    name: str
    raw: str


@dataclass(frozen=True, slots=True)
class Separator:
    """Alternation between two relationship types."""

    raw: str


TypeItem = TypeName | Placeholder | Separator


@dataclass(frozen=True, slots=True)
class RelationshipTypes:
    """The type alternation of one relationship pattern."""

    parts: tuple[TypeItem, ...]
    entailed: bool = False

    @property
    def names(self) -> list[str]:
        """Literal type names, in order of first appearance."""
        return list(
            dict.fromkeys(p.name for p in self.parts if isinstance(p, TypeName))
        )

    @property
    def has_placeholders(self) -> bool:
        """Whether any item still needs substitution."""
        return any(isinstance(p, Placeholder) for p in self.parts)

    @property
    def raw(self) -> str:
        """The type list as written, marker included."""
        text = "".join(p.raw for p in self.parts)
        return text + ENTAILMENT_MARKER if self.entailed else text


Segment = Text | Placeholder | RelationshipTypes


class TemplateScanner:
    """Single-pass scanner splitting a template into segments."""

    def __init__(self, template: str) -> None:
        """Initialize an instance."""
        self.template: str = template
        self.pos: int = 0
        self.segments: list[Segment] = []
        self._text: list[str] = []
        self._nesting: list[str] = []

    def scan(self) -> list[Segment]:
        """Scan the whole template."""
        template = self.template
        while self.pos < len(template):
            char = template[self.pos]
            if template.startswith(PLACEHOLDER_OPEN, self.pos):
                self._placeholder_or_text()
            elif template.startswith(LINE_COMMENT, self.pos):
                self._consume_text(self._find_end(self.pos, "\n", 0))
            elif template.startswith(BLOCK_COMMENT_OPEN, self.pos):
                start = self.pos + len(BLOCK_COMMENT_OPEN)
                end = self._find_end(start, BLOCK_COMMENT_CLOSE, len(BLOCK_COMMENT_CLOSE))
                self._consume_text(end)
            elif char in "'\"":
                self._string_literal(char)
            elif char == "`":
                self._consume_text(self._backtick_end(self.pos))
            elif char in "([{":
                self._nesting.append(char)
                self._consume_text(self.pos + 1)
            elif char in _CLOSERS:
                if self._nesting and self._nesting[-1] == _CLOSERS[char]:
                    self._nesting.pop()
                self._consume_text(self.pos + 1)
            elif char == ":" and self._nesting and self._nesting[-1] == "[":
                end = self.pos + 1
                while end < len(template) and template[end].isspace():
                    end += 1
                self._consume_text(end)
                self._relationship_types()
            else:
                self._consume_text(self.pos + 1)
        self._flush_text()
        return self.segments

    def _consume_text(self, end: int) -> None:
        self._text.append(self.template[self.pos : end])
        self.pos = end

    def _flush_text(self) -> None:
        if self._text:
            self.segments.append(Text("".join(self._text)))
            self._text = []

    def _emit(self, segment: Segment) -> None:
        self._flush_text()
        self.segments.append(segment)

    def _read_placeholder(self, in_relationship: bool) -> Placeholder | None:
        """Read a placeholder at the current position, advancing past it."""
        start = self.pos + len(PLACEHOLDER_OPEN)
        end = self.template.find(PLACEHOLDER_CLOSE, start)
        if end < 0 or not IDENTIFIER.fullmatch(self.template[start:end]):
            return None
        self.pos = end + len(PLACEHOLDER_CLOSE)
        return Placeholder(self.template[start:end], in_relationship)

    def _placeholder_or_text(self) -> None:
        placeholder = self._read_placeholder(in_relationship=False)
        if placeholder is None:
            self._consume_text(self.pos + 1)
        else:
            self._emit(placeholder)

    def _find_end(self, start: int, terminator: str, keep: int) -> int:
        """Position of `terminator` from `start` plus `keep`, or the template's end."""
        end = self.template.find(terminator, start)
        return len(self.template) if end < 0 else end + keep

    def _backtick_end(self, start: int) -> int:
        """Position just past the backtick identifier starting at `start`.

        A doubled backtick inside the identifier is an escaped backtick.
        """
        pos = start + 1
        while (end := self.template.find("`", pos)) >= 0:
            if not self.template.startswith("``", end):
                return end + 1
            pos = end + 2
        return len(self.template)

    def _string_literal(self, quote: str) -> None:
        self._consume_text(self.pos + 1)
        template = self.template
        while self.pos < len(template):
            char = template[self.pos]
            if char == "\\":
                self._consume_text(min(self.pos + 2, len(template)))
            elif template.startswith(PLACEHOLDER_OPEN, self.pos):
                self._placeholder_or_text()
            elif char == quote:
                self._consume_text(self.pos + 1)
                return
            else:
                self._consume_text(self.pos + 1)

    def _relationship_types(self) -> None:
        template = self.template
        parts: list[TypeItem] = []
        while self.pos < len(template):
            if template.startswith(PLACEHOLDER_OPEN, self.pos):
                placeholder = self._read_placeholder(in_relationship=True)
                if placeholder is None:
                    break
                parts.append(placeholder)
            elif match := TYPE_NAME.match(template, self.pos):
                parts.append(TypeName(match.group(), match.group()))
                self.pos = match.end()
            elif template[self.pos] == "`":
                end = self._backtick_end(self.pos)
                raw = template[self.pos : end]
                name = raw.removeprefix("`").removesuffix("`").replace("``", "`")
                parts.append(TypeName(name, raw))
                self.pos = end
            elif separator := SEPARATOR.match(template, self.pos):
                # Whitespace not leading up to a "|" ends the list
                parts.append(Separator(separator.group()))
                self.pos = separator.end()
            else:
                break

        if not parts:
            return
        entailed = (
            template.startswith(ENTAILMENT_MARKER, self.pos)
            and not isinstance(parts[-1], Separator)
        )
        if entailed:
            self.pos += len(ENTAILMENT_MARKER)
        self._emit(RelationshipTypes(tuple(parts), entailed))


def scan(template: str) -> list[Segment]:
    """Split a template into text, placeholder, and relationship type segments."""
    return TemplateScanner(template).scan()


def quote_type(name: str) -> str:
    """Backtick-quote a relationship type if it isn't a plain identifier."""
    if IDENTIFIER.fullmatch(name):
        return name
    escaped = name.replace("`", "``")
    return f"`{escaped}`"


def format_value(value: FlattenedValue, delimiter: str) -> str:
    """Render a flattened value for insertion into a query."""
    if isinstance(value, str):
        return value
    return delimiter.join(value)


def _lookup(flattened: FlattenedParameters, placeholder: Placeholder) -> str:
    if placeholder.name not in flattened:
        raise MissingParameterError(placeholder.name)
    delimiter = TYPE_DELIMITER if placeholder.in_relationship else VALUE_DELIMITER
    return format_value(flattened[placeholder.name], delimiter)


def substitute_placeholders(template: str, flattened: FlattenedParameters) -> str:
    """Replace every placeholder with its value, keeping entailment markers."""
    output: list[str] = []
    for segment in scan(template):
        match segment:
            case Text(text):
                output.append(text)
            case Placeholder():
                output.append(_lookup(flattened, segment))
            case RelationshipTypes(parts, entailed):
                output.extend(
                    _lookup(flattened, part) if isinstance(part, Placeholder) else part.raw
                    for part in parts
                )
                if entailed:
                    output.append(ENTAILMENT_MARKER)
    return "".join(output)


async def entail_relationships(template: str, expander: EntailmentExpander) -> str:
    """Expand every entailment-marked type list to include its sub-types.

    The requested types keep their order and come first, followed by the
    entailed types in alphabetical order. The marker is removed.
    """
    output: list[str] = []
    for segment in scan(template):
        match segment:
            case RelationshipTypes(entailed=True) if segment.has_placeholders:
                logger.debug(f"Not entailing unsubstituted type list {segment.raw}")
                output.append(segment.raw)
            case RelationshipTypes(entailed=True):
                requested = segment.names
                entailed = await expander.get_entailed_types(requested)
                ordered = requested + sorted(entailed.difference(requested))
                output.append(TYPE_DELIMITER.join(quote_type(name) for name in ordered))
            case Text(text):
                output.append(text)
            case _:
                output.append(segment.raw)
    return "".join(output)


async def substitute(
    template: str, flattened: FlattenedParameters, expander: EntailmentExpander
) -> str:
    """Produce the final query: placeholders first, then entailment."""
    return await entail_relationships(
        substitute_placeholders(template, flattened), expander
    )
