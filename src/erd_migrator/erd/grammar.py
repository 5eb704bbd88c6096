"""ERD grammar extraction.

Reads raw ERD text and extracts the three syntactic blocks the rest of
the pipeline works on: enum blocks, table blocks and ``Ref:`` lines.

Grammar (keywords are case-insensitive, quotes around names optional)::

    Enum <Name> {
        <value>
        ...
    }

    Table <Name> {
        <field> <type> [annotations]
        ...
    }

    Ref: "<table>"."<field>" < "<table>"."<field>"

``//`` starts a comment line.  Anything that does not match is left out of
the output and reported as a ``ParseDiagnostic`` with its line and column;
the extractor itself never raises.

Usage:
    from erd_migrator.erd.grammar import extract_blocks

    raw = extract_blocks(text)
    for table in raw.tables:
        print(table.name, [f.text for f in table.lines])
"""

import re
from dataclasses import dataclass, field

from erd_migrator.erd.models import ParseDiagnostic, RelationshipDirection, Severity


# ------------------------------------------------------------------
# Raw capture groups
# ------------------------------------------------------------------


@dataclass(frozen=True)
class RawLine:
    """One body line of a table block, with its source line number."""

    text: str
    line: int


@dataclass(frozen=True)
class RawEnumBlock:
    name: str
    values: tuple[str, ...]
    line: int


@dataclass(frozen=True)
class RawTableBlock:
    name: str
    lines: tuple[RawLine, ...]
    line: int


@dataclass(frozen=True)
class RawRef:
    from_table: str
    from_field: str
    direction: RelationshipDirection
    to_table: str
    to_field: str
    line: int


@dataclass(frozen=True)
class RawErd:
    """Everything the extractor found, in source order."""

    enums: tuple[RawEnumBlock, ...] = ()
    tables: tuple[RawTableBlock, ...] = ()
    refs: tuple[RawRef, ...] = ()
    diagnostics: tuple[ParseDiagnostic, ...] = ()


# ------------------------------------------------------------------
# Patterns
# ------------------------------------------------------------------

_BLOCK_HEADER = re.compile(
    r"""^(?P<keyword>enum|table)\b\s*
        (?:(?P<quote>["'`]?)(?P<name>\w+)(?P=quote))?
        (?P<settings>[^{]*)
        (?P<brace>\{)?
        (?P<tail>.*)$""",
    re.IGNORECASE | re.VERBOSE,
)

_REF_LINE = re.compile(
    r"""^ref(?:\s+\w+)?\s*:\s*
        "?(?P<from_table>\w+)"?\s*\.\s*"?(?P<from_field>\w+)"?\s*
        (?P<glyph>[^\s"\w]+)\s*
        "?(?P<to_table>\w+)"?\s*\.\s*"?(?P<to_field>\w+)"?
        \s*(?:\[.*\])?\s*$""",
    re.IGNORECASE | re.VERBOSE,
)

_COMMENT = "//"
_VALUE_NOTE = re.compile(r"\[.*\]\s*$")
_VALUE_TRIM = " \t\"'`,;"


def _clean_enum_value(text: str) -> str:
    """Strip inline notes, quoting and trailing punctuation from a value line."""
    text = _VALUE_NOTE.sub("", text.strip())
    return text.strip(_VALUE_TRIM)


# ------------------------------------------------------------------
# Parser
# ------------------------------------------------------------------


class ErdParser:
    """Recursive-descent extractor over the lines of an ERD source.

    Statements are line-oriented: a block header, its body lines and the
    closing brace.  Malformed statements are skipped with a diagnostic so
    that a single bad block never hides the rest of the document.
    """

    def __init__(self, text: str) -> None:
        self.lines = text.splitlines()
        self.pos = 0
        self.enums: list[RawEnumBlock] = []
        self.tables: list[RawTableBlock] = []
        self.refs: list[RawRef] = []
        self.diagnostics: list[ParseDiagnostic] = []

    # -- cursor -------------------------------------------------------

    def at_end(self) -> bool:
        return self.pos >= len(self.lines)

    def current_line(self) -> str:
        return self.lines[self.pos]

    def advance(self) -> str:
        line = self.current_line()
        self.pos += 1
        return line

    @property
    def line_number(self) -> int:
        """1-based number of the current line."""
        return self.pos + 1

    def report(
        self,
        message: str,
        line: int,
        column: int = 1,
        severity: Severity = Severity.ERROR,
    ) -> None:
        self.diagnostics.append(
            ParseDiagnostic(line=line, column=column, message=message, severity=severity)
        )

    # -- statements ---------------------------------------------------

    def parse(self) -> RawErd:
        while not self.at_end():
            raw = self.current_line()
            stripped = raw.strip()
            if not stripped or stripped.startswith(_COMMENT):
                self.advance()
                continue

            keyword = stripped.split(None, 1)[0].rstrip(":").lower()
            if keyword in ("enum", "table"):
                self.parse_block()
            elif keyword == "ref":
                self.parse_ref()
            else:
                column = len(raw) - len(raw.lstrip()) + 1
                self.report(
                    f"Unrecognized statement '{stripped.split(None, 1)[0]}'",
                    self.line_number,
                    column,
                    Severity.WARNING,
                )
                self.advance()
                # Keep a stray block from leaking its body as statements
                if "{" in stripped and "}" not in stripped:
                    self.skip_body(self.line_number - 1)

        return RawErd(
            enums=tuple(self.enums),
            tables=tuple(self.tables),
            refs=tuple(self.refs),
            diagnostics=tuple(self.diagnostics),
        )

    def parse_block(self) -> None:
        header_line = self.line_number
        raw = self.advance()
        indent = len(raw) - len(raw.lstrip())
        match = _BLOCK_HEADER.match(raw.strip())
        if match is None:
            self.report("Malformed block header", header_line, indent + 1)
            return

        keyword = match.group("keyword").lower()
        name = match.group("name")
        tail = match.group("tail")

        if match.group("brace") is None:
            # Brace may open on the following line
            if not self.at_end() and self.current_line().strip().startswith("{"):
                tail = self.advance().strip()[1:]
            else:
                self.report(
                    f"Expected '{{' after {keyword} header",
                    header_line,
                    indent + len(raw.strip()) + 1,
                )
                return

        body = self.read_body(header_line, tail)
        if body is None:
            return
        if name is None:
            self.report(f"{keyword.capitalize()} block has no name", header_line, indent + 1)
            return

        if keyword == "enum":
            values: list[str] = []
            for line in body:
                text = line.text.strip()
                if not text or text.startswith(_COMMENT):
                    continue
                value = _clean_enum_value(text)
                if value and value not in values:
                    values.append(value)
            self.enums.append(RawEnumBlock(name=name, values=tuple(values), line=header_line))
        else:
            lines = tuple(
                line for line in body
                if line.text.strip() and not line.text.strip().startswith(_COMMENT)
            )
            self.tables.append(RawTableBlock(name=name, lines=lines, line=header_line))

    def read_body(self, header_line: int, first: str) -> list[RawLine] | None:
        """Collect body lines up to the matching ``}``.

        Nested blocks (``indexes { ... }``, ``Note { ... }``) are skipped.
        Returns None, with a diagnostic, if the block is never closed.
        """
        body: list[RawLine] = []
        depth = 1
        pending: list[tuple[str, int]] = []
        if first.strip():
            pending.append((first, header_line))

        while True:
            if not pending:
                if self.at_end():
                    self.report("Unterminated block: missing '}'", header_line)
                    return None
                pending.append((self.current_line(), self.line_number))
                self.advance()

            text, number = pending.pop(0)
            if depth == 1 and "}" in text and "{" not in text:
                before = text[: text.index("}")]
                if before.strip():
                    body.append(RawLine(text=before, line=number))
                return body

            depth += text.count("{") - text.count("}")
            if depth <= 0:
                return body
            if depth == 1 and "{" not in text and "}" not in text:
                body.append(RawLine(text=text, line=number))
            elif "{" in text:
                self.report(
                    "Nested block ignored",
                    number,
                    text.index("{") + 1,
                    Severity.WARNING,
                )

    def skip_body(self, header_line: int) -> None:
        depth = 1
        while not self.at_end() and depth > 0:
            text = self.advance()
            depth += text.count("{") - text.count("}")
        if depth > 0:
            self.report("Unterminated block: missing '}'", header_line)

    def parse_ref(self) -> None:
        number = self.line_number
        raw = self.advance()
        indent = len(raw) - len(raw.lstrip())
        match = _REF_LINE.match(raw.strip())
        if match is None:
            self.report("Malformed relationship line", number, indent + 1)
            return

        glyph = match.group("glyph")
        column = indent + match.start("glyph") + 1
        try:
            direction = RelationshipDirection(glyph)
        except ValueError:
            self.report(f"Unrecognized relationship direction '{glyph}'", number, column)
            return

        self.refs.append(
            RawRef(
                from_table=match.group("from_table"),
                from_field=match.group("from_field"),
                direction=direction,
                to_table=match.group("to_table"),
                to_field=match.group("to_field"),
                line=number,
            )
        )


def extract_blocks(text: str) -> RawErd:
    """Extract enum, table and relationship blocks from ERD text.

    Args:
        text: Raw ERD source.

    Returns:
        ``RawErd`` with the blocks in source order and any diagnostics.

    Example:
        >>> raw = extract_blocks('Enum Status {\\n Draft\\n Paid\\n}')
        >>> raw.enums[0].values
        ('Draft', 'Paid')
    """
    return ErdParser(text).parse()
