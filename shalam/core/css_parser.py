"""Stylesheet parsing on top of tinycss2.

tinycss2 supplies the tokens and the rule structure. This module maps every
style rule and declaration back to its span in the original text, so rendering
copies untouched parts of the stylesheet verbatim and a rewritten rule only
replaces its own span.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Union

import tinycss2
from tinycss2 import ast

from .errors import ParseError

logger = logging.getLogger(__name__)

GROUPING_AT_RULES = {"media", "supports", "document", "-moz-document", "layer", "container", "scope"}

# tinycss2 silently closes whatever is still open at the end of the input, so
# this marker is appended before tokenizing. It only comes back as the last
# top-level token when every block, function and comment was closed.
_END_MARKER = "\n/**/"
_NEWLINE = re.compile(r"\r\n|[\r\n\f]")
_TOKEN_ERRORS = {
    "bad-string": "Unterminated string",
    "eof-in-string": "Unterminated string",
    "bad-url": "Malformed url()",
    "eof-in-url": "Unterminated url()",
}
_UNCLOSED = {"{} block": "Unterminated block", "[] block": "Unclosed '['", "() block": "Unclosed '('"}


def significant_tokens(tokens) -> list:
    """Drop whitespace and comments from a list of component values."""
    return [token for token in tokens if token.type not in ("whitespace", "comment")]


def serialize_tokens(tokens) -> str:
    """Serialize component values with comments and whitespace runs collapsed to a single space."""
    return " ".join("".join(" " if token.type == "comment" else token.serialize() for token in tokens).split())


@dataclass
class Trivia:
    """Source text inside a block that is carried through untouched.

    Whitespace, comments, stray semicolons and nested rules all end up here.
    """

    raw: str
    start: int
    end: int

    def render(self) -> str:
        return self.raw


@dataclass
class Declaration:
    """A ``name: value`` declaration and the source text it came from."""

    node: ast.Declaration
    name: str
    separator: str
    raw: str
    start: int
    end: int

    @classmethod
    def build(
        cls,
        name: str,
        separator: str,
        value: str,
        important: bool = False,
        terminated: bool = True,
        offset: int = 0,
    ) -> "Declaration":
        text = f"{name}{separator}{value}"
        if important:
            text += " !important"
        node = tinycss2.parse_one_declaration(text)
        raw = f"{text};" if terminated else text
        return cls(node=node, name=name, separator=separator, raw=raw, start=offset, end=offset)

    @property
    def property_name(self) -> str:
        return self.node.lower_name

    @property
    def value(self) -> list:
        return self.node.value

    @property
    def value_text(self) -> str:
        return tinycss2.serialize(self.node.value).strip()

    @property
    def important(self) -> bool:
        return self.node.important

    def render(self) -> str:
        return self.raw


BlockItem = Union[Trivia, Declaration]


@dataclass
class Rule:
    """A style rule: selector prelude plus a declaration block."""

    node: ast.QualifiedRule
    prelude: str
    items: list[BlockItem]
    start: int
    end: int

    @property
    def selector(self) -> str:
        return serialize_tokens(self.node.prelude)

    @property
    def selectors(self) -> list[str]:
        groups: list[list] = [[]]
        for token in self.node.prelude:
            if token == ",":
                groups.append([])
            else:
                groups[-1].append(token)
        return [text for text in (serialize_tokens(group) for group in groups) if text]

    @property
    def declarations(self) -> list[Declaration]:
        return [item for item in self.items if isinstance(item, Declaration)]

    def render(self) -> str:
        return self.prelude + "{" + "".join(item.render() for item in self.items) + "}"


@dataclass
class Stylesheet:
    text: str
    rules: list[Rule] = field(default_factory=list)
    source: Optional[Path] = None

    def iter_rules(self):
        """Yield style rules in document order, including those inside grouping at-rules."""
        return iter(self.rules)

    def render(self, replacements: Optional[dict[int, Rule]] = None) -> str:
        """Return the stylesheet text with the rules keyed by start offset swapped in."""
        if not replacements:
            return self.text
        chunks = []
        cursor = 0
        for rule in self.rules:
            replacement = replacements.get(rule.start)
            if replacement is None:
                continue
            chunks.append(self.text[cursor:rule.start])
            chunks.append(replacement.render())
            cursor = rule.end
        chunks.append(self.text[cursor:])
        return "".join(chunks)


def parse_stylesheet(text: str, source: Optional[Path] = None) -> Stylesheet:
    """Parse ``text`` into a :class:`Stylesheet`.

    Raises :class:`ParseError` for unterminated blocks, strings and comments,
    unmatched closing brackets, rules without a block and declarations that
    cannot be parsed.
    """
    stylesheet = _Builder(text, source).build()
    logger.debug("Parsed %d style rules from %s", len(stylesheet.rules), source or "<string>")
    return stylesheet


class _Builder:
    def __init__(self, text: str, source: Optional[Path]):
        self.text = text
        self.source = source
        padded = text + _END_MARKER
        self._line_starts = [0] + [match.end() for match in _NEWLINE.finditer(padded)]
        self._tokens = tinycss2.parse_component_value_list(padded)

    def offset(self, node) -> int:
        return self._line_starts[node.source_line - 1] + node.source_column - 1

    def error(self, message: str, node) -> ParseError:
        return ParseError(message, self.offset(node), line=node.source_line, column=node.source_column, source=self.source)

    def build(self) -> Stylesheet:
        self._check_tokens(self._tokens)
        tokens = self._strip_end_marker(self._tokens)
        nodes = tinycss2.parse_stylesheet(tokens, skip_comments=False, skip_whitespace=False)
        rules: list[Rule] = []
        self._collect(tokens, len(self.text), nodes, rules)
        return Stylesheet(text=self.text, rules=rules, source=self.source)

    def _check_tokens(self, tokens) -> None:
        for token in tokens:
            if token.type == "error":
                raise self.error(_TOKEN_ERRORS.get(token.kind, token.message), token)
            children = token.arguments if token.type == "function" else getattr(token, "content", None)
            if children:
                self._check_tokens(children)

    def _strip_end_marker(self, tokens) -> list:
        end = len(self.text)
        last = tokens[-1]
        if last.type == "comment" and self.offset(last) == end + 1:
            tokens = tokens[:-1]
            if tokens and tokens[-1].type == "whitespace" and self.offset(tokens[-1]) == end:
                tokens = tokens[:-1]
            return tokens
        if last.type == "comment":
            raise self.error("Unterminated comment", last)
        if last.type == "function":
            raise self.error(f"Unclosed '{last.name}('", last)
        raise self.error(_UNCLOSED.get(last.type, "Unexpected end of stylesheet"), last)

    def _block_spans(self, tokens, end: int) -> dict[int, tuple[int, int]]:
        spans = {}
        for index, token in enumerate(tokens):
            if token.type == "{} block":
                stop = self.offset(tokens[index + 1]) if index + 1 < len(tokens) else end
                spans[id(token.content)] = (self.offset(token), stop)
        return spans

    def _collect(self, tokens, end: int, nodes, rules: list[Rule]) -> None:
        spans = self._block_spans(tokens, end)
        for node in nodes:
            if node.type == "error":
                raise self.error(node.message, node)
            if node.type == "qualified-rule":
                rules.append(self._rule(node, spans[id(node.content)]))
            elif node.type == "at-rule" and node.content is not None and node.lower_at_keyword in GROUPING_AT_RULES:
                _, block_end = spans[id(node.content)]
                children = tinycss2.parse_blocks_contents(node.content, skip_comments=False, skip_whitespace=False)
                self._collect(node.content, block_end - 1, children, rules)

    def _rule(self, node: ast.QualifiedRule, span: tuple[int, int]) -> Rule:
        start = self.offset(node)
        block_start, end = span
        if not significant_tokens(node.prelude):
            raise self.error("Empty selector", node)
        items = self._items(node.content, block_start + 1, end - 1)
        return Rule(node=node, prelude=self.text[start:block_start], items=items, start=start, end=end)

    def _items(self, content, start: int, end: int) -> list[BlockItem]:
        nodes = tinycss2.parse_blocks_contents(content, skip_comments=False, skip_whitespace=False)
        for node in nodes:
            if node.type == "error":
                raise self.error("Invalid declaration", node)
        starts = [self.offset(node) for node in nodes]
        items: list[BlockItem] = []
        first = starts[0] if starts else end
        if first > start:
            # semicolons tinycss2 skips before the first declaration
            items.append(Trivia(self.text[start:first], start, first))
        for index, node in enumerate(nodes):
            stop = starts[index + 1] if index + 1 < len(nodes) else end
            if node.type == "declaration":
                items.extend(self._declaration(node, starts[index], stop))
            else:
                items.append(Trivia(self.text[starts[index]:stop], starts[index], stop))
        return items

    def _declaration(self, node: ast.Declaration, start: int, stop: int) -> list[BlockItem]:
        raw = self.text[start:stop]
        trailing = None
        if not raw.endswith(";"):
            stripped = raw.rstrip()
            if len(stripped) < len(raw):
                trailing = Trivia(raw[len(stripped):], start + len(stripped), stop)
                raw = stripped
        if node.value:
            colon = self.offset(node.value[0]) - 1
        else:
            colon = start + raw.find(":")
        name_end = start + len(self.text[start:colon].rstrip())
        significant = significant_tokens(node.value)
        value_start = self.offset(significant[0]) if significant else colon + 1
        declaration = Declaration(
            node=node,
            name=self.text[start:name_end],
            separator=self.text[name_end:value_start],
            raw=raw,
            start=start,
            end=start + len(raw),
        )
        return [declaration, trailing] if trailing else [declaration]
