"""Boolean search expressions: tokenizer, recursive-descent parser, evaluator.

Grammar (lowest precedence first)::

    expr    := or_expr ("not" or_expr)*
    or_expr := and_expr ("or" and_expr)*
    and_expr:= primary ("and" primary)*
    primary := "(" expr ")" | word*

``X not Y`` means "X and not Y". Operators are case-insensitive words;
adjacent words form one multi-word term, and an empty operand matches
every row. Unbalanced parentheses make the whole query match everything.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Union

_TOKEN_RE = re.compile(r"\(|\)|[^\s()]+")
OPERATORS = {"and", "or", "not"}


@dataclass(frozen=True)
class Term:
    text: str


@dataclass(frozen=True)
class Literal:
    value: bool


@dataclass(frozen=True)
class And:
    left: Node
    right: Node


@dataclass(frozen=True)
class Or:
    left: Node
    right: Node


@dataclass(frozen=True)
class Not:
    """``left`` and not ``right``."""

    left: Node
    right: Node


Node = Union[Term, Literal, And, Or, Not]


def tokenize(query: str) -> list[str]:
    return _TOKEN_RE.findall(query.lower())


def _balanced(tokens: list[str]) -> bool:
    depth = 0
    for tok in tokens:
        if tok == "(":
            depth += 1
        elif tok == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def _is_empty(node: Node) -> bool:
    return isinstance(node, Term) and not node.text


def _combine(cls: type, left: Node, right: Node) -> Node:
    """Build a binary node; an empty operand drops out."""
    if _is_empty(right):
        return left
    if _is_empty(left) and cls is not Not:
        return right
    return cls(left, right)


class _Parser:
    def __init__(self, tokens: list[str]) -> None:
        self.tokens = tokens
        self.pos = 0

    def peek(self) -> str | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def take(self) -> str:
        tok = self.tokens[self.pos]
        self.pos += 1
        return tok

    def expr(self) -> Node:
        node = self.or_expr()
        while self.peek() == "not":
            self.take()
            node = _combine(Not, node, self.or_expr())
        return node

    def or_expr(self) -> Node:
        node = self.and_expr()
        while self.peek() == "or":
            self.take()
            node = _combine(Or, node, self.and_expr())
        return node

    def and_expr(self) -> Node:
        node = self.primary()
        while True:
            tok = self.peek()
            if tok == "and":
                self.take()
            elif tok is None or tok in OPERATORS or tok == ")":
                break
            # A group next to a term, as in "a (b or c)", is an implicit AND.
            node = _combine(And, node, self.primary())
        return node

    def primary(self) -> Node:
        if self.peek() == "(":
            self.take()
            node = self.expr()
            if self.peek() == ")":
                self.take()
            return node
        words = []
        while self.peek() is not None and self.peek() not in OPERATORS | {"(", ")"}:
            words.append(self.take())
        return Term(" ".join(words))


def parse(query: str) -> Node:
    """Parse a query into an expression tree. Never raises."""
    tokens = tokenize(query)
    if not _balanced(tokens):
        return Literal(True)
    return _Parser(tokens).expr()


def evaluate(node: Node, text: str) -> bool:
    """Evaluate against already lower-cased row text."""
    if isinstance(node, Term):
        return node.text in text
    if isinstance(node, Literal):
        return node.value
    if isinstance(node, And):
        return evaluate(node.left, text) and evaluate(node.right, text)
    if isinstance(node, Or):
        return evaluate(node.left, text) or evaluate(node.right, text)
    if isinstance(node, Not):
        return evaluate(node.left, text) and not evaluate(node.right, text)
    raise TypeError(f"Unknown expression node {node!r}")


def matches(query: str, text: str) -> bool:
    return evaluate(parse(query), text.lower())


def positive_terms(node: Node) -> list[str]:
    """Non-empty terms that are not negated, for highlighting."""
    if isinstance(node, Term):
        return [node.text] if node.text else []
    if isinstance(node, (And, Or)):
        return positive_terms(node.left) + positive_terms(node.right)
    if isinstance(node, Not):
        return positive_terms(node.left)
    return []
