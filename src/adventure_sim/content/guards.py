"""Guard expressions over adventure flags.

Exit guards and trigger preconditions are written in a small boolean
language and parsed once, at load time:

    flag                        truthy check
    not flag                    negation
    a and b, a or b             conjunction / disjunction (and binds tighter)
    (a or b) and c              grouping
    door == 'open'              enumerated flag comparison
    door != 'sealed'
    true, false                 constants

An empty or missing guard is always satisfied.

Usage:
    guard = parse_guard("has_key and door == 'unlocked'")
    guard.evaluate({"has_key": True, "door": "unlocked"})   # True
    guard.satisfiable({"has_key": [False, True], "door": ["locked", "unlocked"]})
"""

from __future__ import annotations

import itertools
import re
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from adventure_sim.models.state import FlagValue


class GuardSyntaxError(ValueError):
    """A guard expression could not be parsed."""


# =============================================================================
# AST
# =============================================================================


class Node(ABC):
    """Base class for guard AST nodes."""

    @abstractmethod
    def evaluate(self, flags: Mapping[str, FlagValue]) -> bool:
        pass

    @abstractmethod
    def flags(self) -> set[str]:
        pass

    def comparisons(self) -> list[tuple[str, str]]:
        """(flag, literal) pairs compared with == or != anywhere in the tree."""
        return []


@dataclass(frozen=True)
class Const(Node):
    value: bool

    def evaluate(self, flags: Mapping[str, FlagValue]) -> bool:
        return self.value

    def flags(self) -> set[str]:
        return set()


@dataclass(frozen=True)
class FlagRef(Node):
    name: str

    def evaluate(self, flags: Mapping[str, FlagValue]) -> bool:
        return bool(flags.get(self.name, False))

    def flags(self) -> set[str]:
        return {self.name}


@dataclass(frozen=True)
class Compare(Node):
    name: str
    op: str
    value: FlagValue

    def evaluate(self, flags: Mapping[str, FlagValue]) -> bool:
        equal = flags.get(self.name) == self.value
        return equal if self.op == "==" else not equal

    def flags(self) -> set[str]:
        return {self.name}

    def comparisons(self) -> list[tuple[str, str]]:
        if isinstance(self.value, str):
            return [(self.name, self.value)]
        return []


@dataclass(frozen=True)
class Not(Node):
    operand: Node

    def evaluate(self, flags: Mapping[str, FlagValue]) -> bool:
        return not self.operand.evaluate(flags)

    def flags(self) -> set[str]:
        return self.operand.flags()

    def comparisons(self) -> list[tuple[str, str]]:
        return self.operand.comparisons()


@dataclass(frozen=True)
class BinaryOp(Node):
    op: str
    left: Node
    right: Node

    def evaluate(self, flags: Mapping[str, FlagValue]) -> bool:
        if self.op == "and":
            return self.left.evaluate(flags) and self.right.evaluate(flags)
        return self.left.evaluate(flags) or self.right.evaluate(flags)

    def flags(self) -> set[str]:
        return self.left.flags() | self.right.flags()

    def comparisons(self) -> list[tuple[str, str]]:
        return self.left.comparisons() + self.right.comparisons()


# =============================================================================
# Parser
# =============================================================================

_TOKEN_RE = re.compile(
    r"""\s*(?:
        (?P<op>==|!=|\(|\))
      | (?P<string>'[^']*'|"[^"]*")
      | (?P<name>[A-Za-z_][A-Za-z0-9_.\-]*)
    )""",
    re.VERBOSE,
)

_KEYWORDS = {"and", "or", "not", "true", "false"}


def _tokenize(source: str) -> list[tuple[str, str]]:
    tokens = []
    pos = 0
    source = source.rstrip()
    while pos < len(source):
        match = _TOKEN_RE.match(source, pos)
        if match is None or match.end() == pos:
            raise GuardSyntaxError(f"Unexpected character at {pos} in guard {source!r}")
        pos = match.end()
        if match.group("op"):
            tokens.append(("op", match.group("op")))
        elif match.group("string"):
            tokens.append(("string", match.group("string")[1:-1]))
        else:
            word = match.group("name")
            kind = "keyword" if word.lower() in _KEYWORDS else "name"
            tokens.append((kind, word.lower() if kind == "keyword" else word))
    return tokens


class _Parser:
    """Recursive-descent parser: or > and > not > atom."""

    def __init__(self, source: str):
        self.source = source
        self.tokens = _tokenize(source)
        self.pos = 0

    def parse(self) -> Node:
        if not self.tokens:
            return Const(True)
        node = self._or()
        if self.pos != len(self.tokens):
            raise GuardSyntaxError(
                f"Unexpected token {self.tokens[self.pos][1]!r} in guard {self.source!r}"
            )
        return node

    def _peek(self) -> tuple[str, str] | None:
        return self.tokens[self.pos] if self.pos < len(self.tokens) else None

    def _take(self) -> tuple[str, str]:
        token = self._peek()
        if token is None:
            raise GuardSyntaxError(f"Unexpected end of guard {self.source!r}")
        self.pos += 1
        return token

    def _or(self) -> Node:
        node = self._and()
        while self._peek() == ("keyword", "or"):
            self._take()
            node = BinaryOp("or", node, self._and())
        return node

    def _and(self) -> Node:
        node = self._not()
        while self._peek() == ("keyword", "and"):
            self._take()
            node = BinaryOp("and", node, self._not())
        return node

    def _not(self) -> Node:
        if self._peek() == ("keyword", "not"):
            self._take()
            return Not(self._not())
        return self._atom()

    def _atom(self) -> Node:
        kind, value = self._take()
        if (kind, value) == ("op", "("):
            node = self._or()
            if self._take() != ("op", ")"):
                raise GuardSyntaxError(f"Missing ')' in guard {self.source!r}")
            return node
        if kind == "keyword" and value in ("true", "false"):
            return Const(value == "true")
        if kind != "name":
            raise GuardSyntaxError(f"Expected flag name, got {value!r} in guard {self.source!r}")

        nxt = self._peek()
        if nxt in (("op", "=="), ("op", "!=")):
            op = self._take()[1]
            lit_kind, literal = self._take()
            if lit_kind == "keyword" and literal in ("true", "false"):
                return Compare(value, op, literal == "true")
            if lit_kind not in ("string", "name"):
                raise GuardSyntaxError(f"Expected value after {op!r} in guard {self.source!r}")
            return Compare(value, op, literal)
        return FlagRef(value)


# =============================================================================
# Public API
# =============================================================================


class Guard:
    """A parsed guard expression."""

    def __init__(self, source: str | None):
        self.source = (source or "").strip()
        self.root = _Parser(self.source).parse()
        self.referenced_flags = frozenset(self.root.flags())

    @property
    def is_trivial(self) -> bool:
        return not self.referenced_flags

    def evaluate(self, flags: Mapping[str, FlagValue]) -> bool:
        """Decide the guard purely from the given flag values."""
        return self.root.evaluate(flags)

    def comparisons(self) -> list[tuple[str, str]]:
        return self.root.comparisons()

    def satisfiable(
        self, domains: Mapping[str, Iterable[FlagValue]]
    ) -> dict[str, FlagValue] | None:
        """Find an assignment from the given per-flag domains satisfying the guard.

        Only flags the guard references are enumerated. A referenced flag with
        no domain entry is treated as unset.

        Returns:
            A witness assignment, or None if no combination satisfies the guard
        """
        names = sorted(self.referenced_flags)
        value_lists = [_ordered(domains.get(name, ())) or [None] for name in names]
        for combo in itertools.product(*value_lists):
            assignment = dict(zip(names, combo))
            if self.evaluate(assignment):
                return assignment
        return None

    def __repr__(self) -> str:
        return f"Guard({self.source!r})"


def _ordered(values: Iterable[FlagValue]) -> list[FlagValue]:
    """Deduplicate while keeping first-seen order, for stable witnesses."""
    seen = []
    for value in values:
        if value not in seen:
            seen.append(value)
    return seen


def parse_guard(source: str | None) -> Guard:
    """Parse a guard expression.

    Raises:
        GuardSyntaxError: If the expression is malformed
    """
    return Guard(source)
