"""Aho-Corasick automaton for dictionary topic matching.

Finds every occurrence of every registered surface form (topic names and
aliases) in a single left-to-right pass over the lowercased text, then maps
each hit to its canonical topic name.

Matching is substring-based: a surface form matches anywhere it occurs, with
no word-boundary check. The alias ``jed`` therefore also fires inside
``Jedi``.

Instances are immutable once built. Owners rebuild a fresh automaton and
swap their reference; readers never observe a partially built trie.

Usage:
    automaton = TopicAutomaton.build([("xlm", "stellar"), ("soroban", "soroban")])
    automaton.match("XLM price and Soroban contracts")
    # {"stellar", "soroban"}
"""

import logging
from collections import deque
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AliasCollision:
    """A surface form registered for two different canonical topics."""

    surface: str
    previous: str
    current: str


class _Node:
    __slots__ = ("goto", "fail", "output")

    def __init__(self) -> None:
        self.goto: dict[str, int] = {}
        self.fail: int = 0
        # Surface forms ending at this node, including those reached via
        # failure links (merged at build time).
        self.output: list[str] = []


class TopicAutomaton:
    """Immutable multi-pattern matcher over a surface -> canonical table."""

    def __init__(
        self,
        nodes: list[_Node],
        aliases: dict[str, str],
        collisions: list[AliasCollision],
    ) -> None:
        self._nodes = nodes
        self._aliases = aliases
        self._collisions = tuple(collisions)

    @classmethod
    def build(cls, entries: Iterable[tuple[str, str]]) -> "TopicAutomaton":
        """Build an automaton from (surface form, canonical topic) pairs.

        Both sides are lowercased and trimmed. Blank surface forms are
        ignored. When one surface form is registered for two different
        canonicals the later registration wins and the collision is kept
        on the automaton.
        """
        aliases: dict[str, str] = {}
        collisions: list[AliasCollision] = []

        for surface, canonical in entries:
            surface = (surface or "").strip().lower()
            canonical = (canonical or "").strip().lower()
            if not surface or not canonical:
                continue
            previous = aliases.get(surface)
            if previous is not None and previous != canonical:
                collisions.append(AliasCollision(surface, previous, canonical))
                logger.warning(
                    "Alias %r maps to both %r and %r; keeping %r",
                    surface, previous, canonical, canonical,
                )
            aliases[surface] = canonical

        nodes = [_Node()]
        for surface in aliases:
            state = 0
            for char in surface:
                nxt = nodes[state].goto.get(char)
                if nxt is None:
                    nxt = len(nodes)
                    nodes.append(_Node())
                    nodes[state].goto[char] = nxt
                state = nxt
            nodes[state].output.append(surface)

        # Breadth-first failure links
        queue: deque[int] = deque()
        for child in nodes[0].goto.values():
            nodes[child].fail = 0
            queue.append(child)

        while queue:
            state = queue.popleft()
            for char, child in nodes[state].goto.items():
                queue.append(child)
                fallback = nodes[state].fail
                while fallback and char not in nodes[fallback].goto:
                    fallback = nodes[fallback].fail
                target = nodes[fallback].goto.get(char, 0)
                nodes[child].fail = target if target != child else 0
                nodes[child].output.extend(nodes[nodes[child].fail].output)

        return cls(nodes, aliases, collisions)

    @classmethod
    def empty(cls) -> "TopicAutomaton":
        """An automaton that matches nothing."""
        return cls.build([])

    @property
    def term_count(self) -> int:
        """Number of distinct surface forms."""
        return len(self._aliases)

    @property
    def topic_count(self) -> int:
        """Number of distinct canonical topics reachable from the surfaces."""
        return len(set(self._aliases.values()))

    @property
    def collisions(self) -> tuple[AliasCollision, ...]:
        return self._collisions

    @property
    def is_empty(self) -> bool:
        return not self._aliases

    def canonical_for(self, surface: str) -> str | None:
        """Resolve one surface form to its canonical topic, if registered."""
        return self._aliases.get(surface.strip().lower())

    def _scan(self, text: str) -> Iterable[tuple[int, str]]:
        nodes = self._nodes
        state = 0
        for index, char in enumerate(text.lower()):
            while state and char not in nodes[state].goto:
                state = nodes[state].fail
            state = nodes[state].goto.get(char, 0)
            for surface in nodes[state].output:
                yield index, surface

    def match_surfaces(self, text: str) -> list[tuple[int, str]]:
        """Return raw (end_index, surface) hits in scan order."""
        if not text or self.is_empty:
            return []
        return list(self._scan(text))

    def match(self, text: str, min_length: int = 0) -> set[str]:
        """Return the canonical topics whose surface forms occur in text.

        Texts shorter than min_length are not scanned.
        """
        if not text or len(text) < min_length or self.is_empty:
            return set()
        return {self._aliases[surface] for _, surface in self._scan(text)}
