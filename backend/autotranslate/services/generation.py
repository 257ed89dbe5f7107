"""Generation tracking for stale-result rejection.

Every reconfiguration (toggle, mode change, target-language change, refresh)
advances a process-wide counter. A translation pass captures the counter when it
starts and carries that token through its awaits; whoever applies the results
checks the token before every externally visible mutation and stops as soon as
it no longer matches. Cache writes made by a stale pass are kept.
"""

from __future__ import annotations

import logging
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)


class GenerationCounter:
    def __init__(self, start: int = 0):
        self._value = start

    @property
    def current(self) -> int:
        return self._value

    def increment(self) -> int:
        self._value += 1
        logger.debug(f"Generation advanced to {self._value}")
        return self._value

    def capture(self) -> "GenerationToken":
        return GenerationToken(self._value, self)


@dataclass(frozen=True)
class GenerationToken:
    value: int
    counter: GenerationCounter

    def is_current(self) -> bool:
        return self.counter.current == self.value


@dataclass
class StampedTranslations:
    """Translations tagged with the generation active when they were requested."""

    texts: list[str]
    translations: list[str]
    token: GenerationToken

    @property
    def generation(self) -> int:
        return self.token.value

    def is_stale(self) -> bool:
        return not self.token.is_current()


def apply_if_current(
    stamped: StampedTranslations,
    apply: Callable[[int, str, str], Any],
) -> int:
    """Hand each (index, source, translation) to ``apply`` while the pass is current.

    The token is re-checked before every call because ``apply`` may itself trigger
    a reconfiguration. Empty translations fall back to the source text.

    Returns:
        Number of results applied before the pass went stale (or all of them)
    """
    applied = 0
    for index, (source, translated) in enumerate(zip(stamped.texts, stamped.translations)):
        if stamped.is_stale():
            logger.debug(
                f"Discarding {len(stamped.texts) - applied} results from generation "
                f"{stamped.generation} (current {stamped.token.counter.current})"
            )
            break
        apply(index, source, translated or source)
        applied += 1
    return applied


class OriginalTextRegistry:
    """Side table from a rendered node to the text it showed before translation.

    Weak-referenceable nodes are held weakly so entries vanish with the node;
    anything else is held by identity until ``forget`` is called on teardown.
    """

    def __init__(self):
        self._weak: "weakref.WeakKeyDictionary[Any, str]" = weakref.WeakKeyDictionary()
        self._strong: dict[int, tuple[Any, str]] = {}

    def __len__(self) -> int:
        return len(self._weak) + len(self._strong)

    def snapshot(self, node: Any, text: str) -> None:
        """Remember ``text`` for ``node`` unless an earlier snapshot exists."""
        if self.original(node) is not None:
            return
        try:
            self._weak[node] = text
        except TypeError:
            self._strong[id(node)] = (node, text)

    def original(self, node: Any) -> Optional[str]:
        try:
            if node in self._weak:
                return self._weak[node]
        except TypeError:
            pass
        entry = self._strong.get(id(node))
        return entry[1] if entry is not None else None

    def restore(self, node: Any, apply: Callable[[Any, str], Any]) -> bool:
        """Give the node its original text back and drop the snapshot."""
        text = self.original(node)
        if text is None:
            return False
        apply(node, text)
        self.forget(node)
        return True

    def forget(self, node: Any) -> None:
        try:
            self._weak.pop(node, None)
        except TypeError:
            pass
        self._strong.pop(id(node), None)
