"""GM validator: reclassifies raw player critiques against authored knowledge.

A simulated player raises far more questions than a real GM would ever
need to act on. The validator decides, for each critique, whether it is a
real problem or something the adventure already handles:

1. Matches an authored mystery pattern -> red_herring, false_positive
   (reveal scene already on the path), delayed_reveal (revealed later),
   or intentional_mystery (never revealed)
2. About an NPC who keeps a secret -> intentional_mystery
3. Emotional gaps or shallow NPCs in a restrained tone (noir, bleak) or a
   grief theme -> gm_discretion
4. Blockers, logic gaps, unclear direction -> valid_issue
5. Keyword overlap with a mystery's question or answer -> as in (1), with
   heuristic confidence
6. Unhandled actions -> player_choice
7. Everything else -> gm_discretion

Validation is a pure function of the critique and the content, so
re-validating a critique always yields the same status.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable
from typing import TYPE_CHECKING

from adventure_sim.content.schemas import Mystery
from adventure_sim.models.issues import (
    Confidence,
    Critique,
    CritiqueKind,
    GMValidation,
    ValidatedCritique,
    ValidationStatus,
)
from adventure_sim.parameters import (
    HEURISTIC_MIN_TERM_LENGTH,
    HEURISTIC_MIN_TERM_MATCHES,
    RESTRAINED_THEMES,
    RESTRAINED_TONES,
)

if TYPE_CHECKING:
    from adventure_sim.content.loader import ContentGraph

logger = logging.getLogger(__name__)

_TERM_RE = re.compile(r"[a-z0-9']+")

STRUCTURAL_ISSUES = frozenset({CritiqueKind.BLOCKER, CritiqueKind.LOGIC_GAP, CritiqueKind.UNCLEAR_DIRECTION})
"""Critique kinds that are always actionable when no authored knowledge explains them."""

SECRET_KINDS = frozenset({CritiqueKind.QUESTION, CritiqueKind.MISSING_CONTENT, CritiqueKind.SHALLOW_NPC})
"""Critique kinds an NPC's authored secret can account for."""

TONE_KINDS = frozenset({CritiqueKind.EMOTIONAL_GAP, CritiqueKind.SHALLOW_NPC})
"""Critique kinds a deliberately restrained tone can account for."""


def _terms(text: str) -> set[str]:
    return {t for t in _TERM_RE.findall(text.lower()) if len(t) >= HEURISTIC_MIN_TERM_LENGTH}


class GMValidator:
    """Classifies critiques for one adventure.

    Usage:
        validator = GMValidator(graph)
        validated = validator.validate(critique)
        validated.validation.status
    """

    def __init__(self, graph: ContentGraph):
        self.graph = graph
        self._mystery_terms = {
            mystery.id: _terms(f"{mystery.question} {mystery.answer}") for mystery in graph.mysteries
        }

    def validate(self, critique: Critique | ValidatedCritique) -> ValidatedCritique:
        """Classify a critique. Already-validated critiques are re-classified from scratch."""
        if isinstance(critique, ValidatedCritique):
            critique = critique.critique
        validation = self._classify(critique)
        logger.debug(f"Critique in {critique.scene_id} ({critique.kind.value}) -> {validation.status.value}")
        return ValidatedCritique(critique, validation)

    def validate_all(self, critiques: Iterable[Critique]) -> list[ValidatedCritique]:
        return [self.validate(c) for c in critiques]

    def _classify(self, critique: Critique) -> GMValidation:
        text = critique.text.lower()
        for mystery in self.graph.mysteries:
            if any(pattern.lower() in text for pattern in mystery.patterns):
                return self._mystery_status(mystery, critique, Confidence.AUTHORED)

        if critique.subject and critique.kind in SECRET_KINDS:
            npc = next((n for n in self.graph.adventure.npcs if n.id == critique.subject), None)
            if npc is not None and npc.secret:
                return GMValidation(
                    ValidationStatus.INTENTIONAL_MYSTERY,
                    f"{npc.name} is keeping a secret the players are not meant to learn yet",
                    Confidence.AUTHORED,
                )

        restraint = self._restraint() if critique.kind in TONE_KINDS else None
        if restraint is not None:
            return GMValidation(
                ValidationStatus.GM_DISCRETION,
                f"The {restraint} may intentionally limit emotional exposition",
                Confidence.AUTHORED,
            )

        if critique.kind in STRUCTURAL_ISSUES:
            return GMValidation(
                ValidationStatus.VALID_ISSUE,
                f"No authored content explains this {critique.kind.value.replace('_', ' ')}",
                Confidence.STRUCTURAL,
            )

        mystery = self._heuristic_match(text)
        if mystery is not None:
            return self._mystery_status(mystery, critique, Confidence.HEURISTIC)

        if critique.kind == CritiqueKind.UNHANDLED_ACTION:
            return GMValidation(
                ValidationStatus.PLAYER_CHOICE,
                "Depends on what the players choose to do; the GM can adjudicate at the table",
                Confidence.STRUCTURAL,
            )
        return GMValidation(
            ValidationStatus.GM_DISCRETION,
            "The GM can improvise this detail at the table",
            Confidence.STRUCTURAL,
        )

    def _restraint(self) -> str | None:
        """The tone or theme that calls for sparse emotional exposition, if any."""
        tone = self.graph.adventure.tone
        if any(word in tone.lower() for word in RESTRAINED_TONES):
            return f"{tone} tone"
        for theme in self.graph.adventure.themes:
            if theme.lower() in RESTRAINED_THEMES:
                return f"{theme} theme"
        return None

    def _heuristic_match(self, text: str) -> Mystery | None:
        """The mystery sharing the most significant terms with the text, if enough."""
        critique_terms = _terms(text)
        best, best_count = None, 0
        for mystery in self.graph.mysteries:
            count = len(critique_terms & self._mystery_terms[mystery.id])
            if count >= HEURISTIC_MIN_TERM_MATCHES and count > best_count:
                best, best_count = mystery, count
        return best

    def _mystery_status(self, mystery: Mystery, critique: Critique, confidence: Confidence) -> GMValidation:
        if mystery.red_herring:
            return GMValidation(
                ValidationStatus.RED_HERRING,
                f"Intentionally misleading: '{mystery.question}' is a red herring",
                confidence,
                mystery_id=mystery.id,
            )
        reveal = mystery.reveal_scene
        if reveal is None:
            return GMValidation(
                ValidationStatus.INTENTIONAL_MYSTERY,
                f"'{mystery.question}' is never answered on purpose",
                confidence,
                mystery_id=mystery.id,
            )
        title = self.graph.scene(reveal).display_name
        if reveal in critique.path:
            return GMValidation(
                ValidationStatus.FALSE_POSITIVE,
                f"Already answered in {reveal} ({title}) on this path",
                confidence,
                reveal_scene=reveal,
                mystery_id=mystery.id,
            )
        return GMValidation(
            ValidationStatus.DELAYED_REVEAL,
            f"Revealed later in {reveal} ({title})",
            confidence,
            reveal_scene=reveal,
            mystery_id=mystery.id,
        )
