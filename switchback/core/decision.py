"""DecisionEngine — keep, convert now, or defer a completed word."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from switchback.core import script
from switchback.core.layout_mapper import convert
from switchback.core.types import ConversionCandidate, Decision, LanguagePrefix, Verdict

if TYPE_CHECKING:
    from switchback.intelligence.spell_oracle import ISpellOracle

logger = logging.getLogger(__name__)


class DecisionEngine:
    """Consults the spell oracle on both layout interpretations of a word."""

    def __init__(self, oracle: "ISpellOracle"):
        self.oracle = oracle

    def decide(self, core: str, active: LanguagePrefix) -> Verdict:
        """Return the verdict for *core* typed while *active* layout was on.

        *core* must already have its trailing ``. , ;`` run stripped.

        Decision priorities:
          1. No oracle language for either prefix → KEEP.
          2. Correct under both interpretations → DEFER (ambiguous).
          3. Correct as typed only → KEEP.
          4. Correct after conversion only → CONVERT_NOW.
          5. Typed on EN with letter-producing punctuation inside and the
             conversion is all Cyrillic → CONVERT_NOW (low confidence).
        """
        if not core:
            return Verdict(Decision.KEEP, reason="empty word")

        other = active.other
        cur_lang = self.oracle.best_available_language(active)
        other_lang = self.oracle.best_available_language(other)
        if cur_lang is None or other_lang is None:
            return Verdict(Decision.KEEP, reason="spell oracle unavailable")

        converted = convert(core, active, other)
        candidate = ConversionCandidate(core, converted, active, other)

        if len(core) == 1:
            cur_ok = self.oracle.is_correct(core, cur_lang)
            other_ok = bool(converted) and self.oracle.is_correct(converted, other_lang)
            if cur_ok and other_ok:
                return Verdict(Decision.DEFER, candidate, "single letter valid in both layouts")
            if not cur_ok and other_ok:
                return Verdict(Decision.CONVERT_NOW, candidate, f"single letter '{converted}' valid in {other_lang}")
            return Verdict(Decision.KEEP, reason="single letter not convertible")

        suspicious = active is LanguagePrefix.EN and script.contains_suspicious_mapped(core)
        cur_ok = not suspicious and self.oracle.is_correct(core, cur_lang)
        other_ok = bool(converted) and self.oracle.is_correct(converted, other_lang)

        if cur_ok and other_ok:
            return Verdict(Decision.DEFER, candidate, "word valid in both layouts")
        if cur_ok:
            return Verdict(Decision.KEEP, reason=f"already correct in {cur_lang}")
        if other_ok:
            return Verdict(Decision.CONVERT_NOW, candidate, f"converted word '{converted}' valid in {other_lang}")
        if suspicious and script.is_all_cyrillic(converted):
            return Verdict(
                Decision.CONVERT_NOW, candidate,
                "mapped punctuation inside word decodes to Cyrillic", low_confidence=True,
            )
        return Verdict(Decision.KEEP, reason="not found in any dictionary")

    def force(self, word: str, active: LanguagePrefix) -> ConversionCandidate:
        """Candidate converting *word* to the other layout, ignoring the oracle."""
        other = active.other
        return ConversionCandidate(word, convert(word, active, other), active, other)
