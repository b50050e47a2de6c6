"""CorrectionExecutor — turns verdicts into delete / switch / type sequences.

The caller puts the SynthesisGuard into SYNTHESIZING before handing over a
correction; the executor always ends synthesis when the sequence finishes or
fails, which replays input queued meanwhile.  Every step runs as a
scheduled task, so nothing here blocks the key-event path.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable

from switchback.core.ambiguity import AmbiguousEntry, relocate
from switchback.core.events import ConversionEventData, EventType
from switchback.core.types import LanguagePrefix
from switchback.platform.document import TextRange
from switchback.platform.text_injector import Direction

if TYPE_CHECKING:
    from switchback.core.event_bus import EventBus
    from switchback.core.scheduler import CancelToken
    from switchback.core.synthesis import SynthesisGuard
    from switchback.platform.document import IAccessibleDocument
    from switchback.platform.layout_switch import ILayoutSwitch
    from switchback.platform.text_injector import ITextInjector

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetypePlan:
    """Replace the *delete_count* characters before the caret with *text*."""
    original: str
    text: str
    delete_count: int
    target: LanguagePrefix
    around_boundary: bool = False   # one boundary character sits after the word
    is_auto: bool = True


def restored_caret(caret: int, start: int, old_len: int, new_len: int) -> int:
    """Caret position after replacing ``[start, start+old_len)`` with new_len chars."""
    word_end = start + old_len
    if caret >= word_end:
        return caret + (new_len - old_len)
    if caret >= start:
        return start + min(caret - start, new_len)
    return caret


class CorrectionExecutor:
    def __init__(
        self,
        injector: "ITextInjector",
        layout: "ILayoutSwitch",
        scheduler,
        guard: "SynthesisGuard",
        document: "IAccessibleDocument | None" = None,
        event_bus: "EventBus | None" = None,
        token: "CancelToken | None" = None,
        correction_delay: float = 0.05,
        switch_poll_interval: float = 0.05,
        switch_max_attempts: int = 12,
    ):
        self.injector = injector
        self.layout = layout
        self.scheduler = scheduler
        self.guard = guard
        self.document = document
        self.event_bus = event_bus
        self.token = token
        self.correction_delay = correction_delay
        self.switch_poll_interval = switch_poll_interval
        self.switch_max_attempts = switch_max_attempts

    # ------------------------------------------------------------------
    # Step plumbing
    # ------------------------------------------------------------------

    def _later(self, delay: float, fn: Callable[[], None]) -> None:
        def step() -> None:
            try:
                fn()
            except Exception:
                logger.exception("Correction step failed, ending synthesis")
                self._finish(None)
        self.scheduler.call_later(delay, step, self.token)

    def _emit(self, event_type: EventType, data) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event_type, data)

    def _finish(self, data: ConversionEventData | None) -> None:
        if data is not None:
            logger.info("Converted %r -> %r (%s)", data.original, data.converted, data.mode)
            self._emit(EventType.CONVERSION_COMPLETE, data)
        self.guard.end()

    def ensure_switch(self, target: LanguagePrefix, then: Callable[[], None]) -> None:
        """Switch to *target*, poll until it is active, then call *then*.

        After ``switch_max_attempts`` unconfirmed polls *then* runs anyway.
        """
        def attempt(n: int) -> None:
            if self.layout.current_language() is target:
                then()
                return
            if n >= self.switch_max_attempts:
                logger.warning("Layout switch to %s not confirmed after %d attempts, typing anyway",
                               target.value, n)
                self._emit(EventType.LAYOUT_SWITCH_TIMEOUT, target)
                then()
                return
            self.layout.switch_to(target)
            self._later(self.switch_poll_interval, lambda: attempt(n + 1))

        attempt(0)

    # ------------------------------------------------------------------
    # Immediate correction of the word just typed
    # ------------------------------------------------------------------

    def retype(self, plan: RetypePlan) -> None:
        self._emit(EventType.CONVERSION_START,
                   ConversionEventData(plan.original, plan.text, "retype", plan.is_auto))
        self._later(self.correction_delay, lambda: self._retype_delete(plan))

    def _retype_delete(self, plan: RetypePlan) -> None:
        if plan.around_boundary:
            self.injector.move_caret(Direction.LEFT, 1)
        self.injector.delete_backward(plan.delete_count)
        self.ensure_switch(plan.target, lambda: self._retype_type(plan))

    def _retype_type(self, plan: RetypePlan) -> None:
        self.injector.type_text(plan.text)
        if plan.around_boundary:
            self.injector.move_caret(Direction.RIGHT, 1)
        self._finish(ConversionEventData(plan.original, plan.text, "retype", plan.is_auto))

    # ------------------------------------------------------------------
    # Deferred correction of an ambiguous entry
    # ------------------------------------------------------------------

    def apply(self, entry: AmbiguousEntry, pending_words: int = 0) -> None:
        """Replace *entry*'s word, in the document if possible, else by keystrokes.

        *pending_words* counts words typed after the entry that no boundary
        has completed yet (the word being typed).
        """
        self._emit(EventType.CONVERSION_START,
                   ConversionEventData(entry.original, entry.converted, "document", False))
        self._later(0.0, lambda: self._apply(entry, pending_words))

    def _apply(self, entry: AmbiguousEntry, pending_words: int) -> None:
        if self.document is not None and not entry.is_blind:
            if self._apply_in_document(entry):
                return
        self._navigate(entry, pending_words)

    def _apply_in_document(self, entry: AmbiguousEntry) -> bool:
        doc = self.document
        if doc.focus_token() != entry.document_anchor.focus:
            logger.debug("Focus changed since %r was captured", entry.original)
            return False
        text = doc.focused_text()
        caret = doc.selected_range()
        if text is None or caret is None:
            return False
        start = relocate(text, entry)
        if start is None:
            logger.debug("Relocation of %r failed, using keystrokes", entry.original)
            return False

        rng = TextRange(start, len(entry.original))
        new_caret = restored_caret(caret.location, start, len(entry.original), len(entry.converted))
        if doc.replace(rng, entry.converted):
            doc.set_selected_range(TextRange(max(0, new_caret), 0))
            self._finish(ConversionEventData(entry.original, entry.converted, "document"))
            return True

        # Field refused the write: select the word and type over it
        if not doc.set_selected_range(rng):
            return False
        logger.debug("Document replace refused, typing over selection")

        def type_over() -> None:
            self.injector.type_text(entry.converted)
            doc.set_selected_range(TextRange(max(0, new_caret), 0))
            self._finish(ConversionEventData(entry.original, entry.converted, "document"))

        self.ensure_switch(entry.target, type_over)
        return True

    def _navigate(self, entry: AmbiguousEntry, pending_words: int) -> None:
        steps = max(1, entry.words_ahead + 1) + max(0, pending_words)
        logger.debug("Navigating %d words back to %r", steps, entry.original)
        self.injector.move_caret(Direction.LEFT, steps, by_word=True)
        self.injector.move_caret(Direction.RIGHT, 1, extend_selection=True, by_word=True)
        self.injector.delete_backward(1)

        def type_and_return() -> None:
            self.injector.type_text(entry.converted)
            self.injector.move_caret(Direction.RIGHT, steps, by_word=True)
            self._finish(ConversionEventData(entry.original, entry.converted, "navigate"))

        self.ensure_switch(entry.target, type_and_return)
