"""Engine — owns the key-event hot path.

``handle_key`` is called by the input source for every key event and must
return quickly with PASS or SUPPRESS.  Word decisions are made inline; all
keystroke synthesis, delayed ambiguity capture and hotkey actions run on
the scheduler.  Tokenizer, ambiguity tracker and last-word state are
guarded by one lock shared by both contexts.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable

import switchback.log  # registers TRACE level and logger.trace()
from switchback.core import script
from switchback.core.ambiguity import (
    AmbiguityTracker, AmbiguousEntry, DocumentAnchor, anchors_for, locate_before_caret,
)
from switchback.core.decision import DecisionEngine
from switchback.core.events import EventType, KeyEvent, WordEventData
from switchback.core.executor import CorrectionExecutor, RetypePlan
from switchback.core.scheduler import CancelToken
from switchback.core.synthesis import SynthesisGuard
from switchback.core.tokenizer import TokenKind, WordTokenizer
from switchback.core.types import ConversionCandidate, Decision, LanguagePrefix
from switchback.hotkeys import HotkeyAction, HotkeyMap
from switchback.input.key_mapper import DELETE_KEYS, MOUSE_BUTTONS, NAVIGATION_KEYS

if TYPE_CHECKING:
    from switchback.core.event_bus import EventBus
    from switchback.intelligence.spell_oracle import ISpellOracle
    from switchback.platform.document import IAccessibleDocument
    from switchback.platform.layout_switch import ILayoutSwitch
    from switchback.platform.text_injector import ITextInjector

logger = logging.getLogger(__name__)


class KeyVerdict(Enum):
    PASS = "pass"
    SUPPRESS = "suppress"


@dataclass
class LastWord:
    """The most recently completed word as it now reads in the document."""
    text: str
    language: LanguagePrefix
    words_since: int = 0


DEFAULT_TIMINGS = {
    'capture_delay': 0.05,
    'correction_delay': 0.05,
    'hotkey_delay': 0.1,
    'switch_poll_interval': 0.05,
    'switch_max_attempts': 12,
    'ambiguity_max_age': 0.0,
}


class Engine:
    def __init__(
        self,
        oracle: "ISpellOracle",
        layout: "ILayoutSwitch",
        injector: "ITextInjector",
        scheduler,
        document: "IAccessibleDocument | None" = None,
        hotkeys: HotkeyMap | None = None,
        event_bus: "EventBus | None" = None,
        config: dict | None = None,
        debug: bool = False,
    ):
        cfg = dict(DEFAULT_TIMINGS)
        cfg.update({k: v for k, v in (config or {}).items() if k in DEFAULT_TIMINGS})
        self.config = cfg
        self.debug = debug
        self.enabled = bool((config or {}).get('enabled', True))

        self.layout = layout
        self.injector = injector
        self.scheduler = scheduler
        self.document = document
        self.hotkeys = hotkeys or HotkeyMap()
        self.event_bus = event_bus

        self.tokenizer = WordTokenizer()
        self.decision = DecisionEngine(oracle)
        self.tracker = AmbiguityTracker()
        self.guard = SynthesisGuard(replay=self._replay)
        self.token = CancelToken()
        self.executor = CorrectionExecutor(
            injector=injector,
            layout=layout,
            scheduler=scheduler,
            guard=self.guard,
            document=document,
            event_bus=event_bus,
            token=self.token,
            correction_delay=cfg['correction_delay'],
            switch_poll_interval=cfg['switch_poll_interval'],
            switch_max_attempts=cfg['switch_max_attempts'],
        )

        # Re-decodes a queued event under the layout active at replay time
        self.redecode: Callable[[KeyEvent], KeyEvent] | None = None

        self._lock = threading.RLock()
        self._last_word: LastWord | None = None
        self._boundaries = 0
        self._stopped = False

    # ------------------------------------------------------------------
    # Hot path
    # ------------------------------------------------------------------

    def handle_key(self, event: KeyEvent) -> KeyVerdict:
        """Decide whether *event* reaches the application."""
        if event.synthetic or self._stopped:
            return KeyVerdict.PASS
        with self._lock:
            # Checked under the lock: hotkey actions begin synthesis while holding it
            if self.guard.capture(event):
                return KeyVerdict.SUPPRESS
            try:
                return self._process(event)
            except Exception:
                logger.exception("Key handling failed for code=%d", event.code)
                return KeyVerdict.PASS

    def _replay(self, event: KeyEvent) -> None:
        if self._stopped:
            return
        if self.redecode is not None and event.is_down:
            event = self.redecode(event)
        logger.trace("replay code=%d char=%r", event.code, event.char)  # type: ignore[attr-defined]
        with self._lock:
            verdict = self._process(event)
        if verdict is KeyVerdict.PASS and event.forward:
            self.injector.forward(event)

    def _process(self, event: KeyEvent) -> KeyVerdict:
        if not event.is_down:
            return KeyVerdict.PASS

        action = self.hotkeys.match(event.code, event.modifiers)
        if action is not None:
            if event.value == 1:
                self._on_hotkey(action)
            return KeyVerdict.SUPPRESS

        if not self.enabled:
            return KeyVerdict.PASS

        mods = event.modifiers
        if event.code in NAVIGATION_KEYS or event.code in MOUSE_BUTTONS:
            # Caret moved: the buffer no longer describes the text before it
            self.tokenizer.reset()
            return KeyVerdict.PASS
        if 'ctrl' in mods or 'meta' in mods:
            return KeyVerdict.PASS
        if event.code in DELETE_KEYS:
            if 'alt' in mods:
                self.tokenizer.clear_word()
            else:
                self.tokenizer.remove_last()
            return KeyVerdict.PASS
        if 'alt' in mods or not event.char:
            return KeyVerdict.PASS

        self._consume(event.char)
        return KeyVerdict.PASS

    def _consume(self, ch: str) -> None:
        active = self.layout.current_language()
        token = self.tokenizer.consume(ch, latin_active=active is LanguagePrefix.EN)
        if token.kind is TokenKind.CONTINUE:
            return
        last = None
        if token.kind is TokenKind.WORD_COMPLETED:
            last = self._on_word(token.word, active, token.preserve_boundary)
        self._age()
        if last is not None:
            self._last_word = last

    def _age(self) -> None:
        self._boundaries += 1
        self.tracker.age_all()
        if self._last_word is not None:
            self._last_word.words_since += 1

    # ------------------------------------------------------------------
    # Word decisions
    # ------------------------------------------------------------------

    def _on_word(self, word: str, active: LanguagePrefix, preserve_boundary: bool) -> LastWord:
        core, _ = script.split_trailing_mapped(word)
        trailing = word[len(core):]
        try:
            verdict = self.decision.decide(core, active)
        except Exception:
            logger.exception("Decision failed for %r", core)
            return LastWord(core, active)

        logger.debug("Word %r (%s): %s, %s", word, active.value, verdict.decision.name, verdict.reason)
        if self.event_bus is not None:
            self.event_bus.emit(EventType.WORD_COMPLETED,
                                WordEventData(word, active.value, verdict.decision.name, verdict.reason))

        cand = verdict.candidate
        if verdict.decision is Decision.CONVERT_NOW and cand is not None:
            if not self.guard.begin():
                return LastWord(core, active)
            self.executor.retype(RetypePlan(
                original=word,
                text=cand.converted + trailing,
                delete_count=len(word),
                target=cand.target,
                around_boundary=preserve_boundary,
            ))
            return LastWord(cand.converted, cand.target)

        if verdict.decision is Decision.DEFER and cand is not None:
            seen = self._boundaries
            self.scheduler.call_later(self.config['capture_delay'],
                                      lambda: self._capture(cand, seen), self.token)
        return LastWord(core, active)

    def _build_entry(self, cand: ConversionCandidate, words_ahead: int = 0) -> AmbiguousEntry:
        """Entry for *cand*, anchored in the focused document when it can be found."""
        entry = AmbiguousEntry(cand.original, cand.converted, cand.target, words_ahead=words_ahead)
        if self.document is None:
            return entry
        try:
            text = self.document.focused_text()
            caret = self.document.selected_range()
            focus = self.document.focus_token()
        except Exception:
            logger.exception("Reading the focused document failed")
            return entry
        if text is None or caret is None:
            return entry
        start = locate_before_caret(text, cand.original, caret.location)
        if start is None:
            return entry
        entry.anchor_before, entry.anchor_after = anchors_for(text, start, len(cand.original))
        entry.document_anchor = DocumentAnchor(focus, start)
        return entry

    def _capture(self, cand: ConversionCandidate, seen: int) -> None:
        if self.guard.busy:
            self.scheduler.call_later(self.config['capture_delay'],
                                      lambda: self._capture(cand, seen), self.token)
            return
        with self._lock:
            # Boundaries typed after the word's own one, before this capture ran
            entry = self._build_entry(cand, words_ahead=max(0, self._boundaries - seen - 1))
            self.tracker.push(entry)
        logger.debug("Ambiguous %r/%r captured (%s)", cand.original, cand.converted,
                     "blind" if entry.is_blind else f"at {entry.document_anchor.start}")
        if self.event_bus is not None:
            self.event_bus.emit(EventType.AMBIGUITY_CAPTURED, entry)

    # ------------------------------------------------------------------
    # Hotkeys
    # ------------------------------------------------------------------

    def _on_hotkey(self, action: HotkeyAction) -> None:
        logger.debug("Hotkey: %s", action.name)
        if action is HotkeyAction.TOGGLE:
            self.set_enabled(not self.enabled)
        elif action is HotkeyAction.FIX_AMBIGUOUS:
            self.scheduler.call_later(self.config['hotkey_delay'], self.fix_last_ambiguous, self.token)
        elif action is HotkeyAction.FORCE_CONVERT:
            self.scheduler.call_later(0.0, self.force_convert, self.token)

    def set_enabled(self, enabled: bool) -> None:
        with self._lock:
            self.enabled = enabled
            self.tokenizer.reset()
        logger.info("Conversion %s", "enabled" if enabled else "disabled")
        if self.event_bus is not None:
            self.event_bus.emit(EventType.CONVERSION_TOGGLED, enabled)

    def fix_last_ambiguous(self) -> bool:
        """Apply the most recent ambiguous entry.  Returns False if there is none."""
        if self.guard.busy:
            self.scheduler.call_later(self.config['hotkey_delay'], self.fix_last_ambiguous, self.token)
            return True
        with self._lock:
            entry = self.tracker.pop_most_recent(self.config['ambiguity_max_age'])
            if entry is None:
                logger.info("No ambiguous word to fix")
                return False
            pending = 1 if len(self.tokenizer) else 0
            if not self.guard.begin():
                self.tracker.push(entry)
                return False
        self.executor.apply(entry, pending_words=pending)
        return True

    def force_convert(self) -> bool:
        """Convert the word being typed, or the last completed word, regardless of spelling."""
        if self.guard.busy:
            self.scheduler.call_later(self.config['correction_delay'], self.force_convert, self.token)
            return True
        with self._lock:
            active = self.layout.current_language()
            buffered = self.tokenizer.buffer
            if buffered:
                cand = self.decision.force(buffered, active)
                if not self.guard.begin():
                    return False
                self.tokenizer.clear_word()
                self._last_word = LastWord(cand.converted, cand.target)
                plan = RetypePlan(buffered, cand.converted, len(buffered), cand.target, is_auto=False)
                entry = None
            else:
                last = self._last_word
                if last is None:
                    logger.info("Nothing to force-convert")
                    return False
                cand = self.decision.force(last.text, last.language)
                entry = self._build_entry(cand, words_ahead=last.words_since)
                if not self.guard.begin():
                    return False
                self._last_word = LastWord(cand.converted, cand.target, last.words_since)
                plan = None
        if plan is not None:
            self.executor.retype(plan)
        else:
            self.executor.apply(entry)
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reconfigure(self, config: dict) -> None:
        """Apply reloaded timings, hotkeys and the enabled flag."""
        with self._lock:
            self.config.update({k: v for k, v in config.items() if k in DEFAULT_TIMINGS})
            self.hotkeys = HotkeyMap.from_config(config)
            self.executor.correction_delay = self.config['correction_delay']
            self.executor.switch_poll_interval = self.config['switch_poll_interval']
            self.executor.switch_max_attempts = self.config['switch_max_attempts']
        if 'enabled' in config and bool(config['enabled']) != self.enabled:
            self.set_enabled(bool(config['enabled']))

    def stop(self) -> list[KeyEvent]:
        """Cancel pending work; queued input is forwarded unprocessed.

        Returns the events that were still queued.
        """
        self._stopped = True
        self.token.cancel()
        queued = self.guard.abort()
        for event in queued:
            if event.forward:
                try:
                    self.injector.forward(event)
                except Exception:
                    logger.exception("Forwarding queued event failed")
        return queued
