"""Queue of tones and utterances, played once per edit cycle.

The editor enqueues audio while it handles a key, then calls ``drain()``
exactly once.  ``drain()`` is synchronous: it plays everything queued,
in order, and only then returns, so the next key is never read while
feedback for the previous one is still playing.

Each item moves ``Queued -> Playing -> Finished | Cancelled``.  While an
utterance plays, its voice process sits in the "current" slot, which is
what ``stop()`` and ``enqueue_front()`` terminate.  A tone in the slot
cannot be stopped; it ends on its own.

Playback faults stop at this layer.  A missing sound card turns tones
into no-ops; a voice program that will not start is reported through
``on_error`` and replaced with an error tone.  Nothing is retried:
stale speech is worse than none.
"""

from __future__ import annotations

import collections
import time
from typing import Callable, Optional, Union

from .audio import ERROR_TONE, Audible, Tone, Utterance
from .errors import AudioDeviceError, ProcessSpawnError
from .logging import get_logger, log_context
from .process import TrackedProcess

_log = get_logger("clack.scheduler")


class _PlayingTone:
    """Occupies the current slot while a tone plays; nothing to cancel."""

    __slots__ = ("tone",)

    def __init__(self, tone: Tone) -> None:
        self.tone = tone

    def terminate(self) -> None:
        pass


_Current = Union[TrackedProcess, _PlayingTone]


class SoundManager:
    """Owns the pending queue and the currently playing item.

    Usage::

        sounds = SoundManager()
        sounds.enqueue(Tone(440, 0.2))
        sounds.enqueue(Utterance("row 3"))
        sounds.drain()          # plays both, in order, then returns
    """

    def __init__(self, on_error: Optional[Callable[[Exception], None]] = None) -> None:
        self._queue: collections.deque[Audible] = collections.deque()
        self._current: Optional[_Current] = None
        # Set by the front-end to show speech failures on screen.
        self.on_error = on_error

    # ─── Queue management ─────────────────────────────────────────

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def is_idle(self) -> bool:
        return self._current is None and not self._queue

    def enqueue(self, audible: Audible) -> None:
        """Play *audible* after everything already queued."""
        self._queue.append(audible)

    def enqueue_front(self, audible: Audible) -> None:
        """Interrupt: stop the current item and play *audible* next."""
        self.stop()
        self._queue.appendleft(audible)

    def clear(self) -> None:
        """Drop everything not yet started; the current item is untouched."""
        self._queue.clear()

    def clear_and_enqueue(self, audible: Audible) -> None:
        self.clear()
        self.enqueue(audible)

    def stop(self) -> None:
        """Terminate the current utterance, if one is speaking."""
        current = self._current
        self._current = None
        if current is not None:
            _log.debug("stopping current item")
            current.terminate()

    # ─── Playback ─────────────────────────────────────────────────

    def drain(self) -> None:
        """Play queued items front to back until the queue is empty.

        Items enqueued while draining (by an error callback, say) are
        played by this same call.
        """
        if self._queue:
            _log.debug("draining queue", extra={"context": log_context(pending=len(self._queue))})
        while self._queue:
            self._play(self._queue.popleft())

    def play_and_wait(self, audible: Audible) -> None:
        """Play one item right now, ahead of (and without touching) the queue."""
        self._play(audible)

    def _play(self, audible: Audible) -> None:
        start = time.monotonic()
        try:
            if isinstance(audible, Utterance):
                self._speak(audible)
            elif isinstance(audible, Tone):
                self._sound(audible)
            else:
                raise TypeError(f"not a Tone or Utterance: {audible!r}")
        except AudioDeviceError as exc:
            _log.warning(
                "audio device unavailable, skipping %s: %s", audible.describe(), exc,
            )
        except ProcessSpawnError as exc:
            _log.error(
                "speech process failed to start: %s", exc,
                extra={"context": log_context(text_preview=getattr(audible, "text", ""))},
            )
            self._report(exc)
            self._fallback_tone()
        else:
            _log.debug(
                "played %s", audible.describe(),
                extra={"context": log_context(duration_ms=(time.monotonic() - start) * 1000)},
            )
        finally:
            self._current = None

    def _sound(self, tone: Tone) -> None:
        self._current = _PlayingTone(tone)
        tone.play_and_wait()

    def _speak(self, utterance: Utterance) -> None:
        with utterance.spawned() as handle:
            self._current = handle
            retcode = handle.wait()
            # Negative return code = killed by signal (intentional stop)
            if retcode > 0:
                _log.warning(
                    "speech exited with code %d: %s", retcode,
                    handle.stderr_text() or "no stderr",
                    extra={"context": log_context(text_preview=utterance.text)},
                )

    def _report(self, exc: Exception) -> None:
        if self.on_error is None:
            return
        try:
            self.on_error(exc)
        except Exception:
            _log.exception("error callback failed")

    def _fallback_tone(self) -> None:
        try:
            ERROR_TONE.play_and_wait()
        except AudioDeviceError as exc:
            _log.warning("fallback tone failed: %s", exc)
