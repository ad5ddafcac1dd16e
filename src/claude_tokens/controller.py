from __future__ import annotations

import logging
import os
import queue
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Union

from .config import TokensConfig
from .loader import SnapshotLoader
from .models import RefreshTrigger, TokenSummary, UsageInfo
from .remote import RemoteUsagePoller
from .summary import SummaryBuilder
from .watcher import ChangeDetector

DEBUG_MODE = os.getenv("CLAUDE_TOKENS_DEBUG")
package_logger = logging.getLogger("claude_tokens")
if not package_logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("[claude-tokens] %(asctime)s %(levelname)s %(message)s"))
    package_logger.addHandler(handler)
    package_logger.propagate = False
package_logger.setLevel(logging.DEBUG if DEBUG_MODE else logging.INFO)

logger = logging.getLogger(__name__)

CHANNEL_SIZE = 64

SummaryCallback = Callable[[TokenSummary], None]
PercentCallback = Callable[[int], None]


class ControllerState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


@dataclass(frozen=True)
class RemoteUpdate:
    usage: UsageInfo


Message = Union[RefreshTrigger, RemoteUpdate]


class ReconciliationController:
    """Serialises every refresh trigger into one rebuild on the consumer thread.

    Background producers (the change detector, the remote poll thread, manual
    requests) only ever put messages on a bounded channel. :meth:`drain` is the
    single consumer: the first thread that calls it (or :meth:`refresh_now`)
    becomes the owner, and only that thread writes ``summary`` and
    ``last_known_usage``. In the menu-bar app the owner is the main run loop.
    """

    def __init__(
        self,
        config: TokensConfig,
        loader: Optional[SnapshotLoader] = None,
        builder: Optional[SummaryBuilder] = None,
        poller: Optional[RemoteUsagePoller] = None,
    ):
        self.config = config
        self.loader = loader or SnapshotLoader(
            config.stats_cache_path, config.claude_config_path
        )
        self.builder = builder or SummaryBuilder(
            pricing=config.pricing, strategy=config.today_cost_strategy
        )
        self.credential = config.api_key or None
        self._owns_poller = poller is None and self.credential is not None
        self.poller = poller
        if self.poller is None and self.credential is not None:
            self.poller = RemoteUsagePoller()

        self.state = ControllerState.IDLE
        self.summary: Optional[TokenSummary] = None
        self.last_known_usage: Optional[UsageInfo] = None
        self._last_percent: Optional[int] = None

        self._channel: "queue.Queue[Message]" = queue.Queue(maxsize=CHANNEL_SIZE)
        self._summary_subscribers: List[SummaryCallback] = []
        self._percent_subscribers: List[PercentCallback] = []
        self._consumer_thread: Optional[threading.Thread] = None

        self.detector = ChangeDetector(
            [config.stats_cache_path, config.claude_config_path],
            self.post,
            debounce=config.debounce_seconds,
            fallback_interval=config.fallback_poll_seconds,
        )
        self._poll_stop = threading.Event()
        self._poll_thread: Optional[threading.Thread] = None
        self._manual_poll: Optional[threading.Thread] = None
        self._poll_lock = threading.Lock()
        self._started = False

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------
    def subscribe_summary(self, callback: SummaryCallback) -> Callable[[], None]:
        self._summary_subscribers.append(callback)
        return lambda: _discard(self._summary_subscribers, callback)

    def subscribe_percent(self, callback: PercentCallback) -> Callable[[], None]:
        self._percent_subscribers.append(callback)
        return lambda: _discard(self._percent_subscribers, callback)

    @property
    def remaining_percent(self) -> Optional[int]:
        return self._last_percent

    # ------------------------------------------------------------------
    # Producers (any thread)
    # ------------------------------------------------------------------
    def post(self, trigger: RefreshTrigger) -> None:
        self._enqueue(trigger)

    def request_refresh(self) -> None:
        self._enqueue(RefreshTrigger.MANUAL)
        if not self.credential or self.poller is None or self._poll_stop.is_set():
            return
        if self._manual_poll is not None and self._manual_poll.is_alive():
            logger.debug("manual usage poll already running")
            return
        self._manual_poll = threading.Thread(
            target=self._run_remote_poll, name="usage-poll-manual", daemon=True
        )
        self._manual_poll.start()

    def _enqueue(self, message: Message) -> None:
        try:
            self._channel.put_nowait(message)
        except queue.Full:
            # Queued messages already force a rebuild; usage returns on the next poll.
            logger.debug("refresh channel full; dropping %r", message)

    # ------------------------------------------------------------------
    # Consumer (owner thread)
    # ------------------------------------------------------------------
    def drain(self) -> Optional[TokenSummary]:
        """Apply everything queued and rebuild once. ``None`` if nothing was queued."""

        self._claim_consumer()
        messages: List[Message] = []
        while True:
            try:
                messages.append(self._channel.get_nowait())
            except queue.Empty:
                break
        if not messages:
            return None

        triggers = [message for message in messages if isinstance(message, RefreshTrigger)]
        for message in messages:
            if isinstance(message, RemoteUpdate):
                self._apply_usage(message.usage)
                triggers.append(RefreshTrigger.REMOTE_POLL)
        logger.debug(
            "draining %s message(s): %s",
            len(messages),
            ", ".join(sorted({trigger.value for trigger in triggers})),
        )
        return self.refresh_now(triggers[0] if triggers else RefreshTrigger.MANUAL)

    def refresh_now(self, trigger: RefreshTrigger = RefreshTrigger.MANUAL) -> TokenSummary:
        self._claim_consumer()
        self.state = ControllerState.REFRESHING
        try:
            stats = self.loader.load_stats()
            projects = self.loader.load_project_configs()
            summary = self.builder.build(stats, projects)
        finally:
            self.state = ControllerState.IDLE
        self.summary = summary
        logger.debug(
            "summary rebuilt (%s): %s models, %s projects",
            trigger.value,
            len(summary.models),
            len(summary.projects),
        )
        for callback in list(self._summary_subscribers):
            try:
                callback(summary)
            except Exception:
                logger.exception("summary subscriber failed")
        return summary

    def _apply_usage(self, usage: UsageInfo) -> None:
        self.last_known_usage = usage
        percent = usage.remaining_percent_rounded
        if percent == self._last_percent:
            return
        self._last_percent = percent
        for callback in list(self._percent_subscribers):
            try:
                callback(percent)
            except Exception:
                logger.exception("percent subscriber failed")

    def _claim_consumer(self) -> None:
        current = threading.current_thread()
        if self._consumer_thread is None:
            self._consumer_thread = current
        elif self._consumer_thread is not current:
            raise RuntimeError(
                f"controller state is owned by thread {self._consumer_thread.name!r}, "
                f"not {current.name!r}"
            )

    # ------------------------------------------------------------------
    # Remote polling
    # ------------------------------------------------------------------
    def _poll_loop(self) -> None:
        interval = self.config.effective_poll_interval
        while not self._poll_stop.is_set():
            self._run_remote_poll()
            if self._poll_stop.wait(interval):
                return

    def _run_remote_poll(self) -> None:
        if self.poller is None or not self.credential:
            return
        if not self._poll_lock.acquire(blocking=False):
            logger.debug("usage poll already in flight")
            return
        try:
            usage = self.poller.poll(self.credential)
        except Exception:
            logger.exception("usage poll crashed")
            usage = None
        finally:
            self._poll_lock.release()
        if usage is not None:
            self._enqueue(RemoteUpdate(usage))

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._enqueue(RefreshTrigger.STARTUP)
        self.detector.start()
        if self.credential and self.poller is not None:
            self._poll_stop.clear()
            self._poll_thread = threading.Thread(
                target=self._poll_loop, name="usage-poll", daemon=True
            )
            self._poll_thread.start()
            logger.info(
                "remote usage polling every %.0fs", self.config.effective_poll_interval
            )
        else:
            logger.info("no API key configured; remote usage polling disabled")

    def stop(self) -> None:
        if not self._started:
            return
        self._started = False
        self.detector.stop()
        self._poll_stop.set()
        # Both poll threads finish before the poller they share is closed.
        for thread in (self._poll_thread, self._manual_poll):
            if thread is not None:
                thread.join(timeout=15.0)
        self._poll_thread = self._manual_poll = None
        if self._owns_poller and self.poller is not None:
            self.poller.close()
            self.poller = None

    def __enter__(self) -> "ReconciliationController":
        self.start()
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()


def _discard(items: list, item: object) -> None:
    if item in items:
        items.remove(item)


__all__ = ["ControllerState", "ReconciliationController", "RemoteUpdate"]
