from __future__ import annotations

import logging
from typing import List, Optional

import rumps

try:
    import AppKit
except ImportError:  # pragma: no cover - macOS only integration
    AppKit = None

if __package__ in (None, ""):
    # Handle execution as a top-level script inside the py2app bundle.
    from claude_tokens.config import TokensConfig, load_config
    from claude_tokens.controller import ReconciliationController
    from claude_tokens.menu import MenuEntry, build_menu, status_title
    from claude_tokens.models import RefreshTrigger, TokenSummary
else:
    from .config import TokensConfig, load_config
    from .controller import ReconciliationController
    from .menu import MenuEntry, build_menu, status_title
    from .models import RefreshTrigger, TokenSummary

logger = logging.getLogger("claude_tokens.app")

# How often the main run loop drains the controller channel.
DRAIN_INTERVAL = 0.25


class ClaudeTokensApp(rumps.App):
    def __init__(self, config: Optional[TokensConfig] = None):
        self.config = config or load_config()
        self.controller = ReconciliationController(self.config)

        super().__init__(status_title(None), quit_button=None)

        self.refresh_item = rumps.MenuItem("Refresh", callback=self.refresh_now)
        self.quit_item = rumps.MenuItem("Quit", callback=self.quit)

        self.controller.subscribe_summary(self._render_menu)
        self.controller.subscribe_percent(self._render_title)

        # rumps timers fire on the main run loop, which makes it the consumer thread.
        self.drain_timer = rumps.Timer(self._drain_tick, DRAIN_INTERVAL)
        self._initial_timer = rumps.Timer(self._initial_refresh, 0.1)
        self._initial_timer.start()

    # ------------------------------------------------------------------
    # Controller plumbing
    # ------------------------------------------------------------------
    def _initial_refresh(self, timer: rumps.Timer) -> None:
        timer.stop()
        self.controller.refresh_now(RefreshTrigger.STARTUP)
        self.controller.start()
        self.drain_timer.start()

    def _drain_tick(self, _):
        self.controller.drain()

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def _render_title(self, percent: int) -> None:
        self.title = status_title(percent)

    def _render_menu(self, summary: TokenSummary) -> None:
        self.menu.clear()
        for entry in build_menu(summary, self.controller.last_known_usage):
            self.menu.add(_to_menu_item(entry))
        self.menu.add(rumps.separator)
        self.menu.add(self.refresh_item)
        self.menu.add(self.quit_item)

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------
    def refresh_now(self, _):
        self.controller.request_refresh()

    def quit(self, _):
        logger.info("shutting down")
        self.drain_timer.stop()
        self.controller.stop()
        rumps.quit_application()


def _to_menu_item(entry: MenuEntry):
    if entry is None:
        return rumps.separator
    # Items without a callback render greyed out, which is what the stat lines want.
    item = rumps.MenuItem(entry.title)
    children: List[rumps.MenuItem] = [_to_menu_item(child) for child in entry.children]
    for child in children:
        item.add(child)
    return item


def main() -> None:
    if AppKit is not None:
        ns_app = AppKit.NSApplication.sharedApplication()
        ns_app.setActivationPolicy_(AppKit.NSApplicationActivationPolicyAccessory)

    app = ClaudeTokensApp()
    app.run()


if __name__ == "__main__":
    main()


__all__ = ["main", "ClaudeTokensApp"]
