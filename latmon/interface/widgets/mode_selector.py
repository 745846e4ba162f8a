"""Mutually exclusive mode selector built from buttons."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from textual.containers import Container
from textual.message import Message
from textual.widgets import Button

from latmon.models import Mode

if TYPE_CHECKING:
    from textual.app import ComposeResult

logger = logging.getLogger(__name__)


class ModeSelector(Container):
    """One button per :class:`~latmon.models.Mode`; exactly one is active.

    Pressing a button, including the active one, posts
    :class:`ModeSelector.SelectionChanged`.
    """

    DEFAULT_CSS = """
    ModeSelector {
        height: auto;
        min-height: 3;
        layout: horizontal;
        border-bottom: solid $primary;
    }

    ModeSelector Button {
        margin: 0 1;
        min-width: 14;
    }

    ModeSelector Button.-active {
        background: $primary;
        color: $text;
        text-style: bold;
    }
    """

    class SelectionChanged(Message):
        """Message posted when a mode button is pressed."""

        def __init__(self, mode: Mode) -> None:
            super().__init__()
            self.mode = mode

    def __init__(
        self,
        initial_selection: Mode = Mode.FINAL,
        *args: Any,
        **kwargs: Any,
    ) -> None:
        """Initialize mode selector.

        Args:
            initial_selection: Mode shown as active at startup
        """
        super().__init__(*args, **kwargs)
        self._buttons: dict[Mode, Button] = {}
        self._active = initial_selection

    def compose(self) -> ComposeResult:
        """Compose the selector buttons."""
        for mode in Mode:
            button = Button(
                mode.label,
                id=f"btn-{mode.value}",
                variant="primary" if mode is self._active else "default",
            )
            self._buttons[mode] = button
            yield button

    def on_mount(self) -> None:
        """Highlight the initial mode."""
        self._set_active(self._active)

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Activate the pressed mode and notify the parent."""
        button_id = event.button.id
        if not button_id or not button_id.startswith("btn-"):
            return
        event.stop()
        mode = Mode(button_id[4:])
        self._set_active(mode)
        self.post_message(self.SelectionChanged(mode))

    def _set_active(self, mode: Mode) -> None:
        for opt, button in self._buttons.items():
            if opt is mode:
                button.variant = "primary"
                button.add_class("-active")
            else:
                button.variant = "default"
                button.remove_class("-active")
        self._active = mode

    @property
    def active(self) -> Mode:
        """Currently highlighted mode."""
        return self._active

    @active.setter
    def active(self, value: Mode) -> None:
        self._set_active(value)
