"""Keyboard shortcut table and dispatcher.

Shortcuts form an ordered table that is checked for conflicts when the
dispatcher is built. A key event runs the first entry whose chord matches it
exactly: the key compared case-insensitively and every modifier flag equal.
Events aimed at text-entry controls never trigger anything.
"""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import StrEnum

import structlog

from content_mapper.exceptions import ShortcutConflictError, ValidationError

logger = structlog.get_logger(__name__)

Action = Callable[[], None]

TEXT_ENTRY_TAGS = frozenset({"INPUT", "TEXTAREA"})

_MODIFIER_ALIASES = {
    "ctrl": "ctrl",
    "control": "ctrl",
    "cmd": "meta",
    "meta": "meta",
    "alt": "alt",
    "option": "alt",
    "shift": "shift",
}


class ShortcutCategory(StrEnum):
    GENERAL = "general"
    NAVIGATION = "navigation"
    EDITING = "editing"
    EXPORT = "export"


def _noop() -> None:
    return None


@dataclass
class Shortcut:
    """One entry of the shortcut table."""

    key: str
    action: Action
    description: str
    category: ShortcutCategory = ShortcutCategory.GENERAL
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    enabled: bool = True

    @property
    def chord(self) -> tuple[str, bool, bool, bool]:
        return (self.key.lower(), self.ctrl, self.alt, self.shift)


@dataclass
class FocusTarget:
    """The element a key event is aimed at."""

    tag_name: str = "BODY"
    is_content_editable: bool = False

    @property
    def is_text_entry(self) -> bool:
        return self.tag_name.upper() in TEXT_ENTRY_TAGS or self.is_content_editable


@dataclass
class KeyEvent:
    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    meta: bool = False
    target: FocusTarget | None = None


def format_shortcut(shortcut: Shortcut) -> str:
    """Display form of a chord, e.g. ``Ctrl+Shift+C``."""
    parts = []
    if shortcut.ctrl:
        parts.append("Ctrl")
    if shortcut.alt:
        parts.append("Alt")
    if shortcut.shift:
        parts.append("Shift")
    parts.append(shortcut.key.upper())
    return "+".join(parts)


def parse_chord(text: str) -> KeyEvent:
    """
    Parse a chord such as ``ctrl+shift+c`` or ``j`` into a key event.

    Raises:
        ValidationError: If the chord is empty or names an unknown modifier
    """
    text = text.strip()
    if not text:
        raise ValidationError("Empty key chord", field="chord")

    if text == "+":
        modifiers, key = [], "+"
    elif text.endswith("++"):
        modifiers, key = text[:-2].split("+"), "+"
    else:
        *modifiers, key = text.split("+")
    if not key:
        raise ValidationError(f"Key chord '{text}' has no key", field="chord")

    flags = {"ctrl": False, "alt": False, "shift": False, "meta": False}
    for modifier in modifiers:
        name = _MODIFIER_ALIASES.get(modifier.strip().lower())
        if name is None:
            raise ValidationError(f"Unknown modifier '{modifier}' in '{text}'", field="chord")
        flags[name] = True

    # Multi-character names ("Enter") are matched case-insensitively anyway
    return KeyEvent(key=key, **flags)


def matches(shortcut: Shortcut, event: KeyEvent) -> bool:
    """Exact chord match; ctrl is satisfied by either ctrl or meta."""
    if event.key.lower() != shortcut.key.lower():
        return False
    ctrl_pressed = event.ctrl or event.meta
    return (
        ctrl_pressed == shortcut.ctrl
        and event.alt == shortcut.alt
        and event.shift == shortcut.shift
    )


class ShortcutDispatcher:
    """Runs the first matching shortcut for each key event."""

    def __init__(self, shortcuts: list[Shortcut], enabled: bool = True):
        self._check_conflicts(shortcuts)
        self.shortcuts = list(shortcuts)
        self.enabled = enabled

    @staticmethod
    def _check_conflicts(shortcuts: list[Shortcut]) -> None:
        seen: dict[tuple[str, bool, bool, bool], Shortcut] = {}
        for shortcut in shortcuts:
            if not shortcut.enabled:
                continue
            existing = seen.get(shortcut.chord)
            if existing is not None:
                raise ShortcutConflictError(
                    format_shortcut(shortcut), [existing.description, shortcut.description]
                )
            seen[shortcut.chord] = shortcut

    def handle(self, event: KeyEvent) -> bool:
        """
        Dispatch a key event.

        Returns:
            True if a shortcut ran (the event is consumed), False otherwise
        """
        if not self.enabled:
            return False
        if event.target is not None and event.target.is_text_entry:
            return False

        for shortcut in self.shortcuts:
            if shortcut.enabled and matches(shortcut, event):
                logger.debug("shortcut_triggered", chord=format_shortcut(shortcut))
                shortcut.action()
                return True
        return False

    def by_category(self) -> dict[ShortcutCategory, list[Shortcut]]:
        grouped: dict[ShortcutCategory, list[Shortcut]] = {}
        for shortcut in self.shortcuts:
            grouped.setdefault(shortcut.category, []).append(shortcut)
        return grouped


def default_shortcuts(actions: Mapping[str, Action] | None = None) -> list[Shortcut]:
    """
    The standard shortcut table.

    Args:
        actions: Callables keyed by action name (analyze, new_analysis,
            search, toggle_help, next_section, prev_section, toggle_history,
            toggle_settings, copy, export). Missing actions do nothing.
    """
    actions = actions or {}

    def act(name: str) -> Action:
        return actions.get(name, _noop)

    general = ShortcutCategory.GENERAL
    navigation = ShortcutCategory.NAVIGATION
    return [
        Shortcut("Enter", act("analyze"), "Start analysis", general, ctrl=True),
        Shortcut("n", act("new_analysis"), "New analysis", general, ctrl=True),
        Shortcut("k", act("search"), "Search / Command palette", general, ctrl=True),
        Shortcut("/", act("toggle_help"), "Show keyboard shortcuts", general),
        Shortcut("j", act("next_section"), "Next section", navigation),
        Shortcut("k", act("prev_section"), "Previous section", navigation),
        Shortcut("h", act("toggle_history"), "Toggle history panel", navigation, ctrl=True),
        Shortcut(",", act("toggle_settings"), "Open settings", navigation, ctrl=True),
        Shortcut(
            "c",
            act("copy"),
            "Copy current section content",
            ShortcutCategory.EDITING,
            ctrl=True,
            shift=True,
        ),
        Shortcut("e", act("export"), "Export analysis", ShortcutCategory.EXPORT, ctrl=True),
        Shortcut("s", act("export"), "Save / Export", ShortcutCategory.EXPORT, ctrl=True),
    ]
