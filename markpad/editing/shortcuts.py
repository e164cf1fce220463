from dataclasses import dataclass
from typing import Dict, Iterable, Optional


@dataclass(frozen=True)
class Shortcut:
    """
    A key combination bound to an editor command. command is either a format
    name from FORMAT_SPECS or one of the session commands ('undo', 'redo').
    Ctrl and Cmd (meta) are interchangeable.
    """
    key: str
    command: str
    description: str
    ctrl: bool = False
    shift: bool = False
    alt: bool = False


DEFAULT_SHORTCUTS = (
    Shortcut('b', 'bold', 'Bold', ctrl=True),
    Shortcut('i', 'italic', 'Italic', ctrl=True),
    Shortcut('k', 'link', 'Link', ctrl=True),
    Shortcut('1', 'h1', 'Heading 1', ctrl=True),
    Shortcut('2', 'h2', 'Heading 2', ctrl=True),
    Shortcut('3', 'h3', 'Heading 3', ctrl=True),
    Shortcut('z', 'undo', 'Undo', ctrl=True),
    Shortcut('z', 'redo', 'Redo', ctrl=True, shift=True),
)


def matches_shortcut(shortcut: Shortcut, key: str, ctrl: bool = False, shift: bool = False,
                     alt: bool = False, meta: bool = False) -> bool:
    if shortcut.key.lower() != key.lower():
        return False
    return (shortcut.ctrl == (ctrl or meta)
            and shortcut.shift == shift
            and shortcut.alt == alt)


def match_shortcut(key: str, ctrl: bool = False, shift: bool = False, alt: bool = False,
                   meta: bool = False, shortcuts: Iterable[Shortcut] = DEFAULT_SHORTCUTS) -> Optional[Shortcut]:
    """First shortcut matching the key event, or None."""
    for shortcut in shortcuts:
        if matches_shortcut(shortcut, key, ctrl, shift, alt, meta):
            return shortcut
    return None


def format_shortcut(shortcut: Shortcut, mac: bool = False) -> str:
    parts = []
    if shortcut.ctrl:
        parts.append('⌘' if mac else 'Ctrl')
    if shortcut.shift:
        parts.append('⇧')
    if shortcut.alt:
        parts.append('Alt')
    parts.append(shortcut.key.upper() if len(shortcut.key) == 1 else shortcut.key)
    return '+'.join(parts)


def get_shortcut_map(shortcuts: Iterable[Shortcut] = DEFAULT_SHORTCUTS, mac: bool = False) -> Dict[str, str]:
    """Description -> display string, for help dialogs."""
    return {s.description: format_shortcut(s, mac) for s in shortcuts}
