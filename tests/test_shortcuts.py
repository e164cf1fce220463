import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from markpad.editing.formatting import FORMAT_SPECS
from markpad.editing.shortcuts import (
    DEFAULT_SHORTCUTS,
    Shortcut,
    format_shortcut,
    get_shortcut_map,
    match_shortcut,
)


def test_match_is_case_insensitive():
    assert match_shortcut('B', ctrl=True).command == 'bold'
    assert match_shortcut('i', ctrl=True).command == 'italic'


def test_meta_counts_as_ctrl():
    assert match_shortcut('k', meta=True).command == 'link'


def test_modifiers_must_match_exactly():
    assert match_shortcut('b') is None
    assert match_shortcut('b', ctrl=True, alt=True) is None
    assert match_shortcut('z', ctrl=True).command == 'undo'
    assert match_shortcut('z', ctrl=True, shift=True).command == 'redo'


def test_custom_table():
    table = (Shortcut('e', 'code', 'Code', ctrl=True),)
    assert match_shortcut('e', ctrl=True, shortcuts=table).command == 'code'
    assert match_shortcut('b', ctrl=True, shortcuts=table) is None


def test_format_shortcut():
    bold = match_shortcut('b', ctrl=True)
    redo = match_shortcut('z', ctrl=True, shift=True)
    assert format_shortcut(bold) == 'Ctrl+B'
    assert format_shortcut(bold, mac=True) == '⌘+B'
    assert format_shortcut(redo) == 'Ctrl+⇧+Z'
    assert format_shortcut(Shortcut('Enter', 'x', 'X', alt=True)) == 'Alt+Enter'


def test_shortcut_map():
    shortcuts = get_shortcut_map()
    assert shortcuts['Bold'] == 'Ctrl+B'
    assert shortcuts['Heading 3'] == 'Ctrl+3'
    assert shortcuts['Redo'] == 'Ctrl+⇧+Z'
    assert len(shortcuts) == len(DEFAULT_SHORTCUTS)


def test_format_commands_exist():
    for shortcut in DEFAULT_SHORTCUTS:
        assert shortcut.command in FORMAT_SPECS or shortcut.command in ('undo', 'redo')
