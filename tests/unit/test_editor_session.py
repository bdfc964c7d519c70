"""Tests for EditorSession input handling, sync and edit operations."""

from unittest.mock import patch

import pytest

from app.editor.cursor import Cursor, cursor_to_offset, offset_to_cursor
from app.editor.exceptions import InvalidEditError, RoundTripError
from app.editor.parser import parse
from app.editor.session import EditorSession
from app.editor.tree import Strong

DOC = "Hello **world**\n\n| a | b |\n|---|---|\n| 1 | 2 |\n\n$$x$$"


class TestMount:
    def test_tree_matches_canonical(self) -> None:
        session = EditorSession(DOC)
        assert session.last_canonical == DOC
        assert len(session.tree.blocks) == 3

    def test_round_trip_violation_raises(self) -> None:
        with patch("app.editor.session.serialize", return_value="other"):
            with pytest.raises(RoundTripError):
                EditorSession("text")


class TestInputEvents:
    def test_typing_updates_canonical_without_reparse(self) -> None:
        session = EditorSession(DOC)
        tree = session.tree
        session.move_cursor(0, 0, 5)
        text = session.insert_text(",")
        assert text.startswith("Hello, **world**")
        assert session.tree is tree
        assert session.reparse_count == 0
        assert session.cursor == Cursor(0, 0, 6)

    def test_sync_after_own_input_is_a_no_op(self) -> None:
        session = EditorSession(DOC)
        session.move_cursor(0, 1, 5)
        text = session.insert_text("!")
        assert session.sync(text) is False
        assert session.reparse_count == 0
        assert session.tree.blocks[0].inlines[1] == Strong("world!")

    def test_delete_backward(self) -> None:
        session = EditorSession("abc")
        session.move_cursor(0, 0, 3)
        assert session.delete_backward() == "ab"
        assert session.cursor.offset == 2

    def test_set_inline_text(self) -> None:
        session = EditorSession(DOC)
        assert session.set_inline_text(0, 1, "there").startswith("Hello **there**")


class TestExternalSync:
    def test_external_change_reparses(self) -> None:
        session = EditorSession("abc\n\ndef")
        assert session.sync("abc\n\ndef ghi") is True
        assert session.reparse_count == 1
        assert session.last_canonical == "abc\n\ndef ghi"

    def test_cursor_survives_reparse(self) -> None:
        session = EditorSession("abc\n\ndef")
        session.move_cursor(1, 0, 2)
        session.sync("abc\n\ndef ghi")
        assert session.cursor == Cursor(1, 0, 2)


class TestStructuredEdits:
    def test_set_table_cell_keeps_padding_and_escapes_pipe(self) -> None:
        session = EditorSession(DOC)
        text = session.set_table_cell(1, 2, 1, "x|y")
        assert "| 1 | x\\|y |" in text
        assert parse(text).blocks[1].rows[2].cells == [" 1 ", " x\\|y "]

    def test_add_table_row(self) -> None:
        session = EditorSession(DOC)
        text = session.add_table_row(1, ["3", "4"])
        assert "| 1 | 2 |\n| 3 | 4 |" in text

    def test_set_formula(self) -> None:
        session = EditorSession(DOC)
        assert session.set_formula(2, "y^2").endswith("$$y^2$$")

    def test_insert_and_delete_paragraph(self) -> None:
        session = EditorSession("one\n\ntwo")
        assert session.insert_paragraph(0, "mid") == "one\n\nmid\n\ntwo"
        assert session.delete_block(1) == "one\n\ntwo"

    def test_deleting_last_block_leaves_empty_paragraph(self) -> None:
        session = EditorSession("only")
        assert session.delete_block(0) == ""
        assert len(session.tree.blocks) == 1

    def test_invalid_addresses_raise(self) -> None:
        session = EditorSession(DOC)
        with pytest.raises(InvalidEditError):
            session.set_formula(0, "x")
        with pytest.raises(InvalidEditError):
            session.set_table_cell(1, 9, 0, "x")
        with pytest.raises(InvalidEditError):
            session.set_inline_text(7, 0, "x")
        with pytest.raises(InvalidEditError):
            session.insert_paragraph(5)

    def test_typing_into_table_raises(self) -> None:
        session = EditorSession(DOC)
        session.move_cursor(1)
        with pytest.raises(InvalidEditError):
            session.insert_text("x")


class TestCursorMapping:
    def test_offset_accounts_for_markers(self) -> None:
        tree = parse("ab **cd**")
        assert cursor_to_offset(tree, Cursor(0, 1, 1)) == 6

    def test_offset_round_trip(self) -> None:
        tree = parse("ab **cd**\n\nef")
        for cursor in (Cursor(0, 0, 1), Cursor(0, 1, 2), Cursor(1, 0, 1)):
            assert offset_to_cursor(tree, cursor_to_offset(tree, cursor)) == cursor

    def test_offset_past_end_clamps(self) -> None:
        tree = parse("ab\n\ncd")
        assert offset_to_cursor(tree, 99) == Cursor(1, 0, 2)
