"""Tests for hierarchy/validation.py — names, chains, folders, cascade planning."""

import pytest

from copydesk.errors import ValidationError
from copydesk.hierarchy.types import Document, Folder, Persona
from copydesk.hierarchy.validation import (
    NAME_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    chain,
    content_stats,
    folder_path,
    next_version,
    plan_cascade_delete,
    sanitize_name,
    sanitize_title,
    would_create_cycle,
)


def _doc(doc_id: str, base: str, version: int, project: str = "p1") -> Document:
    return Document(id=doc_id, project_id=project, base_title=base, version=version)


def _folder(folder_id: str, parent: str | None = None, project: str = "p1") -> Folder:
    return Folder(id=folder_id, project_id=project, name=folder_id, parent_folder_id=parent)


# ---------------------------------------------------------------------------
# sanitize_name
# ---------------------------------------------------------------------------


class TestSanitizeName:
    def test_plain_name_unchanged(self):
        assert sanitize_name("Acme Launch") == "Acme Launch"

    def test_strips_forbidden_characters(self):
        assert sanitize_name('Q1 <Plan>: "draft"/final\\v2|?*') == "Q1 Plan draftfinalv2"

    def test_collapses_whitespace(self):
        assert sanitize_name("  Acme \t\n  Corp  ") == "Acme Corp"

    def test_control_characters_removed(self):
        assert sanitize_name("Ac\x00me\x7f") == "Acme"

    def test_empty_rejected(self):
        with pytest.raises(ValidationError, match="cannot be empty"):
            sanitize_name("")

    def test_whitespace_only_rejected(self):
        with pytest.raises(ValidationError):
            sanitize_name("   \t ")

    def test_only_forbidden_characters_rejected(self):
        with pytest.raises(ValidationError):
            sanitize_name("<>?*")

    def test_over_length_rejected(self):
        with pytest.raises(ValidationError, match="100"):
            sanitize_name("x" * (NAME_MAX_LENGTH + 1))

    def test_exact_length_accepted(self):
        assert sanitize_name("x" * NAME_MAX_LENGTH) == "x" * NAME_MAX_LENGTH

    def test_custom_field_in_message(self):
        with pytest.raises(ValidationError, match="Folder name"):
            sanitize_name("", field="Folder name")

    def test_non_string_rejected(self):
        with pytest.raises(ValidationError):
            sanitize_name(42)  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        "raw",
        [
            "Acme",
            "  spaced   out  ",
            "a\tb\nc",
            'bad:"chars"<here>',
            "x" * NAME_MAX_LENGTH + "   ",
            "a : b",
        ],
    )
    def test_idempotent_on_accepted(self, raw: str):
        once = sanitize_name(raw)
        assert sanitize_name(once) == once

    @pytest.mark.parametrize("raw", ["", "   ", "\t\n", "x" * 101, "<>|" * 5])
    def test_rejected_stays_rejected(self, raw: str):
        with pytest.raises(ValidationError):
            sanitize_name(raw)


class TestSanitizeTitle:
    def test_keeps_punctuation_names_reject(self):
        assert sanitize_title("Q1: Brief / Draft?") == "Q1: Brief / Draft?"

    def test_strips_angle_brackets(self):
        assert sanitize_title("<b>Brief</b>") == "bBrief/b"

    def test_allows_longer_than_names(self):
        title = "t" * TITLE_MAX_LENGTH
        assert sanitize_title(title) == title

    def test_over_length_rejected(self):
        with pytest.raises(ValidationError, match="200"):
            sanitize_title("t" * (TITLE_MAX_LENGTH + 1))


class TestContentStats:
    def test_empty(self):
        assert content_stats("") == (0, 0)

    def test_markup_ignored(self):
        words, chars = content_stats("<p>Hello <strong>big</strong> world</p>")
        assert words == 3
        assert chars == len("Hello big world")

    def test_adjacent_blocks_count_as_separate_words(self):
        assert content_stats("<p>one</p><p>two</p>")[0] == 2


# ---------------------------------------------------------------------------
# Version chains
# ---------------------------------------------------------------------------


class TestVersionChains:
    def test_next_version_new_chain(self):
        assert next_version([], "p1", "Brief") == 1

    def test_next_version_after_max(self):
        docs = [_doc("a", "Brief", 1), _doc("b", "Brief", 3), _doc("c", "Other", 7)]
        assert next_version(docs, "p1", "Brief") == 4

    def test_chain_scoped_to_project(self):
        docs = [_doc("a", "Brief", 1), _doc("b", "Brief", 1, project="p2")]
        assert [d.id for d in chain(docs, "p1", "Brief")] == ["a"]
        assert next_version(docs, "p2", "Brief") == 2

    def test_chain_sorted_ascending(self):
        docs = [_doc("c", "Brief", 3), _doc("a", "Brief", 1), _doc("b", "Brief", 2)]
        assert [d.version for d in chain(docs, "p1", "Brief")] == [1, 2, 3]


# ---------------------------------------------------------------------------
# Folders
# ---------------------------------------------------------------------------


class TestFolderCycles:
    def test_move_to_root_never_cycles(self):
        assert would_create_cycle([_folder("a")], "a", None) is False

    def test_self_parent(self):
        assert would_create_cycle([_folder("a")], "a", "a") is True

    def test_into_descendant(self):
        folders = [_folder("a"), _folder("b", "a"), _folder("c", "b")]
        assert would_create_cycle(folders, "a", "c") is True

    def test_into_sibling(self):
        folders = [_folder("a"), _folder("b"), _folder("c", "b")]
        assert would_create_cycle(folders, "a", "c") is False

    def test_existing_loop_refused(self):
        folders = [_folder("x", "y"), _folder("y", "x"), _folder("a")]
        assert would_create_cycle(folders, "a", "x") is True


class TestFolderPath:
    def test_root_to_leaf(self):
        folders = [_folder("a"), _folder("b", "a"), _folder("c", "b")]
        assert [f.id for f in folder_path(folders, "c")] == ["a", "b", "c"]

    def test_unknown_folder(self):
        assert folder_path([_folder("a")], "zzz") == []

    def test_corrupt_cycle_terminates(self):
        folders = [_folder("x", "y"), _folder("y", "x")]
        path = folder_path(folders, "x")
        assert {f.id for f in path} == {"x", "y"}


# ---------------------------------------------------------------------------
# Cascade planning
# ---------------------------------------------------------------------------


class TestPlanCascadeDelete:
    def test_collects_only_owned(self):
        folders = [_folder("f1"), _folder("f2", project="p2")]
        docs = [_doc("d1", "Brief", 1), _doc("d2", "Brief", 2), _doc("d3", "X", 1, "p2")]
        personas = [
            Persona(id="s", project_id="p1", name="Sarah"),
            Persona(id="j", project_id="p2", name="John"),
        ]
        plan = plan_cascade_delete("p1", folders, docs, personas)
        assert plan.project_id == "p1"
        assert plan.folder_ids == ["f1"]
        assert plan.document_ids == ["d1", "d2"]
        assert plan.persona_ids == ["s"]
        assert plan.total == 4

    def test_inputs_untouched(self):
        folders = [_folder("f1")]
        plan_cascade_delete("p1", folders, [], [])
        assert [f.id for f in folders] == ["f1"]
