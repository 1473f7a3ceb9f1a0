"""
Tests for entity suggestions, reference resolution and stale-response handling.
"""

import asyncio

import pytest

from cortex.context.references import EntityType, FileReference, FolderReference, NoteReference
from cortex.context.resolver import EntityResolver, SuggestionFeed, note_subtitle
from cortex.tests.helpers import OWNER, make_folder, make_note
from cortex.workspace.entities import File


class TestNoteSubtitle:

    def test_collapses_whitespace(self):
        assert note_subtitle("first line\n\n  second\tline") == "first line second line"

    def test_truncates(self):
        assert note_subtitle("x" * 500) == "x" * 120

    def test_empty_content(self):
        assert note_subtitle("") == "Note content unavailable"


class TestSuggest:
    """Tests for EntityResolver.suggest."""

    @pytest.mark.asyncio
    async def test_case_insensitive_match_across_types(self, workspace):
        make_note(workspace, "Roadmap 2025", "Quarterly goals")
        make_folder(workspace, "roadmaps")
        workspace.add_file(File.create(OWNER, "ROADMAP.pdf", type="application/pdf"))
        make_note(workspace, "Groceries")

        suggestions = await EntityResolver(workspace).suggest(OWNER, "  RoadMap ")

        assert [(s.entity_type, s.title) for s in suggestions] == [
            (EntityType.NOTE, "Roadmap 2025"),
            (EntityType.FOLDER, "roadmaps"),
            (EntityType.FILE, "ROADMAP.pdf"),
        ]
        assert [s.subtitle for s in suggestions] == [
            "Quarterly goals",
            "Folder",
            "application/pdf",
        ]

    @pytest.mark.asyncio
    async def test_non_ascii_titles_match_in_any_case(self, workspace):
        make_note(workspace, "Ärger Über Straße")
        make_folder(workspace, "ÉTÉ")

        resolver = EntityResolver(workspace)

        assert [s.title for s in await resolver.suggest(OWNER, "über")] == ["Ärger Über Straße"]
        assert [s.title for s in await resolver.suggest(OWNER, "STRASSE")] == ["Ärger Über Straße"]
        assert [s.title for s in await resolver.suggest(OWNER, "été")] == ["ÉTÉ"]

    @pytest.mark.asyncio
    async def test_bounded_per_type(self, workspace):
        for i in range(12):
            make_note(workspace, f"Meeting {i}", minutes_ago=i)
        make_folder(workspace, "Meetings")

        suggestions = await EntityResolver(workspace).suggest(OWNER, "meeting")
        notes = [s for s in suggestions if s.entity_type is EntityType.NOTE]

        assert len(notes) == 8
        # Newest first
        assert notes[0].title == "Meeting 0"
        assert any(s.entity_type is EntityType.FOLDER for s in suggestions)

    @pytest.mark.asyncio
    async def test_empty_query_lists_everything(self, workspace):
        make_note(workspace, "A")
        make_note(workspace, "B")

        suggestions = await EntityResolver(workspace).suggest(OWNER, "")

        assert {s.title for s in suggestions} == {"A", "B"}

    @pytest.mark.asyncio
    async def test_scoped_to_owner(self, workspace):
        make_note(workspace, "Secret plan", owner_id="someone-else")

        assert await EntityResolver(workspace).suggest(OWNER, "plan") == []

    @pytest.mark.asyncio
    async def test_file_without_type_has_no_subtitle(self, workspace):
        workspace.add_file(File.create(OWNER, "blob"))

        [suggestion] = await EntityResolver(workspace).suggest(OWNER, "blob")

        assert suggestion.subtitle is None
        assert suggestion.to_dict()["type"] == "file"


class TestResolve:
    """Tests for EntityResolver.resolve."""

    @pytest.mark.asyncio
    async def test_missing_references_are_skipped(self, workspace):
        kept = make_note(workspace, "Kept")
        gone = make_note(workspace, "Gone")
        workspace.delete_note(OWNER, gone.id)

        resolved = await EntityResolver(workspace).resolve(
            OWNER,
            [NoteReference(gone.id), NoteReference(kept.id), FileReference("nope")],
        )

        assert [n.title for n in resolved.notes] == ["Kept"]
        assert resolved.files == []

    @pytest.mark.asyncio
    async def test_keeps_reference_order(self, workspace):
        first = make_note(workspace, "First")
        second = make_note(workspace, "Second")

        resolved = await EntityResolver(workspace).resolve(
            OWNER, [NoteReference(second.id), NoteReference(first.id), NoteReference(second.id)]
        )

        assert [n.title for n in resolved.notes] == ["Second", "First"]

    @pytest.mark.asyncio
    async def test_folder_children(self, workspace):
        folder = make_folder(workspace, "Projects")
        make_note(workspace, "Alpha", folder=folder, minutes_ago=10)
        make_note(workspace, "Beta", folder=folder, minutes_ago=5)
        make_note(workspace, "Loose")

        resolved = await EntityResolver(workspace).resolve(OWNER, [FolderReference(folder.id)])

        assert [f.name for f in resolved.folders] == ["Projects"]
        assert [n.title for n in resolved.folder_notes[folder.id]] == ["Alpha", "Beta"]

    @pytest.mark.asyncio
    async def test_nothing_resolves(self, workspace):
        resolved = await EntityResolver(workspace).resolve(OWNER, [NoteReference("missing")])
        assert (resolved.notes, resolved.folders, resolved.files) == ([], [], [])


class GatedResolver:
    """Resolver double whose suggest() waits until the test releases a query."""

    def __init__(self):
        self.gates: dict[str, asyncio.Event] = {}

    def gate(self, query: str) -> asyncio.Event:
        return self.gates.setdefault(query, asyncio.Event())

    async def suggest(self, owner_id, query):
        await self.gate(query).wait()
        return [query]


class TestSuggestionFeed:
    """Tests for last-request-wins suggestion results."""

    @pytest.mark.asyncio
    async def test_stale_response_is_discarded(self):
        resolver = GatedResolver()
        feed = SuggestionFeed(resolver, OWNER)

        slow = asyncio.create_task(feed.request("pr"))
        await asyncio.sleep(0)
        fast = asyncio.create_task(feed.request("pro"))
        await asyncio.sleep(0)

        # The newer query answers first, the older one after it
        resolver.gate("pro").set()
        assert await fast == ["pro"]
        resolver.gate("pr").set()
        assert await slow is None

        assert feed.query == "pro"
        assert feed.results == ["pro"]

    @pytest.mark.asyncio
    async def test_in_order_responses(self, workspace):
        make_note(workspace, "Alpha")
        feed = SuggestionFeed(EntityResolver(workspace), OWNER)

        await feed.request("zzz")
        results = await feed.request("alp")

        assert [s.title for s in results] == ["Alpha"]
        assert feed.query == "alp"
