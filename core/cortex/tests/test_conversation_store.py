"""
Unit tests for the SQLite conversation store.

Tests cover:
- Conversation creation, rename and delete
- Message ordering and reference snapshots
- Listing: drafts excluded, complete non-overlapping pages
- Attached references and duplicate handling
"""

import pytest

from cortex.context.references import FileReference, FolderReference, NoteReference
from cortex.conversation.models import Role
from cortex.tests.helpers import OWNER


def _with_message(store, title: str, content: str = "hello"):
    conversation = store.create_conversation(OWNER, title)
    store.append_message(OWNER, conversation.id, Role.USER, content)
    return conversation


class TestConversations:

    def test_create_uses_default_title(self, conversations):
        assert conversations.create_conversation(OWNER).title == "New chat"
        assert conversations.create_conversation(OWNER, "   ").title == "New chat"
        assert conversations.create_conversation(OWNER, " Trip ").title == "Trip"

    def test_get_conversation(self, conversations):
        created = conversations.create_conversation(OWNER, "Trip")

        conversation, messages = conversations.get_conversation(OWNER, created.id)

        assert conversation.id == created.id
        assert conversation.title == "Trip"
        assert messages == []

    def test_scoped_to_owner(self, conversations):
        created = conversations.create_conversation(OWNER, "Mine")

        assert conversations.get_conversation("intruder", created.id) is None
        assert not conversations.rename_conversation("intruder", created.id, "Theirs")
        assert not conversations.delete_conversation("intruder", created.id)
        assert conversations.conversation_exists(OWNER, created.id)

    def test_rename(self, conversations):
        created = conversations.create_conversation(OWNER, "Old")

        assert conversations.rename_conversation(OWNER, created.id, "New")
        assert conversations.get_conversation(OWNER, created.id)[0].title == "New"
        assert not conversations.rename_conversation(OWNER, "missing", "New")

    def test_rename_keeps_listing_order(self, conversations):
        older = _with_message(conversations, "Older")
        newer = _with_message(conversations, "Newer")
        before = conversations.get_conversation(OWNER, older.id)[0].updated_at

        conversations.rename_conversation(OWNER, older.id, "Renamed")

        assert conversations.get_conversation(OWNER, older.id)[0].updated_at == before
        previews = conversations.list_conversations(OWNER, 0, 10)
        assert [p.conversation.id for p in previews] == [newer.id, older.id]
        assert previews[1].conversation.title == "Renamed"

    def test_delete_cascades(self, conversations):
        created = conversations.create_conversation(OWNER, "Doomed")
        conversations.append_message(OWNER, created.id, Role.USER, "hi")
        conversations.add_reference(OWNER, created.id, NoteReference("n1"))

        assert conversations.delete_conversation(OWNER, created.id)
        assert conversations.get_conversation(OWNER, created.id) is None
        assert conversations.list_conversations(OWNER, 0, 10) == []
        with pytest.raises(KeyError):
            conversations.list_references(OWNER, created.id)


class TestMessages:

    def test_messages_are_ordered(self, conversations):
        created = conversations.create_conversation(OWNER)
        for i in range(5):
            role = Role.USER if i % 2 == 0 else Role.ASSISTANT
            conversations.append_message(OWNER, created.id, role, f"m{i}")

        _, messages = conversations.get_conversation(OWNER, created.id)

        assert [m.content for m in messages] == ["m0", "m1", "m2", "m3", "m4"]
        stamps = [m.created_at for m in messages]
        assert stamps == sorted(stamps)
        assert len(set(stamps)) == len(stamps)

    def test_append_advances_updated_at(self, conversations):
        created = conversations.create_conversation(OWNER)
        message = conversations.append_message(OWNER, created.id, Role.USER, "hi")

        conversation, _ = conversations.get_conversation(OWNER, created.id)

        assert conversation.updated_at >= message.created_at

    def test_reference_snapshot(self, conversations):
        created = conversations.create_conversation(OWNER)
        refs = [NoteReference("n1"), FileReference("x1"), NoteReference("n1")]

        conversations.append_message(OWNER, created.id, Role.USER, "hi", refs)
        _, [message] = conversations.get_conversation(OWNER, created.id)

        assert message.references_at_send_time == (NoteReference("n1"), FileReference("x1"))

    def test_append_to_missing_conversation(self, conversations):
        with pytest.raises(KeyError):
            conversations.append_message(OWNER, "missing", Role.USER, "hi")


class TestListing:

    def test_drafts_are_excluded(self, conversations):
        conversations.create_conversation(OWNER, "Draft")
        kept = _with_message(conversations, "Real")

        previews = conversations.list_conversations(OWNER, 0, 10)

        assert [p.conversation.id for p in previews] == [kept.id]
        assert previews[0].message_count == 1

    def test_most_recent_activity_first(self, conversations):
        older = _with_message(conversations, "Older")
        newer = _with_message(conversations, "Newer")
        conversations.append_message(OWNER, older.id, Role.USER, "bump")

        previews = conversations.list_conversations(OWNER, 0, 10)

        assert [p.conversation.id for p in previews] == [older.id, newer.id]
        assert previews[0].message_count == 2

    def test_pages_are_complete_and_disjoint(self, conversations):
        """Walking offsets visits every non-empty conversation exactly once."""
        expected = set()
        for i in range(7):
            conversations.create_conversation(OWNER, f"Draft {i}")
            expected.add(_with_message(conversations, f"Chat {i}").id)

        seen = []
        offset = 0
        while True:
            page = conversations.list_conversations(OWNER, offset, 3)
            if not page:
                break
            assert len(page) <= 3
            seen.extend(p.conversation.id for p in page)
            offset += 3

        assert len(seen) == len(expected)
        assert set(seen) == expected

    def test_other_owners_are_hidden(self, conversations):
        other = conversations.create_conversation("someone-else", "Theirs")
        conversations.append_message("someone-else", other.id, Role.USER, "hi")

        assert conversations.list_conversations(OWNER, 0, 10) == []


class TestReferences:

    def test_add_and_list_in_order(self, conversations):
        created = conversations.create_conversation(OWNER)

        assert conversations.add_reference(OWNER, created.id, FolderReference("f1"))
        assert conversations.add_reference(OWNER, created.id, NoteReference("n1"))

        assert conversations.list_references(OWNER, created.id) == [
            FolderReference("f1"),
            NoteReference("n1"),
        ]

    def test_duplicate_is_rejected(self, conversations):
        created = conversations.create_conversation(OWNER)
        conversations.add_reference(OWNER, created.id, NoteReference("n1"))

        assert not conversations.add_reference(OWNER, created.id, NoteReference("n1"))
        assert conversations.list_references(OWNER, created.id) == [NoteReference("n1")]

    def test_same_id_different_type(self, conversations):
        created = conversations.create_conversation(OWNER)

        assert conversations.add_reference(OWNER, created.id, NoteReference("same"))
        assert conversations.add_reference(OWNER, created.id, FileReference("same"))

    def test_remove(self, conversations):
        created = conversations.create_conversation(OWNER)
        conversations.add_reference(OWNER, created.id, NoteReference("n1"))

        assert conversations.remove_reference(OWNER, created.id, NoteReference("n1"))
        assert not conversations.remove_reference(OWNER, created.id, NoteReference("n1"))
        assert conversations.list_references(OWNER, created.id) == []

    def test_add_to_missing_conversation(self, conversations):
        with pytest.raises(KeyError):
            conversations.add_reference(OWNER, "missing", NoteReference("n1"))
