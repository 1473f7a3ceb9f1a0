"""Shared fixtures: temporary SQLite stores and a scripted generation gateway."""

import os
import tempfile

import pytest

from cortex.conversation.store import ConversationStore
from cortex.engine.orchestrator import ChatOrchestrator
from cortex.tests.helpers import ScriptedGateway
from cortex.workspace.store import SQLiteWorkspaceStore


def _temp_db_path() -> str:
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        return f.name


@pytest.fixture
def workspace():
    """Workspace store with a temporary database."""
    db_path = _temp_db_path()
    yield SQLiteWorkspaceStore(db_path=db_path)
    os.unlink(db_path)


@pytest.fixture
def conversations():
    """Conversation store with a temporary database."""
    db_path = _temp_db_path()
    yield ConversationStore(db_path=db_path)
    os.unlink(db_path)


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def orchestrator(conversations, workspace, gateway):
    return ChatOrchestrator(conversations=conversations, workspace=workspace, gateway=gateway)
