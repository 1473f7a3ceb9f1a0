"""Workspace entities (notes, folders, files) and their store."""

from cortex.workspace.entities import File, Folder, Note
from cortex.workspace.store import SQLiteWorkspaceStore, WorkspaceStore

__all__ = ["File", "Folder", "Note", "SQLiteWorkspaceStore", "WorkspaceStore"]
