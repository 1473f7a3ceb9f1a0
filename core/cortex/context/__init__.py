"""
Mention detection and context assembly for conversations.

This package provides:
- References: typed note/folder/file pointers
- Mention scanning: "@" token detection and suggestion insertion
- ContextRegistry: optimistic per-conversation reference sets
- EntityResolver: suggestions and entity lookup
- ContextSummarizer: references rendered as prompt context blocks
"""

from cortex.context.mentions import (
    ActiveMention,
    MentionTracker,
    NoMention,
    apply_suggestion,
    scan,
)
from cortex.context.references import (
    ContextReference,
    EntityType,
    FileReference,
    FolderReference,
    NoteReference,
    make_reference,
)
from cortex.context.registry import ContextRegistry
from cortex.context.resolver import ContextSuggestion, EntityResolver, SuggestionFeed
from cortex.context.summarizer import ContextSummarizer, ContextSummary

__all__ = [
    "ActiveMention",
    "MentionTracker",
    "NoMention",
    "apply_suggestion",
    "scan",
    "ContextReference",
    "EntityType",
    "FileReference",
    "FolderReference",
    "NoteReference",
    "make_reference",
    "ContextRegistry",
    "ContextSuggestion",
    "EntityResolver",
    "SuggestionFeed",
    "ContextSummarizer",
    "ContextSummary",
]
