"""
Detection of in-progress "@mention" tokens in a text buffer.

The scan is a bounded backward walk from the caret, re-run from scratch on
every edit. A mention is active when the nearest "@" before the caret:
- starts the buffer or follows a space/newline (so "user@host" never fires)
- is separated from the caret by no whitespace
- is at most MAX_MENTION_QUERY characters away from the caret
"""

from dataclasses import dataclass
from typing import Optional, Union

from cortex.config import MAX_MENTION_QUERY, MENTION_TRIGGER

_BOUNDARIES = (" ", "\n")


@dataclass(frozen=True)
class NoMention:
    """The caret is not inside a mention token."""

    @property
    def is_active(self) -> bool:
        return False


@dataclass(frozen=True)
class ActiveMention:
    """The caret sits inside a mention token starting at trigger_offset."""
    trigger_offset: int
    query: str

    @property
    def is_active(self) -> bool:
        return True


MentionState = Union[NoMention, ActiveMention]

NO_MENTION = NoMention()


@dataclass(frozen=True)
class MentionInsertion:
    """Buffer text and caret position after a suggestion was applied."""
    text: str
    caret: int
    inserted: str
    separator: str


def scan(buffer: str, caret: Optional[int], limit: int = MAX_MENTION_QUERY) -> MentionState:
    """
    Decide whether the caret is inside an active mention.

    Args:
        buffer: Full text of the input
        caret: Caret offset, or None when the input has no selection
        limit: Longest query allowed between trigger and caret

    Returns:
        ActiveMention with the trigger offset and query, or NoMention
    """
    if caret is None or caret < 0 or caret > len(buffer):
        return NO_MENTION

    position = caret - 1
    # Walk back at most limit query characters plus the trigger itself.
    while position >= 0 and caret - position <= limit + 1:
        char = buffer[position]
        if char == MENTION_TRIGGER:
            if position > 0 and buffer[position - 1] not in _BOUNDARIES:
                return NO_MENTION
            return ActiveMention(trigger_offset=position, query=buffer[position + 1:caret])
        if char.isspace():
            return NO_MENTION
        position -= 1

    return NO_MENTION


def apply_suggestion(
    buffer: str,
    caret: int,
    mention: ActiveMention,
    title: str,
) -> MentionInsertion:
    """
    Replace the mention token [trigger_offset, caret) with the entity title.

    A single space is added after the title only when the text that follows
    does not already start with whitespace. The caret lands right after the
    inserted title and separator.
    """
    before = buffer[:mention.trigger_offset]
    after = buffer[caret:]
    inserted = f"{MENTION_TRIGGER}{title}"
    separator = "" if not after or after[0].isspace() else " "

    return MentionInsertion(
        text=f"{before}{inserted}{separator}{after}",
        caret=len(before) + len(inserted) + len(separator),
        inserted=inserted,
        separator=separator,
    )


class MentionTracker:
    """
    Mention state for one input buffer.

    The suggestion menu is open exactly while the state is an ActiveMention;
    any edit that leaves the mention closes it.
    """

    def __init__(self, limit: int = MAX_MENTION_QUERY):
        self.limit = limit
        self._state: MentionState = NO_MENTION
        self._caret: Optional[int] = None

    @property
    def state(self) -> MentionState:
        return self._state

    @property
    def menu_open(self) -> bool:
        return self._state.is_active

    @property
    def query(self) -> Optional[str]:
        """Current mention query, or None when the menu is closed."""
        if isinstance(self._state, ActiveMention):
            return self._state.query
        return None

    def update(self, buffer: str, caret: Optional[int]) -> MentionState:
        """Rescan after an edit or caret move."""
        self._state = scan(buffer, caret, self.limit)
        self._caret = caret if self._state.is_active else None
        return self._state

    def select(self, buffer: str, title: str) -> Optional[MentionInsertion]:
        """Apply a chosen suggestion to the buffer and close the menu."""
        if not isinstance(self._state, ActiveMention) or self._caret is None:
            return None
        insertion = apply_suggestion(buffer, self._caret, self._state, title)
        self.reset()
        return insertion

    def reset(self) -> None:
        """Close the menu (message sent, panel closed)."""
        self._state = NO_MENTION
        self._caret = None
