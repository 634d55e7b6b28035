"""
Conversation model and prompt assembly.

Conversation history itself is persisted by the host application; this
module only defines the in-memory shape handed to the generation engine and
turns it into the role/content message list the runtime expects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Iterable


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class ConversationMessage:
    """A single chat message."""
    role: Role
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    def as_prompt_entry(self) -> dict[str, str]:
        return {"role": self.role.value, "content": self.content}


# Ordered, immutable snapshot handed to one generation call
PromptHistory = tuple[ConversationMessage, ...]


class Conversation:
    """
    Ordered list of messages for one chat thread.

    Messages are kept sorted by timestamp; snapshot() freezes the current
    state into a PromptHistory for a generation call.
    """

    def __init__(self, messages: Iterable[ConversationMessage] = ()):
        self._messages: list[ConversationMessage] = sorted(messages, key=lambda m: m.timestamp)

    def add(self, role: Role, content: str) -> ConversationMessage:
        message = ConversationMessage(role=role, content=content)
        self._messages.append(message)
        return message

    def snapshot(self) -> PromptHistory:
        return tuple(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self):
        return iter(self._messages)


def build_prompt_history(
    history: Iterable[ConversationMessage],
    system_prompt: str,
) -> list[dict[str, str]]:
    """
    Assemble the message list sent to the runtime.

    Args:
        history: Conversation messages in any order.
        system_prompt: Instructions placed first; skipped when blank.

    Returns:
        list of {"role", "content"} dicts: system prompt, then history in
        timestamp order.
    """
    prompt: list[dict[str, str]] = []
    if system_prompt and system_prompt.strip():
        prompt.append({"role": Role.SYSTEM.value, "content": system_prompt})
    for message in sorted(history, key=lambda m: m.timestamp):
        prompt.append(message.as_prompt_entry())
    return prompt
