"""
Tests for conversation model and prompt assembly.
"""

from datetime import datetime, timedelta

from pocketllm.conversation import Conversation, ConversationMessage, Role, build_prompt_history


class TestBuildPromptHistory:

    def test_system_prompt_first_then_timestamp_order(self):
        now = datetime.now()
        later = ConversationMessage(Role.ASSISTANT, "second", now + timedelta(seconds=1))
        earlier = ConversationMessage(Role.USER, "first", now)

        prompt = build_prompt_history([later, earlier], "Be brief.")

        assert prompt == [
            {"role": "system", "content": "Be brief."},
            {"role": "user", "content": "first"},
            {"role": "assistant", "content": "second"},
        ]

    def test_blank_system_prompt_skipped(self):
        prompt = build_prompt_history([ConversationMessage(Role.USER, "hi")], "   ")
        assert prompt == [{"role": "user", "content": "hi"}]


class TestConversation:

    def test_snapshot_is_immutable_copy(self):
        conversation = Conversation()
        conversation.add(Role.USER, "hello")
        snapshot = conversation.snapshot()
        conversation.add(Role.ASSISTANT, "hi!")

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1
        assert len(conversation) == 2
        assert [m.content for m in conversation] == ["hello", "hi!"]
