"""Tests for the chat service."""

import pytest

from app.schemas.chat import MessageBody

from .conftest import ALICE, BOB, CAROL

pytestmark = pytest.mark.anyio


async def _chat(chat_service, participants, *texts):
    messages = [MessageBody(msg=text, msg_from=participants[0]) for text in texts]
    result = await chat_service.save_chat(participants, messages)
    assert result.success
    return result.chat


class TestSaveChat:
    async def test_saves_participants_and_messages(self, chat_service):
        chat = await _chat(chat_service, [ALICE, BOB], "hi", "there")

        assert chat.participants == [ALICE, BOB]
        assert [m.msg for m in chat.messages] == ["hi", "there"]
        assert all(m.type == "direct" for m in chat.messages)

    async def test_duplicate_participants_collapsed(self, chat_service):
        chat = await _chat(chat_service, [ALICE, BOB, ALICE])

        assert chat.participants == [ALICE, BOB]

    async def test_storage_failure(self, chat_service, fake_redis):
        fake_redis.fail = True

        result = await chat_service.save_chat([ALICE], [])

        assert result.error_code == "INTERNAL_ERROR"


class TestMessages:
    async def test_unknown_sender_rejected(self, chat_service):
        result = await chat_service.create_message(MessageBody(msg="hey", msg_from="ghost"))

        assert not result.success
        assert result.error_code == "USER_NOT_FOUND"

    async def test_message_appended_in_order(self, chat_service):
        chat = await _chat(chat_service, [ALICE, BOB], "first")
        created = await chat_service.create_message(MessageBody(msg="second", msg_from=BOB))

        result = await chat_service.add_message_to_chat(chat.chat_id, created.message.message_id)

        assert [m.msg for m in result.chat.messages] == ["first", "second"]
        assert result.chat.messages[1].msg_from == BOB
        assert result.chat.updated_at >= chat.updated_at

    async def test_add_to_unknown_chat(self, chat_service):
        created = await chat_service.create_message(MessageBody(msg="x", msg_from=ALICE))

        result = await chat_service.add_message_to_chat("missing", created.message.message_id)

        assert result.error_code == "CHAT_NOT_FOUND"


class TestLookup:
    async def test_get_chat(self, chat_service):
        chat = await _chat(chat_service, [ALICE, BOB], "hi")

        result = await chat_service.get_chat(chat.chat_id)

        assert result.chat == chat

    async def test_messages_carry_their_author(self, chat_service):
        chat = await _chat(chat_service, [ALICE, BOB], "hi")

        result = await chat_service.get_chat(chat.chat_id)

        sender = result.chat.messages[0].user
        assert sender is not None
        assert (sender.user_id, sender.username) == (f"id-{ALICE}", ALICE)

    async def test_author_without_profile_is_none(self, chat_service):
        chat = await _chat(chat_service, ["ghost", ALICE], "boo")

        result = await chat_service.get_chat(chat.chat_id)

        assert result.chat.messages[0].user is None

    async def test_get_unknown_chat(self, chat_service):
        assert (await chat_service.get_chat("missing")).error_code == "CHAT_NOT_FOUND"

    async def test_chats_containing_all_users(self, chat_service):
        ab = await _chat(chat_service, [ALICE, BOB])
        await _chat(chat_service, [ALICE, CAROL])

        chats = await chat_service.get_chats_by_participants([ALICE, BOB])

        assert [c.chat_id for c in chats] == [ab.chat_id]
        assert len(await chat_service.get_chats_by_participants([ALICE])) == 2

    async def test_lookup_failure_is_empty(self, chat_service, fake_redis):
        await _chat(chat_service, [ALICE, BOB])
        fake_redis.fail = True

        assert await chat_service.get_chats_by_participants([ALICE]) == []


class TestAddParticipant:
    async def test_adds_participant(self, chat_service):
        chat = await _chat(chat_service, [ALICE, BOB])

        result = await chat_service.add_participant_to_chat(chat.chat_id, CAROL)

        assert result.chat.participants == [ALICE, BOB, CAROL]
        found = await chat_service.get_chats_by_participants([CAROL])
        assert [c.chat_id for c in found] == [chat.chat_id]

    async def test_unknown_user(self, chat_service):
        chat = await _chat(chat_service, [ALICE, BOB])

        result = await chat_service.add_participant_to_chat(chat.chat_id, "ghost")

        assert result.error_code == "USER_NOT_FOUND"
        assert result.error_message == "User does not exist."

    async def test_existing_participant(self, chat_service):
        chat = await _chat(chat_service, [ALICE, BOB])

        result = await chat_service.add_participant_to_chat(chat.chat_id, BOB)

        assert result.error_code == "ALREADY_PARTICIPANT"

    async def test_unknown_chat(self, chat_service):
        result = await chat_service.add_participant_to_chat("missing", CAROL)

        assert result.error_code == "CHAT_NOT_FOUND"
