import pytest

from chatrelay.application.commands.messages import SubmitMessageCommand
from chatrelay.domain.exceptions import (
    AccessDeniedError,
    DomainValidationError,
    ServiceUnavailableError,
    UnauthenticatedError,
)
from chatrelay.domain.ports import IdempotencyStore


def _submit(user, conversation, body, token=None):
    return SubmitMessageCommand(
        user_id=user.id if user else None,
        conversation_id=conversation.id if conversation else None,
        body=body,
        client_token=token,
    )


@pytest.mark.asyncio
async def test_member_message_is_persisted_and_bumps_updated_at(
    submit_handler, store, conversation, alice
):
    message = await submit_handler.execute(_submit(alice, conversation, "  hello  "))

    latest = await store.find_latest_message(conversation.id)
    assert latest.id == message.id
    assert latest.body == "hello"
    assert latest.sender.id == alice.id
    assert latest.sender.name == "Alice"

    refreshed = await store.get_conversation(conversation.id)
    assert refreshed.updated_at == message.created_at


@pytest.mark.asyncio
async def test_non_member_is_forbidden_and_nothing_is_written(
    submit_handler, store, conversation, carol
):
    before = await store.get_conversation(conversation.id)

    with pytest.raises(AccessDeniedError) as exc:
        await submit_handler.execute(_submit(carol, conversation, "let me in"))

    assert exc.value.message == "Access denied"
    assert exc.value.code == "FORBIDDEN"
    assert await store.find_latest_message(conversation.id) is None
    after = await store.get_conversation(conversation.id)
    assert after.updated_at == before.updated_at


@pytest.mark.asyncio
@pytest.mark.parametrize("body", ["", "   ", "\n\t", None])
async def test_blank_body_is_invalid(submit_handler, store, conversation, alice, body):
    with pytest.raises(DomainValidationError) as exc:
        await submit_handler.execute(_submit(alice, conversation, body))

    assert exc.value.message == "Message body is required"
    assert await store.find_latest_message(conversation.id) is None


@pytest.mark.asyncio
async def test_missing_identity_is_unauthenticated(submit_handler, conversation):
    with pytest.raises(UnauthenticatedError):
        await submit_handler.execute(_submit(None, conversation, "hi"))


@pytest.mark.asyncio
async def test_missing_conversation_is_invalid(submit_handler, alice):
    with pytest.raises(DomainValidationError):
        await submit_handler.execute(_submit(alice, None, "hi"))


@pytest.mark.asyncio
async def test_body_over_max_length_is_invalid(submit_handler, conversation, alice):
    with pytest.raises(DomainValidationError):
        await submit_handler.execute(_submit(alice, conversation, "x" * 51))


@pytest.mark.asyncio
async def test_resubmission_with_same_token_returns_same_message(
    submit_handler, store, conversation, alice
):
    first = await submit_handler.execute(_submit(alice, conversation, "once", "tok-1"))
    second = await submit_handler.execute(_submit(alice, conversation, "once", "tok-1"))

    assert second.id == first.id
    page = await store.list_messages(conversation.id)
    assert [m.id for m in page] == [first.id]


@pytest.mark.asyncio
async def test_retry_after_failed_bump_still_bumps_updated_at(
    submit_handler, store, conversation, alice
):
    bump = store.update_conversation_timestamp
    attempts = []

    async def fail_first(conversation_id, timestamp):
        attempts.append(timestamp)
        if len(attempts) == 1:
            raise ServiceUnavailableError()
        return await bump(conversation_id, timestamp)

    store.update_conversation_timestamp = fail_first

    with pytest.raises(ServiceUnavailableError):
        await submit_handler.execute(_submit(alice, conversation, "retry me", "tok-1"))
    message = await submit_handler.execute(_submit(alice, conversation, "retry me", "tok-1"))

    assert len(await store.list_messages(conversation.id)) == 1
    refreshed = await store.get_conversation(conversation.id)
    assert refreshed.updated_at == message.created_at


@pytest.mark.asyncio
async def test_late_retry_does_not_move_updated_at_backwards(
    submit_handler, store, conversation, alice, bob
):
    first = await submit_handler.execute(_submit(alice, conversation, "early", "tok-1"))
    later = await submit_handler.execute(_submit(bob, conversation, "later"))

    replayed = await submit_handler.execute(_submit(alice, conversation, "early", "tok-1"))

    assert replayed.id == first.id
    refreshed = await store.get_conversation(conversation.id)
    assert refreshed.updated_at == later.created_at


@pytest.mark.asyncio
async def test_tokens_are_scoped_per_user(submit_handler, store, conversation, alice, bob):
    mine = await submit_handler.execute(_submit(alice, conversation, "hey", "shared"))
    theirs = await submit_handler.execute(_submit(bob, conversation, "hey", "shared"))

    assert mine.id != theirs.id
    assert len(await store.list_messages(conversation.id)) == 2


@pytest.mark.asyncio
async def test_token_of_deleted_message_inserts_again(
    submit_handler, store, conversation, alice
):
    first = await submit_handler.execute(_submit(alice, conversation, "again", "tok"))
    await store.delete_message(first.id)

    second = await submit_handler.execute(_submit(alice, conversation, "again", "tok"))

    assert second.id != first.id


class BrokenIdempotencyStore(IdempotencyStore):
    async def get(self, key):
        raise ServiceUnavailableError()

    async def put(self, key, value, ttl_seconds):
        raise ServiceUnavailableError()


@pytest.mark.asyncio
async def test_idempotency_outage_does_not_block_submission(store, conversation, alice):
    from chatrelay.application.commands.messages import SubmitMessageHandler

    handler = SubmitMessageHandler(store, BrokenIdempotencyStore())
    message = await handler.execute(_submit(alice, conversation, "still works", "tok"))

    assert (await store.find_latest_message(conversation.id)).id == message.id
