from __future__ import annotations

import asyncio
import logging
from unittest.mock import AsyncMock, Mock

import pytest
from conftest import Recorder

from pynagare.client import NagareClient
from pynagare.exceptions import NagareCancelledError, NagareConfigError
from pynagare.mutation.models import MutationContext, MutationCycle, MutationOptions
from pynagare.mutation.mutation import Mutation
from pynagare.notifications import NotificationEvent, NotificationType


def test_requires_client() -> None:
    with pytest.raises(NagareConfigError):
        Mutation(None, "test", AsyncMock())


def test_requires_key(client: NagareClient) -> None:
    with pytest.raises(NagareConfigError):
        Mutation(client, None, AsyncMock())


def test_requires_mutation_fn(client: NagareClient) -> None:
    with pytest.raises(NagareConfigError):
        Mutation(client, "test", None)


def test_initial_response(client: NagareClient) -> None:
    mutation = Mutation(client, "test", AsyncMock())

    initial = mutation.initial_response
    assert initial.cycle == MutationCycle.INITIAL
    assert initial.is_idle is True
    assert initial.is_loading is False
    assert initial.mutation_key == "test"


@pytest.mark.asyncio
async def test_mutate_calls_function_once(client: NagareClient, recorder: Recorder) -> None:
    mutation_fn = AsyncMock(return_value="saved")
    mutation = Mutation(client, "test", mutation_fn, subscriber=recorder.subscriber)

    mutation_fn.assert_not_awaited()
    result = await mutation.mutate()

    assert result == "saved"
    mutation_fn.assert_awaited_once()
    assert isinstance(mutation_fn.await_args.args[0], MutationContext)


@pytest.mark.asyncio
async def test_mutate_emits_mutate_start_end(client: NagareClient, recorder: Recorder) -> None:
    mutation = Mutation(client, "test", AsyncMock(return_value="saved"), subscriber=recorder.subscriber)

    await mutation.mutate()

    assert recorder.cycles == [MutationCycle.MUTATE, MutationCycle.START, MutationCycle.END]
    mutate, start, end = recorder.responses
    assert mutate.is_loading is False
    assert start.is_loading is True
    assert start.is_idle is False
    assert end.is_loading is False
    assert end.is_success is True
    assert end.data == "saved"


@pytest.mark.asyncio
async def test_on_mutate_runs_before_on_success(client: NagareClient, recorder: Recorder) -> None:
    release = asyncio.Event()
    on_mutate = Mock()
    on_success = Mock()
    on_error = Mock()

    async def mutation_fn(ctx: MutationContext[str]) -> str:
        await release.wait()
        return "done"

    mutation = Mutation(
        client,
        "test",
        mutation_fn,
        MutationOptions(on_mutate=on_mutate, on_success=on_success, on_error=on_error),
        subscriber=recorder.subscriber,
    )

    task = asyncio.create_task(mutation.mutate())
    await asyncio.sleep(0)
    on_mutate.assert_called_once()
    on_success.assert_not_called()

    release.set()
    await task

    on_mutate.assert_called_once()
    on_success.assert_called_once()
    assert on_success.call_args.args[1] == "done"
    on_error.assert_not_called()


@pytest.mark.asyncio
async def test_failed_mutation_calls_on_error_and_reraises(client: NagareClient, recorder: Recorder) -> None:
    failure = ValueError("rejected")
    on_success = Mock()
    on_error = Mock()
    mutation = Mutation(
        client,
        "test",
        AsyncMock(side_effect=failure),
        MutationOptions(on_success=on_success, on_error=on_error),
        subscriber=recorder.subscriber,
    )

    with pytest.raises(ValueError, match="rejected"):
        await mutation.mutate()

    on_error.assert_called_once()
    assert on_error.call_args.args[1] is failure
    on_success.assert_not_called()
    assert recorder.last.cycle == MutationCycle.END
    assert recorder.last.is_error is True
    assert recorder.last.is_success is False
    assert recorder.last.is_loading is False
    assert recorder.last.error is failure


@pytest.mark.asyncio
async def test_observe_limits_emissions(client: NagareClient, recorder: Recorder) -> None:
    mutation = Mutation(
        client,
        "test",
        AsyncMock(return_value="saved"),
        MutationOptions(observe=("data",)),
        subscriber=recorder.subscriber,
    )

    await mutation.mutate()

    assert recorder.cycles == [MutationCycle.MUTATE, MutationCycle.END]


@pytest.mark.asyncio
async def test_emissions_before_subscriber_are_buffered(client: NagareClient, recorder: Recorder) -> None:
    mutation = Mutation(client, "test", AsyncMock(return_value="saved"))

    await mutation.mutate()
    assert recorder.responses == []

    mutation.register_subscriber(recorder.subscriber)
    assert recorder.cycles == [MutationCycle.MUTATE, MutationCycle.START, MutationCycle.END]


def test_cancel_aborts_signal_and_calls_on_cancel(client: NagareClient) -> None:
    on_cancel = Mock()
    mutation = Mutation(client, "test", AsyncMock(), MutationOptions(on_cancel=on_cancel))

    mutation.cancel()

    assert mutation.signal.aborted is True
    on_cancel.assert_called_once()


def test_cancel_mutation_by_key(client: NagareClient) -> None:
    on_cancel_a = Mock()
    on_cancel_b = Mock()
    Mutation(client, ["todo", 1], AsyncMock(), MutationOptions(on_cancel=on_cancel_a))
    Mutation(client, ["todo", 2], AsyncMock(), MutationOptions(on_cancel=on_cancel_b))

    client.cancel_mutation(["todo", 1])
    on_cancel_a.assert_called_once()
    on_cancel_b.assert_not_called()

    client.cancel_all_mutations()
    assert on_cancel_a.call_count == 2
    on_cancel_b.assert_called_once()


def test_query_commands_do_not_reach_mutations(client: NagareClient) -> None:
    on_cancel = Mock()
    Mutation(client, "test", AsyncMock(), MutationOptions(on_cancel=on_cancel))

    client.cancel_all_queries()

    on_cancel.assert_not_called()


def test_mutation_retry_is_logged_not_raised(client: NagareClient, caplog: pytest.LogCaptureFixture) -> None:
    Mutation(client, "test", AsyncMock())

    with caplog.at_level(logging.WARNING, logger="pynagare"):
        client.notifications.publish(NotificationEvent(type=NotificationType.MUTATION_RETRY))

    assert "Unknown event type" in caplog.text


@pytest.mark.asyncio
async def test_cooperative_cancellation_through_signal(client: NagareClient, recorder: Recorder) -> None:
    async def mutation_fn(ctx: MutationContext[str]) -> str:
        await ctx.signal.wait()
        ctx.signal.raise_if_aborted()
        return "unreachable"

    mutation = Mutation(client, "test", mutation_fn, subscriber=recorder.subscriber)
    task = asyncio.create_task(mutation.mutate())
    await asyncio.sleep(0)

    client.cancel_mutation("test")

    with pytest.raises(NagareCancelledError):
        await task
    assert recorder.last.is_error is True


@pytest.mark.asyncio
async def test_failing_error_callback_keeps_original_exception(
    client: NagareClient, recorder: Recorder, caplog: pytest.LogCaptureFixture
) -> None:
    def _on_error(ctx: MutationContext[str], exc: Exception) -> None:
        raise RuntimeError("on_error failed")

    mutation = Mutation(
        client,
        "test",
        AsyncMock(side_effect=ValueError("rejected")),
        MutationOptions(on_error=_on_error),
        subscriber=recorder.subscriber,
    )

    with caplog.at_level(logging.WARNING, logger="pynagare"), pytest.raises(ValueError, match="rejected"):
        await mutation.mutate()

    assert recorder.last.cycle == MutationCycle.END
    assert recorder.last.is_error is True
    assert "on_error callback failed" in caplog.text
