import pytest

from tablesync.errors import AuthRejected, InvalidTransition, NotConnected
from tablesync.session import Session, SessionState, SessionTracker
from tablesync.tests.fakes import FakeSigner


@pytest.mark.asyncio
async def test_connect_and_disconnect_lifecycle(identity):
    session = Session(FakeSigner(identity))
    with pytest.raises(NotConnected):
        session.require_identity()

    connected = await session.connect()

    assert connected == identity
    assert session.state is SessionState.CONNECTED
    assert session.require_identity() == identity
    assert session.require_context_id() == 1

    await session.disconnect()
    assert session.state is SessionState.DISCONNECTED
    assert session.identity is None
    with pytest.raises(NotConnected):
        session.require_context_id()


@pytest.mark.asyncio
async def test_connect_is_idempotent(identity):
    session = Session(FakeSigner(identity))
    first = await session.connect()
    second = await session.connect()
    assert first is second


@pytest.mark.asyncio
async def test_signer_refusal_leaves_session_disconnected():
    session = Session(FakeSigner(None, error=AuthRejected("user closed the wallet prompt")))

    with pytest.raises(AuthRejected):
        await session.connect()

    assert session.state is SessionState.DISCONNECTED


@pytest.mark.asyncio
async def test_disconnect_runs_hooks_and_survives_failures(identity):
    session = Session(FakeSigner(identity))
    calls = []

    async def async_hook():
        calls.append("async")

    def broken_hook():
        raise RuntimeError("boom")

    session.add_disconnect_hook(lambda: calls.append("sync"))
    session.add_disconnect_hook(broken_hook)
    session.add_disconnect_hook(async_hook)
    await session.connect()
    await session.disconnect()

    assert calls == ["sync", "async"]
    assert session.state is SessionState.DISCONNECTED


def test_tracker_rejects_invalid_transition():
    tracker = SessionTracker()
    with pytest.raises(InvalidTransition):
        tracker.transition(SessionState.CONNECTED)
