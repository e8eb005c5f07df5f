"""Tests for SessionEngine side effects, ordering, failures and concurrency."""

import asyncio
from types import SimpleNamespace

import pytest
import requests

from src.conversation.engine import EngineClosedError, SessionEngine
from src.schemas.event_schema import StatusTag
from src.schemas.session_schema import SessionStep
from src.tools.event_sink import InMemoryEventSink, SinkUnavailable
from src.tools.session_store import InMemorySessionStore, JsonFileSessionStore, StoreUnavailable
from src.tools.transport import RecordingTransport, TwilioWhatsAppTransport
from tests.conftest import JOINED_AT, OTHER_SENDER, SENDER, FakeClock


class FailingStore(InMemorySessionStore):
    def __init__(self, fail_get=False, fail_put=False):
        super().__init__()
        self.fail_get = fail_get
        self.fail_put = fail_put

    async def get(self, sender):
        if self.fail_get:
            raise StoreUnavailable("disk gone")
        return await super().get(sender)

    async def put(self, sender, state):
        if self.fail_put:
            raise StoreUnavailable("disk full")
        await super().put(sender, state)


class FailingSink(InMemoryEventSink):
    async def record(self, event):
        raise SinkUnavailable("sheet offline")


class SlowStore(InMemorySessionStore):
    async def get(self, sender):
        await asyncio.sleep(5)
        return None


class UnreachableMessages:
    def create(self, **kwargs):
        raise requests.exceptions.ConnectionError("no route")


class OrderRecorder:
    """Store, transport and sink in one object, recording call order."""

    def __init__(self):
        self.calls = []
        self.sessions = {}

    async def get(self, sender):
        self.calls.append("get")
        return self.sessions.get(sender)

    async def put(self, sender, state):
        self.calls.append("put")
        self.sessions[sender] = state

    async def send(self, recipient, text):
        self.calls.append("send")

    async def record(self, event):
        self.calls.append("record")

    async def close(self):
        self.calls.append("close")


class TestScenario:
    @pytest.mark.asyncio
    async def test_menu_pricing_buy_fallback(self, engine, store, transport, sink):
        result = await engine.handle(SENDER, "hi")
        assert result.next_state.step == SessionStep.MENU_SENT
        assert "Please choose an option" in transport.outbox[-1][1]

        result = await engine.handle(SENDER, "2")
        assert result.next_state.step == SessionStep.OPTION_SELECTED
        assert result.next_state.selected_option == 2
        assert result.next_state.last_choice == 2
        assert "Pricing & Plans" in transport.outbox[-1][1]

        result = await engine.handle(SENDER, "buy")
        assert result.event.status_tag == StatusTag.HOT_LEAD
        assert result.next_state.step == SessionStep.OPTION_SELECTED

        result = await engine.handle(SENDER, "xyz")
        assert "didn't quite understand" in transport.outbox[-1][1]
        assert result.event.status_tag == StatusTag.NEEDS_HELP

        assert [e.status_tag for e in sink.events] == [
            StatusTag.ENGAGED, StatusTag.INTERESTED, StatusTag.HOT_LEAD, StatusTag.NEEDS_HELP,
        ]
        stored = await store.get(SENDER)
        assert stored == result.next_state

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["xyz", "2", "", "what is this?", "hello"])
    async def test_first_message_gets_menu(self, engine, transport, text):
        result = await engine.handle(SENDER, text)
        assert result.next_state.step == SessionStep.MENU_SENT
        assert "Please choose an option" in transport.outbox[-1][1]

    @pytest.mark.asyncio
    async def test_joined_at_set_once(self, engine, store):
        await engine.handle(SENDER, "hi")
        await engine.handle(SENDER, "1")
        state = await store.get(SENDER)
        assert state.joined_at == JOINED_AT
        assert state.last_active_at > JOINED_AT

    @pytest.mark.asyncio
    async def test_name_reintroduction_overwrites(self, engine, store):
        await engine.handle(SENDER, "hi")
        await engine.handle(SENDER, "my name is Asha")
        await engine.handle(SENDER, "Actually I am Asha Nair")
        state = await store.get(SENDER)
        assert state.display_name == "Asha Nair"
        assert state.step == SessionStep.MENU_SENT

    @pytest.mark.asyncio
    async def test_restart_from_option(self, engine, store):
        await engine.handle(SENDER, "hi")
        await engine.handle(SENDER, "5")
        result = await engine.handle(SENDER, "menu")
        assert result.next_state.step == SessionStep.MENU_SENT
        assert result.next_state.last_choice == 5


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_json_store_resumes_conversation(self, tmp_path, transport, sink):
        path = tmp_path / "users.json"
        first = SessionEngine(JsonFileSessionStore(str(path)), transport, sink, clock=FakeClock())
        await first.handle(SENDER, "hi")

        second = SessionEngine(JsonFileSessionStore(str(path)), transport, sink, clock=FakeClock())
        result = await second.handle(SENDER, "3")
        assert result.next_state.step == SessionStep.OPTION_SELECTED
        assert "Schedule Demo" in result.reply


class TestSideEffectOrder:
    @pytest.mark.asyncio
    async def test_persist_send_record(self):
        recorder = OrderRecorder()
        engine = SessionEngine(recorder, recorder, recorder, clock=FakeClock())
        await engine.handle(SENDER, "hi")
        assert recorder.calls == ["get", "put", "send", "record"]


class TestFailures:
    @pytest.mark.asyncio
    async def test_store_get_failure_drops_message(self, transport, sink):
        engine = SessionEngine(FailingStore(fail_get=True), transport, sink, clock=FakeClock())
        assert await engine.handle(SENDER, "hi") is None
        assert transport.outbox == []
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_store_put_failure_drops_before_send(self, transport, sink):
        engine = SessionEngine(FailingStore(fail_put=True), transport, sink, clock=FakeClock())
        assert await engine.handle(SENDER, "hi") is None
        assert transport.outbox == []
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_delivery_failure_keeps_state_and_logs_event(self, store, sink):
        transport = RecordingTransport()
        transport.connected = False
        engine = SessionEngine(store, transport, sink, clock=FakeClock())
        result = await engine.handle(SENDER, "hi")
        assert result is not None
        assert (await store.get(SENDER)).step == SessionStep.MENU_SENT
        assert len(sink.events) == 1

    @pytest.mark.asyncio
    async def test_twilio_network_failure_still_records_event(self, store, sink):
        client = SimpleNamespace(messages=UnreachableMessages())
        transport = TwilioWhatsAppTransport("AC123", "token", "+14155238886", client=client)
        engine = SessionEngine(store, transport, sink, clock=FakeClock())
        result = await engine.handle(SENDER, "hi")
        assert result is not None
        assert (await store.get(SENDER)).step == SessionStep.MENU_SENT
        assert len(sink.events) == 1

    @pytest.mark.asyncio
    async def test_non_object_store_file_drops_message(self, tmp_path, transport, sink):
        path = tmp_path / "users.json"
        path.write_text("[]")
        engine = SessionEngine(JsonFileSessionStore(str(path)), transport, sink, clock=FakeClock())
        assert await engine.handle(SENDER, "hi") is None
        assert transport.outbox == []
        assert sink.events == []

    @pytest.mark.asyncio
    async def test_sink_failure_is_ignored(self, store, transport):
        engine = SessionEngine(store, transport, FailingSink(), clock=FakeClock())
        result = await engine.handle(SENDER, "hi")
        assert result is not None
        assert len(transport.outbox) == 1
        assert (await store.get(SENDER)).step == SessionStep.MENU_SENT

    @pytest.mark.asyncio
    async def test_store_timeout_drops_message(self, transport, sink):
        engine = SessionEngine(SlowStore(), transport, sink, io_timeout_sec=0.05, clock=FakeClock())
        assert await engine.handle(SENDER, "hi") is None
        assert transport.outbox == []

    @pytest.mark.asyncio
    async def test_internal_errors_never_reach_chat(self, store, sink):
        transport = RecordingTransport()
        engine = SessionEngine(store, transport, FailingSink(), clock=FakeClock())
        await engine.handle(SENDER, "hi")
        assert "sheet offline" not in transport.outbox[-1][1]


class TestConcurrency:
    @pytest.mark.asyncio
    async def test_same_sender_is_serialized(self, transport, sink):
        active = {"count": 0, "max": 0}

        class TrackingStore(InMemorySessionStore):
            async def get(self, sender):
                active["count"] += 1
                active["max"] = max(active["max"], active["count"])
                await asyncio.sleep(0.01)
                return await super().get(sender)

            async def put(self, sender, state):
                await asyncio.sleep(0.01)
                await super().put(sender, state)
                active["count"] -= 1

        store = TrackingStore()
        engine = SessionEngine(store, transport, sink, clock=FakeClock())
        await asyncio.gather(*(engine.handle(SENDER, "hi") for _ in range(5)))
        assert active["max"] == 1
        assert len(transport.outbox) == 5

    @pytest.mark.asyncio
    async def test_menu_then_choice_race_resolves_in_order(self, engine, store):
        await asyncio.gather(engine.handle(SENDER, "hi"), engine.handle(SENDER, "4"))
        state = await store.get(SENDER)
        assert state.step == SessionStep.OPTION_SELECTED
        assert state.last_choice == 4

    @pytest.mark.asyncio
    async def test_different_senders_run_concurrently(self, transport, sink):
        started = asyncio.Event()
        release = asyncio.Event()

        class BlockingStore(InMemorySessionStore):
            async def get(self, sender):
                if sender == SENDER:
                    started.set()
                    await release.wait()
                return await super().get(sender)

        engine = SessionEngine(BlockingStore(), transport, sink, clock=FakeClock())
        blocked = asyncio.create_task(engine.handle(SENDER, "hi"))
        await started.wait()
        other = await engine.handle(OTHER_SENDER, "hi")
        assert other is not None
        assert transport.replies_to(OTHER_SENDER)
        release.set()
        await blocked

    @pytest.mark.asyncio
    async def test_locks_released_after_handling(self, engine):
        await engine.handle(SENDER, "hi")
        assert engine._locks == {}


class TestShutdown:
    @pytest.mark.asyncio
    async def test_rejects_after_shutdown(self, engine):
        await engine.shutdown()
        assert not engine.accepting
        with pytest.raises(EngineClosedError):
            await engine.handle(SENDER, "hi")

    @pytest.mark.asyncio
    async def test_shutdown_waits_for_in_flight(self, transport, sink):
        release = asyncio.Event()

        class GatedStore(InMemorySessionStore):
            async def get(self, sender):
                await release.wait()
                return await super().get(sender)

        engine = SessionEngine(GatedStore(), transport, sink, clock=FakeClock())
        task = asyncio.create_task(engine.handle(SENDER, "hi"))
        await asyncio.sleep(0)
        assert engine.in_flight == 1

        closing = asyncio.create_task(engine.shutdown())
        await asyncio.sleep(0.01)
        assert not closing.done()

        release.set()
        await closing
        assert (await task) is not None
        assert len(transport.outbox) == 1

    @pytest.mark.asyncio
    async def test_context_manager_releases_resources(self):
        recorder = OrderRecorder()
        async with SessionEngine(recorder, recorder, recorder, clock=FakeClock()) as engine:
            await engine.handle(SENDER, "hi")
        assert recorder.calls[-3:] == ["close", "close", "close"]
