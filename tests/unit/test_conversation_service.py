import asyncio
import threading

from shopper.dialog.service import ConversationService
from shopper.dialog.types import EventKind, InboundEvent, SenderMetadata
from shopper.memory.models import DialogState


def test_state_survives_between_turns(service, state_store):
    async def run():
        await service.handle("conv-1", InboundEvent(kind=EventKind.CONVERSATION_START, sender=SenderMetadata(name="Ana")))
        await service.handle("conv-1", InboundEvent(kind=EventKind.MESSAGE, text="1"))
        return await service.handle("conv-1", InboundEvent(kind=EventKind.MESSAGE, text="11072088"))

    result = asyncio.run(run())

    assert result.state is DialogState.CHOOSE_RECOMMENDED_ITEM
    stored = state_store.load("conv-1")
    assert stored.display_name == "Ana"
    assert [item.item_id for item in stored.selected_items] == ["11072088"]


def test_unknown_conversation_starts_with_defaults(service, state_store):
    result = asyncio.run(service.handle("fresh", InboundEvent(kind=EventKind.MESSAGE, text="hello")))

    assert result.state is DialogState.CHOOSE_CATEGORY
    assert state_store.load("fresh").turn_state is DialogState.CHOOSE_CATEGORY


def test_conversations_are_isolated(service, state_store):
    async def run():
        await service.handle("a", InboundEvent(kind=EventKind.CONVERSATION_START))
        await service.handle("b", InboundEvent(kind=EventKind.CONVERSATION_START))
        await asyncio.gather(
            service.handle("a", InboundEvent(kind=EventKind.MESSAGE, text="1")),
            service.handle("b", InboundEvent(kind=EventKind.MESSAGE, text="none")),
        )

    asyncio.run(run())

    assert state_store.load("a").turn_state is DialogState.SELECTED_CATEGORY_ITEM
    assert state_store.load("b").turn_state is DialogState.END


def test_metrics_count_turns(service):
    asyncio.run(service.handle("m", InboundEvent(kind=EventKind.CONVERSATION_START)))

    snapshot = service.metrics.snapshot()
    assert snapshot.total_turns == 1
    assert snapshot.event_kinds == {"conversation-start": 1}
    assert snapshot.resulting_states == {"CHOOSE_CATEGORY": 1}


class HeldGateway:
    """Delegates to another gateway, pausing top-seller lookups until released."""

    def __init__(self, inner, release=None, delay=0.05):
        self.inner = inner
        self.release = release
        self.delay = delay

    async def fetch_top_sellers(self, category_code):
        if self.release is not None:
            await self.release.wait()
        else:
            await asyncio.sleep(self.delay)
        return await self.inner.fetch_top_sellers(category_code)

    async def fetch_recommendations(self, item_id):
        return await self.inner.fetch_recommendations(item_id)

    async def fetch_item(self, item_id):
        return await self.inner.fetch_item(item_id)


def test_turns_of_one_conversation_run_in_order(service, gateway, state_store):
    service.machine.gateway = HeldGateway(gateway)

    async def run():
        await service.handle("conv", InboundEvent(kind=EventKind.CONVERSATION_START))
        return await asyncio.gather(
            service.handle("conv", InboundEvent(kind=EventKind.MESSAGE, text="1")),
            service.handle("conv", InboundEvent(kind=EventKind.MESSAGE, text="11072088")),
        )

    listing, chosen = asyncio.run(run())

    assert listing.state is DialogState.SELECTED_CATEGORY_ITEM
    # The second turn saw the state saved by the first one.
    assert chosen.state is DialogState.CHOOSE_RECOMMENDED_ITEM
    stored = state_store.load("conv")
    assert [item.item_id for item in stored.selected_items] == ["11072088"]


def test_waiting_conversation_does_not_block_others(service, gateway):
    async def run():
        release = asyncio.Event()
        service.machine.gateway = HeldGateway(gateway, release=release)
        await service.handle("slow", InboundEvent(kind=EventKind.CONVERSATION_START))
        await service.handle("fast", InboundEvent(kind=EventKind.CONVERSATION_START))

        slow = asyncio.create_task(service.handle("slow", InboundEvent(kind=EventKind.MESSAGE, text="1")))
        await asyncio.sleep(0)
        fast = await service.handle("fast", InboundEvent(kind=EventKind.MESSAGE, text="none"))
        still_waiting = not slow.done()
        release.set()
        return fast, still_waiting, await slow

    fast, still_waiting, slow = asyncio.run(run())

    assert fast.state is DialogState.END
    assert still_waiting
    assert slow.state is DialogState.SELECTED_CATEGORY_ITEM


def test_conversation_locks_are_dropped_when_idle(service):
    async def run():
        await asyncio.gather(
            *(service.handle(f"c{n % 3}", InboundEvent(kind=EventKind.CONVERSATION_START)) for n in range(6))
        )

    asyncio.run(run())

    assert service._locks == {}
    assert service._lock_users == {}


class ThreadRecordingStore:
    def __init__(self, inner):
        self.inner = inner
        self.threads = set()

    def load(self, conversation_id):
        self.threads.add(threading.get_ident())
        return self.inner.load(conversation_id)

    def save(self, conversation_id, state):
        self.threads.add(threading.get_ident())
        self.inner.save(conversation_id, state)


def test_state_store_runs_off_the_event_loop_thread(state_store, machine):
    store = ThreadRecordingStore(state_store)
    service = ConversationService(store, machine)

    asyncio.run(service.handle("t", InboundEvent(kind=EventKind.CONVERSATION_START)))

    assert store.threads
    assert threading.get_ident() not in store.threads
