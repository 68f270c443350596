"""Unit tests for change-event trigger routing."""

import pytest

from iplay import collection_names as cn
from iplay.storage import InMemoryBucket
from iplay.store import ChangeEvent, ChangePublisher, InMemoryDocumentStore
from iplay.triggers import TriggerDispatcher
from iplay.triggers.worker import process_messages


class RecordingPublisher(ChangePublisher):
    def __init__(self) -> None:
        self.events: list[ChangeEvent] = []

    async def publish(self, event: ChangeEvent) -> None:
        self.events.append(event)


class FakeRedis:
    def __init__(self) -> None:
        self.acked: list[tuple[str, str, str]] = []

    async def xack(self, stream, group, msg_id):
        self.acked.append((stream, group, msg_id))
        return 1


@pytest.fixture
def dispatcher() -> TriggerDispatcher:
    return TriggerDispatcher(InMemoryDocumentStore(), InMemoryBucket(), verify_base_url="https://iplay.app/verify")


class TestRouting:
    def test_streams(self, dispatcher: TriggerDispatcher):
        assert dispatcher.streams == [
            "documents:users:created",
            "documents:users:deleted",
            "documents:classrooms:deleted",
        ]

    @pytest.mark.asyncio
    async def test_unrouted_event_is_ignored(self, dispatcher: TriggerDispatcher):
        event = ChangeEvent(collection=cn.USERS, document_id="u1", kind="updated", before={}, after={})
        assert await dispatcher.dispatch(event) is False

    @pytest.mark.asyncio
    async def test_user_created_issues_certificates(self, dispatcher: TriggerDispatcher):
        event = ChangeEvent(
            collection=cn.USERS,
            document_id="u1",
            kind="created",
            after={"displayName": "Asha", "progressSummary": {"realm_design": {"completed": True}}},
        )
        assert await dispatcher.dispatch(event) is True
        assert await dispatcher.store.get(cn.CERTIFICATES, "u1_realm_design") is not None

    @pytest.mark.asyncio
    async def test_user_deleted_cleans_up(self, dispatcher: TriggerDispatcher):
        store: InMemoryDocumentStore = dispatcher.store  # type: ignore[assignment]
        store.seed(cn.PROGRESS, "p1", {"userId": "u1"})
        store.seed(cn.CLASSROOMS, "c1", {"studentIds": ["u1"]})

        event = ChangeEvent(collection=cn.USERS, document_id="u1", kind="deleted", before={"name": "x"})
        await dispatcher.dispatch(event)

        assert store.dump(cn.PROGRESS) == {}
        assert store.dump(cn.CLASSROOMS)["c1"]["studentIds"] == []

    @pytest.mark.asyncio
    async def test_classroom_deleted_uses_before_snapshot(self, dispatcher: TriggerDispatcher):
        store: InMemoryDocumentStore = dispatcher.store  # type: ignore[assignment]
        store.seed(cn.USERS, "s1", {"classroomIds": ["c1"]})

        event = ChangeEvent(collection=cn.CLASSROOMS, document_id="c1", kind="deleted", before={"studentIds": ["s1"]})
        await dispatcher.dispatch(event)

        assert store.dump(cn.USERS)["s1"]["classroomIds"] == []

    @pytest.mark.asyncio
    async def test_handler_failure_is_swallowed(self, dispatcher: TriggerDispatcher, monkeypatch):
        async def broken(collection, *filters, limit=None):
            raise RuntimeError("store offline")

        monkeypatch.setattr(dispatcher.store, "query", broken)
        event = ChangeEvent(collection=cn.USERS, document_id="u1", kind="deleted")
        assert await dispatcher.dispatch(event) is True


class TestEndToEnd:
    @pytest.mark.asyncio
    async def test_deleting_a_user_through_the_store_cascades(self):
        publisher = RecordingPublisher()
        store = InMemoryDocumentStore(publisher=publisher)
        store.seed(cn.USERS, "u1", {"name": "Asha"})
        store.seed(cn.DAILY_CHALLENGE_ATTEMPTS, "a1", {"userId": "u1"})
        dispatcher = TriggerDispatcher(store, InMemoryBucket(), verify_base_url="https://iplay.app/verify")

        await store.delete(cn.USERS, "u1")
        for event in list(publisher.events):
            await dispatcher.dispatch(event)

        assert store.dump(cn.DAILY_CHALLENGE_ATTEMPTS) == {}


class TestProcessMessages:
    @pytest.mark.asyncio
    async def test_dispatches_and_acks_every_message(self, dispatcher: TriggerDispatcher):
        redis = FakeRedis()
        good = ChangeEvent(collection=cn.USERS, document_id="u1", kind="deleted")
        messages = [
            ("1-0", {"data": good.model_dump_json()}),
            ("2-0", {"data": "not json"}),
        ]

        handled = await process_messages(redis, dispatcher, "documents:users:deleted", messages)

        assert handled == 1
        assert [a[2] for a in redis.acked] == ["1-0", "2-0"]
        assert all(a[1] == "trigger-consumers" for a in redis.acked)
