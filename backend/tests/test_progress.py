import pytest

from services.progress import ProgressBroker
from shared.enums import JobStatus
from shared.models import ProgressUpdate


class StubWebSocket:
    def __init__(self, fail: bool = False) -> None:
        self.accepted = False
        self.closed = False
        self.fail = fail
        self.sent_messages = []

    async def accept(self) -> None:
        self.accepted = True

    async def close(self) -> None:
        self.closed = True

    async def send_json(self, message: dict) -> None:
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent_messages.append(message)


def _update(job_id: str, progress: int, status: JobStatus = JobStatus.PROCESSING) -> ProgressUpdate:
    return ProgressUpdate(job_id=job_id, status=status, progress=progress, current_step="Working...")


@pytest.mark.asyncio
async def test_publish_reaches_only_subscribers() -> None:
    broker = ProgressBroker()
    websocket = StubWebSocket()

    client_id = await broker.connect(websocket, "client-test")
    assert websocket.accepted is True
    await broker.subscribe(client_id, "job-1")

    await broker.publish(_update("job-2", 20))
    assert websocket.sent_messages == []

    await broker.publish(_update("job-1", 40))
    assert len(websocket.sent_messages) == 1
    message = websocket.sent_messages[0]
    assert message["job_id"] == "job-1"
    assert message["progress"] == 40
    assert message["status"] == "processing"
    assert isinstance(message["timestamp"], str)

    await broker.disconnect(client_id)
    assert websocket.closed is True


@pytest.mark.asyncio
async def test_subscribe_replays_latest_event() -> None:
    broker = ProgressBroker()
    await broker.publish(_update("job-1", 20))
    await broker.publish(_update("job-1", 60))

    websocket = StubWebSocket()
    client_id = await broker.connect(websocket)
    await broker.subscribe(client_id, "job-1")

    assert [m["progress"] for m in websocket.sent_messages] == [60]
    assert broker.latest("job-1")["progress"] == 60


@pytest.mark.asyncio
async def test_subscribe_requires_connection() -> None:
    broker = ProgressBroker()
    with pytest.raises(RuntimeError):
        await broker.subscribe("ghost", "job-1")


@pytest.mark.asyncio
async def test_failed_send_drops_subscriber() -> None:
    broker = ProgressBroker()
    broken = StubWebSocket(fail=True)
    healthy = StubWebSocket()

    broken_id = await broker.connect(broken, "broken")
    healthy_id = await broker.connect(healthy, "healthy")
    await broker.subscribe(broken_id, "job-1")
    await broker.subscribe(healthy_id, "job-1")

    await broker.publish(_update("job-1", 80))
    await broker.publish(_update("job-1", 90))

    assert broken.closed is True
    assert [m["progress"] for m in healthy.sent_messages] == [80, 90]


@pytest.mark.asyncio
async def test_forget_and_reset() -> None:
    broker = ProgressBroker()
    websocket = StubWebSocket()
    client_id = await broker.connect(websocket)
    await broker.subscribe(client_id, "job-1")
    await broker.publish(_update("job-1", 100, JobStatus.COMPLETED))

    await broker.forget("job-1")
    assert broker.latest("job-1") is None

    await broker.reset()
    assert websocket.closed is True
    await broker.publish(_update("job-1", 100, JobStatus.COMPLETED))
    assert len(websocket.sent_messages) == 1
