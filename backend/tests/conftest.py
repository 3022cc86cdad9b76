import asyncio
import os
import sys
from pathlib import Path
from typing import Generator

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
PROJECT_ROOT = ROOT_DIR.parent
for path in (PROJECT_ROOT, ROOT_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from services.image_generation.drivers import ImageDriver, StubImageDriver
from services.jobs.orchestrator import VideoJobOrchestrator
from services.jobs.store import JobStore
from services.progress import ProgressBroker
from services.rendering.base import Renderer
from services.tts_service.drivers import StubTTSEngine, TTSEngine
from shared.config import config as service_config
from shared.models import Question

CONFIG_KEYS = (
    "media_root",
    "image_provider",
    "tts_provider",
    "fal_api_key",
    "elevenlabs_api_key",
    "openai_api_key",
    "ffprobe_binary",
    "provider_concurrency",
)


@pytest.fixture(autouse=True)
def test_environment(tmp_path_factory: pytest.TempPathFactory) -> Generator[Path, None, None]:
    """Isolate storage and force offline providers per test."""
    # Kept out of tmp_path so tests can treat that as an empty output directory
    media_root = tmp_path_factory.mktemp("media")

    saved = {key: service_config.config.get(key) for key in CONFIG_KEYS}
    os.environ["MEDIA_ROOT"] = str(media_root)

    service_config.set("media_root", str(media_root))
    service_config.set("image_provider", "stub")
    service_config.set("tts_provider", "stub")
    service_config.set("fal_api_key", None)
    service_config.set("elevenlabs_api_key", None)
    service_config.set("openai_api_key", None)
    # Durations then come from the driver, not from whatever ffprobe is installed
    service_config.set("ffprobe_binary", "ffprobe-unavailable")
    service_config.set("provider_concurrency", 3)

    try:
        yield media_root
    finally:
        for key, value in saved.items():
            service_config.set(key, value)


class FakeRenderer(Renderer):
    """Writes a small placeholder MP4 instead of invoking ffmpeg."""

    name = "fake"

    def __init__(self, fractions: tuple[float, ...] = (0.1, 0.5, 0.9, 1.0)) -> None:
        super().__init__()
        self.fractions = fractions
        self.rendered: list[str] = []

    async def render(self, composition, output_path, on_progress=None):
        for fraction in self.fractions:
            if on_progress:
                on_progress(fraction)
        Path(output_path).write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 2048)
        self.rendered.append(output_path)
        return output_path


class FailingTTSEngine(TTSEngine):
    """Succeeds for the first ``succeed`` calls, then raises."""

    name = "failing-tts"

    def __init__(self, succeed: int) -> None:
        self.succeed = succeed
        self.calls = 0
        self._delegate = StubTTSEngine()

    async def synthesize(self, text, output_dir, filename):
        self.calls += 1
        if self.calls > self.succeed:
            from shared.exceptions import ProviderError

            raise ProviderError("failing-tts", "quota exceeded", status=429)
        return await self._delegate.synthesize(text, output_dir, filename)


class FailingImageDriver(ImageDriver):
    name = "failing-image"

    async def generate(self, prompt, output_dir, filename):
        from shared.exceptions import ProviderError

        raise ProviderError(self.name, "upstream unavailable", status=503)


async def wait_until_terminal(orchestrator: VideoJobOrchestrator, job_id: str, timeout: float = 5.0):
    """Poll until the job finishes (or disappears) and return its last snapshot."""

    async def _poll():
        while True:
            job = orchestrator.get_job(job_id)
            if job is None or job.status.is_terminal:
                return job
            await asyncio.sleep(0.01)

    return await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def questions() -> list[Question]:
    return [
        Question(question="What is the capital of France?", answer="Paris"),
        Question(question="What is the capital of Japan?", answer="Tokyo"),
    ]


@pytest.fixture
def fake_renderer() -> FakeRenderer:
    return FakeRenderer()


@pytest.fixture
def orchestrator(test_environment: Path, fake_renderer: FakeRenderer) -> VideoJobOrchestrator:
    """Orchestrator wired to offline providers and a fake renderer."""
    from services.image_generation.service import ImageGenerationService
    from services.tts_service.service import TTSService

    instance = VideoJobOrchestrator(store=JobStore(), broker=ProgressBroker(), media_root=test_environment)
    instance.image_service = ImageGenerationService(driver=StubImageDriver(width=108, height=192))
    instance.tts_service = TTSService(driver=StubTTSEngine())
    instance.renderer = fake_renderer
    return instance
