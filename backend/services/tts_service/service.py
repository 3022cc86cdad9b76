"""Application-level Text-to-Speech service wrapper."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from shared.concurrency import gather_all_or_nothing, remove_planned_outputs
from shared.config import config as service_config
from shared.enums import SegmentKind
from shared.file_utils import remove_files
from shared.logging_utils import setup_logging
from shared.media_utils import estimate_speech_duration, probe_duration
from shared.models import AudioWithDuration, NarrationAudio, Question

from .drivers import ElevenLabsTTSEngine, OpenAITTSEngine, StubTTSEngine, TTSEngine

logger = setup_logging("tts-service")

DEFAULT_DRIVER = "elevenlabs"


def load_tts_driver(driver_name: str | None = None) -> TTSEngine:
    """Build the configured TTS driver."""
    name = (driver_name or service_config.get("tts_provider", DEFAULT_DRIVER)).lower()
    timeout = int(service_config.get("provider_timeout", 30))

    if name == "elevenlabs" and service_config.get("elevenlabs_api_key"):
        return ElevenLabsTTSEngine(
            api_key=service_config.get("elevenlabs_api_key"),
            voice_id=service_config.get("elevenlabs_voice_id"),
            model_id=service_config.get("elevenlabs_model"),
            timeout=timeout,
        )
    if name == "openai" and service_config.get("openai_api_key"):
        return OpenAITTSEngine(
            api_key=service_config.get("openai_api_key"),
            voice=service_config.get("openai_tts_voice", "alloy"),
            model=service_config.get("openai_tts_model", "tts-1"),
            timeout=timeout,
        )
    if name != "stub":
        logger.warning("TTS provider '%s' is unknown or has no API key, falling back to stub", name)
    return StubTTSEngine(int(service_config.get_pipeline_value("narration.words_per_minute", 150)))


class TTSService:
    """Generate narration clips, each paired with its spoken duration."""

    def __init__(
        self,
        driver: TTSEngine | None = None,
        concurrency: int | None = None,
        ffprobe_binary: str | None = None,
    ) -> None:
        self.driver = driver or load_tts_driver()
        self.concurrency = concurrency or int(service_config.get("provider_concurrency", 3))
        self.ffprobe_binary = ffprobe_binary or service_config.get("ffprobe_binary", "ffprobe")
        self.words_per_minute = int(service_config.get_pipeline_value("narration.words_per_minute", 150))

    async def generate(self, text: str, output_dir: str, filename: str) -> AudioWithDuration:
        """Synthesize one clip and measure it."""
        result = await self.driver.synthesize(text, output_dir, filename)
        file_path = result["file_path"]

        duration = await probe_duration(file_path, self.ffprobe_binary)
        if duration is None and result.get("duration"):
            duration = float(result["duration"])
        if duration is None:
            duration = estimate_speech_duration(text, self.words_per_minute)
            logger.warning("Could not probe %s, estimated duration %.1fs from word count", file_path, duration)

        return AudioWithDuration(path=file_path, duration=duration)

    @staticmethod
    def narration_script(topic: str, questions: list[Question]) -> list[tuple[SegmentKind, str, str]]:
        """(segment, filename stem, text) for every clip, in playback order."""
        intro_template = service_config.get_pipeline_value(
            "narration.intro_template", "You won't guess it, you're out - {topic}"
        )
        answer_template = service_config.get_pipeline_value("narration.answer_template", "The answer is: {answer}")
        outro_text = service_config.get_pipeline_value(
            "narration.outro_text", "So how did you do? Share your score in the comments"
        )

        script = [(SegmentKind.INTRO, "intro", intro_template.format(topic=topic))]
        for index, item in enumerate(questions, start=1):
            script.append((SegmentKind.QUESTION, f"question-{index}", item.question))
        for index, item in enumerate(questions, start=1):
            script.append((SegmentKind.ANSWER, f"answer-{index}", answer_template.format(answer=item.answer)))
        script.append((SegmentKind.OUTRO, "outro", outro_text))
        return script

    async def generate_narration(self, topic: str, questions: list[Question], output_dir: str) -> NarrationAudio:
        """
        Generate every narration clip for a quiz.

        All-or-nothing: if any clip fails, every clip already written in this
        call is deleted before the error propagates.
        """
        script = self.narration_script(topic, questions)

        def _factory(text: str, stem: str) -> Callable[[], Awaitable[AudioWithDuration]]:
            return lambda: self.generate(text, output_dir, stem)

        def _cleanup(finished: list[AudioWithDuration]) -> None:
            removed = remove_files([clip.path for clip in finished])
            removed += remove_planned_outputs(output_dir, [stem for _, stem, _ in script])
            logger.info("Removed %d partial narration file(s) from %s", removed, output_dir)

        clips = await gather_all_or_nothing(
            [_factory(text, stem) for _, stem, text in script],
            limit=self.concurrency,
            on_failure=_cleanup,
        )

        narration = NarrationAudio()
        for (kind, _, _), clip in zip(script, clips):
            if kind is SegmentKind.INTRO:
                narration.intro = clip
            elif kind is SegmentKind.QUESTION:
                narration.questions.append(clip)
            elif kind is SegmentKind.ANSWER:
                narration.answers.append(clip)
            else:
                narration.outro = clip

        logger.info("Generated %d narration clips in %s", len(clips), output_dir)
        return narration
