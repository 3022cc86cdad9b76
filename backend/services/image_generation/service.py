"""Background image generation for quiz videos."""

from __future__ import annotations

from collections.abc import Awaitable, Callable

from shared.concurrency import gather_all_or_nothing, remove_planned_outputs
from shared.config import config as service_config
from shared.file_utils import remove_files
from shared.logging_utils import setup_logging
from shared.models import Question

from .drivers import FalImageDriver, ImageDriver, StubImageDriver
from .drivers.fal import FAL_IDEOGRAM_URL

logger = setup_logging("image-generation-service")

DEFAULT_DRIVER = "fal"
DEFAULT_KEYWORDS = "quiz question"


def _frame_settings() -> dict:
    return {
        "width": int(service_config.get_pipeline_value("video.width", 1080)),
        "height": int(service_config.get_pipeline_value("video.height", 1920)),
        "quality": int(service_config.get_pipeline_value("video.image_quality", 85)),
    }


def load_image_driver(driver_name: str | None = None) -> ImageDriver:
    """Build the configured image driver, falling back to the stub."""
    name = (driver_name or service_config.get("image_provider", DEFAULT_DRIVER)).lower()

    if name == "fal" and service_config.get("fal_api_key"):
        return FalImageDriver(
            api_key=service_config.get("fal_api_key"),
            model_url=service_config.get("fal_model_url", FAL_IDEOGRAM_URL),
            timeout=int(service_config.get("provider_timeout", 30)),
            download_timeout=int(service_config.get("download_timeout", 15)),
            **_frame_settings(),
        )
    if name != "stub":
        logger.warning("Image provider '%s' is unknown or has no API key, falling back to stub", name)
    return StubImageDriver(**_frame_settings())


def extract_keywords(text: str, limit: int = 3) -> str:
    """First few meaningful words of a question, used to steer the image prompt."""
    words = [
        word
        for word in (raw.strip("?!.,;:\"'()") for raw in text.lower().split())
        if len(word) > 3 and not word.isdigit()
    ]
    return " ".join(words[:limit]) or DEFAULT_KEYWORDS


class ImageGenerationService:
    """Produce one intro background plus one background per question."""

    def __init__(self, driver: ImageDriver | None = None, concurrency: int | None = None) -> None:
        self.driver = driver or load_image_driver()
        self.concurrency = concurrency or int(service_config.get("provider_concurrency", 3))

    @staticmethod
    def build_prompts(topic: str, questions: list[Question]) -> list[tuple[str, str]]:
        """(filename stem, prompt) pairs: intro first, then one per question."""
        intro_prompt = service_config.get_pipeline_value(
            "images.intro_prompt",
            "Vibrant abstract background for a quiz about {topic}, bold colors, no text",
        )
        question_prompt = service_config.get_pipeline_value(
            "images.question_prompt",
            "Colorful background illustrating {keywords}, vertical format, no text",
        )

        prompts = [("intro-bg", intro_prompt.format(topic=topic))]
        for index, item in enumerate(questions, start=1):
            keywords = extract_keywords(item.question)
            prompts.append((f"question-{index}-bg", question_prompt.format(keywords=keywords, topic=topic)))
        return prompts

    async def generate_backgrounds(self, topic: str, questions: list[Question], output_dir: str) -> list[str]:
        """
        Generate ``len(questions) + 1`` backgrounds, intro first.

        If any image fails, images already written in this call are removed
        and the error propagates.
        """
        prompts = self.build_prompts(topic, questions)

        def _factory(prompt: str, stem: str) -> Callable[[], Awaitable[str]]:
            return lambda: self.driver.generate(prompt, output_dir, stem)

        def _cleanup(finished: list[str]) -> None:
            removed = remove_files(finished)
            removed += remove_planned_outputs(output_dir, [stem for stem, _ in prompts])
            logger.info("Removed %d partial background image(s) from %s", removed, output_dir)

        paths = await gather_all_or_nothing(
            [_factory(prompt, stem) for stem, prompt in prompts],
            limit=self.concurrency,
            on_failure=_cleanup,
        )
        logger.info("Generated %d background images in %s", len(paths), output_dir)
        return paths
