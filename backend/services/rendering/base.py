"""Renderer interface and composition input validation."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from pathlib import Path
from typing import ClassVar

from shared.exceptions import AssetMismatchError
from shared.http_client import AsyncHTTPClient
from shared.logging_utils import setup_logging
from shared.models import CompositionInput

logger = setup_logging("renderer")

ProgressCallback = Callable[[float], None]


def is_remote(reference: str) -> bool:
    return reference.startswith(("http://", "https://"))


class Renderer(ABC):
    """Turns a composition input into a video file."""

    name: ClassVar[str] = "renderer"

    def __init__(self, reachability_timeout: int = 15) -> None:
        self.reachability_timeout = reachability_timeout

    async def prepare(self, composition: CompositionInput) -> None:
        """
        Validate a composition before rendering.

        Raises:
            AssetMismatchError: if asset counts disagree with the question
                count or any referenced asset cannot be reached.
        """
        question_count = len(composition.questions)

        if len(composition.background_images) < question_count + 1:
            raise AssetMismatchError(
                f"Expected at least {question_count + 1} background images, "
                f"got {len(composition.background_images)}"
            )
        if len(composition.timing.questions) != question_count:
            raise AssetMismatchError(
                f"Question timing has {len(composition.timing.questions)} entries "
                f"for {question_count} questions"
            )
        if len(composition.timing.answers) != question_count:
            raise AssetMismatchError(
                f"Answer timing has {len(composition.timing.answers)} entries "
                f"for {question_count} questions"
            )
        audio = composition.audio_files
        if len(audio.questions) != question_count or len(audio.answers) != question_count:
            raise AssetMismatchError(
                f"Narration has {len(audio.questions)} question and {len(audio.answers)} "
                f"answer clips for {question_count} questions"
            )

        references = [*composition.background_images, *audio.all_paths()]
        missing = await self._unreachable(references)
        if missing:
            raise AssetMismatchError(f"Unreachable assets: {', '.join(missing)}")

        logger.info("Composition validated: %d questions, %d assets", question_count, len(references))

    async def _unreachable(self, references: list[str]) -> list[str]:
        missing = [ref for ref in references if not is_remote(ref) and not Path(ref).is_file()]
        remote = [ref for ref in references if is_remote(ref)]
        if remote:
            async with AsyncHTTPClient(provider=self.name, timeout=self.reachability_timeout) as client:
                for url in remote:
                    if not await client.is_reachable(url):
                        missing.append(url)
        return missing

    @abstractmethod
    async def render(
        self,
        composition: CompositionInput,
        output_path: str,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """Render the video to ``output_path`` and return that path."""
