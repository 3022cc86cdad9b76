"""ffmpeg-based quiz video renderer."""

from __future__ import annotations

import asyncio
from collections import deque
from dataclasses import dataclass
from pathlib import Path

from shared.config import config as service_config
from shared.exceptions import RenderError
from shared.file_utils import ensure_directory, remove_file
from shared.logging_utils import setup_logging
from shared.models import CompositionInput

from .base import ProgressCallback, Renderer

logger = setup_logging("ffmpeg-renderer")

AUDIO_SAMPLE_RATE = 44100


@dataclass
class Scene:
    """One still-image segment of the video."""

    image: str
    duration: float
    audio: str | None = None


class ProgressTracker:
    """Turn ``-progress`` output into throttled completion fractions."""

    def __init__(self, total_seconds: float, callback: ProgressCallback | None, step: float = 0.05) -> None:
        self.total_seconds = max(total_seconds, 0.001)
        self.callback = callback
        self.step = step
        self.last_reported = 0.0

    def feed(self, line: str) -> None:
        key, _, value = line.strip().partition("=")
        # ffmpeg writes microseconds under both names
        if key not in ("out_time_us", "out_time_ms"):
            return
        try:
            microseconds = int(value)
        except ValueError:
            return
        fraction = min(1.0, max(0.0, microseconds / 1_000_000 / self.total_seconds))
        if fraction >= 1.0:
            # Reported once the process exits successfully
            return
        if fraction - self.last_reported >= self.step:
            self._report(fraction)

    def finish(self) -> None:
        self._report(1.0)

    def _report(self, fraction: float) -> None:
        self.last_reported = fraction
        if self.callback:
            self.callback(fraction)


class FFmpegRenderer(Renderer):
    """Concatenate still-image scenes with their narration into an H.264 MP4."""

    name = "ffmpeg"

    def __init__(
        self,
        ffmpeg_binary: str | None = None,
        width: int | None = None,
        height: int | None = None,
        fps: int | None = None,
        crf: int | None = None,
        progress_step: float | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.ffmpeg_binary = ffmpeg_binary or service_config.get("ffmpeg_binary", "ffmpeg")
        self.width = width or int(service_config.get_pipeline_value("video.width", 1080))
        self.height = height or int(service_config.get_pipeline_value("video.height", 1920))
        self.fps = fps or int(service_config.get_pipeline_value("video.fps", 30))
        self.crf = crf if crf is not None else int(service_config.get_pipeline_value("video.crf", 18))
        self.progress_step = progress_step or float(
            service_config.get_pipeline_value("video.progress_report_step", 0.05)
        )

    @staticmethod
    def build_scenes(composition: CompositionInput) -> list[Scene]:
        """Intro, then question / timer / answer per question, then outro."""
        timing = composition.timing
        audio = composition.audio_files
        intro_bg = composition.background_images[0]

        scenes = [Scene(intro_bg, timing.intro, audio.intro.path if audio.intro else None)]
        for index in range(len(composition.questions)):
            background = composition.background_images[index + 1]
            scenes.append(Scene(background, timing.questions[index], audio.questions[index].path))
            scenes.append(Scene(background, timing.timer))
            scenes.append(Scene(background, timing.answers[index], audio.answers[index].path))
        scenes.append(Scene(intro_bg, timing.outro, audio.outro.path if audio.outro else None))
        return scenes

    def build_command(self, scenes: list[Scene], output_path: str) -> list[str]:
        inputs: list[str] = []
        filters: list[str] = []
        concat_inputs = ""
        input_index = 0

        for position, scene in enumerate(scenes):
            duration = f"{scene.duration:.3f}"
            inputs += ["-loop", "1", "-t", duration, "-i", scene.image]
            filters.append(
                f"[{input_index}:v]scale={self.width}:{self.height}:force_original_aspect_ratio=increase,"
                f"crop={self.width}:{self.height},setsar=1,fps={self.fps},format=yuv420p,"
                f"trim=duration={duration},setpts=PTS-STARTPTS[v{position}]"
            )
            input_index += 1

            if scene.audio:
                inputs += ["-i", scene.audio]
                filters.append(
                    f"[{input_index}:a]aformat=sample_rates={AUDIO_SAMPLE_RATE}:channel_layouts=stereo,"
                    f"apad,atrim=duration={duration},asetpts=PTS-STARTPTS[a{position}]"
                )
                input_index += 1
            else:
                filters.append(
                    f"anullsrc=r={AUDIO_SAMPLE_RATE}:cl=stereo,"
                    f"atrim=duration={duration},asetpts=PTS-STARTPTS[a{position}]"
                )
            concat_inputs += f"[v{position}][a{position}]"

        filters.append(f"{concat_inputs}concat=n={len(scenes)}:v=1:a=1[outv][outa]")

        return [
            self.ffmpeg_binary,
            "-y",
            "-hide_banner",
            "-nostats",
            "-progress",
            "pipe:1",
            *inputs,
            "-filter_complex",
            ";".join(filters),
            "-map",
            "[outv]",
            "-map",
            "[outa]",
            "-c:v",
            "libx264",
            "-crf",
            str(self.crf),
            "-pix_fmt",
            "yuv420p",
            "-r",
            str(self.fps),
            "-c:a",
            "aac",
            "-b:a",
            "192k",
            "-movflags",
            "+faststart",
            output_path,
        ]

    async def render(
        self,
        composition: CompositionInput,
        output_path: str,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        scenes = self.build_scenes(composition)
        command = self.build_command(scenes, output_path)
        tracker = ProgressTracker(composition.timing.total_duration, on_progress, self.progress_step)
        ensure_directory(Path(output_path).parent)

        logger.info("Rendering %d scenes (%.1fs) to %s", len(scenes), composition.timing.total_duration, output_path)
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (FileNotFoundError, PermissionError) as exc:
            raise RenderError(f"Cannot start ffmpeg: {exc}") from exc

        stderr_tail: deque[str] = deque(maxlen=20)

        async def _drain_stderr() -> None:
            assert process.stderr is not None
            async for raw in process.stderr:
                line = raw.decode(errors="replace").strip()
                if line:
                    stderr_tail.append(line)

        stderr_task = asyncio.create_task(_drain_stderr())
        try:
            assert process.stdout is not None
            async for raw in process.stdout:
                tracker.feed(raw.decode(errors="replace"))
            await stderr_task
            returncode = await process.wait()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
                await process.wait()
            stderr_task.cancel()
            remove_file(output_path)
            raise

        if returncode != 0:
            remove_file(output_path)
            last_line = stderr_tail[-1] if stderr_tail else "no output"
            raise RenderError(f"ffmpeg exited with code {returncode}: {last_line}")

        tracker.finish()
        logger.info("Render finished: %s", output_path)
        return output_path
