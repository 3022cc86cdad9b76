"""
Error taxonomy for the video generation pipeline.
"""


class PipelineError(Exception):
    """Base class for errors raised while generating a quiz video."""


class ProviderError(PipelineError):
    """An asset provider returned a non-success response or timed out."""

    def __init__(self, provider: str, message: str, status: int | None = None) -> None:
        self.provider = provider
        self.status = status
        self.message = message
        status_part = f" ({status})" if status is not None else ""
        super().__init__(f"{provider} API error{status_part}: {message}")


class AssetMismatchError(PipelineError):
    """Composition input failed validation before rendering."""


class RenderError(PipelineError):
    """The renderer failed while encoding the video."""


class JobNotFoundError(PipelineError):
    """Unknown or expired job ID."""

    def __init__(self, job_id: str) -> None:
        self.job_id = job_id
        super().__init__(f"Job {job_id} not found")


class AssetsAlreadySetError(PipelineError):
    """Job assets can be attached only once."""
