"""Error taxonomy shared by the validator, renderer, and job manager."""


class MediaFactoryError(Exception):
    """Base class for all mediafactory errors."""


class ValidationError(MediaFactoryError, ValueError):
    """A manifest or request field is invalid.

    Carries the dotted path of the offending field (for example
    ``manifest.scenes[2].transition.transitionDurationSec``) so callers
    can surface it verbatim.
    """

    def __init__(self, field_path: str, message: str):
        self.field_path = field_path
        self.message = message
        super().__init__(f"{field_path} {message}")


class ProbeError(MediaFactoryError):
    """The media probe could not determine a duration."""


class RenderError(MediaFactoryError):
    """An ffmpeg stage exited non-zero or timed out."""

    def __init__(self, stage: str, message: str, output: str = ""):
        self.stage = stage
        self.output = output
        super().__init__(f"{message} (stage: {stage})")


class PublishError(MediaFactoryError):
    """The publishing destination rejected an upload."""


class JobNotFoundError(MediaFactoryError, KeyError):
    """No job is registered under the given id."""

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(job_id)

    def __str__(self):
        return f"Unknown job id: {self.job_id}"
