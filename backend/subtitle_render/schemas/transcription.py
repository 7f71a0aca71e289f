"""Transcript shapes and the speech-recognition worker message protocol.

The transcription worker runs outside this service. It is driven with
``load`` and ``run`` requests and answers with ``loading``, ``progress``,
``ready``, ``complete`` and ``error`` messages. The ``complete`` result is the
transcript a render request carries.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

DeviceType = Literal["webgpu", "wasm"]


class TranscriptWord(BaseModel):
    """Individual word with timing information (seconds)."""

    text: str
    timestamp: tuple[float, float | None]


class TranscriptChunk(BaseModel):
    """A span of transcript text with a [start, end] interval in seconds.

    The worker may emit ``null`` as the end of the trailing chunk; such a
    chunk ends where it starts.
    """

    model_config = ConfigDict(extra="allow")

    text: str
    timestamp: tuple[float, float | None]
    disabled: bool = False
    words: list[TranscriptWord] | None = None

    @field_validator("timestamp")
    @classmethod
    def validate_interval(cls, value: tuple[float, float | None]) -> tuple[float, float | None]:
        start, end = value
        if start < 0:
            raise ValueError("chunk start must be non-negative")
        if end is not None and end < start:
            raise ValueError(f"chunk end ({end}) must not precede start ({start})")
        return value

    @property
    def start(self) -> float:
        return self.timestamp[0]

    @property
    def end(self) -> float:
        end = self.timestamp[1]
        return self.start if end is None else end


class TranscriptData(BaseModel):
    """Timestamped transcript as produced by the worker's ``complete`` message."""

    model_config = ConfigDict(extra="allow")

    text: str = ""
    chunks: list[TranscriptChunk] = Field(default_factory=list)


# =============================================================================
# Worker requests
# =============================================================================


class LoadOptions(BaseModel):
    device: DeviceType = "wasm"


class RunOptions(BaseModel):
    audio: list[float]
    language: str = "en"


class WorkerLoadRequest(BaseModel):
    type: Literal["load"] = "load"
    data: LoadOptions = Field(default_factory=LoadOptions)


class WorkerRunRequest(BaseModel):
    type: Literal["run"] = "run"
    data: RunOptions


WorkerRequest = Annotated[
    Union[WorkerLoadRequest, WorkerRunRequest],
    Field(discriminator="type"),
]


# =============================================================================
# Worker responses
# =============================================================================


class WorkerLoading(BaseModel):
    status: Literal["loading"] = "loading"
    data: str = ""


class WorkerProgress(BaseModel):
    """Model download/initialisation progress (fraction 0-1)."""

    model_config = ConfigDict(extra="allow")

    status: Literal["progress"] = "progress"
    progress: float = Field(default=0.0, ge=0.0, le=1.0)
    file: str | None = None


class WorkerReady(BaseModel):
    status: Literal["ready"] = "ready"


class WorkerComplete(BaseModel):
    status: Literal["complete"] = "complete"
    result: TranscriptData
    time: float = Field(default=0.0, ge=0.0, description="Elapsed time in milliseconds")


class WorkerError(BaseModel):
    status: Literal["error"] = "error"
    data: str = "Unknown error occurred"


WorkerResponse = Annotated[
    Union[WorkerLoading, WorkerProgress, WorkerReady, WorkerComplete, WorkerError],
    Field(discriminator="status"),
]

_request_adapter: TypeAdapter[Any] = TypeAdapter(WorkerRequest)
_response_adapter: TypeAdapter[Any] = TypeAdapter(WorkerResponse)


def parse_worker_message(
    raw: dict[str, Any],
) -> WorkerLoadRequest | WorkerRunRequest | WorkerLoading | WorkerProgress | WorkerReady | WorkerComplete | WorkerError:
    """Build the typed worker message for a raw message dict.

    Requests carry a ``type`` key, responses a ``status`` key.

    Raises:
        ValueError: If the message is neither a request nor a response.
        pydantic.ValidationError: If the payload does not match its kind.
    """
    if "type" in raw:
        return _request_adapter.validate_python(raw)
    if "status" in raw:
        return _response_adapter.validate_python(raw)
    raise ValueError("Worker message has neither 'type' nor 'status'")


def transcript_from_worker(message: WorkerComplete) -> TranscriptData:
    """Transcript carried by a ``complete`` message."""
    return message.result
