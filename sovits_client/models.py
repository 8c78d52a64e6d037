"""Request and result types for the GPT-SoVITS HTTP API."""
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from pydantic import BaseModel, Field

from .errors import ServerError


class ControlCommand(str, Enum):
    """Commands accepted by the /control endpoint."""
    RESTART = "restart"
    EXIT = "exit"


class MediaType(str, Enum):
    WAV = "wav"
    RAW = "raw"
    OGG = "ogg"
    AAC = "aac"


class SynthesisRequest(BaseModel):
    """Payload for the /tts endpoint.

    Field names are the server's wire keys. Defaults mirror the server's own
    defaults; value ranges are left for the server to validate.
    """
    text: str = Field(..., description="Text to synthesize")
    text_lang: str = Field(..., description="Language of the text to synthesize")
    ref_audio_path: str = Field(..., description="Reference audio path on the server")
    aux_ref_audio_paths: list[str] = Field(
        default_factory=list,
        description="Auxiliary reference audio paths for multi-speaker tone fusion"
    )
    prompt_text: str = Field(default="", description="Transcript of the reference audio")
    prompt_lang: str = Field(..., description="Language of the reference prompt text")
    top_k: int = Field(default=5, description="Top-k sampling")
    top_p: float = Field(default=1.0, description="Top-p sampling")
    temperature: float = Field(default=1.0, description="Sampling temperature")
    text_split_method: str = Field(default="cut5", description="Text segmentation method")
    batch_size: int = Field(default=1, description="Inference batch size")
    batch_threshold: float = Field(default=0.75, description="Threshold for batch splitting")
    split_bucket: bool = Field(default=True, description="Split the batch into buckets")
    speed_factor: float = Field(default=1.0, description="Playback speed of the synthesized audio")
    fragment_interval: float = Field(default=0.3, description="Silence between audio fragments")
    seed: int = Field(default=-1, description="Random seed (-1 = random)")
    media_type: str = Field(default=MediaType.WAV.value, description="One of wav, raw, ogg, aac")
    streaming_mode: bool = Field(default=False, description="Ask the server for a streamed response")
    parallel_infer: bool = Field(default=True, description="Use parallel inference")
    repetition_penalty: float = Field(default=1.35, description="T2S repetition penalty")
    sample_steps: int = Field(default=32, description="Sampling steps for V3 models")
    super_sampling: bool = Field(default=False, description="Super-sampling for V3 models")

    def to_payload(self) -> dict[str, Any]:
        """JSON body for POST /tts, every key present."""
        return self.model_dump(mode="json")

    def to_query_params(self) -> dict[str, Any]:
        """Query parameters for GET /tts.

        Booleans are sent lower-case and empty lists are omitted; non-empty
        lists repeat the key.
        """
        params: dict[str, Any] = {}
        for key, value in self.to_payload().items():
            if isinstance(value, bool):
                params[key] = "true" if value else "false"
            elif isinstance(value, list):
                if value:
                    params[key] = [str(v) for v in value]
            else:
                params[key] = str(value)
        return params


class WeightsUpdate(BaseModel):
    """Payload for /set_gpt_weights and /set_sovits_weights."""
    weights_path: str = Field(..., description="Checkpoint path on the server")


@dataclass
class SynthesisResult:
    """Outcome of a /tts call.

    The body is kept verbatim: audio on success, the server's JSON error
    otherwise. ``error`` is only set when no usable response was received.
    """
    status_code: Optional[int] = None
    audio: bytes = b""
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.status_code == 200

    def raise_for_error(self) -> bytes:
        """Return the audio bytes, or raise the failure this result carries.

        Raises:
            TransportError: If the request never got a response.
            ServerError: If the server answered with a non-200 status.
        """
        if self.error is not None:
            raise self.error
        if self.status_code != 200:
            raise ServerError(
                "tts",
                self.status_code if self.status_code is not None else 0,
                self.audio.decode("utf-8", "replace"),
            )
        return self.audio

    def save(self, path) -> Path:
        """Write the audio to ``path`` and return it as a Path."""
        audio = self.raise_for_error()
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_bytes(audio)
        return out
