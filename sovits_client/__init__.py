"""GPT-SoVITS client - typed calls for a remote text-to-speech server."""
from sovits_client.client import SynthesisClient
from sovits_client.config import Settings, get_settings
from sovits_client.errors import SerializationError, ServerError, SoVITSClientError, TransportError
from sovits_client.models import (
    ControlCommand,
    MediaType,
    SynthesisRequest,
    SynthesisResult,
    WeightsUpdate,
)

__version__ = "1.0.0"
__all__ = [
    "SynthesisClient",
    "Settings",
    "get_settings",
    "SoVITSClientError",
    "SerializationError",
    "ServerError",
    "TransportError",
    "ControlCommand",
    "MediaType",
    "SynthesisRequest",
    "SynthesisResult",
    "WeightsUpdate",
]
