"""HTTP client for a GPT-SoVITS inference server."""
import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from typing import Any, Iterator, Mapping, Optional, Tuple, Union

import requests
from pydantic import ValidationError

from .config import Settings, get_settings
from .errors import SerializationError, ServerError, TransportError
from .models import ControlCommand, SynthesisRequest, SynthesisResult, WeightsUpdate

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

_JSON_HEADERS = {"Content-Type": "application/json"}
_READ_CHUNK_SIZE = 8192


class SynthesisClient:
    """Client for the GPT-SoVITS API with connection reuse.

    One instance may be shared by several threads; it holds no state besides
    the underlying ``requests.Session``. The timeout is a deadline for the
    whole call, body included, not only for each socket read.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Server root, e.g. ``http://127.0.0.1:9880``.
            timeout: Overall timeout in seconds applied to every call.
            session: Optional session to reuse; a new one is created otherwise.
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SynthesisClient":
        settings = settings or get_settings()
        return cls(settings.BASE_URL, timeout=settings.REQUEST_TIMEOUT)

    def __enter__(self) -> "SynthesisClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        """Close session and cleanup resources."""
        self.session.close()

    # Synthesis

    def synthesize(
        self,
        request: Union[SynthesisRequest, Mapping[str, Any]],
        timeout: Optional[float] = None,
    ) -> SynthesisResult:
        """POST a synthesis request and return the server's answer verbatim.

        A non-200 status is not treated as a failure: the body (usually a JSON
        error) and status code are returned for the caller to inspect. Only a
        failed or timed-out round trip is reported, through
        ``SynthesisResult.error``.

        Args:
            request: The request, or a mapping validated into one.
            timeout: Per-call override of the client timeout.

        Raises:
            SerializationError: If ``request`` is a mapping that does not
                describe a valid request.
        """
        payload = _coerce_request(request).to_payload()
        try:
            status_code, body = self._fetch("tts", "POST", "/tts", json=payload, timeout=timeout)
        except TransportError as e:
            return SynthesisResult(error=e)
        return _to_result(status_code, body)

    def synthesize_simple(
        self,
        text: str,
        text_lang: str,
        ref_audio_path: str,
        prompt_lang: str,
        prompt_text: str = "",
        timeout: Optional[float] = None,
    ) -> SynthesisResult:
        """Synthesize with fixed defaults: cut5 splitting, batch of 1, wav, no streaming."""
        request = SynthesisRequest(
            text=text,
            text_lang=text_lang,
            ref_audio_path=ref_audio_path,
            prompt_lang=prompt_lang,
            prompt_text=prompt_text,
            text_split_method="cut5",
            batch_size=1,
            media_type="wav",
            streaming_mode=False,
        )
        return self.synthesize(request, timeout=timeout)

    def synthesize_via_query_params(
        self,
        params: Mapping[str, Any],
        timeout: Optional[float] = None,
    ) -> SynthesisResult:
        """GET /tts with ``params`` percent-encoded into the query string.

        Parameters are sent in the mapping's iteration order. Use
        ``SynthesisRequest.to_query_params()`` to build the mapping from a
        typed request.
        """
        try:
            status_code, body = self._fetch("tts", "GET", "/tts", params=dict(params), timeout=timeout)
        except TransportError as e:
            return SynthesisResult(error=e)
        return _to_result(status_code, body)

    def iter_synthesize(
        self,
        request: Union[SynthesisRequest, Mapping[str, Any]],
        chunk_size: int = 4096,
        timeout: Optional[float] = None,
    ) -> Iterator[bytes]:
        """POST a synthesis request and yield the response body in raw chunks.

        The stream is passed through unopened, which pairs with
        ``streaming_mode=True`` on the request. The deadline is checked as
        each chunk arrives.

        Raises:
            ServerError: If the server answers with a non-200 status.
            TransportError: If the connection fails or the deadline passes
                before or while streaming.
        """
        payload = _coerce_request(request).to_payload()
        limit = self._limit(timeout)
        deadline = time.monotonic() + limit
        response = self._request("tts", "POST", "/tts", json=payload, timeout=limit)
        with response:
            if response.status_code != 200:
                body = _read_body("tts", response)
                raise ServerError("tts", response.status_code, body.decode("utf-8", "replace"))
            try:
                for chunk in response.iter_content(chunk_size=chunk_size):
                    if time.monotonic() > deadline:
                        raise TransportError(f"tts stream exceeded the {limit}s timeout")
                    if chunk:
                        yield chunk
            except requests.exceptions.RequestException as e:
                logger.error(f"TTS stream interrupted: {e}")
                raise TransportError(f"tts stream interrupted: {e}") from e

    # Control

    def send_control_command(
        self,
        command: Union[ControlCommand, str],
        timeout: Optional[float] = None,
    ) -> None:
        """POST a control command (restart or exit) to the server.

        Raises:
            SerializationError: If ``command`` is not a known command.
            TransportError: If the request fails.
            ServerError: If the status is neither 200 nor 204.
        """
        cmd = _coerce_command(command)
        status_code, body = self._fetch(
            "control", "POST", "/control", json={"command": cmd.value}, timeout=timeout
        )
        _check_status("control", status_code, body, (200, 204))

    def send_control_command_via_get(
        self,
        command: Union[ControlCommand, str],
        timeout: Optional[float] = None,
    ) -> None:
        """GET variant of :meth:`send_control_command`."""
        cmd = _coerce_command(command)
        status_code, body = self._fetch(
            "control", "GET", "/control", params={"command": cmd.value}, timeout=timeout
        )
        _check_status("control", status_code, body, (200, 204))

    # Weights

    def update_gpt_weights(self, weights_path: str, timeout: Optional[float] = None) -> None:
        """Ask the server to load a new GPT (text-to-semantic) checkpoint."""
        self._set_weights("set_gpt_weights", weights_path, "POST", timeout)

    def update_gpt_weights_via_get(self, weights_path: str, timeout: Optional[float] = None) -> None:
        self._set_weights("set_gpt_weights", weights_path, "GET", timeout)

    def update_sovits_weights(self, weights_path: str, timeout: Optional[float] = None) -> None:
        """Ask the server to load a new SoVITS (vocoder) checkpoint."""
        self._set_weights("set_sovits_weights", weights_path, "POST", timeout)

    def update_sovits_weights_via_get(self, weights_path: str, timeout: Optional[float] = None) -> None:
        self._set_weights("set_sovits_weights", weights_path, "GET", timeout)

    def _set_weights(self, endpoint: str, weights_path: str, method: str, timeout: Optional[float]) -> None:
        try:
            payload = WeightsUpdate(weights_path=weights_path).model_dump()
        except ValidationError as e:
            raise SerializationError(f"invalid weights path: {e}") from e

        if method == "POST":
            status_code, body = self._fetch(endpoint, "POST", f"/{endpoint}", json=payload, timeout=timeout)
        else:
            status_code, body = self._fetch(endpoint, "GET", f"/{endpoint}", params=payload, timeout=timeout)
        _check_status(endpoint, status_code, body, (200,))
        logger.info(f"{endpoint}: loaded {weights_path}")

    # Transport

    def _limit(self, timeout: Optional[float]) -> float:
        return timeout if timeout is not None else self.timeout

    def _fetch(
        self,
        operation: str,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Tuple[int, bytes]:
        """Run one round trip, headers and body, within the overall deadline.

        The transfer runs on a worker thread so a server trickling bytes
        cannot hold the caller past the deadline. On expiry the worker is
        told to stop at its next chunk.

        Raises:
            TransportError: If the request fails or the deadline passes.
        """
        limit = self._limit(timeout)
        cancelled = threading.Event()

        pool = ThreadPoolExecutor(max_workers=1, thread_name_prefix="sovits-client")
        try:
            future = pool.submit(
                self._round_trip, operation, method, path, json, params, limit, cancelled
            )
        finally:
            pool.shutdown(wait=False)

        try:
            return future.result(timeout=limit)
        except FutureTimeoutError as e:
            cancelled.set()
            logger.error(f"{operation} request exceeded the {limit}s timeout")
            raise TransportError(f"{operation} request exceeded the {limit}s timeout") from e

    def _round_trip(
        self,
        operation: str,
        method: str,
        path: str,
        json: Optional[dict],
        params: Optional[Mapping[str, Any]],
        limit: float,
        cancelled: threading.Event,
    ) -> Tuple[int, bytes]:
        response = self._request(operation, method, path, json=json, params=params, timeout=limit)
        with response:
            return response.status_code, _read_body(operation, response, cancelled)

    def _request(
        self,
        operation: str,
        method: str,
        path: str,
        json: Optional[dict] = None,
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> requests.Response:
        """Send the request and return once headers arrive; the body is left unread.

        Raises:
            TransportError: If the request fails without a response.
        """
        url = f"{self.base_url}{path}"
        headers = _JSON_HEADERS if method == "POST" else None

        logger.debug(f"{method} {url}")

        try:
            return self.session.request(
                method,
                url,
                json=json,
                params=params,
                headers=headers,
                timeout=self._limit(timeout),
                stream=True,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"{operation} request to {url} failed: {e}")
            raise TransportError(f"{operation} request failed: {e}") from e


def _read_body(
    operation: str,
    response: requests.Response,
    cancelled: Optional[threading.Event] = None,
) -> bytes:
    """Read a streamed body, converting a broken transfer into TransportError."""
    chunks = []
    try:
        for chunk in response.iter_content(chunk_size=_READ_CHUNK_SIZE):
            if cancelled is not None and cancelled.is_set():
                break
            chunks.append(chunk)
    except requests.exceptions.RequestException as e:
        logger.error(f"{operation} response body interrupted: {e}")
        raise TransportError(f"{operation} response body interrupted: {e}") from e
    return b"".join(chunks)


def _coerce_request(request: Union[SynthesisRequest, Mapping[str, Any]]) -> SynthesisRequest:
    if isinstance(request, SynthesisRequest):
        return request
    try:
        return SynthesisRequest.model_validate(dict(request))
    except (ValidationError, TypeError, ValueError) as e:
        raise SerializationError(f"invalid synthesis request: {e}") from e


def _coerce_command(command: Union[ControlCommand, str]) -> ControlCommand:
    try:
        return ControlCommand(command)
    except ValueError as e:
        raise SerializationError(f"unknown control command: {command!r}") from e


def _to_result(status_code: int, body: bytes) -> SynthesisResult:
    if status_code != 200:
        logger.warning(f"TTS returned status {status_code}")
    return SynthesisResult(status_code=status_code, audio=body)


def _check_status(operation: str, status_code: int, body: bytes, accepted: tuple) -> None:
    if status_code not in accepted:
        text = body.decode("utf-8", "replace")
        logger.warning(f"{operation} failed with status {status_code}: {text}")
        raise ServerError(operation, status_code, text)
