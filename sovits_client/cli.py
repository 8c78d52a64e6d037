"""Command line front end for a GPT-SoVITS server.

Usage examples:
  # Synthesize to a file using the server from config.yaml
  sovits-client tts "你好，世界" --text-lang zh --ref-audio ref.wav --prompt-lang zh -o out.wav

  # Same request over GET with a custom server
  sovits-client --base-url http://10.0.0.5:9880 tts "hello" --text-lang en \
      --ref-audio ref.wav --prompt-lang en --get -o out.wav

  # Swap checkpoints or restart the server
  sovits-client set-gpt-weights GPT_weights/voice.ckpt
  sovits-client control restart
"""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import Optional

from .client import SynthesisClient
from .config import get_settings
from .errors import SoVITSClientError
from .logger import get_logger
from .models import ControlCommand, MediaType, SynthesisRequest

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sovits-client", description="GPT-SoVITS API client")
    parser.add_argument("--config", default=None, help="Path to config.yaml")
    parser.add_argument("--base-url", default=None, help="Server base URL (overrides config)")
    parser.add_argument("--timeout", type=float, default=None, help="Request timeout in seconds")

    sub = parser.add_subparsers(dest="command", required=True)

    tts = sub.add_parser("tts", help="Synthesize text to an audio file")
    tts.add_argument("text", help="Text to synthesize")
    tts.add_argument("--text-lang", required=True, help="Language of the text")
    tts.add_argument("--ref-audio", required=True, help="Reference audio path on the server")
    tts.add_argument("--prompt-lang", required=True, help="Language of the prompt text")
    tts.add_argument("--prompt-text", default="", help="Transcript of the reference audio")
    tts.add_argument(
        "--media-type",
        choices=[m.value for m in MediaType],
        default=MediaType.WAV.value,
        help="Output container"
    )
    tts.add_argument("--get", action="store_true", help="Send as GET query parameters")
    tts.add_argument("-o", "--output", required=True, help="Where to write the audio")

    control = sub.add_parser("control", help="Restart or stop the server")
    control.add_argument("action", choices=[c.value for c in ControlCommand])
    control.add_argument("--get", action="store_true", help="Send as GET query parameters")

    for name, help_text in (
        ("set-gpt-weights", "Load a GPT checkpoint on the server"),
        ("set-sovits-weights", "Load a SoVITS checkpoint on the server"),
    ):
        weights = sub.add_parser(name, help=help_text)
        weights.add_argument("weights_path", help="Checkpoint path on the server")
        weights.add_argument("--get", action="store_true", help="Send as GET query parameters")

    return parser


def run(client: SynthesisClient, args: argparse.Namespace) -> None:
    """Dispatch a parsed command line to the client."""
    if args.command == "tts":
        request = SynthesisRequest(
            text=args.text,
            text_lang=args.text_lang,
            ref_audio_path=args.ref_audio,
            prompt_lang=args.prompt_lang,
            prompt_text=args.prompt_text,
            media_type=args.media_type,
        )
        if args.get:
            result = client.synthesize_via_query_params(request.to_query_params())
        else:
            result = client.synthesize(request)
        out = result.save(args.output)
        logger.info(f"Wrote {len(result.audio)} bytes to {out}")
    elif args.command == "control":
        if args.get:
            client.send_control_command_via_get(args.action)
        else:
            client.send_control_command(args.action)
    elif args.command == "set-gpt-weights":
        if args.get:
            client.update_gpt_weights_via_get(args.weights_path)
        else:
            client.update_gpt_weights(args.weights_path)
    elif args.command == "set-sovits-weights":
        if args.get:
            client.update_sovits_weights_via_get(args.weights_path)
        else:
            client.update_sovits_weights(args.weights_path)


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.config:
        os.environ["CONFIG_PATH"] = args.config
        get_settings.cache_clear()
    settings = get_settings()

    get_logger("sovits_client", json_mode=settings.LOG_JSON, level=settings.LOG_LEVEL)

    client = SynthesisClient(
        args.base_url or settings.BASE_URL,
        timeout=args.timeout if args.timeout is not None else settings.REQUEST_TIMEOUT,
    )
    try:
        run(client, args)
    except (SoVITSClientError, OSError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    finally:
        client.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
