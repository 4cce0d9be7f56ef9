import argparse
import asyncio
import json
import logging
import os
import signal
import sys
from pathlib import Path

from sign_transcriber.config import SignTranscriberConfig
from sign_transcriber.domain.controller import TranscriptionController
from sign_transcriber.domain.state import InvalidTransitionError
from sign_transcriber.log_format import ColoredFormatter
from sign_transcriber.ports.control import ControlCommand, ControlReplyError

ENV_FILE_PATH = Path.home() / ".config" / "sign-transcriber" / "env"

CLIENT_COMMANDS = ("start", "stop", "toggle", "clear", "status")


def _load_env_file() -> None:
    if not ENV_FILE_PATH.exists():
        return
    with open(ENV_FILE_PATH) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" not in line:
                continue
            key, _, value = line.partition("=")
            value = value.strip("'\"")
            if key not in os.environ:
                os.environ[key] = value


def _configure_logging(verbose: bool, log_file: str) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(datefmt="%H:%M:%S"))
    handlers: list[logging.Handler] = [handler]
    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        )
        handlers.append(file_handler)

    logging.basicConfig(level=logging.DEBUG if verbose else logging.INFO, handlers=handlers)

    for noisy in ("httpx", "httpcore", "google_genai", "anthropic", "openai"):
        logging.getLogger(noisy).setLevel(logging.WARNING if not verbose else logging.INFO)


def main() -> None:
    _load_env_file()
    parser = argparse.ArgumentParser(description="Live sign language transcriber")
    parser.add_argument(
        "--engine", choices=("gemini", "anthropic", "openai"), help="Vision engine to use"
    )
    parser.add_argument("--camera", type=int, help="Camera index")
    parser.add_argument("--autostart", action="store_true", help="Start transcribing on launch")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("start", help="Start transcribing")
    subparsers.add_parser("stop", help="Stop transcribing")
    subparsers.add_parser("toggle", help="Start or stop transcribing")
    subparsers.add_parser("clear", help="Clear the transcript")
    subparsers.add_parser("status", help="Query session state and transcript")

    args = parser.parse_args()

    config = SignTranscriberConfig()
    if args.engine:
        config.vision_engine = args.engine
    if args.camera is not None:
        config.camera_index = args.camera
    if args.autostart:
        config.autostart = True

    _configure_logging(args.verbose, config.log_file)

    if args.command in CLIENT_COMMANDS:
        asyncio.run(_run_client_command(args.command, config))
    else:
        asyncio.run(_run_daemon(config))


async def _run_client_command(command: str, config: SignTranscriberConfig) -> None:
    from sign_transcriber.adapters.unix_control import UnixSocketControlClient

    client = UnixSocketControlClient(socket_path=config.socket_path)

    try:
        result = await client.send_command(command)
    except (ConnectionRefusedError, FileNotFoundError):
        print("Sign transcriber is not running", file=sys.stderr)
        sys.exit(1)
    except ControlReplyError as exc:
        print(exc, file=sys.stderr)
        sys.exit(1)

    print(json.dumps(result, indent=2))
    if result.get("status") != "ok":
        sys.exit(1)


async def handle_command(controller: TranscriptionController, command: ControlCommand) -> dict:
    try:
        if command.action == "start":
            await controller.start()
        elif command.action == "stop":
            await controller.stop()
        elif command.action == "toggle":
            await controller.toggle()
        elif command.action == "clear":
            controller.clear_transcript()
        elif command.action != "status":
            return {"status": "error", "error": f"Unknown command: {command.action}"}
    except InvalidTransitionError as exc:
        return {"status": "error", "error": str(exc), **controller.snapshot()}

    return {"status": "ok", **controller.snapshot()}


async def _run_daemon(config: SignTranscriberConfig) -> None:
    from sign_transcriber.health import run_startup_checks, has_critical_failures
    from sign_transcriber.factory import create_app
    from sign_transcriber.adapters.console_view import ConsoleView

    results = run_startup_checks(config)
    if has_critical_failures(results):
        logging.error("Critical health check failures, aborting startup")
        sys.exit(1)

    controller, control = create_app(config)
    controller.subscribe(ConsoleView())

    shutdown_event = asyncio.Event()
    shutdown_triggered = False

    def handle_signal() -> None:
        nonlocal shutdown_triggered
        if shutdown_triggered:
            logging.warning("Forced exit")
            sys.exit(1)
        shutdown_triggered = True
        logging.info("Shutting down...")
        shutdown_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, handle_signal)

    await control.start()

    async def control_loop() -> None:
        async for cmd in control.commands():
            response = await handle_command(controller, cmd)
            await control.send_response(cmd, response)

    control_task = asyncio.create_task(control_loop())
    if config.autostart:
        await controller.start()

    try:
        await shutdown_event.wait()
    finally:
        control_task.cancel()
        try:
            await asyncio.wait_for(control_task, timeout=1.0)
        except (asyncio.CancelledError, asyncio.TimeoutError):
            pass
        await controller.close()
        await control.stop()
        if controller.transcript:
            print(controller.transcript.rstrip())
