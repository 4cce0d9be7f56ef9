import asyncio
import json
import logging
import os
from collections.abc import AsyncIterator
from pathlib import Path

from sign_transcriber.ports.control import ControlCommand, ControlReplyError

logger = logging.getLogger(__name__)

RESPONSE_TIMEOUT_SECONDS = 10.0


class UnixSocketControlServer:
    def __init__(self, socket_path: str = "/tmp/sign-transcriber.sock") -> None:
        self._socket_path = socket_path
        self._server: asyncio.Server | None = None
        self._command_queue: asyncio.Queue[ControlCommand] = asyncio.Queue()
        self._pending_replies: set[asyncio.Future] = set()

    async def start(self) -> None:
        socket_file = Path(self._socket_path)
        if socket_file.exists():
            socket_file.unlink()

        self._server = await asyncio.start_unix_server(
            self._handle_client,
            path=self._socket_path,
        )
        os.chmod(self._socket_path, 0o600)
        logger.info("Control socket listening at %s", self._socket_path)

    async def stop(self) -> None:
        if self._server:
            self._server.close()
            await self._server.wait_closed()
            self._server = None
        for future in list(self._pending_replies):
            if not future.done():
                future.cancel()
        self._pending_replies.clear()
        socket_file = Path(self._socket_path)
        if socket_file.exists():
            socket_file.unlink()

    async def commands(self) -> AsyncIterator[ControlCommand]:
        while True:
            cmd = await self._command_queue.get()
            yield cmd

    async def send_response(self, command: ControlCommand, data: dict) -> None:
        if command.reply is None or command.reply.done():
            logger.warning("Dropping %s response, client no longer waiting", command.action)
            return
        command.reply.set_result(data)

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        try:
            raw = await asyncio.wait_for(reader.readline(), timeout=5.0)
            if not raw:
                return

            request = json.loads(raw.decode().strip())
            action = request.get("action", "")
            payload = request.get("payload")

            future: asyncio.Future = asyncio.get_running_loop().create_future()
            self._pending_replies.add(future)
            await self._command_queue.put(ControlCommand(action=action, payload=payload, reply=future))

            try:
                response = await asyncio.wait_for(future, timeout=RESPONSE_TIMEOUT_SECONDS)
            finally:
                self._pending_replies.discard(future)
            writer.write((json.dumps(response) + "\n").encode())
            await writer.drain()
        except asyncio.TimeoutError:
            logger.warning("Client connection timed out")
        except json.JSONDecodeError:
            logger.warning("Invalid JSON from client")
        except asyncio.CancelledError:
            logger.debug("Control client dropped during shutdown")
        except Exception:
            logger.exception("Error handling control client")
        finally:
            writer.close()
            await writer.wait_closed()


class UnixSocketControlClient:
    def __init__(self, socket_path: str = "/tmp/sign-transcriber.sock") -> None:
        self._socket_path = socket_path

    async def send_command(self, action: str, payload: dict | None = None) -> dict:
        reader, writer = await asyncio.open_unix_connection(self._socket_path)
        try:
            request = {"action": action}
            if payload:
                request["payload"] = payload
            writer.write((json.dumps(request) + "\n").encode())
            await writer.drain()

            raw = await asyncio.wait_for(reader.readline(), timeout=RESPONSE_TIMEOUT_SECONDS + 5.0)
            line = raw.decode().strip()
            if not line:
                raise ControlReplyError(f"No reply to {action!r} from the sign transcriber")
            return json.loads(line)
        finally:
            writer.close()
            await writer.wait_closed()
