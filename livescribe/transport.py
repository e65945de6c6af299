"""
Speech transport process.

The transport is an external program that records audio, streams it to a
recognizer and prints one line per result on stdout:

    Press Enter to stop recording
    Output: {"channel": {"alternatives": [{"transcript": "..."}]}, ...}

Pressing Enter (a newline on stdin) asks it to stop.
"""

import os
import subprocess
import threading
from typing import Callable, List, Optional

from .errors import TransportError


READ_SIZE = 4096


class TransportProcess:
    """
    Runs the transport command and forwards raw stdout chunks.

    Usage:
        transport = TransportProcess(cmd, on_chunk=engine.feed, on_exit=engine.transport_died)
        transport.start()
        ...
        transport.stop()
    """

    def __init__(
        self,
        command: List[str],
        on_chunk: Callable[[bytes], None],
        on_exit: Optional[Callable[[Optional[int]], None]] = None,
        stop_timeout: float = 2.0,
    ):
        self.command = list(command)
        self.on_chunk = on_chunk
        self.on_exit = on_exit
        self.stop_timeout = stop_timeout

        self._process: Optional[subprocess.Popen] = None
        self._reader: Optional[threading.Thread] = None
        self._stopping = threading.Event()

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self) -> None:
        if not self.command:
            raise TransportError("no transport command configured")
        if self.running:
            return

        self._stopping.clear()
        try:
            self._process = subprocess.Popen(
                self.command,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                bufsize=0,
            )
        except OSError as e:
            raise TransportError(f"failed to start {self.command[0]}: {e}") from e

        print(f"[Transport] Started {' '.join(self.command)} (pid {self._process.pid})")
        self._reader = threading.Thread(
            target=self._read_loop,
            args=(self._process,),
            name="livescribe-transport",
            daemon=True,
        )
        self._reader.start()

    def _read_loop(self, process: subprocess.Popen) -> None:
        fd = process.stdout.fileno()
        while True:
            try:
                chunk = os.read(fd, READ_SIZE)
            except OSError as e:
                print(f"[Transport] Read error: {e}")
                break
            if not chunk:
                break
            try:
                self.on_chunk(chunk)
            except Exception as e:
                print(f"[Transport] Chunk handler error: {e}")

        returncode = process.wait()
        print(f"[Transport] Exited with code {returncode}")
        if not self._stopping.is_set() and self.on_exit:
            self.on_exit(returncode)

    def stop(self) -> None:
        """Ask the transport to stop, then terminate/kill it if needed."""
        self._stopping.set()
        process = self._process
        if process is None:
            return

        if process.poll() is None:
            try:
                process.stdin.write(b"\n")
                process.stdin.flush()
                process.stdin.close()
            except (BrokenPipeError, OSError):
                pass

            try:
                process.wait(timeout=self.stop_timeout)
            except subprocess.TimeoutExpired:
                process.terminate()
                try:
                    process.wait(timeout=self.stop_timeout)
                except subprocess.TimeoutExpired:
                    process.kill()
                    process.wait()

        if self._reader is not None and self._reader is not threading.current_thread():
            self._reader.join(timeout=self.stop_timeout)
        self._process = None
        self._reader = None
