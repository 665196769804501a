"""External media players: locating, spawning and remote control."""
from __future__ import annotations

import asyncio
import json
import os
import shutil
import subprocess
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Iterable, Optional, Protocol, Sequence
from uuid import uuid4

from .logging_utils import get_logger


SUPPORTED_PLAYERS: Sequence[str] = ("mpv", "vlc", "ffplay")

PLAYER_PROBE_TIMEOUT_ENV = "NEXGEN_TV_PLAYER_PROBE_TIMEOUT"
DEFAULT_PLAYER_PROBE_TIMEOUT = 10.0

IPC_CONNECT_RETRIES = 20
IPC_CONNECT_DELAY = 0.1

# Options that keep mpv usable as a detached stream window.
MPV_BASE_ARGS: Sequence[str] = (
    "--force-window=immediate",
    "--player-operation-mode=pseudo-gui",
    "--no-terminal",
    "--framedrop=vo",
    "--mute",
)

_MPV_VIDEO_ARGS: dict[str, Sequence[str]] = {
    "windows": ("--hwdec=auto-safe",),
    "darwin": ("--hwdec=auto-safe",),
    "wayland": ("--hwdec=auto-safe", "--vo=gpu", "--gpu-context=wayland"),
    "x11": ("--hwdec=auto-safe", "--vo=gpu", "--gpu-context=x11"),
}


log = get_logger(__name__)


class PlaybackError(RuntimeError):
    """Raised when a stream cannot be handed to, or steered in, a player."""


@dataclass(slots=True)
class PlayerCommand:
    """Executable and arguments for one playback session."""

    executable: str
    args: list[str]
    ipc_path: Optional[str] = None
    cleanup_paths: tuple[Path, ...] = ()

    def as_sequence(self) -> list[str]:
        return [self.executable, *self.args]

    @property
    def player_name(self) -> str:
        return Path(self.executable).stem.lower()


@dataclass(slots=True)
class PlayerHandle:
    """A spawned player process and the command that started it."""

    process: asyncio.subprocess.Process
    command: PlayerCommand


class PlaybackEngine(Protocol):
    """Operations the navigation controller needs from a player."""

    @property
    def active(self) -> bool: ...

    def start(self, url: str, *, title: Optional[str] = None) -> None: ...

    def pause(self) -> None: ...

    def resume(self) -> None: ...

    def dispose(self) -> None: ...


def detect_player(
    preferred: Optional[str] = None,
    *,
    candidates: Iterable[str] = SUPPORTED_PLAYERS,
) -> Optional[str]:
    """Return the path of *preferred*, or of the first supported player found."""

    names = dict.fromkeys([preferred, *candidates] if preferred else candidates)
    for name in names:
        location = shutil.which(str(name))
        if location is not None:
            log.info("Using media player %s", location)
            return location
        log.debug("Media player %s is not installed", name)
    return None


def _require_player(preferred: Optional[str]) -> str:
    executable = detect_player(preferred)
    if executable is None:
        log.error("None of %s is available on PATH", ", ".join(SUPPORTED_PLAYERS))
        raise PlaybackError(
            f"No supported media player found ({', '.join(SUPPORTED_PLAYERS)})"
        )
    return executable


def _new_ipc_endpoint() -> tuple[str, tuple[Path, ...]]:
    """Return a fresh mpv IPC address and the paths to delete afterwards."""

    if os.name == "nt":
        # Named pipes vanish with the mpv process.
        return rf"\\.\pipe\nexgen_tv_{uuid4().hex}", ()
    directory = Path(tempfile.mkdtemp(prefix="nexgen_tv_mpv_"))
    return str(directory / "ipc.sock"), (directory,)


def _display_backend() -> str:
    if sys.platform.startswith("win"):
        return "windows"
    if sys.platform == "darwin":
        return "darwin"
    for variable, backend in (("WAYLAND_DISPLAY", "wayland"), ("DISPLAY", "x11")):
        if os.getenv(variable):
            return backend
    return "unknown"


def _mpv_args(title: Optional[str], ipc_path: str) -> list[str]:
    args = [*MPV_BASE_ARGS, *_MPV_VIDEO_ARGS.get(_display_backend(), ())]
    if title:
        args.append(f"--force-media-title={title}")
    args.append(f"--input-ipc-server={ipc_path}")
    return args


def build_player_command(
    url: str,
    *,
    title: Optional[str] = None,
    preferred: Optional[str] = None,
) -> PlayerCommand:
    """Return the command that plays *url* in the best available player.

    Only mpv exposes a control channel; other players are started with the
    bare stream URL and cannot be paused from the application.
    """

    command = PlayerCommand(_require_player(preferred), [url])
    if command.player_name == "mpv":
        ipc_path, cleanup = _new_ipc_endpoint()
        command.args[:0] = _mpv_args(title, ipc_path)
        command.ipc_path = ipc_path
        command.cleanup_paths = cleanup
    log.debug("Player command: %s", command.as_sequence())
    return command


async def launch_player(
    url: str,
    *,
    title: Optional[str] = None,
    preferred: Optional[str] = None,
) -> PlayerHandle:
    """Start a detached player process for the stream at *url*."""

    command = build_player_command(url, title=title, preferred=preferred)
    log.info("Starting %s for %s", command.player_name, title or url)
    try:
        process = await asyncio.create_subprocess_exec(
            *command.as_sequence(),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
    except OSError as exc:
        _remove_paths(command.cleanup_paths)
        raise PlaybackError(f"Could not run {command.executable}: {exc}") from exc
    log.debug("Player running with PID %s", process.pid)
    return PlayerHandle(process=process, command=command)


def _probe_timeout() -> float:
    raw = os.getenv(PLAYER_PROBE_TIMEOUT_ENV)
    if raw is None:
        return DEFAULT_PLAYER_PROBE_TIMEOUT
    try:
        value = float(raw)
    except ValueError:
        value = 0.0
    if value <= 0:
        log.warning(
            "Ignoring %s=%r; expected a positive number of seconds",
            PLAYER_PROBE_TIMEOUT_ENV,
            raw,
        )
        return DEFAULT_PLAYER_PROBE_TIMEOUT
    return value


def probe_player(preferred: Optional[str] = None) -> str:
    """Run the detected player with ``--version`` and return its first line."""

    executable = _require_player(preferred)
    name = Path(executable).name
    timeout = _probe_timeout()
    try:
        result = subprocess.run(
            [executable, "--version"],
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as exc:
        raise PlaybackError(
            f"{name} --version timed out after {timeout:.1f} seconds; "
            f"raise {PLAYER_PROBE_TIMEOUT_ENV} for slow systems"
        ) from exc
    except (OSError, subprocess.SubprocessError) as exc:
        raise PlaybackError(f"Could not run {name}: {exc}") from exc
    output = (result.stdout.strip(), result.stderr.strip())
    if result.returncode != 0:
        raise PlaybackError(
            f"{name} --version exited with {result.returncode}: {output[1] or output[0]}"
        )
    text = output[0] or output[1]
    summary = text.splitlines()[0] if text else name
    log.info("Player check passed: %s", summary)
    return summary


def _remove_paths(paths: Iterable[Path]) -> None:
    for path in paths:
        if path.is_dir():
            shutil.rmtree(path, ignore_errors=True)
            continue
        try:
            path.unlink(missing_ok=True)
        except OSError:
            log.debug("Could not remove %s", path, exc_info=True)


async def send_mpv_command(
    ipc_path: str,
    command: list[object],
    *,
    retries: int = IPC_CONNECT_RETRIES,
    delay: float = IPC_CONNECT_DELAY,
) -> dict[str, object]:
    """Send a JSON IPC *command* to mpv and return its reply."""

    if sys.platform == "win32":  # pragma: no cover - platform dependent
        raise PlaybackError("mpv IPC control is not supported on Windows")
    connection: Optional[tuple[asyncio.StreamReader, asyncio.StreamWriter]] = None
    for _ in range(retries):
        try:
            connection = await asyncio.open_unix_connection(ipc_path)
            break
        except (FileNotFoundError, ConnectionRefusedError):
            await asyncio.sleep(delay)
    if connection is None:
        raise PlaybackError(f"Unable to connect to mpv IPC server at {ipc_path}")
    reader, writer = connection
    try:
        writer.write((json.dumps({"command": command}) + "\n").encode("utf-8"))
        await writer.drain()
        while True:
            line = await reader.readline()
            if not line:
                raise PlaybackError("mpv closed the IPC connection")
            try:
                payload = json.loads(line.decode("utf-8"))
            except json.JSONDecodeError:
                continue
            # Skip unsolicited event notifications.
            if "event" in payload:
                continue
            if payload.get("error") != "success":
                raise PlaybackError(f"mpv rejected {command!r}: {payload.get('error')}")
            return payload
    finally:
        writer.close()
        try:
            await writer.wait_closed()
        except Exception:  # pragma: no cover - cleanup best-effort
            pass


Launcher = Callable[..., Awaitable[PlayerHandle]]


class ProcessPlaybackEngine:
    """Play streams in an external player process, one session at a time."""

    def __init__(
        self,
        *,
        preferred: Optional[str] = None,
        launcher: Launcher = launch_player,
    ) -> None:
        self._preferred = preferred
        self._launcher = launcher
        self._task: Optional[asyncio.Task[None]] = None
        self._handle: Optional[PlayerHandle] = None
        self._control_tasks: set[asyncio.Task[None]] = set()
        self.current_url: Optional[str] = None

    @property
    def active(self) -> bool:
        return self._task is not None or self._handle is not None

    def start(self, url: str, *, title: Optional[str] = None) -> None:
        if self.active:
            self.dispose()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError as exc:
            raise PlaybackError("Playback requires a running event loop") from exc
        self.current_url = url
        self._task = loop.create_task(self._run(url, title))

    async def _run(self, url: str, title: Optional[str]) -> None:
        owner = asyncio.current_task()
        try:
            handle = await self._launcher(url, title=title, preferred=self._preferred)
        except asyncio.CancelledError:
            log.info("Player launch cancelled for %s", title or url)
            raise
        except Exception as exc:
            log.error("Failed to start playback of %s: %s", title or url, exc)
            if self._task is owner:
                self._task = None
                self.current_url = None
            return
        if self._task is not owner:
            # Disposed while launching.
            self._terminate(handle)
            return
        self._handle = handle
        returncode: Optional[int] = None
        try:
            returncode = await handle.process.wait()
        except asyncio.CancelledError:
            self._terminate(handle)
            raise
        finally:
            if self._task is owner:
                self._task = None
                self._handle = None
                self.current_url = None
                _remove_paths(handle.command.cleanup_paths)
        if returncode not in (None, 0):
            log.error("Player exited with code %s for %s", returncode, title or url)
        else:
            log.info("Player exited for %s", title or url)

    def _terminate(self, handle: PlayerHandle) -> None:
        if handle.process.returncode is None:
            try:
                handle.process.terminate()
            except ProcessLookupError:  # pragma: no cover - already gone
                pass
        _remove_paths(handle.command.cleanup_paths)

    def _control(self, paused: bool) -> None:
        handle = self._handle
        if handle is None:
            raise PlaybackError("No player is running")
        if not handle.command.ipc_path:
            raise PlaybackError(
                f"{Path(handle.command.executable).name} does not support remote control"
            )
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._send_pause(handle.command.ipc_path, paused))
        self._control_tasks.add(task)
        task.add_done_callback(self._control_tasks.discard)

    async def _send_pause(self, ipc_path: str, paused: bool) -> None:
        try:
            await send_mpv_command(ipc_path, ["set_property", "pause", paused])
        except PlaybackError as exc:
            log.error("Failed to %s playback: %s", "pause" if paused else "resume", exc)
        else:
            log.info("Playback %s", "paused" if paused else "resumed")

    def pause(self) -> None:
        self._control(True)

    def resume(self) -> None:
        self._control(False)

    def dispose(self) -> None:
        task, handle = self._task, self._handle
        self._task = None
        self._handle = None
        self.current_url = None
        for control in list(self._control_tasks):
            control.cancel()
        if handle is not None:
            self._terminate(handle)
        if task is not None and not task.done():
            task.cancel()
        if task is not None or handle is not None:
            log.debug("Player session disposed")


__all__ = [
    "PlaybackEngine",
    "PlaybackError",
    "PlayerCommand",
    "PlayerHandle",
    "SUPPORTED_PLAYERS",
    "ProcessPlaybackEngine",
    "build_player_command",
    "detect_player",
    "launch_player",
    "probe_player",
    "send_mpv_command",
]
