"""Lifecycle of the speech synthesis process.

An utterance is spoken by an external program (``say``, ``espeak-ng``).
The scheduler holds at most one of these at a time so it can cut speech
short when the user interrupts.

- Children start in their own session (``start_new_session``) so a
  termination also reaches helpers the voice program forks.
- Termination goes to the whole process group with SIGTERM; ``kill``
  escalates to SIGKILL.
- ``spawn`` turns every start failure into ``ProcessSpawnError``.
- stderr goes to a temporary file, read back only after the child exits.
"""

from __future__ import annotations

import os
import shutil
import signal
import subprocess
import tempfile
from typing import Optional

from .errors import ProcessSpawnError


def find_binary(name: str) -> Optional[str]:
    """Find a binary in PATH or common Nix locations."""
    found = shutil.which(name)
    if found:
        return found
    for path in [
        os.path.expanduser(f"~/.nix-profile/bin/{name}"),
        f"/nix/var/nix/profiles/default/bin/{name}",
    ]:
        if os.path.isfile(path):
            return path
    return None


class TrackedProcess:
    """A running speech process with process-group cleanup."""

    __slots__ = ("proc", "tag", "use_pgid", "stderr")

    def __init__(self, proc: subprocess.Popen, tag: str = "",
                 use_pgid: bool = True, stderr=None):
        self.proc = proc
        self.tag = tag
        self.use_pgid = use_pgid
        # Temporary file holding stderr; a pipe could fill up and stall the child.
        self.stderr = stderr

    @property
    def alive(self) -> bool:
        return self.proc.poll() is None

    def wait(self, timeout: Optional[float] = None) -> int:
        """Block until the process exits and return its exit code."""
        return self.proc.wait(timeout=timeout)

    def _signal(self, sig: int) -> None:
        if not self.alive:
            return
        if self.use_pgid:
            try:
                os.killpg(os.getpgid(self.proc.pid), sig)
                return
            except (OSError, ProcessLookupError):
                pass
        try:
            self.proc.send_signal(sig)
        except (OSError, ProcessLookupError):
            pass

    def terminate(self) -> None:
        """Ask the process (and its group) to stop with SIGTERM."""
        self._signal(signal.SIGTERM)

    def kill(self) -> None:
        """Force-stop the process (and its group) with SIGKILL."""
        self._signal(signal.SIGKILL)

    def stderr_text(self) -> str:
        """Whatever the process wrote to stderr, if it was captured."""
        if self.stderr is not None:
            stream = self.stderr
            try:
                stream.seek(0)
            except (OSError, ValueError):
                return ""
        elif self.proc.stderr is not None:
            stream = self.proc.stderr
        else:
            return ""
        try:
            return (stream.read() or b"").decode("utf-8", errors="replace").strip()
        except (OSError, ValueError):
            return ""

    def close(self) -> None:
        """Terminate if still running, then reap the child."""
        if self.alive:
            self.terminate()
            try:
                self.proc.wait(timeout=1)
            except subprocess.TimeoutExpired:
                self.kill()
                self.proc.wait()
        if self.proc.stderr is not None:
            self.proc.stderr.close()
        if self.stderr is not None:
            self.stderr.close()


def spawn(cmd: list[str], *, tag: str = "",
          env: Optional[dict] = None,
          use_pgid: bool = True) -> TrackedProcess:
    """Start *cmd* and wrap it in a TrackedProcess.

    Raises:
        ProcessSpawnError: the command is missing or could not be executed.
    """
    if not cmd or not cmd[0]:
        raise ProcessSpawnError(cmd, "no speech command available")
    stderr = tempfile.TemporaryFile()
    popen_kwargs: dict = dict(
        stdout=subprocess.DEVNULL,
        stderr=stderr,
        stdin=subprocess.DEVNULL,
        env=env,
    )
    if use_pgid:
        popen_kwargs["start_new_session"] = True
    try:
        proc = subprocess.Popen(cmd, **popen_kwargs)
    except (OSError, ValueError) as exc:
        stderr.close()
        raise ProcessSpawnError(cmd, str(exc)) from exc
    return TrackedProcess(proc, tag=tag, use_pgid=use_pgid, stderr=stderr)
