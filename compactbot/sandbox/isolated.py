"""Isolated sandboxes: every command runs confined to a read-only snapshot.

Each command gets a fresh directory holding the snapshot, which is mounted
read-only at the snapshot paths inside a container (Docker) or a user
namespace (bubblewrap). Neither backend shares the network or the host
filesystem, and nothing a command writes outlives it.
"""

import asyncio
import os
import posixpath
import shutil
import tempfile
import uuid
from abc import abstractmethod
from collections.abc import Mapping
from pathlib import Path

from loguru import logger

from compactbot.sandbox.base import CommandResult, SandboxError, SandboxExecutor

DEFAULT_IMAGE = "compactbot-sandbox:latest"

# Host directories a bubblewrap sandbox needs to find bash and the usual tools
_SYSTEM_DIRS = ["/usr", "/bin", "/sbin", "/lib", "/lib64", "/lib32", "/etc/alternatives"]


def _relative_snapshot_path(path: str) -> str:
    rel = posixpath.normpath(path.lstrip("/"))
    if rel in ("", ".") or rel.startswith(".."):
        raise SandboxError(f"Invalid snapshot path: {path!r}")
    return rel


def materialize_snapshot(root: Path, files: Mapping[str, str]) -> dict[str, str]:
    """Write *files* under *root* as read-only copies.

    Returns sandbox path -> host path, where the sandbox path is the
    snapshot path made absolute.
    """
    mounts = {}
    for path, content in files.items():
        rel = _relative_snapshot_path(path)
        target = root / rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        os.chmod(target, 0o444)
        mounts[f"/{rel}"] = str(target)
    return mounts


class IsolatedSandbox(SandboxExecutor):
    """Runs each command in a fresh confined process over the snapshot.

    Subclasses turn a command and its mounts into the argv that launches the
    confined shell.
    """

    backend = ""

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    @abstractmethod
    def build_argv(self, command: str, mounts: Mapping[str, str], name: str) -> list[str]:
        """Argv running *command* with each mount bound read-only."""
        pass

    async def _terminate(self, name: str) -> None:
        """Clean up a sandbox that outlived its launcher."""
        pass

    async def run(self, command: str, files: Mapping[str, str]) -> CommandResult:
        root = Path(tempfile.mkdtemp(prefix="compactbot-"))
        try:
            mounts = materialize_snapshot(root, files)
            name = f"compactbot-{uuid.uuid4().hex[:12]}"
            return await self._exec(self.build_argv(command, mounts, name), name)
        finally:
            shutil.rmtree(root, ignore_errors=True)

    async def _exec(self, argv: list[str], name: str) -> CommandResult:
        try:
            process = await asyncio.create_subprocess_exec(
                *argv,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise SandboxError(f"Could not start {self.backend} sandbox: {e}") from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(), timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            await self._terminate(name)
            logger.warning(f"Sandbox command timed out after {self.timeout}s")
            raise SandboxError(f"Command timed out after {self.timeout} seconds")

        return CommandResult(
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
            exit_code=process.returncode if process.returncode is not None else -1,
        )


class DockerSandbox(IsolatedSandbox):
    """One throwaway container per command, with no network and a read-only root.

    The image needs bash and the text tools the summarizer reaches for (see
    sandbox.Dockerfile).
    """

    backend = "docker"

    def __init__(self, image: str = DEFAULT_IMAGE, timeout: float = 30.0, docker: str = "docker"):
        super().__init__(timeout)
        self.image = image
        self.docker = docker

    def build_argv(self, command: str, mounts: Mapping[str, str], name: str) -> list[str]:
        argv = [
            self.docker, "run", "--rm", "-i",
            f"--name={name}",
            "--network=none",
            "--read-only",
            "--cap-drop=ALL",
            "--security-opt=no-new-privileges",
            "--pids-limit=128",
            "--memory=512m",
            "--user=65534:65534",
            "--tmpfs=/tmp:rw,size=64m",
            "--workdir=/tmp",
        ]
        for target, source in mounts.items():
            argv.append(f"--volume={source}:{target}:ro")
        argv += [self.image, "bash", "-c", command]
        return argv

    async def _terminate(self, name: str) -> None:
        # Killing the client leaves the container running
        process = await asyncio.create_subprocess_exec(
            self.docker, "rm", "-f", name,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        await process.wait()


class BubblewrapSandbox(IsolatedSandbox):
    """Runs bash under bwrap in fresh namespaces.

    Only the system tool directories and the snapshot are visible, all
    read-only; ``/tmp`` is a private tmpfs and the home directory is absent.
    """

    backend = "bwrap"

    def __init__(self, timeout: float = 30.0, bwrap: str = "bwrap"):
        super().__init__(timeout)
        self.bwrap = bwrap

    def build_argv(self, command: str, mounts: Mapping[str, str], name: str) -> list[str]:
        argv = [
            self.bwrap,
            "--unshare-all",
            "--die-with-parent",
            "--new-session",
            "--clearenv",
            "--setenv", "PATH", "/usr/local/bin:/usr/bin:/bin",
            "--setenv", "HOME", "/tmp",
            "--setenv", "LANG", "C.UTF-8",
            "--hostname", name,
        ]
        for directory in _SYSTEM_DIRS:
            argv += ["--ro-bind-try", directory, directory]
        argv += ["--proc", "/proc", "--dev", "/dev", "--tmpfs", "/tmp"]
        for target, source in mounts.items():
            argv += ["--ro-bind", source, target]
        argv += ["--chdir", "/tmp", "bash", "-c", command]
        return argv


def create_sandbox(
    backend: str = "auto",
    image: str = DEFAULT_IMAGE,
    timeout: float = 30.0,
) -> IsolatedSandbox:
    """Build the configured sandbox.

    ``auto`` prefers bubblewrap, then Docker. There is no unconfined
    fallback: without either tool this raises ``SandboxError``.
    """
    if backend in ("auto", "bwrap") and shutil.which("bwrap"):
        logger.debug("Using bubblewrap sandbox")
        return BubblewrapSandbox(timeout=timeout)
    if backend in ("auto", "docker") and shutil.which("docker"):
        logger.debug(f"Using docker sandbox with image {image}")
        return DockerSandbox(image=image, timeout=timeout)

    wanted = "bwrap or docker" if backend == "auto" else backend
    raise SandboxError(f"No sandbox available: {wanted} not found on PATH")
