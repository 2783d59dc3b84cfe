"""Tests for the isolated sandbox executors."""

import shutil
import subprocess
from pathlib import Path

import pytest

from compactbot.sandbox.base import SandboxError
from compactbot.sandbox.isolated import (
    DEFAULT_IMAGE,
    BubblewrapSandbox,
    DockerSandbox,
    IsolatedSandbox,
    create_sandbox,
    materialize_snapshot,
)

FILES = {"/conversation.json": '[{"role": "user", "content": "set up ssh keys"}]'}

DOCKERFILE = Path(__file__).resolve().parent.parent / "sandbox.Dockerfile"


class ArgvSandbox(IsolatedSandbox):
    """Runs a fixed argv built from the mounts, recording what it saw."""

    backend = "test"

    def __init__(self, make_argv, timeout=30.0):
        super().__init__(timeout)
        self.make_argv = make_argv
        self.seen_mounts = None
        self.terminated = []

    def build_argv(self, command, mounts, name):
        self.seen_mounts = dict(mounts)
        return self.make_argv(command, mounts)

    async def _terminate(self, name):
        self.terminated.append(name)


# ── materialize_snapshot ────────────────────────────────────────


class TestMaterializeSnapshot:
    def test_read_only_copies_at_absolute_paths(self, tmp_path):
        mounts = materialize_snapshot(tmp_path, {"/a/b.json": "x", "c.txt": "y"})
        assert set(mounts) == {"/a/b.json", "/c.txt"}
        assert Path(mounts["/a/b.json"]).read_text() == "x"
        assert Path(mounts["/c.txt"]).stat().st_mode & 0o777 == 0o444

    def test_escaping_path_rejected(self, tmp_path):
        with pytest.raises(SandboxError, match="Invalid snapshot path"):
            materialize_snapshot(tmp_path, {"/../etc/passwd": "x"})


# ── argv ────────────────────────────────────────────────────────


class TestDockerArgv:
    def test_confined_container(self):
        argv = DockerSandbox(image="img:1").build_argv(
            "jq length /conversation.json", {"/conversation.json": "/tmp/x/conversation.json"}, "cb-1",
        )
        assert argv[:2] == ["docker", "run"]
        assert "--network=none" in argv
        assert "--read-only" in argv
        assert "--cap-drop=ALL" in argv
        assert "--name=cb-1" in argv
        assert "--volume=/tmp/x/conversation.json:/conversation.json:ro" in argv
        assert argv[-4:] == ["img:1", "bash", "-c", "jq length /conversation.json"]

    def test_only_snapshot_files_mounted(self):
        argv = DockerSandbox().build_argv("ls", {"/a.json": "/tmp/x/a.json"}, "cb-2")
        volumes = [a for a in argv if a.startswith("--volume=")]
        assert volumes == ["--volume=/tmp/x/a.json:/a.json:ro"]


class TestBubblewrapArgv:
    def _argv(self, mounts=None):
        mounts = mounts or {"/conversation.json": "/tmp/x/conversation.json"}
        return BubblewrapSandbox().build_argv("cat /conversation.json", mounts, "cb-1")

    def test_fresh_namespaces(self):
        argv = self._argv()
        assert argv[0] == "bwrap"
        assert "--unshare-all" in argv
        assert "--clearenv" in argv
        assert argv[-3:] == ["bash", "-c", "cat /conversation.json"]

    def test_snapshot_bound_read_only(self):
        argv = self._argv()
        i = argv.index("--ro-bind")
        assert argv[i:i + 3] == ["--ro-bind", "/tmp/x/conversation.json", "/conversation.json"]

    def test_no_writable_host_binds(self):
        argv = self._argv()
        assert "--bind" not in argv
        assert "--bind-try" not in argv

    def test_host_root_and_home_not_visible(self):
        argv = self._argv()
        sources = [argv[i + 1] for i, a in enumerate(argv) if a in ("--ro-bind", "--ro-bind-try")]
        assert "/" not in sources
        assert str(Path.home()) not in sources
        assert not any(s.startswith("/home") or s.startswith("/root") for s in sources)


# ── run mechanics ───────────────────────────────────────────────


class TestIsolatedSandboxRun:
    @pytest.mark.asyncio
    async def test_reads_mounted_copy(self):
        sandbox = ArgvSandbox(lambda command, mounts: ["cat", mounts["/conversation.json"]])
        result = await sandbox.run("cat /conversation.json", FILES)
        assert result.exit_code == 0
        assert result.stdout == FILES["/conversation.json"]

    @pytest.mark.asyncio
    async def test_nonzero_exit_and_stderr(self):
        sandbox = ArgvSandbox(lambda command, mounts: ["cat", "/nonexistent/compactbot"])
        result = await sandbox.run("cat", FILES)
        assert result.exit_code != 0
        assert "nonexistent" in result.stderr

    @pytest.mark.asyncio
    async def test_copies_removed_after_run(self):
        sandbox = ArgvSandbox(lambda command, mounts: ["true"])
        await sandbox.run("true", FILES)
        assert not Path(sandbox.seen_mounts["/conversation.json"]).exists()

    @pytest.mark.asyncio
    async def test_timeout_kills_and_terminates(self):
        sandbox = ArgvSandbox(lambda command, mounts: ["sleep", "5"], timeout=0.2)
        with pytest.raises(SandboxError, match="timed out"):
            await sandbox.run("sleep 5", FILES)
        assert len(sandbox.terminated) == 1
        assert sandbox.terminated[0].startswith("compactbot-")

    @pytest.mark.asyncio
    async def test_missing_launcher(self):
        sandbox = ArgvSandbox(lambda command, mounts: ["/nonexistent/compactbot-launcher"])
        with pytest.raises(SandboxError, match="Could not start"):
            await sandbox.run("ls", FILES)

    @pytest.mark.asyncio
    async def test_escaping_path_rejected(self):
        sandbox = ArgvSandbox(lambda command, mounts: ["true"])
        with pytest.raises(SandboxError, match="Invalid snapshot path"):
            await sandbox.run("ls", {"/../etc/passwd": "x"})
        assert sandbox.seen_mounts is None

    @pytest.mark.asyncio
    async def test_input_files_untouched(self):
        files = dict(FILES)
        await ArgvSandbox(lambda command, mounts: ["true"]).run("ls", files)
        assert files == FILES


# ── create_sandbox ──────────────────────────────────────────────


class TestCreateSandbox:
    def _which(self, monkeypatch, available):
        monkeypatch.setattr(
            "compactbot.sandbox.isolated.shutil.which",
            lambda name: f"/usr/bin/{name}" if name in available else None,
        )

    def test_auto_prefers_bwrap(self, monkeypatch):
        self._which(monkeypatch, {"bwrap", "docker"})
        assert isinstance(create_sandbox(), BubblewrapSandbox)

    def test_auto_falls_back_to_docker(self, monkeypatch):
        self._which(monkeypatch, {"docker"})
        sandbox = create_sandbox(image="img:2", timeout=5.0)
        assert isinstance(sandbox, DockerSandbox)
        assert sandbox.image == "img:2"
        assert sandbox.timeout == 5.0

    def test_explicit_backend_is_not_substituted(self, monkeypatch):
        self._which(monkeypatch, {"bwrap"})
        with pytest.raises(SandboxError, match="docker not found"):
            create_sandbox("docker")

    def test_nothing_available_raises(self, monkeypatch):
        self._which(monkeypatch, set())
        with pytest.raises(SandboxError, match="No sandbox available"):
            create_sandbox()


# ── real isolation ──────────────────────────────────────────────


def ensure_bwrap():
    if shutil.which("bwrap") is None:
        pytest.skip("bubblewrap not available on this host")
    res = subprocess.run(
        ["bwrap", "--unshare-all", "--ro-bind", "/", "/", "true"], capture_output=True, text=True,
    )
    if res.returncode != 0:
        pytest.skip(f"bubblewrap cannot create namespaces here: {res.stderr.strip()}")


def ensure_image(image_tag: str, dockerfile: Path):
    if shutil.which("docker") is None:
        pytest.skip("Docker not available on this host")
    if subprocess.run(["docker", "info"], capture_output=True).returncode != 0:
        pytest.skip("Docker daemon not reachable")
    res = subprocess.run(["docker", "image", "inspect", image_tag], capture_output=True, text=True)
    if res.returncode != 0:
        build = subprocess.run(
            ["docker", "build", "-t", image_tag, "-f", str(dockerfile), str(dockerfile.parent)],
            capture_output=True, text=True,
        )
        if build.returncode != 0:
            pytest.skip(f"Could not build {image_tag}")


@pytest.fixture(params=["bwrap", "docker"])
def sandbox(request):
    if request.param == "bwrap":
        ensure_bwrap()
        return BubblewrapSandbox(timeout=10.0)
    ensure_image(DEFAULT_IMAGE, DOCKERFILE)
    return DockerSandbox(timeout=30.0)


class TestIsolation:
    @pytest.mark.asyncio
    async def test_reads_snapshot_path(self, sandbox):
        result = await sandbox.run("cat /conversation.json", FILES)
        assert result.exit_code == 0
        assert result.stdout == FILES["/conversation.json"]

    @pytest.mark.asyncio
    async def test_write_outside_sandbox_fails(self, sandbox, tmp_path):
        result = await sandbox.run(f"echo pwned > {tmp_path}/escaped.txt; cat /etc/hostname", FILES)
        assert result.exit_code != 0 or "pwned" not in result.stdout
        assert not (tmp_path / "escaped.txt").exists()

    @pytest.mark.asyncio
    async def test_host_files_not_readable(self, sandbox, tmp_path):
        secret = tmp_path / "credentials.json"
        secret.write_text('{"apiKey": "sk-secret"}')
        result = await sandbox.run(f"cat {secret}", FILES)
        assert result.exit_code != 0
        assert "sk-secret" not in result.stdout

    @pytest.mark.asyncio
    async def test_snapshot_not_writable(self, sandbox):
        result = await sandbox.run("echo x >> /conversation.json", FILES)
        assert result.exit_code != 0

    @pytest.mark.asyncio
    async def test_no_network(self, sandbox):
        result = await sandbox.run("echo hi > /dev/tcp/1.1.1.1/80", FILES)
        assert result.exit_code != 0

    @pytest.mark.asyncio
    async def test_harmless_words_not_blocked(self, sandbox):
        result = await sandbox.run("grep -c ssh /conversation.json", FILES)
        assert result.exit_code == 0
        assert result.stdout.strip() == "1"

    @pytest.mark.asyncio
    async def test_no_state_between_commands(self, sandbox):
        await sandbox.run("echo hi > /tmp/scratch.txt", FILES)
        result = await sandbox.run("cat /tmp/scratch.txt", FILES)
        assert result.exit_code != 0

    @pytest.mark.asyncio
    async def test_timeout(self, sandbox):
        sandbox.timeout = 1.0
        with pytest.raises(SandboxError, match="timed out"):
            await sandbox.run("sleep 20", FILES)
