import json
import socket
import subprocess
from pathlib import Path

import pytest
import requests

from desuru.core.exceptions import CommandError
from desuru.core.models import DeploymentContext, DeploymentParameters
from desuru.core.utils import CommandRunner


# Successful installs make these commands appear on PATH
DEFAULT_PROVIDES = {
    ('apt-get', 'install', '-y', 'nodejs'): ['node', 'npm'],
    ('apt-get', 'install', '-y', 'nginx'): ['nginx'],
    ('npm', 'install', '-g', 'pm2'): ['pm2'],
    ('apt-get', 'install', '-y', 'certbot'): ['certbot'],
}


class FakeRunner(CommandRunner):
    """Records argv lists instead of touching the host.

    available: commands reported by exists()
    failing:   argv prefixes that exit 1
    outputs:   argv prefix -> stdout
    stderr:    argv prefix -> stderr
    """

    def __init__(self, available=(), failing=(), outputs=None, provides=None):
        self.available = set(available)
        self.failing = [tuple(prefix) for prefix in failing]
        self.outputs = {tuple(prefix): text for prefix, text in (outputs or {}).items()}
        self.stderr = {}
        self.provides = DEFAULT_PROVIDES if provides is None else provides
        self.calls = []
        self.kwargs = []

    @staticmethod
    def _matches(command, prefix):
        return tuple(command[:len(prefix)]) == prefix

    @staticmethod
    def _lookup(table, command):
        for prefix in sorted(table, key=len, reverse=True):
            if tuple(command[:len(prefix)]) == prefix:
                return table[prefix]
        return ""

    def exists(self, command):
        return command in self.available

    def run(self, command, cwd=None, check=True, capture_output=True, input_text=None, env=None):
        command = [str(part) for part in command]
        self.calls.append(command)
        self.kwargs.append({'cwd': cwd, 'input_text': input_text, 'env': env, 'capture_output': capture_output})

        returncode = 1 if any(self._matches(command, prefix) for prefix in self.failing) else 0
        if returncode and check:
            raise CommandError(f"Command failed: {' '.join(command)}", command, returncode)

        stdout = self._lookup(self.outputs, command)
        stderr = self._lookup(self.stderr, command)
        if returncode == 0:
            for prefix, commands in self.provides.items():
                if self._matches(command, prefix):
                    self.available.update(commands)

        return subprocess.CompletedProcess(command, returncode, stdout, stderr)

    def ran(self, *prefix):
        return any(self._matches(command, prefix) for command in self.calls)

    def calls_starting_with(self, *prefix):
        return [command for command in self.calls if self._matches(command, prefix)]


ALL_TOOLS = ['node', 'npm', 'nginx', 'pm2', 'yarn', 'pnpm', 'certbot', 'ufw']


@pytest.fixture
def runner():
    return FakeRunner(available=ALL_TOOLS)


@pytest.fixture(autouse=True)
def no_network(monkeypatch):
    """No test may reach the network or DNS"""
    def offline_get(*args, **kwargs):
        raise requests.ConnectionError("network disabled in tests")

    def offline_resolve(*args, **kwargs):
        raise socket.gaierror("dns disabled in tests")

    monkeypatch.setattr(requests, 'get', offline_get)
    monkeypatch.setattr(socket, 'gethostbyname', offline_resolve)


@pytest.fixture
def make_project(tmp_path):
    def _make(manifest=None, files=(), dirs=()):
        project = tmp_path / "project"
        project.mkdir(exist_ok=True)
        if manifest is not None:
            text = manifest if isinstance(manifest, str) else json.dumps(manifest)
            (project / "package.json").write_text(text)
        for name in files:
            path = project / name
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text("// generated\n")
        for name in dirs:
            (project / name).mkdir(parents=True, exist_ok=True)
        return project
    return _make


@pytest.fixture
def make_context():
    def _make(project_dir, profile=None, **overrides):
        values = dict(
            app_name="web", domain="example.com", port=3000, ssl=False,
            email=None, instances="1", memory="500M"
        )
        values.update(overrides)
        context = DeploymentContext(params=DeploymentParameters(**values), project_dir=Path(project_dir))
        context.profile = profile
        return context
    return _make
