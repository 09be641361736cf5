import os
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

import requests

from .exceptions import CommandError, ProvisioningError
from .models import DeploymentProfile, ProvisioningState
from .utils import (
    CommandRunner, print_info, print_success, print_warning, print_step, print_debug
)
from ..config.constants import (
    APT_UPDATE, APT_INSTALL, NODESOURCE_SETUP_URL, NODE_PACKAGE, NGINX_PACKAGE, PM2_PACKAGE,
    HTTP_PROBE_TIMEOUT
)


class Provisioner:
    """Installs Node.js, nginx and PM2 when absent.

    A component already on PATH is never reinstalled or upgraded, whatever its
    version.
    """

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()
        self._index_refreshed = False

    def provision(self, profile: DeploymentProfile, state: ProvisioningState) -> ProvisioningState:
        self.ensure_runtime(state)
        self.ensure_edge_server(state)
        if profile.category.needs_supervisor:
            self.ensure_supervisor(state)
        else:
            print_info("Skipping PM2 installation (frontend framework detected)")
        return state

    def refresh_package_index(self) -> None:
        """Run apt-get update once per run, right before the first install"""
        if self._index_refreshed:
            return
        print_step("Updating system packages...")
        try:
            self.runner.run(APT_UPDATE)
        except CommandError as e:
            raise ProvisioningError(
                f"Failed to update system packages: {e}",
                hints=["This is often due to network connectivity or repository issues"]
            )
        self._index_refreshed = True
        print_success("System packages updated")

    def install_packages(self, packages: Sequence[str]) -> None:
        """Install host packages with apt-get; raises CommandError on failure"""
        self.refresh_package_index()
        self.runner.run(list(APT_INSTALL) + list(packages))

    def ensure_runtime(self, state: ProvisioningState) -> None:
        if self.runner.exists('node'):
            node_version = self._version(['node', '--version'])
            npm_version = self._version(['npm', '--version'])
            print_info(f"Node.js {node_version} already installed")
            print_info(f"npm {npm_version} available")
            if not self.runner.succeeds(['node', '-e', "console.log('Node.js working')"]):
                print_warning("Node.js appears to be installed but not working properly, you may need to reinstall it")
            state.record('node', node_version, freshly_installed=False)
            return

        print_step("Installing Node.js 20.x...")
        self.refresh_package_index()
        try:
            script = self._download_script(NODESOURCE_SETUP_URL)
            try:
                self.runner.run(['bash', str(script)])
            finally:
                script.unlink()
        except (requests.RequestException, CommandError) as e:
            raise ProvisioningError(
                f"Failed to setup Node.js repository: {e}",
                hints=[
                    "Check network connectivity to NodeSource",
                    "Try: curl -I https://deb.nodesource.com",
                ]
            )

        try:
            self.install_packages([NODE_PACKAGE])
        except CommandError as e:
            raise ProvisioningError(
                f"Failed to install Node.js package: {e}",
                hints=["Check free disk space", "Look for package conflicts: apt-cache policy nodejs"]
            )

        self._verify_installed('node', "Node.js")
        node_version = self._version(['node', '--version'])
        state.record('node', node_version, freshly_installed=True)
        print_success(f"Node.js {node_version} installed")

    def ensure_edge_server(self, state: ProvisioningState) -> None:
        if self.runner.exists('nginx'):
            nginx_version = self._nginx_version()
            print_info(f"Nginx {nginx_version} already installed")
            if not self.runner.succeeds(['nginx', '-t']):
                print_warning("Existing Nginx configuration has issues, this might cause deployment problems")
            state.record('nginx', nginx_version, freshly_installed=False)
            return

        print_step("Installing Nginx...")
        try:
            self.install_packages([NGINX_PACKAGE])
        except CommandError as e:
            raise ProvisioningError(
                f"Failed to install Nginx: {e}",
                hints=["Nginx is required to serve your application", "Try: apt-get install -y nginx"]
            )

        self._verify_installed('nginx', "Nginx")
        nginx_version = self._nginx_version()
        state.record('nginx', nginx_version, freshly_installed=True)
        print_success(f"Nginx {nginx_version} installed")

    def ensure_supervisor(self, state: ProvisioningState) -> None:
        if self.runner.exists('pm2'):
            pm2_version = self._version(['pm2', '--version'])
            print_info(f"PM2 v{pm2_version} already installed")
            if not self.runner.succeeds(['pm2', 'list']):
                print_warning("PM2 appears to be installed but not working properly, you may need to restart the PM2 daemon")
            state.record('pm2', pm2_version, freshly_installed=False)
            return

        print_step("Installing PM2...")
        try:
            self.runner.run(['npm', 'install', '-g', PM2_PACKAGE])
        except CommandError as e:
            raise ProvisioningError(
                f"Failed to install PM2: {e}",
                hints=[
                    "PM2 is required for managing backend applications",
                    "Ensure Node.js is properly installed: node --version && npm --version",
                ]
            )

        self._verify_installed('pm2', "PM2")
        pm2_version = self._version(['pm2', '--version'])
        state.record('pm2', pm2_version, freshly_installed=True)
        print_success(f"PM2 v{pm2_version} installed")

    def _verify_installed(self, command: str, label: str) -> None:
        if not self.runner.exists(command):
            raise ProvisioningError(
                f"{label} installation finished but '{command}' is not on PATH",
                hints=[f"Check: which {command}"]
            )

    def _version(self, command: List[str]) -> str:
        return self.runner.output(command) or "unknown"

    def _nginx_version(self) -> str:
        # "nginx version: nginx/1.24.0 (Ubuntu)" is printed on stderr
        output = self.runner.output(['nginx', '-v'])
        if not output or '/' not in output:
            return "unknown"
        return output.split('/', 1)[1].split()[0]

    def _download_script(self, url: str) -> Path:
        print_debug(f"Downloading {url}")
        response = requests.get(url, timeout=HTTP_PROBE_TIMEOUT * 6)
        response.raise_for_status()
        fd, path = tempfile.mkstemp(prefix="desuru-", suffix=".sh")
        with os.fdopen(fd, 'w') as f:
            f.write(response.text)
        return Path(path)
