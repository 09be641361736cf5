from typing import Optional

from .exceptions import CommandError
from .models import DeploymentContext
from .utils import CommandRunner, print_info, print_warning, print_step, print_success, print_debug, log_to_file
from ..config.constants import UFW_PROFILES


class FirewallManager:
    """Opens the nginx and SSH profiles in ufw. Never fails the deployment."""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    def status(self) -> Optional[str]:
        # First line looks like "Status: active"
        output = self.runner.output(['ufw', 'status'])
        if not output:
            return None
        words = output.splitlines()[0].split()
        return words[1] if len(words) > 1 else None

    def configure(self, context: DeploymentContext) -> DeploymentContext:
        if not self.runner.exists('ufw'):
            print_info("UFW firewall not available, skipping firewall configuration")
            print_info("Consider manually configuring iptables or another firewall")
            return context

        print_step("Configuring firewall...")
        current = self.status()
        print_debug(f"Current UFW status: {current or 'unknown'}")

        for profile in UFW_PROFILES:
            try:
                self.runner.run(['ufw', 'allow', profile])
            except CommandError as e:
                print_warning(f"Failed to configure {profile} firewall rule, traffic might be blocked if the firewall is enabled: {e}")
                context.state.add_error()
                context.firewall_status = current
                return context

        print_success("Firewall rules configured")
        log_to_file(f"Firewall rules configured: {', '.join(UFW_PROFILES)} allowed")

        if current != 'active':
            print_debug("Enabling UFW firewall...")
            try:
                self.runner.run(['ufw', '--force', 'enable'])
                print_info("UFW firewall enabled")
            except CommandError as e:
                print_warning(f"Failed to enable UFW firewall: {e}")
                context.state.add_error()

        context.firewall_status = self.status() or "unknown"
        print_info(f"Firewall status: {context.firewall_status}")
        return context
