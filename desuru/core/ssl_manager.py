from pathlib import Path
from typing import Optional

from .diagnostics import check_domain_points_here, probe_url
from .exceptions import CommandError, ProvisioningError
from .models import DeploymentContext
from .provisioner import Provisioner
from .utils import (
    CommandRunner, print_info, print_warning, print_step, print_success, print_debug, log_to_file
)
from ..config.constants import CERTBOT_PACKAGES, LETSENCRYPT_LIVE_DIR, CERTBOT_RENEW_CRON


class SSLManager:
    """Issues a Let's Encrypt certificate with certbot.

    Every failure here is advisory: the deployment carries on over plain HTTP.
    """

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        provisioner: Optional[Provisioner] = None,
        live_dir: str = LETSENCRYPT_LIVE_DIR
    ):
        self.runner = runner or CommandRunner()
        self.provisioner = provisioner or Provisioner(self.runner)
        self.live_dir = Path(live_dir)

    def certbot_command(self, domain: str, email: str):
        return [
            'certbot', '--nginx',
            '-d', domain,
            '--non-interactive', '--agree-tos',
            '--email', email,
            '--redirect',
        ]

    def ensure_certbot(self, context: DeploymentContext) -> bool:
        if self.runner.exists('certbot'):
            print_debug("certbot already installed")
            return True
        try:
            self.provisioner.install_packages(CERTBOT_PACKAGES)
        except (CommandError, ProvisioningError) as e:
            print_warning(f"Failed to install certbot, SSL setup skipped - deployment will continue without HTTPS: {e}")
            context.state.add_error()
            return False
        return True

    def setup(self, context: DeploymentContext) -> DeploymentContext:
        params = context.params
        print_step("Setting up SSL certificate...")

        print_debug("Performing pre-SSL validation checks...")
        check_domain_points_here(params.domain)

        if not self.ensure_certbot(context):
            return context

        print_debug(f"Running certbot for domain: {params.domain}")
        try:
            self.runner.run(self.certbot_command(params.domain, params.email))
        except CommandError as e:
            print_warning(f"SSL certificate installation failed: {e}")
            print_info("1. Domain doesn't point to this server: update DNS records")
            print_info("2. Firewall blocking ports 80/443: configure firewall")
            print_info("3. Rate limits reached: wait and try again later")
            print_info(f"Manual command: certbot --nginx -d {params.domain}")
            log_to_file(f"SSL certificate installation failed for {params.domain}")
            context.state.add_error()
            return context

        print_success("SSL certificate installed successfully")
        context.ssl_active = True
        context.ssl_expiry = self.certificate_expiry(params.domain)
        if context.ssl_expiry:
            print_info(f"SSL certificate expires: {context.ssl_expiry}")

        if probe_url(f"https://{params.domain}/health") == 200:
            print_info("HTTPS is working correctly")
        else:
            print_warning("HTTPS may not be working properly - check nginx configuration")

        if not self.schedule_renewal():
            print_info(f"Manually add to crontab: {CERTBOT_RENEW_CRON}")
            context.state.add_error()
        return context

    def certificate_expiry(self, domain: str) -> Optional[str]:
        cert = self.live_dir / domain / 'cert.pem'
        if not cert.exists():
            print_warning("SSL certificate file not found after installation")
            return None
        output = self.runner.output(['openssl', 'x509', '-in', str(cert), '-noout', '-enddate'])
        if not output or '=' not in output:
            return None
        return output.split('=', 1)[1].strip()

    def schedule_renewal(self) -> bool:
        """Add the certbot renew cron entry unless it is already there"""
        try:
            result = self.runner.run(['crontab', '-l'], check=False)
        except CommandError as e:
            print_warning(f"Failed to read crontab: {e}")
            return False

        # crontab -l exits non-zero when the user has no crontab yet
        current = result.stdout if result.returncode == 0 and result.stdout else ""
        if CERTBOT_RENEW_CRON in current.splitlines():
            print_info("SSL certificate auto-renewal already configured")
            return True

        updated = current
        if updated and not updated.endswith('\n'):
            updated += '\n'
        updated += CERTBOT_RENEW_CRON + '\n'
        try:
            self.runner.run(['crontab', '-'], input_text=updated)
        except CommandError as e:
            print_warning(f"Failed to setup SSL auto-renewal: {e}")
            return False

        print_info("SSL certificate auto-renewal configured")
        return True
