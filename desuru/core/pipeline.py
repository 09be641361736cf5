"""
Deployment pipeline.

Stages run strictly in order and each takes and returns the DeploymentContext:

    classify -> provision -> build -> launch (non-frontend) -> edge
             -> ssl (optional) -> firewall

Classification and every required host step raise DesuruError subclasses and
abort the run. Mutations made before a fatal error stay in place. SSL, firewall
and boot-time registration only warn and bump the error counter.
"""

import os
from typing import Optional

from .build_manager import BuildManager
from .diagnostics import probe_url
from .exceptions import PreconditionError
from .firewall_manager import FirewallManager
from .framework_detector import FrameworkDetector
from .git_manager import GitManager
from .models import DeploymentContext
from .nginx_manager import NginxManager
from .process_manager import ProcessManager
from .provisioner import Provisioner
from .ssl_manager import SSLManager
from .utils import CommandRunner, print_info, print_warning, print_success, log_to_file
from ..config.constants import HTTP_OK_STATUSES


class Deployer:
    """Drives one deployment run from detection to firewall"""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        detector: Optional[FrameworkDetector] = None,
        provisioner: Optional[Provisioner] = None,
        build_manager: Optional[BuildManager] = None,
        process_manager: Optional[ProcessManager] = None,
        nginx_manager: Optional[NginxManager] = None,
        ssl_manager: Optional[SSLManager] = None,
        firewall_manager: Optional[FirewallManager] = None,
        git_manager: Optional[GitManager] = None,
        require_root: bool = True
    ):
        self.runner = runner or CommandRunner()
        self.detector = detector or FrameworkDetector()
        self.provisioner = provisioner or Provisioner(self.runner)
        self.build_manager = build_manager or BuildManager(self.runner)
        self.process_manager = process_manager or ProcessManager(self.runner)
        self.nginx_manager = nginx_manager or NginxManager(self.runner)
        self.ssl_manager = ssl_manager or SSLManager(self.runner, self.provisioner)
        self.firewall_manager = firewall_manager or FirewallManager(self.runner)
        self.git_manager = git_manager or GitManager()
        self.require_root = require_root

    def check_preconditions(self) -> None:
        if self.require_root and os.geteuid() != 0:
            raise PreconditionError(
                "This command must be run as root",
                hints=["Run with: sudo desuru --app ... --domain ..."]
            )

    def run(self, context: DeploymentContext) -> DeploymentContext:
        self.check_preconditions()
        log_to_file("=== DEPLOYMENT STARTED ===")
        print_info(f"Working directory: {context.project_dir}")
        context.repository = self.git_manager.describe(context.project_dir)

        context = self.classify(context)
        context = self.provision(context)
        context = self.build(context)
        context = self.launch(context)
        context = self.configure_edge(context)
        context = self.configure_ssl(context)
        context = self.configure_firewall(context)
        self.check_accessibility(context)

        log_to_file("=== DEPLOYMENT COMPLETED SUCCESSFULLY ===")
        return context

    def classify(self, context: DeploymentContext) -> DeploymentContext:
        context.profile = self.detector.detect(context.project_dir)
        fixed_port = context.profile.port
        if fixed_port is not None and fixed_port != context.params.port:
            print_warning(f"{context.profile.framework_name} serves on port {fixed_port}, ignoring --port {context.params.port}")
        return context

    def provision(self, context: DeploymentContext) -> DeploymentContext:
        self.provisioner.provision(context.profile, context.state)
        return context

    def build(self, context: DeploymentContext) -> DeploymentContext:
        context.profile, context.package_manager = self.build_manager.build(
            context.project_dir, context.profile, context.state
        )
        return context

    def launch(self, context: DeploymentContext) -> DeploymentContext:
        if not context.profile.category.needs_supervisor:
            print_info("Frontend framework detected - will serve static files via Nginx")
            log_to_file(f"Frontend deployment: serving static files from {context.profile.artifact_dir}")
            return context
        return self.process_manager.launch(context)

    def configure_edge(self, context: DeploymentContext) -> DeploymentContext:
        return self.nginx_manager.configure(context)

    def configure_ssl(self, context: DeploymentContext) -> DeploymentContext:
        if not context.params.ssl:
            return context
        return self.ssl_manager.setup(context)

    def configure_firewall(self, context: DeploymentContext) -> DeploymentContext:
        return self.firewall_manager.configure(context)

    def check_accessibility(self, context: DeploymentContext) -> bool:
        scheme = "https" if context.ssl_active else "http"
        url = f"{scheme}://{context.params.domain}"
        if probe_url(url) in HTTP_OK_STATUSES:
            print_success(f"Application is accessible at {url}")
            return True
        print_warning("Application may not be fully accessible yet, check logs if issues persist")
        return False
