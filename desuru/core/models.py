"""
Deployment data model.

DeploymentProfile is what the framework detector produces from the project on
disk; DeploymentParameters is the validated user input; ProvisioningState
collects per-run facts for the summary; DeploymentContext threads all of them
through the pipeline stages.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Dict, Optional, Tuple


# Entry point marker: launch through the framework's own production server
INTEGRATED_SERVER = "<integrated-server>"


class Category(Enum):
    FRONTEND = "frontend"
    BACKEND = "backend"
    FULLSTACK = "fullstack"

    @property
    def needs_supervisor(self) -> bool:
        return self is not Category.FRONTEND


@dataclass(frozen=True)
class DeploymentProfile:
    """
    Deployment profile for one project.

    Attributes:
        framework_name: Human readable framework ("Next.js", "Vue.js", ...)
        category: Frontend, Backend or Fullstack; drives supervisor and proxy mode
        build_command: argv of the build step, empty when there is no build
        start_command: argv used by the supervisor ("npm start" or "node")
        entry_point: file path, INTEGRATED_SERVER, or None if not yet discovered
        artifact_dir: directory expected after build (static serving only)
        serves_static: nginx serves artifact_dir instead of proxying
        port: port forced by the framework, overriding the user port
    """
    framework_name: str
    category: Category
    build_command: Tuple[str, ...] = ()
    start_command: Tuple[str, ...] = ()
    entry_point: Optional[str] = None
    artifact_dir: Optional[str] = None
    serves_static: bool = False
    port: Optional[int] = None

    @property
    def uses_integrated_server(self) -> bool:
        return self.entry_point == INTEGRATED_SERVER

    @property
    def has_build(self) -> bool:
        return bool(self.build_command)

    def with_artifact_dir(self, artifact_dir: str) -> "DeploymentProfile":
        return replace(self, artifact_dir=artifact_dir)

    def with_entry_point(self, entry_point: str) -> "DeploymentProfile":
        return replace(self, entry_point=entry_point)


@dataclass(frozen=True)
class DeploymentParameters:
    """Validated user input"""
    app_name: str
    domain: str
    port: int
    ssl: bool
    email: Optional[str]
    instances: str
    memory: str


@dataclass
class ComponentStatus:
    name: str
    version: str
    freshly_installed: bool


@dataclass
class ProvisioningState:
    """
    Transient per-run facts.

    errors counts advisory failures for the final summary; it never feeds a
    later decision.
    """
    components: Dict[str, ComponentStatus] = field(default_factory=dict)
    install_actions: int = 0
    errors: int = 0

    def record(self, name: str, version: str, freshly_installed: bool) -> None:
        self.components[name] = ComponentStatus(name, version, freshly_installed)
        if freshly_installed:
            self.install_actions += 1

    def add_error(self) -> None:
        self.errors += 1


@dataclass
class DeploymentContext:
    """Pipeline context passed from stage to stage"""
    params: DeploymentParameters
    project_dir: Path
    state: ProvisioningState = field(default_factory=ProvisioningState)
    profile: Optional[DeploymentProfile] = None
    package_manager: Optional[str] = None
    process_status: Optional[str] = None
    process_memory_mb: Optional[int] = None
    ssl_active: bool = False
    ssl_expiry: Optional[str] = None
    firewall_status: Optional[str] = None
    log_file: Optional[Path] = None
    repository: Optional[Dict[str, str]] = None

    @property
    def port(self) -> int:
        if self.profile is not None and self.profile.port is not None:
            return self.profile.port
        return self.params.port

    @property
    def artifact_path(self) -> Optional[Path]:
        if self.profile is None or not self.profile.artifact_dir:
            return None
        return self.project_dir / self.profile.artifact_dir
