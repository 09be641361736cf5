import shutil
from pathlib import Path
from typing import Optional, Tuple

from .exceptions import BuildError, CommandError
from .models import DeploymentProfile, ProvisioningState
from .utils import (
    CommandRunner, print_info, print_warning, print_step, print_success, print_debug,
    format_file_size, get_directory_size, count_files, log_to_file
)
from ..config.constants import (
    LOCKFILE_PACKAGE_MANAGERS, DEFAULT_PACKAGE_MANAGER, BUILD_DIR_FALLBACKS, MIN_BUILD_FREE_BYTES
)


class BuildManager:
    """Installs project dependencies, runs the build and locates build output"""

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    def build(self, project_dir: Path, profile: DeploymentProfile,
              state: ProvisioningState) -> Tuple[DeploymentProfile, str]:
        """Install dependencies and build; returns the (possibly updated) profile and the package manager used"""
        package_manager = self.install_dependencies(project_dir, state)
        profile = self.run_build(project_dir, profile)
        return profile, package_manager

    def select_package_manager(self, project_dir: Path) -> str:
        """Pick a package manager from the lockfile, falling back to npm when it is not installed"""
        for lockfile, manager in LOCKFILE_PACKAGE_MANAGERS:
            if (project_dir / lockfile).exists():
                print_debug(f"Using {manager} package manager (detected {lockfile})")
                if not self.runner.exists(manager):
                    print_warning(f"{lockfile} found but {manager} not installed, using {DEFAULT_PACKAGE_MANAGER} instead")
                    return DEFAULT_PACKAGE_MANAGER
                return manager

        print_debug(f"Using {DEFAULT_PACKAGE_MANAGER} package manager (default)")
        return DEFAULT_PACKAGE_MANAGER

    def install_dependencies(self, project_dir: Path, state: ProvisioningState) -> str:
        """Install dependencies with the selected manager, retrying once with npm"""
        print_step("Installing application dependencies...")
        package_manager = self.select_package_manager(project_dir)

        # Strategy 1: selected package manager
        try:
            print_info(f"Installing dependencies with {package_manager}...")
            self.runner.run([package_manager, 'install'], cwd=str(project_dir))
            print_success(f"Dependencies installed with {package_manager}")
        except CommandError as e:
            if package_manager == DEFAULT_PACKAGE_MANAGER:
                raise BuildError(
                    f"Failed to install dependencies: {e}",
                    hints=["Check package.json syntax and network connectivity"]
                )
            print_warning(f"{package_manager} install failed: {e}")
            state.add_error()

            # Strategy 2: npm fallback
            try:
                print_info(f"Trying fallback to {DEFAULT_PACKAGE_MANAGER}...")
                self.runner.run([DEFAULT_PACKAGE_MANAGER, 'install'], cwd=str(project_dir))
                print_success(f"Dependencies installed with {DEFAULT_PACKAGE_MANAGER} (fallback)")
                package_manager = DEFAULT_PACKAGE_MANAGER
            except CommandError as fallback_error:
                raise BuildError(
                    f"Failed to install dependencies with both {package_manager} and {DEFAULT_PACKAGE_MANAGER}: {fallback_error}",
                    hints=[
                        "Network connectivity issues",
                        "Syntax errors in package.json",
                        "Incompatible Node.js version",
                        "Missing system dependencies",
                    ]
                )

        if package_manager == DEFAULT_PACKAGE_MANAGER:
            self._audit(project_dir, state)

        node_modules = project_dir / 'node_modules'
        if node_modules.is_dir():
            print_info(f"Dependencies installed successfully ({format_file_size(get_directory_size(node_modules))})")
        else:
            print_warning("node_modules directory not found after installation")

        return package_manager

    def _audit(self, project_dir: Path, state: ProvisioningState) -> None:
        print_debug("Running security audit...")
        if not self.runner.succeeds(['npm', 'audit'], cwd=str(project_dir)):
            print_warning("Some security vulnerabilities found in dependencies")
            state.add_error()

    def run_build(self, project_dir: Path, profile: DeploymentProfile) -> DeploymentProfile:
        """Run the build command and verify (or rediscover) the artifact directory"""
        if not profile.has_build:
            print_info("No build step required for this framework")
            return profile

        print_step("Building application...")
        self._check_disk_space(project_dir)

        build_command = ' '.join(profile.build_command)
        try:
            self.runner.run(profile.build_command, cwd=str(project_dir), capture_output=False)
        except CommandError as e:
            raise BuildError(
                f"Build failed: {e}",
                hints=[
                    "Missing dependencies: re-run the dependency install",
                    "Syntax errors: check your source code",
                    'Memory issues: try export NODE_OPTIONS="--max-old-space-size=4096"',
                    "Missing env vars: check if a .env file is needed",
                    "Wrong Node version: check the package.json engines field",
                    f"Try: {build_command} locally first",
                ]
            )
        print_success("Application built successfully")
        log_to_file(f"Build completed successfully with: {build_command}")

        if profile.serves_static and profile.artifact_dir:
            profile = self.verify_artifact_dir(project_dir, profile)
        return profile

    def verify_artifact_dir(self, project_dir: Path, profile: DeploymentProfile) -> DeploymentProfile:
        build_dir = project_dir / profile.artifact_dir
        if build_dir.is_dir():
            self._report_build_dir(build_dir, profile.artifact_dir)
            return profile

        print_warning(f"Expected build directory {profile.artifact_dir} not found after build")
        print_info("Searching for alternative build directories...")
        fallback = self.find_build_dir(project_dir)
        if fallback is None:
            raise BuildError(
                "No build directory found after build",
                hints=[
                    "This might indicate the build didn't complete successfully",
                    f"Searched: {', '.join(BUILD_DIR_FALLBACKS)}",
                ]
            )

        print_info(f"Found alternative build directory: {fallback}")
        log_to_file(f"Alternative build directory found: {fallback}")
        self._report_build_dir(project_dir / fallback, fallback)
        return profile.with_artifact_dir(fallback)

    def find_build_dir(self, project_dir: Path) -> Optional[str]:
        for candidate in BUILD_DIR_FALLBACKS:
            if (project_dir / candidate).is_dir():
                return candidate
        return None

    def _report_build_dir(self, build_dir: Path, name: str) -> None:
        file_count = count_files(build_dir)
        print_info(f"Build directory: {name} ({file_count} files, {format_file_size(get_directory_size(build_dir))})")
        if file_count == 0:
            print_warning("Build directory is empty - this might indicate a build issue")

    def _check_disk_space(self, project_dir: Path) -> None:
        try:
            free = shutil.disk_usage(project_dir).free
        except OSError:
            return
        if free < MIN_BUILD_FREE_BYTES:
            print_warning(f"Low disk space available ({format_file_size(free)}), build might fail")
