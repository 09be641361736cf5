import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .exceptions import CommandError, LaunchError
from .framework_detector import find_main_file
from .models import DeploymentContext, DeploymentProfile
from .utils import (
    CommandRunner, print_info, print_warning, print_step, print_success, print_debug,
    load_json_file, list_directory, log_to_file
)
from ..config.constants import (
    MANIFEST_FILE, MAIN_FILE_CANDIDATES, PM2_STARTUP_USER, PM2_STARTUP_HOME
)


class ProcessManager:
    """Runs the application under PM2.

    Each deploy replaces any process of the same name: stop and delete the old
    one, start the new one, then persist the process list with ``pm2 save``.
    """

    def __init__(self, runner: Optional[CommandRunner] = None):
        self.runner = runner or CommandRunner()

    def resolve_entry_point(self, project_dir: Path, profile: DeploymentProfile) -> DeploymentProfile:
        if profile.entry_point:
            return profile

        manifest_path = project_dir / MANIFEST_FILE
        manifest = {}
        if manifest_path.is_file():
            try:
                manifest = load_json_file(manifest_path)
            except ValueError:
                manifest = {}

        entry_point = find_main_file(project_dir, manifest)
        if entry_point is None:
            print_debug(f"Current directory contents: {', '.join(list_directory(project_dir))}")
            raise LaunchError(
                "Could not find main application file!",
                hints=[
                    f"Searched the package.json main field and: {', '.join(MAIN_FILE_CANDIDATES)}",
                    "Make sure you're running desuru from inside your project directory",
                ]
            )
        return profile.with_entry_point(entry_point)

    def start_command(self, profile: DeploymentProfile, app_name: str, instances: str, memory: str) -> List[str]:
        """Build the pm2 start argv for the profile"""
        options = ['--name', app_name, '-i', instances, '--max-memory-restart', memory]
        if profile.uses_integrated_server:
            # pm2 start npm --name app ... -- start
            program, *script_args = profile.start_command
            return ['pm2', 'start', program] + options + ['--'] + script_args
        return ['pm2', 'start', profile.entry_point] + options

    def is_running(self, app_name: str) -> bool:
        return self.runner.succeeds(['pm2', 'describe', app_name])

    def stop_existing(self, context: DeploymentContext) -> None:
        app_name = context.params.app_name
        if not self.is_running(app_name):
            print_debug(f"No existing PM2 process named {app_name}")
            return

        print_step("Stopping existing PM2 process...")
        try:
            self.runner.run(['pm2', 'stop', app_name])
            self.runner.run(['pm2', 'delete', app_name])
            print_success("Existing PM2 process stopped")
            log_to_file(f"Stopped existing PM2 process: {app_name}")
        except CommandError as e:
            print_warning(f"Failed to stop existing PM2 process: {e}")
            context.state.add_error()

    def launch(self, context: DeploymentContext) -> DeploymentContext:
        """Start (or restart) the app under PM2 and persist the process list"""
        params = context.params
        profile = self.resolve_entry_point(context.project_dir, context.profile)
        context.profile = profile

        if profile.uses_integrated_server:
            print_success(f"Framework application detected: {profile.framework_name} (uses built-in server)")
        else:
            print_success(f"Main file detected: {profile.entry_point}")

        self.stop_existing(context)

        print_step("Starting application with PM2...")
        command = self.start_command(profile, params.app_name, params.instances, params.memory)
        try:
            self.runner.run(command, cwd=str(context.project_dir), env={'PORT': str(context.port)})
        except CommandError as e:
            raise LaunchError(
                f"Failed to start application with PM2: {e}",
                hints=["Check the main file path and application code", f"Try: pm2 logs {params.app_name}"]
            )

        try:
            self.runner.run(['pm2', 'save'])
        except CommandError as e:
            raise LaunchError(f"Failed to save PM2 configuration: {e}", hints=["Try: pm2 save"])

        print_success("Application started with PM2")
        started = ' '.join(profile.start_command) if profile.uses_integrated_server else profile.entry_point
        log_to_file(f"PM2 process started: {started} as {params.app_name}")

        context.process_status, context.process_memory_mb = self.process_info(params.app_name)
        if context.process_status:
            print_info(f"PM2 status: {context.process_status}")
        if context.process_memory_mb is not None:
            print_info(f"Memory usage: {context.process_memory_mb}MB")

        self.register_startup(context)
        return context

    def process_info(self, app_name: str) -> Tuple[Optional[str], Optional[int]]:
        """Status and memory (MB) of the named process from pm2 jlist"""
        # stderr may carry PM2 notices; only stdout is JSON
        try:
            result = self.runner.run(['pm2', 'jlist'], check=False)
        except CommandError as e:
            print_debug(f"pm2 jlist failed: {e}")
            return None, None
        output = (result.stdout or "").strip()
        if result.returncode != 0 or not output:
            return None, None
        try:
            processes: List[Dict] = json.loads(output)
        except ValueError:
            print_debug("Could not parse pm2 jlist output")
            return None, None

        for process in processes:
            if process.get('name') != app_name:
                continue
            status = (process.get('pm2_env') or {}).get('status')
            memory = (process.get('monit') or {}).get('memory')
            memory_mb = int(memory) // (1024 * 1024) if memory is not None else None
            return status, memory_mb
        return None, None

    def register_startup(self, context: DeploymentContext) -> None:
        print_step("Configuring PM2 startup...")
        try:
            self.runner.run(['pm2', 'startup', 'systemd', '-u', PM2_STARTUP_USER, '--hp', PM2_STARTUP_HOME])
            print_success("PM2 startup configured")
        except CommandError as e:
            print_warning(f"Failed to configure PM2 startup: {e}")
            context.state.add_error()
