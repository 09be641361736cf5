import click
from colorama import Fore, Style, init
import logging
import os
import shutil
import subprocess
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence
import json

from .exceptions import CommandError
from ..config.constants import LOG_DIR, LOG_FILE_TEMPLATE

# Initialize colorama
init()

logger = logging.getLogger("desuru")
logger.setLevel(logging.DEBUG)
logger.propagate = False

_step_counter = 0


def setup_log_file(app_name: str, log_dir: str = LOG_DIR) -> Path:
    """Attach a timestamped per-run log file to the desuru logger"""
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    log_file = Path(log_dir) / LOG_FILE_TEMPLATE.format(app=app_name or "unknown", timestamp=timestamp)
    log_file.parent.mkdir(parents=True, exist_ok=True)

    close_log_file()
    handler = logging.FileHandler(log_file)
    handler.setFormatter(logging.Formatter('[%(asctime)s] %(message)s', datefmt='%Y-%m-%d %H:%M:%S'))
    logger.addHandler(handler)
    return log_file


def close_log_file() -> None:
    """Detach and close any log file handlers"""
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def log_to_file(message: str) -> None:
    logger.info(message)


def print_success(message: str) -> None:
    """Print success message"""
    click.echo(f"{Fore.GREEN}[SUCCESS]{Style.RESET_ALL} {message}")
    log_to_file(f"SUCCESS: {message}")


def print_error(message: str) -> None:
    """Print error message"""
    click.echo(f"{Fore.RED}[ERROR]{Style.RESET_ALL} {message}")
    log_to_file(f"ERROR: {message}")


def print_info(message: str) -> None:
    """Print info message"""
    click.echo(f"{Fore.BLUE}[INFO]{Style.RESET_ALL} {message}")
    log_to_file(f"INFO: {message}")


def print_warning(message: str) -> None:
    """Print warning message"""
    click.echo(f"{Fore.YELLOW}[WARNING]{Style.RESET_ALL} {message}")
    log_to_file(f"WARNING: {message}")


def reset_step_counter() -> None:
    """Start step numbering from 1 for a new run"""
    global _step_counter
    _step_counter = 0


def print_step(message: str) -> None:
    """Print numbered step message"""
    global _step_counter
    _step_counter += 1
    click.echo(f"{Fore.CYAN}{Style.BRIGHT}[STEP {_step_counter}]{Style.RESET_ALL} {message}")
    log_to_file(f"STEP {_step_counter}: {message}")


def print_header(title: str) -> None:
    """Print section header"""
    click.echo(f"\n{Fore.MAGENTA}{Style.BRIGHT}{title}{Style.RESET_ALL}")
    click.echo(f"{Fore.MAGENTA}{'=' * len(title)}{Style.RESET_ALL}")


def print_debug(message: str) -> None:
    """Record debug detail in the log file only"""
    logger.debug(f"DEBUG: {message}")


def check_command_exists(command: str) -> bool:
    """Check if a command exists in system PATH"""
    result = shutil.which(command)
    if result:
        print_debug(f"Found {command} at: {result}")
        return True
    print_debug(f"{command} not found in PATH")
    return False


def run_command(
    command: Sequence[str],
    cwd: Optional[str] = None,
    capture_output: bool = True,
    check: bool = True,
    input_text: Optional[str] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[int] = None
) -> subprocess.CompletedProcess:
    """Run an external command given as an argument list"""
    command = [str(part) for part in command]
    print_debug(f"Running command: {' '.join(command)}")
    if cwd:
        print_debug(f"Working directory: {cwd}")

    run_env = None
    if env:
        run_env = {**os.environ, **env}

    try:
        result = subprocess.run(
            command,
            cwd=cwd,
            capture_output=capture_output,
            text=True,
            check=check,
            input=input_text,
            env=run_env,
            timeout=timeout
        )
        return result
    except subprocess.TimeoutExpired:
        raise CommandError(f"Command timed out after {timeout} seconds: {' '.join(command)}", command)
    except subprocess.CalledProcessError as e:
        error_msg = f"Command failed: {' '.join(command)} (exit code: {e.returncode})"
        output = "\n".join(part for part in (e.stdout, e.stderr) if part)
        if output:
            for line in output.splitlines()[:20]:
                print_debug(line)
        raise CommandError(error_msg, command, e.returncode, output)
    except FileNotFoundError:
        raise CommandError(f"Command not found: {command[0]}. Please ensure it's installed and in PATH.",
                           command)


class CommandRunner:
    """Host command gateway shared by every manager"""

    def exists(self, command: str) -> bool:
        return check_command_exists(command)

    def run(
        self,
        command: Sequence[str],
        cwd: Optional[str] = None,
        check: bool = True,
        capture_output: bool = True,
        input_text: Optional[str] = None,
        env: Optional[Dict[str, str]] = None
    ) -> subprocess.CompletedProcess:
        return run_command(command, cwd=cwd, capture_output=capture_output, check=check,
                           input_text=input_text, env=env)

    def succeeds(self, command: Sequence[str], cwd: Optional[str] = None) -> bool:
        """Run a query command and report whether it exited zero"""
        try:
            return self.run(command, cwd=cwd, check=False).returncode == 0
        except CommandError:
            return False

    def output(self, command: Sequence[str], cwd: Optional[str] = None) -> Optional[str]:
        """Return combined stdout/stderr of a query command, or None if it failed"""
        try:
            result = self.run(command, cwd=cwd, check=False)
        except CommandError:
            return None
        if result.returncode != 0:
            return None
        return ((result.stdout or "") + (result.stderr or "")).strip()


def format_file_size(size_bytes: float) -> str:
    """Format file size in human readable format"""
    for unit in ['B', 'KB', 'MB', 'GB']:
        if size_bytes < 1024.0:
            return f"{size_bytes:.1f}{unit}"
        size_bytes /= 1024.0
    return f"{size_bytes:.1f}TB"


def get_directory_size(directory: Path) -> int:
    """Get total size of directory in bytes"""
    total_size = 0
    for file_path in directory.rglob('*'):
        if file_path.is_file():
            total_size += file_path.stat().st_size
    return total_size


def count_files(directory: Path) -> int:
    return sum(1 for file_path in directory.rglob('*') if file_path.is_file())


def load_json_file(file_path: Path) -> Dict:
    """Load JSON file with error handling"""
    try:
        with open(file_path, 'r') as f:
            return json.load(f)
    except FileNotFoundError:
        raise FileNotFoundError(f"File not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {file_path}: {str(e)}")


def list_directory(directory: Path) -> List[str]:
    """Names in a directory, used for debugging missing files"""
    try:
        return sorted(entry.name for entry in directory.iterdir())
    except OSError:
        return []
