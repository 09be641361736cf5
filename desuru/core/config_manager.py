import json
from pathlib import Path
from typing import Dict, Any, Optional

from .exceptions import ValidationError
from .utils import print_info
from ..config.constants import CONFIG_FILE


class ConfigManager:
    """Reads optional per-project deployment defaults from .desuru.json"""

    def __init__(self, project_dir: Path, config_file: str = CONFIG_FILE):
        self.config_file = Path(project_dir) / config_file
        self.config_data: Optional[Dict[str, Any]] = None

    def config_exists(self) -> bool:
        """Check if configuration file exists"""
        return self.config_file.exists()

    def load_config(self) -> Dict[str, Any]:
        """Load configuration from file, empty when there is none"""
        if not self.config_exists():
            self.config_data = {}
            return self.config_data

        try:
            with open(self.config_file, 'r') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON in configuration file {self.config_file}: {str(e)}",
                                  hints=[f"Fix or remove {self.config_file}"])
        except OSError as e:
            raise ValidationError(f"Failed to load configuration: {str(e)}")

        if not isinstance(data, dict):
            raise ValidationError(f"Configuration file {self.config_file} must contain a JSON object")

        self.config_data = data
        print_info(f"Loaded defaults from {self.config_file}")
        return self.config_data

    def get_config_value(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'deploy.port')"""
        if self.config_data is None:
            self.config_data = self.load_config()

        keys = key_path.split('.')
        value = self.config_data

        try:
            for key in keys:
                value = value[key]
            return value
        except (KeyError, TypeError):
            return default

    def resolve(self, key: str, cli_value: Any, default: Any) -> Any:
        """CLI flag wins over the file, the file wins over the built-in default"""
        if cli_value is not None:
            return cli_value
        return self.get_config_value(f"deploy.{key}", default)

    def resolve_flag(self, key: str, cli_value: bool) -> bool:
        """A set CLI flag wins; otherwise the file value, which must be a JSON boolean"""
        if cli_value:
            return True
        value = self.get_config_value(f"deploy.{key}", False)
        if not isinstance(value, bool):
            raise ValidationError(
                f"deploy.{key} in {self.config_file} must be true or false, got {value!r}",
                hints=[f'Use: "{key}": true']
            )
        return value
