import re
from typing import List, Optional, Union

from .exceptions import ValidationError
from .models import DeploymentParameters
from .utils import print_info, print_warning
from ..config.constants import (
    APP_NAME_PATTERN, APP_NAME_MIN_LENGTH, APP_NAME_MAX_LENGTH,
    DOMAIN_PATTERN, DOMAIN_TLD_PATTERN, EMAIL_PATTERN, MEMORY_PATTERN,
    INSTANCES_PATTERN, LOCALHOST, STANDARD_WEB_PORTS
)


class ParameterValidator:
    """Validates and normalizes deployment parameters before any side effect.

    Rejections raise ValidationError; non-blocking concerns are printed and
    kept in ``warnings``.
    """

    def __init__(self):
        self.warnings: List[str] = []

    def _warn(self, message: str) -> None:
        self.warnings.append(message)
        print_warning(message)

    def validate_app_name(self, app_name: str) -> str:
        if not app_name or not re.match(APP_NAME_PATTERN, app_name):
            raise ValidationError(
                f"Invalid app name: {app_name!r}",
                hints=[
                    "Start and end with alphanumeric characters",
                    "Contain only letters, numbers, hyphens, and underscores",
                    f"Be between {APP_NAME_MIN_LENGTH}-{APP_NAME_MAX_LENGTH} characters long",
                ]
            )
        if not APP_NAME_MIN_LENGTH <= len(app_name) <= APP_NAME_MAX_LENGTH:
            raise ValidationError(
                f"App name must be between {APP_NAME_MIN_LENGTH}-{APP_NAME_MAX_LENGTH} characters long"
            )
        return app_name

    def validate_domain(self, domain: str) -> str:
        if domain == LOCALHOST:
            return domain
        if not domain or not re.match(DOMAIN_PATTERN, domain):
            raise ValidationError(
                f"Invalid domain: {domain!r}",
                hints=["Domain must contain only letters, numbers, dots, and hyphens"]
            )
        if not re.search(DOMAIN_TLD_PATTERN, domain):
            self._warn(f"Domain '{domain}' appears to be missing a valid TLD, this might cause SSL certificate issues")
        return domain

    def validate_port(self, port: Union[int, str]) -> int:
        text = str(port).strip()
        if not text.isdigit():
            raise ValidationError(f"Port must be a number: {port!r}")
        value = int(text)
        if not 1 <= value <= 65535:
            raise ValidationError(f"Port must be between 1 and 65535: {value}")
        if value < 1024 and value not in STANDARD_WEB_PORTS:
            self._warn(f"Port {value} is in the reserved range (1-1023), make sure this is intentional")
        return value

    def validate_instances(self, instances: Union[int, str]) -> str:
        text = str(instances).strip()
        if text != "max" and not re.match(INSTANCES_PATTERN, text):
            raise ValidationError(f"Instances must be a number or 'max': {instances!r}")
        return text

    def validate_memory_limit(self, memory: Union[int, str]) -> str:
        text = str(memory).strip() if memory is not None else ""
        if not text or not re.match(MEMORY_PATTERN, text):
            raise ValidationError(
                f"Invalid memory limit format: {memory!r}",
                hints=["Use format like: 500M, 1G, 2048K"]
            )
        return text

    def validate_email(self, email: str) -> str:
        text = str(email).strip()
        if not re.match(EMAIL_PATTERN, text):
            raise ValidationError(f"Invalid email format: {email!r}")
        return text

    def validate(
        self,
        app_name: str,
        domain: str,
        port: Union[int, str],
        ssl: bool = False,
        email: Optional[str] = None,
        instances: Union[int, str] = "1",
        memory: str = "500M"
    ) -> DeploymentParameters:
        """Validate all parameters and return the normalized set"""
        app_name = self.validate_app_name(app_name)
        domain = self.validate_domain(domain)
        port = self.validate_port(port)
        instances = self.validate_instances(instances)
        memory = self.validate_memory_limit(memory)

        if ssl:
            if not email:
                raise ValidationError(
                    "SSL enabled but no email provided!",
                    hints=["Email is required for Let's Encrypt certificates", "Use: --email your@email.com"]
                )
            email = self.validate_email(email)

            if domain == LOCALHOST:
                self._warn("SSL cannot be enabled for localhost domain")
                print_info("Disabling SSL for localhost deployment")
                ssl = False
        elif email:
            email = self.validate_email(email)

        return DeploymentParameters(
            app_name=app_name,
            domain=domain,
            port=port,
            ssl=ssl,
            email=email,
            instances=instances,
            memory=memory
        )
