from pathlib import Path
from typing import Optional

from .diagnostics import probe_url
from .exceptions import CommandError, EdgeConfigError
from .models import DeploymentContext
from .utils import (
    CommandRunner, print_info, print_warning, print_step, print_success, print_debug, log_to_file
)
from ..config.constants import (
    NGINX_SITES_AVAILABLE, NGINX_SITES_ENABLED, NGINX_DEFAULT_SITE, NGINX_SERVICE, HTTP_OK_STATUSES
)

SECURITY_HEADERS = """
    # Security headers
    add_header X-Frame-Options "SAMEORIGIN" always;
    add_header X-XSS-Protection "1; mode=block" always;
    add_header X-Content-Type-Options "nosniff" always;
    add_header Referrer-Policy "no-referrer-when-downgrade" always;
    add_header X-Robots-Tag "noindex, nofollow" always;"""

COMPRESSION = """
    # Gzip compression
    gzip on;
    gzip_vary on;
    gzip_min_length 1024;
    gzip_proxied expired no-cache no-store private auth;
    gzip_types
        text/plain
        text/css
        text/xml
        text/javascript
        application/javascript
        application/xml+rss
        application/json
        application/xml
        image/svg+xml;"""

HEALTH_CHECK = """
    # Health check endpoint
    location /health {
        access_log off;
        return 200 "healthy\\n";
        add_header Content-Type text/plain;
    }"""

PROXY_HEADERS = """proxy_http_version 1.1;
        proxy_set_header Upgrade $http_upgrade;
        proxy_set_header Connection 'upgrade';
        proxy_set_header Host $host;
        proxy_set_header X-Real-IP $remote_addr;
        proxy_set_header X-Forwarded-For $proxy_add_x_forwarded_for;
        proxy_set_header X-Forwarded-Proto $scheme;
        proxy_cache_bypass $http_upgrade;"""


def _zone_name(app_name: str, kind: str) -> str:
    return f"{app_name}_{kind}"


def render_static_config(app_name: str, domain: str, root: Path, port: int) -> str:
    """Static file server with SPA fallback and an /api proxy"""
    zone = _zone_name(app_name, "static")
    return f"""limit_req_zone $binary_remote_addr zone={zone}:10m rate=10r/s;

server {{
    listen 80;
    server_name {domain};
    root {root};
    index index.html index.htm;

    # Rate limiting
    limit_req zone={zone} burst=20 nodelay;
{SECURITY_HEADERS}
    add_header Content-Security-Policy "default-src 'self' http: https: data: blob: 'unsafe-inline' 'unsafe-eval'" always;
{COMPRESSION}

    # Cache static assets
    location ~* \\.(js|css|png|jpg|jpeg|gif|ico|svg|woff|woff2|ttf|eot|webp|avif)$ {{
        expires 1y;
        add_header Cache-Control "public, immutable";
        add_header Vary "Accept-Encoding";
        add_header Access-Control-Allow-Origin "*";
        access_log off;
    }}

    # Handle client-side routing (SPA)
    location / {{
        try_files $uri $uri/ /index.html;
        add_header Cache-Control "no-cache, no-store, must-revalidate";
    }}

    # API proxy for fullstack frameworks
    location /api {{
        proxy_pass http://localhost:{port};
        {PROXY_HEADERS}

        proxy_connect_timeout 30s;
        proxy_send_timeout 30s;
        proxy_read_timeout 30s;
    }}
{HEALTH_CHECK}
}}
"""


def render_proxy_config(app_name: str, domain: str, port: int) -> str:
    """Reverse proxy to the application process"""
    zone = _zone_name(app_name, "api")
    return f"""limit_req_zone $binary_remote_addr zone={zone}:10m rate=5r/s;

server {{
    listen 80;
    server_name {domain};

    # Rate limiting
    limit_req zone={zone} burst=10 nodelay;
{SECURITY_HEADERS}
    add_header Content-Security-Policy "default-src 'self' http: https: data: blob: 'unsafe-inline'" always;
{COMPRESSION}

    location / {{
        proxy_pass http://localhost:{port};
        {PROXY_HEADERS}
        proxy_redirect off;

        proxy_connect_timeout 60s;
        proxy_send_timeout 60s;
        proxy_read_timeout 60s;
        proxy_buffering on;
        proxy_buffer_size 4k;
        proxy_buffers 8 4k;
        proxy_busy_buffers_size 8k;

        # Handle large uploads
        client_max_body_size 50M;
    }}
{HEALTH_CHECK}
}}
"""


class NginxManager:
    """Writes, enables, validates and reloads the nginx site for an app.

    The previous site file is overwritten in place and not kept; a failed
    ``nginx -t`` leaves the new file enabled.
    """

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        sites_available: str = NGINX_SITES_AVAILABLE,
        sites_enabled: str = NGINX_SITES_ENABLED
    ):
        self.runner = runner or CommandRunner()
        self.sites_available = Path(sites_available)
        self.sites_enabled = Path(sites_enabled)

    def render(self, context: DeploymentContext) -> str:
        params = context.params
        if context.profile.serves_static:
            return render_static_config(params.app_name, params.domain, context.artifact_path, context.port)
        return render_proxy_config(params.app_name, params.domain, context.port)

    def site_path(self, app_name: str) -> Path:
        return self.sites_available / app_name

    def write_site(self, context: DeploymentContext) -> Path:
        config_file = self.site_path(context.params.app_name)
        mode = "static" if context.profile.serves_static else "proxy"
        print_debug(f"Creating {mode} nginx configuration")
        try:
            config_file.parent.mkdir(parents=True, exist_ok=True)
            config_file.write_text(self.render(context))
        except OSError as e:
            raise EdgeConfigError(f"Failed to write nginx configuration {config_file}: {e}")

        if context.profile.serves_static:
            print_info(f"Static file server configured for {context.artifact_path}")
        else:
            print_info(f"Reverse proxy configured for localhost:{context.port}")
        log_to_file(f"Nginx {mode} configuration written: {config_file}")
        return config_file

    def enable_site(self, config_file: Path) -> Path:
        link = self.sites_enabled / config_file.name
        default_site = self.sites_enabled / NGINX_DEFAULT_SITE
        try:
            self.sites_enabled.mkdir(parents=True, exist_ok=True)
            if link.is_symlink() or link.exists():
                link.unlink()
            link.symlink_to(config_file)
            if default_site.is_symlink() or default_site.exists():
                default_site.unlink()
                print_debug("Default nginx site disabled")
        except OSError as e:
            raise EdgeConfigError(f"Failed to enable Nginx site: {e}")
        log_to_file(f"Nginx site enabled: {config_file}")
        return link

    def configure(self, context: DeploymentContext) -> DeploymentContext:
        print_step("Configuring Nginx...")
        config_file = self.write_site(context)
        self.enable_site(config_file)

        print_step("Testing and reloading Nginx...")
        try:
            self.runner.run(['nginx', '-t'])
        except CommandError as e:
            raise EdgeConfigError(
                f"Nginx configuration test failed: {e}",
                hints=[f"Configuration file: {config_file}", "Run 'nginx -t' for detailed error information"]
            )

        action = 'reload' if self.runner.succeeds(['systemctl', 'is-active', NGINX_SERVICE]) else 'restart'
        try:
            self.runner.run(['systemctl', action, NGINX_SERVICE])
        except CommandError as e:
            raise EdgeConfigError(
                f"Failed to {action} Nginx service: {e}",
                hints=["Check system logs: journalctl -u nginx"]
            )

        try:
            self.runner.run(['systemctl', 'enable', NGINX_SERVICE])
            print_success("Nginx configured and reloaded")
        except CommandError as e:
            print_warning(f"Failed to enable Nginx service on boot, it will not start automatically after reboot: {e}")
            context.state.add_error()

        self.verify_running()
        return context

    def verify_running(self) -> bool:
        if not self.runner.succeeds(['systemctl', 'is-active', NGINX_SERVICE]):
            print_warning("Nginx service may not be running properly, try: systemctl status nginx")
            return False

        print_info("Nginx service is active and running")
        status = probe_url("http://localhost")
        if status in HTTP_OK_STATUSES:
            print_info("Nginx is responding to HTTP requests")
            return True
        print_warning("Nginx may not be responding properly to HTTP requests")
        return False
