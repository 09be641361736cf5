"""Configuration constants for desuru"""

# File Configuration
MANIFEST_FILE = "package.json"
CONFIG_FILE = ".desuru.json"
LOG_DIR = "/tmp"
LOG_FILE_TEMPLATE = "deploy-{app}-{timestamp}.log"

# Deployment defaults
DEFAULT_PORT = 3000
DEFAULT_INSTANCES = "1"
DEFAULT_MEMORY_LIMIT = "500M"

# Input validation patterns
APP_NAME_PATTERN = r'^[A-Za-z0-9][A-Za-z0-9_-]*[A-Za-z0-9]$'
APP_NAME_MIN_LENGTH = 2
APP_NAME_MAX_LENGTH = 63
DOMAIN_PATTERN = r'^[A-Za-z0-9][A-Za-z0-9.-]*[A-Za-z0-9]$'
DOMAIN_TLD_PATTERN = r'\.[A-Za-z]{2,}$'
EMAIL_PATTERN = r'^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$'
MEMORY_PATTERN = r'^\d+[KMG]?$'
INSTANCES_PATTERN = r'^\d+$'
LOCALHOST = "localhost"
STANDARD_WEB_PORTS = (80, 443)

# Entry file discovery order
MAIN_FILE_CANDIDATES = [
    "index.js", "app.js", "server.js", "main.js",
    "src/index.js", "src/app.js", "src/server.js",
]

# Build output discovery order when the expected directory is missing
BUILD_DIR_FALLBACKS = ["dist", "build", "out", "public", ".next"]

# Package managers keyed by lockfile, in priority order
LOCKFILE_PACKAGE_MANAGERS = [
    ("yarn.lock", "yarn"),
    ("pnpm-lock.yaml", "pnpm"),
]
DEFAULT_PACKAGE_MANAGER = "npm"

BUILD_COMMAND = ("npm", "run", "build")
INTEGRATED_START_COMMAND = ("npm", "start")
NODE_START_COMMAND = ("node",)
FIXED_FULLSTACK_PORT = 3000

# Bundler signatures for unrecognised projects
BUNDLER_DEPENDENCIES = ["webpack", "vite", "parcel", "rollup"]
BUNDLER_SCRIPT_PATTERN = r'\b(webpack|vite|parcel)\b'

# Host tooling
APT_UPDATE = ("apt-get", "update", "-y")
APT_INSTALL = ("apt-get", "install", "-y")
NODESOURCE_SETUP_URL = "https://deb.nodesource.com/setup_20.x"
NODE_PACKAGE = "nodejs"
NGINX_PACKAGE = "nginx"
PM2_PACKAGE = "pm2"
CERTBOT_PACKAGES = ["certbot", "python3-certbot-nginx"]

# Nginx Configuration
NGINX_SITES_AVAILABLE = "/etc/nginx/sites-available"
NGINX_SITES_ENABLED = "/etc/nginx/sites-enabled"
NGINX_DEFAULT_SITE = "default"
NGINX_SERVICE = "nginx"

# PM2 Configuration
PM2_STARTUP_USER = "root"
PM2_STARTUP_HOME = "/root"

# SSL Configuration
LETSENCRYPT_LIVE_DIR = "/etc/letsencrypt/live"
CERTBOT_RENEW_CRON = "0 12 * * * /usr/bin/certbot renew --quiet"

# Firewall Configuration
UFW_PROFILES = ["Nginx Full", "OpenSSH"]

# Diagnostics
PUBLIC_IP_URL = "https://ipinfo.io/ip"
HTTP_PROBE_TIMEOUT = 10
HTTP_OK_STATUSES = (200, 403, 404)
MIN_BUILD_FREE_BYTES = 1024 * 1024 * 1024
DISK_USAGE_WARNING_PERCENT = 90
