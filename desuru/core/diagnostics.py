"""Advisory host and network checks. Nothing here changes control flow."""

import os
import platform
import shutil
import socket
from typing import Dict, Optional

import requests

from .utils import print_info, print_warning, print_header, print_debug, format_file_size, log_to_file
from ..config.constants import (
    PUBLIC_IP_URL, HTTP_PROBE_TIMEOUT, DISK_USAGE_WARNING_PERCENT
)


def get_public_ip() -> Optional[str]:
    try:
        response = requests.get(PUBLIC_IP_URL, timeout=HTTP_PROBE_TIMEOUT)
        response.raise_for_status()
    except requests.RequestException as e:
        print_debug(f"Public IP lookup failed: {e}")
        return None
    return response.text.strip() or None


def resolve_domain(domain: str) -> Optional[str]:
    try:
        return socket.gethostbyname(domain)
    except (socket.gaierror, UnicodeError):
        return None


def probe_url(url: str, verify: bool = True) -> Optional[int]:
    """HTTP status code for url, or None when unreachable"""
    try:
        response = requests.get(url, timeout=HTTP_PROBE_TIMEOUT, verify=verify, allow_redirects=True)
    except requests.RequestException as e:
        print_debug(f"Probe of {url} failed: {e}")
        return None
    return response.status_code


def server_info() -> Dict[str, str]:
    uname = platform.uname()
    try:
        disk = shutil.disk_usage('/')
        disk_text = f"{format_file_size(disk.free)} available of {format_file_size(disk.total)}"
    except OSError:
        disk_text = "unknown"
    return {
        'hostname': socket.gethostname(),
        'os': f"{uname.system} {uname.release}",
        'kernel': uname.version,
        'cpu_cores': str(os.cpu_count() or "unknown"),
        'disk': disk_text,
        'public_ip': get_public_ip() or "Unable to detect",
    }


def print_server_info() -> Dict[str, str]:
    info = server_info()
    print_header("SERVER INFORMATION")
    print_info(f"Hostname:   {info['hostname']}")
    print_info(f"OS:         {info['os']}")
    print_info(f"Kernel:     {info['kernel']}")
    print_info(f"CPU Cores:  {info['cpu_cores']}")
    print_info(f"Disk Space: {info['disk']}")
    print_info(f"Public IP:  {info['public_ip']}")
    log_to_file("SERVER INFO: " + ", ".join(f"{key}={value}" for key, value in info.items()))

    check_disk_usage()
    return info


def check_disk_usage(path: str = '/') -> Optional[float]:
    """Warn when the filesystem holding path is nearly full"""
    try:
        usage = shutil.disk_usage(path)
    except OSError:
        return None
    percent = usage.used * 100.0 / usage.total if usage.total else 0.0
    if percent > DISK_USAGE_WARNING_PERCENT:
        print_warning(f"Disk usage is high ({percent:.0f}%) - deployment may fail")
    return percent


def check_domain_points_here(domain: str) -> bool:
    """Compare the domain's A record with this server's public IP"""
    server_ip = get_public_ip()
    domain_ip = resolve_domain(domain)

    if not server_ip or not domain_ip:
        print_warning("Could not verify domain DNS resolution")
        return False
    if server_ip != domain_ip:
        print_warning(f"Domain {domain} points to {domain_ip} but server IP is {server_ip}, SSL certificate installation may fail")
        return False

    print_info(f"Domain {domain} correctly points to this server ({server_ip})")
    return True
