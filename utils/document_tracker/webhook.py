# utils/document_tracker/webhook.py
"""
Trigger the external automation endpoint stored in settings.

Checks, in order:
1. caller is signed in
2. an endpoint URL and the shared secret are configured
3. the URL is https, carries no credentials, and neither the host nor
   any address it resolves to is loopback/private/link-local/reserved
4. POST {"timestamp", "triggered_by"} with the X-Webhook-Secret header
5. non-2xx answers raise WebhookResponseError

VERSION: 1.0.0
"""

import ipaddress
import logging
import socket
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse
import httpx

from .errors import (
    AuthorizationError, WebhookNotConfiguredError, WebhookURLNotAllowedError,
    WebhookResponseError,
)
from .models import AppSettings

logger = logging.getLogger(__name__)

WEBHOOK_TIMEOUT_SECONDS = 10
SECRET_HEADER = 'X-Webhook-Secret'

BLOCKED_NETWORKS = [
    ipaddress.ip_network('10.0.0.0/8'),
    ipaddress.ip_network('172.16.0.0/12'),
    ipaddress.ip_network('192.168.0.0/16'),
    ipaddress.ip_network('127.0.0.0/8'),
    ipaddress.ip_network('169.254.0.0/16'),
    ipaddress.ip_network('0.0.0.0/8'),
    ipaddress.ip_network('100.64.0.0/10'),
    ipaddress.ip_network('::1/128'),
    ipaddress.ip_network('fe80::/10'),
    ipaddress.ip_network('fc00::/7'),
]

BLOCKED_HOSTNAMES = {'localhost', 'localhost.localdomain'}


def is_blocked_address(address: str) -> bool:
    """True for loopback, private, link-local, shared and unspecified addresses."""
    ip = ipaddress.ip_address(address)
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    if any(ip in net for net in BLOCKED_NETWORKS if net.version == ip.version):
        return True
    return ip.is_loopback or ip.is_private or ip.is_link_local or ip.is_unspecified \
        or ip.is_reserved or ip.is_multicast


def _resolve(host: str, port: int) -> List[str]:
    infos = socket.getaddrinfo(host, port, proto=socket.IPPROTO_TCP)
    return sorted({info[4][0] for info in infos})


def check_url_syntax(url: str) -> Tuple[str, int]:
    """
    Syntactic checks only (no DNS). Returns (host, port).

    Raises:
        WebhookURLNotAllowedError: malformed URL, non-https scheme,
            credentials, missing or blocked host name
    """
    try:
        parsed = urlparse((url or '').strip())
        host = (parsed.hostname or '').strip().lower()
        port = parsed.port or 443
    except ValueError as e:
        raise WebhookURLNotAllowedError("Endpoint URL is malformed") from e

    if parsed.scheme.lower() != 'https':
        raise WebhookURLNotAllowedError("Only https:// endpoints are allowed")
    if parsed.username or parsed.password:
        raise WebhookURLNotAllowedError("Endpoint URL must not contain credentials")
    if not host:
        raise WebhookURLNotAllowedError("Endpoint URL has no host")
    if host in BLOCKED_HOSTNAMES:
        raise WebhookURLNotAllowedError(f"Host '{host}' is not allowed")
    return host, port


def validate_automation_url(url: str, resolver: Callable[[str, int], List[str]] = _resolve) -> str:
    """
    Return the URL if it may be called, else raise WebhookURLNotAllowedError.

    Args:
        url: Endpoint URL from settings
        resolver: host, port -> addresses (injectable for tests)
    """
    host, port = check_url_syntax(url)

    try:
        ipaddress.ip_address(host)
        addresses = [host]
    except ValueError:
        try:
            addresses = resolver(host, port)
        except (socket.gaierror, OSError) as e:
            raise WebhookURLNotAllowedError(f"Host '{host}' could not be resolved") from e

    if not addresses:
        raise WebhookURLNotAllowedError(f"Host '{host}' could not be resolved")
    blocked = [a for a in addresses if is_blocked_address(a)]
    if blocked:
        logger.warning(f"Automation URL host {host} resolves to blocked address(es) {blocked}")
        raise WebhookURLNotAllowedError(f"Host '{host}' resolves to a private or loopback address")

    return url.strip()


def build_payload(triggered_by: str, now: Optional[datetime] = None) -> Dict[str, str]:
    now = now or datetime.now(timezone.utc)
    return {
        'timestamp': now.astimezone(timezone.utc).isoformat().replace('+00:00', 'Z'),
        'triggered_by': triggered_by,
    }


def trigger_automation(
    user_email: Optional[str],
    settings: AppSettings,
    secret: Optional[str],
    http_client: Optional[httpx.Client] = None,
    resolver: Callable[[str, int], List[str]] = _resolve,
    timeout: float = WEBHOOK_TIMEOUT_SECONDS,
) -> httpx.Response:
    """
    POST to the configured automation endpoint.

    Raises:
        AuthorizationError: no signed-in user
        WebhookNotConfiguredError: URL or secret missing
        WebhookURLNotAllowedError: URL failed validation
        WebhookResponseError: endpoint answered non-2xx
        httpx.HTTPError: transport failure
    """
    if not user_email:
        raise AuthorizationError("You must be signed in to run the automation")
    if not settings or not settings.automation_url:
        raise WebhookNotConfiguredError("No automation endpoint URL is configured")
    if not secret:
        raise WebhookNotConfiguredError("The automation secret is not configured")

    url = validate_automation_url(settings.automation_url, resolver)
    payload = build_payload(user_email)
    headers = {'Content-Type': 'application/json', SECRET_HEADER: secret}

    owns_client = http_client is None
    client = http_client or httpx.Client(timeout=timeout)
    try:
        logger.info(f"🚀 Triggering automation for {user_email}")
        response = client.post(url, json=payload, headers=headers, timeout=timeout)
    finally:
        if owns_client:
            client.close()

    if not response.is_success:
        logger.error(f"Automation endpoint returned {response.status_code}")
        raise WebhookResponseError(response.status_code, response.reason_phrase, response.text)

    logger.info(f"✅ Automation triggered ({response.status_code})")
    return response


ERROR_MESSAGES = {
    AuthorizationError: "You must be signed in to run the automation.",
    WebhookNotConfiguredError: "The automation endpoint is not configured. Set it in Settings first.",
    WebhookURLNotAllowedError: "The automation URL is not allowed. Use a public https:// address.",
    WebhookResponseError: "The automation endpoint reported an error.",
}


def error_message(error: Exception) -> str:
    """User-facing message for a trigger failure."""
    for error_type, message in ERROR_MESSAGES.items():
        if isinstance(error, error_type):
            if isinstance(error, WebhookResponseError):
                return f"{message} (HTTP {error.status_code})"
            return message
    if isinstance(error, httpx.TimeoutException):
        return "The automation endpoint did not respond in time."
    return "Failed to trigger the automation. Please try again."
