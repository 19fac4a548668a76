"""
Location Resolver — Derive a location's identity and paths from its hostname.

The location code is the fixed-width numeric prefix of the hostname
(two ASCII digits by default): "12FILESRV01" → "12". Every downstream path
is built from it, so a hostname that doesn't match aborts the run before
any side effect.
"""

from __future__ import annotations

import re

from ..config.settings import Settings
from ..errors import ConfigurationError, InvalidHostnameFormat
from ..models.location import AddressSet, LocationIdentity


def extract_code(hostname: str, pattern: str = r"^([0-9]{2})") -> str:
    """Return the location code embedded in a hostname."""
    # ASCII only: \d would also accept other scripts' digits
    match = re.match(pattern, hostname.strip(), re.ASCII)
    if not match:
        raise InvalidHostnameFormat(hostname, pattern)
    return match.group(1)


def _fill(name: str, template: str, fields: dict) -> str:
    try:
        return template.format(**fields)
    except (KeyError, IndexError, ValueError, AttributeError) as e:
        raise ConfigurationError(
            f"Path template {name} = {template!r} cannot be filled: {e!r}"
        ) from e


def resolve(hostname: str, settings: Settings) -> LocationIdentity:
    """
    Resolve a hostname into a LocationIdentity.

    Pure function of its inputs.

    Raises:
        InvalidHostnameFormat: If the hostname carries no location code
        ConfigurationError: If a path template cannot be filled
    """
    hostname = hostname.strip()
    code = extract_code(hostname, settings.hostname_pattern)

    templates = settings.paths
    fields = {"hostname": hostname, "code": code}

    addresses = AddressSet(
        **{
            name: _fill(name, getattr(templates, name), fields)
            for name in AddressSet.model_fields
        }
    )

    return LocationIdentity(hostname=hostname, code=code, addresses=addresses)
