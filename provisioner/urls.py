"""
Named URL directory.

The server publishes a mapping of endpoint names to path templates
(``{"reboot_device": "//host:8080/api/devices/{mac}/reboot", ...}``).
Templates are resolved by plain textual substitution.

Substituted values are NOT escaped or URL-encoded. Callers passing
untrusted values must make them URL-safe first.

Usage:
    from provisioner.urls import UrlDirectory

    urls = UrlDirectory({"device": "/api/devices/{mac}"})
    urls.resolve("device", {"mac": "00:11:22:33:44:55"})
"""

import re
from types import MappingProxyType
from typing import Any, Iterator, Mapping, Optional

from provisioner.errors import MissingParameter, UnknownEndpoint

PLACEHOLDER = re.compile(r"\{[-\w]+\}")


class UrlDirectory(Mapping[str, str]):
    """Immutable mapping of endpoint name to URL template."""

    def __init__(self, templates: Mapping[str, str]):
        self._templates = MappingProxyType(dict(templates))

    def __getitem__(self, name: str) -> str:
        return self._templates[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)

    def __repr__(self) -> str:
        return f"UrlDirectory({dict(self._templates)!r})"

    def resolve(self, name: str, params: Optional[Mapping[str, Any]] = None) -> str:
        """
        Expand a named URL template.

        Args:
            name: Endpoint name (e.g., "devices", "reboot_device")
            params: Values for the template's {placeholders}

        Returns:
            The template with every placeholder replaced

        Raises:
            UnknownEndpoint: name is not in the directory
            MissingParameter: a placeholder has no entry in params
        """
        template = self._templates.get(name)
        if not template:
            raise UnknownEndpoint(name)

        params = params or {}
        for token in PLACEHOLDER.findall(template):
            key = token[1:-1]  # "{foo}" -> "foo"
            if key not in params:
                raise MissingParameter(key)

        # Single pass, so substituted values are never re-expanded
        return PLACEHOLDER.sub(lambda m: str(params[m.group(0)[1:-1]]), template)
