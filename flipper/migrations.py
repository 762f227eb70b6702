"""Versioned schema migrations for long-lived singleton accounts.

Each versioned account kind has a chain of step functions; step ``n`` turns
a version-``n`` payload into version ``n + 1``. ``migrate`` runs the chain
from the payload's version to the current one. Payloads written before
versioning existed have no ``schema_version`` key and count as version 1.

History:
    VaultAuthority v1 -> v2: adds the trusted aggregator program id; drops
        the stored bump
    AdapterRegistry v1 -> v2: adds the operator set and per-adapter enabled
        flag; ``supported_adapters`` becomes ``adapters``
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import structlog

from flipper.config import DEFAULT_CONFIG, FlipperConfig
from flipper.models.accounts import ADAPTER_REGISTRY_VERSION, VAULT_AUTHORITY_VERSION

logger = structlog.get_logger()

Payload = dict[str, Any]
MigrationStep = Callable[[Payload, FlipperConfig], Payload]


def _vault_authority_v1_to_v2(payload: Payload, config: FlipperConfig) -> Payload:
    migrated = {key: value for key, value in payload.items() if key != "bump"}
    migrated.setdefault("aggregator_program_id", config.default_aggregator_program_id)
    return migrated


def _adapter_registry_v1_to_v2(payload: Payload, config: FlipperConfig) -> Payload:
    migrated = {key: value for key, value in payload.items() if key != "supported_adapters"}
    adapters = payload.get("supported_adapters", payload.get("adapters", []))
    migrated["adapters"] = [{"enabled": True, **adapter} for adapter in adapters]
    migrated.setdefault("operators", [])
    return migrated


MIGRATIONS: dict[str, dict[int, MigrationStep]] = {
    "VaultAuthority": {1: _vault_authority_v1_to_v2},
    "AdapterRegistry": {1: _adapter_registry_v1_to_v2},
}

CURRENT_VERSIONS: dict[str, int] = {
    "VaultAuthority": VAULT_AUTHORITY_VERSION,
    "AdapterRegistry": ADAPTER_REGISTRY_VERSION,
}


def schema_version(payload: Payload) -> int:
    return int(payload.get("schema_version", 1))


def migrate(kind: str, payload: Payload, config: FlipperConfig = DEFAULT_CONFIG) -> Payload:
    """Bring a payload of account ``kind`` up to the current schema version.

    Kinds without migrations are returned unchanged.

    Raises:
        ValueError: If the payload is newer than this code understands
    """
    steps = MIGRATIONS.get(kind)
    if steps is None:
        return payload
    current = CURRENT_VERSIONS[kind]
    version = schema_version(payload)
    if version > current:
        raise ValueError(f"{kind} schema version {version} is newer than supported {current}")
    while version < current:
        payload = steps[version](payload, config)
        logger.info("account_migrated", kind=kind, from_version=version, to_version=version + 1)
        version += 1
        payload["schema_version"] = version
    return payload


__all__ = ["MIGRATIONS", "CURRENT_VERSIONS", "migrate", "schema_version"]
