"""Exceptions raised while collecting inventory and writing reports."""
from __future__ import annotations


class NsgAuditError(Exception):
    """Base class for all errors raised by :mod:`nsg_audit`."""


class InputContractError(NsgAuditError, ValueError):
    """Raised when inventory data is missing a field the report requires."""


class SubnetCollisionError(NsgAuditError, ValueError):
    """Raised when two subnets share an address range and collisions are fatal."""


class RegistryFrozenError(NsgAuditError, RuntimeError):
    """Raised when a registry snapshot is modified."""


class InventorySourceError(NsgAuditError, RuntimeError):
    """Raised when a cloud inventory API call fails."""


class ReportWriteError(NsgAuditError, RuntimeError):
    """Raised when the report workbook cannot be created or saved."""


__all__ = [
    "InputContractError",
    "InventorySourceError",
    "NsgAuditError",
    "RegistryFrozenError",
    "ReportWriteError",
    "SubnetCollisionError",
]
