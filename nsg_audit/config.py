"""Runtime settings resolved from command line arguments and the environment."""
from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping, Optional

from .registry import CollisionPolicy
from .report import DEFAULT_REPORT_PATH, DEFAULT_SHEET_NAME

DEFAULT_PROVIDER = "azure"
DEFAULT_AWS_ROLE_NAME = "OrganizationAccountAccessRole"
AZURE_CREDENTIAL_KINDS = ("cli", "default")

# Environment variable consulted for each setting when no CLI value is given.
ENVIRONMENT_VARIABLES = {
    "provider": "NSG_AUDIT_PROVIDER",
    "account_filter": "SUBSCRIPTION_MUST_CONTAIN_STR",
    "tenant_id": "AZURE_TENANT_ID",
    "azure_credential": "NSG_AUDIT_AZURE_CREDENTIAL",
    "aws_profile": "AWS_PROFILE",
    "aws_region": "AWS_REGION",
    "aws_role_name": "NSG_AUDIT_AWS_ROLE",
    "output_path": "NSG_AUDIT_OUTPUT",
    "collision_policy": "NSG_AUDIT_ON_COLLISION",
}


@dataclass(frozen=True)
class Settings:
    """Options controlling the inventory walk and the report output."""

    provider: str = DEFAULT_PROVIDER
    account_filter: str = ""
    tenant_id: Optional[str] = None
    azure_credential: str = "cli"
    aws_profile: Optional[str] = None
    aws_region: Optional[str] = None
    aws_role_name: str = DEFAULT_AWS_ROLE_NAME
    output_path: str = DEFAULT_REPORT_PATH
    sheet_name: str = DEFAULT_SHEET_NAME
    collision_policy: CollisionPolicy = CollisionPolicy.WARN

    def __post_init__(self) -> None:
        if self.azure_credential not in AZURE_CREDENTIAL_KINDS:
            valid = ", ".join(AZURE_CREDENTIAL_KINDS)
            raise ValueError(
                f"Unknown Azure credential '{self.azure_credential}'. Valid options: {valid}"
            )
        object.__setattr__(self, "collision_policy", CollisionPolicy(self.collision_policy))

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Return settings populated from ``environ`` (defaults to ``os.environ``)."""

        environ = os.environ if environ is None else environ
        values = {
            name: environ[variable]
            for name, variable in ENVIRONMENT_VARIABLES.items()
            if environ.get(variable)
        }
        return cls(**values)

    def with_overrides(self, **overrides: Any) -> "Settings":
        """Return a copy with every non-``None`` override applied."""

        known = {field.name for field in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            raise ValueError(f"Unknown setting(s): {', '.join(unknown)}")
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


__all__ = ["DEFAULT_AWS_ROLE_NAME", "DEFAULT_PROVIDER", "ENVIRONMENT_VARIABLES", "Settings"]
