"""Deployment configuration using pydantic-settings."""

import ipaddress
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from stacks.errors import ConfigurationError


class NetworkExposure(str, Enum):
    """Who may reach the load balancer over HTTP/HTTPS."""

    PUBLIC = "public"
    RESTRICTED = "restricted"


@dataclass(frozen=True)
class DeploymentProfile:
    """Per-deployment choices that differ between the known stack variants.

    Attributes:
        exposure: Variant tag.
        ingress_cidr: Source range for the HTTP and HTTPS ingress rules.
        container_port: Port the BookStack container listens on.
        health_check_path: Path probed by the target group.
        healthy_http_codes: Codes the target group accepts as healthy.
    """

    exposure: NetworkExposure
    ingress_cidr: str
    container_port: int
    health_check_path: str
    healthy_http_codes: str


class Settings(BaseSettings):
    """Deployment settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="BOOKSTACK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Environments
    environments: list[str] = ["devA"]
    production_environment: str = "productionA"
    region: str = "us-east-2"
    log_level: str = "INFO"

    # DNS
    base_domain: str = "docs.wmaug.org"
    zone_name: str = "wmaug.org"

    # Network exposure
    network_exposure: NetworkExposure = NetworkExposure.PUBLIC
    exposure_overrides: dict[str, NetworkExposure] = Field(default_factory=dict)
    admin_cidr: str | None = None

    # Application
    image: str = "lscr.io/linuxserver/bookstack:latest"
    log_router_image: str = "amazon/aws-for-fluent-bit:latest"
    enable_log_router: bool = True
    timezone: str = "Etc/UTC"

    # Secrets
    db_password_source: Literal["parameter", "secret"] = "parameter"
    db_password_parameter_version: int = 2
    verify_parameters: bool = True

    @field_validator("admin_cidr")
    @classmethod
    def _single_host(cls, value: str | None) -> str | None:
        if value is None:
            return value
        try:
            network = ipaddress.IPv4Network(value, strict=True)
        except ValueError as e:
            raise ValueError(f"admin_cidr must be an IPv4 address, got {value}") from e
        if network.num_addresses != 1:
            raise ValueError(f"admin_cidr must be a single address, got {value}")
        return str(network)

    @model_validator(mode="after")
    def _restricted_needs_admin(self) -> "Settings":
        restricted = self.network_exposure == NetworkExposure.RESTRICTED or (
            NetworkExposure.RESTRICTED in self.exposure_overrides.values()
        )
        if restricted and self.admin_cidr is None:
            raise ValueError("restricted exposure requires admin_cidr")
        return self

    def exposure_for(self, environment: str) -> NetworkExposure:
        """Return the exposure configured for an environment."""
        return self.exposure_overrides.get(environment, self.network_exposure)


def select_profile(settings: Settings, environment: str) -> DeploymentProfile:
    """Build the deployment profile for one environment.

    Raises:
        ConfigurationError: If a restricted profile has no admin address.
    """
    exposure = settings.exposure_for(environment)
    if exposure == NetworkExposure.PUBLIC:
        return DeploymentProfile(
            exposure=exposure,
            ingress_cidr="0.0.0.0/0",
            container_port=80,
            health_check_path="/login",
            healthy_http_codes="200,302",
        )

    if settings.admin_cidr is None:
        raise ConfigurationError(
            f"environment {environment} is restricted but admin_cidr is unset"
        )
    return DeploymentProfile(
        exposure=exposure,
        ingress_cidr=settings.admin_cidr,
        container_port=6875,
        health_check_path="/",
        healthy_http_codes="200",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
