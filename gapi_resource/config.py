"""
Configuration management for the Google API resource.

Uses Pydantic Settings for type-safe configuration with .env file support.
Per-instance resource settings (the dashboard settings of each mounted
instance) are supplied as a JSON object in GAPI_RESOURCES_JSON.
"""
import json
from pathlib import Path
from functools import cached_property, lru_cache
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_PACKAGE_DIR = Path(__file__).parent


class ResourceConfig(BaseModel):
    """
    Static settings of one resource instance.

    Accepts the dashboard key names (clientID, clientSecret, authScopes,
    allowAnonymous) as well as their snake_case equivalents.
    """
    model_config = ConfigDict(populate_by_name=True)

    client_id: str = Field(default="", alias="clientID")
    client_secret: str = Field(default="", alias="clientSecret")
    auth_scopes: str = Field(
        default="",
        alias="authScopes",
        description="One auth scope per line",
    )
    allow_anonymous: bool = Field(default=False, alias="allowAnonymous")

    @property
    def scopes(self) -> List[str]:
        """Configured scopes, one per non-blank line."""
        return [line.strip() for line in self.auth_scopes.split("\n") if line.strip()]


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=_PACKAGE_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Resource instances
    gapi_resources_json: str = Field(
        default="{}",
        description="JSON object mapping instance name to its resource settings",
    )

    # Credential store
    credential_backend: Literal["supabase", "memory"] = Field(default="supabase")
    credential_table: str = Field(default="gapi_resource_auth_store")

    # Supabase Settings
    supabase_url: str = Field(default="", description="Supabase project URL")
    supabase_service_role_key: str = Field(default="", description="Supabase service role key (for backend)")
    supabase_jwt_secret: str = Field(default="", description="Supabase JWT secret for token verification")

    # Access control: "reject" stops an unauthenticated request, "warn" logs and continues
    anonymous_policy: Literal["reject", "warn"] = Field(default="reject")

    # API Settings
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=8000)
    log_level: str = Field(default="INFO")

    @cached_property
    def resources(self) -> Dict[str, ResourceConfig]:
        """
        Get the configured resource instances.

        Parses the GAPI_RESOURCES_JSON environment variable once per
        Settings instance.

        Raises:
            ValueError: If the value cannot be parsed
        """
        try:
            raw = json.loads(self.gapi_resources_json or "{}")
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse GAPI_RESOURCES_JSON: {e}")
        if not isinstance(raw, dict):
            raise ValueError("GAPI_RESOURCES_JSON must be a JSON object")
        return {name: ResourceConfig.model_validate(cfg) for name, cfg in raw.items()}

    def get_resource(self, instance: Optional[str]) -> Optional[ResourceConfig]:
        """Get the settings for one instance, or None if it is not configured."""
        if not instance:
            return None
        return self.resources.get(instance)

    def validate_config(self) -> list[str]:
        """Validate configuration and return list of warnings/errors."""
        issues = []

        try:
            resources = self.resources
        except ValueError as e:
            issues.append(str(e))
            resources = {}

        for name, resource in resources.items():
            if not resource.client_id:
                issues.append(f"Resource '{name}' has no clientID")
            if not resource.client_secret:
                issues.append(f"Resource '{name}' has no clientSecret")

        if self.credential_backend == "supabase":
            if not self.supabase_url:
                issues.append("SUPABASE_URL is not set")
            if not self.supabase_service_role_key:
                issues.append("SUPABASE_SERVICE_ROLE_KEY is not set")

        return issues


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    settings = Settings()
    issues = settings.validate_config()

    if issues:
        raise ValueError(f"Invalid configuration: {issues}")

    return settings
