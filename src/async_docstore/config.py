"""
Store Configuration
===================

Client credentials for the backing document store, loaded from keyword
arguments or from ``DOCSTORE_*`` environment variables.
"""

from typing import Any, Mapping, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

# camelCase client-credential keys -> StoreConfig field names
_CREDENTIAL_KEYS = {
    "projectId": "project_id",
    "apiKey": "api_key",
    "authDomain": "auth_domain",
    "storageBucket": "storage_bucket",
    "messagingSenderId": "messaging_sender_id",
    "appId": "app_id",
    "databaseURL": "database_url",
    "measurementId": "measurement_id",
}


class StoreConfig(BaseSettings):
    """
    Named credential fields for the document store.

    No defaults are invented: a field the backend needs but that is missing
    is reported by the backend when it is built.
    """

    project_id: Optional[str] = None
    api_key: Optional[str] = None
    auth_domain: Optional[str] = None
    storage_bucket: Optional[str] = None
    messaging_sender_id: Optional[str] = None
    app_id: Optional[str] = None
    database_url: Optional[str] = None
    measurement_id: Optional[str] = None

    model_config = SettingsConfigDict(
        env_prefix="DOCSTORE_",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def from_client_credentials(cls, credentials: Mapping[str, Any]) -> "StoreConfig":
        """Build a config from a camelCase client-credentials mapping."""
        values = {
            _CREDENTIAL_KEYS.get(key, key): value for key, value in credentials.items()
        }
        return cls(**values)
