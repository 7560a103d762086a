# src/file_server/config/settings.py
from typing import Optional
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

MOTO_SERVER_ENDPOINT = "http://localhost:5000"


class Settings(BaseSettings):
    """
    Single source of truth for all application settings.

    Configuration precedence:
    1. Environment variables (highest priority)
    2. .env file (if exists)
    3. Default values in this class (lowest priority)

    Usage:
        from file_server.config.settings import get_settings
        settings = get_settings()
        bucket_name = settings.s3_bucket_name
    """

    # Application Settings
    app_name: str = Field(
        default="File Server",
        description="Application name, shown as the API title"
    )

    # Deployment Mode
    deployment_mode: str = Field(
        default="local-dev",
        description="Deployment mode: local-dev, aws-mock, or aws-prod"
    )

    # AWS Core Settings
    aws_region: str = Field(
        default="us-east-1",
        validation_alias="AWS_DEFAULT_REGION"
    )

    aws_access_key_id: Optional[str] = Field(
        default=None,
        validation_alias="AWS_ACCESS_KEY_ID"
    )

    aws_secret_access_key: Optional[str] = Field(
        default=None,
        validation_alias="AWS_SECRET_ACCESS_KEY"
    )

    aws_endpoint_url: Optional[str] = Field(
        default=None,
        validation_alias="AWS_ENDPOINT_URL"
    )

    # Content Store Configuration
    content_backend: Optional[str] = Field(
        default=None,
        description="Content store backend: local or s3 (defaults from deployment mode)"
    )

    storage_dir: str = Field(
        default="storage",
        description="Root directory for the local content store"
    )

    s3_bucket_name: str = Field(
        default="file-server-content",
        description="S3 bucket holding file content, one key prefix per owner"
    )

    # Metadata Index Configuration
    metadata_backend: str = Field(
        default="sqlite",
        description="Metadata index backend: sqlite or mongo"
    )

    metadata_db_path: str = Field(
        default="file_metadata.db",
        description="SQLite file for the local metadata index"
    )

    mongodb_uri: Optional[str] = Field(
        default=None,
        validation_alias="MONGODB_URI",
        description="MongoDB connection string for the mongo metadata index"
    )

    mongodb_database: str = Field(
        default="file_server",
        description="MongoDB database name"
    )

    mongodb_collection: str = Field(
        default="file_records",
        description="MongoDB collection holding file records"
    )

    # Owner resolution
    owner_header: str = Field(
        default="X-MS-CLIENT-PRINCIPAL-NAME",
        description="Request header carrying the authenticated principal"
    )

    default_owner: Optional[str] = Field(
        default=None,
        description="Principal used when the owner header is absent (local use only)"
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    @field_validator('deployment_mode', mode='before')
    @classmethod
    def normalize_deployment_mode(cls, v):
        """Normalize deployment mode values for backwards compatibility."""
        if v:
            mode_mapping = {
                "local-mock": "local-dev",
                "local": "local-dev",
                "cloud": "aws-prod",
            }
            return mode_mapping.get(v, v)
        return v

    @field_validator('deployment_mode')
    @classmethod
    def validate_deployment_mode(cls, v):
        """Validate deployment mode is one of the allowed values."""
        valid_modes = ["local-dev", "aws-mock", "aws-prod"]
        if v not in valid_modes:
            raise ValueError(f"Invalid deployment_mode: {v}. Must be one of {valid_modes}")
        return v

    @field_validator('content_backend')
    @classmethod
    def validate_content_backend(cls, v):
        if v is not None and v not in ("local", "s3"):
            raise ValueError(f"Invalid content_backend: {v}. Must be 'local' or 's3'")
        return v

    @field_validator('metadata_backend')
    @classmethod
    def validate_metadata_backend(cls, v):
        if v not in ("sqlite", "mongo"):
            raise ValueError(f"Invalid metadata_backend: {v}. Must be 'sqlite' or 'mongo'")
        return v

    @field_validator('log_level')
    @classmethod
    def normalize_log_level(cls, v):
        return v.upper()

    @model_validator(mode='after')
    def apply_mode_defaults(self):
        """Fill in backend and endpoint defaults that depend on the deployment mode."""
        if self.content_backend is None:
            self.content_backend = "local" if self.deployment_mode == "local-dev" else "s3"

        if self.deployment_mode == "aws-mock":
            # moto server stands in for AWS
            if self.aws_endpoint_url is None:
                self.aws_endpoint_url = MOTO_SERVER_ENDPOINT
            if self.aws_access_key_id is None:
                self.aws_access_key_id = "mock"
            if self.aws_secret_access_key is None:
                self.aws_secret_access_key = "mock"

        if self.metadata_backend == "mongo" and not self.mongodb_uri:
            raise ValueError("MONGODB_URI is required when metadata_backend is 'mongo'")
        return self

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    This ensures we only create one Settings instance per process.
    """
    return Settings()
