from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import List, Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="allow",  # tolerate unknown vars if needed
    )

    aws_region: str = Field("us-east-1")
    s3_bucket: str = Field("snapvault-images")
    dynamodb_table: str = Field("image-metadata")
    aws_endpoint_url: Optional[str] = Field(None)
    presign_expire_seconds: int = Field(3600)
    # Base for public object URLs, e.g. a CDN. Defaults to the bucket's virtual host.
    public_base_url: Optional[str] = Field(None)

    aws_access_key_id: str = Field("test")
    aws_secret_access_key: str = Field("test")

    app_title: str = Field("SnapVault")

    # Upload rules
    max_upload_bytes: int = Field(10 * 1024 * 1024)
    max_filename_length: int = Field(100)
    allowed_content_types: List[str] = Field(
        default_factory=lambda: ["image/jpeg", "image/png", "image/gif", "image/webp", "image/svg+xml"]
    )

    # Client
    api_base_url: str = Field("http://localhost:8000")
    search_debounce_ms: int = Field(300)
    recent_searches_path: str = Field("~/.snapvault/local_storage.json")
    recent_searches_namespace: str = Field("snapvault.recentSearches")
    recent_searches_limit: int = Field(5)

settings = Settings()
