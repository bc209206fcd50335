from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "docpreview"
    db_username: str = "docpreview"
    db_password: str = "secret"
    db_pool_min_size: int = Field(default=1, ge=1)
    db_pool_max_size: int = Field(default=4, ge=1)
    db_connect_timeout_seconds: int = Field(default=5, gt=0)

    storage_root: str = "/app/files"
    temp_dir: str = "/tmp/docpreview"

    pdf_engine: str = "pdfplumber"

    external_tool_enabled: bool = True
    external_tool_candidates: list[str] = Field(default_factory=lambda: ["magick", "convert"])
    external_tool_timeout_seconds: int = Field(default=30, gt=0)
    probe_timeout_seconds: int = Field(default=5, gt=0)

    render_jpeg_quality: int = Field(default=90, ge=1, le=100)
    preview_jpeg_quality: int = Field(default=85, ge=1, le=100)
    thumbnail_jpeg_quality: int = Field(default=80, ge=1, le=100)
    preview_scale: float = 3.0
    thumbnail_scale: float = 1.5
    max_thumbnails: int = Field(default=5, ge=1)

    text_excerpt_length: int = Field(default=1000, ge=0)
    min_raster_bytes: int = Field(default=1000, ge=0)
    # Approximate heuristic: fewer sampled non-white pixels than this marks a
    # render as suspiciously blank.
    blank_pixel_threshold: int = Field(default=10, ge=0)
    max_surface_pixels: int = Field(default=40_000_000, gt=0)
