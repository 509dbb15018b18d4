"""Application configuration using pydantic-settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "autolabel"


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All variables use the ``AUTOLABEL_`` prefix, e.g. ``AUTOLABEL_PRINTER_NAME``.

    Attributes:
        app_name: Name of the application.
        debug: Enable debug mode (SQL echo).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR).
        data_dir: Root directory for prepared labels and temp files.
        database_url: Database connection URL (empty = SQLite in data_dir).
        printer_name: Printer used when a job names none (None = system default).
        render_backends: Rasterizer preference order.
        magick_command: ImageMagick executable.
        pdftoppm_command: Poppler pdftoppm executable.
        sumatra_path: SumatraPDF executable for Windows printing.
        render_timeout: Seconds before an external rasterizer is killed.
        print_timeout: Seconds before a print submission command is killed.
        cups_page_size: CUPS PageSize for 100x150mm media.
        footer_background: Footer bar fill color.
        footer_text_color: Footer text color.
        quota_url: Usage quota endpoint (empty = unlimited).
        quota_api_key: API key sent to the quota endpoint.
        thumbnail_workers: Concurrent renders for batch thumbnails.
    """

    model_config = SettingsConfigDict(
        env_prefix="AUTOLABEL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "AutoLabel"
    debug: bool = False
    log_level: str = "INFO"

    # Storage
    data_dir: Path = DEFAULT_DATA_DIR
    database_url: str = ""

    # Rendering
    render_backends: list[str] = ["magick", "pdftoppm", "pymupdf"]
    magick_command: str = "magick"
    pdftoppm_command: str = "pdftoppm"
    render_timeout: int = 60

    # Footer
    footer_background: str = "#FFFFFF"
    footer_text_color: str = "#000000"

    # Printing
    printer_name: str | None = None
    sumatra_path: str | None = None
    print_timeout: int = 30
    # 100mm x 150mm in points (w283h425 is the CUPS name for 4x6" shipping media)
    cups_page_size: str = "w283h425"

    # Usage quota
    quota_url: str = ""
    quota_api_key: str = ""

    thumbnail_workers: int = 5

    @property
    def temp_dir(self) -> Path:
        """Directory for intermediate files."""
        return self.data_dir / "temp"

    @property
    def prepared_dir(self) -> Path:
        """Directory for final label artifacts."""
        return self.data_dir / "prepared"

    def get_database_url(self) -> str:
        """Get the database URL, defaulting to SQLite in the data directory.

        Returns:
            str: SQLAlchemy database URL.
        """
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'autolabel.db'}"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Returns:
        Settings: Application settings.
    """
    return Settings()
