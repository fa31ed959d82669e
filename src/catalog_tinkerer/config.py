"""Configuration management using pydantic-settings.

Loads from environment variables (prefixed ``CATALOG_TINKERER_``) and .env file.
"""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

from .decoding.base import DecoderOptions


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    Attributes:
        export_dir: Default destination directory for batch exports.
        export_workers: Number of export jobs that may run at the same time.
        temp_dir_prefix: Prefix of the private directory used for ephemeral exports.
        decoder_type: Decoder implementation used by the CLI.
        ignore_packed_assets: Skip packed texture atlases while decoding.
        distinguish_catalogs_from_theme_stores: Label theme store records separately.
        max_count: Stop decoding after this many records (lightweight read).
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Output logs in JSON format.

    """

    model_config = SettingsConfigDict(
        env_prefix="CATALOG_TINKERER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Export
    export_dir: str = "./exported"
    export_workers: int = 2
    temp_dir_prefix: str = "catalog-tinkerer-"

    # Decoding
    decoder_type: str = "directory"
    ignore_packed_assets: bool = True
    distinguish_catalogs_from_theme_stores: bool = False
    max_count: int | None = None

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def export_path(self) -> Path:
        """Return the export directory as a Path object.

        Returns:
            Path: Path to the default export directory.

        """
        return Path(self.export_dir)

    def decoder_options(self, **overrides) -> DecoderOptions:
        """Build the options handed to a decode at start.

        Args:
            **overrides: Values that replace the configured ones.

        Returns:
            DecoderOptions: Explicit decoder configuration.

        """
        values = {
            "ignore_packed_assets": self.ignore_packed_assets,
            "distinguish_catalogs_from_theme_stores": self.distinguish_catalogs_from_theme_stores,
            "max_count": self.max_count,
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return DecoderOptions(**values)


# Global settings instance
settings = Settings()
