"""FeedOptions settings model for bshorts-feed."""

from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict, PydanticBaseSettingsSource
from pydantic_settings import YamlConfigSettingsSource

DEFAULT_LANGUAGES = ["en", "ru", "de", "fr", "ko", "es", "it", "zh"]


class FeedOptions(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="BSHORTS_",
        yaml_file="bshorts_feed.yaml",
        yaml_file_encoding="utf-8",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )

    out: Path = Path("./public")
    languages: list[str] = DEFAULT_LANGUAGES
    playlists_api_base: str = "http://localhost:4040"
    rpc_base: str = "https://pocketnet.app:8899"
    avatar_origin: str = "https://bastyon.com"
    min_items: int = 100
    page_size: int = 100
    max_pages: int = 10
    fetch_timeout: float = 15.0
    rpc_timeout: float = 10.0
    views_timeout: float = 10.0
    comment_capacity: int = 10
    comments_per_video: int = 5
    comment_fetch_limit: int = 50
    interval_seconds: float = 600.0
    workers: int = 8
    snapshot_keep: int = 0
    verbose: bool = False
    log_file: Path | None = None

    def playlists_dir(self, lang: str) -> Path:
        return Path(self.out) / "playlists" / lang
