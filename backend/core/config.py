from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Listener
    HOST: str = "127.0.0.1"
    PORT: int = 8000

    # Document roots (produced by the external docs build, read-only here)
    SITE_DIR: Path = Path("../../docs/target/asciidoc/build/site")
    ASSETS_MOUNT: str = "/static/assets"
    ASSETS_DIR: Path | None = None  # Defaults to SITE_DIR

    # Root redirect target
    INDEX_PATH: str = "/docs/"

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Path | None = None
    ACCESS_LOG: bool = True

    GZIP: bool = True

    class Config:
        env_file = ".env"
        frozen = True

    @property
    def site_root(self) -> Path:
        return self.SITE_DIR.resolve()

    @property
    def assets_root(self) -> Path:
        return (self.ASSETS_DIR or self.SITE_DIR).resolve()


settings = Settings()
