from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    zt_data_dir: Path = Path("./data")
    # Signing key: inline PEM wins over the file path
    cert_private_key: str | None = None
    cert_private_key_path: Path | None = None
    # Verification key, same precedence
    cert_public_key: str | None = None
    cert_public_key_path: Path | None = None
    # Base for verification links; request base URL is used when unset
    public_base_url: str | None = None
    raw_log_preview_chars: int = 500

settings = Settings()
