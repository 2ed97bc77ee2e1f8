"""
Settings for the scenario engine: bitcoind RPC endpoint, script storage, sandbox limits.

Values come from the environment (or a `.env` file next to the working directory).
"""

from pathlib import Path

from pydantic import AnyHttpUrl, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    LOG_LEVEL: str = "INFO"

    # bitcoind JSON-RPC (regtest defaults)
    BITCOIN_RPC_URL: AnyHttpUrl = AnyHttpUrl("http://127.0.0.1:18443")
    BITCOIN_RPC_USER: str = "user"
    BITCOIN_RPC_PASSWORD: str = "pass"
    BITCOIN_RPC_TIMEOUT: float = 30.0

    # Where save_script / list_scripts read and write
    SCRIPTS_DIR: Path = Path.home() / ".regtest-scenarios" / "scripts"

    # Wall-clock limit for imperative scripts (seconds). 0 disables the alarm.
    SCRIPT_EXEC_TIMEOUT: int = Field(default=30, ge=0)
    # Comma-separated top-level modules exposed to imperative scripts (e.g. "math").
    # Modules that expose other modules as attributes are refused.
    SCRIPT_EXTRA_MODULES: str = ""


settings = Settings()  # type: ignore
