from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── External endpoints ────────────────────────────────────────────────
    HELIUS_API_KEY: str | None = None  # optional, upgrades RPC_* to Helius
    RPC_HTTP: str = "https://api.mainnet-beta.solana.com"
    RPC_WSS: str = "wss://api.mainnet-beta.solana.com"
    COMMITMENT: str = "confirmed"
    CONNECT_TIMEOUT_SEC: float = 10.0

    # ─── Programs ─────────────────────────────────────────────────────────
    PUMP_PROGRAM: str = "6EF8rrecthR5Dkzon8Nwu78hRvfCKubJ14M5uBEwF6P"
    LAUNCHPAD_PROGRAM: str = "LanMV9sAd7wArD4vJFi2qDdfnVhFxYSUg6eADduJ3uj"
    LAUNCHPAD_AUTHORITY: str = "WLHv2UAZm6z4KyaaELi5pjdbJh6RESMva1Rnn8pJVVh"

    # ─── Bonding curve ────────────────────────────────────────────────────
    COMPLETION_TARGET_SOL: float = 85.0
    NEAR_COMPLETION_RATIO: float = 0.8
    TRADE_INGESTION: bool = False

    # ─── Enrichment queue (runtime‑tunable via .env) ──────────────────────
    ENRICH_CAPACITY: int = 50
    ENRICH_TRIM_TO: int = 30
    ENRICH_SPACING_SEC: float = 0.15
    ENRICH_MAX_RETRIES: int = 3
    ENRICH_BACKOFF_SEC: float = 1.0
    ENRICH_BACKOFF_MAX_SEC: float = 5.0

    # ─── Output ───────────────────────────────────────────────────────────
    THROTTLE_WINDOW_SEC: float = 0.5
    LAUNCH_HISTORY: int = 200
    TRADE_HISTORY: int = 500
    COMPLETION_HISTORY: int = 100
    EVENT_HISTORY: int = 100
    ENRICHED_HISTORY: int = 50
    INITIALIZE_HISTORY: int = 50
    DASHBOARD_HOST: str = "0.0.0.0"
    DASHBOARD_PORT: int = 8000

    # ─── Persistence / debug ──────────────────────────────────────────────
    DB_DSN: str = "sqlite+aiosqlite:///launchwatch.db"
    DEBUG: str = ""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @model_validator(mode="after")
    def _helius_endpoints(self) -> "Settings":
        if self.HELIUS_API_KEY:
            if "RPC_HTTP" not in self.model_fields_set:
                self.RPC_HTTP = f"https://mainnet.helius-rpc.com/?api-key={self.HELIUS_API_KEY}"
            if "RPC_WSS" not in self.model_fields_set:
                self.RPC_WSS = f"wss://mainnet.helius-rpc.com/?api-key={self.HELIUS_API_KEY}"
        return self


settings = Settings()  # import this everywhere
