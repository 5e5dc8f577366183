import os
from dataclasses import dataclass
from dotenv import load_dotenv

EVOLUTION_MODES = ("additive", "ledger_priority")


@dataclass(frozen=True)
class Settings:
    # DuckDB cache (campaigns, history, weekly ledger, change log)
    db_path: str

    # YAML app config (owners, assignees, ideal metrics); empty = built-in defaults
    config_path: str

    # Weekly evolution: additive | ledger_priority
    evolution_mode: str

    # Polling intervals (seconds)
    chat_poll_seconds: float
    inbox_poll_seconds: float


def get_settings() -> Settings:
    # SISCOCA_LOG_DIR / SISCOCA_LOG_LEVEL are read by logging_config.setup_logging
    load_dotenv()  # reads .env if present

    evolution_mode = os.getenv("SISCOCA_EVOLUTION_MODE", "additive").strip().lower()
    if evolution_mode not in EVOLUTION_MODES:
        raise ValueError(
            f"SISCOCA_EVOLUTION_MODE must be one of {EVOLUTION_MODES}, got '{evolution_mode}'"
        )

    return Settings(
        db_path=os.getenv("SISCOCA_DB_PATH", "./siscoca.duckdb"),
        config_path=os.getenv("SISCOCA_CONFIG", ""),
        evolution_mode=evolution_mode,
        chat_poll_seconds=float(os.getenv("SISCOCA_CHAT_POLL_SECONDS", "5")),
        inbox_poll_seconds=float(os.getenv("SISCOCA_INBOX_POLL_SECONDS", "30")),
    )
