from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


ROOT_DIR = Path(__file__).resolve().parent.parent


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return int(raw)


def _get_optional(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    return raw.strip()


def _get_csv_list(name: str, default: str = "") -> tuple[str, ...]:
    raw = os.getenv(name, default)
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return tuple(dict.fromkeys(items))


@dataclass
class Settings:
    codes: tuple[str, ...]
    data_dir: Path
    db_path: Path
    download_dir: Path
    smtp_addr: str | None
    smtp_user: str
    smtp_pass: str
    timeout_seconds: int
    trigger_hour: int
    check_interval_seconds: int
    update_interval_ms: int
    checkpoint_every: int
    log_level: str

    @classmethod
    def from_env(cls, data_dir: Path | None = None) -> "Settings":
        if data_dir is None:
            data_dir = Path(os.getenv("CNINFO_DATA_DIR", str(ROOT_DIR / "data")))
        return cls(
            codes=_get_csv_list("CNINFO_CODES"),
            data_dir=data_dir,
            db_path=Path(os.getenv("CNINFO_DB_PATH", str(data_dir / "annualreport.json"))),
            download_dir=Path(
                os.getenv("CNINFO_DOWNLOAD_DIR", str(data_dir / "annualreport"))
            ),
            smtp_addr=_get_optional("CNINFO_SMTP_ADDR"),
            smtp_user=os.getenv("CNINFO_SMTP_USER", ""),
            smtp_pass=os.getenv("CNINFO_SMTP_PASS", ""),
            timeout_seconds=_get_int("CNINFO_TIMEOUT_SECONDS", 20),
            trigger_hour=max(0, min(23, _get_int("CNINFO_TRIGGER_HOUR", 10))),
            check_interval_seconds=_get_int("CNINFO_CHECK_INTERVAL_SECONDS", 24 * 3600),
            update_interval_ms=_get_int("CNINFO_UPDATE_INTERVAL_MS", 100),
            checkpoint_every=max(1, _get_int("CNINFO_CHECKPOINT_EVERY", 10)),
            log_level=os.getenv("CNINFO_LOG_LEVEL", "INFO").upper(),
        )
