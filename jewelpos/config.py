# jewelpos/config.py
from __future__ import annotations
import os, sys, json
from typing import Dict, Any, Tuple, List

# --------------------------
# Path helpers
# --------------------------
def _windows_documents_dir() -> str:
    if os.name == "nt":
        try:
            from ctypes import windll, create_unicode_buffer
            CSIDL_PERSONAL = 5
            SHGFP_TYPE_CURRENT = 0
            buf = create_unicode_buffer(260)
            if windll.shell32.SHGetFolderPathW(None, CSIDL_PERSONAL, None, SHGFP_TYPE_CURRENT, buf) == 0:
                return buf.value
        except Exception:
            pass
    return os.path.join(os.path.expanduser("~"), "Documents")


def _expand(p: str) -> str:
    return os.path.abspath(os.path.expanduser(os.path.expandvars(p)))


# --------------------------
# Config folder and file discovery
# --------------------------
_THIS_DIR = os.path.dirname(os.path.abspath(__file__))


def _candidate_config_dirs() -> List[str]:
    dirs: List[str] = []
    # 1) Explicit override
    env_dir = os.environ.get("JEWELPOS_CONFIG_DIR", "").strip()
    if env_dir:
        dirs.append(_expand(env_dir))

    # 2) Frozen build: "config" next to the executable
    if getattr(sys, "frozen", False):
        dirs.append(os.path.join(os.path.dirname(sys.executable), "config"))

    # 3) "config" relative to cwd
    dirs.append(os.path.join(os.getcwd(), "config"))

    # 4) "config" next to this module
    dirs.append(os.path.join(_THIS_DIR, "config"))

    out: List[str] = []
    seen: set[str] = set()
    for d in dirs:
        if d not in seen:
            seen.add(d)
            out.append(d)
    return out


def _pick_config_path() -> Tuple[str, str]:
    for d in _candidate_config_dirs():
        for fname in ("config.json", "app_config.json"):
            p = os.path.join(d, fname)
            if os.path.exists(p):
                return d, p
    # Nothing on disk: report the first candidate, defaults apply
    base = _candidate_config_dirs()[0]
    return base, os.path.join(base, "config.json")


CONFIG_DIR, CONFIG_PATH = _pick_config_path()

# --------------------------
# Defaults
# --------------------------
METALS = ("SILVER", "GOLD")

DEFAULT_CONFIG: Dict[str, Any] = {
    "metal": "SILVER",                # "SILVER" | "GOLD"
    "fallback_rate_per_gram": 95.0,   # only before the first successful fetch
    "rate_refresh_seconds": 30.0,
    "default_tax_percentage": 3.0,    # GST
    "currency": "INR",

    # optional:
    # "db_path": "C:/Users/<user>/Documents/JewelPOS/jewelpos.db"
    # "log_dir": "C:/Users/<user>/Documents/JewelPOS/logs"
    # "log_level": "INFO"  # ERROR, WARNING, INFO, DEBUG
}


def _load_json(path: str) -> Dict[str, Any]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
            return data if isinstance(data, dict) else {}
    except Exception:
        return {}


def _positive_float(raw: Dict[str, Any], key: str, current: float) -> float:
    try:
        v = float(raw.get(key, current))
    except (TypeError, ValueError):
        return current
    return v if v > 0 else current


def load_app_config(path: str | None = None) -> Dict[str, Any]:
    cfg = DEFAULT_CONFIG.copy()
    raw = _load_json(path or CONFIG_PATH)
    if raw:
        metal = str(raw.get("metal", cfg["metal"])).strip().upper()
        if metal in METALS:
            cfg["metal"] = metal

        cfg["fallback_rate_per_gram"] = _positive_float(raw, "fallback_rate_per_gram", cfg["fallback_rate_per_gram"])
        cfg["rate_refresh_seconds"] = _positive_float(raw, "rate_refresh_seconds", cfg["rate_refresh_seconds"])

        # 0% tax is a valid setting
        try:
            tax = float(raw.get("default_tax_percentage", cfg["default_tax_percentage"]))
            if 0 <= tax <= 100:
                cfg["default_tax_percentage"] = tax
        except (TypeError, ValueError):
            pass

        cur = str(raw.get("currency", cfg["currency"])).strip().upper()
        if cur:
            cfg["currency"] = cur

        for key in ("db_path", "log_dir"):
            if key in raw and str(raw[key]).strip():
                cfg[key] = str(raw[key]).strip()
        if "log_level" in raw and str(raw["log_level"]).strip():
            cfg["log_level"] = str(raw["log_level"]).strip().upper()
    return cfg


APP_CONFIG = load_app_config()

# --------------------------
# Main parameters
# --------------------------
METAL: str                    = APP_CONFIG["metal"]
FALLBACK_RATE_PER_GRAM: float = APP_CONFIG["fallback_rate_per_gram"]
RATE_REFRESH_SECONDS: float   = APP_CONFIG["rate_refresh_seconds"]
DEFAULT_TAX_PERCENTAGE: float = APP_CONFIG["default_tax_percentage"]
APP_CURRENCY: str             = APP_CONFIG["currency"]


def _app_home() -> str:
    return os.path.join(_windows_documents_dir(), "JewelPOS")


_raw_db_path = str(APP_CONFIG.get("db_path") or "").strip()
DB_PATH: str = _expand(_raw_db_path) if _raw_db_path else os.path.join(_app_home(), "jewelpos.db")

# --------------------------
# Logging (paths and level)
# --------------------------
_raw_log_dir = os.environ.get("JEWELPOS_LOG_DIR", "").strip() or str(APP_CONFIG.get("log_dir") or "").strip()
LOG_DIR: str = _expand(_raw_log_dir) if _raw_log_dir else os.path.join(_app_home(), "logs")

LOG_LEVEL: str = (os.environ.get("JEWELPOS_LOG_LEVEL", "").strip()
                  or str(APP_CONFIG.get("log_level", "INFO"))).strip().upper()
if LOG_LEVEL not in ("ERROR", "WARNING", "INFO", "DEBUG"):
    LOG_LEVEL = "INFO"


__all__ = [
    "CONFIG_DIR", "CONFIG_PATH", "DEFAULT_CONFIG", "METALS",
    "APP_CONFIG", "METAL", "FALLBACK_RATE_PER_GRAM", "RATE_REFRESH_SECONDS",
    "DEFAULT_TAX_PERCENTAGE", "APP_CURRENCY", "DB_PATH",
    "load_app_config",
    "LOG_DIR", "LOG_LEVEL",
]
