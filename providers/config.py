"""
Provider configuration loaded from the environment, key files and an
optional env file.

Precedence for API keys: key file, then environment variable.
Precedence for everything else: real environment, then env file, then default.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Mapping, Optional

from providers.base import ProviderKind

logger = logging.getLogger(__name__)

DEFAULT_OLLAMA_URL = "http://localhost:11434"
OPENAI_BASE_URL = "https://api.openai.com/v1"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com"

OPENAI_KEY_FILE = "openai-api-key.txt"
GOOGLE_KEY_FILE = "google-api-key.txt"
HOME_OPENAI_KEY_FILE = ".openai-api-key"


@dataclass(frozen=True)
class ProviderConfig:
    """Process-lifetime settings for one backend."""

    kind: ProviderKind
    base_url: str
    default_model: str
    max_tokens: int
    temperature: float
    api_key: Optional[str] = field(default=None, repr=False)

    @property
    def api_key_present(self) -> bool:
        return bool(self.api_key)


@dataclass(frozen=True)
class Settings:
    """Everything the resolver needs, read once at startup."""

    openai: ProviderConfig
    gemini: ProviderConfig
    ollama: ProviderConfig
    use_ollama: bool = False
    probe_timeout: float = 3.0
    catalog_timeout: float = 5.0
    cli_timeout: float = 15.0
    pull_timeout: float = 1800.0
    ollama_cli_path: Optional[str] = None

    def for_kind(self, kind: ProviderKind) -> ProviderConfig:
        return {
            ProviderKind.OPENAI: self.openai,
            ProviderKind.GEMINI: self.gemini,
            ProviderKind.OLLAMA: self.ollama,
        }[ProviderKind.parse(kind)]

    @property
    def default_provider(self) -> ProviderKind:
        return ProviderKind.OLLAMA if self.use_ollama else ProviderKind.OPENAI


def read_env_file(path) -> Dict[str, str]:
    """
    Parse a KEY=value env file.

    Accepts `export KEY="value"` lines, skips comments, blank lines and
    SOPS-encrypted values. A missing file yields an empty dict.
    """
    path = Path(path)
    values: Dict[str, str] = {}
    if not path.exists():
        return values

    with open(path) as f:
        for line in f:
            line = line.strip()

            if not line or line.startswith("#"):
                continue

            if "ENC[" in line:
                continue

            if "=" not in line:
                continue

            if line.startswith("export "):
                line = line[7:]

            key, value = line.split("=", 1)
            values[key.strip()] = value.strip().strip('"').strip("'")

    return values


def read_key_file(path) -> Optional[str]:
    """Return the stripped contents of a key file, or None if absent/empty."""
    path = Path(path)
    try:
        key = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning(f"Could not read key file {path}: {e}")
        return None
    return key or None


def _as_int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}={raw!r}, using {default}")
        return default


def _as_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Invalid number for {name}={raw!r}, using {default}")
        return default


def _as_bool(env: Mapping[str, str], name: str, default: bool = False) -> bool:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def load_settings(
    environ: Optional[Mapping[str, str]] = None,
    env_file: Optional[str] = None,
    key_dir: Optional[str] = None,
    home_dir: Optional[str] = None,
) -> Settings:
    """
    Build Settings from the environment.

    Args:
        environ: Environment mapping (defaults to os.environ)
        env_file: Optional env file; its values never override real variables
        key_dir: Directory searched for openai-api-key.txt / google-api-key.txt
            (defaults to the current working directory)
        home_dir: Directory searched for .openai-api-key (defaults to ~)

    Returns:
        Settings: Frozen configuration for the process
    """
    env: Dict[str, str] = {}
    if env_file:
        env.update(read_env_file(env_file))
    env.update(os.environ if environ is None else environ)

    key_dir = Path(key_dir) if key_dir else Path.cwd()
    home_dir = Path(home_dir) if home_dir else Path.home()

    openai_key = (
        read_key_file(key_dir / OPENAI_KEY_FILE)
        or env.get("OPENAI_API_KEY")
        or read_key_file(home_dir / HOME_OPENAI_KEY_FILE)
    )
    google_key = (
        read_key_file(key_dir / GOOGLE_KEY_FILE)
        or env.get("GOOGLE_API_KEY")
        or env.get("GEMINI_API_KEY")
    )

    temperature = _as_float(env, "TEMPERATURE", 0.7)
    openai_max_tokens = _as_int(env, "OPENAI_MAX_TOKENS", 4096)

    openai = ProviderConfig(
        kind=ProviderKind.OPENAI,
        base_url=env.get("OPENAI_BASE_URL") or OPENAI_BASE_URL,
        default_model=env.get("OPENAI_MODEL") or env.get("CODEX_MODEL") or "gpt-4o-mini",
        max_tokens=openai_max_tokens,
        temperature=temperature,
        api_key=openai_key,
    )
    gemini = ProviderConfig(
        kind=ProviderKind.GEMINI,
        base_url=GEMINI_BASE_URL,
        default_model=env.get("GEMINI_MODEL") or "gemini-pro",
        max_tokens=_as_int(env, "GEMINI_MAX_TOKENS", openai_max_tokens),
        temperature=temperature,
        api_key=google_key,
    )
    ollama = ProviderConfig(
        kind=ProviderKind.OLLAMA,
        base_url=(env.get("OLLAMA_API_URL") or env.get("OLLAMA_URL") or DEFAULT_OLLAMA_URL).rstrip("/"),
        default_model=env.get("OLLAMA_MODEL") or "codellama",
        max_tokens=_as_int(env, "OLLAMA_MAX_TOKENS", 32768),
        temperature=temperature,
    )

    return Settings(
        openai=openai,
        gemini=gemini,
        ollama=ollama,
        use_ollama=_as_bool(env, "USE_OLLAMA"),
        probe_timeout=_as_float(env, "OLLAMA_PROBE_TIMEOUT", 3.0),
        catalog_timeout=_as_float(env, "OLLAMA_CATALOG_TIMEOUT", 5.0),
        cli_timeout=_as_float(env, "OLLAMA_CLI_TIMEOUT", 15.0),
        pull_timeout=_as_float(env, "OLLAMA_PULL_TIMEOUT", 1800.0),
        ollama_cli_path=env.get("OLLAMA_CLI_PATH") or None,
    )
