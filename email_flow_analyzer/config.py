"""
Configuration management for the email flow analyzer
Loads environment variables from .env file
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-20250514"
DEFAULT_GEMINI_MODEL = "gemini-1.5-pro-latest"


def load_env_file(env_path: Optional[str] = None) -> bool:
    """Load environment variables from .env file"""

    if env_path is None:
        # Look for .env file in current directory, parent directory, etc.
        current_dir = Path(__file__).parent
        for check_dir in [Path.cwd(), current_dir, current_dir.parent]:
            env_file = check_dir / '.env'
            if env_file.exists():
                env_path = str(env_file)
                break

    if env_path and os.path.exists(env_path):
        with open(env_path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    os.environ.setdefault(key.strip(), value.strip().strip('"').strip("'"))
        logger.info(f"✅ Loaded environment variables from {env_path}")
        return True

    logger.info("⚠️ No .env file found - using system environment variables")
    return False


def get_ai_api_key() -> Tuple[Optional[str], Optional[str]]:
    """Get the first available API key and its provider name"""
    claude_key = os.getenv('ANTHROPIC_API_KEY') or os.getenv('CLAUDE_API_KEY')
    gemini_key = os.getenv('GOOGLE_API_KEY') or os.getenv('GEMINI_API_KEY')

    if claude_key:
        return claude_key, "claude"
    elif gemini_key:
        return gemini_key, "gemini"
    else:
        return None, None


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}")
        return default


@dataclass
class AnalysisConfig:
    """Settings shared by the analysis channels and the engine"""
    api_key: Optional[str] = None
    provider: Optional[str] = None
    text_model: Optional[str] = None
    vision_model: Optional[str] = None
    timeout: float = 60.0
    min_screen_size: float = 200.0
    brand_voice: str = "professional and friendly"

    @classmethod
    def from_env(cls) -> "AnalysisConfig":
        api_key, provider = get_ai_api_key()
        default_model = DEFAULT_GEMINI_MODEL if provider == "gemini" else DEFAULT_CLAUDE_MODEL
        return cls(
            api_key=api_key,
            provider=provider,
            text_model=os.getenv('EMAIL_FLOW_TEXT_MODEL') or default_model,
            vision_model=os.getenv('EMAIL_FLOW_VISION_MODEL') or default_model,
            timeout=_env_float('EMAIL_FLOW_TIMEOUT', 60.0),
            min_screen_size=_env_float('EMAIL_FLOW_MIN_SCREEN_SIZE', 200.0),
            brand_voice=os.getenv('EMAIL_FLOW_BRAND_VOICE') or "professional and friendly",
        )

    @property
    def ai_configured(self) -> bool:
        return bool(self.api_key and self.provider)


def get_api_status(config: Optional[AnalysisConfig] = None) -> str:
    """Check which APIs are available"""
    config = config or AnalysisConfig.from_env()

    if config.ai_configured:
        return f"✅ {config.provider.upper()} API configured"
    else:
        return "⚠️  No AI API keys configured - using local heuristics only"
