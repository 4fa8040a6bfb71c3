"""
Configuration management for AdComposer
"""

import os
from typing import Dict, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration"""

    # Redis (version streams + conversations)
    REDIS_URL: str = os.getenv('REDIS_URL', '')

    # Supabase (voice catalogue)
    SUPABASE_URL: str = os.getenv('SUPABASE_URL', '')
    SUPABASE_SERVICE_KEY: str = os.getenv('SUPABASE_SERVICE_KEY', '')
    VOICES_TABLE: str = os.getenv('VOICES_TABLE', 'voices')

    # OpenAI (Responses API)
    OPENAI_API_KEY: str = os.getenv('OPENAI_API_KEY', '')
    OPENAI_AGENT_MODEL: str = os.getenv('OPENAI_AGENT_MODEL', 'gpt-5.2')
    RESPONSES_MAX_OUTPUT_TOKENS: int = int(os.getenv('RESPONSES_MAX_OUTPUT_TOKENS', '10000'))

    # Qwen (DashScope, OpenAI-compatible chat completions)
    QWEN_API_KEY: str = os.getenv('QWEN_API_KEY', '')
    QWEN_BASE_URL: str = os.getenv(
        'QWEN_BASE_URL', 'https://dashscope-intl.aliyuncs.com/compatible-mode/v1'
    )
    QWEN_MODEL: str = os.getenv('QWEN_MODEL', 'qwen-max')

    # Moonshot KIMI (OpenAI-compatible chat completions)
    MOONSHOT_API_KEY: str = os.getenv('MOONSHOT_API_KEY', '')
    MOONSHOT_BASE_URL: str = os.getenv('MOONSHOT_BASE_URL', 'https://api.moonshot.ai/v1')
    MOONSHOT_MODEL: str = os.getenv('MOONSHOT_MODEL', 'kimi-latest')

    # Chat completions defaults (Qwen / KIMI)
    CHAT_MAX_TOKENS: int = int(os.getenv('CHAT_MAX_TOKENS', '2000'))
    CHAT_TEMPERATURE: float = float(os.getenv('CHAT_TEMPERATURE', '0.7'))

    # LLM transport
    LLM_REQUEST_RETRIES: int = int(os.getenv('LLM_REQUEST_RETRIES', '3'))
    LLM_REQUEST_TIMEOUT: float = float(os.getenv('LLM_REQUEST_TIMEOUT', '120'))

    # Agent loop limits
    AGENT_MAX_ITERATIONS: int = int(os.getenv('AGENT_MAX_ITERATIONS', '10'))
    GENERATION_MAX_ITERATIONS: int = int(os.getenv('GENERATION_MAX_ITERATIONS', '5'))
    LOOP_DETECTION_WINDOW: int = int(os.getenv('LOOP_DETECTION_WINDOW', '6'))
    LOOP_DETECTION_THRESHOLD: int = int(os.getenv('LOOP_DETECTION_THRESHOLD', '3'))

    # API
    ADCOMPOSER_API_KEY: str = os.getenv('ADCOMPOSER_API_KEY', '')
    CORS_ORIGINS: str = os.getenv('CORS_ORIGINS', '*')

    # Provider name -> API key attribute
    PROVIDER_KEYS: Dict[str, str] = {
        'openai': 'OPENAI_API_KEY',
        'qwen': 'QWEN_API_KEY',
        'moonshot': 'MOONSHOT_API_KEY',
    }

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        required = {
            'REDIS_URL': cls.REDIS_URL,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value"""
        return getattr(cls, key, default)

    @classmethod
    def provider_api_key(cls, provider: str) -> str:
        """
        Get the API key configured for an LLM provider.

        Args:
            provider: Provider name ('openai', 'qwen', 'moonshot')

        Returns:
            The API key, or an empty string when the provider is unknown
            or not configured.
        """
        attr = cls.PROVIDER_KEYS.get(provider)
        if not attr:
            return ''
        return getattr(cls, attr, '') or ''
