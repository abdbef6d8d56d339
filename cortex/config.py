from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # OpenRouter (optional: without a key the generator is reported unavailable)
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = "openai/gpt-4o-mini"
    openrouter_model: str = ""

    # Web retrieval
    search_endpoint: str = "https://duckduckgo.com/html/?q={query}"
    connectivity_probe_url: str = "https://www.google.com"
    fetch_user_agent: str = "Mozilla/5.0 (compatible; CortexChat/1.0; +https://example.local)"
    search_user_agent: str = "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36"
    page_fetch_timeout: float = 10.0
    search_timeout: float = 15.0
    probe_timeout: float = 10.0
    direct_url_char_cap: int = 3000

    # Conversation
    allow_web_access: bool = True
    web_search_mode: str = "always"  # always | auto
    reply_temperature: float = 0.7
    title_temperature: float = 0.3

    # App
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"
    log_dir: str = "logs"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def generator_configured(self) -> bool:
        return bool(self.openrouter_api_key.strip())


settings = Settings()
