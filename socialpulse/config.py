from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # LLM provider
    llm_provider: str = "anthropic"  # anthropic | openrouter
    anthropic_api_key: str = ""
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"

    # Per-mode models
    research_model: str = "claude-sonnet-4-20250514"
    ranking_model: str = "claude-haiku-4-5-20251001"
    drafting_model: str = "claude-opus-4-6"
    brainstorm_model: str = "claude-haiku-4-5-20251001"

    # Per-mode output budgets
    research_max_tokens: int = 16000
    ranking_max_tokens: int = 16000
    drafting_max_tokens: int = 8000
    brainstorm_max_tokens: int = 4000
    web_search_max_uses: int = 10

    # Pipeline
    brand_name: str = "Fivetran"
    first_frame_delay_ms: int = 300  # 0 disables
    research_sample_mentions: int = 10
    stream_ping_seconds: int = 15

    # App
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]


settings = Settings()
