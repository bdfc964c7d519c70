from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables.

    Read once at startup and immutable afterwards.
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore", frozen=True)

    app_env: str = "dev"
    log_level: str = "INFO"

    host: str = "127.0.0.1"
    port: int = 8000

    generation_provider: str = "openai"
    generation_temperature: float = 1.0
    generation_max_tokens: int = 8192

    generation_openai_api_key: str = ""
    generation_openai_model_name: str = "gpt-4o"

    generation_openai_compatible_api_key: str = ""
    generation_openai_compatible_model_name: str = ""
    generation_openai_compatible_base_url: str = ""

    generation_openrouter_api_key: str = ""
    generation_openrouter_model_name: str = "google/gemini-2.5-pro"

    generation_ollama_api_key: str = ""
    generation_ollama_model_name: str = "llava"

    request_timeout_seconds: float = 60.0
    read_timeout_seconds: float = 30.0
    max_payload_bytes: int = 10 * 1024 * 1024
    accepted_mime_types: list[str] = [
        "image/png",
        "image/jpeg",
        "image/webp",
        "image/gif",
        "image/heic",
        "image/heif",
    ]
    emit_quality: bool = True
    max_concurrent_streams: int = 5

    confidence_threshold_printed: float = 0.8
    confidence_threshold_handwritten: float = 0.7
    dynamic_threshold_enabled: bool = True
    dynamic_threshold_base: float = 0.6
    image_quality_factor: float = 0.3
    content_type_factor: float = 0.2
    stroke_complexity_ceiling: float = 4.0
    structure_anomaly_weight: float = 0.5
    min_quality_score: float = 0.7

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() in ("prod", "production")
