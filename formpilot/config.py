"""Configuration for the FormPilot form filling service."""
import os
from typing import List, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

class Config:
    """Application configuration."""

    # Question generation (OpenAI-compatible NVIDIA NIM endpoint)
    NVIDIA_API_KEY: Optional[str] = os.getenv("NVIDIA_API_KEY")
    NVIDIA_API_URL: str = os.getenv("NVIDIA_API_URL", "https://integrate.api.nvidia.com/v1")
    AI_MODEL: str = os.getenv("AI_MODEL", "mistralai/mistral-large-3-675b-instruct-2512")

    # Azure Document Intelligence Configuration (image OCR)
    AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT: Optional[str] = os.getenv("AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT")
    AZURE_DOCUMENT_INTELLIGENCE_KEY: Optional[str] = os.getenv("AZURE_DOCUMENT_INTELLIGENCE_KEY")

    # Model Configuration
    MODEL_TEMPERATURE: float = float(os.getenv("MODEL_TEMPERATURE", "0.7"))
    MODEL_MAX_TOKENS: int = int(os.getenv("MODEL_MAX_TOKENS", "500"))
    MODEL_TOP_P: float = float(os.getenv("MODEL_TOP_P", "0.9"))

    # File handling
    BASE_DIR: str = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))  # Project root directory
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")
    OUTPUT_DIR: str = os.getenv("OUTPUT_DIR", "output")
    MAX_FILE_SIZE: int = int(os.getenv("MAX_FILE_SIZE", str(10 * 1024 * 1024)))
    ALLOWED_MEDIA_TYPES: List[str] = ["image/png", "image/jpeg", "image/jpg", "application/pdf"]

    # Sessions
    SESSION_TTL_SECONDS: int = int(os.getenv("SESSION_TTL_SECONDS", "3600"))
    SESSION_CLEANUP_INTERVAL: int = int(os.getenv("SESSION_CLEANUP_INTERVAL", "1800"))

    # Server settings
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "5000"))
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    CORS_ORIGINS: List[str] = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()
    ]

    PLACEHOLDER_API_KEY: str = "your_nvidia_nims_api_key_here"

    @classmethod
    def validate(cls) -> bool:
        """Validate that the question generation service is configured."""
        return bool(cls.NVIDIA_API_KEY) and cls.NVIDIA_API_KEY != cls.PLACEHOLDER_API_KEY

    @classmethod
    def has_llm(cls) -> bool:
        """Check if the question generation service can be used."""
        return cls.validate()

    @classmethod
    def get_azure_doc_intelligence_credentials(cls) -> tuple[str, str]:
        """Get Azure Document Intelligence credentials."""
        endpoint = cls.AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT
        key = cls.AZURE_DOCUMENT_INTELLIGENCE_KEY

        if not endpoint or not key:
            raise ValueError(
                "Azure Document Intelligence credentials missing. "
                "Please set AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT and AZURE_DOCUMENT_INTELLIGENCE_KEY"
            )

        return endpoint, key

    @classmethod
    def has_document_intelligence(cls) -> bool:
        """Check if Document Intelligence is configured."""
        return bool(cls.AZURE_DOCUMENT_INTELLIGENCE_ENDPOINT and cls.AZURE_DOCUMENT_INTELLIGENCE_KEY)

    @classmethod
    def get_upload_dir_path(cls) -> str:
        """Get full path to the upload directory."""
        return os.path.join(cls.BASE_DIR, cls.UPLOAD_DIR)

    @classmethod
    def get_output_dir_path(cls) -> str:
        """Get full path to the output directory."""
        return os.path.join(cls.BASE_DIR, cls.OUTPUT_DIR)

# Global config instance
config = Config()
