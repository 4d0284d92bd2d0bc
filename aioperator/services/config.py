"""
Configuration management for the AI Operator controller.
"""

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


@dataclass
class Config:
    """Controller configuration."""
    
    # Kubernetes namespace to watch (None = all namespaces)
    namespace: Optional[str] = None
    
    # Completion provider
    completion_mode: str = "openai"  # "openai" or "mock"
    openai_model: str = "gpt-3.5-turbo"
    openai_base_url: Optional[str] = None
    completion_timeout: float = 60.0
    
    # Re-queue intervals in seconds
    requeue_interval: float = 10.0
    delete_requeue_interval: float = 60.0
    error_requeue_interval: float = 5.0
    
    # Concurrent reconciliation workers
    max_workers: int = 4
    
    log_level: str = "INFO"
    
    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables (and a local .env file)."""
        load_dotenv()
        return cls(
            namespace=os.getenv("WATCH_NAMESPACE", None),
            completion_mode=os.getenv("COMPLETION_MODE", "openai").lower(),
            openai_model=os.getenv("OPENAI_MODEL", "gpt-3.5-turbo"),
            openai_base_url=os.getenv("OPENAI_BASE_URL"),
            completion_timeout=float(os.getenv("COMPLETION_TIMEOUT", "60")),
            requeue_interval=float(os.getenv("REQUEUE_INTERVAL", "10")),
            delete_requeue_interval=float(os.getenv("DELETE_REQUEUE_INTERVAL", "60")),
            error_requeue_interval=float(os.getenv("ERROR_REQUEUE_INTERVAL", "5")),
            max_workers=int(os.getenv("MAX_WORKERS", "4")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
