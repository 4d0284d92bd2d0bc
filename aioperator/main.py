#!/usr/bin/env python3
"""
AI Operator Controller - Main Entry Point

This controller watches AiOperator resources, sends their prompt to a
completion provider and records the answer in the resource status.
"""

import logging

import kopf
import structlog

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

# Import handlers - they register themselves with kopf
from aioperator.handlers import aioperator_handler  # noqa: E402,F401
from aioperator.services.config import Config  # noqa: E402


def main():
    """Main entry point for the controller."""
    
    # Load configuration
    config = Config.from_env()
    logging.basicConfig(level=config.log_level, format="%(message)s")
    logger.info("Starting AI Operator controller",
                namespace=config.namespace,
                completion_mode=config.completion_mode,
                model=config.openai_model)
    
    # Configure kopf settings
    kopf_settings = kopf.OperatorSettings()
    kopf_settings.posting.level = logging.WARNING
    kopf_settings.watching.connect_timeout = 60
    kopf_settings.watching.server_timeout = 300
    
    # Run the operator
    kopf.run(
        clusterwide=not config.namespace,
        namespaces=[config.namespace] if config.namespace else None,
        standalone=True,
        settings=kopf_settings,
        memo=kopf.Memo(config=config),
    )


if __name__ == "__main__":
    main()
