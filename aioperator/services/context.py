"""
Shared reconciliation context.

One ContextData is built at startup and handed to every component call,
instead of each module creating its own API clients.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Callable

import structlog
from kubernetes import client, config as kube_config
from kubernetes.config.config_exception import ConfigException

from aioperator.services.completion import CompletionInvoker, MockCompletion
from aioperator.services.config import Config

logger = structlog.get_logger(__name__)


@dataclass
class ContextData:
    """API clients and settings used by all reconciliation passes."""
    config: Config
    custom_api: Any  # client.CustomObjectsApi
    apps_api: Any  # client.AppsV1Api
    completion: Any  # CompletionInvoker or MockCompletion
    
    @classmethod
    def from_config(cls, config: Config) -> "ContextData":
        """
        Load cluster credentials and build the API clients.
        
        Tries in-cluster configuration first, then the local kubeconfig.
        Raises ConfigException when neither is available; the controller
        cannot start without a cluster connection.
        """
        try:
            kube_config.load_incluster_config()
            logger.info("Loaded in-cluster Kubernetes configuration")
        except ConfigException:
            kube_config.load_kube_config()
            logger.info("Loaded Kubernetes configuration from kubeconfig")
        
        if config.completion_mode == "mock":
            completion = MockCompletion()
        else:
            completion = CompletionInvoker(
                model=config.openai_model,
                base_url=config.openai_base_url,
                timeout=config.completion_timeout,
            )
        
        return cls(
            config=config,
            custom_api=client.CustomObjectsApi(),
            apps_api=client.AppsV1Api(),
            completion=completion,
        )
    
    async def call(self, fn: Callable, *args, **kwargs) -> Any:
        """Run a blocking Kubernetes client call without stalling the event loop."""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, lambda: fn(*args, **kwargs))
