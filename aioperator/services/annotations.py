"""
Lifecycle annotation lookup.

The last applied state of an AiOperator may be recorded as annotations on
its sibling Deployment (same name, same namespace). This module only reads
them.
"""

from typing import Optional

import structlog
from kubernetes import client

from aioperator.services.context import ContextData
from aioperator.services.errors import from_api_exception

logger = structlog.get_logger(__name__)


async def get_snapshot(ctx: ContextData, name: str, namespace: str) -> Optional[dict]:
    """
    Read the sibling Deployment's annotations.
    
    Returns None when the Deployment does not exist or carries no
    annotations: the resource simply has no prior recorded state.
    """
    try:
        deployment = await ctx.call(
            ctx.apps_api.read_namespaced_deployment,
            name=name,
            namespace=namespace,
        )
    except client.exceptions.ApiException as e:
        if e.status == 404:
            logger.debug("No sibling deployment", namespace=namespace, name=name)
            return None
        raise from_api_exception(e, f"read deployment {namespace}/{name}") from e
    
    metadata = deployment.metadata
    if metadata is None or not metadata.annotations:
        return None
    return dict(metadata.annotations)
