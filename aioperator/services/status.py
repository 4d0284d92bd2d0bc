"""
Status management for AiOperator resources.

Statuses are never mutated in place: a new AiOperatorStatus is built from
the previous one and applied as a whole with server-side apply.
"""

from dataclasses import replace

import structlog
from kubernetes import client

from aioperator.services.context import ContextData
from aioperator.services.errors import from_api_exception
from aioperator.services.resource import (
    API_GROUP,
    API_VERSION,
    KIND,
    PLURAL,
    AiOperator,
    AiOperatorStatus,
)

logger = structlog.get_logger(__name__)

# Field manager identifying this controller's writes
FIELD_MANAGER = "aioperator"

APPLY_PATCH = "application/apply-patch+yaml"


def build_status(previous: AiOperatorStatus, answer: str, state_hash: str) -> AiOperatorStatus:
    """Build the status recorded after a successful create or update."""
    return replace(
        previous,
        installed=True,
        configured=previous.configured + 1,
        maintenance=False,
        waiting=False,
        answer=answer,
        state_hash=state_hash,
    )


async def apply_status(ctx: ContextData, resource: AiOperator, status: AiOperatorStatus) -> None:
    """
    Apply a status to the resource's status subresource.
    
    Uses server-side apply with a fixed field manager, so applying the same
    status again changes nothing and fields owned by other writers are left
    alone.
    
    Raises:
        ConflictError: another writer holds a conflicting field.
        ClusterApiError: any other API failure.
    """
    body = {
        "apiVersion": f"{API_GROUP}/{API_VERSION}",
        "kind": KIND,
        "metadata": {
            "name": resource.name,
            "namespace": resource.namespace,
        },
        "status": status.to_dict(),
    }
    
    try:
        await ctx.call(
            ctx.custom_api.patch_namespaced_custom_object_status,
            group=API_GROUP,
            version=API_VERSION,
            namespace=resource.namespace,
            plural=PLURAL,
            name=resource.name,
            body=body,
            field_manager=FIELD_MANAGER,
            force=True,
            _content_type=APPLY_PATCH,
        )
    except client.exceptions.ApiException as e:
        if e.status == 404:
            logger.info("AiOperator not found, status not applied",
                        namespace=resource.namespace, name=resource.name)
            return
        raise from_api_exception(e, f"apply status to {resource.namespace}/{resource.name}") from e
    
    logger.info("Status applied", namespace=resource.namespace, name=resource.name,
                configured=status.configured, state_hash=status.state_hash)
