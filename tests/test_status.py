"""
Tests for building and applying statuses.
"""

import json
from unittest.mock import Mock

import pytest
from conftest import api_exception

from aioperator.services.errors import ClusterApiError, ConflictError
from aioperator.services.resource import AiOperator, AiOperatorStatus
from aioperator.services.status import FIELD_MANAGER, apply_status, build_status


class TestBuildStatus:
    """Test status construction."""
    
    def test_first_status(self):
        status = build_status(AiOperatorStatus(), answer="Hi", state_hash="abc")
        
        assert status.installed is True
        assert status.configured == 1
        assert status.maintenance is False
        assert status.waiting is False
        assert status.last_backup == "N/A"
        assert status.answer == "Hi"
        assert status.state_hash == "abc"
    
    def test_builds_on_previous(self):
        previous = AiOperatorStatus(installed=True, configured=2, last_backup="2026-01-01",
                                    answer="old", state_hash="old")
        
        status = build_status(previous, answer="new", state_hash="new")
        
        assert status.configured == 3
        assert status.last_backup == "2026-01-01"
        assert status.answer == "new"
        # The previous status is left untouched
        assert previous.answer == "old"


class TestApplyStatus:
    """Test server-side apply of the status subresource."""
    
    @pytest.mark.asyncio
    async def test_applies_with_field_manager(self, ctx, custom_api):
        custom_api.add("demo", "ns1", "Hello")
        resource = AiOperator(name="demo", namespace="ns1", prompt="Hello")
        status = AiOperatorStatus(installed=True, configured=1, answer="Hi", state_hash="abc")
        
        await apply_status(ctx, resource, status)
        
        call = custom_api.status_calls[0]
        assert call["field_manager"] == FIELD_MANAGER
        assert call["force"] is True
        assert call["_content_type"] == "application/apply-patch+yaml"
        assert call["body"]["apiVersion"] == "aioperator.io/v1"
        assert call["body"]["kind"] == "AiOperator"
        assert call["body"]["metadata"] == {"name": "demo", "namespace": "ns1"}
        assert custom_api.get("ns1", "demo")["status"]["answer"] == "Hi"
    
    @pytest.mark.asyncio
    async def test_is_idempotent(self, ctx, custom_api):
        """Applying the same status twice looks the same as applying it once."""
        custom_api.add("demo", "ns1", "Hello")
        resource = AiOperator(name="demo", namespace="ns1", prompt="Hello")
        status = AiOperatorStatus(installed=True, configured=1, answer="Hi", state_hash="abc")
        
        await apply_status(ctx, resource, status)
        after_first = custom_api.get_namespaced_custom_object(
            "aioperator.io", "v1", "ns1", "aioperators", "demo")
        await apply_status(ctx, resource, status)
        after_second = custom_api.get_namespaced_custom_object(
            "aioperator.io", "v1", "ns1", "aioperators", "demo")
        
        assert after_first == after_second
        first_call, second_call = custom_api.status_calls
        assert json.dumps(first_call["body"], sort_keys=True) == json.dumps(second_call["body"], sort_keys=True)
        assert first_call["field_manager"] == second_call["field_manager"] == FIELD_MANAGER
        assert first_call["force"] is second_call["force"] is True

    @pytest.mark.asyncio
    async def test_conflict_is_retryable(self, ctx):
        ctx.custom_api = Mock()
        ctx.custom_api.patch_namespaced_custom_object_status.side_effect = api_exception(409, "Conflict")
        resource = AiOperator(name="demo", namespace="ns1", prompt="Hello")
        
        with pytest.raises(ConflictError):
            await apply_status(ctx, resource, AiOperatorStatus())
    
    @pytest.mark.asyncio
    async def test_api_failure(self, ctx):
        ctx.custom_api = Mock()
        ctx.custom_api.patch_namespaced_custom_object_status.side_effect = api_exception(503, "Unavailable")
        resource = AiOperator(name="demo", namespace="ns1", prompt="Hello")
        
        with pytest.raises(ClusterApiError) as exc_info:
            await apply_status(ctx, resource, AiOperatorStatus())
        
        assert not isinstance(exc_info.value, ConflictError)
    
    @pytest.mark.asyncio
    async def test_missing_resource_is_ignored(self, ctx, custom_api):
        resource = AiOperator(name="gone", namespace="ns1", prompt="Hello")
        
        await apply_status(ctx, resource, AiOperatorStatus())
