"""
Shared fixtures: an in-memory stand-in for the custom objects API.
"""

import copy
from unittest.mock import Mock

import pytest
from kubernetes import client

from aioperator.services.completion import MockCompletion
from aioperator.services.config import Config
from aioperator.services.context import ContextData


def api_exception(status: int, reason: str = "") -> client.exceptions.ApiException:
    return client.exceptions.ApiException(status=status, reason=reason)


class FakeCustomObjectsApi:
    """
    Keeps AiOperator bodies in memory and applies patches the way the API
    server would for the calls the controller makes.
    """
    
    def __init__(self):
        self.objects: dict[tuple[str, str], dict] = {}
        self.patch_calls: list[dict] = []
        self.status_calls: list[dict] = []
        self._version = 0
    
    def _bump(self, obj: dict):
        self._version += 1
        obj["metadata"]["resourceVersion"] = str(self._version)
    
    def add(self, name, namespace, prompt, finalizers=None, deletion_timestamp=None, status=None):
        obj = {
            "apiVersion": "aioperator.io/v1",
            "kind": "AiOperator",
            "metadata": {"name": name, "namespace": namespace},
            "spec": {"prompt": prompt},
        }
        if finalizers is not None:
            obj["metadata"]["finalizers"] = list(finalizers)
        if deletion_timestamp is not None:
            obj["metadata"]["deletionTimestamp"] = deletion_timestamp
        if status is not None:
            obj["status"] = dict(status)
        self._bump(obj)
        self.objects[(namespace, name)] = obj
        return obj
    
    def get(self, namespace, name):
        return self.objects[(namespace, name)]
    
    def _lookup(self, namespace, name):
        obj = self.objects.get((namespace, name))
        if obj is None:
            raise api_exception(404, "Not Found")
        return obj
    
    def get_namespaced_custom_object(self, group, version, namespace, plural, name, **kwargs):
        return copy.deepcopy(self._lookup(namespace, name))
    
    def patch_namespaced_custom_object(self, group, version, namespace, plural, name, body, **kwargs):
        self.patch_calls.append({"name": name, "namespace": namespace, "body": copy.deepcopy(body), **kwargs})
        obj = self._lookup(namespace, name)
        
        metadata = body.get("metadata", {})
        expected = metadata.get("resourceVersion")
        if expected is not None and expected != obj["metadata"]["resourceVersion"]:
            raise api_exception(409, "Conflict")
        
        if "finalizers" in metadata:
            if metadata["finalizers"] is None:
                obj["metadata"].pop("finalizers", None)
            else:
                obj["metadata"]["finalizers"] = list(metadata["finalizers"])
        
        if obj["metadata"].get("deletionTimestamp") and not obj["metadata"].get("finalizers"):
            del self.objects[(namespace, name)]
            return copy.deepcopy(obj)
        
        self._bump(obj)
        return copy.deepcopy(obj)
    
    def patch_namespaced_custom_object_status(self, group, version, namespace, plural, name, body, **kwargs):
        self.status_calls.append({"name": name, "namespace": namespace, "body": copy.deepcopy(body), **kwargs})
        obj = self._lookup(namespace, name)
        
        status = dict(body.get("status", {}))
        if obj.get("status") != status:
            obj["status"] = status
            self._bump(obj)
        return copy.deepcopy(obj)


@pytest.fixture
def custom_api():
    return FakeCustomObjectsApi()


@pytest.fixture
def apps_api():
    """AppsV1Api without any sibling deployments."""
    api = Mock()
    api.read_namespaced_deployment.side_effect = api_exception(404, "Not Found")
    return api


@pytest.fixture
def completion():
    return MockCompletion(answers=["Hello from the model"])


@pytest.fixture
def ctx(custom_api, apps_api, completion):
    return ContextData(
        config=Config(),
        custom_api=custom_api,
        apps_api=apps_api,
        completion=completion,
    )
