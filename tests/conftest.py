"""Shared fixtures."""

from typing import List, Optional
from unittest.mock import AsyncMock, Mock

import pytest

from kube_sherlock.sources.kubernetes import GatherMetadata, GatherResult


class ScriptedModel:
    """Model double that replays canned replies and records every prompt.

    Each reply is either a string or an exception instance to raise.
    """

    def __init__(self, replies):
        self.replies = list(replies)
        self.prompts: List[str] = []
        self.temperatures: List[Optional[float]] = []

    async def generate(self, prompt: str, temperature: Optional[float] = None) -> str:
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        if not self.replies:
            raise AssertionError("model called more times than scripted")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        return reply


def make_gather_result(resources, namespace="default", context="test-cluster"):
    return GatherResult(
        metadata=GatherMetadata(timestamp="2024-01-01T00:00:00Z", cluster_context=context, namespace=namespace),
        resources=resources,
    )


@pytest.fixture
def scripted_model():
    """Factory for ScriptedModel instances."""
    return ScriptedModel


@pytest.fixture
def gather_result():
    """Factory for GatherResult instances."""
    return make_gather_result


@pytest.fixture
def mock_gatherer():
    """Create a mock ResourceGatherer returning an empty pod list."""
    gatherer = Mock()
    gatherer.gather = AsyncMock(return_value=make_gather_result({"pods": {"items": []}}))
    gatherer.get_logs = AsyncMock(return_value="")
    return gatherer
