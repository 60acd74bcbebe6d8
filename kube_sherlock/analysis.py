"""One-shot troubleshooting helpers: causes, resource suggestions and summaries."""

import logging
from typing import Any, Callable, Dict, List
from dataclasses import dataclass, field

from kube_sherlock.errors import ModelResponseError, RequestValidationError
from kube_sherlock.llm import DEFAULT_TEMPERATURE
from kube_sherlock.parsing import extract_json

logger = logging.getLogger(__name__)

TROUBLESHOOT_PROMPT = """You are a Kubernetes expert who specializes in troubleshooting. Work out the likely causes of the error message or event below and suggest fixes.

Error Message/Event Description: {error}

Reply in this JSON format:
{{
  "potentialCauses": ["cause1", "cause2", "cause3"],
  "suggestedSolutions": ["solution1", "solution2", "solution3"]
}}

Keep the solutions practical: name the kubectl commands, configuration changes or diagnostic steps to take."""

SUGGEST_PROMPT = """You are a Kubernetes troubleshooting expert. For the error below, list the Kubernetes resources (pod logs, deployment configurations, service descriptions and so on) that would give useful context for finding the root cause.

Error Description: {error}

Reply in this JSON format:
{{
  "suggestedResources": ["pod/example-pod logs", "deployment/example-deployment configuration"],
  "reasoning": "Why each resource helps with the diagnosis."
}}"""

SUMMARIZE_PROMPT = """You are an expert Kubernetes troubleshooter. Summarize the resource data below, keeping only what matters for diagnosing problems.

Resource Data:
{data}

Reply in this JSON format:
{{
  "summary": "The relevant findings from the resource data."
}}"""


@dataclass
class TroubleshootResult:
    potential_causes: List[str] = field(default_factory=list)
    suggested_solutions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, List[str]]:
        return {
            "potentialCauses": self.potential_causes,
            "suggestedSolutions": self.suggested_solutions,
        }


@dataclass
class ResourceSuggestion:
    suggested_resources: List[str] = field(default_factory=list)
    reasoning: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "suggestedResources": self.suggested_resources,
            "reasoning": self.reasoning,
        }


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value]


def _require(text: str, what: str) -> str:
    if text is None or not text.strip():
        raise RequestValidationError(f"{what} must not be empty")
    return text.strip()


class AnalysisService:
    """Model-backed troubleshooting calls that do not touch the cluster."""

    def __init__(self, model, temperature: float = DEFAULT_TEMPERATURE):
        self.model = model
        self.temperature = temperature

    async def _ask_json(self, prompt: str, accept: Callable[[Dict[str, Any]], bool], purpose: str) -> Dict[str, Any]:
        text = await self.model.generate(prompt, temperature=self.temperature)
        payload = extract_json(text, accept=lambda p: isinstance(p, dict) and accept(p))
        if payload is None:
            logger.error(f"Failed to parse {purpose} response: {text[:500]}")
            raise ModelResponseError(f"failed to parse {purpose} response", raw_text=text)
        return payload

    async def troubleshoot(self, error_message: str) -> TroubleshootResult:
        """Likely causes and fixes for an error message or event."""
        error_message = _require(error_message, "error message")
        payload = await self._ask_json(
            TROUBLESHOOT_PROMPT.format(error=error_message),
            lambda p: "potentialCauses" in p or "suggestedSolutions" in p,
            "troubleshooting",
        )
        return TroubleshootResult(
            potential_causes=_string_list(payload.get("potentialCauses")),
            suggested_solutions=_string_list(payload.get("suggestedSolutions")),
        )

    async def suggest_resources(self, error_description: str) -> ResourceSuggestion:
        """Resources worth inspecting to diagnose an error."""
        error_description = _require(error_description, "error description")
        payload = await self._ask_json(
            SUGGEST_PROMPT.format(error=error_description),
            lambda p: "suggestedResources" in p,
            "resource suggestion",
        )
        reasoning = payload.get("reasoning")
        return ResourceSuggestion(
            suggested_resources=_string_list(payload.get("suggestedResources")),
            reasoning=reasoning if isinstance(reasoning, str) else "",
        )

    async def summarize(self, resource_data: str) -> str:
        resource_data = _require(resource_data, "resource data")
        payload = await self._ask_json(
            SUMMARIZE_PROMPT.format(data=resource_data),
            lambda p: isinstance(p.get("summary"), str),
            "summary",
        )
        return payload["summary"]
