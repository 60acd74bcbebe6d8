"""Query orchestration: decide, optionally run one tool, then analyze."""

import json
import logging
from typing import Any, Dict, Optional
from dataclasses import dataclass

from kube_sherlock.errors import ModelUnavailableError, RequestValidationError
from kube_sherlock.llm import DEFAULT_TEMPERATURE
from kube_sherlock.parsing import Decision, ResponseParser
from kube_sherlock.tools.catalog import ToolCatalog
from kube_sherlock.tools.executor import ToolExecutor, ToolInvocation

logger = logging.getLogger(__name__)

DECISION_PROMPT = """You are a Kubernetes expert assistant. Answer the user's query, calling one of the available tools when live cluster data is needed.

Query: {query}

Available Tools:
{tools}

Reply with valid JSON only: no explanations, no markdown, no code fences.

When you need cluster data:
{{"action": "use_tool", "tool": "tool_name", "arguments": {{"param": "value"}}}}

When you can answer directly:
{{"action": "answer", "response": "## Markdown answer\\n\\nUse headers, bullet points and **bold** text for readability."}}

Pick the single most useful tool for the query."""

ANALYSIS_PROMPT = """Using the Kubernetes cluster data below, give a complete answer to the user's query.

Format the answer in markdown:
- ## headers for the main sections
- bullet points for lists
- **bold** for important findings
- code blocks for kubectl commands and resource names
- concrete recommendations and next steps

Original Query: {query}

Cluster Data:
{data}

Structure the answer into current state, findings and recommendations."""


@dataclass
class QueryResponse:
    """The single object returned for every query."""
    response: str
    used_tool: bool = False
    tool_used: Optional[str] = None
    raw_data: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"response": self.response, "usedTool": self.used_tool}
        if self.tool_used:
            data["toolUsed"] = self.tool_used
        if self.raw_data:
            data["rawData"] = self.raw_data
        if self.error:
            data["error"] = self.error
        return data


class QueryOrchestrator:
    """Answers free-text cluster questions with at most one tool call.

    The flow is strictly sequential: a decision call to the model, an
    optional tool execution, and an analysis call grounded in the tool
    output. Only an empty query or a failed decision call raise; every
    other problem is reported inside the returned QueryResponse.
    """

    def __init__(self,
                 model,
                 catalog: ToolCatalog,
                 executor: ToolExecutor,
                 parser: Optional[ResponseParser] = None,
                 temperature: float = DEFAULT_TEMPERATURE):
        """Initialize the orchestrator.

        Args:
            model: Object with ``async generate(prompt, temperature) -> str``
            catalog: Tool catalog advertised to the model
            executor: Executor for the tools in the catalog
            parser: Decision parser (default strategy chain when None)
            temperature: Sampling temperature for both model calls
        """
        self.model = model
        self.catalog = catalog
        self.executor = executor
        self.parser = parser or ResponseParser()
        self.temperature = temperature

    def build_decision_prompt(self, query: str) -> str:
        tools = [descriptor.to_dict() for descriptor in self.catalog.list_tools()]
        return DECISION_PROMPT.format(query=query, tools=json.dumps(tools, indent=2))

    def build_analysis_prompt(self, query: str, data: str) -> str:
        return ANALYSIS_PROMPT.format(query=query, data=data)

    async def query(self, text: str) -> QueryResponse:
        """Answer one query.

        Raises:
            RequestValidationError: if the query is empty
            ModelUnavailableError: if the decision call produced nothing
        """
        if text is None or not text.strip():
            raise RequestValidationError("query must not be empty")
        query = text.strip()

        logger.info(f"Processing query: {query}")
        raw = await self.model.generate(self.build_decision_prompt(query), temperature=self.temperature)

        decision = self.parser.parse(raw)
        if not decision.uses_tool:
            return QueryResponse(response=decision.response, used_tool=False)

        return await self._run_tool(query, decision)

    async def _run_tool(self, query: str, decision: Decision) -> QueryResponse:
        outcome = await self.executor.execute(ToolInvocation(decision.tool, dict(decision.arguments)))
        tool_output = outcome.joined_text()

        if outcome.is_error:
            detail = tool_output.strip()
            logger.warning(f"Tool {decision.tool} failed: {detail}")
            return QueryResponse(
                response=f"Error executing tool {decision.tool}: {detail}",
                used_tool=True,
                tool_used=decision.tool,
                error=detail,
            )

        try:
            analysis = await self.model.generate(
                self.build_analysis_prompt(query, tool_output), temperature=self.temperature
            )
        except ModelUnavailableError as e:
            logger.warning(f"Analysis call failed, returning gathered data: {e}")
            return QueryResponse(
                response=f"Gathered data but failed to analyze:\n\n{tool_output}",
                used_tool=True,
                tool_used=decision.tool,
                raw_data=tool_output,
                error=f"analysis failed: {e}",
            )

        return QueryResponse(
            response=analysis,
            used_tool=True,
            tool_used=decision.tool,
            raw_data=tool_output,
        )
