"""
Assistant tool layer.

The ToolRouter exposes schema introspection, the generic query engine and
semantic search as function-calling tools. run_tool_loop drives a chat model
through repeated tool calls until it produces a plain answer.
"""

from dataclasses import dataclass, field
import json
from typing import Any, Callable, Dict, List, Optional

import ollama

from .format import (
    format_entity_type_description,
    format_entity_types_list,
    format_results_for_prompt,
)
from ..core import config
from ..core.privacy import default_projection, get_access_constraints
from ..core.query import QueryEngine, QueryParams
from ..core.registry import SchemaRegistry, default_registry
from ..core.schema import Principal
from ..vector.search import SearchEngine, format_search_results
from ..util.logging import logger, audit_event


class ToolError(Exception):
    """A tool call that failed validation or was refused."""


class ToolRouter:
    """
    Router for the assistant's tools.

    Every call is checked against the tool's parameter schema and runs on
    behalf of a principal, so privacy rules apply exactly as they do for
    direct callers.
    """

    def __init__(self, query_engine: QueryEngine, search_engine: SearchEngine, registry: SchemaRegistry = None):
        self.query_engine = query_engine
        self.search_engine = search_engine
        self.registry = registry or default_registry
        self.tools: Dict[str, Dict[str, Any]] = {}
        self._register_tools()

    def _register_tools(self):
        self.tools = {
            "list_entity_types": {
                "function": self._list_entity_types,
                "description": "List the data models you can query",
                "parameters": {"type": "object", "properties": {}, "required": []},
            },
            "describe_entity_type": {
                "function": self._describe_entity_type,
                "description": "Show the fields available on a data model",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "entity_type": {"type": "string", "description": "Data model name, e.g. Activity"},
                    },
                    "required": ["entity_type"],
                },
            },
            "query": {
                "function": self._query,
                "description": "Fetch records of a data model with filters, field selection and sorting",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "entity_type": {"type": "string", "description": "Data model name"},
                        "filter": {"type": "object", "description": "Field filters, e.g. {\"category\": \"Sports\"}"},
                        "fields": {"type": "array", "items": {"type": "string"}, "description": "Fields to return"},
                        "limit": {"type": "integer", "description": f"Maximum rows (up to {config.QUERY_MAX_LIMIT})"},
                        "order_by": {
                            "type": "object",
                            "description": "Sort as {\"field\": ..., \"direction\": \"asc\"|\"desc\"}",
                        },
                    },
                    "required": ["entity_type"],
                },
            },
            "semantic_search": {
                "function": self._semantic_search,
                "description": "Find records related to a free-text question",
                "parameters": {
                    "type": "object",
                    "properties": {
                        "query": {"type": "string", "description": "What to look for"},
                        "entity_types": {"type": "array", "items": {"type": "string"},
                                         "description": "Optional data models to restrict the search to"},
                        "top_k": {"type": "integer", "description": f"Maximum results (up to {config.SEARCH_MAX_TOP_K})"},
                    },
                    "required": ["query"],
                },
            },
        }

    def tool_definitions(self) -> List[Dict[str, Any]]:
        """Tool list in function-calling schema form."""
        return [
            {
                "type": "function",
                "function": {
                    "name": name,
                    "description": tool["description"],
                    "parameters": tool["parameters"],
                },
            }
            for name, tool in self.tools.items()
        ]

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]], principal: Principal) -> Dict[str, Any]:
        """
        Execute a tool for a principal.

        Returns:
            {"tool", "success", "data" | "error", "text"}; never raises
        """
        arguments = arguments or {}

        if name not in self.tools:
            result = self._failure(name, f"Unknown tool: {name}")
        else:
            try:
                self._validate_arguments(name, arguments)
                data, text = self.tools[name]["function"](principal=principal, **arguments)
                result = {"tool": name, "success": True, "data": data, "text": text}
            except ToolError as e:
                result = self._failure(name, str(e))
            except Exception as e:
                logger.error(f"Tool {name} failed: {e}")
                result = self._failure(name, str(e) or "Tool execution failed")

        audit_event(
            event_type="assistant.tool_call",
            identifiers={"tool": name, "principal_id": principal.id},
            payload={"arguments": arguments, "success": result["success"]},
        )
        return result

    def _failure(self, name: str, error: str) -> Dict[str, Any]:
        return {"tool": name, "success": False, "error": error, "text": f"Error: {error}"}

    def _validate_arguments(self, name: str, arguments: Dict[str, Any]):
        schema = self.tools[name]["parameters"]
        missing = [p for p in schema["required"] if arguments.get(p) in (None, "")]
        if missing:
            raise ToolError(f"Missing required parameter(s) for {name}: {', '.join(missing)}")
        unknown = [p for p in arguments if p not in schema["properties"]]
        if unknown:
            raise ToolError(f"Unknown parameter(s) for {name}: {', '.join(unknown)}")

    # Tool implementations

    def _list_entity_types(self, principal: Principal):
        names = [
            name for name in self.registry.list_entity_types()
            if get_access_constraints(principal, name).allowed
        ]
        return names, format_entity_types_list(names)

    def _describe_entity_type(self, principal: Principal, entity_type: str):
        description = self.registry.describe_entity_type(entity_type)
        if not description:
            raise ToolError(f"Entity type '{entity_type}' not found")

        constraints = get_access_constraints(principal, entity_type)
        if not constraints.allowed:
            raise ToolError(constraints.error_message or "Access denied")

        fields = default_projection(entity_type, self.registry)
        data = {
            "name": description.name,
            "description": description.description,
            "fields": fields,
            "relations": description.relations,
        }
        return data, format_entity_type_description(entity_type, fields)

    def _query(self, principal: Principal, entity_type: str, filter=None, fields=None, limit=None, order_by=None):
        params = QueryParams(entity_type=entity_type, filter=filter, fields=fields, limit=limit, order_by=order_by)
        result = self.query_engine.query(params, principal)
        if not result.success:
            raise ToolError(result.error or "Query failed")
        return result.data, format_results_for_prompt(result.data, entity_type)

    def _semantic_search(self, principal: Principal, query: str, entity_types=None, top_k=None):
        top_k = config.SEARCH_DEFAULT_TOP_K if top_k is None else int(top_k)
        if top_k < 1:
            raise ToolError("top_k must be a positive integer")
        top_k = min(top_k, config.SEARCH_MAX_TOP_K)
        result = self.search_engine.search(query, principal, entity_types=entity_types, top_k=top_k)
        return result.to_dict(), format_search_results(result.matches)


@dataclass
class ToolLoopResult:
    content: str
    rounds: int
    completed: bool
    messages: List[Dict[str, Any]] = field(default_factory=list)
    tool_results: List[Dict[str, Any]] = field(default_factory=list)


class OllamaChatClient:
    """Chat client for a local Ollama model with tool calling."""

    def __init__(self, model_name: str = config.OLLAMA_MODEL, options: Optional[Dict[str, Any]] = None,
                 chat_fn: Callable[..., Any] = None):
        self.model_name = model_name
        self.options = options or {'temperature': 0.2}
        self._chat = chat_fn or ollama.chat

    def chat(self, messages: List[Dict[str, Any]], tools: Optional[List[Dict[str, Any]]] = None) -> Dict[str, Any]:
        """Send the conversation and return the reply as a plain message dict."""
        response = self._chat(
            model=self.model_name,
            messages=messages,
            tools=tools,
            options=self.options,
        )
        message = response.get('message', {}) or {}

        tool_calls = []
        for call in message.get('tool_calls') or []:
            function = call['function']
            tool_calls.append({
                'function': {'name': function['name'], 'arguments': function['arguments'] or {}}
            })

        return {
            'role': 'assistant',
            'content': message.get('content') or '',
            'tool_calls': tool_calls,
        }


def _parse_arguments(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, dict):
        return dict(raw)
    if not raw:
        return {}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {}
    return parsed if isinstance(parsed, dict) else {}


def run_tool_loop(llm, messages: List[Dict[str, Any]], principal: Principal, router: ToolRouter,
                  max_rounds: int = config.ASSISTANT_MAX_ROUNDS) -> ToolLoopResult:
    """
    Let the model call tools until it answers in plain text.

    Args:
        llm: Object with chat(messages, tools) returning a message dict
        messages: Conversation so far; extended in place with replies and tool results
        principal: Caller the tools run for
        router: Tool router
        max_rounds: Maximum model calls

    Returns:
        ToolLoopResult; completed is False when max_rounds ran out with tool calls pending
    """
    tools = router.tool_definitions()
    tool_results: List[Dict[str, Any]] = []
    content = ""

    for round_number in range(1, max_rounds + 1):
        reply = llm.chat(messages, tools=tools)
        messages.append(reply)
        content = reply.get("content") or ""

        calls = reply.get("tool_calls") or []
        if not calls:
            return ToolLoopResult(content=content, rounds=round_number, completed=True,
                                  messages=messages, tool_results=tool_results)

        for call in calls:
            function = call.get("function", {})
            name = function.get("name", "")
            result = router.call_tool(name, _parse_arguments(function.get("arguments")), principal)
            tool_results.append(result)
            messages.append({"role": "tool", "tool_name": name, "content": result["text"]})

    logger.log_operation("assistant.tool_loop", "skipped", {"reason": "max rounds reached", "rounds": max_rounds})
    return ToolLoopResult(content=content, rounds=max_rounds, completed=False,
                          messages=messages, tool_results=tool_results)
