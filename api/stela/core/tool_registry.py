"""Global tool registry — tool descriptors, endpoint resolution, schema projection."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote


class ToolArgumentError(ValueError):
    """Raised when model-supplied arguments lack a required parameter."""

    def __init__(self, tool_name: str, missing: list[str]) -> None:
        self.tool_name = tool_name
        self.missing = missing
        super().__init__(
            f"Missing required parameter(s) for {tool_name}: {', '.join(missing)}"
        )


@dataclass(frozen=True)
class ToolParameter:
    name: str
    type: str
    description: str
    required: bool = True


# ── Endpoints ─────────────────────────────────────────────

@dataclass(frozen=True)
class StaticEndpoint:
    """A fixed backend path."""

    path: str

    def resolve(self, args: Mapping[str, Any]) -> str:
        return self.path


@dataclass(frozen=True)
class TemplatedEndpoint:
    """A backend path computed from the tool arguments by a pure function."""

    build: Callable[[Mapping[str, Any]], str]

    def resolve(self, args: Mapping[str, Any]) -> str:
        return self.build(args)


Endpoint = StaticEndpoint | TemplatedEndpoint


def path_template(template: str) -> TemplatedEndpoint:
    """Build a templated endpoint from a ``str.format`` style path.

    Every placeholder is filled with the URL-quoted argument value, so a
    model-supplied value can only ever occupy a single path segment.
    """

    def _build(args: Mapping[str, Any]) -> str:
        quoted = {k: quote(str(v), safe="") for k, v in args.items()}
        return template.format_map(quoted)

    return TemplatedEndpoint(build=_build)


# ── Descriptors ───────────────────────────────────────────

@dataclass(frozen=True)
class ResolvedRequest:
    method: str
    path: str
    body: dict[str, Any] | None = None


@dataclass(frozen=True)
class ToolDescriptor:
    name: str
    description: str
    endpoint: Endpoint
    parameters: tuple[ToolParameter, ...] = ()
    method: str = "GET"
    default_body: Mapping[str, Any] = field(default_factory=dict)

    def required_names(self) -> list[str]:
        return [p.name for p in self.parameters if p.required]

    def missing_arguments(self, args: Mapping[str, Any]) -> list[str]:
        return [n for n in self.required_names() if args.get(n) in (None, "")]

    def build_request(self, args: Mapping[str, Any]) -> ResolvedRequest:
        """Validate *args* and compute the concrete backend request.

        For POST the default body is merged under the arguments, so the
        caller's values win on key collisions.
        """
        missing = self.missing_arguments(args)
        if missing:
            raise ToolArgumentError(self.name, missing)

        path = self.endpoint.resolve(args)
        body = None
        if self.method == "POST":
            body = {**self.default_body, **args}
        return ResolvedRequest(method=self.method, path=path, body=body)

    def to_schema(self) -> dict[str, Any]:
        """Project the descriptor to the completion service's tool format."""
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": {
                "type": "object",
                "properties": {
                    p.name: {"type": p.type, "description": p.description}
                    for p in self.parameters
                },
                "required": self.required_names(),
            },
        }


# ── Registry ──────────────────────────────────────────────

class ToolRegistry:
    """Simple in-process tool registry, read-only once populated."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDescriptor] = {}

    def register(self, descriptor: ToolDescriptor) -> None:
        if descriptor.name in self._tools:
            raise ValueError(f"Tool '{descriptor.name}' is already registered")
        self._tools[descriptor.name] = descriptor

    def describe_all(self) -> list[ToolDescriptor]:
        return list(self._tools.values())

    def resolve(self, name: str) -> ToolDescriptor | None:
        return self._tools.get(name)

    def names(self) -> list[str]:
        return list(self._tools)

    def schemas(self) -> list[dict[str, Any]]:
        return [t.to_schema() for t in self._tools.values()]

    def schema(self, name: str) -> dict[str, Any] | None:
        entry = self._tools.get(name)
        if entry is None:
            return None
        return entry.to_schema()

    def list_tools(self) -> list[dict[str, str]]:
        return [
            {"name": t.name, "method": t.method, "description": t.description}
            for t in self._tools.values()
        ]

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools


# Global singleton
registry = ToolRegistry()
