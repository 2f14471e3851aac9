"""Template (function_based) step rendered through a locked-down Jinja2 sandbox.

Every filter or function a template references is bound to a proxy that
dispatches through the FunctionRegistry with the step's allow-list. Jinja's
own filters, tests and globals are removed, attribute access is denied and
undefined names are errors, so the whitelist is the only vocabulary a
template has.

Templates can optionally be scoped to a line range: only the lines between a
start and stop pattern are rendered, and everything outside the range is
copied through untouched.
"""

import re
from typing import Any, Callable, Optional

from jinja2 import StrictUndefined, nodes
from jinja2 import TemplateError as JinjaTemplateError
from jinja2.runtime import LoopContext
from jinja2.sandbox import SandboxedEnvironment

from textforge.errors import TemplateError, UnauthorizedFunctionError
from textforge.functions.registry import FunctionRegistry, get_function_registry
from textforge.steps.base import Step
from textforge.steps.schemas import LineRange, TemplateConfig, ValidationResult

PROXY_MARKER = "_textforge_proxy"


class _WhitelistEnvironment(SandboxedEnvironment):
    """Sandbox that only lets registry proxies be called."""

    def is_safe_attribute(self, obj: Any, attr: str, value: Any) -> bool:
        # loop.index, loop.last and friends
        return isinstance(obj, LoopContext) and not attr.startswith("_")

    def is_safe_callable(self, obj: Any) -> bool:
        return getattr(obj, PROXY_MARKER, False)

    def unsafe_undefined(self, obj: Any, attribute: str) -> Any:
        raise UnauthorizedFunctionError(
            attribute,
            f"Attribute '{attribute}' is not accessible from templates",
        )


def _new_environment() -> _WhitelistEnvironment:
    env = _WhitelistEnvironment(
        autoescape=False,
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters = {}
    env.tests = {}
    env.globals = {}
    return env


def extract_function_references(template: nodes.Template) -> list[str]:
    """Collect every function name a parsed template refers to.

    Covers filters (`input | split_lines`), calls (`upcase(input)`) and the
    constant callback name handed to map_values.
    """
    found: list[str] = []

    def add(name: str) -> None:
        if name not in found:
            found.append(name)

    def add_callback(args: list[nodes.Expr], position: int) -> None:
        if len(args) > position and isinstance(args[position], nodes.Const):
            value = args[position].value
            if isinstance(value, str):
                add(value)

    for node in template.find_all((nodes.Filter, nodes.Call)):
        if isinstance(node, nodes.Filter):
            add(node.name)
            if node.name == "map_values":
                add_callback(node.args, 0)
        elif isinstance(node.node, nodes.Name):
            add(node.node.name)
            if node.node.name == "map_values":
                add_callback(node.args, 1)
    return found


class TemplateStep(Step):
    """Render a constrained template over the input."""

    step_type = "function_based"
    config_model = TemplateConfig

    def __init__(
        self,
        template: str,
        allowed_functions: Optional[list[str]] = None,
        line_range: Optional[LineRange] = None,
        function_registry: Optional[FunctionRegistry] = None,
        name: str = "function_based",
        description: str = "Template-driven transformation",
        version: Optional[str] = None,
    ):
        super().__init__(name, description, version)
        self._source = template
        self._allowed = tuple(allowed_functions or ())
        self._line_range = line_range
        self._registry = function_registry or get_function_registry()

        self._environment = _new_environment()
        try:
            parsed = self._environment.parse(template)
        except JinjaTemplateError as e:
            raise TemplateError(
                f"Invalid template syntax: {e}", step=self.name
            ) from e
        self._references = tuple(extract_function_references(parsed))

        for function_name in self._references:
            proxy = self._make_proxy(function_name)
            self._environment.filters[function_name] = proxy
            self._environment.globals[function_name] = proxy

        try:
            self._template = self._environment.from_string(parsed)
        except JinjaTemplateError as e:
            raise TemplateError(
                f"Invalid template syntax: {e}", step=self.name
            ) from e

        self._start = self._stop = None
        if line_range is not None:
            self._start = self._compile_boundary(line_range.start_pattern)
            if line_range.stop_pattern:
                self._stop = self._compile_boundary(line_range.stop_pattern)

    @property
    def template(self) -> str:
        return self._source

    @property
    def allowed_functions(self) -> tuple[str, ...]:
        return self._allowed

    @property
    def line_range(self) -> Optional[LineRange]:
        return self._line_range

    @property
    def function_references(self) -> tuple[str, ...]:
        """Functions the template text actually uses."""
        return self._references

    def _compile_boundary(self, pattern: str) -> re.Pattern:
        try:
            return re.compile(pattern)
        except re.error as e:
            raise TemplateError(
                f"Invalid line range pattern '{pattern}': {e}", step=self.name
            ) from e

    def _make_proxy(self, function_name: str) -> Callable[..., Any]:
        registry = self._registry
        allowed = frozenset(self._allowed)

        def proxy(*args: Any) -> Any:
            return registry.call_function(function_name, *args, allowed=allowed)

        setattr(proxy, PROXY_MARKER, True)
        proxy.__name__ = function_name
        return proxy

    def _render(self, text: str) -> str:
        try:
            return self._template.render(input=text, previous=text)
        except UnauthorizedFunctionError as e:
            e.step = e.step or self.name
            raise
        except Exception as e:
            raise TemplateError(
                f"Template rendering failed: {e}", step=self.name
            ) from e

    def apply(self, input: str) -> str:
        if self._line_range is None:
            return self._render(input)
        return self._apply_to_range(input)

    # ── Line range ──────────────────────────────────────────

    def _locate_range(self, lines: list[str]) -> Optional[tuple[int, Optional[int]]]:
        """Return (start_index, stop_index) of the first range, or None."""
        start: Optional[int] = None
        for index, line in enumerate(lines):
            if start is None:
                if self._start.search(line):
                    start = index
                continue
            if self._stop is not None and self._stop.search(line):
                return start, index
        if start is None:
            return None
        return start, None

    def _apply_to_range(self, input: str) -> str:
        lines = input.split("\n")
        span = self._locate_range(lines)
        if span is None:
            return input

        start, stop = span
        interior_end = stop if stop is not None else len(lines)
        include = self._line_range.include_boundaries

        if include:
            selected = lines[start:interior_end + 1]
        else:
            selected = lines[start + 1:interior_end]

        rendered = self._render("\n".join(selected)).split("\n")
        if include:
            # first rendered line belongs to the start boundary
            rendered = rendered[1:]

        output = lines[:start + 1]
        for offset, original in enumerate(lines[start + 1:interior_end]):
            output.append(rendered[offset] if offset < len(rendered) else original)
        output.extend(lines[interior_end:])
        return "\n".join(output)

    # ── Validation ──────────────────────────────────────────

    def validate_input(self, input: Any) -> ValidationResult:
        result = super().validate_input(input)
        if result.invalid:
            return result

        errors = []
        for function_name in self._allowed:
            if not self._registry.is_whitelisted(function_name):
                errors.append(f"Function '{function_name}' is not whitelisted")

        unauthorized = [f for f in self._references if f not in self._allowed]
        if unauthorized:
            errors.append(
                f"Template contains unauthorized functions: {', '.join(unauthorized)}"
            )

        return ValidationResult(valid=not errors, errors=tuple(errors))

    def metadata(self) -> dict[str, Any]:
        data = super().metadata()
        data["config"] = {
            "allowed_functions": list(self._allowed),
            "function_references": list(self._references),
            "line_range": self._line_range.model_dump() if self._line_range else None,
        }
        return data
