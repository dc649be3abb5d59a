"""Pester mock and test text from resolved references.

Filters are kept as FilterPredicate values until the last moment and only
rendered to PowerShell text here.
"""

__all__ = [
    "FilterPredicate",
    "predicates",
    "unmatched",
    "is_literal",
    "format_value",
    "render_filter",
    "render_mock",
    "render_mocks",
    "render_tests",
]

import re
from dataclasses import dataclass

_NUMBER = re.compile(r"-?\d+(\.\d+)?")
_RAW_PREFIXES = ("$", "(", "@", "{")
_CONSTANTS = ("$true", "$false", "$null")


@dataclass(frozen=True)
class FilterPredicate:
    """Equality test of one parameter inside a -ParameterFilter block."""
    name: str
    value: str

    def render(self) -> str:
        return f"${self.name} -eq {format_value(self.value)}"


def predicates(reference) -> list[FilterPredicate]:
    """Predicates in binding order for values a filter can compare.

    Pipeline input and values only known at run time have none.
    """
    result = []
    for binding in reference.details:
        if binding.externally_bound or not is_literal(binding.value):
            continue
        result.append(FilterPredicate(binding.name, binding.value))
    return result


def unmatched(reference) -> list:
    """Bindings left out of the filter because their value is computed."""
    return [binding for binding in reference.details
            if not binding.externally_bound and not is_literal(binding.value)]


def is_literal(value: str) -> bool:
    """True when value means the same inside a test as at the call site.

    Variables, expressions and script blocks are evaluated in the test's
    own scope, where `$Path -eq $Path` is always true and a script block
    never equals another.
    """
    if value in _CONSTANTS:
        return True
    return not value.startswith(_RAW_PREFIXES) and "$" not in value


def format_value(value: str) -> str:
    """PowerShell text for a value: expressions raw, anything else quoted."""
    if value.startswith(_RAW_PREFIXES) or _NUMBER.fullmatch(value):
        return value
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def render_filter(preds) -> str:
    return " -and ".join(pred.render() for pred in preds)


def render_mock(reference, indent="") -> str:
    """`Mock` statement for one reference."""
    lines = []
    if reference.externally_bound:
        lines.append(f"{indent}# TODO: {reference.command} receives pipeline input, "
                     "complete its parameter filter by hand")
    for binding in unmatched(reference):
        value = " ".join(binding.value.split())
        lines.append(f"{indent}# TODO: -{binding.name} is bound to {value} at run time, "
                     "match it in the filter by hand")
    preds = predicates(reference)
    command = format_value(reference.command)
    if preds:
        lines.append(f"{indent}Mock -CommandName {command} -ParameterFilter {{ {render_filter(preds)} }}")
    else:
        lines.append(f"{indent}Mock -CommandName {command}")
    return "\n".join(lines)


def render_mocks(references, indent="") -> str:
    return "\n".join(render_mock(reference, indent) for reference in references)


def render_tests(analysis) -> str:
    """Pester skeleton asserting every resolved invocation of a function.

    Unresolved invocations are listed as comments so nothing is dropped
    silently.
    """
    function = analysis.function
    lines = [f"Describe {format_value(function)} {{", "    BeforeAll {"]
    if analysis.references:
        lines.append(render_mocks(analysis.references, indent="        "))
    for error in analysis.errors:
        lines.append(f"        # Unresolved: {error}")
    lines.append("    }")
    lines.append("")

    seen = []
    for reference in analysis.references:
        if reference.command.casefold() in seen:
            continue
        seen.append(reference.command.casefold())
        lines.append(f"    It {format_value('calls ' + reference.command)} {{")
        lines.append(f"        {function}")
        for other in analysis.references:
            if other.command.casefold() != reference.command.casefold():
                continue
            assertion = f"        Should -Invoke -CommandName {format_value(other.command)} -Times 1"
            preds = predicates(other)
            if preds:
                assertion += f" -ParameterFilter {{ {render_filter(preds)} }}"
            lines.append(assertion)
        lines.append("    }")
        lines.append("")

    lines.append("}")
    return "\n".join(lines)