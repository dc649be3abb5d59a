"""Parameter binding resolution for a single invocation"""

__all__ = [
    "ParameterBinding",
    "resolve_bindings",
    "merge_bindings",
    "resolve",
    "EXTERNALLY_BOUND",
    "PIPELINE_INPUT",
    "PIPELINE",
]

import logging
from dataclasses import dataclass

import psmock

from ._binding import NAME, POSITION, SPLAT, classify, strip_quotes
from ._splat import resolve_splat

logger = logging.getLogger(__name__)

# Name and value recorded for a piped invocation without explicit arguments
EXTERNALLY_BOUND = "<pipeline>"
PIPELINE_INPUT = "$input"

# Binding kind of the pipeline sentinel
PIPELINE = "pipeline"


@dataclass(frozen=True)
class ParameterBinding:
    """A parameter name paired with the literal text bound to it.

    Attributes:
        name: Declared parameter name, or the name as written
        value: Argument text with surrounding quotes removed
        kind: How the name was found: "name", "position", "splat" or
            "pipeline"
        position: Source position of the argument, when there is one
    """
    name: str
    value: str
    kind: str = NAME
    position: object = None

    @property
    def externally_bound(self) -> bool:
        return self.kind == PIPELINE


def resolve_bindings(invocation, lookup, scope=None, config=None):
    """Name every argument of an invocation.

    Args:
        invocation: Invocation, or a Command node
        lookup: Callable returning a CommandSignature or None for a name,
            called at most once, and only when the invocation has
            positional arguments or a parameter followed by a value
        scope: Innermost Scope around the invocation, needed for splats
        config: AnalysisConfig, defaults apply when omitted

    Returns:
        Bindings in argument order, explicit arguments before splatted
        entries; the list may name a parameter more than once

    Raises:
        psmock.ResolutionError: Subclass describing the first argument
            that cannot be named
    """
    config = config or psmock.AnalysisConfig()
    if not isinstance(lookup, psmock.CachingMetadataProvider):
        lookup = psmock.CachingMetadataProvider(lookup)
    if isinstance(invocation, psmock.ast.Command):
        invocation = psmock.Invocation.from_command(
            invocation, scope=scope, pseudo_keys=config.pseudo_keys, lookup=lookup)
    if scope is None:
        scope = invocation.scope

    if invocation.piped and not invocation.arguments:
        return [ParameterBinding(EXTERNALLY_BOUND, PIPELINE_INPUT, PIPELINE, invocation.position)]

    command = invocation.command
    explicit = []
    splatted = []
    signature = None
    looked_up = False
    for raw in invocation.arguments:
        match classify(raw):
            case psmock.NAME:
                explicit.append(ParameterBinding(strip_quotes(raw.name), raw.text, NAME, raw.position))

            case psmock.POSITION:
                if command is None:
                    raise psmock.UnresolvedCommandName(
                        "Positional argument to a command whose name is computed at run time",
                        invocation.position)
                if not looked_up:
                    signature = lookup(command)
                    looked_up = True
                if signature is None:
                    raise psmock.MissingSignature(
                        f"No signature available to name positional argument {raw.text!r}",
                        invocation.position, command)
                param = signature.positional(raw.ordinal)
                if param is None:
                    raise psmock.UnknownPosition(
                        f"{command} declares no parameter at position {raw.ordinal}",
                        invocation.position, command)
                explicit.append(ParameterBinding(param.name, raw.text, POSITION, raw.position))

            case psmock.SPLAT:
                if scope is None:
                    raise psmock.MissingSplatSource(
                        f"No scope to resolve @{raw.value.name} in",
                        invocation.position, command)
                try:
                    entries = resolve_splat(raw.value, scope, before=invocation.position.start_offset,
                                            policy=config.splat_policy)
                except psmock.ResolutionError as e:
                    raise e.located(invocation.position, command) from e
                splatted.extend(ParameterBinding(key, value, SPLAT, raw.position)
                                for key, value in entries)

            case kind:
                raise ValueError(f"Unhandled binding kind: {kind}")

    return explicit + splatted


def merge_bindings(bindings):
    """Collapse bindings to one value per parameter name.

    Names compare case-insensitively. The first spelling and position of a
    name are kept, the last value wins.

    Returns:
        dict of parameter name to ParameterBinding, in first-seen order
    """
    merged = {}
    spelling = {}
    for binding in bindings:
        folded = binding.name.casefold()
        if folded not in spelling:
            spelling[folded] = binding
            merged[binding.name] = binding
            continue
        first = spelling[folded]
        merged[first.name] = ParameterBinding(first.name, binding.value, binding.kind, first.position)
    return merged


def resolve(invocation, lookup, scope=None, config=None):
    """Resolve and merge, mapping parameter names to their value text."""
    merged = merge_bindings(resolve_bindings(invocation, lookup, scope, config))
    return {name: binding.value for name, binding in merged.items()}
