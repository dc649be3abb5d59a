"""Invocation discovery and function level analysis.

`find` walks one function and yields a ResolvedReference or a
ResolutionError for every command invocation in it. `analyze` collects
that stream into two lists and `analyze_batch` runs it over many functions,
optionally on a thread pool sharing one metadata cache.
"""

__all__ = [
    "Invocation",
    "ResolvedReference",
    "FunctionAnalysis",
    "BatchPolicy",
    "BatchResult",
    "COLLECT_ALL",
    "ABORT_ON_FIRST",
    "find",
    "analyze",
    "analyze_batch",
]

import concurrent.futures
import logging
from dataclasses import dataclass, field

import psmock

from ._config import PSEUDO_KEYS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Invocation:
    """One command invocation site inside an analyzed function.

    Attributes:
        parent: Name of the analyzed function
        command: Invoked command name, None when computed at run time
        arguments: RawArgument tuple in source order
        piped: True for the right hand side of a pipe
        position: SourcePosition of the command
        node: The Command node
        scope: Innermost Scope around the command
    """
    parent: str | None
    command: str | None
    arguments: tuple = ()
    piped: bool = False
    position: object = None
    node: object = field(default=None, compare=False, repr=False)
    scope: object = field(default=None, compare=False, repr=False)

    @classmethod
    def from_command(cls, command, parent=None, scope=None, pseudo_keys=PSEUDO_KEYS,
                     lookup=None):
        """Invocation of a Command node, arguments paired with `raw_arguments`."""
        return cls(
            parent=parent,
            command=command.name,
            arguments=tuple(psmock.raw_arguments(command, pseudo_keys, lookup)),
            piped=command.piped,
            position=command.position,
            node=command,
            scope=scope,
        )


@dataclass(frozen=True)
class ResolvedReference:
    """Bindings of one invocation, ready for mock generation.

    `bindings` maps parameter names to value text in the order they were
    supplied; consumers must not re-sort it. `details` keeps the merged
    ParameterBinding objects in the same order.
    """
    parent: str | None
    command: str
    bindings: dict
    position: object = None
    details: tuple = ()

    @property
    def externally_bound(self) -> bool:
        return any(binding.externally_bound for binding in self.details)


@dataclass
class FunctionAnalysis:
    """References and per-invocation errors found in one function."""
    function: str
    references: list = field(default_factory=list)
    errors: list = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


def find(tree, function_name, provider=None, config=None):
    """Resolve every invocation in a function, lazily.

    Args:
        tree: Parsed Script
        function_name: Function to analyze, case-insensitive
        provider: MetadataProvider or lookup callable; defaults to the
            script's own functions followed by the configured metadata
        config: AnalysisConfig

    Returns:
        Iterator of ResolvedReference and ResolutionError in document order

    Raises:
        psmock.NotFound: The script defines no such function
        psmock.Opaque: The name is a known command without a body here
    """
    config = config or psmock.AnalysisConfig()
    if provider is None:
        provider = psmock.default_provider(tree, config)
    provider = psmock.CachingMetadataProvider(provider)
    func = _locate(tree, function_name, provider)
    return _walk_function(tree, func, provider, config)


def analyze(tree, function_name, provider=None, config=None):
    """Collect `find` into a FunctionAnalysis."""
    return _collect(function_name, find(tree, function_name, provider, config))


class BatchPolicy:
    """Decides whether a batch continues after a failed function.

    Args:
        name: Label for logging
        abort: Raise BatchAborted at the first failure instead of
            collecting it
    """

    def __init__(self, name, abort=False):
        self.name = name
        self.abort = abort

    def __repr__(self):
        return f"BatchPolicy({self.name})"

    def check(self, function, outcome):
        """Raise BatchAborted when outcome is a failure and policy aborts."""
        if not self.abort:
            return
        if isinstance(outcome, psmock.AnalysisError):
            raise psmock.BatchAborted(function, outcome)
        if isinstance(outcome, FunctionAnalysis) and outcome.errors:
            raise psmock.BatchAborted(function, outcome.errors[0])


COLLECT_ALL = BatchPolicy("collect-all")
ABORT_ON_FIRST = BatchPolicy("abort-on-first", abort=True)


@dataclass
class BatchResult:
    """Outcome of a batch: analyses and function level failures by name."""
    analyses: dict = field(default_factory=dict)
    failures: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures and all(a.ok for a in self.analyses.values())

    def __iter__(self):
        return iter(self.analyses.values())

    def __len__(self):
        return len(self.analyses) + len(self.failures)


def analyze_batch(tree, names=None, provider=None, config=None, policy=None,
                  max_workers=None):
    """Analyze several functions of one script.

    Args:
        tree: Parsed Script
        names: Functions to analyze, defaults to every function defined
        provider: Shared MetadataProvider, cached once for the batch
        config: AnalysisConfig
        policy: BatchPolicy, defaults from `config.abort_on_error`
        max_workers: Thread count, defaults to `config.max_workers`

    Raises:
        psmock.BatchAborted: The policy aborts and a function failed
    """
    config = config or psmock.AnalysisConfig()
    if names is None:
        names = []
        for func in tree.functions():
            if func.name.casefold() not in (n.casefold() for n in names):
                names.append(func.name)
    if policy is None:
        policy = ABORT_ON_FIRST if config.abort_on_error else COLLECT_ALL
    if max_workers is None:
        max_workers = config.max_workers
    if provider is None:
        provider = psmock.default_provider(tree, config)
    provider = psmock.CachingMetadataProvider(provider)

    def run(name):
        try:
            func = _locate(tree, name, provider)
        except psmock.AnalysisError as e:
            return e
        return _collect(name, _walk_function(tree, func, provider, config))

    if max_workers and max_workers > 1:
        with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
            outcomes = list(executor.map(run, names))
    else:
        outcomes = map(run, names)

    result = BatchResult()
    for name, outcome in zip(names, outcomes):
        policy.check(name, outcome)
        if isinstance(outcome, psmock.AnalysisError):
            result.failures[name] = outcome
        else:
            result.analyses[name] = outcome

    logger.info(
        "Analyzed %d functions: %d references, %d invocation errors, %d failures, "
        "%d signature lookups",
        len(result.analyses),
        sum(len(a.references) for a in result.analyses.values()),
        sum(len(a.errors) for a in result.analyses.values()),
        len(result.failures),
        provider.misses,
    )
    return result


def _locate(tree, function_name, provider):
    func = tree.function(function_name)
    if func is not None:
        return func
    if provider(function_name) is not None:
        raise psmock.Opaque(f"{function_name} is a command without an inspectable body",
                            function_name)
    raise psmock.NotFound(f"No function named {function_name}", function_name)


def _collect(function_name, items):
    analysis = FunctionAnalysis(function_name)
    for item in items:
        if isinstance(item, psmock.ResolutionError):
            analysis.errors.append(item)
        else:
            analysis.references.append(item)
    return analysis


def _walk_function(tree, func, provider, config):
    scope = psmock.Scope.enclosing(tree, func)
    if scope is None:
        scope = psmock.Scope(func)
    logger.debug("Analyzing %s at %s", func.name, func.position)
    yield from _walk(func.body, scope, func.name, provider, config)


def _walk(node, scope, parent, provider, config):
    """Preorder traversal tracking the lexical scope."""
    if isinstance(node, psmock.ast.Command):
        yield _resolve_command(node, scope, parent, provider, config)
    for kid in node.kids:
        if isinstance(kid, psmock.SCOPE_NODES):
            yield from _walk(kid, scope.child(kid), parent, provider, config)
        else:
            yield from _walk(kid, scope, parent, provider, config)


def _resolve_command(command, scope, parent, provider, config):
    invocation = Invocation.from_command(command, parent, scope, config.pseudo_keys, provider)
    logger.debug("Invocation of %s at %s with %d arguments",
                 invocation.command or "<dynamic>", invocation.position,
                 len(invocation.arguments))
    if invocation.command is None:
        error = psmock.UnresolvedCommandName(
            f"Command name {_name_text(command)!r} is computed at run time",
            invocation.position)
        logger.info("%s", error)
        return error
    try:
        bindings = psmock.resolve_bindings(invocation, provider, scope, config)
    except psmock.ResolutionError as e:
        logger.info("%s", e)
        return e
    merged = psmock.merge_bindings(bindings)
    return ResolvedReference(
        parent=parent,
        command=invocation.command,
        bindings={name: binding.value for name, binding in merged.items()},
        position=invocation.position,
        details=tuple(merged.values()),
    )


def _name_text(command):
    if command.name_node is not None:
        return command.name_node.text
    return command.text
