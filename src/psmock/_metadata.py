"""Command signature lookup.

Positional arguments can only be named with the declared signature of the
invoked command. Providers answer `lookup(name)` with a CommandSignature, or
None when the command is unavailable. Providers never execute anything: the
signatures come from JSON snapshots or from function definitions in the
analyzed script itself.
"""

__all__ = [
    "ParameterDescriptor",
    "ParameterSet",
    "CommandSignature",
    "MetadataProvider",
    "StaticMetadataProvider",
    "ScriptMetadataProvider",
    "ChainMetadataProvider",
    "CachingMetadataProvider",
    "builtin_provider",
    "default_provider",
    "signature_from_function",
]

import json
import logging
import pathlib
import threading
from dataclasses import dataclass

import psmock

logger = logging.getLogger(__name__)

ALL_SETS = "__AllParameterSets"

_builtin: "StaticMetadataProvider | None" = None
_builtin_lock = threading.Lock()

_PARAMETER_ATTRIBUTES = {"parameter", "system.management.automation.parameter"}
_ALIAS_ATTRIBUTES = {"alias", "system.management.automation.alias"}
_SWITCH_TYPES = {"switch", "switchparameter", "system.management.automation.switchparameter"}


@dataclass(frozen=True)
class ParameterDescriptor:
    """Declared parameter of a command.

    `position` is None for parameters that can only be bound by name.
    """
    name: str
    aliases: tuple[str, ...] = ()
    position: int | None = None
    mandatory: bool = False
    switch: bool = False

    def matches(self, name: str) -> bool:
        """True when name is the parameter name or an alias, ignoring case."""
        folded = name.casefold()
        return folded == self.name.casefold() or any(
            folded == alias.casefold() for alias in self.aliases)


@dataclass(frozen=True)
class ParameterSet:
    name: str
    parameters: tuple[ParameterDescriptor, ...] = ()


@dataclass(frozen=True)
class CommandSignature:
    """Parameter sets of one command, in declaration order."""
    name: str
    parameter_sets: tuple[ParameterSet, ...] = ()

    def positional(self, ordinal: int) -> ParameterDescriptor | None:
        """First parameter declared at ordinal, scanning sets in order."""
        for parameter_set in self.parameter_sets:
            for param in parameter_set.parameters:
                if param.position == ordinal:
                    return param
        return None

    def parameter(self, name: str) -> ParameterDescriptor | None:
        """Parameter by name or alias, case-insensitive."""
        for parameter_set in self.parameter_sets:
            for param in parameter_set.parameters:
                if param.matches(name):
                    return param
        return None

    @property
    def parameter_names(self) -> list[str]:
        names = []
        for parameter_set in self.parameter_sets:
            for param in parameter_set.parameters:
                if param.name not in names:
                    names.append(param.name)
        return names


class MetadataProvider:
    """Base class for command signature sources.

    Subclasses implement `lookup`. Providers are also callable, so any of
    them can be passed where a plain lookup function is expected.
    """

    def lookup(self, name: str) -> CommandSignature | None:
        raise NotImplementedError(f"{self.__class__.__name__}.lookup() not implemented")

    def __call__(self, name: str) -> CommandSignature | None:
        return self.lookup(name)

    def __contains__(self, name: str) -> bool:
        return self.lookup(name) is not None


class StaticMetadataProvider(MetadataProvider):
    """Fixed table of signatures keyed by case-folded command name.

    `aliases` maps alternative command names such as `?` to the name of
    a signature in the table.
    """

    def __init__(self, signatures=(), aliases=None):
        self._signatures = {}
        for signature in signatures:
            self._signatures[signature.name.casefold()] = signature
        self._aliases = {}
        for alias, name in (aliases or {}).items():
            self._aliases[alias.casefold()] = name.casefold()

    def lookup(self, name):
        key = name.casefold()
        return self._signatures.get(self._aliases.get(key, key))

    def __len__(self):
        return len(self._signatures)

    def __repr__(self):
        return f"StaticMetadataProvider(*{len(self._signatures)})"

    @classmethod
    def from_data(cls, data):
        """Build from decoded JSON.

        Accepts a mapping of command name to description, or a list of
        descriptions each carrying a "name" key. A description has either
        "parameterSets" (list of {"name", "parameters"}) or a flat
        "parameters" list for a single set, and optionally "aliases", the
        other names the command is invoked by.

        Raises:
            ValueError: If the document does not have that shape
        """
        if isinstance(data, dict):
            items = [(name, desc) for name, desc in data.items()]
        elif isinstance(data, list):
            items = []
            for desc in data:
                if not isinstance(desc, dict) or "name" not in desc:
                    raise ValueError(f"Command description without a name: {desc!r}")
                items.append((desc["name"], desc))
        else:
            raise ValueError(f"Expected a JSON object or list, got {type(data).__name__}")
        signatures = [_signature_from_data(name, desc) for name, desc in items]
        aliases = {}
        for name, desc in items:
            for alias in desc.get("aliases", ()):
                if not isinstance(alias, str):
                    raise ValueError(f"Alias of {name} must be a string, got {alias!r}")
                aliases[alias] = name
        return cls(signatures, aliases)

    @classmethod
    def from_json(cls, path):
        """Load signatures from a JSON file.

        Raises:
            ValueError: If the file cannot be read or has the wrong shape
        """
        path = pathlib.Path(path)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except OSError as e:
            raise ValueError(f"Cannot read metadata file {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in metadata file {path}: {e}") from e
        provider = cls.from_data(data)
        logger.debug("Loaded %d command signatures from %s", len(provider), path)
        return provider


class ScriptMetadataProvider(MetadataProvider):
    """Signatures of the functions defined in a parsed script.

    When a script defines the same function more than once, the last
    definition wins, as it would when the script runs.
    """

    def __init__(self, script):
        self._signatures = {}
        for func in script.functions():
            self._signatures[func.name.casefold()] = signature_from_function(func)

    def lookup(self, name):
        return self._signatures.get(name.casefold())

    def __repr__(self):
        return f"ScriptMetadataProvider(*{len(self._signatures)})"


class ChainMetadataProvider(MetadataProvider):
    """First answer from a sequence of providers."""

    def __init__(self, *providers):
        self.providers = list(providers)

    def lookup(self, name):
        for provider in self.providers:
            signature = provider(name)
            if signature is not None:
                return signature
        return None

    def __repr__(self):
        return f"ChainMetadataProvider({', '.join(map(repr, self.providers))})"


class CachingMetadataProvider(MetadataProvider):
    """Memoize another provider per case-folded name.

    Unavailable answers are cached too. The cache is shared safely between
    threads; the wrapped provider is called at most once per name.
    """

    def __init__(self, provider):
        self.provider = provider
        self._cache = {}
        self._lock = threading.Lock()
        self.misses = 0

    def lookup(self, name):
        key = name.casefold()
        with self._lock:
            if key in self._cache:
                return self._cache[key]
            self.misses += 1
            signature = self.provider(name)
            self._cache[key] = signature
        logger.debug("Metadata for %s: %s", name, "found" if signature else "unavailable")
        return signature

    def __repr__(self):
        return f"CachingMetadataProvider({self.provider!r})"


def builtin_provider():
    """Snapshot of common built-in cmdlet signatures shipped with psmock."""
    global _builtin
    with _builtin_lock:
        if _builtin is None:
            path = pathlib.Path(__file__).parent / "data" / "cmdlets.json"
            _builtin = StaticMetadataProvider.from_json(path)
    return _builtin


def default_provider(script=None, config=None):
    """Provider chain: script functions, user metadata file, builtin snapshot.

    Raises:
        ValueError: If the configured metadata file cannot be used
    """
    config = config or psmock.AnalysisConfig()
    providers = []
    if script is not None:
        providers.append(ScriptMetadataProvider(script))
    if config.metadata_path:
        providers.append(StaticMetadataProvider.from_json(config.metadata_path))
    if config.builtin_metadata:
        providers.append(builtin_provider())
    return ChainMetadataProvider(*providers)


def _signature_from_data(name, desc):
    if not isinstance(desc, dict):
        raise ValueError(f"Description of {name} must be an object")
    sets = desc.get("parameterSets")
    if sets is None:
        sets = [{"name": ALL_SETS, "parameters": desc.get("parameters", [])}]
    parameter_sets = []
    for entry in sets:
        params = tuple(_descriptor_from_data(name, param) for param in entry.get("parameters", []))
        parameter_sets.append(ParameterSet(entry.get("name", ALL_SETS), params))
    return CommandSignature(name, tuple(parameter_sets))


def _descriptor_from_data(command, param):
    if not isinstance(param, dict) or "name" not in param:
        raise ValueError(f"Parameter of {command} without a name: {param!r}")
    position = param.get("position")
    if position is not None and not isinstance(position, int):
        raise ValueError(f"Position of {command} -{param['name']} must be an integer")
    return ParameterDescriptor(
        name=param["name"],
        aliases=tuple(param.get("aliases", ())),
        position=position,
        mandatory=bool(param.get("mandatory", False)),
        switch=bool(param.get("switch", False)),
    )


def signature_from_function(func):
    """Derive a CommandSignature from a function definition.

    Reads `[Parameter()]` position, mandatory flag and set name, `[Alias()]`
    and `[switch]` types. When no parameter declares a position, every
    non-switch parameter is positional in declaration order unless
    `[CmdletBinding(PositionalBinding=$false)]` says otherwise.
    """
    positional_binding = True
    for attr in func.attributes:
        if attr.name.casefold() == "cmdletbinding":
            arg = attr.named("PositionalBinding")
            if arg is not None and arg.value is not None and not _literal_bool(arg.value):
                positional_binding = False

    declared = []
    for param in func.parameters:
        switch = any(t.casefold() in _SWITCH_TYPES for t in param.types)
        aliases = []
        entries = []
        for attr in param.attributes:
            kind = attr.name.casefold()
            if kind in _ALIAS_ATTRIBUTES:
                aliases.extend(_literal_strings(attr.positional))
            elif kind in _PARAMETER_ATTRIBUTES:
                entries.append(_parameter_entry(func.name, param.name, attr))
        if not entries:
            entries.append((None, False, None))
        declared.append((param.name, tuple(aliases), switch, entries))

    any_position = any(pos is not None
                       for _, _, _, entries in declared
                       for pos, _, _ in entries)
    implicit = {}
    if not any_position and positional_binding:
        ordinal = 0
        for name, _, switch, _ in declared:
            if not switch:
                implicit[name] = ordinal
                ordinal += 1

    set_names = []
    for _, _, _, entries in declared:
        for _, _, set_name in entries:
            if set_name and set_name != ALL_SETS and set_name not in set_names:
                set_names.append(set_name)
    if not set_names:
        set_names = [ALL_SETS]

    members = {set_name: [] for set_name in set_names}
    for name, aliases, switch, entries in declared:
        for position, mandatory, set_name in entries:
            descriptor = ParameterDescriptor(
                name=name,
                aliases=aliases,
                position=position if position is not None else implicit.get(name),
                mandatory=mandatory,
                switch=switch,
            )
            targets = set_names if set_name in (None, ALL_SETS) else [set_name]
            for target in targets:
                members[target].append(descriptor)

    return CommandSignature(
        func.name,
        tuple(ParameterSet(set_name, tuple(members[set_name])) for set_name in set_names),
    )


def _parameter_entry(function, parameter, attr):
    """Position, mandatory flag and set name from a [Parameter()] attribute."""
    position = None
    arg = attr.named("Position")
    if arg is not None:
        if isinstance(arg.value, psmock.ast.NumberLiteral) and arg.value.value.isdigit():
            position = int(arg.value.value)
        else:
            logger.warning("Ignoring non-literal position of %s -%s at %s",
                           function, parameter, attr.position)
    mandatory = False
    arg = attr.named("Mandatory")
    if arg is not None:
        mandatory = arg.value is None or _literal_bool(arg.value)
    set_name = None
    arg = attr.named("ParameterSetName")
    if arg is not None and isinstance(arg.value, psmock.ast.StringLiteral):
        set_name = arg.value.value
    return position, mandatory, set_name


def _literal_bool(node):
    """Truth of a literal attribute value such as $true or 0."""
    if isinstance(node, psmock.ast.Variable):
        return node.name.casefold() != "false"
    if isinstance(node, psmock.ast.NumberLiteral):
        return node.value not in ("0", "0.0")
    return True


def _literal_strings(nodes):
    values = []
    for node in nodes:
        if isinstance(node, psmock.ast.ArrayLiteral):
            values.extend(_literal_strings(node.items))
        elif isinstance(node, psmock.ast.StringLiteral):
            values.append(node.value)
    return values
