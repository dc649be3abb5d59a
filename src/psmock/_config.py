"""Analysis settings"""

__all__ = ["AnalysisConfig", "PSEUDO_KEYS", "SPLAT_POLICIES"]

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

# Comparison operators that look like parameters when a command such as
# Where-Object is written in its simplified `Name -eq Value` form.
_COMPARISONS = (
    "eq", "ne", "gt", "ge", "lt", "le",
    "like", "notlike", "match", "notmatch",
    "contains", "notcontains", "in", "notin",
    "is", "isnot",
)
PSEUDO_KEYS = frozenset(
    prefix + op
    for op in _COMPARISONS
    for prefix in ("", "c", "i")
    if not (prefix and op in ("is", "isnot"))
)

SPLAT_POLICIES = ("nearest", "strict")

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_bool(name, default):
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    if raw in _TRUE:
        return True
    if raw in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {raw!r}")


@dataclass(frozen=True)
class AnalysisConfig:
    """Settings shared by every stage of an analysis.

    Attributes:
        pseudo_keys: Parameter names dropped before classification
        splat_policy: "nearest" takes the closest preceding hashtable
            assignment, "strict" rejects variables assigned more than one
            hashtable in the same scope
        abort_on_error: Stop a batch at the first failure
        metadata_path: Optional JSON file with extra command signatures
        builtin_metadata: Use the packaged snapshot of common cmdlets
        max_workers: Thread count for batch analysis, None runs inline
    """
    pseudo_keys: frozenset = field(default=PSEUDO_KEYS)
    splat_policy: str = "nearest"
    abort_on_error: bool = False
    metadata_path: str | None = None
    builtin_metadata: bool = True
    max_workers: int | None = None

    def __post_init__(self):
        if self.splat_policy not in SPLAT_POLICIES:
            raise ValueError(
                f"splat_policy must be one of {', '.join(SPLAT_POLICIES)}, "
                f"got {self.splat_policy!r}")
        if self.max_workers is not None and self.max_workers < 1:
            raise ValueError(f"max_workers must be positive, got {self.max_workers}")
        folded = frozenset(key.casefold() for key in self.pseudo_keys)
        object.__setattr__(self, "pseudo_keys", folded)

    @classmethod
    def from_env(cls, **overrides):
        """Build settings from PSMOCK_* environment variables.

        Keyword arguments take precedence over the environment.
        """
        values = {
            "splat_policy": os.getenv("PSMOCK_SPLAT_POLICY", "").strip().lower() or "nearest",
            "abort_on_error": _env_bool("PSMOCK_ABORT_ON_ERROR", False),
            "metadata_path": os.getenv("PSMOCK_METADATA") or None,
            "builtin_metadata": _env_bool("PSMOCK_BUILTIN_METADATA", True),
        }
        workers = os.getenv("PSMOCK_MAX_WORKERS", "").strip()
        if workers:
            try:
                values["max_workers"] = int(workers)
            except ValueError as e:
                raise ValueError(f"PSMOCK_MAX_WORKERS must be an integer, got {workers!r}") from e
        values.update(overrides)
        config = cls(**values)
        logger.debug("Loaded %r", config)
        return config
