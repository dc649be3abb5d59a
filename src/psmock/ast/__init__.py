"""Syntax tree nodes for parsed PowerShell scripts."""

from ._base import *
from ._literal import *
from ._expr import *
from ._command import *
from ._statement import *
