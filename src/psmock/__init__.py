"""
psmock: Static parameter binding analysis for PowerShell

Finds the command invocations inside PowerShell functions, works out which
parameters each one binds and with what literal values, and writes Pester
mocks with matching parameter filters. Nothing is ever executed.
"""

__version__ = "0.1.0"


from ._error import *
from ._config import *
from . import ast
from ._parser import *
from ._metadata import *
from ._binding import *
from ._splat import *
from ._resolve import *
from ._finder import *
from ._emit import *
