#!/usr/bin/env python3
"""psmock CLI - Find command invocations and write Pester mocks.

Usage:
    psmock <file.ps1> --refs                 # Show resolved invocations
    psmock <file.ps1> --mocks                # Write Mock statements
    psmock <file.ps1> --tests -f Get-Thing   # Write a Pester test skeleton
    psmock <file.ps1> --ast                  # Show syntax tree
    psmock <file.ps1> --lark                 # Show Lark parse tree
"""

import argparse
import logging
import os
import pathlib
import sys

from lark import Token, Tree

import psmock


def prettylark(node, indent=0, show_positions=False):
    """Pretty-print a Lark parse tree.

    More readable than Lark's built-in pretty() for PowerShell sources.
    Shows tree structure with clear indentation and token values.
    """
    prefix = "  " * indent

    if isinstance(node, Token):
        pos = f" @{node.line}:{node.column}" if show_positions else ""
        value = repr(node.value) if len(node.value) < 60 else repr(node.value[:57] + "...")
        print(f"{prefix}{node.type}: {value}{pos}")

    elif isinstance(node, Tree):
        pos = ""
        if show_positions and node.meta and not node.meta.empty:
            pos = f" @{node.meta.line}:{node.meta.column}"

        if len(node.children) == 0:
            print(f"{prefix}{node.data}(){pos}")
        elif len(node.children) == 1 and isinstance(node.children[0], Token):
            # Compact single-token nodes
            child = node.children[0]
            print(f"{prefix}{node.data}: {child.value!r}{pos}")
        else:
            print(f"{prefix}{node.data}:{pos}")
            for child in node.children:
                prettylark(child, indent + 1, show_positions)

    else:
        print(f"{prefix}??? {type(node).__name__}: {node!r}")


def prettyrefs(analysis, show_positions=False):
    """Print the references and errors of one analyzed function."""
    print(f"{analysis.function}:")
    for ref in analysis.references:
        pos = f" @{ref.position.start_line}:{ref.position.start_column}" if show_positions else ""
        print(f"  {ref.command}{pos}")
        for binding in ref.details:
            print(f"    {binding.name} = {binding.value}  ({binding.kind})")
    for error in analysis.errors:
        print(f"  ! {error}")


def output(text, rich=False):
    """Print PowerShell text, highlighted when rich is requested."""
    if rich:
        import rich.console, rich.syntax
        console = rich.console.Console()
        console.print(rich.syntax.Syntax(text, "powershell"))
    else:
        print(text)


def main(argv=None):
    parser = argparse.ArgumentParser(
        prog="psmock",
        description="Resolve command invocations in PowerShell functions and write Pester mocks")
    parser.add_argument("source",
        help="PowerShell script to analyze")
    parser.add_argument("-f", "--function", action="append", default=None,
        help="Function to analyze, may be repeated (default: every function)")
    parser.add_argument("--text", action="store_true",
        help="Treat source as script text instead of a file path")
    parser.add_argument("--lark", action="store_true",
        help="Show Lark parse tree")
    parser.add_argument("--ast", action="store_true",
        help="Show converted syntax tree")
    parser.add_argument("--refs", action="store_true",
        help="Show resolved invocations and their parameter bindings")
    parser.add_argument("--mocks", action="store_true",
        help="Write Pester Mock statements")
    parser.add_argument("--tests", action="store_true",
        help="Write a Pester Describe block per function")
    parser.add_argument("--metadata", metavar="FILE",
        help="JSON file with additional command signatures")
    parser.add_argument("--no-builtin", action="store_true",
        help="Do not use the packaged cmdlet signatures")
    parser.add_argument("--strict-splat", action="store_true",
        help="Reject splat variables assigned more than one hashtable")
    parser.add_argument("--abort", action="store_true",
        help="Stop at the first function that fails to resolve")
    parser.add_argument("--jobs", type=int, metavar="N",
        help="Analyze functions on N threads")
    parser.add_argument("--pos", action="store_true",
        help="Show line:column positions")
    parser.add_argument("--rich", action="store_true",
        help="Highlight generated PowerShell")
    parser.add_argument("-v", "--verbose", action="count", default=0,
        help="Log progress (-vv for debug output)")

    args = parser.parse_args(argv)

    if not any([args.lark, args.ast, args.refs, args.mocks, args.tests]):
        parser.error("No output mode specified. Use --lark, --ast, --refs, --mocks or --tests")

    level = os.getenv("PSMOCK_LOG_LEVEL", "WARNING").upper()
    if args.verbose:
        level = "DEBUG" if args.verbose > 1 else "INFO"
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    if args.text:
        source = args.source
        filename = None
    else:
        filepath = pathlib.Path(args.source)
        if not filepath.is_absolute():
            filepath = pathlib.Path.cwd() / filepath
        try:
            source = filepath.read_text(encoding="utf-8")
        except OSError as e:
            print(f"Error: cannot read {filepath}: {e}", file=sys.stderr)
            sys.exit(1)
        filename = args.source

    if args.lark:
        try:
            tree = psmock.parse_lark(source)
        except psmock.ParseError as e:
            print(f"Parse error in {filename or '<text>'}:", file=sys.stderr)
            print(f"  {e}", file=sys.stderr)
            sys.exit(1)
        prettylark(tree, show_positions=args.pos)

    try:
        script = psmock.parse_script(source, filename)
    except psmock.ParseError as e:
        print(f"Parse error in {filename or '<text>'}:", file=sys.stderr)
        print(f"  {e}", file=sys.stderr)
        sys.exit(1)

    if args.ast:
        script.tree(show_positions=args.pos)

    if not any([args.refs, args.mocks, args.tests]):
        return

    overrides = {}
    if args.metadata:
        overrides["metadata_path"] = args.metadata
    if args.no_builtin:
        overrides["builtin_metadata"] = False
    if args.strict_splat:
        overrides["splat_policy"] = "strict"
    if args.abort:
        overrides["abort_on_error"] = True
    if args.jobs is not None:
        overrides["max_workers"] = args.jobs

    try:
        config = psmock.AnalysisConfig.from_env(**overrides)
        result = psmock.analyze_batch(script, names=args.function, config=config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
    except psmock.BatchAborted as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    for name, failure in result.failures.items():
        print(f"Error: {name}: {failure}", file=sys.stderr)

    for analysis in result:
        if args.refs:
            prettyrefs(analysis, show_positions=args.pos)
        else:
            for error in analysis.errors:
                print(f"Unresolved: {analysis.function}: {error}", file=sys.stderr)
        if args.mocks and analysis.references:
            output(psmock.render_mocks(analysis.references), rich=args.rich)
        if args.tests:
            output(psmock.render_tests(analysis), rich=args.rich)

    if not result.ok:
        sys.exit(1)


if __name__ == "__main__":
    main()
