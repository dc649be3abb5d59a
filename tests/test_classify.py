"""
Test cases for argument pairing and classification.

- A parameter takes the next element as its value unless it is another
  parameter or a splat, in which case it is a switch
- Positional arguments are numbered in order, skipping named ones
- Splats are recognized anywhere in the argument list
- Comparison pseudo parameters are dropped
"""

import psmock
import pstest


def raw(code):
    return psmock.raw_arguments(pstest.command(code))


def test_named_pairs():
    args = raw("write-log -Message 'value1' -Source 'value2'")
    assert [(a.name, a.text, a.ordinal) for a in args] == [
        ("Message", "value1", None),
        ("Source", "value2", None),
    ]
    assert [psmock.classify(a) for a in args] == [psmock.NAME, psmock.NAME]


def test_positional_ordinals():
    args = raw("Copy-Item a -Force:$false b -Verbose")
    positional = [(a.text, a.ordinal) for a in args if a.name is None]
    assert positional == [("a", 0), ("b", 1)]
    assert [a.text for a in args if a.name] == ["$false", "$true"]


def test_switches():
    args = raw("Remove-Item -Recurse -Force @extra")
    assert [(a.name, a.value) for a in args[:2]] == [("Recurse", None), ("Force", None)]
    assert args[0].text == psmock.SWITCH_VALUE
    assert psmock.classify(args[2]) == psmock.SPLAT


@pstest.params(
    "code kinds",
    name=("Get-Item -Path x", ["name"]),
    position=("Get-Item x", ["position"]),
    splat=("Get-Item @p", ["splat"]),
    mixed=("Get-Item x @p -Force", ["position", "splat", "name"]),
    splat_first=("Get-Item @p x", ["splat", "position"]),
)
def test_classification(key, code, kinds):
    """Every argument gets exactly one binding strategy."""
    assert [psmock.classify(a) for a in raw(code)] == kinds


def test_splat_does_not_consume_ordinal():
    args = raw("Get-Item @p x")
    assert args[0].ordinal is None
    assert args[1].ordinal == 0


def test_pseudo_keys_dropped():
    args = raw("Where-Object Name -eq 'value'")
    assert [(a.name, a.text, a.ordinal) for a in args] == [
        (None, "Name", 0),
        (None, "value", 1),
    ]


@pstest.params(
    "operator",
    eq="-eq",
    ceq="-ceq",
    like="-like",
    inotmatch="-inotmatch",
    isnot="-isnot",
)
def test_pseudo_key_set(key, operator):
    assert operator[1:] in psmock.PSEUDO_KEYS
    assert raw(f"Where-Object Status {operator} x")[1].name is None


def test_custom_pseudo_keys():
    command = pstest.command("Find-Thing -Query x -eq y")
    args = psmock.raw_arguments(command, frozenset({"query"}))
    assert [(a.name, a.text) for a in args] == [(None, "x"), ("eq", "y")]


def test_redirections_ignored():
    args = raw("Get-Thing x > out.txt")
    assert [a.text for a in args] == ["x"]


@pstest.params(
    "text value",
    single=("'value1'", "value1"),
    double=('"value1"', "value1"),
    bare=("value1", "value1"),
    mismatched=("'value1\"", "'value1\""),
    lone=("'", "'"),
    empty=("''", ""),
)
def test_strip_quotes(key, text, value):
    assert psmock.strip_quotes(text) == value


@pstest.params(
    "code text",
    squote=("Set-Content -Value 'a b'", "a b"),
    dquote=('Set-Content -Value "a b"', "a b"),
    expandable=('Set-Content -Value "a $b"', "a $b"),
    variable=("Set-Content -Value $data", "$data"),
    member=("Set-Content -Value $data.Name", "$data.Name"),
    paren=("Set-Content -Value (Get-Date)", "(Get-Date)"),
    array=("Set-Content -Value a, 'b'", "a, 'b'"),
    number=("Set-Content -Value 42", "42"),
)
def test_argument_text(key, code, text):
    (arg,) = raw(code)
    assert arg.text == text


def test_switch_from_signature():
    signature = psmock.CommandSignature("Remove-Item", (psmock.ParameterSet("Path", (
        psmock.ParameterDescriptor("Path", position=0),
        psmock.ParameterDescriptor("Force", switch=True),
    )),))
    cmd = pstest.command("Remove-Item -Force old.txt -Path:new.txt")
    args = psmock.raw_arguments(cmd, lookup=lambda name: signature)
    assert [(a.name, a.text, a.ordinal) for a in args] == [
        ("Force", "$true", None),
        (None, "old.txt", 0),
        ("Path", "new.txt", None),
    ]
    assert [(a.name, a.text) for a in psmock.raw_arguments(cmd)][:1] == [("Force", "old.txt")]


def test_signature_lookup_only_for_values():
    def lookup(name):
        raise AssertionError(f"Unexpected lookup of {name}")

    args = psmock.raw_arguments(pstest.command("Remove-Item -Recurse -Force @extra"), lookup=lookup)
    assert [a.name for a in args] == ["Recurse", "Force", None]
