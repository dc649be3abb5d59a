"""
Test cases for resolving the parameter bindings of one invocation.
"""

import pytest

import psmock
import pstest

TEST_PATH = pstest.signatures(Test_Path=["Path"], Add_Content=["Path", "Value"])


def bindings(code, lookup=TEST_PATH, config=None, with_scope=True):
    tree = pstest.parse(code)
    cmd = tree.find_all(psmock.ast.Command)[-1]
    scope = psmock.Scope.enclosing(tree, cmd) if with_scope else None
    return psmock.resolve_bindings(cmd, lookup, scope, config)


def no_lookup(name):
    raise AssertionError(f"Unexpected signature lookup for {name}")


def unknown(name):
    return None


class TestNamed:
    """Named arguments of unknown commands pair by syntax alone."""

    def test_write_log(self):
        result = bindings("write-log -Message 'value1' -Source 'value2'", unknown)
        assert [(b.name, b.value, b.kind) for b in result] == [
            ("Message", "value1", "name"),
            ("Source", "value2", "name"),
        ]

    def test_quotes_stripped(self):
        single = bindings("write-log -Message 'value1'", unknown)
        double = bindings('write-log -Message "value1"', unknown)
        bare = bindings("write-log -Message value1", unknown)
        assert single[0].value == double[0].value == bare[0].value == "value1"

    def test_switch(self):
        result = bindings("Remove-Item -Recurse -Force", no_lookup)
        assert [(b.name, b.value) for b in result] == [("Recurse", "$true"), ("Force", "$true")]

    def test_declared_switch_leaves_value_positional(self):
        calls = []

        def lookup(name):
            calls.append(name)
            return psmock.builtin_provider()(name)

        result = bindings("Remove-Item -Force 'C:\\tmp\\x'", lookup)
        assert [(b.name, b.value, b.kind) for b in result] == [
            ("Force", "$true", "name"), ("Path", "C:\\tmp\\x", "position")]
        assert calls == ["Remove-Item"]

    def test_common_switch(self):
        result = bindings("Test-Path -Verbose a.txt")
        assert [(b.name, b.value) for b in result] == [("Verbose", "$true"), ("Path", "a.txt")]

    def test_positions_recorded(self):
        (binding,) = bindings("write-log `\n  -Message 'value1'", unknown)
        assert binding.position.start_line == 2


class TestPositional:

    def test_path_by_position(self):
        (binding,) = bindings("Test-path 'valbyposition'")
        assert (binding.name, binding.value, binding.kind) == ("Path", "valbyposition", "position")

    def test_ordinals_skip_named(self):
        result = bindings("Add-Content -Encoding utf8 log.txt 'line'")
        assert [(b.name, b.value) for b in result] == [
            ("Encoding", "utf8"), ("Path", "log.txt"), ("Value", "line")]

    def test_missing_signature(self):
        with pytest.raises(psmock.MissingSignature) as info:
            bindings("Invoke-Unknown 'x'")
        error = info.value
        assert error.command == "Invoke-Unknown"
        assert error.position.start_line == 1

    def test_unknown_position(self):
        with pytest.raises(psmock.UnknownPosition) as info:
            bindings("Test-Path a b")
        assert "position 1" in info.value.message

    def test_lookup_once(self):
        calls = []

        def lookup(name):
            calls.append(name)
            return TEST_PATH(name)

        bindings("Add-Content a b", lookup)
        assert calls == ["Add-Content"]

    def test_first_parameter_set_wins(self):
        sets = (
            psmock.ParameterSet("ByName", (psmock.ParameterDescriptor("Name", position=0),)),
            psmock.ParameterSet("ById", (psmock.ParameterDescriptor("Id", position=0),)),
        )
        provider = psmock.StaticMetadataProvider([psmock.CommandSignature("Get-Thing", sets)])
        (binding,) = bindings("Get-Thing x", provider)
        assert binding.name == "Name"

    def test_dynamic_name(self):
        with pytest.raises(psmock.UnresolvedCommandName):
            bindings("& $command 'x'")


class TestSplat:

    def test_splat_order(self):
        result = bindings("""
            $splatParams = @{
                splatparam1 = 'splatval1'
                splatparam2 = 'splatval2'
            }
            Add-Content @splatParams
        """, no_lookup)
        assert [(b.name, b.value, b.kind) for b in result] == [
            ("splatparam1", "splatval1", "splat"),
            ("splatparam2", "splatval2", "splat"),
        ]

    def test_explicit_before_splat(self):
        result = bindings("""
            $p = @{ Value = 'from splat' }
            Add-Content @p -Path log.txt
        """, TEST_PATH)
        assert [(b.name, b.kind) for b in result] == [("Path", "name"), ("Value", "splat")]

    def test_missing_scope(self):
        with pytest.raises(psmock.MissingSplatSource):
            bindings("$p = @{ a = 1 }\nAdd-Content @p", with_scope=False)

    def test_not_found_is_located(self):
        with pytest.raises(psmock.SplatSourceNotFound) as info:
            bindings("Write-Output 'x'\nAdd-Content @missing")
        error = info.value
        assert error.position.start_line == 2
        assert error.command == "Add-Content"
        assert isinstance(error.__cause__, psmock.SplatSourceNotFound)

    def test_strict_policy(self):
        config = psmock.AnalysisConfig(splat_policy="strict")
        with pytest.raises(psmock.AmbiguousSplatSource):
            bindings("$p = @{ a = 1 }\n$p = @{ a = 2 }\nAdd-Content @p", config=config)


class TestPipeline:

    def test_sentinel(self):
        (binding,) = bindings("Get-Foo | Do-Something", no_lookup)
        assert binding.name == psmock.EXTERNALLY_BOUND
        assert binding.value == psmock.PIPELINE_INPUT
        assert binding.externally_bound

    def test_piped_with_arguments(self):
        result = bindings("Get-Foo | Do-Something -Name x", unknown)
        assert [(b.name, b.value) for b in result] == [("Name", "x")]
        assert not any(b.externally_bound for b in result)

    def test_pipeline_head_is_not_piped(self):
        tree = pstest.parse("Get-Foo | Do-Something")
        first = tree.find(psmock.ast.Command)
        assert psmock.resolve_bindings(first, no_lookup) == []


class TestMerge:

    def test_last_write_wins(self):
        result = bindings("""
            $p = @{ path = 'from splat'; Force = $false }
            Add-Content -Path 'explicit' -Value x @p
        """, TEST_PATH)
        merged = psmock.merge_bindings(result)
        assert list(merged) == ["Path", "Value", "Force"]
        assert merged["Path"].value == "from splat"
        assert merged["Path"].kind == "splat"

    def test_resolve_mapping(self):
        result = psmock.resolve(pstest.command("Test-Path 'a' -PathType Leaf"), TEST_PATH)
        assert result == {"Path": "a", "PathType": "Leaf"}

    def test_idempotent(self):
        tree = pstest.parse("$p = @{ a = 1 }\nAdd-Content log.txt @p -Force")
        cmd = tree.find_all(psmock.ast.Command)[-1]
        scope = psmock.Scope.enclosing(tree, cmd)
        first = psmock.resolve_bindings(cmd, TEST_PATH, scope)
        second = psmock.resolve_bindings(cmd, TEST_PATH, scope)
        assert first == second
        assert tree.matches(pstest.parse("$p = @{ a = 1 }\nAdd-Content log.txt @p -Force"))
