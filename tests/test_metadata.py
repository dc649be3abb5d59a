"""
Test cases for command signature providers.
"""

import json

import pytest

import psmock
import pstest


class TestStaticProvider:

    def test_builtin_snapshot(self):
        provider = psmock.builtin_provider()
        signature = provider.lookup("test-path")
        assert signature.name == "Test-Path"
        assert signature.positional(0).name == "Path"
        assert signature.parameter("pspath").name == "LiteralPath"
        assert provider("?").name == "Where-Object"
        assert provider("%").name == "ForEach-Object"
        assert "Join-Path" in provider
        assert psmock.builtin_provider() is provider

    def test_positional_scans_sets_in_order(self):
        signature = psmock.builtin_provider().lookup("Join-Path")
        assert [signature.positional(i).name for i in range(3)] == [
            "Path", "ChildPath", "AdditionalChildPath"]
        assert signature.positional(3) is None

    def test_from_mapping(self):
        provider = psmock.StaticMetadataProvider.from_data({
            "Write-Log": {"parameters": [
                {"name": "Message", "position": 0, "mandatory": True},
                {"name": "Source", "aliases": ["src"]},
            ]},
        })
        signature = provider("write-log")
        (parameter_set,) = signature.parameter_sets
        assert parameter_set.name == "__AllParameterSets"
        assert signature.parameter_names == ["Message", "Source"]
        assert signature.parameter("SRC").name == "Source"
        assert signature.positional(0).mandatory

    @pstest.params(
        "data",
        scalar=(42,),
        unnamed=([{"parameters": []}],),
        bad_param=({"X": {"parameters": [{"position": 0}]}},),
        bad_position=({"X": {"parameters": [{"name": "A", "position": "0"}]}},),
        bad_desc=({"X": []},),
    )
    def test_invalid_data(self, key, data):
        with pytest.raises(ValueError):
            psmock.StaticMetadataProvider.from_data(data)

    def test_command_aliases(self):
        provider = psmock.StaticMetadataProvider.from_data({
            "Get-ChildItem": {"aliases": ["gci", "ls"], "parameters": [{"name": "Path", "position": 0}]},
        })
        assert provider("GCI") is provider("Get-ChildItem")
        assert len(provider) == 1
        with pytest.raises(ValueError):
            psmock.StaticMetadataProvider.from_data({"X": {"aliases": [1]}})

    def test_from_json(self, tmp_path):
        path = tmp_path / "extra.json"
        path.write_text(json.dumps([{"name": "Send-Report", "parameters": [
            {"name": "To", "position": 0}]}]), encoding="utf-8")
        provider = psmock.StaticMetadataProvider.from_json(path)
        assert len(provider) == 1
        assert provider("Send-Report").positional(0).name == "To"

    def test_from_json_errors(self, tmp_path):
        with pytest.raises(ValueError, match="Cannot read"):
            psmock.StaticMetadataProvider.from_json(tmp_path / "missing.json")
        broken = tmp_path / "broken.json"
        broken.write_text("{", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            psmock.StaticMetadataProvider.from_json(broken)


class TestScriptProvider:
    """Signatures derived from functions in the analyzed script."""

    def signature(self, code, name="Get-Thing"):
        return psmock.ScriptMetadataProvider(pstest.parse(code))(name)

    def test_explicit_positions(self):
        signature = self.signature("""
            function Get-Thing {
                param(
                    [Parameter(Position = 1)] $Second,
                    [Parameter(Position = 0, Mandatory = $true)] [Alias('N')] $Name,
                    $Other
                )
            }
        """)
        assert signature.positional(0).name == "Name"
        assert signature.positional(0).mandatory
        assert signature.positional(0).aliases == ("N",)
        assert signature.positional(1).name == "Second"
        assert signature.parameter("Other").position is None

    def test_implicit_positions(self):
        signature = self.signature("""
            function Get-Thing($Name, [switch]$Force, $Path) { }
        """)
        assert signature.positional(0).name == "Name"
        assert signature.positional(1).name == "Path"
        assert signature.parameter("Force").switch
        assert signature.parameter("Force").position is None

    def test_positional_binding_disabled(self):
        signature = self.signature("""
            function Get-Thing {
                [CmdletBinding(PositionalBinding = $false)]
                param($Name)
            }
        """)
        assert signature.positional(0) is None

    def test_parameter_sets(self):
        signature = self.signature("""
            function Get-Thing {
                param(
                    [Parameter(ParameterSetName = 'ById', Position = 0)] $Id,
                    [Parameter(ParameterSetName = 'ByName', Position = 0)] $Name,
                    $Shared
                )
            }
        """)
        assert [s.name for s in signature.parameter_sets] == ["ById", "ByName"]
        assert [p.name for p in signature.parameter_sets[1].parameters] == ["Name", "Shared"]
        assert signature.positional(0).name == "Id"

    def test_non_literal_position_warns(self, caplog):
        signature = self.signature("""
            function Get-Thing {
                param([Parameter(Position = $index)] $Name)
            }
        """)
        assert signature.parameter("Name") is not None
        assert "non-literal position" in caplog.text

    def test_last_definition_wins(self):
        signature = self.signature("""
            function Get-Thing($First) { }
            function Get-Thing($Second) { }
        """)
        assert signature.positional(0).name == "Second"


class TestComposition:

    def test_chain_order(self):
        script = pstest.parse("function Test-Path($Custom) { }")
        chain = psmock.ChainMetadataProvider(
            psmock.ScriptMetadataProvider(script), psmock.builtin_provider())
        assert chain("Test-Path").positional(0).name == "Custom"
        assert chain("Get-Content").positional(0).name == "Path"
        assert chain("Nope") is None

    def test_caching(self):
        calls = []

        def lookup(name):
            calls.append(name)
            return None

        cache = psmock.CachingMetadataProvider(lookup)
        assert cache("Get-Thing") is None
        assert cache("GET-THING") is None
        assert calls == ["Get-Thing"]
        assert cache.misses == 1

    def test_default_provider(self, tmp_path):
        path = tmp_path / "extra.json"
        path.write_text('{"Send-Report": {"parameters": [{"name": "To", "position": 0}]}}',
                        encoding="utf-8")
        script = pstest.parse("function Local-Thing($A) { }")
        config = psmock.AnalysisConfig(metadata_path=str(path))
        provider = psmock.default_provider(script, config)
        assert provider("Local-Thing").positional(0).name == "A"
        assert provider("Send-Report").positional(0).name == "To"
        assert provider("Test-Path") is not None

        bare = psmock.default_provider(config=psmock.AnalysisConfig(builtin_metadata=False))
        assert bare("Test-Path") is None

    def test_default_provider_bad_file(self, tmp_path):
        config = psmock.AnalysisConfig(metadata_path=str(tmp_path / "nope.json"))
        with pytest.raises(ValueError):
            psmock.default_provider(config=config)


class TestConfig:

    def test_defaults(self):
        config = psmock.AnalysisConfig()
        assert config.splat_policy == "nearest"
        assert "eq" in config.pseudo_keys
        assert config.max_workers is None

    def test_pseudo_keys_folded(self):
        config = psmock.AnalysisConfig(pseudo_keys={"EQ", "Like"})
        assert config.pseudo_keys == frozenset({"eq", "like"})

    @pstest.params(
        "overrides",
        policy=({"splat_policy": "first"},),
        workers=({"max_workers": 0},),
    )
    def test_invalid(self, key, overrides):
        with pytest.raises(ValueError):
            psmock.AnalysisConfig(**overrides)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("PSMOCK_SPLAT_POLICY", "Strict")
        monkeypatch.setenv("PSMOCK_ABORT_ON_ERROR", "yes")
        monkeypatch.setenv("PSMOCK_BUILTIN_METADATA", "0")
        monkeypatch.setenv("PSMOCK_MAX_WORKERS", "4")
        config = psmock.AnalysisConfig.from_env(max_workers=2)
        assert config.splat_policy == "strict"
        assert config.abort_on_error
        assert not config.builtin_metadata
        assert config.max_workers == 2

    @pstest.params(
        "name value",
        boolean=("PSMOCK_ABORT_ON_ERROR", "maybe"),
        workers=("PSMOCK_MAX_WORKERS", "many"),
        policy=("PSMOCK_SPLAT_POLICY", "random"),
    )
    def test_from_env_invalid(self, key, name, value, monkeypatch):
        monkeypatch.setenv(name, value)
        with pytest.raises(ValueError):
            psmock.AnalysisConfig.from_env()
