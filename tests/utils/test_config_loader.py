import json
import textwrap
from pathlib import Path

import pytest

from wsinfra.resolution import DeclarationError, Shape, resolve
from wsinfra.utils.config_loader import (
    _parse_tfvars,
    _to_value,
    load_declaration,
    load_sources,
    load_tfvars_dir,
)


def _write(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# tfvars parsing
# ---------------------------------------------------------------------------


def test_parse_tfvars_handles_comments_and_maps():
    content = textwrap.dedent(
        """\
        # header comment
        name = "web # not a comment"  # trailing
        url  = "http://example.com" // trailing
        count = 3
        tags = { team = "a", owner = "b" }
        labels = {
          env = "dev"
          tier = 2
        }
        """
    )
    parsed = _parse_tfvars(content)
    assert parsed["name"] == '"web # not a comment"'
    assert parsed["url"] == '"http://example.com"'
    assert parsed["count"] == "3"
    assert _to_value(parsed["tags"]) == {"team": "a", "owner": "b"}
    assert _to_value(parsed["labels"]) == {"env": "dev", "tier": "2"}


@pytest.mark.parametrize(
    "raw, expected",
    [
        ('"t2.micro"', "t2.micro"),
        ("'single'", "single"),
        ("42", 42),
        ("-1", -1),
        ("2.5", 2.5),
        ("true", "true"),
        ("inf", "inf"),
        ("{}", {}),
    ],
)
def test_to_value(raw, expected):
    assert _to_value(raw) == expected


def test_unterminated_map_is_an_error():
    with pytest.raises(ValueError):
        _parse_tfvars('tags = {\n  a = "b"\n')


def test_list_values_are_rejected():
    with pytest.raises(ValueError):
        _to_value('["a", "b"]')


# ---------------------------------------------------------------------------
# per-environment tfvars directory
# ---------------------------------------------------------------------------


def test_load_tfvars_dir_builds_maps_per_environment(tfvars_dir):
    decl = load_tfvars_dir(tfvars_dir)
    assert decl.registry.list_environments() == ("dev", "prod")
    maps = {m.name: m for m in decl.parameter_maps}
    assert maps["instance_type"].values["prod"] == "t2.xlarge"
    assert maps["disk_gb"].has_entry("prod")
    assert not maps["disk_gb"].has_entry("dev")
    assert decl.registry.default_for("region") == "us-east-1"
    # defaults-only keys still become parameters
    assert "region" in maps and "name_prefix" in maps


def test_tfvars_resolution_uses_defaults_file(tfvars_dir):
    decl = load_tfvars_dir(tfvars_dir, environments=["prod"])
    config = resolve("prod", decl.parameter_maps, decl.registry)
    assert config["region"] == "us-east-1"
    assert config["disk_gb"] == 100
    assert dict(config["tags"]) == {"team": "platform", "tier": "critical"}


def test_tfvars_key_missing_in_one_environment_fails_resolution(tfvars_dir):
    decl = load_tfvars_dir(tfvars_dir)
    from wsinfra.resolution import MissingParameterError

    with pytest.raises(MissingParameterError) as exc:
        resolve("dev", decl.parameter_maps, decl.registry)
    assert exc.value.parameter == "disk_gb"


def test_tfvars_missing_environment_file(tfvars_dir):
    with pytest.raises(FileNotFoundError):
        load_tfvars_dir(tfvars_dir, environments=["dev", "staging"])


def test_tfvars_missing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_tfvars_dir(tmp_path / "nope")


def test_tfvars_invalid_content_is_a_declaration_error(tmp_path):
    _write(tmp_path / "dev.tfvars", 'zones = ["a", "b"]\n')
    with pytest.raises(DeclarationError) as exc:
        load_tfvars_dir(tmp_path)
    assert "dev.tfvars" in str(exc.value)


# ---------------------------------------------------------------------------
# YAML / JSON declaration
# ---------------------------------------------------------------------------


def test_load_declaration_long_and_short_forms(declaration_file):
    decl = load_declaration(declaration_file)
    assert decl.registry.list_environments() == ("dev", "staging", "prod")
    maps = {m.name: m for m in decl.parameter_maps}
    assert maps["instance_type"].fallback == "t2.micro"
    assert maps["ami_id"].fallback is None
    assert maps["ami_id"].lookup("staging") == "ami-staging"
    assert set(maps) == {"instance_type", "ami_id", "tags", "name_prefix", "region"}
    assert decl.schema is None


def test_declaration_resolves_end_to_end(declaration_file):
    decl = load_declaration(declaration_file)
    config = resolve("prod", decl.parameter_maps, decl.registry)
    assert config.as_dict() == {
        "instance_type": "t2.xlarge",
        "ami_id": "ami-prod",
        "tags": {"team": "platform", "tier": "critical"},
        "name_prefix": "acme",
        "region": "us-east-1",
    }


def test_effective_schema_is_derived_when_absent(declaration_file):
    schema = load_declaration(declaration_file).effective_schema()
    assert schema.get("tags").shape is Shape.MAP
    assert schema.get("region").shape is Shape.STRING


def test_declared_schema_is_parsed(tmp_path):
    path = _write(
        tmp_path / "d.yaml",
        """\
        environments: [dev]
        parameters:
          size: {dev: 2}
        schema:
          size: number
          tags: {shape: map, required: false}
        """,
    )
    schema = load_declaration(path).effective_schema()
    assert schema.get("size").shape is Shape.NUMBER
    assert schema.get("tags").required is False


def test_json_declarations_are_supported(tmp_path):
    path = tmp_path / "d.json"
    path.write_text(
        json.dumps({"environments": ["dev"], "parameters": {"a": {"dev": "x"}}}),
        encoding="utf-8",
    )
    decl = load_declaration(path)
    assert resolve("dev", decl.parameter_maps, decl.registry)["a"] == "x"


@pytest.mark.parametrize(
    "content, fragment",
    [
        ("parameters: {}\n", "environments"),
        ("environments: []\n", "environments"),
        ("- dev\n", "root must be a mapping"),
        ("environments: [dev]\nparameters: [a]\n", "parameters must be a mapping"),
        ("environments: [dev]\nparameters:\n  flag: {dev: true}\n", "unsupported value"),
        ("environments: [dev]\nschema:\n  a: list\n", "unsupported shape"),
        ("environments: [dev, dev]\n", "Duplicate environment"),
    ],
)
def test_structural_errors(tmp_path, content, fragment):
    path = _write(tmp_path / "bad.yaml", content)
    with pytest.raises(DeclarationError) as exc:
        load_declaration(path)
    assert fragment in str(exc.value)
    assert str(path) in str(exc.value)


def test_unsupported_format(tmp_path):
    path = _write(tmp_path / "d.toml", "x = 1\n")
    with pytest.raises(DeclarationError):
        load_declaration(path)


def test_missing_declaration_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_declaration(tmp_path / "missing.yaml")


# ---------------------------------------------------------------------------
# source selection
# ---------------------------------------------------------------------------


def test_load_sources_prefers_explicit_tfvars_dir(tmp_path, tfvars_dir, monkeypatch):
    monkeypatch.delenv("TFVARS_DIR", raising=False)
    monkeypatch.delenv("DECLARATION_FILE", raising=False)
    decl = load_sources(repo_root=tmp_path, tfvars_dir="vars")
    assert decl.source == str(tfvars_dir.resolve())


def test_load_sources_reads_env_vars(tmp_path, declaration_file, monkeypatch):
    monkeypatch.delenv("TFVARS_DIR", raising=False)
    monkeypatch.setenv("DECLARATION_FILE", declaration_file.name)
    decl = load_sources(repo_root=tmp_path)
    assert decl.source == str(declaration_file.resolve())


def test_load_sources_defaults_to_environments_yaml(tmp_path, declaration_file, monkeypatch):
    monkeypatch.delenv("TFVARS_DIR", raising=False)
    monkeypatch.delenv("DECLARATION_FILE", raising=False)
    assert declaration_file.name == "environments.yaml"
    decl = load_sources(repo_root=tmp_path)
    assert decl.registry.is_valid("staging")


def test_fallback_only_parameter_is_long_form(tmp_path):
    path = _write(
        tmp_path / "d.yaml",
        """\
        environments: [dev, prod]
        parameters:
          region: {fallback: us-east-1}
          size: {values: null, fallback: 2}
        """,
    )
    decl = load_declaration(path)
    maps = {m.name: m for m in decl.parameter_maps}
    assert maps["region"].fallback == "us-east-1"
    assert not maps["region"].has_entry("fallback")
    assert maps["size"].fallback == 2
    config = resolve("dev", decl.parameter_maps, decl.registry)
    assert config["region"] == "us-east-1"


@pytest.mark.parametrize(
    "spec, fragment",
    [
        ("{values: [a, b]}", "values must be a mapping"),
        ("{values: {dev: a}, dev: b}", "unexpected keys"),
    ],
)
def test_malformed_long_form(tmp_path, spec, fragment):
    path = _write(tmp_path / "d.yaml", f"environments: [dev]\nparameters:\n  p: {spec}\n")
    with pytest.raises(DeclarationError) as exc:
        load_declaration(path)
    assert fragment in str(exc.value)


def test_explicit_declaration_wins_over_env_tfvars_dir(tmp_path, tfvars_dir, monkeypatch):
    _write(tmp_path / "alpha.yaml", "environments: [alpha]\n")
    monkeypatch.setenv("TFVARS_DIR", "vars")
    decl = load_sources(repo_root=tmp_path, declaration_file="alpha.yaml")
    assert decl.registry.list_environments() == ("alpha",)


def test_blank_env_vars_are_ignored(tmp_path, declaration_file, monkeypatch):
    monkeypatch.setenv("TFVARS_DIR", "")
    monkeypatch.setenv("DECLARATION_FILE", "  ")
    decl = load_sources(repo_root=tmp_path)
    assert decl.source == str(declaration_file.resolve())
