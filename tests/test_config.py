from pathlib import Path

import pytest

from oas_forge.config import GeneratorConfig, load_config, load_pyproject_config, load_toml_config
from oas_forge.errors import ConfigError


class TestGeneratorConfig:
    def test_merged_with_overrides_set_keys_only(self):
        base = GeneratorConfig(input=[Path("src")], output=[Path("a.yaml")])
        merged = base.merged_with(GeneratorConfig(output=[Path("b.yaml")]))
        assert merged.input == [Path("src")]
        assert merged.output == [Path("b.yaml")]

    def test_has_outputs(self):
        assert not GeneratorConfig(input=[Path("src")]).has_outputs()
        assert GeneratorConfig(output_paths=[Path("paths.yaml")]).has_outputs()


class TestLoadToml:
    def test_kebab_keys_and_single_values(self, tmp_path):
        path = tmp_path / "openapi.toml"
        path.write_text('input = "src"\noutput-schemas = ["schemas.yaml", "schemas.json"]\n')
        config = load_toml_config(path)
        assert config.input == [Path("src")]
        assert config.output_schemas == [Path("schemas.yaml"), Path("schemas.json")]

    def test_invalid_toml(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("input = [")
        with pytest.raises(ConfigError):
            load_toml_config(path)

    def test_invalid_value(self, tmp_path):
        path = tmp_path / "bad.toml"
        path.write_text("output = 3\n")
        with pytest.raises(ConfigError):
            load_toml_config(path)

    def test_pyproject_table(self, tmp_path):
        path = tmp_path / "pyproject.toml"
        path.write_text('[project]\nname = "x"\n\n[tool.oas-forge]\ninput = ["api"]\n')
        assert load_pyproject_config(path).input == [Path("api")]

    def test_pyproject_without_table(self, tmp_path):
        path = tmp_path / "pyproject.toml"
        path.write_text('[project]\nname = "x"\n')
        assert load_pyproject_config(path) == GeneratorConfig()


class TestLoadConfig:
    def test_precedence(self, tmp_path):
        (tmp_path / "pyproject.toml").write_text(
            '[tool.oas-forge]\ninput = ["from-pyproject"]\ninclude = ["extra.yaml"]\noutput = ["p.yaml"]\n'
        )
        (tmp_path / "openapi.toml").write_text('input = ["from-openapi-toml"]\noutput = ["o.yaml"]\n')
        explicit = tmp_path / "custom.toml"
        explicit.write_text('output = ["c.yaml"]\n')

        config = load_config(
            GeneratorConfig(output_paths=[Path("cli.yaml")]), config_file=explicit, cwd=tmp_path
        )

        assert config.include == [Path("extra.yaml")]
        assert config.input == [Path("from-openapi-toml")]
        assert config.output == [Path("c.yaml")]
        assert config.output_paths == [Path("cli.yaml")]

    def test_cli_overrides_files(self, tmp_path):
        (tmp_path / "openapi.toml").write_text('output = ["o.yaml"]\n')
        config = load_config(GeneratorConfig(output=[Path("cli.yaml")]), cwd=tmp_path)
        assert config.output == [Path("cli.yaml")]

    def test_broken_implicit_file_is_ignored(self, tmp_path):
        (tmp_path / "openapi.toml").write_text("output = [")
        assert load_config(cwd=tmp_path) == GeneratorConfig()

    def test_broken_explicit_file_fails(self, tmp_path):
        explicit = tmp_path / "custom.toml"
        explicit.write_text("output = [")
        with pytest.raises(ConfigError):
            load_config(config_file=explicit, cwd=tmp_path)
