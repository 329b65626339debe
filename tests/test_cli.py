"""Tests for the schemascope CLI.

Commands run in-process through ``main(argv)`` against a temporary layers
directory; no database is touched except through mocks.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from schemascope.cli import build_parser, main
from schemascope.config.loader import LAYERS_DIR_ENV
from schemascope.layers.store import LayerStore
from schemascope.schema.models import SchemaSnapshot, Table


@pytest.fixture
def layers_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolated working directory with layers under ``tmp_path/layers``."""
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "layers"
    monkeypatch.setenv(LAYERS_DIR_ENV, str(path))
    return path


def _write_schema(path: Path, with_sessions: bool = False) -> Path:
    tables = [
        {
            "name": "users",
            "columns": [
                {"name": "id", "type": "uuid", "nullable": False},
                {"name": "email", "type": "text", "nullable": False},
            ],
            "primaryKeys": ["id"],
        }
    ]
    if with_sessions:
        tables[0]["columns"].append({"name": "phone", "type": "text"})
        tables.append(
            {
                "name": "sessions",
                "columns": [
                    {"name": "id", "type": "uuid", "nullable": False},
                    {"name": "user_id", "type": "uuid", "nullable": False},
                ],
                "primaryKeys": ["id"],
                "foreignKeys": [{"column": "user_id", "references": "users.id"}],
            }
        )
    path.write_text(json.dumps({"tables": tables}))
    return path


def _layer_ids(layers_dir: Path) -> dict[str, str]:
    store = LayerStore(layers_dir)
    store.load()
    return {layer.name: layer.id for layer in store.list()}


# ============================================================
# Parser
# ============================================================


class TestParser:
    """Verify argument parsing."""

    def test_command_required(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            build_parser().parse_args([])
        assert exc_info.value.code == 2

    def test_export_sql_output_flag(self) -> None:
        args = build_parser().parse_args(["export-sql", "a", "b", "-o", "out.sql"])

        assert args.base_id == "a"
        assert args.draft_id == "b"
        assert args.output == "out.sql"

    def test_global_options(self) -> None:
        args = build_parser().parse_args(["--config", "x.toml", "-v", "layers"])

        assert args.config == "x.toml"
        assert args.verbose is True


# ============================================================
# analyze
# ============================================================


class TestAnalyze:
    """Verify the analyze command."""

    def test_json_output(
        self, tmp_path: Path, layers_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        schema = tmp_path / "schema.json"
        schema.write_text(json.dumps({"tables": [{"name": "audit_log"}]}))

        assert main(["analyze", str(schema), "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["orphanTables"] == ["audit_log"]
        assert data["summary"]["averageHealth"] == 80

    def test_table_output(self, tmp_path: Path, layers_dir: Path) -> None:
        assert main(["analyze", str(_write_schema(tmp_path / "s.json"))]) == 0

    def test_missing_file(self, tmp_path: Path, layers_dir: Path) -> None:
        assert main(["analyze", str(tmp_path / "missing.json")]) == 1

    def test_malformed_file(self, tmp_path: Path, layers_dir: Path) -> None:
        schema = tmp_path / "bad.json"
        schema.write_text(json.dumps({"nope": []}))

        assert main(["analyze", str(schema)]) == 1

    def test_missing_explicit_config(self, tmp_path: Path, layers_dir: Path) -> None:
        schema = _write_schema(tmp_path / "s.json")
        assert main(["--config", str(tmp_path / "none.toml"), "analyze", str(schema)]) == 1

    def test_invalid_log_level_in_config(self, tmp_path: Path, layers_dir: Path) -> None:
        config = tmp_path / "schemascope.toml"
        config.write_text('[logging]\nlevel = "LOUD"\n')
        schema = _write_schema(tmp_path / "s.json")

        assert main(["--config", str(config), "analyze", str(schema)]) == 1


# ============================================================
# Layer commands
# ============================================================


class TestLayerCommands:
    """Verify import, layers, show, delete, diff and export-sql."""

    def test_import_saves_layer(self, tmp_path: Path, layers_dir: Path) -> None:
        schema = _write_schema(tmp_path / "a.json")

        assert main(["import", str(schema), "--name", "baseline"]) == 0

        ids = _layer_ids(layers_dir)
        assert list(ids) == ["baseline"]
        assert (layers_dir / f"{ids['baseline']}.json").exists()

    def test_import_malformed(self, tmp_path: Path, layers_dir: Path) -> None:
        schema = tmp_path / "rows.json"
        schema.write_text(json.dumps([{"table_name": "users"}]))

        assert main(["import", str(schema)]) == 1
        assert _layer_ids(layers_dir) == {}

    def test_import_invalid_json(self, tmp_path: Path, layers_dir: Path) -> None:
        schema = tmp_path / "broken.json"
        schema.write_text("{")

        assert main(["import", str(schema)]) == 1

    def test_layers_empty(self, layers_dir: Path) -> None:
        assert main(["layers"]) == 0

    def test_show_json(
        self, tmp_path: Path, layers_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["import", str(_write_schema(tmp_path / "a.json")), "--name", "A"])
        layer_id = _layer_ids(layers_dir)["A"]
        capsys.readouterr()

        assert main(["show", layer_id, "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert data["id"] == layer_id
        assert data["tables"][0]["primaryKeys"] == ["id"]

    def test_show_marks_junction_tables(
        self, tmp_path: Path, layers_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        schema = tmp_path / "tags.json"
        schema.write_text(
            json.dumps(
                {
                    "tables": [
                        {"name": "posts", "columns": [{"name": "id", "type": "int"}]},
                        {"name": "tags", "columns": [{"name": "id", "type": "int"}]},
                        {
                            "name": "post_tags",
                            "columns": [
                                {"name": "post_id", "type": "int"},
                                {"name": "tag_id", "type": "int"},
                            ],
                            "foreignKeys": [
                                {"column": "post_id", "references": "posts.id"},
                                {"column": "tag_id", "references": "tags.id"},
                            ],
                        },
                    ]
                }
            )
        )
        main(["import", str(schema), "--name", "tags"])
        layer_id = _layer_ids(layers_dir)["tags"]
        capsys.readouterr()

        assert main(["show", layer_id]) == 0

        assert "Junction tables: post_tags\n" in capsys.readouterr().out

    def test_show_unknown(self, layers_dir: Path) -> None:
        assert main(["show", "layer_missing"]) == 1

    def test_delete(self, tmp_path: Path, layers_dir: Path) -> None:
        main(["import", str(_write_schema(tmp_path / "a.json")), "--name", "A"])
        layer_id = _layer_ids(layers_dir)["A"]

        assert main(["delete", layer_id]) == 0
        assert _layer_ids(layers_dir) == {}
        assert main(["delete", layer_id]) == 1

    def test_diff_json(
        self, tmp_path: Path, layers_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        main(["import", str(_write_schema(tmp_path / "a.json")), "--name", "A"])
        main(["import", str(_write_schema(tmp_path / "b.json", True)), "--name", "B"])
        ids = _layer_ids(layers_dir)
        capsys.readouterr()

        assert main(["diff", ids["A"], ids["B"], "--json"]) == 0

        data = json.loads(capsys.readouterr().out)
        assert [t["name"] for t in data["added"]] == ["sessions"]
        assert data["modified"][0]["tableName"] == "users"

    def test_diff_unknown_layer(self, layers_dir: Path) -> None:
        assert main(["diff", "layer_a", "layer_b"]) == 1

    def test_export_sql_to_file(self, tmp_path: Path, layers_dir: Path) -> None:
        main(["import", str(_write_schema(tmp_path / "a.json")), "--name", "A"])
        main(["import", str(_write_schema(tmp_path / "b.json", True)), "--name", "B"])
        ids = _layer_ids(layers_dir)
        out = tmp_path / "migration.sql"

        assert main(["export-sql", ids["A"], ids["B"], "-o", str(out)]) == 0

        sql = out.read_text()
        assert "CREATE TABLE sessions" in sql
        assert "ALTER TABLE users ADD COLUMN phone TEXT;" in sql
        assert sql.index("CREATE TABLE sessions") < sql.index("sessions_user_id_fkey")


# ============================================================
# introspect
# ============================================================


class TestIntrospect:
    """Verify the introspect command with a mocked introspector."""

    def test_no_url(self, layers_dir: Path) -> None:
        assert main(["introspect"]) == 1

    def test_save_layer(self, layers_dir: Path) -> None:
        snapshot = SchemaSnapshot(tables=[Table(name="users")])

        with patch("schemascope.schema.introspector.SchemaIntrospector") as mock_cls:
            instance = mock_cls.return_value
            instance.__aenter__ = AsyncMock(return_value=instance)
            instance.__aexit__ = AsyncMock(return_value=None)
            instance.introspect = AsyncMock(return_value=snapshot)

            result = main(
                ["introspect", "--url", "postgresql://localhost/app", "--save", "live"]
            )

        assert result == 0
        instance.introspect.assert_awaited_once_with("public")
        assert list(_layer_ids(layers_dir)) == ["live"]

    def test_connection_failure(self, layers_dir: Path) -> None:
        with patch("schemascope.schema.introspector.SchemaIntrospector") as mock_cls:
            instance = mock_cls.return_value
            instance.__aenter__ = AsyncMock(side_effect=OSError("refused"))
            instance.__aexit__ = AsyncMock(return_value=None)

            result = main(["introspect", "--url", "postgresql://localhost/app"])

        assert result == 1
