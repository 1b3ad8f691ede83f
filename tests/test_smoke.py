"""Smoke tests: imports work, CLI lays out JSON from a file or stdin."""

import json

from click.testing import CliRunner

from flowgraph_layout.__main__ import main

GRAPH = {
    "name": "Smoke",
    "nodes": [
        {"id": 0, "size": [100, 50], "position": [10, 20], "exec_output_pins": 2, "output_pins": 2},
        {"id": 1, "size": [100, 50], "exec_input_pins": 1, "exec_output_pins": 1},
        {"id": 2, "size": [100, 50], "exec_input_pins": 1},
        {"id": 3, "size": [80, 40], "position": [900, 900], "output_pins": 1, "is_variable_get": True},
        {"id": 7, "size": [60, 30], "position": [-5, -5]},
    ],
    "edges": [
        {"src": 0, "dst": 1, "kind": "exec", "src_pin": "true"},
        {"src": 0, "dst": 2, "kind": "exec", "src_pin": "false", "src_pin_index": 1},
        {"src": 3, "dst": 2, "kind": "data", "src_pin": "value", "dst_pin": "arg", "dst_pin_index": 1},
    ],
}


def test_import():
    import flowgraph_layout

    assert flowgraph_layout.layout_component is not None


def test_cli_help():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "JSON exec/data graph" in result.output


def test_cli_file(tmp_path):
    path = tmp_path / "graph.json"
    path.write_text(json.dumps(GRAPH))
    runner = CliRunner()
    result = runner.invoke(main, [str(path), "--complexity"])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert payload["components"] == 2
    assert payload["nodes"] == 5
    assert payload["positions"]["0"] == [10, 20]
    assert payload["positions"]["7"] == [-5, -5]
    assert payload["complexity"] == 2


def test_cli_stdin_with_selection():
    runner = CliRunner()
    result = runner.invoke(main, ["--select", "2", "--placement", "simple", "--alignment", "left"], input=json.dumps(GRAPH))
    assert result.exit_code == 0, result.output
    payload = json.loads(result.output)
    assert sorted(payload["positions"]) == ["0", "1", "2", "3"]


def test_cli_output_file(tmp_path):
    src = tmp_path / "graph.json"
    dst = tmp_path / "out.json"
    src.write_text(json.dumps(GRAPH))
    runner = CliRunner()
    result = runner.invoke(main, [str(src), "-o", str(dst), "--spacing-x", "50"])
    assert result.exit_code == 0
    payload = json.loads(dst.read_text())
    assert payload["positions"]["1"] == [10 + 100 + 50, 20]


def test_cli_bad_json():
    runner = CliRunner()
    result = runner.invoke(main, [], input="{not json")
    assert result.exit_code == 1


def test_cli_malformed_node_size():
    runner = CliRunner()
    result = runner.invoke(main, [], input=json.dumps({"nodes": [{"id": 1, "size": [None, 2]}]}))
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)


def test_cli_empty_graph():
    runner = CliRunner()
    result = runner.invoke(main, [], input=json.dumps({"nodes": []}))
    assert result.exit_code == 1
