import json

import yaml

from helloci.cli import main
from helloci.descriptor import dump_manifests, parse_descriptor


def test_validate_ok(descriptor_data, write_yaml, capsys):
    path = write_yaml(descriptor_data)
    assert main(["validate", path]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is True
    assert out["descriptor"]["replicas"] == 3


def test_validate_reports_problems(descriptor_data, write_yaml, capsys):
    descriptor_data["replicas"] = 0
    descriptor_data["containerPort"] = "http"
    path = write_yaml(descriptor_data)
    assert main(["validate", path]) == 1
    out = json.loads(capsys.readouterr().out)
    assert out["ok"] is False
    assert len(out["problems"]) == 2


def test_render_to_stdout(descriptor_data, write_yaml, capsys):
    path = write_yaml(descriptor_data)
    assert main(["render", path]) == 0
    assert capsys.readouterr().out == dump_manifests(parse_descriptor(descriptor_data))


def test_render_to_file(descriptor_data, write_yaml, tmp_path):
    path = write_yaml(descriptor_data)
    out = tmp_path / "out.yaml"
    assert main(["render", path, "-o", str(out)]) == 0
    kinds = [d["kind"] for d in yaml.safe_load_all(out.read_text(encoding="utf-8"))]
    assert kinds == ["Deployment", "Service"]


def test_render_invalid_descriptor(write_yaml, capsys):
    assert main(["render", write_yaml({"replicas": 1})]) == 1
    assert json.loads(capsys.readouterr().out)["ok"] is False


def test_probe_open_port(occupied_port, capsys):
    assert main(["probe", "--host", "127.0.0.1", "--port", str(occupied_port)]) == 0
    out = json.loads(capsys.readouterr().out)
    assert out["tcp"]["ok"] is True


def test_probe_closed_port(free_port, capsys):
    assert main(["probe", "--host", "127.0.0.1", "--port", str(free_port), "--timeout", "0.5"]) == 1
    assert json.loads(capsys.readouterr().out)["ok"] is False


def test_serve_bind_failure(occupied_port, monkeypatch):
    monkeypatch.delenv("HELLO_DESCRIPTOR", raising=False)
    assert main(["serve", "--host", "127.0.0.1", "--port", str(occupied_port)]) == 1


def test_serve_bad_port_env(monkeypatch, capsys):
    monkeypatch.setenv("PORT", "nope")
    assert main(["serve"]) == 2
    assert json.loads(capsys.readouterr().out)["ok"] is False
