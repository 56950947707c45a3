from pathlib import Path

import pytest
import yaml

from nvr_installer.errors import ComposeNotFoundError
from nvr_installer.provision.compose import (
    ComposeLocator,
    find_compose_files,
    strip_version_key,
)


def test_existing_compose_file_is_used_as_is(tmp_path: Path):
    f = tmp_path / "docker-compose.yml"
    f.write_text("services:\n  web:\n    image: nginx\n")
    d = ComposeLocator().locate(tmp_path)
    assert d.path == f
    assert d.origin == "existing"
    assert not d.version_stripped
    assert not (tmp_path / "docker-compose.yml.bak").exists()


def test_search_is_recursive_and_case_insensitive(tmp_path: Path):
    nested = tmp_path / "deploy" / "prod"
    nested.mkdir(parents=True)
    f = nested / "Docker-Compose.YAML"
    f.write_text("services: {}\n")
    assert ComposeLocator().locate(tmp_path).path == f


def test_hidden_directories_are_skipped(tmp_path: Path):
    hidden = tmp_path / ".github"
    hidden.mkdir()
    (hidden / "docker-compose.yml").write_text("services: {}\n")
    assert find_compose_files(tmp_path) == []


def test_shallowest_match_wins(tmp_path: Path):
    (tmp_path / "a" / "b").mkdir(parents=True)
    (tmp_path / "a" / "b" / "docker-compose.yml").write_text("services: {}\n")
    (tmp_path / "z").mkdir()
    (tmp_path / "z" / "docker-compose.yml").write_text("services: {}\n")
    assert find_compose_files(tmp_path)[0] == tmp_path / "z" / "docker-compose.yml"


def test_docker_subfolder(tmp_path: Path):
    (tmp_path / "docker").mkdir()
    f = tmp_path / "docker" / "docker-compose.yml"
    f.write_text("services: {}\n")
    assert ComposeLocator().locate(tmp_path).path == f


def test_template_is_copied_to_canonical_name(tmp_path: Path):
    (tmp_path / "deploy").mkdir()
    tpl = tmp_path / "deploy" / "docker-compose.example.yml"
    tpl.write_text("services:\n  web:\n    image: ghcr.io/acme/web\n")

    d = ComposeLocator().locate(tmp_path)

    assert d.origin == "template"
    assert d.template == tpl
    assert d.path == tmp_path / "docker-compose.yml"
    assert d.path.read_text() == tpl.read_text()


@pytest.mark.parametrize("name", ["compose.sample.yaml", "docker-compose.yml.default", "my-compose.EXAMPLE"])
def test_template_markers(tmp_path: Path, name):
    (tmp_path / name).write_text("services: {}\n")
    assert ComposeLocator().locate(tmp_path).origin == "template"


def test_minimal_definition_is_synthesized(tmp_path: Path):
    d = ComposeLocator().locate(tmp_path)

    assert d.origin == "synthesized"
    assert d.path == tmp_path / "docker-compose.yml"
    data = yaml.safe_load(d.path.read_text())
    assert sorted(data["services"]) == ["ffmpeg", "frontend"]
    for svc in data["services"].values():
        assert svc["env_file"] == "./.env"
        assert svc["restart"] == "always"
        assert "build" in svc
    assert data["services"]["frontend"]["ports"] == ["${HOST_IP:-0.0.0.0}:3000:3000"]
    assert "version" not in data
    assert d.services() == ["frontend", "ffmpeg"]


def test_no_synthesis_reports_searched_locations(tmp_path: Path):
    with pytest.raises(ComposeNotFoundError) as ei:
        ComposeLocator(synthesize=False).locate(tmp_path)
    msg = str(ei.value)
    assert "docker-compose.yml" in msg
    assert "docker/docker-compose.yml" in msg
    assert "re-run" in msg


@pytest.mark.parametrize("line", ['version: "3.8"\n', 'VERSION: "3"\n', '   Version: 2.4\n', "\tversion: '3'\n"])
def test_version_key_stripped_with_exact_backup(tmp_path: Path, line):
    f = tmp_path / "docker-compose.yml"
    original = (line + "services:\n  web:\n    image: nginx\n").encode()
    f.write_bytes(original)

    d = ComposeLocator().locate(tmp_path)

    assert d.version_stripped
    assert (tmp_path / "docker-compose.yml.bak").read_bytes() == original
    assert f.read_text() == "services:\n  web:\n    image: nginx\n"


def test_stripping_is_idempotent(tmp_path: Path):
    f = tmp_path / "docker-compose.yml"
    f.write_text('version: "3.8"\nservices: {}\n')
    ComposeLocator().locate(tmp_path)
    bak = tmp_path / "docker-compose.yml.bak"
    first_bak = bak.read_bytes()
    first_mtime = bak.stat().st_mtime_ns

    d = ComposeLocator().locate(tmp_path)

    assert not d.version_stripped
    assert bak.read_bytes() == first_bak
    assert bak.stat().st_mtime_ns == first_mtime
    assert sorted(p.name for p in tmp_path.iterdir()) == ["docker-compose.yml", "docker-compose.yml.bak"]


def test_strip_version_key_without_match_returns_none(tmp_path: Path):
    f = tmp_path / "c.yml"
    f.write_text("services: {}\n")
    assert strip_version_key(f) is None
    assert not (tmp_path / "c.yml.bak").exists()


def test_non_utf8_compose_is_stripped_byte_exact(tmp_path: Path):
    original = b'version: "3.8"\n# caf\xe9 camera\nservices: {}\n'
    f = tmp_path / "docker-compose.yml"
    f.write_bytes(original)

    d = ComposeLocator().locate(tmp_path)

    assert d.version_stripped
    assert f.read_bytes() == b"# caf\xe9 camera\nservices: {}\n"
    assert (tmp_path / "docker-compose.yml.bak").read_bytes() == original


def test_form_feed_and_crlf_lines_survive_stripping(tmp_path: Path):
    f = tmp_path / "docker-compose.yml"
    f.write_bytes(b"version: '3'\r\nservices:\r\n  app:\x0c\r\n    image: nginx\r\n")
    strip_version_key(f)
    assert f.read_bytes() == b"services:\r\n  app:\x0c\r\n    image: nginx\r\n"
