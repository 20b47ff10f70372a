"""Tests for the find_fountains command-line script. The repository is mocked."""

import importlib.util
import json
import sys
import pytest
from pathlib import Path
from unittest.mock import MagicMock, patch

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from src.data.schema import Coordinate, FountainRecord


def _load_script():
    path = PROJECT_ROOT / "scripts" / "find_fountains.py"
    spec = importlib.util.spec_from_file_location("find_fountains", path)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def cli(monkeypatch, tmp_path):
    monkeypatch.setenv("AQUAFINDER_CACHE_PATH", str(tmp_path / "cache.json"))
    monkeypatch.delenv("AQUAFINDER_RADIUS_M", raising=False)
    return _load_script()


@pytest.fixture
def repository():
    repo = MagicMock()
    repo.fetch_fountains.return_value = [
        FountainRecord(
            id="111", name="Main Library Fountain",
            coordinate=Coordinate(latitude=40.7128, longitude=-74.0060),
        ),
    ]
    return repo


BASE_ARGS = ["--lat", "40.7128", "--lon", "-74.0060"]


class TestRadiusArgument:
    @pytest.mark.parametrize("radius", ["0", "-250"])
    def test_non_positive_radius_is_rejected(self, cli, repository, radius):
        with patch.object(cli, "build_repository", return_value=repository):
            with pytest.raises(SystemExit) as exc:
                cli.main(BASE_ARGS + ["--radius-m", radius])

        assert exc.value.code == 2
        repository.fetch_fountains.assert_not_called()

    def test_explicit_radius_is_used(self, cli, repository, capsys):
        with patch.object(cli, "build_repository", return_value=repository):
            cli.main(BASE_ARGS + ["--radius-m", "750"])

        _, radius = repository.fetch_fountains.call_args[0]
        assert radius == 750.0
        assert json.loads(capsys.readouterr().out)["radius_m"] == 750.0

    def test_default_radius_from_config(self, cli, repository, capsys):
        with patch.object(cli, "build_repository", return_value=repository):
            cli.main(BASE_ARGS)

        output = json.loads(capsys.readouterr().out)
        assert output["radius_m"] == 5000.0
        assert [f["id"] for f in output["fountains"]] == ["111"]
