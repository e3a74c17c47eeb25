import pytest
from pydantic import ValidationError

from exrmerge.config import AppConfig, FileSelection, MergeRequest, NamingSettings, create_config_from_env


def test_merge_request_from_manifest_dict():
    request = MergeRequest.model_validate(
        {"output": "out_####.exr", "files": [{"path": "a_1.exr", "channels": ["R", "G", "R"]}]}
    )
    assert request.threads == 0
    assert request.files[0].channels == frozenset({"R", "G"})
    assert request.entries() == [("a_1.exr", frozenset({"R", "G"}))]


@pytest.mark.parametrize(
    "payload",
    [
        {"output": "out.exr", "files": []},
        {"output": "  ", "files": [{"path": "a.exr", "channels": ["R"]}]},
        {"output": "out.exr", "threads": -1, "files": [{"path": "a.exr", "channels": ["R"]}]},
        {"output": "out.exr", "threads": 100000, "files": [{"path": "a.exr", "channels": ["R"]}]},
        {"output": "out.exr", "files": [{"path": "", "channels": ["R"]}]},
    ],
)
def test_merge_request_rejects_invalid_input(payload):
    with pytest.raises(ValidationError):
        MergeRequest.model_validate(payload)


def test_file_selection_is_frozen():
    selection = FileSelection(path="a.exr", channels=frozenset({"R"}))
    with pytest.raises(ValidationError):
        selection.path = "b.exr"


def test_placeholder_must_be_one_character():
    with pytest.raises(ValidationError):
        NamingSettings(placeholder="##")


def test_defaults():
    config = AppConfig()
    assert config.worker.reserved_cores == 2
    assert config.naming.placeholder == "#"
    assert config.file_extensions.supported_input_exts == {".exr"}


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("EXRMERGE_WORKER__RESERVED_CORES", "1")
    monkeypatch.setenv("EXRMERGE_TIME__POLL_INTERVAL", "0.5")
    config = create_config_from_env()
    assert config.worker.reserved_cores == 1
    assert config.time.poll_interval == 0.5


def test_is_supported_input_file(tmp_path):
    config = AppConfig()
    assert config.is_supported_input_file(tmp_path / "a_0001.EXR")
    assert not config.is_supported_input_file(tmp_path / "a_0001.png")
