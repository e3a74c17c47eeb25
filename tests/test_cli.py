import json
from pathlib import Path

import pytest

from exrmerge.cli.categories import categorize_channels
from exrmerge.cli.main import main, parse_channel_list


def make_sequence(tmp_path: Path, fake_codec, frames=3):
    """Create empty .exr files so globbing matches, backed by an in-memory codec."""
    files = {}
    for frame in range(1, frames + 1):
        for layer, channels in (("beauty", {"R": 1.0, "G": 1.0, "B": 1.0, "A": 1.0}), ("aov", {"Z": 2.0, "N.X": 3.0})):
            path = tmp_path / f"{layer}_{frame:04d}.exr"
            path.touch()
            files[str(path)] = channels
    (tmp_path / "notes_0001.txt").touch()
    return fake_codec(files)


def test_parse_channel_list():
    assert parse_channel_list("R, G,B,,") == frozenset({"R", "G", "B"})
    assert parse_channel_list(" * ") is None
    with pytest.raises(ValueError):
        parse_channel_list(" , ")


def test_categorize_channels():
    groups = categorize_channels(["Z", "B", "R", "N.Y", "AO.R", "crypto_object00.R", "myaov", "A"])
    assert groups == [
        ("Color (Beauty)", ["A", "B", "R"]),
        ("Normal (N)", ["N.Y"]),
        ("Depth (Z)", ["Z"]),
        ("Ambient Occlusion (AO)", ["AO.R"]),
        ("Crypto Object", ["crypto_object00.R"]),
        ("Others", ["myaov"]),
    ]


def test_main_merges_sequences(tmp_path: Path, fake_codec):
    codec = make_sequence(tmp_path, fake_codec)
    report = tmp_path / "report.json"
    log_file = tmp_path / "exrmerge.log"

    code = main(
        [
            "-o", str(tmp_path / "comp_####.exr"),
            "-s", str(tmp_path / "beauty_*"), "R,G,B",
            "-s", str(tmp_path / "aov_*"), "Z",
            "-w", "2",
            "-q",
            "--report", str(report),
            "--log-file", str(log_file),
        ],
        codec=codec,
    )

    assert code == 0
    assert sorted(codec.written) == [str(tmp_path / f"comp_{i:04d}.exr") for i in (1, 2, 3)]
    assert list(codec.written[str(tmp_path / "comp_0002.exr")]) == ["B", "G", "R", "Z"]
    data = json.loads(report.read_text())
    assert data["files"] == 6
    assert data["errors"] == []
    assert data["progress"] == {"done": 9, "max": 9, "finished": True}
    assert "[SUCCESS] All frames merged" in log_file.read_text()


def test_main_star_selects_all_channels(tmp_path: Path, fake_codec):
    codec = make_sequence(tmp_path, fake_codec, frames=2)
    code = main(["-o", str(tmp_path / "o_#.exr"), "-s", str(tmp_path / "aov_*"), "*", "-q"], codec=codec)
    assert code == 0
    assert list(codec.written[str(tmp_path / "o_1.exr")]) == ["N.X", "Z"]


def test_main_reports_frame_errors(tmp_path: Path, fake_codec):
    codec = make_sequence(tmp_path, fake_codec, frames=2)
    report = tmp_path / "report.json"
    code = main(
        [
            "-o", str(tmp_path / "o_#.exr"),
            "-s", str(tmp_path / "beauty_*"), "Q",
            "-q",
            "--report", str(report),
        ],
        codec=codec,
    )
    assert code == 1
    assert codec.written == {}
    errors = json.loads(report.read_text())["errors"]
    assert sorted(errors) == ["frame 1 has no channels", "frame 2 has no channels"]


def test_main_with_manifest(tmp_path: Path, fake_codec):
    codec = make_sequence(tmp_path, fake_codec, frames=1)
    manifest = tmp_path / "jobs.json"
    manifest.write_text(
        json.dumps(
            {
                "output": str(tmp_path / "m_###.exr"),
                "threads": 1,
                "files": [
                    {"path": str(tmp_path / "beauty_0001.exr"), "channels": ["A"]},
                    {"path": str(tmp_path / "aov_0001.exr"), "channels": ["Z"]},
                ],
            }
        )
    )
    code = main(["-m", str(manifest), "-f", str(tmp_path / "beauty_0001.exr"), "R", "-q"], codec=codec)
    assert code == 0
    assert list(codec.written[str(tmp_path / "m_001.exr")]) == ["A", "R", "Z"]


@pytest.mark.parametrize(
    "argv",
    [
        ["-s", "nothing_here_*.exr", "R"],
        ["-o", "out_#.exr"],
        ["-o", "out_#.exr", "-w", "-3", "-f", "a_1.exr", "R"],
        ["-o", "out_#.exr", "-f", "a_1.exr", " , "],
    ],
)
def test_main_rejects_invalid_input(tmp_path: Path, fake_codec, argv):
    argv = [str(tmp_path / a) if a.startswith("nothing_here") else a for a in argv]
    assert main(argv + ["-q"], codec=fake_codec({})) == 2


def test_main_star_on_unreadable_file(tmp_path: Path, fake_codec):
    assert main(["-o", "o_#.exr", "-f", "broken_1.exr", "*", "-q"], codec=fake_codec({})) == 2


def test_list_channels(capsys, fake_codec):
    codec = fake_codec({"render_0001.exr": {"R": 1.0, "Z": 1.0, "N.X": 1.0}})
    assert main(["--list-channels", "render_0001.exr"], codec=codec) == 0
    out = capsys.readouterr().out
    assert "Depth" in out
    assert "N.X" in out


def test_list_channels_unreadable(fake_codec):
    assert main(["--list-channels", "missing.exr"], codec=fake_codec({})) == 1


def test_main_manifest_that_is_a_directory(tmp_path: Path, fake_codec):
    manifest = tmp_path / "jobs.json"
    manifest.mkdir()
    assert main(["-m", str(manifest), "-q"], codec=fake_codec({})) == 2
