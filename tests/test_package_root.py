from __future__ import annotations

from folio import __version__, main


def test_package_main_shows_help(capsys) -> None:
    main([])
    out = capsys.readouterr().out
    assert "Folio command line tools." in out
    for command in ("cluster", "train", "enrich", "build", "config"):
        assert command in out


def test_package_version_matches_manifest_field() -> None:
    assert __version__ == "0.1.0"
