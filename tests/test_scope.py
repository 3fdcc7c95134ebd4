from pathlib import Path

from rhlock.scope import PathScopeFilter, in_scope


def test_empty_root_disables_scope(tmp_path: Path):
    assert in_scope(tmp_path / "a.3dm", "") is False
    assert in_scope(tmp_path / "a.3dm", None) is False
    assert in_scope(tmp_path / "a.3dm", "   ") is False


def test_path_equal_to_root_is_in_scope(tmp_path: Path):
    assert in_scope(tmp_path, tmp_path) is True


def test_nested_path_is_in_scope(tmp_path: Path):
    assert in_scope(tmp_path / "projects" / "tower.3dm", tmp_path) is True


def test_root_with_trailing_separator(tmp_path: Path):
    assert in_scope(tmp_path / "tower.3dm", str(tmp_path) + "/") is True


def test_path_outside_root_is_out_of_scope(tmp_path: Path):
    root = tmp_path / "shared"
    assert in_scope(tmp_path / "local" / "tower.3dm", root) is False


def test_sibling_with_common_prefix_is_out_of_scope(tmp_path: Path):
    """shared2 is not under shared"""
    root = tmp_path / "shared"
    assert in_scope(tmp_path / "shared2" / "tower.3dm", root) is False


def test_comparison_is_case_insensitive(tmp_path: Path):
    root = tmp_path / "Shared"
    assert in_scope(tmp_path / "SHARED" / "Tower.3dm", root) is True


def test_relative_path_resolved_against_cwd(tmp_path: Path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    assert in_scope("drawings/tower.3dm", tmp_path) is True


def test_unresolvable_path_is_out_of_scope(tmp_path: Path):
    assert in_scope(12345, tmp_path) is False
    assert in_scope("", tmp_path) is False


def test_filter_wraps_configured_root(tmp_path: Path):
    scope = PathScopeFilter(tmp_path)
    assert scope.enabled is True
    assert scope.in_scope(tmp_path / "a.3dm") is True

    disabled = PathScopeFilter("")
    assert disabled.enabled is False
    assert disabled.in_scope(tmp_path / "a.3dm") is False
