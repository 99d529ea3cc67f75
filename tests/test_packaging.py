"""Tests for the project metadata."""

from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


def test_readme_is_the_project_readme():
    pyproject = (ROOT / "pyproject.toml").read_text(encoding="utf-8")
    assert 'readme = "README.md"' in pyproject
    readme = (ROOT / "README.md").read_text(encoding="utf-8")
    assert readme.startswith("# polerecon")
    assert "--table" in readme
