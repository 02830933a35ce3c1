"""Tests for the Python pack."""

from __future__ import annotations

from repoatlas.packs import python
from repoatlas.packs.python import ImportStatement
from tests._fixtures.repo_builder import RepoBuilder


def test_extract_imports_handles_absolute_relative_and_grouped_forms() -> None:
    text = """
import os, sys as system
import pkg.models
from pkg import services, helpers as h
from . import sibling
from ..core import engine
from .utils import (
    a,
    b,
)
from x import *
"""

    assert python.extract_imports(text) == [
        ImportStatement(0, "os"),
        ImportStatement(0, "sys"),
        ImportStatement(0, "pkg.models"),
        ImportStatement(0, "pkg", ("services", "helpers")),
        ImportStatement(1, "", ("sibling",)),
        ImportStatement(2, "core", ("engine",)),
        ImportStatement(1, "utils", ("a", "b")),
        ImportStatement(0, "x", ()),
    ]


def test_analyze_resolves_src_layout_and_relative_imports(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/pkg/__init__.py": "",
            "src/pkg/cli.py": "from pkg import core\nfrom pkg.core import run\n",
            "src/pkg/core.py": "from . import util\nfrom .util import helper\nimport requests\n",
            "src/pkg/util.py": "def helper():\n    return 1\n",
            "src/pkg/jobs/worker.py": "from ..core import run\nfrom .. import util\n",
            "tests/pkg/test_core.py": "from pkg.core import run\n",
        }
    )

    result = python.analyze(repo_builder.path(), repo_builder.files())

    assert result.imports["src/pkg/cli.py"] == frozenset({"src/pkg/core.py"})
    assert result.imports["src/pkg/core.py"] == frozenset({"src/pkg/util.py"})
    assert result.imports["src/pkg/jobs/worker.py"] == frozenset({"src/pkg/core.py", "src/pkg/util.py"})
    assert result.fan_in["src/pkg/core.py"] == 3
    assert result.fan_in["src/pkg/util.py"] == 2
    assert result.test_files == frozenset({"tests/pkg/test_core.py"})
    assert result.test_proximity["src/pkg/core.py"] == 80
    assert result.test_proximity["src/pkg/util.py"] == 0
    assert "src/pkg/cli.py" in result.entrypoints


def test_package_roots_follow_manifest_hints(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "pyproject.toml": '[tool.setuptools.packages.find]\nwhere = ["src"]\n',
            "src/tool/main.py": "",
        }
    )

    assert python.detect_package_roots(repo_builder.path(), repo_builder.files()) == ["src", ""]


def test_mistyped_pyproject_layout_is_ignored(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "pyproject.toml": "[tool.poetry]\npackages = true\n",
            "app/main.py": "from app import util\n",
            "app/util.py": "",
            "app/__init__.py": "",
        }
    )

    result = python.analyze(repo_builder.path(), repo_builder.files())

    assert python.detect_package_roots(repo_builder.path(), repo_builder.files()) == [""]
    assert result.imports["app/main.py"] == frozenset({"app/util.py"})
    assert "app/main.py" in result.entrypoints


def test_flat_layout_uses_root_only(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"app/__init__.py": "", "app/models.py": ""})

    assert python.detect_package_roots(repo_builder.path(), repo_builder.files()) == [""]


def test_entrypoints_from_names_guards_and_manifests(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "pyproject.toml": '[project.scripts]\ndemo = "demo.console:main"\n',
            "setup.py": "setup(entry_points={'console_scripts': ['legacy = demo.legacy:run']})\n",
            "demo/__init__.py": "",
            "demo/__main__.py": "",
            "demo/console.py": "def main():\n    pass\n",
            "demo/legacy.py": "def run():\n    pass\n",
            "demo/script.py": 'if __name__ == "__main__":\n    print("hi")\n',
            "demo/library.py": "VALUE = 1\n",
            "manage.py": "",
        }
    )

    result = python.analyze(repo_builder.path(), repo_builder.files())

    assert result.entrypoints == frozenset(
        {"demo/__main__.py", "demo/console.py", "demo/legacy.py", "demo/script.py", "manage.py"}
    )


def test_test_detection_and_nested_proximity(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "app/views.py": "def index():\n    return 'ok'\n",
            "app/tests/test_views.py": "from app import views\n",
            "app/helpers.py": "",
            "app/helpers_test.py": "",
            "conftest.py": "",
        }
    )

    result = python.analyze(repo_builder.path(), repo_builder.files())

    assert result.test_files == frozenset({"app/tests/test_views.py", "app/helpers_test.py", "conftest.py"})
    assert result.test_proximity["app/views.py"] == 100
    assert python.is_test_file("test/unit/fixtures.py")
    assert not python.is_test_file("app/testing.py")


def test_nested_tests_directory_scores_ninety(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "service/api.py": "",
            "service/tests/test_api.py": "",
        }
    )

    result = python.analyze(repo_builder.path(), repo_builder.files())

    assert result.test_proximity["service/api.py"] == 90
    assert result.landmarks["service/api.py"].kind == "router"


def test_landmarks_for_web_frameworks(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"site/urls.py": "", "site/wsgi.py": "", "site/models.py": ""})

    landmarks = python.analyze(repo_builder.path(), repo_builder.files()).landmarks

    assert landmarks["site/urls.py"].kind == "route"
    assert landmarks["site/wsgi.py"].kind == "bootstrap"
    assert "site/models.py" not in landmarks


def test_measure_complexity_uses_indentation() -> None:
    text = (
        "# module comment\n"
        "def check(value):\n"
        "    if value and value > 1:\n"
        "        for item in range(value):\n"
        "            pass\n"
        "    return value\n"
    )

    signal = python.measure_complexity(text)

    assert signal.loc == 5
    assert signal.branches == 3
    assert signal.max_nesting == 3


def test_conftest_does_not_count_as_nearby_tests(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "conftest.py": "import pytest\n",
            "settings.py": "DEBUG = True\n",
            "pkg/conftest.py": "",
            "pkg/models.py": "",
            "pkg/test_models.py": "from pkg import models\n",
        }
    )

    result = python.analyze(repo_builder.path(), repo_builder.files())

    assert "conftest.py" in result.test_files
    assert result.test_proximity["conftest.py"] == 100
    assert result.test_proximity["settings.py"] == 0
    assert result.test_proximity["pkg/models.py"] == 100
