"""Tests for the Java pack."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import pytest

from repoatlas.budget import AnalysisBudget
from repoatlas.packs import java
from repoatlas.packs.java import ClassIndex
from tests._fixtures.repo_builder import RepoBuilder

MAIN = "src/main/java/com/acme"
TEST = "src/test/java/com/acme"


def _class(package: str, name: str, body: str = "", imports: str = "") -> str:
    return f"package {package};\n{imports}\npublic class {name} {{\n{body}\n}}\n"


def test_class_index_resolves_exact_wildcard_and_static_imports() -> None:
    index = ClassIndex(
        {
            "a/Service.java": "com.acme.service",
            "a/Repo.java": "com.acme.service",
            "b/Util.java": "com.acme.util",
        }
    )

    assert index.resolve("com.acme.util.Util") == ["b/Util.java"]
    assert index.resolve("com.acme.service.*") == ["a/Repo.java", "a/Service.java"]
    assert index.resolve("com.acme.util.Util.helper", static=True) == ["b/Util.java"]
    assert index.resolve("com.acme.util.Util.*", static=True) == ["b/Util.java"]
    assert index.resolve("com.acme.util.Util.helper") == []
    assert index.resolve("java.util.List") == []


def test_extract_imports_marks_static() -> None:
    text = "import java.util.List;\nimport static com.acme.Util.helper;\nimport com.acme.model.*;\n"

    assert java.extract_imports(text) == [
        ("java.util.List", False),
        ("com.acme.Util.helper", True),
        ("com.acme.model.*", False),
    ]


def test_analyze_builds_graph_and_package_architecture(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            f"{MAIN}/Application.java": _class(
                "com.acme",
                "Application",
                "public static void main(String[] args) { SpringApplication.run(Application.class, args); }",
                "import com.acme.web.UserController;",
            ),
            f"{MAIN}/web/UserController.java": _class(
                "com.acme.web",
                "UserController",
                "@GetMapping public String list() { return service.all(); }",
                "import com.acme.service.*;\nimport static com.acme.util.Strings.join;",
            ),
            f"{MAIN}/service/UserService.java": _class("com.acme.service", "UserService"),
            f"{MAIN}/util/Strings.java": _class("com.acme.util", "Strings"),
            "target/classes/Ignored.java": _class("com.acme", "Ignored"),
        }
    )

    result = java.analyze(repo_builder.path(), repo_builder.files())

    assert "target/classes/Ignored.java" not in result.files
    assert result.imports[f"{MAIN}/Application.java"] == frozenset({f"{MAIN}/web/UserController.java"})
    assert result.imports[f"{MAIN}/web/UserController.java"] == frozenset(
        {f"{MAIN}/service/UserService.java", f"{MAIN}/util/Strings.java"}
    )
    assert f"{MAIN}/Application.java" in result.entrypoints
    assert result.landmarks[f"{MAIN}/Application.java"].kind == "bootstrap"
    assert result.landmarks[f"{MAIN}/web/UserController.java"].kind == "route"

    node_ids = {node.id for node in result.architecture.nodes}
    assert node_ids == {"com.acme", "com.acme.web", "com.acme.service", "com.acme.util"}
    edges = {(edge.source, edge.target) for edge in result.architecture.edges}
    assert ("com.acme.web", "com.acme.service") in edges
    assert "Architecture reduced from file-level" not in " ".join(result.warnings)


def test_framework_annotations_mark_entrypoints(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "src/main/java/api/Users.java": _class("api", "Users", '@Path("/users") @GET public String get() { return ""; }'),
            "src/main/java/api/Plain.java": _class("api", "Plain"),
        }
    )

    result = java.analyze(repo_builder.path(), repo_builder.files())

    assert result.entrypoints == frozenset({"src/main/java/api/Users.java"})


def test_multiple_main_classes_warn(repo_builder: RepoBuilder) -> None:
    main_body = "public static void main(String[] args) { }"
    repo_builder.write(
        {
            "tools/One.java": _class("tools", "One", main_body),
            "tools/Two.java": _class("tools", "Two", main_body),
        }
    )

    result = java.analyze(repo_builder.path(), repo_builder.files())

    assert result.entrypoints == frozenset({"tools/One.java", "tools/Two.java"})
    assert "Multiple main() entrypoints detected: tools/One.java, tools/Two.java" in result.warnings


def test_mirrored_test_proximity_tiers(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            f"{MAIN}/Billing.java": _class("com.acme", "Billing"),
            f"{MAIN}/Gateway.java": _class("com.acme", "Gateway"),
            f"{MAIN}/Ledger.java": _class("com.acme", "Ledger"),
            f"{MAIN}/other/Orphan.java": _class("com.acme.other", "Orphan"),
            f"{TEST}/BillingTest.java": _class("com.acme", "BillingTest"),
            f"{TEST}/GatewayIT.java": _class("com.acme", "GatewayIT"),
        }
    )

    result = java.analyze(repo_builder.path(), repo_builder.files())

    assert result.test_files == frozenset({f"{TEST}/BillingTest.java", f"{TEST}/GatewayIT.java"})
    assert result.test_proximity[f"{TEST}/BillingTest.java"] == 100
    assert result.test_proximity[f"{MAIN}/Billing.java"] == 100
    assert result.test_proximity[f"{MAIN}/Gateway.java"] == 90
    assert result.test_proximity[f"{MAIN}/Ledger.java"] == 80
    assert result.test_proximity[f"{MAIN}/other/Orphan.java"] == 0


def test_package_of_prefers_source_root_then_declaration() -> None:
    packages = {"legacy/src/Thing.java": "org.example.legacy"}

    assert java.package_of("module/src/main/java/org/example/A.java", {}) == "org.example"
    assert java.package_of("legacy/src/Thing.java", packages) == "org.example.legacy"
    assert java.package_of("scripts/Run.java", {}) == "scripts"
    assert java.package_of("Run.java", {}) == "."


def test_is_test_file_patterns() -> None:
    assert java.is_test_file("src/test/java/com/acme/Fixtures.java")
    assert java.is_test_file("core/BillingTests.java")
    assert java.is_test_file("core/BillingTestCase.java")
    assert not java.is_test_file("core/Testimony.java")


def test_expired_budget_skips_class_index_reads(
    repo_builder: RepoBuilder, monkeypatch: pytest.MonkeyPatch
) -> None:
    repo_builder.write({f"{MAIN}/C{number}.java": _class("com.acme", f"C{number}") for number in range(20)})
    reads: List[str] = []
    original = java.read_source

    def counting_read(root: Path, rel_path: str) -> Optional[str]:
        reads.append(rel_path)
        return original(root, rel_path)

    monkeypatch.setattr(java, "read_source", counting_read)

    result = java.analyze(repo_builder.path(), repo_builder.files(), budget=AnalysisBudget(0))

    assert reads == []
    assert result.files == ()
    assert any("0 of 20 files" in warning for warning in result.warnings)


def test_class_index_stops_when_budget_runs_out(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "a/One.java": _class("a", "One"),
            "b/Two.java": _class("b", "Two"),
        }
    )

    class _Countdown(AnalysisBudget):
        def __init__(self, checks: int) -> None:
            super().__init__(None)
            self.checks = checks

        def exhausted(self) -> bool:
            self.checks -= 1
            return self.checks < 0

    index = ClassIndex.build(repo_builder.path(), ["a/One.java", "b/Two.java"], _Countdown(1))

    assert index.packages == {"a/One.java": "a"}
