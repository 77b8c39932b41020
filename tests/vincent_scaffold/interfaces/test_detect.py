import json

import pytest

from vincent_scaffold.exceptions import PackageDetectionError
from vincent_scaffold.foundation.project_config import ProjectConfig
from vincent_scaffold.interfaces.scaffold.detect import detect_package, inspect_package, list_packages
from vincent_scaffold.interfaces.scaffold.packages import create_package


def _write_package(path, implementation, dependencies=None):
    path.mkdir(parents=True)
    deps = {"@lit-protocol/vincent-scaffold-sdk": "*"} if dependencies is None else dependencies
    (path / "package.json").write_text(json.dumps({"name": "@acme/pkg", "dependencies": deps}))
    (path / "tsconfig.json").write_text("{}")
    (path / implementation).parent.mkdir(parents=True, exist_ok=True)
    (path / implementation).write_text("export {};")


def test_generated_ability_is_detected(tmp_path):
    config = ProjectConfig(namespace="@acme", root=tmp_path)
    target = create_package("ability", "echo", config)

    package = detect_package(target)
    assert package.type == "ability"
    assert package.name == "echo"
    assert package.package_name == "@acme/vincent-ability-echo"
    assert package.metadata_file == target / "src" / "generated" / "vincent-ability-metadata.json"


def test_policy_is_detected(tmp_path):
    _write_package(tmp_path / "limit", "src/lib/vincent-policy.ts")
    package = inspect_package(tmp_path / "limit")
    assert package.type == "policy"
    assert package.metadata_file.name == "vincent-policy-metadata.json"


def test_legacy_tool_is_detected_as_ability(tmp_path):
    _write_package(tmp_path / "old", "src/lib/vincent-tool.ts", {"@lit-protocol/vincent-tool-sdk": "*"})
    assert inspect_package(tmp_path / "old").type == "ability"


@pytest.mark.parametrize(
    "implementation, dependencies",
    [
        ("src/lib/vincent-ability.ts", {"left-pad": "*"}),
        ("src/lib/other.ts", None),
    ],
)
def test_non_vincent_directories_are_ignored(tmp_path, implementation, dependencies):
    _write_package(tmp_path / "pkg", implementation, dependencies)
    assert inspect_package(tmp_path / "pkg") is None


def test_detect_uses_working_directory(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    with pytest.raises(PackageDetectionError, match="not a Vincent package"):
        detect_package()


def test_list_packages(tmp_path):
    config = ProjectConfig(root=tmp_path)
    create_package("policy", "b-limit", config)
    create_package("policy", "a-limit", config)
    (config.directory_for("policy") / "notes.txt").write_text("x")

    assert [p.name for p in list_packages(config, "policy")] == ["a-limit", "b-limit"]
    assert list_packages(config, "ability") == []
