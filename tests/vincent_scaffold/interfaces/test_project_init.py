import json

import pytest

from vincent_scaffold.foundation.project_config import ProjectConfig, load_config
from vincent_scaffold.interfaces.scaffold import project
from vincent_scaffold.interfaces.scaffold.project import (
    ENV_SAMPLE_FILENAME,
    create_default_examples,
    initialize_project,
    update_gitignore,
    update_package_json,
    vincent_scripts,
)


@pytest.fixture
def config(tmp_path):
    return ProjectConfig(namespace="@acme", root=tmp_path)


def test_vincent_scripts(config):
    scripts = vincent_scripts(config, "./vincent-e2e")
    assert scripts["vincent:build"] == (
        "(cd ./vincent-packages/abilities/hello-world && npm install && npm run build)"
        " && (cd ./vincent-packages/policies/greeting-limit && npm install && npm run build)"
    )
    assert scripts["vincent:e2e"] == "python vincent-e2e/e2e.py"
    assert scripts["vincent:reset"] == "rm -f .e2e-state.json"


def test_gitignore_entries_are_added_once(tmp_path):
    (tmp_path / ".gitignore").write_text("dist/")
    assert update_gitignore(tmp_path) == [".e2e-state.json", "node_modules/"]
    assert update_gitignore(tmp_path) == []

    content = (tmp_path / ".gitignore").read_text()
    assert content.startswith("dist/\n")
    assert content.count(".e2e-state.json") == 1
    assert "# Vincent state file\n.e2e-state.json\n" in content


def test_package_json_is_merged(tmp_path, config):
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "mine", "scripts": {"test": "jest"}, "devDependencies": {"@lit-protocol/vincent-app-sdk": "^1.0.0"}})
    )
    assert update_package_json(tmp_path, config) is False

    data = json.loads((tmp_path / "package.json").read_text())
    assert data["name"] == "mine"
    assert data["scripts"]["test"] == "jest"
    assert "vincent:e2e" in data["scripts"]
    assert data["devDependencies"]["@lit-protocol/vincent-app-sdk"] == "^1.0.0"
    assert data["devDependencies"]["@lit-protocol/vincent-scaffold-sdk"] == "*"


def test_package_json_is_created(tmp_path, config):
    assert update_package_json(tmp_path, config) is True
    data = json.loads((tmp_path / "package.json").read_text())
    assert data["name"] == "vincent-project"
    assert data["private"] is True


def test_default_examples_skip_existing(config, tmp_path):
    (tmp_path / "vincent-packages" / "policies" / "greeting-limit").mkdir(parents=True)
    created, skipped = create_default_examples(config)
    assert created == ["@acme/vincent-ability-hello-world"]
    assert skipped == ["@acme/vincent-policy-greeting-limit"]


def test_initialize_project(tmp_path, config):
    report = initialize_project(tmp_path, config, e2e_dir="./vincent-e2e")

    assert report.warnings == []
    assert load_config(tmp_path).namespace == "@acme"
    assert (tmp_path / ENV_SAMPLE_FILENAME).read_text().startswith("# Vincent e2e environment")
    assert (tmp_path / "vincent-packages" / "abilities" / "hello-world" / "package.json").is_file()
    assert (tmp_path / "vincent-packages" / "policies" / "greeting-limit" / "package.json").is_file()
    assert (tmp_path / "vincent-e2e" / "e2e.py").is_file()
    assert ".e2e-state.json" in (tmp_path / ".gitignore").read_text()
    assert "@acme/vincent-ability-hello-world" in report.created
    assert "./vincent-e2e" in report.created


def test_initialize_without_examples(tmp_path, config):
    report = initialize_project(tmp_path, config, with_examples=False)
    assert not any(name.startswith("@acme/") for name in report.created)
    assert (tmp_path / "vincent-packages" / "abilities").is_dir()
    assert list((tmp_path / "vincent-packages" / "abilities").iterdir()) == []


def test_rerun_skips_existing_parts(tmp_path, config):
    initialize_project(tmp_path, config)
    report = initialize_project(tmp_path, config)
    assert "@acme/vincent-ability-hello-world" in report.skipped
    assert "./vincent-e2e" in report.skipped
    assert ".gitignore" not in report.created


def test_optional_step_failure_becomes_warning(tmp_path, config, monkeypatch):
    def broken(root, config, e2e_dir):
        raise OSError("read-only")

    monkeypatch.setattr(project, "update_package_json", broken)
    report = initialize_project(tmp_path, config, with_examples=False)
    assert report.warnings == ["Could not update package.json: read-only"]
    assert (tmp_path / "vincent.json").is_file()
