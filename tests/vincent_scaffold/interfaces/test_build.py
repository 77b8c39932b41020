import json
import subprocess

import pytest

from vincent_scaffold.exceptions import BuildError
from vincent_scaffold.foundation.project_config import ProjectConfig
from vincent_scaffold.interfaces.scaffold import build
from vincent_scaffold.interfaces.scaffold.build import (
    build_package,
    clean_package,
    esbuild_command,
    generate_lit_action,
)
from vincent_scaffold.interfaces.scaffold.detect import detect_package
from vincent_scaffold.interfaces.scaffold.packages import create_package


@pytest.fixture
def ability(tmp_path):
    target = create_package("ability", "echo", ProjectConfig(root=tmp_path))
    return detect_package(target)


class _FakeRunner:
    def __init__(self, returncode=0, stderr=""):
        self.returncode = returncode
        self.stderr = stderr
        self.calls = []

    def __call__(self, command, cwd, capture_output, text):
        self.calls.append((command, cwd))
        if self.returncode == 0:
            (cwd / "src" / "generated" / "lit-action.js").write_text("export default 1;")
            (cwd / "esBuildMetafile.json").write_text('{"inputs":{}}')
        return subprocess.CompletedProcess(command, self.returncode, stdout="", stderr=self.stderr)


def test_esbuild_command():
    command = esbuild_command("/usr/bin/npx")
    assert command[:3] == ["/usr/bin/npx", "--yes", "esbuild"]
    assert "./src/generated/lit-action.ts" in command
    assert "--format=esm" in command
    assert "--metafile=esBuildMetafile.json" in command


@pytest.mark.parametrize("kind", ["ability", "policy"])
def test_generate_lit_action(tmp_path, kind):
    target = generate_lit_action(kind, tmp_path / "generated")
    assert target.name == "lit-action.ts"
    assert target.read_text().strip()


def test_build_package_runs_esbuild(ability, monkeypatch):
    monkeypatch.setattr(build.shutil, "which", lambda name: "/usr/bin/npx")
    runner = _FakeRunner()

    bundle = build_package(ability, runner=runner)

    assert bundle == ability.generated_dir / "lit-action.js"
    assert (ability.generated_dir / "lit-action.ts").is_file()
    command, cwd = runner.calls[0]
    assert command[0] == "/usr/bin/npx"
    assert cwd == ability.path
    assert (ability.path / "esBuildMetafile.json").read_text() == json.dumps({"inputs": {}}, indent=2)


def test_missing_npx_is_reported(ability, monkeypatch):
    monkeypatch.setattr(build.shutil, "which", lambda name: None)
    with pytest.raises(BuildError, match="npx not found"):
        build_package(ability, runner=_FakeRunner())


def test_failed_bundle_is_reported(ability, monkeypatch):
    monkeypatch.setattr(build.shutil, "which", lambda name: "npx")
    with pytest.raises(BuildError, match="code 1: Could not resolve"):
        build_package(ability, runner=_FakeRunner(returncode=1, stderr="Could not resolve zod"))


def test_missing_tsconfig(ability):
    (ability.path / "tsconfig.json").unlink()
    with pytest.raises(BuildError, match="tsconfig.json not found"):
        build_package(ability, runner=_FakeRunner())


def test_clean_package(ability):
    (ability.path / "dist").mkdir()
    generate_lit_action("ability", ability.generated_dir)

    removed = clean_package(ability)
    assert removed == [ability.path / "dist", ability.generated_dir]
    assert not ability.generated_dir.exists()
    assert clean_package(ability) == []
