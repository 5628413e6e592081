"""Tests for the dist command flow."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from tests._fixtures.fakes import ScriptedPrompts
from tplforge.config import ToolConfig
from tplforge.dist import DistBuilder, DistResult, build_dist_manifest, list_entry_candidates
from tplforge.errors import AppExit, EntryNotFound
from tplforge.models import Cancelled, Completed, Failed


@pytest.fixture
def demo_project(project_builder) -> Path:
    project_builder.package_json(
        {
            "name": "demo",
            "version": "2.0.0",
            "license": "MIT",
            "scripts": {"build": "tsc"},
            "dependencies": {"lodash": "^4.17.21", "react": "^18.2.0"},
            "devDependencies": {"zod": "^3.22.0", "typescript": "^5.0.0"},
        }
    )
    project_builder.write(
        {
            "main.ts": """
                import { pad } from "./lib/util";
                import _ from "lodash";
                import { z } from "zod";
                import leftPad from "left-pad";

                export const run = () => pad(_.identity(z.string().parse(leftPad("a", 2))));
            """,
            "lib/util.ts": "export const pad = (value: string) => value;\n",
            "cli.js": "console.log('hi');\n",
        }
    )
    return project_builder.path()


def _builder(root: Path, prompts: ScriptedPrompts | None = None) -> DistBuilder:
    return DistBuilder(prompts=prompts or ScriptedPrompts(), config=ToolConfig(root=root), cwd=root)


def test_dist_with_arguments_writes_output_and_manifest(demo_project: Path) -> None:
    outcome = _builder(demo_project).run("main.ts", "out")

    assert isinstance(outcome, Completed)
    result = outcome.value
    assert isinstance(result, DistResult)
    out_dir = demo_project / "out"
    assert result.out_dir == out_dir
    assert sorted(path.name for path in out_dir.iterdir()) == ["index.ts", "lib_util.ts", "package.json"]

    manifest = json.loads((out_dir / "package.json").read_text(encoding="utf-8"))
    assert manifest["name"] == "demo"
    assert manifest["version"] == "2.0.0"
    assert manifest["license"] == "MIT"
    assert "scripts" not in manifest
    assert manifest["type"] == "module"
    assert manifest["main"] == "./index.ts"
    assert manifest["types"] == "./index.ts"
    assert manifest["exports"] == {".": {"types": "./index.ts", "import": "./index.ts", "default": "./index.ts"}}
    assert manifest["dependencies"] == {"left-pad": "", "lodash": "^4.17.21"}
    assert manifest["devDependencies"] == {"zod": "^3.22.0"}


def test_dist_prompts_for_missing_answers(demo_project: Path) -> None:
    prompts = ScriptedPrompts(None, "main.ts")

    outcome = _builder(demo_project, prompts).run()

    assert isinstance(outcome, Completed)
    assert (demo_project / "dist" / "index.ts").is_file()
    assert prompts.asked == ["Output directory name", "Select the entry file"]


def test_dist_reprompts_when_directory_exists(demo_project: Path) -> None:
    (demo_project / "taken").mkdir()
    prompts = ScriptedPrompts("taken", "fresh", "main.ts")

    outcome = _builder(demo_project, prompts).run()

    assert isinstance(outcome, Completed)
    assert outcome.value.out_dir == demo_project / "fresh"


def test_dist_naming_and_tree_shake_overrides(demo_project: Path) -> None:
    outcome = _builder(demo_project).run("main.ts", "hashed", naming="hash", tree_shake=True)

    assert isinstance(outcome, Completed)
    names = set(outcome.value.extraction.outputs.values())
    assert "index.ts" in names
    assert any(name.startswith("util.") for name in names)


def test_cancel_at_directory_prompt_leaves_nothing(demo_project: Path) -> None:
    outcome = _builder(demo_project, ScriptedPrompts(Cancelled())).run()

    assert isinstance(outcome, Cancelled)
    assert not (demo_project / "dist").exists()


def test_cancel_at_entry_prompt_leaves_nothing(demo_project: Path) -> None:
    outcome = _builder(demo_project, ScriptedPrompts("out", Cancelled())).run()

    assert isinstance(outcome, Cancelled)
    assert not (demo_project / "out").exists()


def test_existing_output_directory_argument_fails(demo_project: Path) -> None:
    (demo_project / "out").mkdir()

    outcome = _builder(demo_project).run("main.ts", "out")

    assert isinstance(outcome, Failed)
    assert isinstance(outcome.error, AppExit)


def test_missing_entry_fails_without_output(demo_project: Path) -> None:
    outcome = _builder(demo_project).run("nope.ts", "out")

    assert isinstance(outcome, Failed)
    assert isinstance(outcome.error, EntryNotFound)
    assert not (demo_project / "out").exists()


def test_dist_outside_a_project_fails(tmp_path: Path) -> None:
    outcome = _builder(tmp_path).run("main.ts", "out")

    assert isinstance(outcome, Failed)


def test_list_entry_candidates_only_lists_top_level_scripts(demo_project: Path) -> None:
    assert [path.name for path in list_entry_candidates(demo_project)] == ["cli.js", "main.ts"]


def test_build_dist_manifest_for_javascript_entry() -> None:
    manifest = build_dist_manifest(
        {"description": "tool"},
        "index.js",
        fallback_name="out",
        dependencies={"chalk": "^5.0.0"},
        dev_dependencies={},
    )

    assert manifest["name"] == "out"
    assert manifest["version"] == "1.0.0"
    assert manifest["description"] == "tool"
    assert "types" not in manifest
    assert manifest["exports"] == {".": {"import": "./index.js", "default": "./index.js"}}
    assert manifest["dependencies"] == {"chalk": "^5.0.0"}
    assert manifest["devDependencies"] == {}
