import json
import os
import signal
import tempfile
import time
import unittest
from unittest.mock import patch
from gobuildpack.cache import RESULT_FILE, CacheStore
from gobuildpack.config import BuildConfig
from gobuildpack.errors import BuildFailure, CacheIOError, InstallError
from gobuildpack.orchestrator import FAILED, FINISHED, BuildContext, BuildOrchestrator
from gobuildpack.utils import remove_tree


class FakeInstaller:
    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def install(self, tool_name, version_spec, dest_path):
        self.calls.append((tool_name, version_spec))
        if self.fail:
            raise InstallError(tool_name, version_spec, "download failed: 404")
        os.makedirs(dest_path, exist_ok=True)
        return "go1.22.5" if tool_name == "go" else "v1.0.0"


class OrchestratorTestCase(unittest.TestCase):

    def setUp(self):
        self.build_dir = tempfile.mkdtemp()
        self.cache_dir = tempfile.mkdtemp()
        self.installer = FakeInstaller()

    def tearDown(self):
        remove_tree(self.build_dir)
        remove_tree(self.cache_dir)

    def _write(self, relative_path, content=""):
        path = os.path.join(self.build_dir, relative_path)
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, "w") as f:
            f.write(content)

    def _run(self, **config):
        orchestrator = BuildOrchestrator(self.build_dir, self.cache_dir, BuildConfig(**config),
                                         installer=self.installer)
        return orchestrator.run()

    def _saved_result(self):
        with open(os.path.join(self.cache_dir, RESULT_FILE), "r") as f:
            return json.load(f)


def _fake_go(command, env=None, cwd=None, description=None):
    """Stand in for go: extract a read-only module on download, drop a binary on install."""
    if command[:3] == ["go", "mod", "download"]:
        module_dir = os.path.join(env["GOMODCACHE"], "example.com", "dep@v1.0.0")
        if not os.path.isdir(module_dir):
            os.makedirs(module_dir)
            with open(os.path.join(module_dir, "dep.go"), "w") as f:
                f.write("package dep\n")
            os.chmod(os.path.join(module_dir, "dep.go"), 0o444)
            os.chmod(module_dir, 0o555)
    elif command[:2] == ["go", "install"]:
        os.makedirs(env["GOBIN"], exist_ok=True)
        open(os.path.join(env["GOBIN"], "web"), "w").close()
    return ""


class TestBuildContext(unittest.TestCase):

    def test_warnings_are_recorded_once(self):
        context = BuildContext()
        context.record_warning("careful")
        context.record_warning("careful")
        self.assertEqual(context.warnings, ["careful"])

    def test_record_stage(self):
        context = BuildContext()
        context.record_stage("Init")
        self.assertEqual(context.stage, "Init")


@patch("gobuildpack.strategies.modules.run_command", side_effect=_fake_go)
class TestModulesBuild(OrchestratorTestCase):

    def test_successful_build(self, mock_run):
        self._write("go.mod", "module example.com/app\ngo 1.22\n")
        self._write(os.path.join("cmd", "web", "main.go"), "package main\n")
        result = self._run()

        self.assertTrue(result.success)
        self.assertEqual(result.exit_code, 0)
        self.assertEqual(result.state, FINISHED)
        self.assertEqual(result.last_stage, FINISHED)
        self.assertEqual(result.strategy, "modules")
        self.assertEqual(result.go_version, "go1.22.5")
        self.assertEqual(result.package_spec, ["./cmd/web"])
        self.assertEqual(result.cache_state, "empty")
        self.assertEqual(self.installer.calls, [("go", "1.22")])
        install = mock_run.call_args_list[-1][0][0]
        self.assertEqual(install, ["go", "install", "-tags", "heroku", "./cmd/web"])
        self.assertTrue(os.path.exists(os.path.join(self.build_dir, "bin", "web")))
        self.assertEqual(self._saved_result()["state"], FINISHED)

    def test_build_time_files_are_pruned(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        self._run()
        self.assertFalse(os.path.exists(os.path.join(self.build_dir, ".gobuildpack")))

    def test_tools_kept_in_image_when_asked(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        self._run(install_tools_in_image=True)
        self.assertTrue(os.path.isdir(os.path.join(self.build_dir, ".gobuildpack", "go")))
        self.assertFalse(os.path.exists(os.path.join(self.build_dir, ".gobuildpack", "modcache")))

    def test_cache_reused_then_invalidated(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        self.assertEqual(self._run().cache_state, "empty")

        second = self._run()
        self.assertEqual(second.cache_state, "valid")
        self.assertIn(os.path.join(".gobuildpack", "modcache"), second.restored)

        third = self._run(stack="heroku-24")
        self.assertEqual(third.cache_state, "new-signature")
        self.assertEqual(third.restored, [])

    def test_read_only_module_cache_survives_rebuilds(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        first = self._run()
        self.assertTrue(first.success, first.message)
        self.assertFalse(os.path.exists(os.path.join(self.build_dir, ".gobuildpack")))

        second = self._run()
        self.assertTrue(second.success, second.message)
        self.assertEqual(second.cache_state, "valid")
        self.assertEqual(self._saved_result()["state"], FINISHED)

    @patch.object(CacheStore, "read_signature", side_effect=CacheIOError("Could not read cache signature: denied"))
    def test_unreadable_signature_builds_without_cache(self, mock_read, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        result = self._run()
        self.assertTrue(result.success, result.message)
        self.assertEqual(result.cache_state, "empty")
        self.assertTrue(any("Could not read cache signature" in w for w in result.warnings))

    def test_restore_failure_builds_without_cache(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        self._run()
        with patch.object(CacheStore, "restore", side_effect=CacheIOError("Could not restore cache: denied")):
            result = self._run()
        self.assertTrue(result.success, result.message)
        self.assertEqual(result.cache_state, "valid")
        self.assertEqual(result.restored, [])
        self.assertTrue(any("continuing without cache" in w for w in result.warnings))

    @patch.object(CacheStore, "save", side_effect=CacheIOError("Could not save cache: disk full"))
    def test_save_failure_is_a_warning(self, mock_save, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        result = self._run()
        self.assertTrue(result.success, result.message)
        self.assertEqual(result.state, FINISHED)
        self.assertTrue(any("next build will start without cache" in w for w in result.warnings))

    def test_cache_disabled(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        result = self._run(disable_cache=True)
        self.assertEqual(result.cache_state, "disabled")
        self.assertFalse(os.path.exists(os.path.join(self.cache_dir, "signature")))

    def test_go_version_from_config_wins(self, mock_run):
        self._write("go.mod", "module example.com/app\ngo 1.20\n")
        self._write("main.go", "package main\n")
        self._run(go_version="go1.21")
        self.assertEqual(self.installer.calls[0], ("go", "go1.21"))

    def test_no_markers_no_mains_builds_sentinel(self, mock_run):
        """Go sources without any marker or main package build '.' with warnings."""
        self._write("lib.go", "package lib\n")
        result = self._run()
        self.assertTrue(result.success)
        self.assertEqual(result.strategy, "modules")
        self.assertEqual(result.package_spec, ["."])
        self.assertTrue(any("Defaulting to Go modules" in w for w in result.warnings))
        self.assertTrue(any("Building '.'" in w for w in result.warnings))
        self.assertEqual(self.installer.calls[0], ("go", "go1.22"))

    def test_skip_dependency_sync(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        self._run(skip_dependency_sync=True)
        commands = [call[0][0][:3] for call in mock_run.call_args_list]
        self.assertNotIn(["go", "mod", "download"], commands)

    @patch("gobuildpack.orchestrator.run_hook")
    def test_hooks_run_around_build(self, mock_hook, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        self._write(os.path.join("bin", "go-pre-compile"), "#!/bin/sh\n")
        self._write(os.path.join("bin", "go-post-compile"), "#!/bin/sh\n")
        self._run()
        hooks = [os.path.basename(call[0][0]) for call in mock_hook.call_args_list]
        self.assertEqual(hooks, ["go-pre-compile", "go-post-compile"])

    def test_build_failure_is_diagnosed(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        mock_run.side_effect = BuildFailure("go install failed", returncode=1,
                                            output="main.go:3: missing go.sum entry for module")
        result = self._run()
        self.assertFalse(result.success)
        self.assertEqual(result.exit_code, 1)
        self.assertEqual(result.state, FAILED)
        self.assertEqual(result.last_stage, "DependenciesBuilt")
        self.assertEqual(result.diagnosis, "go-sum-out-of-date")
        self.assertEqual(self._saved_result()["diagnosis"], "go-sum-out-of-date")

    def test_interrupt_cleans_up_and_fails(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        seen = {}

        def interrupted(command, env=None, cwd=None, description=None):
            seen["gitconfig"] = env["GIT_CONFIG_GLOBAL"]
            self.assertTrue(os.path.exists(seen["gitconfig"]))
            raise KeyboardInterrupt()

        mock_run.side_effect = interrupted
        result = self._run(git_credentials={"https://github.com": "token"})

        self.assertFalse(os.path.exists(os.path.dirname(seen["gitconfig"])))
        self.assertFalse(result.success)
        self.assertNotEqual(result.exit_code, 0)
        self.assertEqual(result.diagnosis, "interrupted")
        saved = self._saved_result()
        self.assertEqual(saved["state"], FAILED)
        self.assertEqual(saved["last_stage"], "DependenciesBuilt")

    def test_sigterm_interrupts_build(self, mock_run):
        self._write("go.mod", "module example.com/app\n")
        self._write("main.go", "package main\n")
        previous = signal.getsignal(signal.SIGTERM)

        def terminated(command, env=None, cwd=None, description=None):
            os.kill(os.getpid(), signal.SIGTERM)
            time.sleep(5)

        mock_run.side_effect = terminated
        result = self._run()
        self.assertEqual(result.state, FAILED)
        self.assertEqual(result.diagnosis, "interrupted")
        self.assertEqual(signal.getsignal(signal.SIGTERM), previous)


class TestFailures(OrchestratorTestCase):

    def test_detection_failure(self):
        self._write("README.md", "not go")
        result = self._run()
        self.assertEqual(result.state, FAILED)
        self.assertEqual(result.last_stage, "Init")
        self.assertEqual(result.diagnosis, "detection-failure")
        self.assertEqual(self.installer.calls, [])

    def test_install_failure(self):
        self._write("go.mod", "module example.com/app\n")
        self.installer = FakeInstaller(fail=True)
        result = self._run()
        self.assertEqual(result.last_stage, "BinariesInstalled")
        self.assertEqual(result.diagnosis, "install-error")

    def test_minimum_go_for_modules(self):
        self._write("go.mod", "module example.com/app\n")
        self.installer.install = lambda tool, spec, dest: "go1.10.8"
        result = self._run()
        self.assertEqual(result.last_stage, "BinariesInstalled")
        self.assertEqual(result.diagnosis, "install-error")


@patch("gobuildpack.strategies.dep.run_command")
@patch("gobuildpack.strategies.base.run_command")
class TestDepBuild(OrchestratorTestCase):

    def test_dep_build_warns_deprecated(self, mock_base_run, mock_dep_run):
        self._write("Gopkg.lock")
        self._write("Gopkg.toml", (
            "[metadata.heroku]\n"
            "  root-package = \"github.com/example/app\"\n"
            "  go-version = \"go1.12\"\n"
        ))
        self._write(os.path.join("vendor", "vendor.json"), "{}")
        self._write(os.path.join("cmd", "app", "main.go"), "package main\n")
        result = self._run()

        self.assertTrue(result.success, result.message)
        self.assertEqual(result.strategy, "dep")
        self.assertEqual(result.tool_version, "v1.0.0")
        self.assertEqual(self.installer.calls, [("go", "go1.12"), ("dep", None)])
        self.assertTrue(any("deprecated" in w for w in result.warnings))
        self.assertEqual(mock_dep_run.call_args[0][0], ["dep", "ensure"])
        self.assertEqual(mock_base_run.call_args[0][0], ["go", "install", "-tags", "heroku", "./cmd/app"])
        self.assertIn("dep@v1.0.0", result.signature)


if __name__ == "__main__":
    unittest.main()
