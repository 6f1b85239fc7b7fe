import unittest
from unittest.mock import patch
from gobuildpack.diagnostics import GENERIC_MESSAGE, describe_failure, diagnose, report_failure
from gobuildpack.errors import BuildFailure, BuildInterrupted, DetectionFailure, InstallError


class TestDiagnostics(unittest.TestCase):

    def test_known_signatures(self):
        cases = {
            "Gopkg.lock is out of sync with Gopkg.toml": "dep-lock-out-of-sync",
            "main.go:4:2: missing go.sum entry for module providing package x": "go-sum-out-of-date",
            "go: inconsistent vendoring in /app": "inconsistent-vendoring",
            "note: module requires Go 1.23": None,
            "go.mod requires go >= 1.23 (running go 1.21)": "unsupported-go-version",
            "cannot find package \"github.com/x/y\" in any of": "missing-package",
            "no Go files in /app/cmd": "no-go-files",
        }
        for output, code in cases.items():
            with self.subTest(output=output):
                diagnosis = diagnose(output)
                self.assertEqual(diagnosis.code if diagnosis else None, code)

    def test_first_match_wins(self):
        output = "missing go.sum entry\ncannot find package"
        self.assertEqual(diagnose(output).code, "go-sum-out-of-date")

    def test_build_failure_output_is_used(self):
        error = BuildFailure("go install failed", output="inconsistent vendoring")
        diagnosis, message = describe_failure(error)
        self.assertEqual(diagnosis.code, "inconsistent-vendoring")
        self.assertIn("go mod vendor", message)

    def test_recent_output_is_used(self):
        diagnosis, _ = describe_failure(BuildFailure("hook failed"), ["no Go files in /app"])
        self.assertEqual(diagnosis.code, "no-go-files")

    def test_generic_fallback(self):
        diagnosis, message = describe_failure(BuildFailure("go install failed", output="segfault"))
        self.assertEqual(diagnosis.code, "build-failed")
        self.assertEqual(message, GENERIC_MESSAGE)

    def test_typed_errors(self):
        self.assertEqual(describe_failure(DetectionFailure("nothing"))[0].code, "detection-failure")
        self.assertEqual(describe_failure(InstallError("go", "go9", "nope"))[0].code, "install-error")
        self.assertEqual(describe_failure(BuildInterrupted(15))[0].code, "interrupted")

    @patch("gobuildpack.diagnostics.logger")
    def test_report_failure_logs_specific_then_generic(self, mock_logger):
        report_failure(BuildFailure("go install failed", output="missing go.sum entry"))
        messages = [call[0][0] for call in mock_logger.error.call_args_list]
        self.assertIn("go.mod or go.sum is out of date", messages[0])
        self.assertEqual(messages[-1], GENERIC_MESSAGE)


if __name__ == "__main__":
    unittest.main()
