"""Tests for the console module."""

import unittest
from unittest.mock import patch

import fs_agent.console as c
from fs_agent.console import (
    console,
    gha_error,
    gha_warning,
    print_banner,
    print_final_failure,
    print_final_success,
    print_final_withheld,
    print_step_end,
    print_step_header,
)


class TestLocalOutput(unittest.TestCase):
    """Output outside GitHub Actions goes through the Rich console."""

    def test_banner_includes_version(self):
        with console.capture() as capture:
            print_banner("1.2.3")
        self.assertIn("v1.2.3", capture.get())

    def test_banner_unknown_version(self):
        with console.capture() as capture:
            print_banner("unknown")
        output = capture.get()
        self.assertIn("unknown", output)
        self.assertNotIn("vunknown", output)

    def test_step_header_and_end(self):
        with console.capture() as capture:
            print_step_header(2, "Dependency Scan")
            print_step_end(2)
            print_step_end(3, success=False)
        output = capture.get()
        self.assertIn("STEP 2: Dependency Scan", output)
        self.assertIn("Step 2 completed successfully", output)
        self.assertIn("Step 3 failed", output)

    def test_final_messages(self):
        with console.capture() as capture:
            print_final_success("Inventory update submitted")
            print_final_withheld("update withheld")
            print_final_failure("service down")
        output = capture.get()
        self.assertIn("Inventory update submitted", output)
        self.assertIn("update withheld", output)
        self.assertIn("service down", output)


class TestGitHubActionsOutput(unittest.TestCase):
    """Workflow commands are printed when running in GitHub Actions."""

    def setUp(self):
        self.original = c.IS_GITHUB_ACTIONS
        c.IS_GITHUB_ACTIONS = True

    def tearDown(self):
        c.IS_GITHUB_ACTIONS = self.original

    def test_step_header_opens_group(self):
        with patch("builtins.print") as mock_print, console.capture():
            print_step_header(1, "Configuration")
            print_step_end(1)
        mock_print.assert_any_call("::group::STEP 1: Configuration")
        mock_print.assert_any_call("::endgroup::")

    def test_warning_with_title(self):
        with patch("builtins.print") as mock_print:
            gha_warning("policy violation", title="Update Withheld")
        mock_print.assert_called_once_with("::warning title=Update Withheld::policy violation")

    def test_error_without_title(self):
        with patch("builtins.print") as mock_print:
            gha_error("service down")
        mock_print.assert_called_once_with("::error::service down")


if __name__ == "__main__":
    unittest.main()
